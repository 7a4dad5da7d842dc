"""
Log sanitization for values read from container labels and command output.
"""

import re
from typing import Any


def sanitize_for_log(value: Any, max_length: int = 100) -> str:
    """
    Sanitize a value for safe logging.

    Removes control characters and newlines so label values and hook output
    cannot forge log lines.

    Args:
        value: The value to sanitize
        max_length: Maximum length of the output (default 100)

    Returns:
        Sanitized string safe for logging
    """
    sanitized = re.sub(r"[\x00-\x1f\x7f-\x9f\r\n\t]", "", str(value))

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    return sanitized

