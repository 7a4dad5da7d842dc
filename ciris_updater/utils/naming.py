"""
Random container names.

Used to move the updater's own container out of the way so its replacement
can take over the original name.
"""

import secrets
import string

_ALPHABET = string.ascii_letters

# 52**32 possible names; a collision with a live container is not a practical concern
RANDOM_NAME_LENGTH = 32


def random_name(length: int = RANDOM_NAME_LENGTH) -> str:
    """
    Generate a random, Docker-safe container name.

    Args:
        length: Number of letters (default: 32)

    Returns:
        Name made of ASCII letters only
    """
    if length < 2:
        raise ValueError("Container names need at least 2 characters")
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))
