"""
Link propagation.

Flags containers that are not being replaced themselves but link to a
container that is, so they can be relinked to the replacement.
"""

import logging
from typing import List

from ciris_updater.models import Container

logger = logging.getLogger(__name__)


def check_dependencies(containers: List[Container]) -> None:
    """Set the linked flag in place. Runs once, after sorting."""
    restarting = {c.name for c in containers if c.to_restart}
    if not restarting:
        return

    for i, parent in enumerate(containers):
        if parent.to_restart:
            continue

        for link_name in parent.links:
            if link_name in restarting:
                containers[i].linked = True
                logger.debug(f"{parent.name} links to restarting container {link_name}")
                break
