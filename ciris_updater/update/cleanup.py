"""
Removal of images superseded during an update run.
"""

import logging
from typing import Iterable, List

from ciris_updater.logging_config import log_container_operation
from ciris_updater.protocols import RuntimeClient

logger = logging.getLogger(__name__)


def cleanup_images(client: RuntimeClient, image_ids: Iterable[str]) -> List[str]:
    """
    Remove images that were replaced by successful restarts.

    Removal is best-effort: an image still in use, already gone or locked is
    logged and skipped.

    Args:
        client: Runtime client
        image_ids: IDs of the superseded images

    Returns:
        IDs that were actually removed
    """
    removed: List[str] = []

    for image_id in dict.fromkeys(image_ids):
        if not image_id:
            continue
        try:
            client.remove_image_by_id(image_id)
        except Exception as e:
            logger.error(f"Failed to remove image {image_id[:19]}: {e}")
            continue

        logger.info(f"Removed superseded image {image_id[:19]}")
        log_container_operation("remove_image", image_id)
        removed.append(image_id)

    return removed
