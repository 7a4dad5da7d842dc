"""
Leftover updater instances.

After the updater replaces itself, the previous instance keeps running under
a random name. The new instance retires it on startup.
"""

import logging
from datetime import datetime, timezone
from typing import List

import dateutil.parser

from ciris_updater.logging_config import log_container_operation
from ciris_updater.models import Container, accept_all
from ciris_updater.protocols import RuntimeClient
from ciris_updater.update.cleanup import cleanup_images

logger = logging.getLogger(__name__)


def _created_at(container: Container) -> datetime:
    # Docker trims trailing zeros from fractional seconds, so compare parsed times
    try:
        created = dateutil.parser.parse(container.created)
    except (ValueError, OverflowError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


def find_updater_instances(client: RuntimeClient) -> List[Container]:
    """
    List every updater container, the running one included.

    A container counts as an updater when it is detected as one itself or runs
    the same image reference as a detected one. The previous instance may only
    match the second way, e.g. when detection relies on HOSTNAME.
    """
    containers = client.list_containers(accept_all)
    updater_images = {c.image_name for c in containers if c.is_self and c.image_name}
    return [c for c in containers if c.is_self or c.image_name in updater_images]


def check_for_multiple_instances(
    client: RuntimeClient, cleanup: bool = False, timeout: float = 10.0
) -> List[str]:
    """
    Stop every updater container except the most recently created one.

    Args:
        client: Runtime client
        cleanup: Also remove the images the retired instances ran
        timeout: Seconds to wait for each instance to stop

    Returns:
        Names of the instances that were stopped
    """
    instances = find_updater_instances(client)
    if len(instances) <= 1:
        logger.debug("There are no additional updater containers")
        return []

    logger.info(f"Found {len(instances)} updater instances. Stopping all but the newest.")
    instances.sort(key=_created_at)

    stopped: List[str] = []
    image_ids: List[str] = []
    for container in instances[:-1]:
        try:
            client.stop_container(container, timeout)
        except Exception as e:
            logger.error(f"Failed to stop previous updater instance {container.name}: {e}")
            continue
        log_container_operation("stop", container.name, {"reason": "previous updater instance"})
        stopped.append(container.name)
        image_ids.append(container.image_id)

    if cleanup:
        cleanup_images(client, image_ids)

    return stopped
