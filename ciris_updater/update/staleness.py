"""
Staleness resolution.

Asks the runtime whether each container runs an outdated image. A container
is only ever demoted to "not stale" here; nothing in this stage fails the run.
"""

import logging
from typing import List

from ciris_updater.models import Container, UpdateParams
from ciris_updater.protocols import RuntimeClient

logger = logging.getLogger(__name__)


class MissingImageInfoError(Exception):
    """A stale container lacks the image metadata needed to recreate it."""

    def __init__(self) -> None:
        super().__init__("no available image info")


def resolve_staleness(
    client: RuntimeClient, containers: List[Container], params: UpdateParams
) -> None:
    """
    Set the stale flag on every container in place.

    Args:
        client: Runtime client used for the staleness query
        containers: Snapshot from list_containers, annotated in place
        params: Update parameters for this run
    """
    for i in range(len(containers)):
        container = containers[i]
        try:
            stale = client.is_container_stale(container)
            # Without image info the replacement cannot be recreated. Harmless when
            # nothing will be restarted in this run.
            if (
                stale
                and not params.no_restart
                and not params.monitor_only
                and not container.has_image_info
            ):
                raise MissingImageInfoError()
        except Exception as e:
            logger.info(f"Unable to update container {container.name!r}: {e}. Proceeding to next.")
            stale = False

        containers[i].stale = stale
        containers[i].restart_suppressed = params.no_restart

        if stale:
            logger.info(f"Found new image for {container.name} ({container.image_name})")
        else:
            logger.debug(f"No new image found for {container.name}")
