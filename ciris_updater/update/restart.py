"""
Restart strategies.

Batch mode stops every stale container (dependents first) and then starts
them all again (dependencies first). Rolling mode stops and restarts one
container at a time so only that container is ever down.

The updater's own container is never stopped. Its replacement is started
next to it after the running instance has been renamed out of the way.
"""

import logging
from typing import List, Optional, Set

from ciris_updater.lifecycle import (
    LifecycleHookError,
    execute_post_update_command,
    execute_pre_update_command,
)
from ciris_updater.logging_config import log_container_operation
from ciris_updater.models import Container, UpdateParams, UpdateReport
from ciris_updater.protocols import RuntimeClient
from ciris_updater.update.cleanup import cleanup_images
from ciris_updater.utils.naming import random_name

logger = logging.getLogger(__name__)


class ContainerRestarter:
    """
    Stops and restarts stale containers for a single update run.

    Keeps the image IDs of successfully replaced containers so they can be
    cleaned up once the sweep is over.
    """

    def __init__(self, client: RuntimeClient, params: UpdateParams, report: UpdateReport) -> None:
        self.client = client
        self.params = params
        self.report = report
        self.cleanup_image_ids: List[str] = []

    def stop_stale_container(self, container: Container) -> bool:
        """
        Stop a stale container ahead of its restart.

        Returns:
            True if the container may be restarted, False if it must stay as is
        """
        if container.is_self:
            logger.debug(f"This is the updater container {container.name}")
            return container.stale

        if not container.stale:
            return False

        if self.params.lifecycle_hooks:
            try:
                execute_pre_update_command(self.client, container)
            except LifecycleHookError as e:
                logger.error(str(e))
                logger.info("Skipping container as the pre-update command failed")
                self.report.skipped.append(container.name)
                return False

        try:
            self.client.stop_container(container, self.params.timeout)
        except Exception as e:
            logger.error(f"Failed to stop {container.name}: {e}")
            self.report.failed.append(container.name)
            return False

        log_container_operation("stop", container.name, {"timeout": self.params.timeout})
        self.report.stopped.append(container.name)
        return True

    def restart_stale_container(self, container: Container) -> bool:
        """
        Start the replacement for a stopped stale container.

        Returns:
            True if a replacement is running
        """
        if self.params.no_restart:
            if container.is_self:
                self.report.skipped.append(container.name)
            return False

        temporary_name: Optional[str] = None
        if container.is_self:
            temporary_name = self._rename_self(container)
            if temporary_name is None:
                return False

        try:
            new_container_id = self.client.start_container(container)
        except Exception as e:
            logger.error(f"Failed to start {container.name}: {e}")
            self.report.failed.append(container.name)
            if temporary_name:
                self._restore_self_name(container, temporary_name)
            return False

        logger.info(f"Started {container.name} with new image ({new_container_id[:12]})")
        log_container_operation(
            "start", container.name, {"container_id": new_container_id, "image": container.image_name}
        )
        self.report.updated.append(container.name)
        if container.image_id and container.image_id not in self.cleanup_image_ids:
            self.cleanup_image_ids.append(container.image_id)

        if container.stale and self.params.lifecycle_hooks:
            execute_post_update_command(self.client, new_container_id)

        return True

    def _rename_self(self, container: Container) -> Optional[str]:
        # The running updater cannot be stopped first. Free its name so the
        # replacement can start under it while this process keeps running.
        temporary_name = random_name()
        try:
            self.client.rename_container(container, temporary_name)
        except Exception as e:
            logger.error(f"Failed to rename updater container {container.name}: {e}")
            self.report.failed.append(container.name)
            return None

        log_container_operation("rename", container.name, {"new_name": temporary_name})
        return temporary_name

    def _restore_self_name(self, container: Container, temporary_name: str) -> None:
        renamed = container.model_copy(update={"name": temporary_name})
        try:
            self.client.rename_container(renamed, container.name)
            log_container_operation("rename", temporary_name, {"new_name": container.name})
        except Exception as e:
            logger.error(
                f"Failed to restore name {container.name} on updater container "
                f"(still running as {temporary_name}): {e}"
            )

    def cleanup(self) -> None:
        """Remove the images collected during the sweep if cleanup is enabled."""
        if not self.params.cleanup:
            return
        self.report.removed_images.extend(cleanup_images(self.client, self.cleanup_image_ids))


def perform_batch_restart(
    client: RuntimeClient,
    containers: List[Container],
    params: UpdateParams,
    report: UpdateReport,
) -> None:
    """Stop all stale containers in reverse dependency order, then restart them in order."""
    restarter = ContainerRestarter(client, params, report)
    stopped: Set[str] = set()

    for container in reversed(containers):
        if restarter.stop_stale_container(container):
            stopped.add(container.name)

    for container in containers:
        if container.stale and container.name in stopped:
            restarter.restart_stale_container(container)

    restarter.cleanup()


def perform_rolling_restart(
    client: RuntimeClient,
    containers: List[Container],
    params: UpdateParams,
    report: UpdateReport,
) -> None:
    """Stop and restart each stale container in turn, dependents first."""
    restarter = ContainerRestarter(client, params, report)

    for container in reversed(containers):
        if not container.stale:
            continue
        if restarter.stop_stale_container(container):
            restarter.restart_stale_container(container)

    restarter.cleanup()
