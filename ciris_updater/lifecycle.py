"""
Lifecycle hooks.

Hook commands are declared per container through labels and run inside that
container:

    ciris.updater.lifecycle.pre-check     before every update run
    ciris.updater.lifecycle.pre-update    before the container is stopped
    ciris.updater.lifecycle.post-update   in the replacement after it starts
    ciris.updater.lifecycle.post-check    after every update run
"""

import logging
from typing import List, Optional

from ciris_updater.models import LABEL_PRE_UPDATE_TIMEOUT, Container, UpdateParams
from ciris_updater.protocols import RuntimeClient
from ciris_updater.utils.log_sanitizer import sanitize_for_log

logger = logging.getLogger(__name__)

DEFAULT_PRE_UPDATE_TIMEOUT_MINUTES = 1


class LifecycleHookError(Exception):
    """A lifecycle hook command could not be run or exited non-zero."""


def _run_hook(
    client: RuntimeClient,
    container: Container,
    phase: str,
    timeout: Optional[float] = None,
) -> None:
    command = container.lifecycle_command(phase)
    if not command:
        logger.debug(f"No {phase} command supplied for {container.name}. Skipping")
        return

    logger.info(f"Executing {phase} command in {container.name}: {sanitize_for_log(command)}")
    try:
        exit_code = client.execute_command(container.container_id, command, timeout)
    except Exception as e:
        raise LifecycleHookError(f"{phase} command failed in {container.name}: {e}") from e

    if exit_code != 0:
        raise LifecycleHookError(
            f"{phase} command in {container.name} exited with code {exit_code}"
        )


def _run_checks(client: RuntimeClient, params: UpdateParams, phase: str) -> None:
    try:
        containers: List[Container] = client.list_containers(params.filter)
    except Exception as e:
        logger.error(f"Failed to list containers for {phase} commands: {e}")
        return

    for container in containers:
        try:
            _run_hook(client, container, phase)
        except LifecycleHookError as e:
            logger.error(str(e))


def execute_pre_checks(client: RuntimeClient, params: UpdateParams) -> None:
    """Run the pre-check hook of every managed container."""
    logger.debug("Executing pre-check commands")
    _run_checks(client, params, "pre-check")


def execute_post_checks(client: RuntimeClient, params: UpdateParams) -> None:
    """Run the post-check hook of every managed container."""
    logger.debug("Executing post-check commands")
    _run_checks(client, params, "post-check")


def pre_update_timeout(container: Container) -> float:
    """Timeout in seconds for the pre-update hook, from its label in minutes."""
    raw = container.labels.get(LABEL_PRE_UPDATE_TIMEOUT)
    minutes = DEFAULT_PRE_UPDATE_TIMEOUT_MINUTES
    if raw:
        try:
            minutes = int(raw)
        except ValueError:
            logger.warning(
                f"Invalid pre-update timeout {sanitize_for_log(raw)!r} on {container.name}, "
                f"using {DEFAULT_PRE_UPDATE_TIMEOUT_MINUTES} minute(s)"
            )
    return float(minutes * 60)


def execute_pre_update_command(client: RuntimeClient, container: Container) -> None:
    """
    Run the pre-update hook before a container is stopped.

    Raises:
        LifecycleHookError: If the command fails, so the caller can skip the container
    """
    _run_hook(client, container, "pre-update", pre_update_timeout(container))


def execute_post_update_command(client: RuntimeClient, new_container_id: str) -> None:
    """
    Run the post-update hook in a freshly started container.

    Failures are logged only; the new container is already running.
    """
    try:
        container = client.get_container(new_container_id)
    except Exception as e:
        logger.error(f"Failed to inspect new container {new_container_id[:12]}: {e}")
        return

    try:
        _run_hook(client, container, "post-update")
    except LifecycleHookError as e:
        logger.error(str(e))
