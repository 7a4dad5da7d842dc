"""
Update orchestration.

One call to update() is one complete run: list containers, find the stale
ones, order them by their links and replace them. Only a listing failure or
a dependency cycle fails the run; everything else is isolated to the
container it happened to and shows up in the returned report.
"""

import logging

from ciris_updater import lifecycle
from ciris_updater.models import UpdateParams, UpdateReport
from ciris_updater.protocols import RuntimeClient
from ciris_updater.sorter import sort_by_dependencies
from ciris_updater.update.dependencies import check_dependencies
from ciris_updater.update.restart import perform_batch_restart, perform_rolling_restart
from ciris_updater.update.staleness import resolve_staleness

logger = logging.getLogger(__name__)


def update(client: RuntimeClient, params: UpdateParams) -> UpdateReport:
    """
    Replace containers running outdated images.

    Args:
        client: Runtime client for the container backend
        params: Options for this run

    Returns:
        Report of what was scanned, replaced, skipped and failed

    Raises:
        DependencyCycleError: If container links form a cycle
        Exception: Whatever list_containers raises
    """
    logger.debug("Checking containers for updated images")

    if params.lifecycle_hooks:
        lifecycle.execute_pre_checks(client, params)

    containers = client.list_containers(params.filter)
    report = UpdateReport(scanned=[c.name for c in containers])

    resolve_staleness(client, containers, params)

    containers = sort_by_dependencies(containers)

    check_dependencies(containers)

    report.stale = [c.name for c in containers if c.stale]
    report.linked = [c.name for c in containers if c.linked]
    if report.linked:
        logger.info(f"Containers linked to restarting containers: {report.linked}")

    if params.monitor_only:
        for name in report.stale:
            logger.info(f"Monitor only, not updating {name}")
        if params.lifecycle_hooks:
            lifecycle.execute_post_checks(client, params)
        return report

    if params.rolling_restart:
        perform_rolling_restart(client, containers, params, report)
    else:
        perform_batch_restart(client, containers, params, report)

    if params.lifecycle_hooks:
        lifecycle.execute_post_checks(client, params)

    logger.info(f"Update run complete - {report.summary()}")
    return report
