"""
Update orchestration module.

Provides the update run and its stages:
- Staleness resolution against the runtime
- Link propagation for containers depending on restarting ones
- Batch and rolling restart strategies, including self-replacement
- Cleanup of superseded images

Usage:
    from ciris_updater.update import update

    report = update(client, UpdateParams(cleanup=True))
"""

from ciris_updater.update.cleanup import cleanup_images
from ciris_updater.update.dependencies import check_dependencies
from ciris_updater.update.instances import check_for_multiple_instances
from ciris_updater.update.orchestrator import update
from ciris_updater.update.restart import (
    ContainerRestarter,
    perform_batch_restart,
    perform_rolling_restart,
)
from ciris_updater.update.staleness import MissingImageInfoError, resolve_staleness

__all__ = [
    # Main entry point
    "update",
    # Stages
    "resolve_staleness",
    "check_dependencies",
    "perform_batch_restart",
    "perform_rolling_restart",
    "cleanup_images",
    "check_for_multiple_instances",
    # Supporting types
    "ContainerRestarter",
    "MissingImageInfoError",
]
