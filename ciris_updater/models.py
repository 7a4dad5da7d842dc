"""
Data models for CIRISUpdater.

One Container record per managed instance, annotated in place as an update
run moves through staleness resolution, sorting and link propagation.
"""

from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

# Container labels understood by the updater
LABEL_SELF = "ciris.updater"
LABEL_ENABLE = "ciris.updater.enable"
LABEL_SCOPE = "ciris.updater.scope"
LABEL_NO_PULL = "ciris.updater.no-pull"
LABEL_STOP_SIGNAL = "ciris.updater.stop-signal"
LABEL_DEPENDS_ON = "ciris.updater.depends-on"
LABEL_LIFECYCLE_PREFIX = "ciris.updater.lifecycle."
LABEL_PRE_UPDATE_TIMEOUT = "ciris.updater.lifecycle.pre-update-timeout"


class Container(BaseModel):
    """A running container as seen at the start of an update run."""

    container_id: str = Field(..., description="Docker container ID")
    name: str = Field(..., description="Container name without leading slash")
    image_name: str = Field(..., description="Configured image reference (e.g. nginx:latest)")
    image_id: str = Field("", description="ID of the image the container is running")
    created: str = Field("", description="Container creation timestamp (ISO 8601)")
    links: List[str] = Field(default_factory=list, description="Names of containers depended on")
    labels: Dict[str, str] = Field(default_factory=dict, description="Container labels")
    config: Dict[str, Any] = Field(
        default_factory=dict, description="Raw inspect data used to recreate the container"
    )
    has_image_info: bool = Field(
        False, description="Whether enough image metadata exists to recreate the container"
    )
    is_self: bool = Field(False, description="Whether this is the updater's own container")

    # Flags set during an update run
    stale: bool = Field(False, description="Image is outdated and eligible for update")
    linked: bool = Field(False, description="A dependency of this container is restarting")
    restart_suppressed: bool = Field(False, description="Restarts are disabled for this run")

    @property
    def to_restart(self) -> bool:
        """Will this container be replaced in the current run?"""
        return self.stale and not self.restart_suppressed

    def lifecycle_command(self, phase: str) -> Optional[str]:
        """Get the hook command for a lifecycle phase (pre-check, post-update, ...)."""
        command = self.labels.get(f"{LABEL_LIFECYCLE_PREFIX}{phase}", "").strip()
        return command or None

    def __str__(self) -> str:
        return f"{self.name} ({self.container_id[:12]})"


def accept_all(container: Container) -> bool:
    """Default filter: every container is managed."""
    return True


class UpdateParams(BaseModel):
    """Options for a single update run."""

    filter: Callable[[Container], bool] = Field(
        default=accept_all, description="Predicate selecting managed containers"
    )
    timeout: float = Field(10.0, description="Seconds to wait for a container to stop")
    cleanup: bool = Field(False, description="Remove superseded images after restarting")
    no_restart: bool = Field(False, description="Stop stale containers but do not start them")
    monitor_only: bool = Field(False, description="Only report stale containers")
    rolling_restart: bool = Field(False, description="Restart one container at a time")
    lifecycle_hooks: bool = Field(False, description="Run lifecycle hook commands")


class UpdateReport(BaseModel):
    """Outcome of a successful update run."""

    scanned: List[str] = Field(default_factory=list, description="Containers examined")
    stale: List[str] = Field(default_factory=list, description="Containers found outdated")
    linked: List[str] = Field(
        default_factory=list, description="Containers whose dependencies restarted"
    )
    stopped: List[str] = Field(default_factory=list, description="Containers stopped")
    updated: List[str] = Field(default_factory=list, description="Containers replaced")
    failed: List[str] = Field(default_factory=list, description="Containers that failed to update")
    skipped: List[str] = Field(
        default_factory=list, description="Stale containers left running on purpose"
    )
    removed_images: List[str] = Field(default_factory=list, description="Image IDs removed")

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def summary(self) -> str:
        """One-line summary for the log."""
        return (
            f"Scanned={len(self.scanned)} Stale={len(self.stale)} Updated={len(self.updated)} "
            f"Failed={len(self.failed)} Skipped={len(self.skipped)} "
            f"ImagesRemoved={len(self.removed_images)}"
        )
