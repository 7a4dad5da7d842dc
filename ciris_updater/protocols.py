"""
Runtime client protocol consumed by the update orchestrator.

The orchestrator only ever talks to the container runtime through this
contract, so any backend (Docker, a test double) can drive an update run.
"""

from typing import Callable, List, Optional, Protocol, runtime_checkable

from ciris_updater.models import Container


@runtime_checkable
class RuntimeClient(Protocol):
    """Operations the updater needs from a container runtime."""

    def list_containers(self, container_filter: Callable[[Container], bool]) -> List[Container]:
        """
        List managed containers.

        Promises:
        - Returns a fresh snapshot; flags are all unset
        - Marks the updater's own container with is_self
        - Raises on runtime errors (fatal for the run)
        """
        ...

    def get_container(self, container_id: str) -> Container:
        """Inspect a single container by ID or name."""
        ...

    def is_container_stale(self, container: Container) -> bool:
        """
        Check whether a newer image is available for the container.

        Promises:
        - May pull the image as a side effect
        - Raises on lookup errors (caller demotes the container)
        """
        ...

    def stop_container(self, container: Container, timeout: float) -> None:
        """Stop and remove the container, waiting at most timeout seconds."""
        ...

    def start_container(self, container: Container) -> str:
        """Recreate the container from its captured config and return the new ID."""
        ...

    def rename_container(self, container: Container, new_name: str) -> None:
        """Rename a container, freeing its current name."""
        ...

    def remove_image_by_id(self, image_id: str) -> None:
        """Remove an image. Raises if it is still in use or already gone."""
        ...

    def execute_command(
        self, container_id: str, command: str, timeout: Optional[float] = None
    ) -> int:
        """Run a command inside a container and return its exit code."""
        ...
