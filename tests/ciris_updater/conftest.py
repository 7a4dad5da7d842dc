"""
Shared fixtures for CIRISUpdater tests.
"""

from typing import Dict, List, Optional, Set, Tuple

import pytest

from ciris_updater.models import Container


def make_container(
    name: str,
    links: Optional[List[str]] = None,
    image_id: Optional[str] = None,
    is_self: bool = False,
    has_image_info: bool = True,
    labels: Optional[Dict[str, str]] = None,
    created: str = "",
) -> Container:
    """Build a container record the way list_containers would."""
    return Container(
        container_id=f"{name}-id".ljust(64, "0"),
        name=name,
        image_name=f"example/{name}:latest",
        image_id=image_id or f"sha256:{name}-old",
        links=links or [],
        labels=labels or {},
        has_image_info=has_image_info,
        is_self=is_self,
        created=created,
    )


class FakeRuntimeClient:
    """
    Runtime client double recording every call in order.

    calls holds (operation, target) tuples; target is the container name, or
    the image ID for remove_image.
    """

    def __init__(self, containers: List[Container], stale: Optional[Set[str]] = None) -> None:
        self.containers = containers
        self.stale: Set[str] = set(stale or [])
        self.calls: List[Tuple[str, str]] = []
        self.failures: Dict[str, Set[str]] = {}
        self.list_error: Optional[Exception] = None
        self.exit_codes: Dict[str, int] = {}
        self.renames: Dict[str, str] = {}
        self.started: Dict[str, Container] = {}

    def fail(self, operation: str, target: str) -> None:
        self.failures.setdefault(operation, set()).add(target)

    def _record(self, operation: str, target: str) -> None:
        self.calls.append((operation, target))
        if target in self.failures.get(operation, set()):
            raise RuntimeError(f"{operation} {target} failed")

    def operations(self, *kinds: str) -> List[Tuple[str, str]]:
        wanted = kinds or ("stop", "start", "rename", "remove_image")
        return [call for call in self.calls if call[0] in wanted]

    # RuntimeClient protocol

    def list_containers(self, container_filter):
        if self.list_error is not None:
            raise self.list_error
        return [c.model_copy(deep=True) for c in self.containers if container_filter(c)]

    def get_container(self, container_id):
        if container_id in self.started:
            return self.started[container_id]
        for container in self.containers:
            if container.container_id == container_id:
                return container
        raise LookupError(container_id)

    def is_container_stale(self, container):
        self._record("is_stale", container.name)
        return container.name in self.stale

    def stop_container(self, container, timeout):
        self._record("stop", container.name)

    def start_container(self, container):
        self._record("start", container.name)
        new_id = f"new-{container.name}"
        self.started[new_id] = container.model_copy(update={"container_id": new_id})
        return new_id

    def rename_container(self, container, new_name):
        self._record("rename", container.name)
        self.renames[container.name] = new_name

    def remove_image_by_id(self, image_id):
        self._record("remove_image", image_id)

    def execute_command(self, container_id, command, timeout=None):
        self._record("exec", command)
        return self.exit_codes.get(command, 0)


@pytest.fixture
def linked_pair():
    """A (no deps) and B (depends on A)."""
    return [make_container("A"), make_container("B", links=["A"])]


@pytest.fixture
def fake_client_factory():
    """Build a FakeRuntimeClient from containers and stale names."""

    def _factory(containers, stale=None):
        return FakeRuntimeClient(containers, stale=stale)

    return _factory


@pytest.fixture
def container_factory():
    """Expose make_container to tests."""
    return make_container
