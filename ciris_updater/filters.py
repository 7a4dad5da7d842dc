"""
Container selection predicates.

Every predicate takes a Container and returns whether the updater manages it.
"""

from typing import Callable, Iterable, List, Optional

from ciris_updater.models import LABEL_ENABLE, LABEL_SCOPE, Container

ContainerFilter = Callable[[Container], bool]


def no_filter(container: Container) -> bool:
    return True


def filter_by_names(names: Iterable[str], base: ContainerFilter) -> ContainerFilter:
    """Only containers named in names (all containers when names is empty)."""
    wanted = {n.lstrip("/") for n in names}
    if not wanted:
        return base

    def _filter(container: Container) -> bool:
        return container.name in wanted and base(container)

    return _filter


def filter_by_disabled_names(names: Iterable[str], base: ContainerFilter) -> ContainerFilter:
    """Exclude containers named in names."""
    excluded = {n.lstrip("/") for n in names}
    if not excluded:
        return base

    def _filter(container: Container) -> bool:
        return container.name not in excluded and base(container)

    return _filter


def filter_by_enable_label(base: ContainerFilter) -> ContainerFilter:
    """Only containers that opted in with ciris.updater.enable=true."""

    def _filter(container: Container) -> bool:
        return container.labels.get(LABEL_ENABLE, "").lower() == "true" and base(container)

    return _filter


def filter_by_disable_label(base: ContainerFilter) -> ContainerFilter:
    """Exclude containers that opted out with ciris.updater.enable=false."""

    def _filter(container: Container) -> bool:
        return container.labels.get(LABEL_ENABLE, "").lower() != "false" and base(container)

    return _filter


def filter_by_scope(scope: str, base: ContainerFilter) -> ContainerFilter:
    """Only containers whose ciris.updater.scope label matches scope."""

    def _filter(container: Container) -> bool:
        return container.labels.get(LABEL_SCOPE) == scope and base(container)

    return _filter


def build_filter(
    names: Optional[List[str]] = None,
    disable_names: Optional[List[str]] = None,
    label_enable: bool = False,
    scope: Optional[str] = None,
) -> ContainerFilter:
    """Compose the selection predicate for an update run."""
    container_filter: ContainerFilter = no_filter
    container_filter = filter_by_names(names or [], container_filter)
    container_filter = filter_by_disabled_names(disable_names or [], container_filter)
    if label_enable:
        container_filter = filter_by_enable_label(container_filter)
    if scope:
        container_filter = filter_by_scope(scope, container_filter)
    return filter_by_disable_label(container_filter)


def describe_filter(
    names: Optional[List[str]] = None,
    disable_names: Optional[List[str]] = None,
    label_enable: bool = False,
    scope: Optional[str] = None,
) -> str:
    """Human readable summary of the selection, for the startup log."""
    if names:
        description = f"Checking containers {', '.join(sorted(names))}"
    elif label_enable:
        description = "Checking containers labelled ciris.updater.enable=true"
    else:
        description = "Checking all containers"

    if disable_names:
        description += f" except {', '.join(sorted(disable_names))}"
    if scope:
        description += f" in scope {scope!r}"
    return description
