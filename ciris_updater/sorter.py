"""
Dependency ordering for containers.

Orders containers so every container comes after the containers it links
to. Stopping walks this order backwards, restarting walks it forwards.
"""

import logging
from typing import Dict, Iterator, List, Set, Tuple

from ciris_updater.models import Container

logger = logging.getLogger(__name__)


class DependencyCycleError(Exception):
    """Raised when container links form a cycle and no safe order exists."""

    def __init__(self, container_name: str):
        self.container_name = container_name
        super().__init__(f"Circular reference to {container_name}")


def sort_by_dependencies(containers: List[Container]) -> List[Container]:
    """
    Topologically sort containers by their links.

    Input order is kept wherever the dependency graph allows it. Links to
    containers outside the given set are ignored.

    Args:
        containers: Containers to order

    Returns:
        New list in dependency order

    Raises:
        DependencyCycleError: If the links contain a cycle
    """
    by_name: Dict[str, Container] = {c.name: c for c in containers}
    visiting: Set[str] = set()
    done: Set[str] = set()
    ordered: List[Container] = []

    for root in containers:
        if root.name in done:
            continue

        # Iterative walk: link chains may be deeper than the recursion limit
        visiting.add(root.name)
        stack: List[Tuple[Container, Iterator[str]]] = [(root, iter(root.links))]
        while stack:
            container, links = stack[-1]
            for link in links:
                dependency = by_name.get(link)
                if dependency is None or dependency.name in done:
                    continue
                if dependency.name in visiting:
                    raise DependencyCycleError(dependency.name)
                visiting.add(dependency.name)
                stack.append((dependency, iter(dependency.links)))
                break
            else:
                stack.pop()
                visiting.discard(container.name)
                done.add(container.name)
                ordered.append(container)

    logger.debug(f"Dependency order: {[c.name for c in ordered]}")
    return ordered
