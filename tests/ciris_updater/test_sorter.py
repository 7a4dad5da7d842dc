"""
Tests for dependency sorting.
"""

import pytest

from ciris_updater.sorter import DependencyCycleError, sort_by_dependencies


def _names(containers):
    return [c.name for c in containers]


class TestSortByDependencies:
    """Topological ordering of containers."""

    def test_dependencies_come_first(self, container_factory):
        containers = [
            container_factory("web", links=["api"]),
            container_factory("api", links=["db"]),
            container_factory("db"),
        ]

        assert _names(sort_by_dependencies(containers)) == ["db", "api", "web"]

    def test_input_order_kept_without_links(self, container_factory):
        containers = [container_factory(n) for n in ("c", "a", "b")]

        assert _names(sort_by_dependencies(containers)) == ["c", "a", "b"]

    def test_every_container_after_its_dependencies(self, container_factory):
        containers = [
            container_factory("e", links=["d", "b"]),
            container_factory("a"),
            container_factory("d", links=["a"]),
            container_factory("b", links=["a", "c"]),
            container_factory("c"),
        ]

        ordered = _names(sort_by_dependencies(containers))

        assert sorted(ordered) == ["a", "b", "c", "d", "e"]
        for container in containers:
            for link in container.links:
                assert ordered.index(link) < ordered.index(container.name)

    def test_unknown_links_ignored(self, container_factory):
        containers = [container_factory("app", links=["elsewhere"])]

        assert _names(sort_by_dependencies(containers)) == ["app"]

    def test_cycle_raises(self, container_factory):
        containers = [
            container_factory("D", links=["E"]),
            container_factory("E", links=["D"]),
        ]

        with pytest.raises(DependencyCycleError, match="Circular reference"):
            sort_by_dependencies(containers)

    def test_self_link_is_a_cycle(self, container_factory):
        with pytest.raises(DependencyCycleError):
            sort_by_dependencies([container_factory("loop", links=["loop"])])

    def test_input_not_mutated(self, container_factory):
        containers = [container_factory("b", links=["a"]), container_factory("a")]

        sort_by_dependencies(containers)

        assert _names(containers) == ["b", "a"]

    def test_deep_chain(self, container_factory):
        """Chains longer than the recursion limit still sort."""
        depth = 3000
        containers = [
            container_factory(f"c{i}", links=[f"c{i - 1}"] if i else []) for i in range(depth)
        ]

        ordered = sort_by_dependencies(list(reversed(containers)))

        assert [c.name for c in ordered] == [f"c{i}" for i in range(depth)]
