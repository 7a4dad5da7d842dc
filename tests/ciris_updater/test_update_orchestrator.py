"""
Tests for the update orchestrator.
"""

import pytest

from ciris_updater.models import UpdateParams
from ciris_updater.sorter import DependencyCycleError
from ciris_updater.update import update


class TestRestartOrdering:
    """Stop and start ordering across both strategies."""

    def test_batch_restart_order(self, fake_client_factory, linked_pair):
        """Batch mode stops dependents first and starts dependencies first."""
        client = fake_client_factory(linked_pair, stale={"A", "B"})

        update(client, UpdateParams(rolling_restart=False))

        assert client.operations() == [
            ("stop", "B"),
            ("stop", "A"),
            ("start", "A"),
            ("start", "B"),
        ]

    def test_rolling_restart_order(self, fake_client_factory, linked_pair):
        """Rolling mode restarts each container right after stopping it."""
        client = fake_client_factory(linked_pair, stale={"A", "B"})

        update(client, UpdateParams(rolling_restart=True))

        assert client.operations() == [
            ("stop", "B"),
            ("start", "B"),
            ("stop", "A"),
            ("start", "A"),
        ]

    def test_stop_order_is_reverse_of_dependency_order(
        self, fake_client_factory, container_factory
    ):
        """Listing order does not matter, only the links do."""
        containers = [
            container_factory("web", links=["api"]),
            container_factory("db"),
            container_factory("api", links=["db"]),
        ]
        client = fake_client_factory(containers, stale={"web", "db", "api"})

        update(client, UpdateParams())

        stops = [name for op, name in client.operations("stop")]
        starts = [name for op, name in client.operations("start")]
        assert starts == ["db", "api", "web"]
        assert stops == list(reversed(starts))

    def test_batch_stops_complete_before_any_start(self, fake_client_factory, container_factory):
        """No start is issued until every stop has been issued."""
        containers = [container_factory(n) for n in ("one", "two", "three")]
        client = fake_client_factory(containers, stale={"one", "two", "three"})

        update(client, UpdateParams())

        kinds = [op for op, _ in client.operations("stop", "start")]
        assert kinds == ["stop", "stop", "stop", "start", "start", "start"]

    def test_only_stale_containers_are_touched(self, fake_client_factory, linked_pair):
        """Up to date containers are neither stopped nor started."""
        client = fake_client_factory(linked_pair, stale={"A"})

        update(client, UpdateParams())

        assert client.operations() == [("stop", "A"), ("start", "A")]


class TestSelfReplacement:
    """The updater's own container."""

    def test_self_container_is_renamed_not_stopped(self, fake_client_factory, container_factory):
        """Expected calls are Rename(C) then Start(C), never Stop(C)."""
        client = fake_client_factory([container_factory("C", is_self=True)], stale={"C"})

        update(client, UpdateParams())

        assert client.operations() == [("rename", "C"), ("start", "C")]
        assert len(client.renames["C"]) == 32
        assert client.renames["C"] != "C"

    @pytest.mark.parametrize("rolling", [False, True])
    def test_self_rename_failure_skips_start(self, fake_client_factory, container_factory, rolling):
        """A failed rename leaves the running updater alone."""
        client = fake_client_factory([container_factory("C", is_self=True)], stale={"C"})
        client.fail("rename", "C")

        report = update(client, UpdateParams(rolling_restart=rolling))

        assert client.operations() == [("rename", "C")]
        assert "C" not in client.renames
        assert report.failed == ["C"]


class TestFatalErrors:
    """Only listing failures and dependency cycles abort a run."""

    def test_dependency_cycle_aborts_run(self, fake_client_factory, container_factory):
        """A cycle raises before any stop, start or image removal."""
        containers = [
            container_factory("D", links=["E"]),
            container_factory("E", links=["D"]),
        ]
        client = fake_client_factory(containers, stale={"D", "E"})

        with pytest.raises(DependencyCycleError):
            update(client, UpdateParams(cleanup=True))

        assert client.operations() == []

    def test_listing_error_propagates(self, fake_client_factory, linked_pair):
        """A listing failure is returned to the caller as is."""
        client = fake_client_factory(linked_pair, stale={"A"})
        client.list_error = ConnectionError("Docker daemon unreachable")

        with pytest.raises(ConnectionError, match="unreachable"):
            update(client, UpdateParams())

        assert client.calls == []

    def test_staleness_failure_is_isolated(self, fake_client_factory, linked_pair):
        """A failed staleness query demotes only that container."""
        client = fake_client_factory(linked_pair, stale={"A", "B"})
        client.fail("is_stale", "A")

        report = update(client, UpdateParams())

        assert report.stale == ["B"]
        assert client.operations() == [("stop", "B"), ("start", "B")]


class TestMonitorOnly:
    """Monitor only mode never changes anything."""

    def test_monitor_only_makes_no_changes(self, fake_client_factory, linked_pair):
        """Zero stop, start and remove calls regardless of staleness."""
        client = fake_client_factory(linked_pair, stale={"A", "B"})

        report = update(client, UpdateParams(monitor_only=True, cleanup=True))

        assert client.operations() == []
        assert report.stale == ["A", "B"]
        assert report.updated == []

    def test_monitor_only_runs_post_checks(self, fake_client_factory, container_factory):
        """Check hooks still run when hooks are enabled."""
        container = container_factory(
            "A",
            labels={
                "ciris.updater.lifecycle.pre-check": "echo pre",
                "ciris.updater.lifecycle.post-check": "echo post",
            },
        )
        client = fake_client_factory([container], stale={"A"})

        update(client, UpdateParams(monitor_only=True, lifecycle_hooks=True))

        assert client.operations("exec") == [("exec", "echo pre"), ("exec", "echo post")]
        assert client.operations() == []


class TestMissingImageInfo:
    """Stale containers without image metadata."""

    def test_missing_image_info_demotes_container(self, fake_client_factory, container_factory):
        """The container is never stopped or started and the run continues."""
        containers = [
            container_factory("A", has_image_info=False),
            container_factory("B"),
        ]
        client = fake_client_factory(containers, stale={"A", "B"})

        report = update(client, UpdateParams())

        assert report.stale == ["B"]
        assert client.operations() == [("stop", "B"), ("start", "B")]

    def test_missing_image_info_is_fine_in_monitor_only(
        self, fake_client_factory, container_factory
    ):
        """Nothing will be recreated, so the container stays stale."""
        client = fake_client_factory([container_factory("A", has_image_info=False)], stale={"A"})

        report = update(client, UpdateParams(monitor_only=True))

        assert report.stale == ["A"]


class TestCleanup:
    """Cleanup targets exactly the images of successfully restarted containers."""

    @pytest.mark.parametrize("rolling", [False, True])
    def test_cleanup_targets_successful_restarts(
        self, fake_client_factory, container_factory, rolling
    ):
        """Failed starts and untouched containers keep their images."""
        containers = [
            container_factory("A"),
            container_factory("B", links=["A"]),
            container_factory("C"),
        ]
        client = fake_client_factory(containers, stale={"A", "B"})
        client.fail("start", "B")

        report = update(client, UpdateParams(cleanup=True, rolling_restart=rolling))

        assert client.operations("remove_image") == [("remove_image", "sha256:A-old")]
        assert report.removed_images == ["sha256:A-old"]
        assert report.failed == ["B"]

    @pytest.mark.parametrize("rolling", [False, True])
    def test_cleanup_runs_after_all_restarts(self, fake_client_factory, linked_pair, rolling):
        """Images are removed once, after the sweep."""
        client = fake_client_factory(linked_pair, stale={"A", "B"})

        update(client, UpdateParams(cleanup=True, rolling_restart=rolling))

        kinds = [op for op, _ in client.operations()]
        assert kinds[-2:] == ["remove_image", "remove_image"]
        assert sorted(t for op, t in client.operations("remove_image")) == [
            "sha256:A-old",
            "sha256:B-old",
        ]

    def test_shared_image_removed_once(self, fake_client_factory, container_factory):
        """Containers sharing an image produce a single removal."""
        containers = [
            container_factory("A", image_id="sha256:shared"),
            container_factory("B", image_id="sha256:shared"),
        ]
        client = fake_client_factory(containers, stale={"A", "B"})

        update(client, UpdateParams(cleanup=True))

        assert client.operations("remove_image") == [("remove_image", "sha256:shared")]

    def test_cleanup_disabled(self, fake_client_factory, linked_pair):
        """No removals without the cleanup flag."""
        client = fake_client_factory(linked_pair, stale={"A", "B"})

        update(client, UpdateParams(cleanup=False))

        assert client.operations("remove_image") == []


class TestReport:
    """The report returned by a successful run."""

    def test_report_contents(self, fake_client_factory, container_factory):
        """Scanned, stale, linked and updated names are reported."""
        containers = [
            container_factory("db"),
            container_factory("app", links=["db"]),
            container_factory("cache"),
        ]
        client = fake_client_factory(containers, stale={"db"})

        report = update(client, UpdateParams())

        assert report.scanned == ["db", "app", "cache"]
        assert report.stale == ["db"]
        assert report.linked == ["app"]
        assert report.updated == ["db"]
        assert report.stopped == ["db"]
        assert not report.has_failures

    def test_isolated_failures_do_not_fail_the_run(self, fake_client_factory, linked_pair):
        """A stop failure is reported, and the other container still updates."""
        client = fake_client_factory(linked_pair, stale={"A", "B"})
        client.fail("stop", "B")

        report = update(client, UpdateParams())

        assert report.failed == ["B"]
        assert report.updated == ["A"]
        assert ("start", "B") not in client.calls


class TestHookListingErrors:
    """Listing failures inside check hooks are isolated."""

    @staticmethod
    def _fail_listing_on_call(client, call_number):
        list_containers = client.list_containers
        calls = []

        def _list(container_filter):
            calls.append(container_filter)
            if len(calls) == call_number:
                raise ConnectionError("daemon unreachable")
            return list_containers(container_filter)

        client.list_containers = _list

    def test_post_check_listing_error_keeps_report(self, fake_client_factory, linked_pair):
        """Containers already replaced stay reported when the post-check listing fails."""
        client = fake_client_factory(linked_pair, stale={"A"})
        self._fail_listing_on_call(client, 3)

        report = update(client, UpdateParams(lifecycle_hooks=True))

        assert report.updated == ["A"]
        assert client.operations() == [("stop", "A"), ("start", "A")]

    def test_pre_check_listing_error_is_not_fatal(self, fake_client_factory, linked_pair):
        client = fake_client_factory(linked_pair, stale={"A"})
        self._fail_listing_on_call(client, 1)

        report = update(client, UpdateParams(lifecycle_hooks=True))

        assert report.updated == ["A"]
