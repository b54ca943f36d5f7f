"""Tests for the Reconciler class."""

import pytest

from treesync.sync.comparator import Reconciler, SyncPlan
from treesync.sync.mapper import PathMapper
from treesync.sync.scanner import Entry, Tree

LOCAL = "/local"
REMOTE = "/remote"


def _local(*entries: tuple) -> Tree:
    """Build a local tree from (relative_path, is_dir, mtime) tuples."""
    return Tree(
        LOCAL,
        [Entry(f"{LOCAL}/{path}", is_dir, mtime) for path, is_dir, mtime in entries],
    )


def _remote(*entries: tuple) -> Tree:
    """Build a remote tree from (relative_path, is_dir, mtime) tuples."""
    return Tree(
        REMOTE,
        [Entry(f"{REMOTE}/{path}", is_dir, mtime) for path, is_dir, mtime in entries],
    )


def _paths(entries: list[Entry]) -> list[str]:
    return [e.path for e in entries]


@pytest.fixture
def reconciler():
    return Reconciler(PathMapper(LOCAL, REMOTE))


class TestFindNew:
    """Tests for Pass 1 (new local entries)."""

    def test_all_new_when_remote_empty(self, reconciler):
        local = _local(("a.txt", False, 100.0), ("dir", True, 90.0))

        new = reconciler.find_new(local, _remote())

        assert _paths(new) == ["/local/a.txt", "/local/dir"]

    def test_present_entries_are_not_new(self, reconciler):
        local = _local(("a.txt", False, 100.0), ("b.txt", False, 100.0))
        remote = _remote(("a.txt", False, 10.0))

        new = reconciler.find_new(local, remote)

        assert _paths(new) == ["/local/b.txt"]

    def test_presence_ignores_entry_type(self, reconciler):
        """A remote file with a local directory's name counts as present."""
        local = _local(("thing", True, 100.0))
        remote = _remote(("thing", False, 10.0))

        assert reconciler.find_new(local, remote) == []


class TestFindOrphaned:
    """Tests for Pass 2 (orphaned remote entries)."""

    def test_remote_only_entries_are_orphaned(self, reconciler):
        local = _local(("a.txt", False, 100.0))
        remote = _remote(("a.txt", False, 100.0), ("old.txt", False, 5.0))

        orphaned = reconciler.find_orphaned(local, remote)

        assert _paths(orphaned) == ["/remote/old.txt"]

    def test_orphaned_directories_and_contents(self, reconciler):
        remote = _remote(("gone", True, None), ("gone/x.txt", False, 1.0))

        orphaned = reconciler.find_orphaned(_local(), remote)

        assert _paths(orphaned) == ["/remote/gone", "/remote/gone/x.txt"]

    def test_folded_uploads_are_not_orphaned(self, reconciler):
        local = _local(("new.txt", False, 100.0))
        remote = _remote()

        reconciler.fold_uploaded(remote, reconciler.find_new(local, remote))

        assert "/remote/new.txt" in remote
        assert reconciler.find_orphaned(local, remote) == []


class TestFindStale:
    """Tests for Pass 3 (stale files)."""

    def test_newer_local_file_is_stale(self, reconciler):
        """Scenario C: local t=100, remote t=50."""
        local = _local(("a.txt", False, 100.0))
        remote = _remote(("a.txt", False, 50.0))

        assert _paths(reconciler.find_stale(local, remote)) == ["/local/a.txt"]

    def test_older_local_file_is_not_stale(self, reconciler):
        local = _local(("a.txt", False, 50.0))
        remote = _remote(("a.txt", False, 100.0))

        assert reconciler.find_stale(local, remote) == []

    def test_equal_times_are_not_stale(self, reconciler):
        local = _local(("a.txt", False, 100.0))
        remote = _remote(("a.txt", False, 100.0))

        assert reconciler.find_stale(local, remote) == []

    def test_missing_remote_time_is_stale(self, reconciler):
        local = _local(("a.txt", False, 100.0))
        remote = _remote(("a.txt", False, None))

        assert _paths(reconciler.find_stale(local, remote)) == ["/local/a.txt"]

    def test_absent_remote_entry_is_stale(self, reconciler):
        local = _local(("a.txt", False, 100.0))

        assert _paths(reconciler.find_stale(local, _remote())) == ["/local/a.txt"]

    def test_directories_are_never_stale(self, reconciler):
        local = _local(("dir", True, 100.0))
        remote = _remote(("dir", True, None))

        assert reconciler.find_stale(local, remote) == []

    def test_excluded_entries_are_skipped(self, reconciler):
        local = _local(("a.txt", False, 100.0), ("b.txt", False, 100.0))
        new = [local.get("/local/a.txt")]

        stale = reconciler.find_stale(local, _remote(), exclude=new)

        assert _paths(stale) == ["/local/b.txt"]


class TestPlan:
    """Tests for full three-pass plans."""

    def test_scenario_a_empty_remote(self, reconciler):
        local = _local(
            ("a.txt", False, 100.0), ("dir", True, 100.0), ("dir/b.txt", False, 100.0)
        )

        plan = reconciler.plan(local, _remote())

        assert _paths(plan.to_upload) == [
            "/local/a.txt",
            "/local/dir",
            "/local/dir/b.txt",
        ]
        assert plan.to_delete == []
        assert plan.to_update == []

    def test_scenario_b_orphan_and_current_file(self, reconciler):
        local = _local(("a.txt", False, 100.0))
        remote = _remote(("a.txt", False, 200.0), ("old.txt", False, 10.0))

        plan = reconciler.plan(local, remote)

        assert plan.to_upload == []
        assert _paths(plan.to_delete) == ["/remote/old.txt"]
        assert plan.to_update == []

    def test_scenario_b_orphan_and_stale_file(self, reconciler):
        local = _local(("a.txt", False, 300.0))
        remote = _remote(("a.txt", False, 200.0), ("old.txt", False, 10.0))

        plan = reconciler.plan(local, remote)

        assert _paths(plan.to_delete) == ["/remote/old.txt"]
        assert _paths(plan.to_update) == ["/local/a.txt"]

    def test_scenario_c_update_only(self, reconciler):
        local = _local(("a.txt", False, 100.0))
        remote = _remote(("a.txt", False, 50.0))

        plan = reconciler.plan(local, remote)

        assert plan.to_upload == []
        assert plan.to_delete == []
        assert _paths(plan.to_update) == ["/local/a.txt"]

    def test_lists_are_disjoint(self, reconciler):
        local = _local(("new.txt", False, 100.0), ("a.txt", False, 100.0))
        remote = _remote(("a.txt", False, None), ("old.txt", False, 1.0))

        plan = reconciler.plan(local, remote)

        uploads = set(_paths(plan.to_upload))
        updates = set(_paths(plan.to_update))
        assert uploads == {"/local/new.txt"}
        assert updates == {"/local/a.txt"}
        assert not uploads & updates

    def test_plan_does_not_modify_remote_tree(self, reconciler):
        local = _local(("a.txt", False, 100.0))
        remote = _remote(("old.txt", False, 1.0))

        reconciler.plan(local, remote)

        assert remote.paths == ["/remote/old.txt"]

    def test_second_run_is_empty(self, reconciler):
        """After mirroring, the remote copy carries a time >= the local time."""
        local = _local(
            ("a.txt", False, 100.0), ("dir", True, 100.0), ("dir/b.txt", False, 120.0)
        )
        remote = _remote(
            ("a.txt", False, 150.0), ("dir", True, None), ("dir/b.txt", False, 150.0)
        )

        plan = reconciler.plan(local, remote)

        assert plan.is_empty
        assert plan.total == 0

    def test_plan_to_dict(self):
        plan = SyncPlan(
            to_upload=[Entry("/local/a.txt")],
            to_delete=[Entry("/remote/b.txt")],
        )

        assert plan.to_dict() == {
            "to_upload": ["/local/a.txt"],
            "to_delete": ["/remote/b.txt"],
            "to_update": [],
        }
