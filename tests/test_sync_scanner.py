"""Tests for tree listing (local filesystem and remote scanning)."""

import os
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from treesync.exceptions import ListingError
from treesync.stores.base import RemoteStore
from treesync.sync.scanner import DirectoryScanner, Entry, LocalFilesystem, Tree


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestTree:
    """Tests for the Tree container."""

    def test_membership_and_order(self):
        tree = Tree("/r", [Entry("/r/b"), Entry("/r/a")])

        assert "/r/a" in tree
        assert "/r/c" not in tree
        assert tree.paths == ["/r/b", "/r/a"]
        assert len(tree) == 2

    def test_duplicate_paths_are_ignored(self):
        tree = Tree("/r", [Entry("/r/a", modified_time=1.0)])
        tree.append(Entry("/r/a", modified_time=2.0))

        assert len(tree) == 1
        assert tree.get("/r/a").modified_time == 1.0

    def test_replace_keeps_position(self):
        tree = Tree("/r", [Entry("/r/a"), Entry("/r/b")])
        tree.replace(Entry("/r/a", modified_time=5.0))

        assert tree.paths == ["/r/a", "/r/b"]
        assert tree.get("/r/a").modified_time == 5.0

    def test_discard(self):
        tree = Tree("/r", [Entry("/r/a")])
        tree.discard("/r/a")
        tree.discard("/r/missing")

        assert len(tree) == 0

    def test_copy_is_independent(self):
        tree = Tree("/r", [Entry("/r/a")])
        copy = tree.copy()
        copy.append(Entry("/r/b"))

        assert "/r/b" not in tree
        assert copy.root == "/r"


class TestLocalFilesystem:
    """Tests for listing local directories."""

    def test_lists_files_and_directories_recursively(self, temp_dir):
        (temp_dir / "a.txt").write_text("a")
        (temp_dir / "dir").mkdir()
        (temp_dir / "dir" / "b.txt").write_text("b")

        tree = LocalFilesystem().list_recursive(temp_dir)

        root = temp_dir.as_posix()
        assert tree.root == root
        assert tree.paths == [f"{root}/a.txt", f"{root}/dir", f"{root}/dir/b.txt"]
        assert tree.get(f"{root}/dir").is_directory
        assert not tree.get(f"{root}/a.txt").is_directory

    def test_records_modification_times(self, temp_dir):
        file_path = temp_dir / "a.txt"
        file_path.write_text("a")
        os.utime(file_path, (1000.0, 1000.0))

        tree = LocalFilesystem().list_recursive(temp_dir)

        assert tree.get(file_path.as_posix()).modified_time == 1000.0

    def test_empty_directory(self, temp_dir):
        tree = LocalFilesystem().list_recursive(temp_dir)

        assert len(tree) == 0

    def test_missing_root_raises(self, temp_dir):
        with pytest.raises(ListingError, match="does not exist"):
            LocalFilesystem().list_recursive(temp_dir / "missing")

    def test_file_root_raises(self, temp_dir):
        file_path = temp_dir / "a.txt"
        file_path.write_text("a")

        with pytest.raises(ListingError, match="not a directory"):
            LocalFilesystem().list_recursive(file_path)

    @pytest.mark.skipif(
        os.name == "nt" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permission bits are not enforced",
    )
    def test_unreadable_subdirectory_is_skipped(self, temp_dir):
        locked = temp_dir / "locked"
        locked.mkdir()
        (locked / "secret.txt").write_text("x")
        (temp_dir / "ok.txt").write_text("ok")
        locked.chmod(0)
        try:
            tree = LocalFilesystem().list_recursive(temp_dir)
        finally:
            locked.chmod(0o755)

        root = temp_dir.as_posix()
        assert f"{root}/ok.txt" in tree
        assert f"{root}/locked" in tree
        assert f"{root}/locked/secret.txt" not in tree

    def test_modified_time_and_is_file(self, temp_dir):
        file_path = temp_dir / "a.txt"
        file_path.write_text("a")
        os.utime(file_path, (500.0, 500.0))
        fs = LocalFilesystem()

        assert fs.modified_time(file_path) == 500.0
        assert fs.is_file(file_path)
        assert not fs.is_file(temp_dir)


class TestDirectoryScanner:
    """Tests for building remote trees."""

    @pytest.fixture
    def mock_store(self):
        return Mock(spec=RemoteStore)

    def test_scan_remote_reads_file_timestamps(self, mock_store):
        mock_store.list_recursive.return_value = Tree(
            "/r", [Entry("/r/dir", True), Entry("/r/dir/a.txt"), Entry("/r/b.txt")]
        )
        mock_store.get_modified_time.side_effect = lambda path: {
            "/r/dir/a.txt": 10.0,
            "/r/b.txt": None,
        }[path]

        tree = DirectoryScanner(mock_store).scan_remote("/r")

        assert tree.get("/r/dir/a.txt").modified_time == 10.0
        # Entries without a readable time stay in the tree
        assert "/r/b.txt" in tree
        assert tree.get("/r/b.txt").modified_time is None
        # Directories are not asked for a time
        called = [c.args[0] for c in mock_store.get_modified_time.call_args_list]
        assert "/r/dir" not in called

    def test_scan_remote_without_timestamps(self, mock_store):
        mock_store.list_recursive.return_value = Tree("/r", [Entry("/r/a.txt")])

        tree = DirectoryScanner(mock_store).scan_remote("/r", with_timestamps=False)

        assert tree.paths == ["/r/a.txt"]
        mock_store.get_modified_time.assert_not_called()

    def test_scan_remote_listing_error_propagates(self, mock_store):
        mock_store.list_recursive.side_effect = ListingError("/r", "denied")

        with pytest.raises(ListingError):
            DirectoryScanner(mock_store).scan_remote("/r")

    def test_scan_local_uses_local_filesystem(self, mock_store):
        local_fs = Mock(spec=LocalFilesystem)
        local_fs.list_recursive.return_value = Tree("/l", [Entry("/l/a")])

        tree = DirectoryScanner(mock_store, local_fs).scan_local("/l")

        assert tree.paths == ["/l/a"]
        local_fs.list_recursive.assert_called_once_with("/l")
