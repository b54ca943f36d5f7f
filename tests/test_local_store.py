"""Tests for the local directory store."""

import os
import tempfile
from pathlib import Path

import pytest

from treesync.exceptions import ListingError, TransferError
from treesync.stores.base import RemoteStore
from treesync.stores.local import LocalDirectoryStore


@pytest.fixture
def base_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(base_dir):
    return LocalDirectoryStore(base_dir)


class TestLocalDirectoryStore:
    """Tests for LocalDirectoryStore."""

    def test_satisfies_protocol(self, store):
        assert isinstance(store, RemoteStore)

    def test_list_recursive(self, store, base_dir):
        (base_dir / "r" / "sub").mkdir(parents=True)
        (base_dir / "r" / "a.txt").write_text("a")
        (base_dir / "r" / "sub" / "b.txt").write_text("b")

        tree = store.list_recursive("/r")

        assert tree.root == "/r"
        assert tree.paths == ["/r/a.txt", "/r/sub", "/r/sub/b.txt"]
        assert tree.get("/r/sub").is_directory

    def test_list_missing_root(self, store):
        with pytest.raises(ListingError):
            store.list_recursive("/missing")

    def test_upload_and_download(self, store, base_dir):
        source = base_dir / "source.txt"
        source.write_text("content")
        (base_dir / "r").mkdir()

        store.upload(source, "/r/copy.txt")
        store.download("/r/copy.txt", base_dir / "back.txt")

        assert (base_dir / "r" / "copy.txt").read_text() == "content"
        assert (base_dir / "back.txt").read_text() == "content"

    def test_upload_into_missing_directory(self, store, base_dir):
        source = base_dir / "source.txt"
        source.write_text("content")

        with pytest.raises(TransferError):
            store.upload(source, "/nowhere/copy.txt")

    def test_make_directory_twice_fails(self, store):
        store.make_directory("/r")

        with pytest.raises(TransferError):
            store.make_directory("/r")

    def test_make_directories_is_idempotent(self, store, base_dir):
        store.make_directories("/a/b")
        store.make_directories("/a/b")

        assert (base_dir / "a" / "b").is_dir()

    def test_delete_file_refuses_directories(self, store, base_dir):
        (base_dir / "r").mkdir()

        with pytest.raises(TransferError, match="is a directory"):
            store.delete_file("/r")
        store.remove_directory("/r")

        assert not (base_dir / "r").exists()

    def test_remove_non_empty_directory_fails(self, store, base_dir):
        (base_dir / "r").mkdir()
        (base_dir / "r" / "a.txt").write_text("a")

        with pytest.raises(TransferError):
            store.remove_directory("/r")

    def test_get_modified_time(self, store, base_dir):
        path = base_dir / "a.txt"
        path.write_text("a")
        os.utime(path, (1234.0, 1234.0))

        assert store.get_modified_time("/a.txt") == 1234.0
        assert store.get_modified_time("/") is None
        assert store.get_modified_time("/missing") is None

    def test_working_directory(self, store, base_dir):
        (base_dir / "r").mkdir()
        (base_dir / "r" / "a.txt").write_text("a")

        assert store.current_working_directory() == "/"
        store.change_working_directory("r")

        assert store.current_working_directory() == "/r"
        assert store.exists("a.txt")

    def test_change_to_missing_directory(self, store):
        with pytest.raises(TransferError):
            store.change_working_directory("/missing")
