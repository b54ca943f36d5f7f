"""Directory scanning utilities for sync operations."""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, Optional, Union

from ..exceptions import ListingError

if TYPE_CHECKING:
    from ..stores.base import RemoteStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Entry:
    """Represents a file or directory in a directory tree."""

    path: str
    """Path rooted at the tree's root (using forward slashes)"""

    is_directory: bool = False
    """Whether the entry is a directory"""

    modified_time: Optional[float] = None
    """Last modification time (Unix timestamp), None if unknown"""

    def with_modified_time(self, modified_time: Optional[float]) -> "Entry":
        """Return a copy of this entry with another modification time."""
        return replace(self, modified_time=modified_time)


class Tree:
    """Ordered snapshot of the entries below one root.

    Paths are unique within a tree; membership tests are by path.
    """

    def __init__(self, root: str, entries: Iterable[Entry] = ()):
        self.root = root
        self._entries: dict[str, Entry] = {}
        for entry in entries:
            self.append(entry)

    def append(self, entry: Entry) -> None:
        """Add an entry, ignoring paths that are already present."""
        if entry.path in self._entries:
            logger.debug("Duplicate path in tree %s: %s", self.root, entry.path)
            return
        self._entries[entry.path] = entry

    def replace(self, entry: Entry) -> None:
        """Replace the entry with the same path, keeping its position."""
        self._entries[entry.path] = entry

    def discard(self, path: str) -> None:
        """Remove the entry with the given path if present."""
        self._entries.pop(path, None)

    def get(self, path: str) -> Optional[Entry]:
        """Return the entry with the given path, or None."""
        return self._entries.get(path)

    @property
    def paths(self) -> list[str]:
        """Entry paths in tree order."""
        return list(self._entries)

    def copy(self) -> "Tree":
        """Return an independent copy of this tree."""
        return Tree(self.root, self._entries.values())

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[Entry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Tree(root={self.root!r}, entries={len(self._entries)})"


def local_path_str(path: Union[str, Path]) -> str:
    """Convert a local path to the slash-separated form used in trees."""
    return Path(path).as_posix()


class LocalFilesystem:
    """Local filesystem capability used to list the local tree."""

    def list_recursive(self, root: Union[str, Path]) -> Tree:
        """Recursively list a local directory.

        Directories are listed before their contents and names are sorted,
        so the returned tree is deterministic.

        Args:
            root: Directory to list

        Returns:
            Tree of every descendant file and directory

        Raises:
            ListingError: If the root is missing, not a directory or unreadable
        """
        root_path = Path(root)
        if not root_path.exists():
            raise ListingError(str(root), "directory does not exist")
        if not root_path.is_dir():
            raise ListingError(str(root), "not a directory")

        try:
            items = sorted(root_path.iterdir())
        except OSError as e:
            raise ListingError(str(root), str(e)) from e

        tree = Tree(local_path_str(root_path))
        self._scan(items, tree)
        return tree

    def _scan(self, items: list[Path], tree: Tree) -> None:
        for item in items:
            try:
                stat = item.stat()
                is_dir = item.is_dir()
            except OSError as e:
                # Skip entries we can't stat
                logger.warning("Skipping %s: %s", item, e)
                continue

            tree.append(
                Entry(
                    path=local_path_str(item),
                    is_directory=is_dir,
                    modified_time=stat.st_mtime,
                )
            )

            if is_dir:
                try:
                    children = sorted(item.iterdir())
                except OSError as e:
                    # Skip directories we can't read
                    logger.warning("Cannot read directory %s: %s", item, e)
                    continue
                self._scan(children, tree)

    def modified_time(self, path: Union[str, Path]) -> float:
        """Return the modification time of a local path."""
        return os.stat(path).st_mtime

    def is_file(self, path: Union[str, Path]) -> bool:
        """Return True if the path is a regular file."""
        return Path(path).is_file()


class DirectoryScanner:
    """Builds the local and remote trees for a sync run.

    Examples:
        >>> scanner = DirectoryScanner(store)
        >>> local = scanner.scan_local(Path("/home/user/docs"))
        >>> remote = scanner.scan_remote("/backup/docs")
    """

    def __init__(
        self,
        store: "RemoteStore",
        local_fs: Optional[LocalFilesystem] = None,
    ):
        """Initialize directory scanner.

        Args:
            store: Remote store used to list the remote tree
            local_fs: Local filesystem capability (defaults to LocalFilesystem())
        """
        self.store = store
        self.local_fs = local_fs or LocalFilesystem()

    def scan_local(self, root: Union[str, Path]) -> Tree:
        """Recursively scan a local directory.

        Raises:
            ListingError: If the root cannot be listed
        """
        tree = self.local_fs.list_recursive(root)
        logger.debug("Found %d local entries below %s", len(tree), tree.root)
        return tree

    def scan_remote(self, root: str, with_timestamps: bool = True) -> Tree:
        """Recursively scan a remote directory.

        When ``with_timestamps`` is set the modification time of every file is
        read with a separate store call. Files whose time cannot be read are
        kept without a timestamp.

        Args:
            root: Remote directory to scan
            with_timestamps: Whether to read remote modification times

        Returns:
            Tree of remote entries

        Raises:
            ListingError: If the root cannot be listed
        """
        tree = self.store.list_recursive(root)

        if with_timestamps:
            for entry in tree:
                if entry.is_directory or entry.modified_time is not None:
                    continue
                modified_time = self.store.get_modified_time(entry.path)
                if modified_time is None:
                    logger.debug("No modification time for %s", entry.path)
                    continue
                tree.replace(entry.with_modified_time(modified_time))

        logger.debug("Found %d remote entries below %s", len(tree), root)
        return tree
