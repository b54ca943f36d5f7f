"""Remote store backed by a local directory.

Useful for mirroring onto a mounted network share, and for exercising the
sync engine without a server. Remote paths are slash-separated and resolved
below ``base``; ``/`` is ``base`` itself.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional, Union

from ..exceptions import ListingError, TransferError
from ..sync.scanner import Entry, Tree
from ..utils import join_remote_path, normalize_remote_path

logger = logging.getLogger(__name__)


class LocalDirectoryStore:
    """RemoteStore implementation over a directory on the local filesystem."""

    def __init__(self, base: Union[str, Path]):
        """Initialize local directory store.

        Args:
            base: Directory that plays the role of the remote root ("/")
        """
        self.base = Path(base)
        self._cwd = "/"

    def __enter__(self) -> "LocalDirectoryStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        pass

    def _absolute(self, remote_path: str) -> str:
        if not remote_path.startswith("/"):
            remote_path = join_remote_path(self._cwd, remote_path)
        return normalize_remote_path(remote_path)

    def _resolve(self, remote_path: str) -> Path:
        absolute = self._absolute(remote_path)
        return self.base.joinpath(*[part for part in absolute.split("/") if part])

    def list_recursive(self, root: str) -> Tree:
        root = self._absolute(root)
        root_dir = self._resolve(root)
        if not root_dir.is_dir():
            raise ListingError(root, "directory does not exist")

        tree = Tree(root)
        try:
            self._scan(root, root_dir, tree, is_root=True)
        except OSError as e:
            raise ListingError(root, str(e)) from e
        return tree

    def _scan(self, remote_dir: str, local_dir: Path, tree: Tree, is_root=False):
        try:
            children = sorted(local_dir.iterdir())
        except OSError as e:
            if is_root:
                raise
            logger.warning("Cannot read directory %s: %s", remote_dir, e)
            return

        for child in children:
            remote_path = join_remote_path(remote_dir, child.name)
            is_dir = child.is_dir()
            tree.append(Entry(path=remote_path, is_directory=is_dir))
            if is_dir:
                self._scan(remote_path, child, tree)

    def upload(self, local_path: Union[str, Path], remote_path: str) -> None:
        target = self._resolve(remote_path)
        try:
            shutil.copy2(local_path, target)
        except OSError as e:
            raise TransferError(remote_path, str(e)) from e

    def download(self, remote_path: str, local_path: Union[str, Path]) -> None:
        source = self._resolve(remote_path)
        try:
            shutil.copy2(source, local_path)
        except OSError as e:
            raise TransferError(remote_path, str(e)) from e

    def make_directory(self, remote_path: str) -> None:
        try:
            self._resolve(remote_path).mkdir()
        except OSError as e:
            raise TransferError(remote_path, str(e)) from e

    def make_directories(self, remote_path: str) -> None:
        try:
            self._resolve(remote_path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TransferError(remote_path, str(e)) from e

    def delete_file(self, remote_path: str) -> None:
        target = self._resolve(remote_path)
        # unlink() on a directory raises IsADirectoryError/PermissionError
        if target.is_dir():
            raise TransferError(remote_path, "is a directory")
        try:
            target.unlink()
        except OSError as e:
            raise TransferError(remote_path, str(e)) from e

    def remove_directory(self, remote_path: str) -> None:
        try:
            self._resolve(remote_path).rmdir()
        except OSError as e:
            raise TransferError(remote_path, str(e)) from e

    def get_modified_time(self, remote_path: str) -> Optional[float]:
        target = self._resolve(remote_path)
        if not target.is_file():
            return None
        try:
            return os.stat(target).st_mtime
        except OSError:
            return None

    def exists(self, remote_path: str) -> bool:
        return self._resolve(remote_path).exists()

    def current_working_directory(self) -> str:
        return self._cwd

    def change_working_directory(self, remote_path: str) -> None:
        absolute = self._absolute(remote_path)
        if not self._resolve(absolute).is_dir():
            raise TransferError(remote_path, "no such directory")
        self._cwd = absolute
