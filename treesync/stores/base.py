"""Remote store protocol used by the sync engine."""

from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from ..sync.scanner import Tree


@runtime_checkable
class RemoteStore(Protocol):
    """Operations the sync engine needs from a remote directory store.

    Single-entry operations return None on success and raise
    :class:`~treesync.exceptions.TransferError` on failure. Lost connections
    raise :class:`~treesync.exceptions.RemoteConnectionError`.
    """

    def list_recursive(self, root: str) -> Tree:
        """List every entry below ``root``; raises ListingError."""
        ...

    def upload(self, local_path: Union[str, Path], remote_path: str) -> None:
        """Upload a local file to ``remote_path``."""
        ...

    def download(self, remote_path: str, local_path: Union[str, Path]) -> None:
        """Download ``remote_path`` into a local file."""
        ...

    def make_directory(self, remote_path: str) -> None:
        """Create one remote directory."""
        ...

    def make_directories(self, remote_path: str) -> None:
        """Create a remote directory and any missing parents."""
        ...

    def delete_file(self, remote_path: str) -> None:
        """Delete a remote file."""
        ...

    def remove_directory(self, remote_path: str) -> None:
        """Remove an empty remote directory."""
        ...

    def get_modified_time(self, remote_path: str) -> Optional[float]:
        """Return the remote modification time, or None if unavailable."""
        ...

    def exists(self, remote_path: str) -> bool:
        """Return True if the remote path exists."""
        ...

    def current_working_directory(self) -> str:
        """Return the absolute remote working directory."""
        ...

    def change_working_directory(self, remote_path: str) -> None:
        """Change the remote working directory."""
        ...
