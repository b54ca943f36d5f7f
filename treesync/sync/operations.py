"""Sync operations wrapper returning a result per entry."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..exceptions import TransferError
from .scanner import Entry

if TYPE_CHECKING:
    from ..stores.base import RemoteStore

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Actions that can be taken on a single entry."""

    UPLOAD = "upload"
    """Upload a new local entry to the remote store"""

    DELETE = "delete"
    """Delete an orphaned remote entry"""

    UPDATE = "update"
    """Upload a stale local file again"""

    DOWNLOAD = "download"
    """Download a remote entry (restore)"""


class OperationStatus(str, Enum):
    """Outcome of a single-entry operation."""

    SUCCESS = "success"
    TRANSFER_ERROR = "transfer_error"


@dataclass(frozen=True)
class OperationResult:
    """Result of an operation on one entry."""

    action: SyncAction
    """Action that was attempted"""

    path: str
    """Path the action was attempted on"""

    status: OperationStatus
    """Whether the action succeeded"""

    error: Optional[str] = None
    """Failure reason for TRANSFER_ERROR results"""

    detail: Optional[str] = None
    """What was done, e.g. "file" or "directory" for deletions"""

    @property
    def ok(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "path": self.path,
            "status": self.status.value,
            "error": self.error,
            "detail": self.detail,
        }


class SyncOperations:
    """Per-entry upload, delete and download operations.

    Store errors for a single entry are caught here and turned into
    ``TRANSFER_ERROR`` results; connection errors propagate.
    """

    def __init__(self, store: "RemoteStore"):
        """Initialize sync operations.

        Args:
            store: Remote store to operate on
        """
        self.store = store

    def upload(
        self,
        entry: Entry,
        remote_path: str,
        action: SyncAction = SyncAction.UPLOAD,
        ensure_directories: bool = False,
    ) -> OperationResult:
        """Upload a local entry to ``remote_path``.

        Directory entries create the remote directory; files are transferred
        in full.

        Args:
            entry: Local entry to upload
            remote_path: Destination path in the remote namespace
            action: UPLOAD for new entries, UPDATE for stale ones
            ensure_directories: Reuse existing remote directories instead of
                failing when a directory entry already exists

        Returns:
            OperationResult for the entry
        """
        try:
            if entry.is_directory and ensure_directories:
                self.store.make_directories(remote_path)
                detail = "directory"
            elif entry.is_directory:
                self.store.make_directory(remote_path)
                detail = "directory"
            else:
                self.store.upload(entry.path, remote_path)
                detail = "file"
        except TransferError as e:
            logger.warning("Failed to %s %s: %s", action.value, entry.path, e)
            return OperationResult(
                action, entry.path, OperationStatus.TRANSFER_ERROR, error=str(e)
            )

        logger.debug("%s %s -> %s", action.value, entry.path, remote_path)
        return OperationResult(
            action, entry.path, OperationStatus.SUCCESS, detail=detail
        )

    def delete(self, entry: Entry) -> OperationResult:
        """Delete a remote entry.

        File deletion is always tried first; directory removal is only tried
        when the store rejects the file deletion. The entry's own
        ``is_directory`` flag is not consulted.

        Args:
            entry: Remote entry to delete

        Returns:
            OperationResult whose ``detail`` says whether a file or a
            directory was removed
        """
        try:
            self.store.delete_file(entry.path)
        except TransferError as file_error:
            logger.debug("File delete failed for %s: %s", entry.path, file_error)
        else:
            logger.debug("File %s removed from server", entry.path)
            return OperationResult(
                SyncAction.DELETE, entry.path, OperationStatus.SUCCESS, detail="file"
            )

        try:
            self.store.remove_directory(entry.path)
        except TransferError as e:
            logger.warning("Could not remove %s from server: %s", entry.path, e)
            return OperationResult(
                SyncAction.DELETE,
                entry.path,
                OperationStatus.TRANSFER_ERROR,
                error=str(e),
            )

        logger.debug("Directory %s removed from server", entry.path)
        return OperationResult(
            SyncAction.DELETE, entry.path, OperationStatus.SUCCESS, detail="directory"
        )

    def download(self, entry: Entry, local_path: Path) -> OperationResult:
        """Download a remote entry to ``local_path``.

        Directory entries create the local directory; files are transferred
        in full after their parent directory is created.
        """
        directory = local_path if entry.is_directory else local_path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Failed to create %s: %s", local_path, e)
            return OperationResult(
                SyncAction.DOWNLOAD,
                entry.path,
                OperationStatus.TRANSFER_ERROR,
                error=str(e),
            )

        if entry.is_directory:
            logger.debug("Created local directory %s", local_path)
            return OperationResult(
                SyncAction.DOWNLOAD,
                entry.path,
                OperationStatus.SUCCESS,
                detail="directory",
            )

        try:
            self.store.download(entry.path, local_path)
        except TransferError as e:
            logger.warning("Failed to download %s: %s", entry.path, e)
            return OperationResult(
                SyncAction.DOWNLOAD,
                entry.path,
                OperationStatus.TRANSFER_ERROR,
                error=str(e),
            )

        logger.debug("Downloaded %s -> %s", entry.path, local_path)
        return OperationResult(
            SyncAction.DOWNLOAD, entry.path, OperationStatus.SUCCESS, detail="file"
        )

    def remote_modified_time(self, remote_path: str) -> Optional[float]:
        """Read the modification time of a remote entry, None if unknown."""
        return self.store.get_modified_time(remote_path)
