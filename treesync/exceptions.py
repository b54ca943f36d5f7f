"""Exceptions raised by treesync."""

from typing import Optional


class TreeSyncError(Exception):
    """Base exception for all treesync errors."""


class ConfigError(TreeSyncError):
    """Raised when the sync configuration is missing or invalid."""


class ListingError(TreeSyncError):
    """Raised when a directory tree root cannot be enumerated.

    This is fatal: without both trees no plan can be computed.
    """

    def __init__(self, root: str, reason: str = ""):
        self.root = root
        self.reason = reason
        message = f"Unable to list directory tree: {root}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class MappingError(TreeSyncError, ValueError):
    """Raised when a path does not live under the expected root."""

    def __init__(self, path: str, root: str):
        self.path = path
        self.root = root
        super().__init__(f"Path {path!r} is not below root {root!r}")


class TransferError(TreeSyncError):
    """Raised by a remote store when a single-entry operation fails.

    Transfer errors are per-entry and never abort a run.
    """

    def __init__(self, path: str, reason: str = "", code: Optional[str] = None):
        self.path = path
        self.reason = reason
        self.code = code
        message = f"Operation failed for {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RemoteConnectionError(TreeSyncError, ConnectionError):
    """Raised when the connection to the remote store is lost or refused."""
