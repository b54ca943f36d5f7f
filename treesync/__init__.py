"""treesync - keep a remote directory tree in sync with a local one."""

from .config import SyncConfig, build_config, load_config_file
from .exceptions import (
    ConfigError,
    ListingError,
    MappingError,
    RemoteConnectionError,
    TransferError,
    TreeSyncError,
)
from .stores import FTPStore, LocalDirectoryStore, RemoteStore
from .sync import SyncEngine, SyncPlan, SyncResult

__all__ = [
    "SyncConfig",
    "build_config",
    "load_config_file",
    "ConfigError",
    "ListingError",
    "MappingError",
    "RemoteConnectionError",
    "TransferError",
    "TreeSyncError",
    "FTPStore",
    "LocalDirectoryStore",
    "RemoteStore",
    "SyncEngine",
    "SyncPlan",
    "SyncResult",
]
