"""Remote stores the sync engine can mirror onto."""

from .base import RemoteStore
from .ftp import FTPStore
from .local import LocalDirectoryStore

__all__ = ["RemoteStore", "FTPStore", "LocalDirectoryStore"]
