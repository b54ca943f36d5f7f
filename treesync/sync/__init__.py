"""Sync engine for treesync - three-pass reconciliation of two trees."""

from .comparator import Reconciler, SyncPlan
from .engine import SyncEngine, SyncResult
from .mapper import PathMapper
from .operations import OperationResult, OperationStatus, SyncAction, SyncOperations
from .scanner import DirectoryScanner, Entry, LocalFilesystem, Tree

__all__ = [
    "SyncEngine",
    "SyncResult",
    "SyncPlan",
    "Reconciler",
    "PathMapper",
    "SyncOperations",
    "SyncAction",
    "OperationResult",
    "OperationStatus",
    "DirectoryScanner",
    "Entry",
    "LocalFilesystem",
    "Tree",
]
