"""Reconciliation of a local tree against a remote tree.

The reconciler works in three ordered passes:

1. *new* local entries, absent from the remote tree, are uploaded;
2. *orphaned* remote entries, absent from the local tree, are deleted;
3. *stale* local files, newer than their remote copy, are uploaded again.

Pass 2 must see the remote tree with the Pass 1 uploads folded in, and Pass 3
must see the remote tree after Pass 2, so callers run the passes one at a time
and update the remote tree in between (see :class:`SyncEngine`).
:meth:`Reconciler.plan` runs all three passes at once assuming every upload
succeeds, which is what a dry run shows.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .mapper import PathMapper
from .scanner import Entry, Tree

logger = logging.getLogger(__name__)


@dataclass
class SyncPlan:
    """The operations needed to bring the remote tree in line."""

    to_upload: list[Entry] = field(default_factory=list)
    """New local entries (local paths)"""

    to_delete: list[Entry] = field(default_factory=list)
    """Orphaned remote entries (remote paths)"""

    to_update: list[Entry] = field(default_factory=list)
    """Local files whose remote copy is out of date (local paths)"""

    @property
    def total(self) -> int:
        return len(self.to_upload) + len(self.to_delete) + len(self.to_update)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def to_dict(self) -> dict:
        """Convert plan to dictionary for JSON output."""
        return {
            "to_upload": [e.path for e in self.to_upload],
            "to_delete": [e.path for e in self.to_delete],
            "to_update": [e.path for e in self.to_update],
        }


class Reconciler:
    """Computes the three reconciliation passes for a pair of trees."""

    def __init__(self, mapper: PathMapper):
        """Initialize reconciler.

        Args:
            mapper: Translator between the local and remote roots
        """
        self.mapper = mapper

    def find_new(self, local: Tree, remote: Tree) -> list[Entry]:
        """Pass 1: local entries with no remote counterpart.

        Presence is the only test; files and directories are treated alike.
        """
        new_entries = [
            entry for entry in local if self.mapper.to_remote(entry.path) not in remote
        ]
        logger.debug("Pass 1: %d new local entries", len(new_entries))
        return new_entries

    def find_orphaned(self, local: Tree, remote: Tree) -> list[Entry]:
        """Pass 2: remote entries with no local counterpart."""
        orphaned = [
            entry for entry in remote if self.mapper.to_local(entry.path) not in local
        ]
        logger.debug("Pass 2: %d orphaned remote entries", len(orphaned))
        return orphaned

    def find_stale(
        self, local: Tree, remote: Tree, exclude: Iterable[Entry] = ()
    ) -> list[Entry]:
        """Pass 3: local files newer than their remote copy.

        Remote entries without a known modification time are left out of the
        comparison map, so their local counterparts always count as stale.

        Args:
            local: Local tree
            remote: Remote tree after Pass 1 and Pass 2 were applied
            exclude: Entries already planned for upload in Pass 1

        Returns:
            Local file entries that need to be uploaded again
        """
        remote_times = {
            entry.path: entry.modified_time
            for entry in remote
            if entry.modified_time is not None
        }
        excluded = {entry.path for entry in exclude}

        stale: list[Entry] = []
        for entry in local:
            if entry.is_directory or entry.path in excluded:
                continue
            if entry.modified_time is None:
                logger.debug("No local modification time for %s", entry.path)
                continue

            remote_time = remote_times.get(self.mapper.to_remote(entry.path))
            if remote_time is None or entry.modified_time > remote_time:
                logger.debug("Remote copy of %s is out of date", entry.path)
                stale.append(entry)

        logger.debug("Pass 3: %d stale local files", len(stale))
        return stale

    def fold_uploaded(self, remote: Tree, entries: Iterable[Entry]) -> None:
        """Add uploaded local entries to the remote tree in remote form."""
        for entry in entries:
            remote.append(
                Entry(
                    path=self.mapper.to_remote(entry.path),
                    is_directory=entry.is_directory,
                    modified_time=entry.modified_time,
                )
            )

    def plan(self, local: Tree, remote: Tree) -> SyncPlan:
        """Compute a complete plan without touching the remote store.

        Pass 1 uploads are assumed to succeed. They are folded into a copy of
        the remote tree without timestamps; they are excluded from Pass 3.

        Args:
            local: Local tree
            remote: Remote tree (left unchanged)

        Returns:
            SyncPlan with all three lists
        """
        to_upload = self.find_new(local, remote)

        updated_remote = remote.copy()
        self.fold_uploaded(
            updated_remote, (e.with_modified_time(None) for e in to_upload)
        )

        to_delete = self.find_orphaned(local, updated_remote)
        for entry in to_delete:
            updated_remote.discard(entry.path)

        to_update = self.find_stale(local, updated_remote, exclude=to_upload)
        return SyncPlan(to_upload=to_upload, to_delete=to_delete, to_update=to_update)
