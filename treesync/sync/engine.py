"""Core sync engine for executing sync operations."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from ..exceptions import ListingError, TransferError
from ..output import OutputFormatter
from ..utils import normalize_remote_path
from .comparator import Reconciler, SyncPlan
from .mapper import PathMapper
from .operations import OperationResult, SyncAction, SyncOperations
from .scanner import DirectoryScanner, Entry, LocalFilesystem, Tree, local_path_str

if TYPE_CHECKING:
    from ..config import SyncConfig
    from ..stores.base import RemoteStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of a sync, backup or restore run."""

    plan: Optional[SyncPlan] = None
    """Plan that was computed (None for restores)"""

    results: list[OperationResult] = field(default_factory=list)
    """Per-entry results in execution order"""

    dry_run: bool = False
    """Whether the plan was only computed"""

    def _count(self, action: SyncAction) -> int:
        return sum(1 for r in self.results if r.action == action and r.ok)

    @property
    def uploaded(self) -> int:
        return self._count(SyncAction.UPLOAD)

    @property
    def deleted(self) -> int:
        return self._count(SyncAction.DELETE)

    @property
    def updated(self) -> int:
        return self._count(SyncAction.UPDATE)

    @property
    def downloaded(self) -> int:
        return self._count(SyncAction.DOWNLOAD)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failures(self) -> list[OperationResult]:
        return [r for r in self.results if not r.ok]

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def planned(self) -> int:
        """Number of entries the run set out to process."""
        if self.plan is not None:
            return self.plan.total
        return len(self.results)

    @property
    def ok(self) -> bool:
        """False when there was work to do and none of it succeeded."""
        if self.dry_run or self.planned == 0:
            return True
        return self.succeeded > 0

    def to_dict(self) -> dict:
        """Convert result to dictionary for JSON output."""
        return {
            "dry_run": self.dry_run,
            "plan": self.plan.to_dict() if self.plan is not None else None,
            "uploaded": self.uploaded,
            "deleted": self.deleted,
            "updated": self.updated,
            "downloaded": self.downloaded,
            "failed": self.failed,
            "ok": self.ok,
            "failures": [r.to_dict() for r in self.failures],
        }


class SyncEngine:
    """Core sync engine that mirrors a local tree onto a remote store.

    All remote calls are made one after another on the single store
    connection; nothing runs concurrently.
    """

    def __init__(
        self,
        store: "RemoteStore",
        output: Optional[OutputFormatter] = None,
        local_fs: Optional[LocalFilesystem] = None,
    ):
        """Initialize sync engine.

        Args:
            store: Connected remote store
            output: Output formatter for displaying progress/status
            local_fs: Local filesystem capability (defaults to LocalFilesystem())
        """
        self.store = store
        self.output = output or OutputFormatter()
        self.operations = SyncOperations(store)
        self.scanner = DirectoryScanner(store, local_fs)

    # =========================================================================
    # Public operations
    # =========================================================================

    def sync(self, config: "SyncConfig", dry_run: bool = False) -> SyncResult:
        """Bring the remote directory in line with the local directory.

        Runs the three reconciliation passes (new, orphaned, stale) in order,
        updating the remote tree between passes.

        Args:
            config: Sync configuration
            dry_run: If True, only compute and display the plan

        Returns:
            SyncResult with the plan and per-entry results

        Raises:
            ListingError: If either tree cannot be listed
            MappingError: If a path falls outside its root
            RemoteConnectionError: If the connection to the store is lost

        Examples:
            >>> engine = SyncEngine(store)
            >>> result = engine.sync(config, dry_run=True)
            >>> print(f"Would upload {len(result.plan.to_upload)} entries")
        """
        start_time = time.time()
        local_root = self._local_root(config)
        remote_root = self._prepare_remote_root(config, dry_run=dry_run)

        if not self.output.quiet:
            self.output.info(f"Syncing: {local_root} -> {remote_root}")
            if dry_run:
                self.output.info("Dry run: No changes will be made")
            self.output.print("")

        mapper = PathMapper(local_root, remote_root)
        reconciler = Reconciler(mapper)

        local = self.scanner.scan_local(local_root)
        if dry_run and not self.store.exists(remote_root):
            remote = Tree(remote_root)
        else:
            remote = self.scanner.scan_remote(remote_root)
        self._report_empty(len(local), len(remote))

        if dry_run:
            plan = reconciler.plan(local, remote)
            self._display_sync_plan(plan)
            return SyncResult(plan=plan, dry_run=True)

        plan = SyncPlan()
        result = SyncResult(plan=plan)

        # Pass 1: transfer new entries, then fold them into the remote tree
        plan.to_upload = reconciler.find_new(local, remote)
        uploaded = self._execute(
            plan.to_upload,
            "Transferring new files...",
            lambda e: self.operations.upload(e, mapper.to_remote(e.path)),
            result,
        )
        reconciler.fold_uploaded(
            remote,
            (
                e.with_modified_time(
                    None
                    if e.is_directory
                    else self.operations.remote_modified_time(mapper.to_remote(e.path))
                )
                for e in uploaded
            ),
        )

        # Pass 2: remove entries deleted locally, deepest paths first
        plan.to_delete = reconciler.find_orphaned(local, remote)
        deleted = self._execute(
            sorted(plan.to_delete, key=lambda e: e.path.count("/"), reverse=True),
            "Removing deleted files...",
            self.operations.delete,
            result,
        )
        for entry in deleted:
            remote.discard(entry.path)

        # Pass 3: re-send local files newer than their remote copy
        self._refresh_local_times(local)
        plan.to_update = reconciler.find_stale(local, remote, exclude=plan.to_upload)
        self._execute(
            plan.to_update,
            "Copying updated files...",
            lambda e: self.operations.upload(
                e, mapper.to_remote(e.path), action=SyncAction.UPDATE
            ),
            result,
        )

        logger.debug("Sync took %.2fs", time.time() - start_time)
        if not self.output.quiet:
            self._display_summary(result, "Sync")
        return result

    def backup(self, config: "SyncConfig") -> SyncResult:
        """Upload every local entry, whether or not it exists remotely.

        Existing remote directories are reused; files are overwritten.
        """
        local_root = self._local_root(config)
        remote_root = self._prepare_remote_root(config)
        mapper = PathMapper(local_root, remote_root)

        local = self.scanner.scan_local(local_root)
        self._report_empty(len(local), None)

        plan = SyncPlan(to_upload=list(local))
        result = SyncResult(plan=plan)
        self._execute(
            plan.to_upload,
            "Backing up files...",
            lambda e: self.operations.upload(
                e, mapper.to_remote(e.path), ensure_directories=True
            ),
            result,
        )

        if not self.output.quiet:
            self._display_summary(result, "Backup")
        return result

    def restore(self, config: "SyncConfig") -> SyncResult:
        """Download every remote entry into the local directory.

        The local directory is created if needed. Existing local files are
        overwritten.
        """
        local_dir = Path(config.local_directory).absolute()
        try:
            local_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ListingError(str(local_dir), str(e)) from e

        remote_root = normalize_remote_path(config.remote_directory)
        if not self.store.exists(remote_root):
            raise ListingError(remote_root, "remote directory does not exist")
        remote_root = self._change_to_remote_root(remote_root)

        mapper = PathMapper(local_path_str(local_dir), remote_root)
        remote = self.scanner.scan_remote(remote_root, with_timestamps=False)
        self._report_empty(None, len(remote))

        result = SyncResult()
        self._execute(
            list(remote),
            "Restoring files...",
            lambda e: self.operations.download(e, Path(mapper.to_local(e.path))),
            result,
        )

        if not self.output.quiet:
            self._display_summary(result, "Restore")
        return result

    # =========================================================================
    # Roots
    # =========================================================================

    def _local_root(self, config: "SyncConfig") -> str:
        local_dir = Path(config.local_directory).absolute()
        if not local_dir.exists():
            raise ListingError(str(local_dir), "directory does not exist")
        if not local_dir.is_dir():
            raise ListingError(str(local_dir), "not a directory")
        return local_path_str(local_dir)

    def _prepare_remote_root(self, config: "SyncConfig", dry_run: bool = False) -> str:
        """Make sure the remote root exists and return its absolute path."""
        remote_root = normalize_remote_path(config.remote_directory)

        if not self.store.exists(remote_root):
            if dry_run:
                logger.debug("Remote directory %s does not exist yet", remote_root)
                return remote_root
            if not config.create_remote:
                raise ListingError(remote_root, "remote directory does not exist")

            logger.debug("Creating remote directory %s", remote_root)
            try:
                self.store.make_directories(remote_root)
            except TransferError as e:
                raise ListingError(remote_root, f"could not be created: {e}") from e
            if not self.store.exists(remote_root):
                raise ListingError(remote_root, "could not be created")

        return self._change_to_remote_root(remote_root)

    def _change_to_remote_root(self, remote_root: str) -> str:
        try:
            self.store.change_working_directory(remote_root)
        except TransferError as e:
            raise ListingError(remote_root, str(e)) from e
        return normalize_remote_path(self.store.current_working_directory())

    # =========================================================================
    # Execution
    # =========================================================================

    def _refresh_local_times(self, local: Tree) -> None:
        """Re-read the modification time of every local file.

        Entries that are no longer regular files lose their time and are left
        out of Pass 3.
        """
        local_fs = self.scanner.local_fs
        for entry in list(local):
            if entry.is_directory:
                continue
            try:
                if local_fs.is_file(entry.path):
                    modified_time = local_fs.modified_time(entry.path)
                else:
                    modified_time = None
            except OSError as e:
                logger.debug("Cannot stat %s: %s", entry.path, e)
                modified_time = None
            if modified_time != entry.modified_time:
                local.replace(entry.with_modified_time(modified_time))

    def _execute(
        self,
        entries: list[Entry],
        description: str,
        operation: Callable[[Entry], OperationResult],
        result: SyncResult,
    ) -> list[Entry]:
        """Apply an operation to each entry, continuing past failures.

        Each entry is attempted once. Failed entries are reported and skipped.

        Returns:
            Entries whose operation succeeded
        """
        succeeded: list[Entry] = []
        if not entries:
            return succeeded

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            transient=True,
            disable=self.output.quiet,
        ) as progress:
            task = progress.add_task(description, total=len(entries))

            for entry in entries:
                op_result = operation(entry)
                result.results.append(op_result)
                if op_result.ok:
                    succeeded.append(entry)
                elif not self.output.quiet:
                    self.output.error(f"Error syncing {entry.path}: {op_result.error}")
                progress.update(task, advance=1)

        logger.debug(
            "%s %d/%d succeeded", description, len(succeeded), len(entries)
        )
        return succeeded

    # =========================================================================
    # Display
    # =========================================================================

    def _report_empty(self, local_count: Optional[int], remote_count: Optional[int]):
        if self.output.quiet:
            return
        if remote_count == 0:
            self.output.info("*** Remote server directory empty ***")
        if local_count == 0:
            self.output.info("*** Local directory empty ***")

    def _display_sync_plan(self, plan: SyncPlan) -> None:
        """Display sync plan to user."""
        if self.output.quiet:
            return

        self.output.info("Sync plan:")
        if plan.to_upload:
            self.output.info(f"  ↑ Upload: {len(plan.to_upload)} entry(ies)")
            for entry in plan.to_upload:
                self.output.info(f"      {entry.path}")
        if plan.to_delete:
            self.output.info(f"  ✗ Delete remote: {len(plan.to_delete)} entry(ies)")
            for entry in plan.to_delete:
                self.output.info(f"      {entry.path}")
        if plan.to_update:
            self.output.info(f"  ↻ Update: {len(plan.to_update)} file(s)")
            for entry in plan.to_update:
                self.output.info(f"      {entry.path}")
        if plan.is_empty:
            self.output.info("  No changes needed - everything is in sync!")
        self.output.print("")

    def _display_summary(self, result: SyncResult, title: str) -> None:
        """Display run summary."""
        self.output.print("")
        if result.ok:
            self.output.success(f"{title} complete!")
        else:
            self.output.error(f"{title} failed: no operations succeeded")

        plan = result.plan
        if plan is not None:
            if plan.to_upload:
                self.output.info(
                    f"  New files transferred: {result.uploaded}/{len(plan.to_upload)}"
                )
            if plan.to_delete:
                self.output.info(
                    f"  Removed from server: {result.deleted}/{len(plan.to_delete)}"
                )
            if plan.to_update:
                self.output.info(
                    f"  Updated on server: {result.updated}/{len(plan.to_update)}"
                )
            if plan.is_empty:
                self.output.info("No changes needed - everything is in sync!")
        elif result.results:
            self.output.info(
                f"  Restored: {result.downloaded}/{len(result.results)}"
            )

        if result.failed:
            self.output.warning(f"{result.failed} operation(s) failed")
