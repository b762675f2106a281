"""Core sync engine: builds previews and applies them."""

import logging
import threading
import time
from itertools import chain
from pathlib import Path
from typing import Optional

from ..exceptions import SyncCancelledError
from ..utils import format_size
from .comparator import FileComparator, SyncAction, SyncDecision, SyncPreview
from .filter import FileFilter
from .ignore_cache import GitIgnoreRuleCache
from .operations import SyncOperations
from .options import SyncOptions
from .progress import ProgressCallback, SyncProgressEvent
from .result import FileOperationResult, SyncResult
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


class SyncEngine:
    """Core sync engine that orchestrates one-way directory synchronization.

    A run enumerates the source tree, filters it, compares every entry with
    the target and applies the resulting preview: all copies, then all
    moves, then all deletions.

    Examples:
        >>> engine = SyncEngine()
        >>> options = SyncOptions(source_path="/data", target_path="/backup")
        >>> preview = engine.preview(options)
        >>> print(f"Would copy {len(preview.to_copy)} entries")
        >>> result = engine.sync(options)
    """

    def __init__(
        self,
        file_filter: Optional[FileFilter] = None,
        rule_cache: Optional[GitIgnoreRuleCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize sync engine.

        Args:
            file_filter: Filter to use for every run; built from the run's
                options when omitted
            rule_cache: Shared gitignore rule cache for filters built here
            logger: Logger for diagnostics (defaults to the module logger)
        """
        self.file_filter = file_filter
        self.rule_cache = rule_cache
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def _build_filter(self, options: SyncOptions) -> FileFilter:
        if self.file_filter is not None:
            return self.file_filter
        return FileFilter.from_options(options, self.rule_cache, self.logger)

    def preview(
        self,
        options: SyncOptions,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncPreview:
        """Compute the pending actions without touching the filesystem.

        Args:
            options: Sync options
            cancel_event: Stops enumeration and comparison early when set

        Returns:
            SyncPreview with copy, move, delete and skip lists
        """
        file_filter = self._build_filter(options)
        try:
            return self._preview(options, file_filter, cancel_event)
        finally:
            if file_filter is not self.file_filter:
                file_filter.close()

    def _preview(
        self,
        options: SyncOptions,
        file_filter: FileFilter,
        cancel_event: Optional[threading.Event],
    ) -> SyncPreview:
        scanner = DirectoryScanner(
            recursive=options.include_subdirectories,
            cancel_event=cancel_event,
            logger=self.logger,
        )
        preview = SyncPreview()

        source_entries = scanner.scan(Path(options.source_path))
        self.logger.debug(f"Found {len(source_entries)} source entries")
        target_root = Path(options.target_path)
        target_entries = scanner.scan(target_root) if target_root.is_dir() else []
        comparator = FileComparator(options, self.logger, target_entries)

        for entry in source_entries:
            if cancel_event is not None and cancel_event.is_set():
                return preview
            if not file_filter.is_match(entry.relative_path, entry.is_dir):
                continue
            try:
                decision = comparator.decide(entry)
            except OSError as e:
                self.logger.warning(f"Cannot compare {entry.relative_path}: {e}")
                continue
            if decision is None:
                continue
            self.logger.debug(
                f"{decision.action.value}: {decision.relative_path} ({decision.reason})"
            )
            preview.add(decision)

        if options.mode.deletes_extraneous:
            source_paths = {e.relative_path.casefold() for e in source_entries}
            for entry in target_entries:
                if cancel_event is not None and cancel_event.is_set():
                    return preview
                if entry.relative_path.casefold() in source_paths:
                    continue
                if not file_filter.is_match(entry.relative_path, entry.is_dir):
                    continue
                self.logger.debug(f"delete: {entry.relative_path} (not in source)")
                preview.add(
                    SyncDecision(
                        action=SyncAction.DELETE,
                        reason="Not present in source",
                        entry=entry,
                        relative_path=entry.relative_path,
                    )
                )

        self.logger.info(f"Preview: {preview.summary()}")
        return preview

    def sync(
        self,
        options: SyncOptions,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncResult:
        """Run one sync pass.

        Never raises: configuration problems, per-file failures and
        unexpected errors are all reported through the returned result.

        Args:
            options: Sync options
            progress_callback: Called after every file operation
            cancel_event: Cooperative cancellation signal

        Returns:
            SyncResult describing the run
        """
        result = SyncResult()
        try:
            errors = options.validate()
            if errors:
                for error in errors:
                    self.logger.error(f"Invalid options: {error}")
                result.errors.extend(errors)
                result.success = False
                return result

            self.logger.info(
                f"Starting sync: {options.source_path} -> {options.target_path} "
                f"(mode: {options.mode.value})"
            )
            if options.dry_run:
                self.logger.info("[DRY RUN] No changes will be made")
            else:
                Path(options.target_path).mkdir(parents=True, exist_ok=True)

            preview = self.preview(options, cancel_event)
            result.files_skipped = len(preview.to_skip)
            if cancel_event is not None and cancel_event.is_set():
                self._mark_cancelled(result)
            else:
                self._apply_preview(
                    preview, options, result, progress_callback, cancel_event
                )
            result.success = result.files_failed == 0 and not result.cancelled
        except Exception as e:
            self.logger.exception(f"Sync failed: {e}")
            result.errors.append(str(e))
            result.success = False
        finally:
            result.finalize()

        self.logger.info(
            f"Sync finished in {result.duration:.2f}s: {result.summary()}, "
            f"{format_size(result.bytes_transferred)} transferred"
        )
        return result

    def _apply_preview(
        self,
        preview: SyncPreview,
        options: SyncOptions,
        result: SyncResult,
        progress_callback: Optional[ProgressCallback],
        cancel_event: Optional[threading.Event],
    ) -> None:
        operations = SyncOperations(options, cancel_event, self.logger)
        total_files = preview.total_files
        processed = 0

        for decision in chain(preview.to_copy, preview.to_move, preview.to_delete):
            if cancel_event is not None and cancel_event.is_set():
                self._mark_cancelled(result)
                return
            try:
                operation = self._apply_decision(decision, options, operations)
            except SyncCancelledError:
                self._mark_cancelled(result)
                return

            result.record(operation)
            processed += 1
            if progress_callback is not None:
                progress_callback(
                    SyncProgressEvent(
                        current_file=decision.relative_path,
                        total_files=total_files,
                        processed_files=processed,
                        total_bytes=preview.total_bytes,
                        processed_bytes=result.bytes_transferred,
                        action=decision.action,
                    )
                )

    def _mark_cancelled(self, result: SyncResult) -> None:
        self.logger.warning("Sync cancelled, returning partial results")
        result.cancelled = True
        result.errors.append("Sync cancelled")

    def _apply_decision(
        self,
        decision: SyncDecision,
        options: SyncOptions,
        operations: SyncOperations,
    ) -> FileOperationResult:
        """Apply one decision and convert failures into a result entry."""
        entry = decision.entry
        if decision.action == SyncAction.DELETE:
            target = entry.path
        else:
            target = Path(options.target_path) / decision.destination

        started = time.monotonic()
        operation = FileOperationResult(
            source_path=str(entry.path),
            target_path=str(target),
            action=decision.action,
            success=True,
        )

        if options.dry_run:
            self.logger.info(f"[DRY RUN] Would {decision.action.value}: {decision.relative_path}")
            return operation

        try:
            if decision.action == SyncAction.COPY:
                if entry.is_dir:
                    operations.create_directory(target)
                else:
                    operation.bytes_transferred = operations.copy_file(entry.path, target)
            elif decision.action == SyncAction.MOVE:
                operations.move(entry.path, target, entry.is_dir)
                operation.bytes_transferred = entry.size
            elif decision.action == SyncAction.DELETE:
                operations.delete(target)
        except SyncCancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to {decision.action.value} {decision.relative_path}: {e}")
            operation.success = False
            operation.error_message = str(e)
            operation.bytes_transferred = 0

        operation.duration = time.monotonic() - started
        return operation
