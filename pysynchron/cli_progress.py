"""CLI progress display for sync operations.

This module provides Rich-based progress displays fed by the progress
events of the sync engine and the task list executor.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from .sync.engine import SyncEngine
from .sync.executor import TaskProgressEvent
from .sync.options import SyncOptions
from .sync.progress import SyncProgressEvent
from .sync.result import SyncResult
from .utils import format_size


class SyncProgressDisplay:
    """Rich-based progress display for sync operations.

    The bar tracks bytes; the side column shows processed/total
    operations and the entry currently being applied.
    """

    def __init__(self) -> None:
        """Initialize the progress display."""
        self._progress: Optional[Progress] = None
        self._sync_task: Optional[TaskID] = None

    def _format_counts(self, event: SyncProgressEvent) -> str:
        """Format progress as "2/5 files, 1.5 MB/10.0 MB"."""
        files_str = f"{event.processed_files}/{event.total_files} files"
        size_str = f"{format_size(event.processed_bytes)}/{format_size(event.total_bytes)}"
        return f"{files_str}, {size_str}"

    def handle_event(self, event: SyncProgressEvent) -> None:
        """Update the display from an engine progress event."""
        if self._progress is None or self._sync_task is None:
            return

        self._progress.update(
            self._sync_task,
            description=f"{event.action.value.capitalize()}: {event.current_file}",
            total=event.total_bytes or None,
            completed=event.processed_bytes,
            counts=self._format_counts(event),
        )

    def handle_task_event(self, event: TaskProgressEvent) -> None:
        """Update the display from a task list progress event."""
        if self._progress is None or self._sync_task is None:
            return

        if event.file_event is not None:
            self.handle_event(event.file_event)
            self._progress.update(
                self._sync_task,
                description=f"[{event.task_name}] {event.file_event.current_file}",
            )
        elif event.result is not None:
            self._progress.update(
                self._sync_task,
                description=f"Task {event.current_task}/{event.total_tasks} done: "
                f"{event.task_name}",
            )

    def __enter__(self) -> "SyncProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("[cyan]{task.fields[counts]}"),
            TransferSpeedColumn(),
            TimeElapsedColumn(),
            refresh_per_second=4,
        )
        self._progress.__enter__()

        self._sync_task = self._progress.add_task(
            "Preparing sync...",
            total=None,
            counts="0/0 files, 0 B/0 B",
        )

        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            if self._sync_task is not None:
                self._progress.update(self._sync_task, description="Sync complete")
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._sync_task = None


def run_sync_with_progress(
    engine: SyncEngine,
    options: SyncOptions,
    show_progress: bool = True,
    cancel_event=None,
) -> SyncResult:
    """Run sync with a Rich progress display.

    Args:
        engine: SyncEngine instance
        options: Options for the run
        show_progress: Show the progress bar (disabled for dry runs and
            quiet output)
        cancel_event: Optional cancellation signal

    Returns:
        SyncResult of the run
    """
    # For dry-run, don't show progress bar (just text output)
    if options.dry_run or not show_progress:
        return engine.sync(options, cancel_event=cancel_event)

    with SyncProgressDisplay() as display:
        return engine.sync(
            options,
            progress_callback=display.handle_event,
            cancel_event=cancel_event,
        )
