"""Tests for the rich progress display."""

from unittest.mock import Mock

from pysynchron.cli_progress import SyncProgressDisplay, run_sync_with_progress
from pysynchron.sync.comparator import SyncAction
from pysynchron.sync.executor import TaskProgressEvent
from pysynchron.sync.options import SyncOptions
from pysynchron.sync.progress import SyncProgressEvent
from pysynchron.sync.result import SyncResult


def make_event(processed=1, total=2):
    return SyncProgressEvent(
        current_file="docs/a.txt",
        total_files=total,
        processed_files=processed,
        total_bytes=2048,
        processed_bytes=1024 * processed,
        action=SyncAction.COPY,
    )


class TestSyncProgressDisplay:
    """Tests for SyncProgressDisplay."""

    def test_events_outside_context_are_ignored(self):
        display = SyncProgressDisplay()
        display.handle_event(make_event())
        display.handle_task_event(TaskProgressEvent("t", file_event=make_event()))

    def test_handle_event_updates_task(self):
        with SyncProgressDisplay() as display:
            display.handle_event(make_event())
            task = display._progress.tasks[0]
            assert task.description == "Copy: docs/a.txt"
            assert task.completed == 1024
            assert task.total == 2048
            assert task.fields["counts"] == "1/2 files, 1.0 KB/2.0 KB"
        assert display._progress is None

    def test_handle_task_events(self):
        with SyncProgressDisplay() as display:
            display.handle_task_event(TaskProgressEvent("docs", file_event=make_event()))
            assert display._progress.tasks[0].description == "[docs] docs/a.txt"

            display.handle_task_event(
                TaskProgressEvent("docs", 1, 3, result=Mock())
            )
            assert display._progress.tasks[0].description == "Task 1/3 done: docs"


class TestRunSyncWithProgress:
    """Tests for run_sync_with_progress."""

    def test_dry_run_has_no_progress_callback(self):
        engine = Mock()
        engine.sync.return_value = SyncResult(success=True)
        options = SyncOptions(dry_run=True)

        result = run_sync_with_progress(engine, options)

        assert result.success
        engine.sync.assert_called_once_with(options, cancel_event=None)

    def test_progress_callback_is_wired(self):
        engine = Mock()
        engine.sync.return_value = SyncResult(success=True)

        run_sync_with_progress(engine, SyncOptions())

        callback = engine.sync.call_args.kwargs["progress_callback"]
        assert callback is not None
