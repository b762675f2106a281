"""Execution of task lists, sequentially or with bounded parallelism."""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..utils import format_size
from .engine import SyncEngine
from .filter import FileFilter
from .ignore_cache import GitIgnoreRuleCache
from .progress import SyncProgressEvent
from .tasks import SyncTask, TaskListConfig, TaskListResult, TaskResult

logger = logging.getLogger(__name__)

EngineFactory = Callable[[FileFilter, logging.Logger], SyncEngine]


@dataclass(frozen=True)
class TaskProgressEvent:
    """Progress of a task list run.

    Per-file events carry ``file_event``; the event emitted when a task
    finishes carries ``result``.
    """

    task_name: str
    current_task: int = 0
    total_tasks: int = 0
    result: Optional[TaskResult] = None
    file_event: Optional[SyncProgressEvent] = None

    @property
    def is_task_complete(self) -> bool:
        return self.result is not None


TaskProgressCallback = Callable[[TaskProgressEvent], None]


def _default_engine_factory(file_filter: FileFilter, logger: logging.Logger) -> SyncEngine:
    return SyncEngine(file_filter=file_filter, logger=logger)


class TaskListExecutor:
    """Runs the enabled tasks of a task list.

    With ``max_parallel_tasks`` of 1 tasks run in list order and
    ``stop_on_error`` stops at the first failed task. With more, at most
    that many tasks run at once; after a failure under ``stop_on_error``
    every task that has not started yet is recorded as skipped while
    running tasks finish.

    Tasks whose source or target path is missing are skipped, which never
    triggers ``stop_on_error``.

    Examples:
        >>> executor = TaskListExecutor()
        >>> result = executor.execute_all(load_task_list("tasks.json"))
        >>> print(f"{result.tasks_completed} tasks completed")
    """

    def __init__(
        self,
        engine_factory: Optional[EngineFactory] = None,
        rule_cache: Optional[GitIgnoreRuleCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the executor.

        Args:
            engine_factory: Builds the engine for a task from its filter
            rule_cache: Gitignore rule cache shared by all tasks
            logger: Logger for diagnostics (defaults to the module logger)
        """
        self.engine_factory = engine_factory or _default_engine_factory
        self.rule_cache = rule_cache
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def execute_all(
        self,
        config: TaskListConfig,
        progress_callback: Optional[TaskProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TaskListResult:
        """Run every enabled task. Never raises.

        In parallel mode ``progress_callback`` is called from worker
        threads.
        """
        result = TaskListResult()
        started = time.monotonic()
        self.logger.info(f"Starting task list execution: {config}")

        tasks = config.enabled_tasks
        if not tasks:
            self.logger.warning("No enabled tasks to execute")
        elif config.max_parallel_tasks > 1:
            self._execute_parallel(config, tasks, result, progress_callback, cancel_event)
        else:
            self._execute_sequential(config, tasks, result, progress_callback, cancel_event)

        result.success = result.tasks_failed == 0
        result.end_time = datetime.now()
        result.total_duration = time.monotonic() - started

        self.logger.info(
            f"Task list completed: {result.tasks_completed} succeeded, "
            f"{result.tasks_failed} failed, {result.tasks_skipped} skipped"
        )
        self.logger.info(
            f"Total duration: {result.total_duration:.2f}s, "
            f"Total bytes: {format_size(result.total_bytes_transferred)}"
        )
        return result

    def _execute_sequential(
        self,
        config: TaskListConfig,
        tasks: list[SyncTask],
        result: TaskListResult,
        progress_callback: Optional[TaskProgressCallback],
        cancel_event: Optional[threading.Event],
    ) -> None:
        for index, task in enumerate(tasks, start=1):
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info("Task list execution cancelled")
                return

            self.logger.info(f"Executing task [{index}/{len(tasks)}]: {task.name}")
            task_result = self.execute_task(task, progress_callback, cancel_event)
            failed = result.record(task_result)
            if progress_callback is not None:
                progress_callback(
                    TaskProgressEvent(task.name, index, len(tasks), result=task_result)
                )

            if failed and config.stop_on_error:
                self.logger.error(f"Stopping due to error in task: {task.name}")
                return

    def _execute_parallel(
        self,
        config: TaskListConfig,
        tasks: list[SyncTask],
        result: TaskListResult,
        progress_callback: Optional[TaskProgressCallback],
        cancel_event: Optional[threading.Event],
    ) -> None:
        lock = threading.Lock()
        stop_requested = threading.Event()
        counters = {"started": 0, "completed": 0}

        def run(task: SyncTask) -> None:
            with lock:
                if stop_requested.is_set() or (
                    cancel_event is not None and cancel_event.is_set()
                ):
                    result.record(
                        TaskResult(
                            task_name=task.name,
                            skipped=True,
                            error_message="Not started (task list stopped)",
                        )
                    )
                    return
                counters["started"] += 1
                index = counters["started"]

            self.logger.info(f"Executing task [{index}/{len(tasks)}]: {task.name}")
            task_result = self.execute_task(task, progress_callback, cancel_event)

            with lock:
                counters["completed"] += 1
                failed = result.record(task_result)
                if failed and config.stop_on_error:
                    self.logger.error(f"Stopping due to error in task: {task.name}")
                    stop_requested.set()
                if progress_callback is not None:
                    progress_callback(
                        TaskProgressEvent(
                            task.name, counters["completed"], len(tasks), result=task_result
                        )
                    )

        self.logger.debug(
            f"Running {len(tasks)} tasks with {config.max_parallel_tasks} workers"
        )
        with ThreadPoolExecutor(max_workers=config.max_parallel_tasks) as executor:
            futures = [executor.submit(run, task) for task in tasks]
            for future in as_completed(futures):
                # run() handles its own failures; surface anything unexpected
                future.result()

    def execute_task(
        self,
        task: SyncTask,
        progress_callback: Optional[TaskProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TaskResult:
        """Run a single task. Never raises.

        Returns:
            TaskResult; ``skipped`` when the task's paths are unusable
        """
        result = TaskResult(task_name=task.name)
        started = time.monotonic()
        options = task.options

        skip_reason = None
        if not options.source_path:
            skip_reason = "Source path is not specified"
        elif not options.target_path:
            skip_reason = "Target path is not specified"
        elif not os.path.isdir(options.source_path):
            skip_reason = f"Source path does not exist: {options.source_path}"

        if skip_reason is not None:
            self.logger.warning(f"Task '{task.name}' skipped: {skip_reason}")
            result.skipped = True
            result.error_message = skip_reason
            return result

        def on_file_progress(event: SyncProgressEvent) -> None:
            if progress_callback is not None:
                progress_callback(TaskProgressEvent(task.name, file_event=event))

        try:
            with FileFilter.from_options(options, self.rule_cache, self.logger) as file_filter:
                engine = self.engine_factory(file_filter, self.logger)
                sync_result = engine.sync(
                    options,
                    progress_callback=on_file_progress,
                    cancel_event=cancel_event,
                )
            result.sync_result = sync_result
            result.success = sync_result.success
            if not sync_result.success and sync_result.errors:
                result.error_message = "; ".join(sync_result.errors)
        except Exception as e:
            self.logger.exception(f"Task '{task.name}' failed with exception")
            result.success = False
            result.error_message = str(e)

        result.duration = time.monotonic() - started
        return result
