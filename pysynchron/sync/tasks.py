"""Task lists: named batches of sync runs and their persisted form."""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..exceptions import SynchronConfigError
from ..utils import MIN_BUFFER_SIZE, format_size
from .modes import SyncMode
from .options import GitIgnoreOptions, SyncOptions, normalized_keys
from .result import SyncResult

logger = logging.getLogger(__name__)


@dataclass
class SyncTask:
    """One named sync run inside a task list."""

    name: str = ""
    options: SyncOptions = field(default_factory=SyncOptions)
    description: Optional[str] = None
    enabled: bool = True

    def __str__(self) -> str:
        status = "enabled" if self.enabled else "disabled"
        description = f" - {self.description}" if self.description else ""
        return f"[{status}] {self.name}{description}"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "options": self.options.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SyncTask":
        values = normalized_keys(data)
        return cls(
            name=values.get("name") or "",
            description=values.get("description"),
            enabled=bool(values.get("enabled", True)),
            options=SyncOptions.from_dict(values.get("options") or {}),
        )


@dataclass
class TaskListConfig:
    """An ordered list of sync tasks and how to run them."""

    name: Optional[str] = None
    tasks: list[SyncTask] = field(default_factory=list)
    stop_on_error: bool = True
    """Stop starting new tasks after the first failed one"""

    max_parallel_tasks: int = 1
    """Tasks allowed to run at the same time (1 runs them in order)"""

    @property
    def enabled_tasks(self) -> list[SyncTask]:
        return [task for task in self.tasks if task.enabled]

    @property
    def enabled_task_count(self) -> int:
        return len(self.enabled_tasks)

    @property
    def total_task_count(self) -> int:
        return len(self.tasks)

    def __str__(self) -> str:
        name = self.name or "Task List"
        return f"{name}: {self.enabled_task_count}/{self.total_task_count} tasks enabled"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "stopOnError": self.stop_on_error,
            "maxParallelTasks": self.max_parallel_tasks,
            "tasks": [task.to_dict() for task in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TaskListConfig":
        """Create a TaskListConfig from a dictionary (keys are case-insensitive)."""
        values = normalized_keys(data)
        return cls(
            name=values.get("name"),
            stop_on_error=bool(values.get("stoponerror", True)),
            max_parallel_tasks=int(values.get("maxparalleltasks", 1)),
            tasks=[SyncTask.from_dict(task) for task in values.get("tasks") or []],
        )


@dataclass
class TaskResult:
    """Outcome of one task."""

    task_name: str
    success: bool = False
    skipped: bool = False
    sync_result: Optional[SyncResult] = None
    error_message: Optional[str] = None
    duration: float = 0.0

    def __str__(self) -> str:
        if self.skipped:
            return f"[{self.task_name}] Skipped"
        if self.success:
            return f"[{self.task_name}] Success"
        return f"[{self.task_name}] Failed: {self.error_message}"


@dataclass
class TaskListResult:
    """Aggregate outcome of a task list run."""

    success: bool = False
    task_results: list[TaskResult] = field(default_factory=list)
    tasks_completed: int = 0
    tasks_failed: int = 0
    tasks_skipped: int = 0
    total_bytes_transferred: int = 0
    errors: list[str] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    total_duration: float = 0.0

    def record(self, task_result: TaskResult) -> bool:
        """Add a task outcome and update the counters.

        Returns:
            True if the task failed (ran and did not succeed)
        """
        self.task_results.append(task_result)
        if task_result.skipped:
            self.tasks_skipped += 1
            return False
        if task_result.success:
            self.tasks_completed += 1
            if task_result.sync_result is not None:
                self.total_bytes_transferred += task_result.sync_result.bytes_transferred
            return False
        self.tasks_failed += 1
        self.errors.append(
            f"Task '{task_result.task_name}' failed: {task_result.error_message}"
        )
        return True


@dataclass
class ValidationResult:
    """Errors and warnings found in a task list."""

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def __str__(self) -> str:
        if self.is_valid and not self.warnings:
            return "Valid"
        parts = []
        if not self.is_valid:
            parts.append(f"Invalid ({len(self.errors)} errors)")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warnings")
        return ", ".join(parts)


# =============================================================================
# Persistence
# =============================================================================


def load_task_list(config_path: Union[str, Path]) -> TaskListConfig:
    """Load a task list from a JSON file.

    Args:
        config_path: Path to the task list file

    Returns:
        Parsed TaskListConfig

    Raises:
        SynchronConfigError: If the file is missing or malformed
    """
    path = Path(config_path)
    if not path.is_file():
        raise SynchronConfigError(f"Task list config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse task list config: {path}: {e}")
        raise SynchronConfigError(
            f"Invalid JSON format in task list config: {e}"
        ) from e
    except OSError as e:
        raise SynchronConfigError(f"Cannot read task list config {path}: {e}") from e

    if not isinstance(data, dict):
        raise SynchronConfigError("Failed to parse task list config file")

    try:
        config = TaskListConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        raise SynchronConfigError(f"Invalid task list config: {e}") from e

    logger.info(f"Loaded task list config: {path}")
    logger.info(
        f"Found {config.total_task_count} tasks ({config.enabled_task_count} enabled)"
    )
    return config


def save_task_list(config: TaskListConfig, config_path: Union[str, Path]) -> None:
    """Write a task list as indented JSON, creating parent directories."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info(f"Task list config saved to: {path}")


# =============================================================================
# Validation and description
# =============================================================================


def validate_task_list(config: TaskListConfig) -> ValidationResult:
    """Check a task list before running it.

    A ``max_parallel_tasks`` below 1 is reported as a warning and reset
    to 1 on ``config``.
    """
    result = ValidationResult()

    if not config.tasks:
        result.warnings.append("No tasks defined in the configuration")

    seen_names: set[str] = set()
    for index, task in enumerate(config.tasks, start=1):
        if not task.name.strip():
            result.add_error(f"Task #{index}: Name is required")
        elif task.name.casefold() in seen_names:
            result.add_error(f"Task '{task.name}': Duplicate task name")
        else:
            seen_names.add(task.name.casefold())

        options = task.options
        if task.enabled:
            if not options.source_path.strip():
                result.warnings.append(
                    f"Task '{task.name}': Source path is not specified (will be skipped)"
                )
            elif not os.path.isdir(options.source_path):
                result.warnings.append(
                    f"Task '{task.name}': Source path does not exist: "
                    f"{options.source_path} (will be skipped)"
                )
            if not options.target_path.strip():
                result.warnings.append(
                    f"Task '{task.name}': Target path is not specified (will be skipped)"
                )

        if options.buffer_size < MIN_BUFFER_SIZE:
            result.warnings.append(
                f"Task '{task.name}': Buffer size should be at least "
                f"{MIN_BUFFER_SIZE} bytes"
            )
        if options.max_retries < 0:
            result.add_error(f"Task '{task.name}': Max retries cannot be negative")

    if config.max_parallel_tasks < 1:
        result.warnings.append(
            "MaxParallelTasks should be at least 1, using default value 1"
        )
        config.max_parallel_tasks = 1

    return result


def create_sample_config() -> TaskListConfig:
    """Return an example task list suitable for ``tasks init``."""
    home = Path.home()
    return TaskListConfig(
        name="Sample Task List",
        stop_on_error=False,
        max_parallel_tasks=1,
        tasks=[
            SyncTask(
                name="Documents Backup",
                description="Sync documents to backup folder",
                options=SyncOptions(
                    source_path=str(home / "Documents"),
                    target_path="/mnt/backup/Documents",
                    mode=SyncMode.SYNC,
                    gitignore=GitIgnoreOptions(enabled=True, auto_detect=True),
                ),
            ),
            SyncTask(
                name="Photos Backup",
                description="Mirror photos to external drive",
                options=SyncOptions(
                    source_path=str(home / "Pictures"),
                    target_path="/mnt/external/Pictures",
                    mode=SyncMode.MIRROR,
                ),
            ),
            SyncTask(
                name="Project Sync",
                description="Sync project files (disabled example)",
                enabled=False,
                options=SyncOptions(
                    source_path=str(home / "Projects"),
                    target_path="/mnt/backup/Projects",
                    mode=SyncMode.SYNC,
                ),
            ),
        ],
    )


def describe_task_list(config: TaskListConfig) -> list[str]:
    """Render a task list as human-readable lines."""
    lines = [
        f"Task List: {config.name or 'Unnamed'}",
        "-" * 50,
        f"Total: {config.total_task_count}, Enabled: {config.enabled_task_count}",
        f"StopOnError: {config.stop_on_error}, MaxParallel: {config.max_parallel_tasks}",
        "",
    ]
    for index, task in enumerate(config.tasks, start=1):
        status = "[*]" if task.enabled else "[ ]"
        lines.append(f"{index}. {status} {task.name}")
        if task.description:
            lines.append(f"   Description: {task.description}")
        lines.append(f"   Source: {task.options.source_path}")
        lines.append(f"   Target: {task.options.target_path}")
        lines.append(f"   Mode: {task.options.mode.value}")
        if task.options.gitignore.enabled:
            lines.append("   GitIgnore: enabled")
        lines.append("")
    return lines


def summarize_task_list_result(result: TaskListResult) -> str:
    return (
        f"{result.tasks_completed} succeeded, {result.tasks_failed} failed, "
        f"{result.tasks_skipped} skipped ({format_size(result.total_bytes_transferred)})"
    )
