"""Sync engine for pysynchron - preview, apply, watch and task lists."""

from .comparator import FileComparator, SyncAction, SyncDecision, SyncPreview
from .engine import SyncEngine
from .executor import TaskListExecutor, TaskProgressEvent
from .filter import FileFilter
from .git_env import GitEnvironmentDetector, GitEnvironmentInfo
from .ignore import GitIgnoreParser, GitIgnoreRule, load_ignore_file
from .ignore_cache import GitIgnoreRuleCache
from .modes import CompareMethod, ConflictResolution, SyncMode
from .operations import SyncOperations
from .options import GitIgnoreOptions, IgnoreSource, SyncOptions
from .patterns import PathMatcher
from .progress import SyncProgressEvent
from .result import FileOperationResult, SyncResult
from .scanner import DirectoryScanner, FileEntry
from .tasks import (
    SyncTask,
    TaskListConfig,
    TaskListResult,
    TaskResult,
    ValidationResult,
    create_sample_config,
    describe_task_list,
    load_task_list,
    save_task_list,
    validate_task_list,
)
from .watcher import FileChangedEvent, FileChangeType, FileWatcher

__all__ = [
    "SyncEngine",
    "SyncMode",
    "CompareMethod",
    "ConflictResolution",
    "SyncOptions",
    "GitIgnoreOptions",
    "IgnoreSource",
    "SyncOperations",
    "DirectoryScanner",
    "FileEntry",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "SyncPreview",
    "SyncProgressEvent",
    "SyncResult",
    "FileOperationResult",
    "PathMatcher",
    "FileFilter",
    "GitIgnoreParser",
    "GitIgnoreRule",
    "GitIgnoreRuleCache",
    "GitEnvironmentDetector",
    "GitEnvironmentInfo",
    "load_ignore_file",
    "FileWatcher",
    "FileChangedEvent",
    "FileChangeType",
    "TaskListExecutor",
    "TaskProgressEvent",
    "SyncTask",
    "TaskListConfig",
    "TaskResult",
    "TaskListResult",
    "ValidationResult",
    "create_sample_config",
    "describe_task_list",
    "load_task_list",
    "save_task_list",
    "validate_task_list",
]
