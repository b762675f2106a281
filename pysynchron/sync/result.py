"""Outcome records for sync runs."""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .comparator import SyncAction


@dataclass
class FileOperationResult:
    """Outcome of one copy, move or delete."""

    source_path: str
    target_path: str
    action: SyncAction
    success: bool
    error_message: Optional[str] = None
    bytes_transferred: int = 0
    duration: float = 0.0
    """Seconds spent on the operation"""


@dataclass
class SyncResult:
    """Aggregate outcome of one sync run.

    Built incrementally while the preview is applied and stamped by
    :meth:`finalize` when the run ends.
    """

    success: bool = False
    files_copied: int = 0
    files_moved: int = 0
    files_deleted: int = 0
    files_skipped: int = 0
    files_failed: int = 0
    bytes_transferred: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    duration: float = 0.0
    """Elapsed seconds, set by :meth:`finalize`"""

    operations: list[FileOperationResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    _started: float = field(default_factory=time.monotonic, repr=False, compare=False)

    @property
    def total_files_processed(self) -> int:
        return self.files_copied + self.files_moved + self.files_deleted

    @property
    def speed_mbps(self) -> float:
        """Throughput in MiB per second."""
        if self.duration <= 0:
            return 0.0
        return self.bytes_transferred / 1024 / 1024 / self.duration

    def record(self, operation: FileOperationResult) -> None:
        """Add an operation outcome and update the counters."""
        self.operations.append(operation)
        if not operation.success:
            self.files_failed += 1
            self.errors.append(
                f"{operation.action.value} {operation.source_path}: "
                f"{operation.error_message}"
            )
            return

        self.bytes_transferred += operation.bytes_transferred
        if operation.action == SyncAction.COPY:
            self.files_copied += 1
        elif operation.action == SyncAction.MOVE:
            self.files_moved += 1
        elif operation.action == SyncAction.DELETE:
            self.files_deleted += 1

    def finalize(self) -> "SyncResult":
        """Stamp the end time and duration."""
        self.end_time = datetime.now()
        self.duration = time.monotonic() - self._started
        return self

    def summary(self) -> str:
        return (
            f"{self.files_copied} copied, {self.files_moved} moved, "
            f"{self.files_deleted} deleted, {self.files_skipped} skipped, "
            f"{self.files_failed} failed"
        )
