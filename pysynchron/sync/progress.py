"""Progress events emitted while a sync run applies its preview."""

from dataclasses import dataclass
from typing import Callable

from .comparator import SyncAction


@dataclass(frozen=True)
class SyncProgressEvent:
    """Snapshot reported after every individual file operation."""

    current_file: str
    """Relative path of the entry just processed"""

    total_files: int
    """Number of operations planned for the run"""

    processed_files: int
    """Operations finished so far (including this one)"""

    total_bytes: int
    """Bytes planned for copy and move operations"""

    processed_bytes: int
    """Bytes transferred so far"""

    action: SyncAction
    """Action that was applied to ``current_file``"""

    @property
    def percentage(self) -> float:
        """Completion percentage by file count."""
        if self.total_files == 0:
            return 100.0
        return self.processed_files / self.total_files * 100


ProgressCallback = Callable[[SyncProgressEvent], None]
