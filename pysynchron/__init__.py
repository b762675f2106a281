"""PySynchron - one-way directory synchronization with gitignore support."""

from .exceptions import (
    SyncCancelledError,
    SynchronConfigError,
    SynchronCopyError,
    SynchronError,
    SynchronPatternError,
)
from .sync import SyncEngine, SyncMode, SyncOptions, SyncResult
from .utils import compute_file_hash, format_size

__version__ = "0.1.0"

__all__ = [
    "SyncEngine",
    "SyncMode",
    "SyncOptions",
    "SyncResult",
    "SynchronError",
    "SynchronConfigError",
    "SynchronCopyError",
    "SynchronPatternError",
    "SyncCancelledError",
    "compute_file_hash",
    "format_size",
]
