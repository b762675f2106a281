"""Utility functions for pysynchron."""

import hashlib
import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

# =============================================================================
# Constants for file operations
# =============================================================================

# Buffer size for streaming copies (1 MiB)
DEFAULT_BUFFER_SIZE: int = 1024 * 1024

# Smallest accepted copy buffer
MIN_BUFFER_SIZE: int = 1024

# Retry configuration for transient I/O errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY_MS: int = 1000

# Quiet period before a watched change triggers a sync
DEFAULT_WATCH_DEBOUNCE_MS: int = 500

# Name of the ignore file and of the repository marker
GITIGNORE_FILE_NAME: str = ".gitignore"
GIT_MARKER_NAME: str = ".git"


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Path utilities
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalize a relative path to forward slashes without a leading slash.

    Examples:
        >>> normalize_path("sub\\\\dir\\\\file.txt")
        'sub/dir/file.txt'
        >>> normalize_path("/root.txt")
        'root.txt'
    """
    return path.replace("\\", "/").lstrip("/")


def relative_to_root(path: Union[str, Path], root: Union[str, Path]) -> str:
    """Return ``path`` relative to ``root`` using forward slashes.

    Relative inputs are assumed to already be relative to ``root`` and are
    only normalized. Absolute paths outside ``root`` are returned normalized
    as-is.
    """
    path_str = str(path)
    if not os.path.isabs(path_str):
        return normalize_path(path_str)

    try:
        return Path(path_str).relative_to(Path(root)).as_posix()
    except ValueError:
        try:
            return Path(path_str).resolve().relative_to(Path(root).resolve()).as_posix()
        except ValueError:
            return normalize_path(path_str)


# =============================================================================
# Hash calculation utilities
# =============================================================================


def compute_file_hash(path: Union[str, Path], chunk_size: int = DEFAULT_BUFFER_SIZE) -> str:
    """Compute the SHA-256 digest of a file's content.

    Args:
        path: File to hash
        chunk_size: Read size in bytes

    Returns:
        Uppercase hexadecimal digest
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest().upper()


# =============================================================================
# Retry utilities
# =============================================================================


def is_transient_io_error(error: BaseException) -> bool:
    """Return True for I/O-class failures worth retrying."""
    if isinstance(error, (FileNotFoundError, IsADirectoryError, NotADirectoryError)):
        return False
    return isinstance(error, OSError)


def retry_with_fixed_delay(
    func: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    delay_seconds: float = DEFAULT_RETRY_DELAY_MS / 1000,
    is_transient: Callable[[BaseException], bool] = is_transient_io_error,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
    cancel_event: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` until it succeeds, retrying transient failures.

    The function is attempted at most ``max_retries + 1`` times with a fixed
    ``delay_seconds`` pause between attempts. Failures rejected by
    ``is_transient`` propagate immediately; the last transient failure
    propagates once retries are exhausted. A set ``cancel_event`` stops
    further retries.

    Args:
        func: Zero-argument callable to run
        max_retries: Number of retries after the first attempt
        delay_seconds: Pause between attempts
        is_transient: Predicate deciding whether a failure is retryable
        on_retry: Called with (attempt_number, error) before each retry
        cancel_event: Optional cancellation signal
        sleep: Sleep function (injectable for tests)

    Returns:
        Whatever ``func`` returns

    Examples:
        >>> retry_with_fixed_delay(lambda: 42, max_retries=0)
        42
    """
    attempt = 0
    while True:
        try:
            return func()
        except Exception as e:
            if not is_transient(e) or attempt >= max_retries:
                raise
            if cancel_event is not None and cancel_event.is_set():
                raise
            attempt += 1
            if on_retry is not None:
                on_retry(attempt, e)
            sleep(delay_seconds)
