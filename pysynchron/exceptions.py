"""Exceptions raised by pysynchron."""


class SynchronError(Exception):
    """Base exception for all pysynchron errors."""


class SynchronConfigError(SynchronError):
    """Raised when a configuration or task list is invalid or unreadable."""


class SynchronPatternError(SynchronError):
    """Raised when a wildcard pattern cannot be compiled."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid pattern '{pattern}': {reason}")


class SynchronCopyError(SynchronError, OSError):
    """Raised when a file copy fails after all retries or verification."""

    def __init__(self, message: str, source_path: str = ""):
        self.source_path = source_path
        super().__init__(message)


class SyncCancelledError(SynchronError):
    """Raised internally when cancellation is observed mid-operation."""
