"""Cache for parsed gitignore rule sets."""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .ignore import GitIgnoreRule

logger = logging.getLogger(__name__)

# Entries older than this are discarded (seconds)
DEFAULT_CACHE_EXPIRATION: float = 30 * 60

# Interval of the background sweep (seconds)
DEFAULT_CLEANUP_INTERVAL: float = 5 * 60


def _modification_time(path: str) -> Optional[int]:
    try:
        return os.stat(path).st_mtime_ns
    except OSError:
        return None


@dataclass(frozen=True)
class _CacheEntry:
    rules: list[GitIgnoreRule]
    mtime_ns: Optional[int]
    cached_at: float


class GitIgnoreRuleCache:
    """Memoizes parsed rules per ignore file.

    An entry is stale once it is older than ``expiration`` seconds or once
    the ignore file's modification time differs from the one recorded when
    the entry was stored. Stale entries are never returned; a background
    thread also sweeps them every ``cleanup_interval`` seconds.

    The cache is safe to share between threads.

    Examples:
        >>> cache = GitIgnoreRuleCache(start_cleanup=False)
        >>> cache.get("/nonexistent/.gitignore") is None
        True
        >>> cache.close()
    """

    def __init__(
        self,
        expiration: float = DEFAULT_CACHE_EXPIRATION,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        start_cleanup: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the cache.

        Args:
            expiration: Maximum entry age in seconds
            cleanup_interval: Seconds between background sweeps
            clock: Monotonic time source (injectable for tests)
            start_cleanup: Start the background sweep thread immediately
            logger: Logger for diagnostics (defaults to the module logger)
        """
        self.expiration = expiration
        self.cleanup_interval = cleanup_interval
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._cleanup_thread: Optional[threading.Thread] = None
        if start_cleanup:
            self.start_cleanup()

    @staticmethod
    def _key(file_path: str) -> str:
        return os.path.abspath(file_path)

    def _is_valid(self, key: str, entry: _CacheEntry) -> bool:
        if self._clock() - entry.cached_at > self.expiration:
            return False
        current = _modification_time(key)
        if current is None:
            # File vanished; the rules stay usable until they expire
            return True
        return current == entry.mtime_ns

    def get(self, file_path: str) -> Optional[list[GitIgnoreRule]]:
        """Return cached rules for an ignore file, or None on a miss."""
        if not file_path:
            return None

        key = self._key(file_path)
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None

        if self._is_valid(key, entry):
            self.logger.debug(f"Cache hit for gitignore: {file_path}")
            return entry.rules

        with self._lock:
            # Only drop the entry we inspected, not a fresher replacement
            if self._entries.get(key) is entry:
                del self._entries[key]
        self.logger.debug(f"Cache expired for gitignore: {file_path}")
        return None

    def set(self, file_path: str, rules: list[GitIgnoreRule]) -> None:
        """Store rules for an ignore file, recording its modification time."""
        if not file_path or rules is None:
            return

        key = self._key(file_path)
        entry = _CacheEntry(
            rules=list(rules),
            mtime_ns=_modification_time(key),
            cached_at=self._clock(),
        )
        with self._lock:
            self._entries[key] = entry
        self.logger.debug(f"Cached {len(rules)} rules for gitignore: {file_path}")

    def invalidate(self, file_path: str) -> bool:
        """Drop the entry for an ignore file.

        Returns:
            True if an entry was removed
        """
        if not file_path:
            return False
        with self._lock:
            removed = self._entries.pop(self._key(file_path), None)
        if removed is not None:
            self.logger.debug(f"Invalidated cache for gitignore: {file_path}")
            return True
        return False

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        self.logger.info(f"Cleared gitignore cache ({count} entries)")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def cleanup_expired(self) -> int:
        """Evict every stale entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            snapshot = list(self._entries.items())

        stale = [key for key, entry in snapshot if not self._is_valid(key, entry)]

        removed = 0
        with self._lock:
            for key, entry in snapshot:
                if key in stale and self._entries.get(key) is entry:
                    del self._entries[key]
                    removed += 1

        if removed:
            self.logger.debug(f"Cleaned up {removed} expired cache entries")
        return removed

    def start_cleanup(self) -> None:
        """Start the background sweep thread if it is not running."""
        if self._cleanup_thread is not None and self._cleanup_thread.is_alive():
            return
        self._stop.clear()
        self._cleanup_thread = threading.Thread(
            target=self._cleanup_loop,
            name="gitignore-cache-cleanup",
            daemon=True,
        )
        self._cleanup_thread.start()

    def _cleanup_loop(self) -> None:
        while not self._stop.wait(self.cleanup_interval):
            try:
                self.cleanup_expired()
            except Exception:
                self.logger.exception("Gitignore cache cleanup failed")

    def close(self) -> None:
        """Stop the sweep thread and drop all entries."""
        self._stop.set()
        if self._cleanup_thread is not None:
            self._cleanup_thread.join(timeout=5)
            self._cleanup_thread = None
        with self._lock:
            self._entries.clear()

    def __enter__(self) -> "GitIgnoreRuleCache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
