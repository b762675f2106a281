"""Watch a source tree and re-sync once changes settle."""

import logging
import os
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..utils import relative_to_root
from .engine import SyncEngine
from .filter import FileFilter
from .options import SyncOptions
from .result import SyncResult

logger = logging.getLogger(__name__)

# Capacity of the event channel between watchdog and the debounce thread
DEFAULT_QUEUE_SIZE: int = 10000

# Lower bound of the debounce tick (seconds)
MIN_TICK_INTERVAL: float = 0.05


class FileChangeType(str, Enum):
    """Kind of change reported for a watched path."""

    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class FileChangedEvent:
    """A settled change to one path."""

    path: str
    """Absolute path that changed"""

    change_type: FileChangeType


class _QueueingHandler(FileSystemEventHandler):
    """Forwards watchdog callbacks into the watcher's bounded queue."""

    def __init__(self, watcher: "FileWatcher"):
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self._watcher.enqueue(FileChangeType.CREATED, os.fsdecode(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtime changes are implied by their children's events
        if event.is_directory:
            return
        self._watcher.enqueue(FileChangeType.CHANGED, os.fsdecode(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._watcher.enqueue(FileChangeType.DELETED, os.fsdecode(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        # A rename is a delete of the old path plus a create of the new one
        self._watcher.enqueue(FileChangeType.DELETED, os.fsdecode(event.src_path))
        self._watcher.enqueue(FileChangeType.CREATED, os.fsdecode(event.dest_path))


class FileWatcher:
    """Watches the source tree and triggers a full sync after a quiet period.

    Raw filesystem events are pushed into a bounded queue. A single debounce
    thread owns the pending-path map: every tick it drains the queue, then
    promotes paths that have been quiet for the debounce interval (deletions
    are promoted on the next tick), reports them through ``on_change`` and
    triggers one sync pass.

    At most one sync runs at a time. Triggers that arrive while a sync is in
    flight collapse into a single follow-up pass.

    Examples:
        >>> watcher = FileWatcher(SyncEngine(), options, on_change=print)
        >>> watcher.start()
        >>> ...
        >>> watcher.stop()
    """

    def __init__(
        self,
        engine: SyncEngine,
        options: SyncOptions,
        file_filter: Optional[FileFilter] = None,
        on_change: Optional[Callable[[FileChangedEvent], None]] = None,
        on_sync_complete: Optional[Callable[[SyncResult], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the watcher.

        Args:
            engine: Engine used for triggered sync passes
            options: Options for every triggered sync
            file_filter: Drops events for paths the sync would ignore
            on_change: Called once per settled path
            on_sync_complete: Called with the result of every triggered sync
            clock: Monotonic time source (injectable for tests)
            queue_size: Capacity of the raw event queue
            logger: Logger for diagnostics (defaults to the module logger)
        """
        self.engine = engine
        self.options = options
        self.file_filter = file_filter
        self.on_change = on_change
        self.on_sync_complete = on_sync_complete
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._clock = clock
        self._debounce = options.watch_debounce_ms / 1000
        self._events: "queue.Queue[tuple[FileChangeType, str]]" = queue.Queue(
            maxsize=queue_size
        )

        # Owned by the debounce thread
        self._pending: dict[str, tuple[FileChangeType, float]] = {}
        self._deleted: dict[str, FileChangeType] = {}

        self._stop = threading.Event()
        self._cancel = threading.Event()
        self._observer: Optional[Observer] = None
        self._debounce_thread: Optional[threading.Thread] = None

        self._sync_lock = threading.Lock()
        self._sync_running = False
        self._sync_requested = False
        self._sync_thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    @property
    def tick_interval(self) -> float:
        return max(self._debounce, MIN_TICK_INTERVAL)

    @property
    def pending_count(self) -> int:
        return len(self._pending) + len(self._deleted)

    def start(self) -> None:
        """Begin watching the source tree."""
        if self._observer is not None:
            return

        self._stop.clear()
        self._cancel.clear()
        observer = Observer()
        observer.schedule(
            _QueueingHandler(self),
            self.options.source_path,
            recursive=self.options.include_subdirectories,
        )
        observer.start()
        self._observer = observer

        self._debounce_thread = threading.Thread(
            target=self._debounce_loop, name="pysynchron-debounce", daemon=True
        )
        self._debounce_thread.start()
        self.logger.info(f"Watching {self.options.source_path} for changes")

    def stop(self) -> None:
        """Stop watching, cancel a running sync and wait for the threads."""
        if self._observer is None:
            return

        self._stop.set()
        self._cancel.set()
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        if self._debounce_thread is not None:
            self._debounce_thread.join(timeout=5)
            self._debounce_thread = None
        self.wait_for_sync(timeout=30)
        self.logger.info(f"Stopped watching {self.options.source_path}")

    # -------------------------------------------------------------------------
    # Event intake (watchdog threads)
    # -------------------------------------------------------------------------

    def enqueue(self, change_type: FileChangeType, path: str) -> None:
        """Queue a raw change; a full queue drops it with a warning."""
        try:
            self._events.put_nowait((change_type, path))
        except queue.Full:
            self.logger.warning(
                f"Change buffer overflow, events may have been missed ({path})"
            )

    # -------------------------------------------------------------------------
    # Debounce (single owner thread)
    # -------------------------------------------------------------------------

    def _debounce_loop(self) -> None:
        while not self._stop.wait(self.tick_interval):
            try:
                self.drain()
                self.tick()
            except Exception:
                self.logger.exception("Watcher tick failed")

    def _accepts(self, path: str) -> bool:
        target = os.path.abspath(self.options.target_path)
        if os.path.commonpath([os.path.abspath(path), target]) == target:
            # Changes made by our own sync into a nested target
            return False
        if self.file_filter is None:
            return True
        relative_path = relative_to_root(path, self.options.source_path)
        return self.file_filter.is_match(relative_path, os.path.isdir(path))

    def drain(self) -> int:
        """Move queued raw events into the pending map.

        Returns:
            Number of events consumed
        """
        now = self._clock()
        consumed = 0
        while True:
            try:
                change_type, path = self._events.get_nowait()
            except queue.Empty:
                return consumed
            consumed += 1
            if not self._accepts(path):
                continue
            if change_type == FileChangeType.DELETED:
                self._pending.pop(path, None)
                self._deleted[path] = change_type
                continue
            self._deleted.pop(path, None)
            previous = self._pending.get(path)
            kind = previous[0] if previous is not None else change_type
            self._pending[path] = (kind, now)

    def tick(self) -> list[FileChangedEvent]:
        """Promote settled paths and trigger a sync if any were promoted.

        Returns:
            The events promoted by this tick
        """
        now = self._clock()
        promoted = [
            FileChangedEvent(path, change_type)
            for path, change_type in self._deleted.items()
        ]
        self._deleted.clear()

        for path, (change_type, last_seen) in list(self._pending.items()):
            if now - last_seen >= self._debounce:
                del self._pending[path]
                promoted.append(FileChangedEvent(path, change_type))

        if not promoted:
            return promoted

        for event in promoted:
            self.logger.debug(f"{event.change_type.value}: {event.path}")
            if self.on_change is not None:
                self.on_change(event)

        self.logger.info(f"{len(promoted)} change(s) settled, syncing")
        self.trigger_sync()
        return promoted

    # -------------------------------------------------------------------------
    # Single-flight sync
    # -------------------------------------------------------------------------

    def trigger_sync(self) -> None:
        """Start a sync, or schedule one follow-up pass if one is running."""
        with self._sync_lock:
            if self._sync_running:
                self._sync_requested = True
                self.logger.debug("Sync in progress, follow-up pass scheduled")
                return
            self._sync_running = True
            self._sync_thread = threading.Thread(
                target=self._run_syncs, name="pysynchron-watch-sync", daemon=True
            )
            self._sync_thread.start()

    def _run_syncs(self) -> None:
        while True:
            try:
                result = self.engine.sync(self.options, cancel_event=self._cancel)
                if self.on_sync_complete is not None:
                    self.on_sync_complete(result)
            except Exception:
                self.logger.exception("Watch-triggered sync failed")

            with self._sync_lock:
                if not self._sync_requested or self._cancel.is_set():
                    self._sync_requested = False
                    self._sync_running = False
                    return
                self._sync_requested = False

    def wait_for_sync(self, timeout: Optional[float] = None) -> bool:
        """Wait until no triggered sync is running.

        Returns:
            True if the watcher is idle
        """
        thread = self._sync_thread
        if thread is not None:
            thread.join(timeout)
        with self._sync_lock:
            return not self._sync_running
