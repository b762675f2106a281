"""Filesystem operations used when applying a sync preview."""

import logging
import os
import shutil
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from ..exceptions import SyncCancelledError, SynchronCopyError
from ..utils import compute_file_hash, format_size, retry_with_fixed_delay
from .options import SyncOptions

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".synchron-partial"


def partial_path(target: Path) -> Path:
    """Hidden sibling that receives a copy before it replaces ``target``."""
    return target.with_name(f".{target.name}{PARTIAL_SUFFIX}")


class SyncOperations:
    """Copy, move and delete primitives with retry and cancellation support."""

    def __init__(
        self,
        options: SyncOptions,
        cancel_event: Optional[threading.Event] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize sync operations.

        Args:
            options: Sync options (buffer size, retries, preservation flags)
            cancel_event: Checked between buffer chunks and before retries
            logger: Logger for diagnostics (defaults to the module logger)
            sleep: Sleep function used between retries (injectable for tests)
        """
        self.options = options
        self.cancel_event = cancel_event
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._sleep = sleep

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise SyncCancelledError("Operation cancelled")

    def copy_file(self, source: Path, target: Path) -> int:
        """Copy a file, retrying transient I/O failures.

        Args:
            source: File to copy
            target: Destination path (parent directories are created)

        Returns:
            Number of bytes written

        Raises:
            SyncCancelledError: If cancellation was requested mid-copy
            OSError: If the copy still fails after all retries
        """
        target.parent.mkdir(parents=True, exist_ok=True)

        def on_retry(attempt: int, error: BaseException) -> None:
            self.logger.warning(
                f"Retry {attempt}/{self.options.max_retries} for {source}: {error}"
            )

        copied = retry_with_fixed_delay(
            lambda: self._copy_once(source, target),
            max_retries=self.options.max_retries,
            delay_seconds=self.options.retry_delay_seconds,
            on_retry=on_retry,
            cancel_event=self.cancel_event,
            sleep=self._sleep,
        )
        self.logger.debug(f"Copied {source} -> {target} ({format_size(copied)})")
        return copied

    def _copy_once(self, source: Path, target: Path) -> int:
        """Copy into a sibling partial file, then replace the target with it.

        The existing target is only touched once the new content is
        complete (and verified when ``verify_hash`` is set).
        """
        buffer_size = self.options.buffer_size
        partial = partial_path(target)
        copied = 0
        try:
            with open(source, "rb") as src, open(partial, "wb") as dst:
                while True:
                    self._check_cancelled()
                    chunk = src.read(buffer_size)
                    if not chunk:
                        break
                    dst.write(chunk)
                    copied += len(chunk)

            self._preserve_metadata(source, partial)

            if self.options.verify_hash:
                source_hash = compute_file_hash(source, buffer_size)
                target_hash = compute_file_hash(partial, buffer_size)
                if source_hash != target_hash:
                    raise SynchronCopyError(
                        f"Hash verification failed for {target}", source_path=str(source)
                    )
                self.logger.debug(f"Verified hash for {target}")

            os.replace(partial, target)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        return copied

    def _preserve_metadata(self, source: Path, target: Path) -> None:
        if self.options.preserve_attributes:
            shutil.copymode(source, target)
        if self.options.preserve_timestamps:
            stat = os.stat(source)
            # Creation time cannot be set through the standard library
            os.utime(target, ns=(stat.st_atime_ns, stat.st_mtime_ns))

    def create_directory(self, target: Path) -> None:
        """Create a target directory (and parents) if it is missing."""
        if not target.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            self.logger.debug(f"Created directory: {target}")

    def move(self, source: Path, target: Path, is_dir: bool = False) -> None:
        """Relocate an entry into the target tree.

        An existing target file is replaced. A directory is relocated only
        when no target directory exists yet.
        """
        self._check_cancelled()
        if is_dir:
            if target.exists():
                self.logger.debug(f"Target directory already exists: {target}")
                return
        elif target.is_file():
            target.unlink()

        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(target))
        self.logger.debug(f"Moved {source} -> {target}")

    def delete(self, target: Path) -> None:
        """Delete a file or a directory tree. A missing target is not an error."""
        self._check_cancelled()
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        else:
            self.logger.debug(f"Already absent: {target}")
            return
        self.logger.debug(f"Deleted: {target}")
