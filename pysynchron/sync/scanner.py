"""Directory scanning utilities for sync operations."""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..utils import compute_file_hash

logger = logging.getLogger(__name__)


@dataclass
class FileEntry:
    """Represents a file or directory found while scanning a tree."""

    path: Path
    """Absolute path to the entry"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes (0 for directories)"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    is_dir: bool = False
    """Whether the entry is a directory"""

    creation_time: Optional[float] = None
    """Creation time (Unix timestamp) if available"""

    attributes: int = 0
    """Platform attributes (st_mode on POSIX, st_file_attributes on Windows)"""

    hash: Optional[str] = None
    """Content hash, computed on demand by :meth:`content_hash`"""

    @classmethod
    def from_path(cls, entry_path: Path, base_path: Path) -> "FileEntry":
        """Create a FileEntry from a path.

        Args:
            entry_path: Absolute path to the file or directory
            base_path: Base path for calculating relative paths

        Returns:
            FileEntry instance
        """
        stat = entry_path.stat()
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = entry_path.relative_to(base_path).as_posix()
        is_dir = entry_path.is_dir()

        # st_birthtime on macOS and Windows (Python 3.12+)
        stat_any: Any = stat
        creation_time: Optional[float] = getattr(stat_any, "st_birthtime", None)
        attributes = getattr(stat_any, "st_file_attributes", stat.st_mode)

        return cls(
            path=entry_path,
            relative_path=relative_path,
            size=0 if is_dir else stat.st_size,
            mtime=stat.st_mtime,
            is_dir=is_dir,
            creation_time=creation_time,
            attributes=attributes,
        )

    def content_hash(self) -> str:
        """Return the SHA-256 digest of the file, computing it once."""
        if self.hash is None:
            self.hash = compute_file_hash(self.path)
        return self.hash


class DirectoryScanner:
    """Enumerates a directory tree into a flat list of FileEntry records.

    Directories are listed before their contents. Entries that cannot be
    read are logged and skipped without aborting the walk.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> entries = scanner.scan(Path("/sync/folder"))
        >>> files = [e for e in entries if not e.is_dir]
    """

    def __init__(
        self,
        recursive: bool = True,
        cancel_event: Optional[threading.Event] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize directory scanner.

        Args:
            recursive: Descend into subdirectories
            cancel_event: Stops the walk early when set
            logger: Logger for diagnostics (defaults to the module logger)
        """
        self.recursive = recursive
        self.cancel_event = cancel_event
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def scan(self, directory: Path) -> list[FileEntry]:
        """Scan a directory tree.

        In non-recursive mode only the files directly inside ``directory``
        are returned.

        Args:
            directory: Root of the tree

        Returns:
            List of FileEntry objects (a missing root yields an empty list)
        """
        directory = Path(directory)
        if not directory.is_dir():
            self.logger.warning(f"Directory does not exist: {directory}")
            return []

        entries: list[FileEntry] = []
        self._scan_directory(directory, directory, entries)
        self.logger.debug(f"Scanned {len(entries)} entries under {directory}")
        return entries

    def _scan_directory(
        self, directory: Path, base_path: Path, entries: list[FileEntry]
    ) -> None:
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            # Skip directories we can't read
            self.logger.warning(f"Access denied to directory: {directory} ({e})")
            return

        subdirectories: list[Path] = []
        for item in children:
            if self._cancelled():
                return
            try:
                is_dir = item.is_dir()
                if is_dir and not self.recursive:
                    continue
                if is_dir and item.is_symlink():
                    self.logger.debug(f"Skipping symlinked directory: {item}")
                    continue
                entries.append(FileEntry.from_path(item, base_path))
            except OSError as e:
                # Skip files we can't read
                self.logger.warning(f"Access denied to entry: {item} ({e})")
                continue
            if is_dir:
                subdirectories.append(item)

        for subdirectory in subdirectories:
            if self._cancelled():
                return
            self._scan_directory(subdirectory, base_path, entries)
