"""File comparison logic for sync operations."""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Optional

from ..utils import compute_file_hash
from .modes import CompareMethod, ConflictResolution, SyncMode
from .options import SyncOptions
from .scanner import DirectoryScanner, FileEntry

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    COPY = "copy"
    """Copy the source entry to the target (create directories)"""

    MOVE = "move"
    """Move the source entry into the target"""

    DELETE = "delete"
    """Delete the target entry"""

    SKIP = "skip"
    """Skip entry (no action needed)"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync an entry."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    entry: FileEntry
    """Source entry (target entry for deletions)"""

    relative_path: str
    """Relative path of the entry"""

    target_relative_path: Optional[str] = None
    """Where the entry lands in the target, if different from relative_path"""

    @property
    def destination(self) -> str:
        """Relative path the action writes to or deletes."""
        return self.target_relative_path or self.relative_path


@dataclass
class SyncPreview:
    """Pending actions computed before any filesystem change."""

    to_copy: list[SyncDecision] = field(default_factory=list)
    to_move: list[SyncDecision] = field(default_factory=list)
    to_delete: list[SyncDecision] = field(default_factory=list)
    to_skip: list[SyncDecision] = field(default_factory=list)
    total_bytes: int = 0
    """Bytes of all copy and move entries"""

    @property
    def total_files(self) -> int:
        """Number of entries that will change the target."""
        return len(self.to_copy) + len(self.to_move) + len(self.to_delete)

    def add(self, decision: SyncDecision) -> None:
        if decision.action == SyncAction.COPY:
            self.to_copy.append(decision)
            self.total_bytes += decision.entry.size
        elif decision.action == SyncAction.MOVE:
            self.to_move.append(decision)
            self.total_bytes += decision.entry.size
        elif decision.action == SyncAction.DELETE:
            self.to_delete.append(decision)
        else:
            self.to_skip.append(decision)

    def summary(self) -> str:
        return (
            f"{len(self.to_copy)} to copy, {len(self.to_move)} to move, "
            f"{len(self.to_delete)} to delete, {len(self.to_skip)} to skip"
        )


def _free_conflict_name(target_path: Path) -> Path:
    """Return the first unused '<stem> (n)<suffix>' next to target_path."""
    counter = 1
    while True:
        candidate = target_path.with_name(
            f"{target_path.stem} ({counter}){target_path.suffix}"
        )
        if not candidate.exists():
            return candidate
        counter += 1


class FileComparator:
    """Decides the action for each source entry against the target tree."""

    def __init__(
        self,
        options: SyncOptions,
        logger: Optional[logging.Logger] = None,
        target_entries: Optional[list[FileEntry]] = None,
    ):
        """Initialize file comparator.

        Args:
            options: Sync options (mode, comparison method, conflict policy)
            logger: Logger for diagnostics (defaults to the module logger)
            target_entries: Entries of the target tree; scanned on first
                use when not given
        """
        self.options = options
        self.target_root = Path(options.target_path)
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._target_index: Optional[dict[str, FileEntry]] = None
        if target_entries is not None:
            self._target_index = self._build_index(target_entries)

    @property
    def sync_mode(self) -> SyncMode:
        return self.options.mode

    @staticmethod
    def _build_index(entries: list[FileEntry]) -> dict[str, FileEntry]:
        return {entry.relative_path.casefold(): entry for entry in entries}

    @property
    def target_index(self) -> dict[str, FileEntry]:
        """Target entries keyed by casefolded relative path."""
        if self._target_index is None:
            entries: list[FileEntry] = []
            if self.target_root.is_dir():
                scanner = DirectoryScanner(
                    recursive=self.options.include_subdirectories, logger=self.logger
                )
                entries = scanner.scan(self.target_root)
            self._target_index = self._build_index(entries)
        return self._target_index

    def resolve_target(self, relative_path: str) -> tuple[str, Optional[FileEntry]]:
        """Map a source relative path onto the target tree, ignoring case.

        Existing target names keep their casing, and so do existing parent
        directories of a new entry.

        Returns:
            Tuple of (target relative path, existing target entry or None)
        """
        index = self.target_index
        existing = index.get(relative_path.casefold())
        if existing is not None:
            return existing.relative_path, existing

        parts = relative_path.split("/")
        for depth in range(len(parts) - 1, 0, -1):
            parent = index.get("/".join(parts[:depth]).casefold())
            if parent is not None and parent.is_dir:
                return "/".join([parent.relative_path, *parts[depth:]]), None
        return relative_path, None

    def decide(self, entry: FileEntry) -> Optional[SyncDecision]:
        """Decide what to do with a source entry.

        Returns:
            SyncDecision, or None for a directory that already exists in
            the target (directories are implicitly satisfied)
        """
        target_relative, existing = self.resolve_target(entry.relative_path)
        renamed_to = target_relative if target_relative != entry.relative_path else None

        if entry.is_dir:
            if existing is not None and existing.is_dir:
                return None
            return SyncDecision(
                action=SyncAction.COPY,
                reason="New directory",
                entry=entry,
                relative_path=entry.relative_path,
                target_relative_path=renamed_to,
            )

        if existing is None or existing.is_dir:
            return SyncDecision(
                action=SyncAction.MOVE if self.sync_mode.moves_files else SyncAction.COPY,
                reason="New file",
                entry=entry,
                relative_path=entry.relative_path,
                target_relative_path=renamed_to,
            )

        return self._compare_existing_file(entry, existing.path, target_relative)

    def needs_update(self, entry: FileEntry, target_path: Path) -> bool:
        """Apply the configured comparison method to an existing target file."""
        stat = os.stat(target_path)
        method = self.options.compare_method
        if method == CompareMethod.SIZE_ONLY:
            return entry.size != stat.st_size
        if method == CompareMethod.TIMESTAMP_ONLY:
            return entry.mtime > stat.st_mtime
        if method == CompareMethod.HASH:
            return entry.content_hash() != compute_file_hash(
                target_path, self.options.buffer_size
            )
        return entry.size != stat.st_size or entry.mtime > stat.st_mtime

    def _compare_existing_file(
        self, entry: FileEntry, target_path: Path, target_relative: str
    ) -> SyncDecision:
        """Compare a file that exists in both trees."""
        destination = target_relative if target_relative != entry.relative_path else None
        if not self.needs_update(entry, target_path):
            return SyncDecision(
                action=SyncAction.SKIP,
                reason=f"Files are identical ({self.options.compare_method.value})",
                entry=entry,
                relative_path=entry.relative_path,
                target_relative_path=destination,
            )

        action = SyncAction.MOVE if self.sync_mode.moves_files else SyncAction.COPY
        policy = self.options.conflict_resolution

        if policy == ConflictResolution.ASK:
            # The engine never prompts; interactive front ends resolve these
            return SyncDecision(
                action=SyncAction.SKIP,
                reason="Conflict requires confirmation",
                entry=entry,
                relative_path=entry.relative_path,
                target_relative_path=destination,
            )

        if policy == ConflictResolution.SKIP:
            return SyncDecision(
                action=SyncAction.SKIP,
                reason="Target differs, kept by conflict policy",
                entry=entry,
                relative_path=entry.relative_path,
                target_relative_path=destination,
            )

        if policy == ConflictResolution.RENAME:
            renamed = _free_conflict_name(target_path)
            return SyncDecision(
                action=action,
                reason=f"Target differs, writing alongside as {renamed.name}",
                entry=entry,
                relative_path=entry.relative_path,
                target_relative_path=str(
                    PurePosixPath(target_relative).with_name(renamed.name)
                ),
            )

        return SyncDecision(
            action=action,
            reason="Source file changed",
            entry=entry,
            relative_path=entry.relative_path,
            target_relative_path=destination,
        )
