"""Tests for FileComparator and SyncPreview."""

import os
from pathlib import Path

import pytest

from pysynchron.sync.comparator import (
    FileComparator,
    SyncAction,
    SyncDecision,
    SyncPreview,
)
from pysynchron.sync.modes import CompareMethod, ConflictResolution, SyncMode
from pysynchron.sync.options import SyncOptions
from pysynchron.sync.scanner import FileEntry

MTIME = 1_700_000_000


@pytest.fixture
def trees(tmp_path):
    source = tmp_path / "source"
    target = tmp_path / "target"
    source.mkdir()
    target.mkdir()
    return source, target


def write(path: Path, content: bytes, mtime: float = MTIME) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    os.utime(path, (mtime, mtime))
    return path


def make_comparator(source: Path, target: Path, **kwargs) -> FileComparator:
    options = SyncOptions(source_path=str(source), target_path=str(target), **kwargs)
    return FileComparator(options)


class TestFileComparator:
    """Tests for FileComparator.decide."""

    def test_new_file_is_copied(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.txt", b"data"), source)

        decision = make_comparator(source, target).decide(entry)

        assert decision.action == SyncAction.COPY
        assert decision.reason == "New file"

    def test_new_file_in_move_mode(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.txt", b"data"), source)

        decision = make_comparator(source, target, mode=SyncMode.MOVE).decide(entry)

        assert decision.action == SyncAction.MOVE

    def test_new_directory(self, trees):
        source, target = trees
        (source / "docs").mkdir()
        entry = FileEntry.from_path(source / "docs", source)

        decision = make_comparator(source, target).decide(entry)

        assert decision.action == SyncAction.COPY
        assert decision.reason == "New directory"

    def test_existing_directory_needs_nothing(self, trees):
        source, target = trees
        (source / "docs").mkdir()
        (target / "docs").mkdir()
        entry = FileEntry.from_path(source / "docs", source)

        assert make_comparator(source, target).decide(entry) is None

    def test_identical_files_are_skipped(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.txt", b"data"), source)
        write(target / "a.txt", b"data")

        decision = make_comparator(source, target).decide(entry)

        assert decision.action == SyncAction.SKIP
        assert decision.reason == "Files are identical (timestamp_and_size)"

    def test_existing_target_matched_ignoring_case(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "Notes.TXT", b"data"), source)
        write(target / "notes.txt", b"data")

        decision = make_comparator(source, target).decide(entry)

        assert decision.action == SyncAction.SKIP
        assert decision.destination == "notes.txt"

    def test_changed_target_with_other_case_is_overwritten_in_place(self, trees):
        source, target = trees
        entry = FileEntry.from_path(
            write(source / "Notes.txt", b"longer data", mtime=MTIME + 5), source
        )
        write(target / "notes.txt", b"data")

        decision = make_comparator(
            source, target, conflict_resolution=ConflictResolution.OVERWRITE
        ).decide(entry)

        assert decision.action == SyncAction.COPY
        assert decision.destination == "notes.txt"

    def test_resolve_target_keeps_parent_casing(self, trees):
        source, target = trees
        (target / "Data").mkdir()
        comparator = make_comparator(source, target)

        assert comparator.resolve_target("data/new.csv") == ("Data/new.csv", None)
        assert comparator.resolve_target("other/new.csv") == ("other/new.csv", None)

    def test_size_only_detects_size_change(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.bin", b"x" * 100), source)
        write(target / "a.bin", b"x" * 50)

        decision = make_comparator(
            source, target, compare_method=CompareMethod.SIZE_ONLY,
            conflict_resolution=ConflictResolution.OVERWRITE,
        ).decide(entry)

        assert decision.action == SyncAction.COPY
        assert decision.reason == "Source file changed"

    def test_size_only_ignores_timestamps(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.txt", b"data", MTIME + 100), source)
        write(target / "a.txt", b"data")

        decision = make_comparator(
            source, target, compare_method=CompareMethod.SIZE_ONLY
        ).decide(entry)

        assert decision.action == SyncAction.SKIP

    def test_timestamp_only_newer_source(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.txt", b"data", MTIME + 100), source)
        write(target / "a.txt", b"data")

        decision = make_comparator(
            source, target, compare_method=CompareMethod.TIMESTAMP_ONLY
        ).decide(entry)

        assert decision.action == SyncAction.COPY

    def test_timestamp_only_older_source(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.txt", b"new", MTIME - 100), source)
        write(target / "a.txt", b"older-but-bigger")

        decision = make_comparator(
            source, target, compare_method=CompareMethod.TIMESTAMP_ONLY
        ).decide(entry)

        assert decision.action == SyncAction.SKIP

    def test_hash_detects_same_size_change(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.txt", b"aaaa"), source)
        write(target / "a.txt", b"bbbb")

        decision = make_comparator(
            source, target, compare_method=CompareMethod.HASH
        ).decide(entry)

        assert decision.action == SyncAction.COPY

    def test_hash_identical_content(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.txt", b"same", MTIME + 50), source)
        write(target / "a.txt", b"same")

        decision = make_comparator(
            source, target, compare_method=CompareMethod.HASH
        ).decide(entry)

        assert decision.action == SyncAction.SKIP


class TestConflictResolution:
    """Tests for conflict policies on changed target files."""

    @pytest.fixture
    def changed(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "a.txt", b"new content"), source)
        write(target / "a.txt", b"old")
        return source, target, entry

    def test_skip_policy(self, changed):
        source, target, entry = changed
        decision = make_comparator(
            source, target, conflict_resolution=ConflictResolution.SKIP
        ).decide(entry)
        assert decision.action == SyncAction.SKIP

    def test_ask_policy_is_skipped(self, changed):
        source, target, entry = changed
        decision = make_comparator(
            source, target, conflict_resolution=ConflictResolution.ASK
        ).decide(entry)
        assert decision.action == SyncAction.SKIP
        assert decision.reason == "Conflict requires confirmation"

    def test_rename_policy(self, changed):
        source, target, entry = changed
        decision = make_comparator(
            source, target, conflict_resolution=ConflictResolution.RENAME
        ).decide(entry)
        assert decision.action == SyncAction.COPY
        assert decision.destination == "a (1).txt"

    def test_rename_policy_picks_free_name(self, changed):
        source, target, entry = changed
        write(target / "a (1).txt", b"taken")
        decision = make_comparator(
            source, target, conflict_resolution=ConflictResolution.RENAME
        ).decide(entry)
        assert decision.destination == "a (2).txt"

    def test_rename_keeps_subdirectory(self, trees):
        source, target = trees
        entry = FileEntry.from_path(write(source / "docs" / "a.txt", b"new"), source)
        write(target / "docs" / "a.txt", b"old content")
        decision = make_comparator(
            source, target, conflict_resolution=ConflictResolution.RENAME
        ).decide(entry)
        assert decision.destination == "docs/a (1).txt"


class TestSyncPreview:
    """Tests for SyncPreview bookkeeping."""

    def test_add_sorts_by_action(self, tmp_path):
        path = write(tmp_path / "a.txt", b"12345")
        entry = FileEntry.from_path(path, tmp_path)
        preview = SyncPreview()

        preview.add(SyncDecision(SyncAction.COPY, "New file", entry, "a.txt"))
        preview.add(SyncDecision(SyncAction.MOVE, "New file", entry, "a.txt"))
        preview.add(SyncDecision(SyncAction.DELETE, "Not present in source", entry, "a.txt"))
        preview.add(SyncDecision(SyncAction.SKIP, "Files are identical", entry, "a.txt"))

        assert preview.total_files == 3
        assert preview.total_bytes == 10
        assert preview.summary() == "1 to copy, 1 to move, 1 to delete, 1 to skip"
