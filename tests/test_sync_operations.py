"""Tests for SyncOperations."""

import os
import threading
from unittest.mock import Mock, patch

import pytest

from pysynchron.exceptions import SyncCancelledError, SynchronCopyError
from pysynchron.sync.operations import SyncOperations, partial_path
from pysynchron.sync.options import SyncOptions


def make_operations(tmp_path, cancel_event=None, sleep=None, **kwargs):
    options = SyncOptions(
        source_path=str(tmp_path / "source"),
        target_path=str(tmp_path / "target"),
        **kwargs,
    )
    return SyncOperations(options, cancel_event=cancel_event, sleep=sleep or Mock())


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "source" / "data.bin"
    path.parent.mkdir()
    path.write_bytes(b"0123456789" * 500)
    os.utime(path, (1_600_000_000, 1_600_000_000))
    return path


class TestCopyFile:
    """Tests for SyncOperations.copy_file."""

    def test_copies_content_and_creates_parents(self, tmp_path, source_file):
        target = tmp_path / "target" / "nested" / "data.bin"
        ops = make_operations(tmp_path, buffer_size=1024)

        copied = ops.copy_file(source_file, target)

        assert copied == 5000
        assert target.read_bytes() == source_file.read_bytes()

    def test_preserves_timestamps(self, tmp_path, source_file):
        target = tmp_path / "target" / "data.bin"
        make_operations(tmp_path).copy_file(source_file, target)
        assert os.stat(target).st_mtime == 1_600_000_000

    def test_timestamps_not_preserved_when_disabled(self, tmp_path, source_file):
        target = tmp_path / "target" / "data.bin"
        make_operations(tmp_path, preserve_timestamps=False).copy_file(source_file, target)
        assert os.stat(target).st_mtime != 1_600_000_000

    def test_preserves_permissions(self, tmp_path, source_file):
        source_file.chmod(0o640)
        target = tmp_path / "target" / "data.bin"
        make_operations(tmp_path).copy_file(source_file, target)
        assert (os.stat(target).st_mode & 0o777) == 0o640

    def test_verify_hash_passes(self, tmp_path, source_file):
        target = tmp_path / "target" / "data.bin"
        assert make_operations(tmp_path, verify_hash=True).copy_file(source_file, target) == 5000

    def test_verify_hash_mismatch_raises(self, tmp_path, source_file):
        target = tmp_path / "target" / "data.bin"
        ops = make_operations(tmp_path, verify_hash=True, max_retries=0)
        with patch(
            "pysynchron.sync.operations.compute_file_hash", side_effect=["AAAA", "BBBB"]
        ):
            with pytest.raises(SynchronCopyError, match="Hash verification failed"):
                ops.copy_file(source_file, target)

    def test_retries_transient_failure(self, tmp_path, source_file):
        sleep = Mock()
        ops = make_operations(tmp_path, sleep=sleep, max_retries=3, retry_delay_ms=250)
        target = tmp_path / "target" / "data.bin"

        with patch.object(
            ops, "_copy_once", side_effect=[OSError("device busy"), 5000]
        ) as copy_once:
            assert ops.copy_file(source_file, target) == 5000

        assert copy_once.call_count == 2
        sleep.assert_called_once_with(0.25)

    def test_raises_after_retries_exhausted(self, tmp_path, source_file):
        ops = make_operations(tmp_path, max_retries=2)
        target = tmp_path / "target" / "data.bin"

        with patch.object(ops, "_copy_once", side_effect=OSError("device busy")) as copy_once:
            with pytest.raises(OSError, match="device busy"):
                ops.copy_file(source_file, target)

        assert copy_once.call_count == 3

    def test_missing_source_is_not_retried(self, tmp_path):
        sleep = Mock()
        ops = make_operations(tmp_path, sleep=sleep)
        with pytest.raises(FileNotFoundError):
            ops.copy_file(tmp_path / "missing.bin", tmp_path / "target" / "x.bin")
        sleep.assert_not_called()

    def test_cancel_removes_partial_file(self, tmp_path, source_file):
        cancel = threading.Event()
        cancel.set()
        ops = make_operations(tmp_path, cancel_event=cancel)
        target = tmp_path / "target" / "data.bin"

        with pytest.raises(SyncCancelledError):
            ops.copy_file(source_file, target)

        assert not target.exists()
        assert not partial_path(target).exists()

    def test_failed_copy_keeps_existing_target(self, tmp_path, source_file):
        target = tmp_path / "target" / "data.bin"
        target.parent.mkdir()
        target.write_bytes(b"previous version")
        ops = make_operations(tmp_path, verify_hash=True, max_retries=1)

        with patch(
            "pysynchron.sync.operations.compute_file_hash",
            side_effect=["AAAA", "BBBB", "AAAA", "CCCC"],
        ):
            with pytest.raises(SynchronCopyError):
                ops.copy_file(source_file, target)

        assert target.read_bytes() == b"previous version"
        assert sorted(p.name for p in target.parent.iterdir()) == ["data.bin"]

    def test_cancel_keeps_existing_target(self, tmp_path, source_file):
        cancel = threading.Event()
        cancel.set()
        target = tmp_path / "target" / "data.bin"
        target.parent.mkdir()
        target.write_bytes(b"previous version")

        with pytest.raises(SyncCancelledError):
            make_operations(tmp_path, cancel_event=cancel).copy_file(source_file, target)

        assert target.read_bytes() == b"previous version"
        assert not partial_path(target).exists()

    def test_copy_replaces_existing_target(self, tmp_path, source_file):
        target = tmp_path / "target" / "data.bin"
        target.parent.mkdir()
        target.write_bytes(b"previous version")

        make_operations(tmp_path).copy_file(source_file, target)

        assert target.read_bytes() == source_file.read_bytes()
        assert sorted(p.name for p in target.parent.iterdir()) == ["data.bin"]


class TestMoveAndDelete:
    """Tests for move, delete and create_directory."""

    def test_create_directory(self, tmp_path):
        ops = make_operations(tmp_path)
        ops.create_directory(tmp_path / "target" / "a" / "b")
        assert (tmp_path / "target" / "a" / "b").is_dir()

    def test_move_file_replaces_existing(self, tmp_path, source_file):
        target = tmp_path / "target" / "data.bin"
        target.parent.mkdir()
        target.write_bytes(b"old")

        make_operations(tmp_path).move(source_file, target)

        assert not source_file.exists()
        assert target.read_bytes() == b"0123456789" * 500

    def test_move_directory(self, tmp_path):
        source_dir = tmp_path / "source" / "docs"
        source_dir.mkdir(parents=True)
        (source_dir / "a.txt").write_text("a")
        target_dir = tmp_path / "target" / "docs"

        make_operations(tmp_path).move(source_dir, target_dir, is_dir=True)

        assert (target_dir / "a.txt").read_text() == "a"
        assert not source_dir.exists()

    def test_delete_file(self, tmp_path, source_file):
        make_operations(tmp_path).delete(source_file)
        assert not source_file.exists()

    def test_delete_directory_tree(self, tmp_path):
        tree = tmp_path / "target" / "old"
        (tree / "nested").mkdir(parents=True)
        (tree / "nested" / "x.txt").write_text("x")

        make_operations(tmp_path).delete(tree)

        assert not tree.exists()

    def test_delete_missing_is_not_an_error(self, tmp_path):
        make_operations(tmp_path).delete(tmp_path / "nothing-here")

    def test_delete_respects_cancellation(self, tmp_path, source_file):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(SyncCancelledError):
            make_operations(tmp_path, cancel_event=cancel).delete(source_file)
        assert source_file.exists()
