"""Tests for FileFilter."""

import os

import pytest

from pysynchron.sync.filter import FileFilter
from pysynchron.sync.ignore import GitIgnoreParser
from pysynchron.sync.ignore_cache import GitIgnoreRuleCache
from pysynchron.sync.options import GitIgnoreOptions, SyncOptions


@pytest.fixture
def repo(tmp_path):
    root = tmp_path / "repo"
    (root / ".git").mkdir(parents=True)
    (root / ".gitignore").write_text(
        "*.log\nnode_modules/\n!keep.log\n", encoding="utf-8"
    )
    return root


class TestPatternFiltering:
    """Tests for include/exclude patterns."""

    def test_no_patterns_accept_everything(self):
        assert FileFilter().is_match("any/file.bin")

    def test_include_patterns(self):
        file_filter = FileFilter(include_patterns=["*.txt"])
        assert file_filter.is_match("notes.txt")
        assert file_filter.is_match("docs/notes.txt")
        assert not file_filter.is_match("image.png")

    def test_exclude_wins_over_include(self):
        file_filter = FileFilter(include_patterns=["*.txt"], exclude_patterns=["tmp*"])
        assert not file_filter.is_match("tmp_notes.txt")

    def test_invalid_pattern_is_ignored(self):
        file_filter = FileFilter(include_patterns=["", "*.txt"])
        assert file_filter.include_patterns == ["*.txt"]
        assert file_filter.add_exclude_pattern("  ") is False

    def test_absolute_paths_are_made_relative(self, tmp_path):
        file_filter = FileFilter(exclude_patterns=["build/*"], source_path=str(tmp_path))
        assert not file_filter.is_match(str(tmp_path / "build" / "out.o"))
        assert file_filter.is_match(str(tmp_path / "src" / "main.c"))

    def test_clear_patterns(self):
        file_filter = FileFilter(include_patterns=["*.txt"])
        file_filter.clear_patterns()
        assert file_filter.is_match("image.png")


class TestGitIgnoreFiltering:
    """Tests for gitignore integration."""

    def test_auto_detected_rules(self, repo):
        with FileFilter(source_path=str(repo), gitignore=GitIgnoreOptions()) as f:
            assert f.gitignore_rule_count == 3
            assert not f.is_match("debug.log")
            assert f.is_match("keep.log")
            assert f.is_match("main.py")

    def test_directory_only_rule_excludes_contents(self, repo):
        with FileFilter(source_path=str(repo), gitignore=GitIgnoreOptions()) as f:
            assert not f.is_match("node_modules", is_dir=True)
            assert not f.is_match("node_modules/pkg/index.js")
            assert f.is_match("node_modules")

    def test_source_below_repository_root(self, repo):
        source = repo / "sub"
        source.mkdir()
        with FileFilter(source_path=str(source), gitignore=GitIgnoreOptions()) as f:
            assert f.loaded_ignore_files == [str(repo / ".gitignore")]
            assert not f.is_match("trace.log")

    def test_nested_ignore_file_rules_apply_last(self, repo):
        source = repo / "sub"
        source.mkdir()
        (source / ".gitignore").write_text("!debug.log\n", encoding="utf-8")
        with FileFilter(source_path=str(source), gitignore=GitIgnoreOptions()) as f:
            assert f.is_match("debug.log")

    def test_disabled_gitignore(self, repo):
        options = SyncOptions(
            source_path=str(repo),
            target_path=str(repo.parent / "target"),
            gitignore=GitIgnoreOptions(enabled=False),
        )
        with FileFilter.from_options(options) as f:
            assert f.gitignore_rule_count == 0
            assert f.is_match("debug.log")

    def test_external_override_skips_detection(self, repo, tmp_path):
        external = tmp_path / "custom.ignore"
        external.write_text("*.py\n", encoding="utf-8")
        gitignore = GitIgnoreOptions(
            external_path=str(external), override_auto_detect=True
        )

        with FileFilter(source_path=str(repo), gitignore=gitignore) as f:
            assert f.loaded_ignore_files == [os.path.abspath(external)]
            assert not f.is_match("main.py")
            assert f.is_match("debug.log")

    def test_external_and_detected_rules(self, repo, tmp_path):
        external = tmp_path / "custom.ignore"
        external.write_text("*.py\n", encoding="utf-8")
        gitignore = GitIgnoreOptions(external_path=str(external))

        with FileFilter(source_path=str(repo), gitignore=gitignore) as f:
            assert len(f.loaded_ignore_files) == 2
            assert not f.is_match("main.py")
            assert not f.is_match("debug.log")

    def test_missing_external_file_is_skipped(self, repo, tmp_path):
        gitignore = GitIgnoreOptions(
            external_path=str(tmp_path / "missing.ignore"), override_auto_detect=True
        )
        with FileFilter(source_path=str(repo), gitignore=gitignore) as f:
            assert f.gitignore_rule_count == 0

    def test_gitignore_without_source_path(self):
        with FileFilter(gitignore=GitIgnoreOptions()) as f:
            assert f.gitignore_rule_count == 0
            assert f.loaded_ignore_files == []
            assert f.is_match("debug.log")

    def test_external_file_without_source_path(self, tmp_path):
        external = tmp_path / "custom.ignore"
        external.write_text("*.py\n", encoding="utf-8")

        with FileFilter(gitignore=GitIgnoreOptions(external_path=str(external))) as f:
            assert f.loaded_ignore_files == [os.path.abspath(external)]
            assert not f.is_match("main.py")

    def test_shared_cache_is_reused(self, repo):
        cache = GitIgnoreRuleCache(start_cleanup=False)
        try:
            FileFilter(source_path=str(repo), gitignore=GitIgnoreOptions(), rule_cache=cache)
            assert len(cache) == 1
            with FileFilter(
                source_path=str(repo), gitignore=GitIgnoreOptions(), rule_cache=cache
            ) as second:
                assert second.gitignore_rule_count == 3
            # A filter never closes a cache it was given
            assert len(cache) == 1
        finally:
            cache.close()

    def test_add_and_clear_rules(self, tmp_path):
        file_filter = FileFilter(source_path=str(tmp_path))
        file_filter.add_gitignore_rules(GitIgnoreParser().parse_content("*.bak\n"))
        assert not file_filter.is_match("old.bak")

        file_filter.clear_gitignore_rules()
        assert file_filter.is_match("old.bak")
