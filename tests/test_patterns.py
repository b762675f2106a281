"""Tests for include/exclude wildcard matching."""

import pytest

from pysynchron.exceptions import SynchronPatternError
from pysynchron.sync.patterns import PathMatcher


class TestPathMatcherCompile:
    """Tests for PathMatcher.compile."""

    def test_empty_pattern_raises(self):
        with pytest.raises(SynchronPatternError, match="pattern is empty"):
            PathMatcher.compile("")

    def test_whitespace_pattern_raises(self):
        with pytest.raises(SynchronPatternError):
            PathMatcher.compile("   ")

    def test_pattern_text_is_kept(self):
        assert PathMatcher.compile("*.txt").pattern == "*.txt"

    def test_regex_special_characters_are_literal(self):
        matcher = PathMatcher.compile("notes[1].txt")
        assert matcher.test("notes[1].txt")
        assert not matcher.test("notes1.txt")


class TestPathMatcherTest:
    """Tests for PathMatcher.test."""

    def test_case_insensitive(self):
        matcher = PathMatcher.compile("*.TXT")
        assert matcher.test("readme.txt")
        assert matcher.test("README.Txt")

    def test_matches_bare_file_name(self):
        """A name-only pattern matches files at any depth."""
        matcher = PathMatcher.compile("*.log")
        assert matcher.test("app.log")
        assert matcher.test("logs/2024/app.log")

    def test_matches_full_relative_path(self):
        matcher = PathMatcher.compile("docs/*.md")
        assert matcher.test("docs/index.md")
        assert not matcher.test("other/index.md")

    def test_single_star_does_not_cross_directories(self):
        matcher = PathMatcher.compile("docs/*")
        assert matcher.test("docs/a.txt")
        assert not matcher.test("docs/sub/a.txt")

    def test_double_star_crosses_directories(self):
        matcher = PathMatcher.compile("docs/**")
        assert matcher.test("docs/sub/deeper/a.txt")

    def test_double_star_slash_matches_zero_directories(self):
        matcher = PathMatcher.compile("**/*.py")
        assert matcher.test("main.py")
        assert matcher.test("pkg/sub/module.py")

    def test_backslashes_are_normalized(self):
        matcher = PathMatcher.compile("docs\\*.md")
        assert matcher.test("docs\\index.md")
        assert matcher.test("docs/index.md")

    def test_question_mark_matches_zero_or_one_character(self):
        """'?' matches zero or one character, unlike conventional globbing.

        Gitignore rules keep the conventional exactly-one meaning; see
        test_gitignore_parser.py.
        """
        matcher = PathMatcher.compile("file?.txt")
        assert matcher.test("file1.txt")
        assert matcher.test("file.txt")
        assert not matcher.test("file12.txt")

    def test_question_mark_does_not_match_slash(self):
        matcher = PathMatcher.compile("a?b")
        assert not matcher.test("a/b")
