"""Tests for gitignore rule parsing and evaluation."""

import pytest

from pysynchron.sync.ignore import GitIgnoreParser, load_ignore_file


@pytest.fixture
def parser():
    return GitIgnoreParser()


class TestParseLine:
    """Tests for GitIgnoreParser.parse_line."""

    def test_blank_line_is_skipped(self, parser):
        assert parser.parse_line("   ") is None

    def test_comment_is_skipped(self, parser):
        assert parser.parse_line("# build output") is None

    def test_escaped_hash_is_literal(self, parser):
        rule = parser.parse_line("\\#notes.txt")
        assert rule is not None
        assert rule.pattern == "#notes.txt"
        assert rule.matches("#notes.txt")

    def test_negation(self, parser):
        rule = parser.parse_line("!keep.txt")
        assert rule.negation
        assert rule.pattern == "keep.txt"

    def test_directory_only(self, parser):
        rule = parser.parse_line("node_modules/")
        assert rule.directory_only
        assert rule.pattern == "node_modules"

    def test_anchored(self, parser):
        rule = parser.parse_line("/root.txt")
        assert rule.anchored
        assert rule.pattern == "root.txt"

    def test_str_restores_markers(self, parser):
        assert str(parser.parse_line("!/build/")) == "!/build/"

    def test_source_and_line_are_recorded(self, parser):
        rule = parser.parse_line("*.tmp", "/repo/.gitignore", 7)
        assert rule.source_file == "/repo/.gitignore"
        assert rule.line_number == 7


class TestParseContent:
    """Tests for GitIgnoreParser.parse_content."""

    def test_rules_in_file_order(self, parser):
        rules = parser.parse_content("# header\n*.log\n\nbuild/\n!important.log\n")
        assert [str(r) for r in rules] == ["*.log", "build/", "!important.log"]
        assert [r.line_number for r in rules] == [2, 4, 5]

    def test_inert_rule_is_kept(self, parser):
        """A pattern that yields no matcher stays in the list but never matches."""
        rules = parser.parse_content("!\n*.txt\n")
        assert len(rules) == 2
        assert rules[0].regex is None
        assert not rules[0].matches("anything")
        assert rules[1].line_number == 2

    def test_crlf_line_endings(self, parser):
        rules = parser.parse_content("*.log\r\n*.tmp\r\n")
        assert [r.pattern for r in rules] == ["*.log", "*.tmp"]


class TestIsIgnored:
    """Tests for GitIgnoreParser.is_ignored."""

    def test_last_matching_rule_wins(self, parser):
        rules = parser.parse_content("*.txt\n!keep.txt\n")
        assert parser.is_ignored("keep.txt", False, rules) is False
        assert parser.is_ignored("other.txt", False, rules) is True

    def test_later_rule_can_re_ignore(self, parser):
        rules = parser.parse_content("*.txt\n!keep.txt\nkeep.txt\n")
        assert parser.is_ignored("keep.txt", False, rules) is True

    def test_directory_only_rule(self, parser):
        rules = parser.parse_content("node_modules/\n")
        assert parser.is_ignored("node_modules", True, rules) is True
        assert parser.is_ignored("node_modules", False, rules) is False

    def test_anchored_rule(self, parser):
        rules = parser.parse_content("/root.txt\n")
        assert parser.is_ignored("root.txt", False, rules) is True
        assert parser.is_ignored("sub/root.txt", False, rules) is False

    def test_unanchored_rule_matches_at_any_depth(self, parser):
        rules = parser.parse_content("*.log\n")
        assert parser.is_ignored("debug.log", False, rules)
        assert parser.is_ignored("logs/2024/debug.log", False, rules)

    def test_rule_matches_descendants(self, parser):
        rules = parser.parse_content("build\n")
        assert parser.is_ignored("build/output/app.o", False, rules)

    def test_double_star_in_middle(self, parser):
        rules = parser.parse_content("a/**/b\n")
        assert parser.is_ignored("a/b", False, rules)
        assert parser.is_ignored("a/x/y/b", False, rules)

    def test_leading_double_star(self, parser):
        rules = parser.parse_content("**/cache\n")
        assert parser.is_ignored("cache", True, rules)
        assert parser.is_ignored("deep/nested/cache", True, rules)

    def test_trailing_double_star(self, parser):
        rules = parser.parse_content("/vendor/**\n")
        assert parser.is_ignored("vendor/lib/a.py", False, rules)
        assert not parser.is_ignored("src/vendor.py", False, rules)

    def test_question_mark_matches_exactly_one_character(self, parser):
        rules = parser.parse_content("file?.txt\n")
        assert parser.is_ignored("file1.txt", False, rules)
        assert not parser.is_ignored("file.txt", False, rules)

    def test_case_insensitive(self, parser):
        rules = parser.parse_content("*.LOG\n")
        assert parser.is_ignored("debug.log", False, rules)

    def test_no_rules(self, parser):
        assert parser.is_ignored("anything.txt", False, []) is False


class TestParseFile:
    """Tests for reading ignore files from disk."""

    def test_missing_file_returns_empty(self, parser, tmp_path):
        assert parser.parse(tmp_path / ".gitignore") == []

    def test_parse_file(self, tmp_path):
        ignore_file = tmp_path / ".gitignore"
        ignore_file.write_text("*.pyc\n__pycache__/\n", encoding="utf-8")

        rules = load_ignore_file(ignore_file)

        assert len(rules) == 2
        assert rules[0].source_file == str(ignore_file)
