"""Gitignore-style rule parsing and evaluation.

Rules are parsed line by line from ``.gitignore`` content. Evaluation
follows gitignore precedence: every rule is checked in file order and the
last matching rule decides whether a path is ignored (a negated rule
``!pattern`` re-includes it).

Supported syntax:

- blank lines and ``#`` comments are skipped; ``\\#`` escapes a literal ``#``
- ``!pattern`` negates a rule
- ``pattern/`` only matches directories
- ``/pattern`` is anchored to the root of the tree
- ``*`` matches anything except ``/``, ``?`` matches one character except
  ``/``, ``**/`` matches zero or more directories, ``a/**/b`` matches zero or
  more intermediate directories and a trailing ``**`` matches everything
- a rule that is not directory-only also matches everything below a
  matching directory
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from ..utils import normalize_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitIgnoreRule:
    """A single parsed line of an ignore file."""

    pattern: str
    """Pattern text with the !, leading / and trailing / markers removed"""

    negation: bool
    """Rule re-includes matching paths"""

    directory_only: bool
    """Rule only applies to directories"""

    anchored: bool
    """Rule only matches from the root of the tree"""

    regex: Optional[re.Pattern]
    """Compiled matcher; None if the pattern could not be compiled"""

    source_file: str = ""
    """File the rule was read from (for diagnostics)"""

    line_number: int = 0
    """1-based line number in source_file"""

    def matches(self, relative_path: str, is_dir: bool = False) -> bool:
        """Check whether this rule matches a normalized relative path."""
        if self.regex is None:
            return False
        if self.directory_only and not is_dir:
            return False
        return self.regex.search(relative_path) is not None

    def __str__(self) -> str:
        prefix = "!" if self.negation else ""
        anchor = "/" if self.anchored else ""
        suffix = "/" if self.directory_only else ""
        return f"{prefix}{anchor}{self.pattern}{suffix}"


def _translate(pattern: str, anchored: bool, directory_only: bool) -> str:
    """Translate a gitignore pattern body into a regular expression."""
    parts = ["^" if anchored else "(?:^|/)"]
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "/" and pattern.startswith("/**/", i):
            # a/**/b: zero or more intermediate directories
            parts.append("/(?:.*/)?")
            i += 4
            continue
        if c == "*":
            if i + 1 < n and pattern[i + 1] == "*":
                if i + 2 < n and pattern[i + 2] == "/":
                    parts.append("(?:.*/)?")
                    i += 3
                    continue
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif c == "?":
            parts.append("[^/]")
        elif c == "\\":
            if i + 1 < n:
                parts.append(re.escape(pattern[i + 1]))
                i += 1
        else:
            parts.append(re.escape(c))
        i += 1

    parts.append("(?:/|$)" if directory_only else "(?:/.*)?$")
    return "".join(parts)


class GitIgnoreParser:
    """Parses ignore files into rules and evaluates paths against them.

    Examples:
        >>> parser = GitIgnoreParser()
        >>> rules = parser.parse_content("*.txt\\n!keep.txt\\n", "example")
        >>> parser.is_ignored("other.txt", False, rules)
        True
        >>> parser.is_ignored("keep.txt", False, rules)
        False
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize the parser.

        Args:
            logger: Logger for diagnostics (defaults to the module logger)
        """
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def parse(self, file_path: Union[str, Path]) -> list[GitIgnoreRule]:
        """Read and parse an ignore file.

        A missing or unreadable file yields an empty rule list.

        Args:
            file_path: Path of the ignore file

        Returns:
            Rules in file order
        """
        path = Path(file_path)
        if not path.is_file():
            self.logger.warning(f"GitIgnore file not found: {path}")
            return []

        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            self.logger.error(f"Failed to read gitignore file {path}: {e}")
            return []

        return self.parse_content(content, str(path))

    def parse_content(self, content: str, source_file: str = "") -> list[GitIgnoreRule]:
        """Parse ignore file content.

        Args:
            content: Text of the ignore file
            source_file: Label recorded on each rule

        Returns:
            Rules in file order
        """
        rules: list[GitIgnoreRule] = []
        for line_number, line in enumerate(content.splitlines(), start=1):
            rule = self.parse_line(line, source_file, line_number)
            if rule is not None:
                rules.append(rule)
                self.logger.debug(f"Parsed gitignore rule: {rule} (line {line_number})")

        self.logger.info(f"Parsed {len(rules)} gitignore rules from {source_file}")
        return rules

    def parse_line(
        self, line: str, source_file: str = "", line_number: int = 0
    ) -> Optional[GitIgnoreRule]:
        """Parse a single line; returns None for blank lines and comments."""
        text = line.strip()
        if not text or text.startswith("#"):
            return None

        if text.startswith("\\#"):
            text = text[1:]

        negation = text.startswith("!")
        if negation:
            text = text[1:]

        directory_only = text.endswith("/")
        if directory_only:
            text = text.rstrip("/")

        anchored = text.startswith("/")
        if anchored:
            text = text.lstrip("/")

        regex: Optional[re.Pattern] = None
        if text:
            try:
                regex = re.compile(
                    _translate(text, anchored, directory_only), re.IGNORECASE
                )
            except re.error as e:
                self.logger.warning(
                    f"Invalid gitignore pattern '{line.strip()}' "
                    f"({source_file}:{line_number}): {e}"
                )
        else:
            self.logger.warning(
                f"Empty gitignore pattern '{line.strip()}' ({source_file}:{line_number})"
            )

        return GitIgnoreRule(
            pattern=text,
            negation=negation,
            directory_only=directory_only,
            anchored=anchored,
            regex=regex,
            source_file=source_file,
            line_number=line_number,
        )

    def is_ignored(
        self, relative_path: str, is_dir: bool, rules: Iterable[GitIgnoreRule]
    ) -> bool:
        """Evaluate a path against rules; the last matching rule wins.

        Args:
            relative_path: Path relative to the tree root
            is_dir: Whether the path is a directory
            rules: Rules in precedence order (later rules override earlier)

        Returns:
            True if the path is ignored
        """
        normalized = normalize_path(relative_path)
        ignored = False
        for rule in rules:
            if rule.matches(normalized, is_dir):
                ignored = not rule.negation
                self.logger.debug(
                    f"Path '{relative_path}' "
                    f"{'ignored' if ignored else 'un-ignored'} by rule: {rule}"
                )
        return ignored


def load_ignore_file(
    file_path: Union[str, Path], logger: Optional[logging.Logger] = None
) -> list[GitIgnoreRule]:
    """Parse an ignore file with a default parser."""
    return GitIgnoreParser(logger).parse(file_path)
