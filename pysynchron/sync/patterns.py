"""Wildcard matching for include/exclude patterns."""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from ..exceptions import SynchronPatternError
from ..utils import normalize_path


@dataclass(frozen=True)
class PathMatcher:
    """A compiled include/exclude wildcard.

    Supported syntax:

    - ``*`` matches any run of characters except ``/``
    - ``**`` and ``**/`` match any run of characters including ``/``,
      so ``**/*.log`` also matches ``app.log`` at the root
    - ``?`` matches zero or one character except ``/``

    Matching is case-insensitive. :meth:`test` succeeds when either the
    bare file name or the whole normalized path matches.

    Examples:
        >>> matcher = PathMatcher.compile("*.TXT")
        >>> matcher.test("docs/readme.txt")
        True
        >>> PathMatcher.compile("docs/*").test("docs/a/b.txt")
        False
    """

    pattern: str
    regex: re.Pattern

    @classmethod
    def compile(cls, pattern: str) -> "PathMatcher":
        """Compile a wildcard pattern.

        Raises:
            SynchronPatternError: If the pattern is empty or invalid
        """
        if pattern is None or not pattern.strip():
            raise SynchronPatternError(str(pattern), "pattern is empty")

        normalized = pattern.strip().replace("\\", "/")
        escaped = re.escape(normalized)
        # re.escape turns "*" into "\*" and "?" into "\?"
        body = (
            escaped.replace(r"\*\*/", "\x00")
            .replace(r"\*\*", "\x00")
            .replace(r"\*", "[^/]*")
            .replace(r"\?", "[^/]?")
            .replace("\x00", ".*")
        )
        try:
            regex = re.compile(f"^{body}$", re.IGNORECASE)
        except re.error as e:
            raise SynchronPatternError(pattern, str(e)) from e
        return cls(pattern=pattern, regex=regex)

    def test(self, path: str) -> bool:
        """Check a path against the pattern by file name and by full path."""
        normalized = normalize_path(path)
        if self.regex.match(normalized):
            return True
        name = PurePosixPath(normalized).name
        return bool(name) and bool(self.regex.match(name))
