"""Include/exclude and gitignore filtering of candidate paths."""

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from ..exceptions import SynchronPatternError
from ..utils import normalize_path, relative_to_root
from .git_env import GitEnvironmentDetector
from .ignore import GitIgnoreParser, GitIgnoreRule
from .ignore_cache import GitIgnoreRuleCache
from .options import GitIgnoreOptions, IgnoreSource, SyncOptions
from .patterns import PathMatcher

logger = logging.getLogger(__name__)


class FileFilter:
    """Decides which paths take part in a sync.

    A candidate is rejected when, in this order:

    1. gitignore rules are loaded and the path (or one of its parent
       directories) is ignored
    2. it matches an exclude pattern
    3. include patterns exist and none matches

    Patterns are tested against the file name and the normalized relative
    path. Malformed patterns are logged and ignored.

    Examples:
        >>> f = FileFilter(include_patterns=["*.txt"], exclude_patterns=["tmp*"])
        >>> f.is_match("notes.txt")
        True
        >>> f.is_match("tmp_notes.txt")
        False
        >>> f.is_match("image.png")
        False
    """

    def __init__(
        self,
        include_patterns: Optional[Iterable[str]] = None,
        exclude_patterns: Optional[Iterable[str]] = None,
        source_path: Optional[str] = None,
        gitignore: Optional[GitIgnoreOptions] = None,
        rule_cache: Optional[GitIgnoreRuleCache] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the filter.

        Args:
            include_patterns: Wildcards a path must match (if any are given)
            exclude_patterns: Wildcards that reject a path
            source_path: Root of the source tree; required for gitignore rules
            gitignore: Gitignore configuration; None disables gitignore rules
            rule_cache: Shared rule cache; a private one is created if omitted
            logger: Logger for diagnostics (defaults to the module logger)
        """
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.source_path = source_path
        self.gitignore = gitignore
        self._include: list[PathMatcher] = []
        self._exclude: list[PathMatcher] = []
        self._rules: list[GitIgnoreRule] = []
        self._loaded_ignore_files: list[str] = []
        self._parser = GitIgnoreParser(self.logger)
        self._owns_cache = rule_cache is None and gitignore is not None
        self._cache = rule_cache

        for pattern in include_patterns or ():
            self.add_include_pattern(pattern)
        for pattern in exclude_patterns or ():
            self.add_exclude_pattern(pattern)

        if gitignore is not None:
            if self._cache is None:
                self._cache = GitIgnoreRuleCache(start_cleanup=False, logger=self.logger)
            self._load_gitignore(gitignore, self._cache)

    @classmethod
    def from_options(
        cls,
        options: SyncOptions,
        rule_cache: Optional[GitIgnoreRuleCache] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "FileFilter":
        """Build the filter described by a SyncOptions instance."""
        return cls(
            include_patterns=options.include_patterns,
            exclude_patterns=options.exclude_patterns,
            source_path=options.source_path or None,
            gitignore=options.gitignore if options.gitignore.enabled else None,
            rule_cache=rule_cache,
            logger=logger,
        )

    # -------------------------------------------------------------------------
    # Gitignore loading
    # -------------------------------------------------------------------------

    def _load_gitignore(
        self, options: GitIgnoreOptions, cache: GitIgnoreRuleCache
    ) -> None:
        source = options.source
        if source == IgnoreSource.NONE:
            self.logger.debug("GitIgnore filtering is disabled")
            return

        external_path = options.external_path
        if external_path and source in (
            IgnoreSource.EXTERNAL,
            IgnoreSource.EXTERNAL_AND_AUTO_DETECT,
        ):
            self._load_ignore_file(external_path, cache, external=True)
            if source == IgnoreSource.EXTERNAL:
                self.logger.info(
                    "Using external gitignore with override (auto-detection skipped)"
                )
                return

        if self.source_path:
            self._detect_and_load(self.source_path, cache)

    def _detect_and_load(self, source_path: str, cache: GitIgnoreRuleCache) -> None:
        detector = GitEnvironmentDetector(self.logger)
        info = detector.detect_ignore_files_in_path(source_path)
        if not info.is_git_repository and not info.has_gitignore:
            self.logger.debug("No Git environment or .gitignore detected")
            return

        # Shallower files first so that nearer files take precedence
        for path in sorted(info.ignore_files, key=lambda p: len(Path(p).parts)):
            self._load_ignore_file(path, cache)

    def _load_ignore_file(
        self, path: str, cache: GitIgnoreRuleCache, external: bool = False
    ) -> None:
        full_path = os.path.abspath(path)
        if full_path in self._loaded_ignore_files:
            return

        if not os.path.isfile(full_path):
            label = "External gitignore" if external else "GitIgnore"
            self.logger.warning(f"{label} file not found: {path}")
            return

        rules = cache.get(full_path)
        if rules is not None:
            self.logger.debug(f"Using cached rules from: {path}")
        else:
            if external:
                self.logger.info(f"Loading external gitignore: {path}")
            rules = self._parser.parse(full_path)
            cache.set(full_path, rules)

        self._rules.extend(rules)
        self._loaded_ignore_files.append(full_path)

    # -------------------------------------------------------------------------
    # Pattern management
    # -------------------------------------------------------------------------

    def add_include_pattern(self, pattern: str) -> bool:
        """Add an include wildcard; returns False if it could not be compiled."""
        try:
            self._include.append(PathMatcher.compile(pattern))
        except SynchronPatternError as e:
            self.logger.error(f"Invalid include pattern: {e}")
            return False
        self.logger.debug(f"Added include pattern: {pattern}")
        return True

    def add_exclude_pattern(self, pattern: str) -> bool:
        """Add an exclude wildcard; returns False if it could not be compiled."""
        try:
            self._exclude.append(PathMatcher.compile(pattern))
        except SynchronPatternError as e:
            self.logger.error(f"Invalid exclude pattern: {e}")
            return False
        self.logger.debug(f"Added exclude pattern: {pattern}")
        return True

    def clear_patterns(self) -> None:
        self._include.clear()
        self._exclude.clear()
        self.logger.debug("All filter patterns cleared")

    def add_gitignore_rules(self, rules: Iterable[GitIgnoreRule]) -> None:
        rules = list(rules)
        self._rules.extend(rules)
        self.logger.debug(f"Added {len(rules)} gitignore rules")

    def clear_gitignore_rules(self) -> None:
        self._rules.clear()
        self._loaded_ignore_files.clear()
        self.logger.debug("All gitignore rules cleared")

    @property
    def include_patterns(self) -> list[str]:
        return [m.pattern for m in self._include]

    @property
    def exclude_patterns(self) -> list[str]:
        return [m.pattern for m in self._exclude]

    @property
    def gitignore_rule_count(self) -> int:
        return len(self._rules)

    @property
    def loaded_ignore_files(self) -> list[str]:
        return list(self._loaded_ignore_files)

    # -------------------------------------------------------------------------
    # Matching
    # -------------------------------------------------------------------------

    def is_gitignored(self, relative_path: str, is_dir: bool = False) -> bool:
        """Check a relative path and its parent directories against the rules."""
        if not self._rules:
            return False

        parts = PurePosixPath(normalize_path(relative_path)).parts
        for depth in range(1, len(parts)):
            parent = "/".join(parts[:depth])
            if self._parser.is_ignored(parent, True, self._rules):
                return True
        return self._parser.is_ignored("/".join(parts), is_dir, self._rules)

    def is_match(self, path: str, is_dir: bool = False) -> bool:
        """Check whether a path takes part in the sync.

        Args:
            path: Path relative to the source root, or an absolute path
                inside it
            is_dir: Whether the path is a directory

        Returns:
            True if the path passes every filter
        """
        if self.source_path:
            relative_path = relative_to_root(path, self.source_path)
        else:
            relative_path = normalize_path(path)

        if self._rules and self.source_path and self.is_gitignored(relative_path, is_dir):
            self.logger.debug(f"File excluded by gitignore: {path}")
            return False

        if self._exclude and any(m.test(relative_path) for m in self._exclude):
            self.logger.debug(f"File excluded (matches exclude pattern): {path}")
            return False

        if self._include and not any(m.test(relative_path) for m in self._include):
            self.logger.debug(f"File excluded (not in include patterns): {path}")
            return False

        return True

    def close(self) -> None:
        """Release the private rule cache, if this filter created one."""
        if self._owns_cache and self._cache is not None:
            self._cache.close()

    def __enter__(self) -> "FileFilter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
