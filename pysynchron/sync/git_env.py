"""Detection of Git repositories and ignore files above a directory."""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from ..utils import GIT_MARKER_NAME, GITIGNORE_FILE_NAME

logger = logging.getLogger(__name__)


@dataclass
class GitEnvironmentInfo:
    """What was found while ascending from a directory."""

    is_git_repository: bool = False
    """A repository marker (.git directory or file) was found"""

    git_directory: Optional[str] = None
    """Path of the repository marker"""

    repository_root: Optional[str] = None
    """Directory containing the repository marker"""

    gitignore_file: Optional[str] = None
    """Primary ignore file (repository root, or closest on the ascent)"""

    additional_ignore_files: list[str] = field(default_factory=list)
    """Further ignore files found on the ascent"""

    @property
    def has_gitignore(self) -> bool:
        """True if any ignore file was found."""
        return bool(self.gitignore_file) or bool(self.additional_ignore_files)

    @property
    def ignore_files(self) -> list[str]:
        """Primary ignore file followed by the additional ones, deduplicated."""
        files: list[str] = []
        for path in [self.gitignore_file, *self.additional_ignore_files]:
            if path and path not in files:
                files.append(path)
        return files

    def __str__(self) -> str:
        if not self.is_git_repository:
            return "Not a Git repository"
        gitignore = self.gitignore_file or "none"
        return f"Git repository at {self.repository_root} (.gitignore: {gitignore})"


class GitEnvironmentDetector:
    """Walks upward from a directory looking for a repository and ignore files."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def detect(self, directory: str) -> GitEnvironmentInfo:
        """Ascend from ``directory`` to the filesystem root.

        The ascent stops at the first directory containing a ``.git``
        directory or file; that directory is the repository root and its
        ``.gitignore`` (if any) becomes the primary ignore file. Without a
        repository the closest ``.gitignore`` seen is still reported.

        Args:
            directory: Directory to start from

        Returns:
            GitEnvironmentInfo describing what was found
        """
        if not os.path.isdir(directory):
            self.logger.warning(f"Directory does not exist: {directory}")
            return GitEnvironmentInfo()

        current = os.path.abspath(directory)
        git_dir: Optional[str] = None
        repo_root: Optional[str] = None
        gitignore_file: Optional[str] = None

        while True:
            candidate_git = os.path.join(current, GIT_MARKER_NAME)
            candidate_ignore = os.path.join(current, GITIGNORE_FILE_NAME)

            if os.path.exists(candidate_git):
                git_dir = candidate_git
                repo_root = current
                self.logger.debug(f"Found Git repository at: {current}")
                if os.path.isfile(candidate_ignore):
                    gitignore_file = candidate_ignore
                    self.logger.debug(f"Found .gitignore at: {candidate_ignore}")
                break

            if gitignore_file is None and os.path.isfile(candidate_ignore):
                gitignore_file = candidate_ignore
                self.logger.debug(f"Found .gitignore at: {candidate_ignore}")

            parent = os.path.dirname(current)
            if parent == current or not os.path.isdir(parent):
                break
            current = parent

        info = GitEnvironmentInfo(
            is_git_repository=git_dir is not None,
            git_directory=git_dir,
            repository_root=repo_root,
            gitignore_file=gitignore_file,
        )

        if info.is_git_repository:
            self.logger.info(f"Git environment detected: {info}")
        else:
            self.logger.debug("No Git environment detected")

        return info

    def detect_with_external_ignore(
        self, directory: str, external_ignore_path: str
    ) -> GitEnvironmentInfo:
        """Detect the environment but use an external ignore file instead.

        If the external file does not exist the detected info is returned
        unchanged.
        """
        info = self.detect(directory)

        if not external_ignore_path or not os.path.isfile(external_ignore_path):
            self.logger.warning(f"External gitignore file not found: {external_ignore_path}")
            return info

        self.logger.info(f"Using external gitignore file: {external_ignore_path}")
        info.gitignore_file = os.path.abspath(external_ignore_path)
        info.additional_ignore_files = []
        return info

    def detect_ignore_files_in_path(self, directory: str) -> GitEnvironmentInfo:
        """Detect the environment and collect every ignore file on the ascent.

        Ignore files are collected from ``directory`` up to the repository
        root (or the filesystem root without a repository) and ordered
        outermost first, so rules from nearer files take precedence.
        """
        info = self.detect(directory)
        if not os.path.isdir(directory):
            return info

        stop_at = info.repository_root
        current = os.path.abspath(directory)
        found: list[str] = []
        while True:
            candidate = os.path.join(current, GITIGNORE_FILE_NAME)
            if os.path.isfile(candidate) and candidate != info.gitignore_file:
                found.append(candidate)
            if stop_at is not None and current == stop_at:
                break
            parent = os.path.dirname(current)
            if parent == current:
                break
            current = parent

        found.reverse()
        info.additional_ignore_files = found
        return info
