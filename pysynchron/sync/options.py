"""Configuration objects for a single sync run."""

import os
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Optional

from ..utils import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_WATCH_DEBOUNCE_MS,
    MIN_BUFFER_SIZE,
)
from .modes import CompareMethod, ConflictResolution, SyncMode


def _camel_case(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.capitalize() for part in tail)


def _lookup_key(name: str) -> str:
    return name.replace("_", "").lower()


def normalized_keys(data: dict) -> dict:
    """Map case/underscore-insensitive keys to their values."""
    return {_lookup_key(str(key)): value for key, value in data.items()}


class IgnoreSource(str, Enum):
    """Where gitignore rules for a filter come from."""

    NONE = "none"
    AUTO_DETECT = "auto_detect"
    EXTERNAL = "external"
    EXTERNAL_AND_AUTO_DETECT = "external_and_auto_detect"


@dataclass(frozen=True)
class GitIgnoreOptions:
    """Gitignore handling for a sync run."""

    enabled: bool = True
    """Whether gitignore rules are applied at all"""

    auto_detect: bool = True
    """Search the source tree's ancestors for .gitignore files"""

    external_path: Optional[str] = None
    """Explicit ignore file to load"""

    override_auto_detect: bool = False
    """Skip auto-detection when the external file is used"""

    @property
    def source(self) -> IgnoreSource:
        """The ignore source this configuration selects."""
        if not self.enabled:
            return IgnoreSource.NONE
        if self.external_path:
            if self.override_auto_detect or not self.auto_detect:
                return IgnoreSource.EXTERNAL
            return IgnoreSource.EXTERNAL_AND_AUTO_DETECT
        if self.auto_detect:
            return IgnoreSource.AUTO_DETECT
        return IgnoreSource.NONE

    def __str__(self) -> str:
        if not self.enabled:
            return "Disabled"
        parts = []
        if self.auto_detect:
            parts.append("AutoDetect")
        if self.external_path:
            parts.append(f"External: {self.external_path}")
        if self.override_auto_detect:
            parts.append("Override")
        return ", ".join(parts) if parts else "Enabled (no rules)"

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "enabled": self.enabled,
            "autoDetect": self.auto_detect,
            "externalGitIgnorePath": self.external_path,
            "overrideAutoDetect": self.override_auto_detect,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "GitIgnoreOptions":
        """Create GitIgnoreOptions from a dictionary (keys are case-insensitive)."""
        if not data:
            return cls()
        values = normalized_keys(data)
        external = values.get("externalgitignorepath", values.get("externalpath"))
        return cls(
            enabled=bool(values.get("enabled", True)),
            auto_detect=bool(values.get("autodetect", True)),
            external_path=external or None,
            override_auto_detect=bool(values.get("overrideautodetect", False)),
        )


@dataclass(frozen=True)
class SyncOptions:
    """Immutable configuration for one sync run.

    Use :meth:`with_dry_run` or :func:`dataclasses.replace` to derive
    variants instead of mutating a shared instance.

    Examples:
        >>> options = SyncOptions(source_path="/src", target_path="/dst")
        >>> options.mode
        <SyncMode.DIFF: 'diff'>
        >>> options.with_dry_run().dry_run
        True
    """

    source_path: str = ""
    target_path: str = ""
    mode: SyncMode = SyncMode.DIFF
    conflict_resolution: ConflictResolution = ConflictResolution.OVERWRITE_IF_NEWER
    compare_method: CompareMethod = CompareMethod.TIMESTAMP_AND_SIZE
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    include_subdirectories: bool = True
    dry_run: bool = False
    verify_hash: bool = False
    preserve_timestamps: bool = True
    preserve_attributes: bool = True
    buffer_size: int = DEFAULT_BUFFER_SIZE
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    log_level: str = "info"
    log_file_path: Optional[str] = None
    watch_mode: bool = False
    watch_debounce_ms: int = DEFAULT_WATCH_DEBOUNCE_MS
    gitignore: GitIgnoreOptions = field(default_factory=GitIgnoreOptions)

    def __post_init__(self) -> None:
        # Accept strings/lists from callers and normalize to enums/tuples
        object.__setattr__(self, "mode", SyncMode.parse(self.mode))
        object.__setattr__(
            self,
            "conflict_resolution",
            ConflictResolution.parse(self.conflict_resolution),
        )
        object.__setattr__(
            self, "compare_method", CompareMethod.parse(self.compare_method)
        )
        object.__setattr__(self, "include_patterns", tuple(self.include_patterns))
        object.__setattr__(self, "exclude_patterns", tuple(self.exclude_patterns))
        if isinstance(self.gitignore, dict):
            object.__setattr__(
                self, "gitignore", GitIgnoreOptions.from_dict(self.gitignore)
            )

    def with_dry_run(self, dry_run: bool = True) -> "SyncOptions":
        """Return a copy with ``dry_run`` set."""
        return replace(self, dry_run=dry_run)

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000

    def validate(self) -> list[str]:
        """Check the options before any filesystem change.

        Returns:
            Human-readable error messages (empty if the options are usable)
        """
        errors = []
        if not self.source_path:
            errors.append("Source path is required")
        elif not os.path.isdir(self.source_path):
            errors.append(f"Source path does not exist: {self.source_path}")
        if not self.target_path:
            errors.append("Target path is required")
        if self.buffer_size < MIN_BUFFER_SIZE:
            errors.append(f"Buffer size must be at least {MIN_BUFFER_SIZE} bytes")
        if self.max_retries < 0:
            errors.append("Max retries cannot be negative")
        if self.watch_debounce_ms < 0:
            errors.append("Watch debounce cannot be negative")
        return errors

    def to_dict(self) -> dict:
        """Convert options to a JSON-serializable dictionary (camelCase keys)."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.name.title().replace("_", "")
            elif isinstance(value, tuple):
                value = list(value)
            elif isinstance(value, GitIgnoreOptions):
                value = value.to_dict()
            data[_camel_case(f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SyncOptions":
        """Create SyncOptions from a dictionary.

        Keys are matched case-insensitively and may be camelCase or
        snake_case. Unknown keys are ignored.

        Raises:
            ValueError: If an enum value is not recognized
        """
        values = normalized_keys(data)
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            key = _lookup_key(f.name)
            if key not in values:
                continue
            value = values[key]
            if f.name == "gitignore":
                value = GitIgnoreOptions.from_dict(value)
            elif f.name in ("include_patterns", "exclude_patterns"):
                value = tuple(value or ())
            kwargs[f.name] = value
        return cls(**kwargs)
