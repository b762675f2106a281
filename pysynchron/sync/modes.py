"""Sync modes, comparison methods and conflict policies."""

from enum import Enum
from typing import Union


class _NamedEnum(str, Enum):
    """String enum that parses display names, values and ordinals."""

    @classmethod
    def parse(cls, value: Union[str, int, "_NamedEnum"]):
        """Parse a member from its value, name or ordinal.

        Matching is case-insensitive and ignores ``-`` and ``_`` so that
        ``"timestamp-and-size"``, ``"TimestampAndSize"`` and
        ``"timestamp_and_size"`` all resolve to the same member.

        Raises:
            ValueError: If the value does not name a member
        """
        if isinstance(value, cls):
            return value

        members = list(cls)
        if isinstance(value, int) and not isinstance(value, bool):
            if 0 <= value < len(members):
                return members[value]
            raise ValueError(f"Invalid {cls.__name__} ordinal: {value}")

        key = str(value).strip().lower().replace("-", "").replace("_", "")
        for member in members:
            candidates = {
                member.value.lower().replace("_", ""),
                member.name.lower().replace("_", ""),
            }
            candidates.update(getattr(member, "aliases", ()))
            if key in candidates:
                return member

        valid = ", ".join(m.value for m in members)
        raise ValueError(f"Invalid {cls.__name__}: {value}. Valid values: {valid}")


class SyncMode(_NamedEnum):
    """Relationship to establish between source and target."""

    DIFF = "diff"
    """Copy new and changed files to the target"""

    SYNC = "sync"
    """Copy new and changed files to the target"""

    MOVE = "move"
    """Move new and changed files from the source into the target"""

    MIRROR = "mirror"
    """Copy new and changed files and delete target-only entries"""

    @property
    def aliases(self) -> tuple[str, ...]:
        return {
            SyncMode.DIFF: ("d",),
            SyncMode.SYNC: ("s",),
            SyncMode.MOVE: ("mv",),
            SyncMode.MIRROR: ("m",),
        }[self]

    @property
    def moves_files(self) -> bool:
        """Whether files are relocated instead of copied."""
        return self == SyncMode.MOVE

    @property
    def deletes_extraneous(self) -> bool:
        """Whether target entries without a source counterpart are deleted."""
        return self == SyncMode.MIRROR


class CompareMethod(_NamedEnum):
    """Rule deciding whether an existing target file is stale."""

    SIZE_ONLY = "size_only"
    TIMESTAMP_ONLY = "timestamp_only"
    TIMESTAMP_AND_SIZE = "timestamp_and_size"
    HASH = "hash"


class ConflictResolution(_NamedEnum):
    """Policy for a target file that exists and needs updating."""

    OVERWRITE = "overwrite"
    OVERWRITE_IF_NEWER = "overwrite_if_newer"
    SKIP = "skip"
    RENAME = "rename"
    ASK = "ask"

    @property
    def aliases(self) -> tuple[str, ...]:
        return ("newer",) if self == ConflictResolution.OVERWRITE_IF_NEWER else ()
