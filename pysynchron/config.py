"""Loading, saving and validating persisted sync options."""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional, Union

from .sync.options import SyncOptions

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE_NAME = "synchron.json"


def get_config_path(config_path: Optional[Union[str, Path]] = None) -> Path:
    """Resolve the options file path.

    Args:
        config_path: Explicit path; the per-user default is used if omitted

    Returns:
        Absolute path (``~/.config/pysynchron/synchron.json`` by default)
    """
    if config_path:
        return Path(config_path).expanduser().resolve()
    return Path.home() / ".config" / "pysynchron" / DEFAULT_CONFIG_FILE_NAME


def load_options(config_path: Optional[Union[str, Path]] = None) -> SyncOptions:
    """Load sync options from JSON.

    A missing file yields default options. An unreadable or malformed file
    is logged as an error and also yields defaults.
    """
    path = get_config_path(config_path)
    if not path.is_file():
        logger.debug(f"Config file not found: {path}, using defaults")
        return SyncOptions()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("top-level JSON value must be an object")
        return SyncOptions.from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Failed to load config file: {path}: {e}")
        return SyncOptions()


def save_options(
    options: SyncOptions, config_path: Optional[Union[str, Path]] = None
) -> Path:
    """Write sync options as indented camelCase JSON.

    Returns:
        The path written to

    Raises:
        OSError: If the file cannot be written
    """
    path = get_config_path(config_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(options.to_dict(), f, indent=2)
    except OSError as e:
        logger.error(f"Failed to save config file: {path}: {e}")
        raise
    logger.info(f"Config saved to: {path}")
    return path


def validate_options(options: SyncOptions) -> list[str]:
    """Validate options, logging every problem found.

    Returns:
        Error messages (empty when the options are valid)
    """
    errors = options.validate()
    for error in errors:
        logger.error(error)
    return errors


def merge_options(base: SyncOptions, **overrides: Any) -> SyncOptions:
    """Return ``base`` with every override that is not None applied.

    Empty pattern sequences do not replace configured patterns.

    Examples:
        >>> merged = merge_options(SyncOptions(), source_path="/src", mode=None)
        >>> merged.source_path
        '/src'
    """
    changes = {}
    for name, value in overrides.items():
        if value is None:
            continue
        if name in ("include_patterns", "exclude_patterns") and not value:
            continue
        changes[name] = value
    return replace(base, **changes)
