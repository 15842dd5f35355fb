# config/__init__.py
"""Expose story graph configuration as stable module-level constants.

This package is a facade over the Pydantic settings model defined in
[`config.settings`](config/settings.py:1). The primary API is the `settings`
singleton plus a set of module-level constants mirroring its fields.

Configuration precedence and lifecycle:
- On initial import, configuration is loaded by importing `config.settings`,
  which constructs the `settings` singleton.
- Values come from the process environment and may be sourced from a `.env` file.
- [`reload()`](config/__init__.py:75) re-reads `.env` with override enabled,
  then replaces this module's exported values (see `config.loader.reload_settings()`).

Notes:
    Core modules read `config.MENTION_CONFIDENCE_EXACT` and friends at call time,
    so a reload (or `config.set(...)` followed by `reload`) takes effect without
    re-importing callers.
"""

from typing import Any

from .settings import (
    StoryGraphSettings as StoryGraphSettings,
)
from .settings import (
    rich_formatter as rich_formatter,
)
from .settings import (
    settings as settings,
)
from .settings import (
    simple_formatter as simple_formatter,
)

# Mention extraction
MENTION_CONFIDENCE_EXACT = settings.MENTION_CONFIDENCE_EXACT
MENTION_CONFIDENCE_ALIAS = settings.MENTION_CONFIDENCE_ALIAS
MENTION_CONFIDENCE_TITLE = settings.MENTION_CONFIDENCE_TITLE
MENTION_CONFIDENCE_PARTIAL = settings.MENTION_CONFIDENCE_PARTIAL
MENTION_MIN_PARTIAL_TOKEN_LENGTH = settings.MENTION_MIN_PARTIAL_TOKEN_LENGTH
MENTION_PATTERN_CACHE_SIZE = settings.MENTION_PATTERN_CACHE_SIZE

# Patch validation
ENFORCE_EDGE_ENDPOINT_RULES = settings.ENFORCE_EDGE_ENDPOINT_RULES

# Story context
STORY_CONTEXT_TRIM_RESULT = settings.STORY_CONTEXT_TRIM_RESULT

# Logging
LOG_DATE_FORMAT = settings.LOG_DATE_FORMAT
LOG_DIR = settings.LOG_DIR
LOG_FILE = settings.LOG_FILE
LOG_FORMAT = settings.LOG_FORMAT
LOG_LEVEL_STR = settings.LOG_LEVEL_STR
ENABLE_RICH_PROGRESS = settings.ENABLE_RICH_PROGRESS
SIMPLE_LOGGING_MODE = settings.SIMPLE_LOGGING_MODE


def get(key: str) -> Any:
    """Return the value of a configuration attribute from `settings`.

    Args:
        key: Attribute name on the `settings` singleton.

    Returns:
        The current value of the named attribute.

    Raises:
        AttributeError: If `key` is not a valid attribute on `settings`.
    """
    return getattr(settings, key)


def set(key: str, value: Any) -> None:
    """Set a configuration attribute at runtime.

    Updates both the `settings` singleton and the matching module-level constant.
    This does not persist to `.env`.

    Args:
        key: Attribute name on the `settings` singleton.
        value: Value to assign.

    Raises:
        AttributeError: If `key` is not a valid attribute on `settings`.
    """
    if key not in StoryGraphSettings.model_fields:
        raise AttributeError(f"Unknown configuration key: {key}")
    setattr(settings, key, value)
    globals()[key] = value


def reload() -> bool:
    """Reload configuration and refresh this package's exported constants.

    Returns:
        True when the reload succeeded, False otherwise.
    """
    from .loader import reload_settings

    return reload_settings()
