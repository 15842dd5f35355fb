# config/loader.py
"""
Configuration reload utilities for the story graph engine.

The main public function is ``reload_settings()`` which:
1. Reloads environment variables from ``.env`` (via ``dotenv.load_dotenv``).
2. Re-creates the ``StoryGraphSettings`` instance so that any changed values are applied.
3. Updates the symbols exported by ``config`` (the module-level constants) to
   reflect the new values.

A ``SIGHUP`` handler is registered on import so that an operator can trigger a
live configuration reload without restarting the process. Set
``CONFIG_DISABLE_SIGHUP`` to skip registration.
"""

from __future__ import annotations

import importlib
import os
import signal
from typing import Any

import structlog
from dotenv import load_dotenv
from pydantic import ValidationError

logger = structlog.get_logger(__name__)


def _import_settings_module():
    # `config.settings` as an attribute is the settings instance, so go through the module registry.
    return importlib.import_module("config.settings")


def reload_settings() -> bool:
    """
    Reload configuration from the environment and refresh the ``config`` package.

    Returns ``True`` on success, ``False`` when the new environment does not
    produce a valid settings object (the previous settings stay in effect).
    """
    try:
        load_dotenv(override=True)

        settings_mod = _import_settings_module()
        importlib.reload(settings_mod)
    except ValidationError as exc:
        logger.error("Configuration reload failed", error=str(exc))
        return False

    import config as config_pkg

    config_pkg.settings = settings_mod.settings
    config_pkg.StoryGraphSettings = settings_mod.StoryGraphSettings
    config_pkg.simple_formatter = settings_mod.simple_formatter
    config_pkg.rich_formatter = settings_mod.rich_formatter

    for field_name in settings_mod.StoryGraphSettings.model_fields:
        setattr(config_pkg, field_name, getattr(settings_mod.settings, field_name))

    logger.info("Configuration reloaded")
    return True


def _handle_sighup(signum: int, frame: Any) -> None:  # pragma: no cover
    """Signal handler that invokes ``reload_settings``."""
    if reload_settings():
        logger.info("Configuration reloaded via SIGHUP")
    else:
        logger.warning("Failed to reload configuration via SIGHUP")


if not os.getenv("CONFIG_DISABLE_SIGHUP") and hasattr(signal, "SIGHUP"):
    signal.signal(signal.SIGHUP, _handle_sighup)
