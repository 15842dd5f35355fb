# core/logging_config.py
"""Root logger setup for applications embedding the story graph engine.

The engine itself only emits structlog events from its commit and rename
steps. Call `setup_story_graph_logging()` once at startup to decide where those
events go.
"""

import logging as stdlib_logging
import logging.handlers
import os

import structlog
from rich.logging import RichHandler

import config
from config import rich_formatter, simple_formatter

_MAX_LOG_BYTES = 10 * 1024 * 1024
_LOG_BACKUPS = 5


def _console_handler(level: str) -> stdlib_logging.Handler:
    handler = stdlib_logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(rich_formatter)
    return handler


def _rich_handler(level: str) -> stdlib_logging.Handler:
    # Level and time are rendered by the formatter.
    handler = RichHandler(level=level, rich_tracebacks=True, show_path=False, show_time=False, show_level=False)
    handler.setFormatter(rich_formatter)
    return handler


def _file_handler(level: str, log_path: str) -> stdlib_logging.Handler:
    os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
    handler = stdlib_logging.handlers.RotatingFileHandler(
        log_path, maxBytes=_MAX_LOG_BYTES, backupCount=_LOG_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(simple_formatter)
    return handler


def setup_story_graph_logging(level: str | None = None) -> list[stdlib_logging.Handler]:
    """Replace the root logger's handlers according to the logging settings.

    `SIMPLE_LOGGING_MODE` gives a single plain console handler. Otherwise a
    rotating file handler is added when `LOG_FILE` is set, plus a rich console
    handler (`ENABLE_RICH_PROGRESS`) or a plain one.

    Args:
        level: Overrides `LOG_LEVEL` when given.

    Returns:
        The handlers now attached to the root logger.
    """
    level = (level or config.LOG_LEVEL_STR).upper()
    root_logger = stdlib_logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    file_error: OSError | None = None
    if config.SIMPLE_LOGGING_MODE:
        root_logger.addHandler(_console_handler(level))
    else:
        if config.LOG_FILE:
            try:
                root_logger.addHandler(_file_handler(level, os.path.join(config.LOG_DIR, config.LOG_FILE)))
            except OSError as exc:
                file_error = exc
        root_logger.addHandler(_rich_handler(level) if config.ENABLE_RICH_PROGRESS else _console_handler(level))

    log = structlog.get_logger(__name__)
    if file_error is not None:
        log.error("File logging unavailable, logging to console only", log_dir=config.LOG_DIR, error=str(file_error))
    log.info(
        "Logging configured",
        level=level,
        handlers=[type(h).__name__ for h in root_logger.handlers],
    )
    return list(root_logger.handlers)
