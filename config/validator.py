# config/validator.py
"""
Configuration validation utilities for the story graph engine.

`validate_all()` performs cross-field sanity checks that Pydantic field types
cannot express (confidence ranges, the rank order of mention confidences, cache
sizes) and returns a structured health report:

{
    "overall_health": "healthy" | "warning" | "error",
    "issues": {
        "errors":   [{ "field": "<field>", "message": "<msg>" }, ...],
        "warnings": [{ "field": "<field>", "message": "<msg>" }, ...],
        "info":     [{ "field": "<field>", "message": "<msg>" }, ...],
    }
}
"""

from __future__ import annotations

import importlib
import logging

_CONFIDENCE_FIELDS = [
    "MENTION_CONFIDENCE_EXACT",
    "MENTION_CONFIDENCE_ALIAS",
    "MENTION_CONFIDENCE_TITLE",
    "MENTION_CONFIDENCE_PARTIAL",
]


def _add_issue(
    issues: dict[str, list[dict[str, str]]],
    severity: str,
    field: str,
    message: str,
) -> None:
    """Utility to append an issue entry to the report."""
    issues.setdefault(severity, []).append({"field": field, "message": message})


def validate_all() -> dict:
    """
    Validate the current configuration state.

    Returns a health-report dict with overall status and detailed issue lists.
    """
    issues: dict[str, list[dict[str, str]]] = {"errors": [], "warnings": [], "info": []}
    current_settings = importlib.import_module("config.settings").settings

    # Confidences are probabilities
    for name in _CONFIDENCE_FIELDS:
        value = getattr(current_settings, name)
        if not (0.0 <= value <= 1.0):
            _add_issue(issues, "errors", name, f"{name} = {value} must be within 0.0-1.0.")

    # Higher-ranked match kinds must never score below lower-ranked ones
    for higher, lower in zip(_CONFIDENCE_FIELDS, _CONFIDENCE_FIELDS[1:]):
        high_value = getattr(current_settings, higher)
        low_value = getattr(current_settings, lower)
        if high_value < low_value:
            _add_issue(
                issues,
                "warnings",
                higher,
                f"{higher} ({high_value}) is lower than {lower} ({low_value}); match ranking and confidence will disagree.",
            )

    if current_settings.MENTION_MIN_PARTIAL_TOKEN_LENGTH < 1:
        _add_issue(
            issues,
            "errors",
            "MENTION_MIN_PARTIAL_TOKEN_LENGTH",
            f"MENTION_MIN_PARTIAL_TOKEN_LENGTH must be >= 1; got {current_settings.MENTION_MIN_PARTIAL_TOKEN_LENGTH}.",
        )

    cache_size = current_settings.MENTION_PATTERN_CACHE_SIZE
    if cache_size < 1:
        _add_issue(issues, "errors", "MENTION_PATTERN_CACHE_SIZE", f"MENTION_PATTERN_CACHE_SIZE must be >= 1; got {cache_size}.")
    elif cache_size > 100_000:
        _add_issue(
            issues,
            "warnings",
            "MENTION_PATTERN_CACHE_SIZE",
            f"MENTION_PATTERN_CACHE_SIZE is very large ({cache_size}); consider lowering to reduce memory usage.",
        )

    if logging.getLevelName(current_settings.LOG_LEVEL_STR.upper()) not in (
        logging.DEBUG,
        logging.INFO,
        logging.WARNING,
        logging.ERROR,
        logging.CRITICAL,
    ):
        _add_issue(issues, "errors", "LOG_LEVEL", f"Unknown log level '{current_settings.LOG_LEVEL_STR}'.")

    if not current_settings.ENFORCE_EDGE_ENDPOINT_RULES:
        _add_issue(
            issues,
            "info",
            "ENFORCE_EDGE_ENDPOINT_RULES",
            "Edge endpoint type rules are disabled; ADD_EDGE only checks that endpoints exist.",
        )

    overall = "healthy"
    if issues["errors"]:
        overall = "error"
    elif issues["warnings"]:
        overall = "warning"

    return {
        "overall_health": overall,
        "issues": issues,
    }
