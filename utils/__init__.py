# utils/__init__.py
"""General text utilities for the story graph engine."""

from .text_processing import (
    normalize_entity_name,
    replace_whole_word,
    split_name_tokens,
    truncate_for_log,
    whole_word_regex,
)

__all__ = [
    "normalize_entity_name",
    "replace_whole_word",
    "split_name_tokens",
    "truncate_for_log",
    "whole_word_regex",
]
