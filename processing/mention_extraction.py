# processing/mention_extraction.py
"""Find references to named entities in free text.

Each entity is matched against an ordered list of patterns, most specific
first:

    1. exact full name                 (MENTION_CONFIDENCE_EXACT)
    2. possessive full name "Ann's"    (MENTION_CONFIDENCE_EXACT)
    3. alias and alias possessive      (MENTION_CONFIDENCE_ALIAS)
    4. honorific + surname             (MENTION_CONFIDENCE_TITLE)
    5. first or last name alone        (MENTION_CONFIDENCE_PARTIAL)

Matching is case-insensitive and respects word boundaries, so "Ann" never
matches inside "Annabelle". `extract_mentions` reports at most one mention per
entity (the best-ranked pattern that matches); `find_mention_occurrences`
reports every non-overlapping occurrence for callers that need offsets.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from functools import lru_cache
from typing import Any

import config
from models.graph_constants import HONORIFIC_TITLES
from models.graph_models import StoryNode
from models.mention_models import EntityInfo, Mention, MentionOccurrence
from utils.text_processing import split_name_tokens, whole_word_regex

RANK_EXACT = 1
RANK_POSSESSIVE = 2
RANK_ALIAS = 3
RANK_TITLE = 4
RANK_PARTIAL = 5

_KIND_BY_RANK = {
    RANK_EXACT: "exact",
    RANK_POSSESSIVE: "possessive",
    RANK_ALIAS: "alias",
    RANK_TITLE: "title",
    RANK_PARTIAL: "partial",
}

_TITLE_RE = re.compile(
    r"^(" + "|".join(re.escape(title) for title in HONORIFIC_TITLES) + r")\s+(.+)$",
    re.IGNORECASE,
)

_Pattern = tuple[int, re.Pattern]


def _confidence_for(rank: int) -> float:
    if rank in (RANK_EXACT, RANK_POSSESSIVE):
        return config.MENTION_CONFIDENCE_EXACT
    if rank == RANK_ALIAS:
        return config.MENTION_CONFIDENCE_ALIAS
    if rank == RANK_TITLE:
        return config.MENTION_CONFIDENCE_TITLE
    return config.MENTION_CONFIDENCE_PARTIAL


def _compile(phrase: str, possessive: bool = False) -> re.Pattern[str]:
    return re.compile(whole_word_regex(phrase, possessive=possessive), re.IGNORECASE)


@lru_cache(maxsize=config.MENTION_PATTERN_CACHE_SIZE)
def _build_patterns(name: str, aliases: tuple[str, ...], min_partial_length: int) -> tuple[_Pattern, ...]:
    """Build the ordered pattern list for one entity. Cached per (name, aliases)."""
    name = name.strip()
    patterns: list[_Pattern] = [
        (RANK_EXACT, _compile(name)),
        (RANK_POSSESSIVE, _compile(name, possessive=True)),
    ]

    for alias in aliases:
        alias = alias.strip() if isinstance(alias, str) else ""
        if not alias:
            continue
        patterns.append((RANK_ALIAS, _compile(alias)))
        patterns.append((RANK_ALIAS, _compile(alias, possessive=True)))

    tokens = split_name_tokens(name)
    title_match = _TITLE_RE.match(name)
    if title_match:
        surname = split_name_tokens(title_match.group(2))[-1]
        patterns.append((RANK_TITLE, _compile(f"{title_match.group(1)} {surname}")))
        # The honorific on its own is not a name.
        tokens = tokens[1:]

    if len(tokens) > 1:
        first_name = tokens[0]
        last_name = tokens[-1]
        if len(first_name) > min_partial_length:
            patterns.append((RANK_PARTIAL, _compile(first_name)))
        if len(last_name) > min_partial_length and last_name.lower() != first_name.lower():
            patterns.append((RANK_PARTIAL, _compile(last_name)))

    return tuple(patterns)


def _patterns_for(entity: EntityInfo) -> tuple[_Pattern, ...]:
    return _build_patterns(entity.name, tuple(entity.aliases or ()), config.MENTION_MIN_PARTIAL_TOKEN_LENGTH)


def _usable(entity: EntityInfo) -> bool:
    return bool(entity.name and entity.name.strip())


def extract_mentions(text: str, entities: Sequence[EntityInfo]) -> list[Mention]:
    """Return at most one mention per entity found in `text`.

    Entities are checked independently and in catalog order. For each entity the
    first pattern (in rank order) that matches anywhere in the text wins, and
    lower-ranked patterns for that entity are not consulted.

    Args:
        text: Free text to scan.
        entities: The entity catalog.

    Returns:
        Mentions in catalog order. Empty when `text` or `entities` is empty.
    """
    if not text or not entities:
        return []

    mentions: list[Mention] = []
    for entity in entities:
        if not _usable(entity):
            continue
        for rank, pattern in _patterns_for(entity):
            match = pattern.search(text)
            if match:
                mentions.append(
                    Mention(
                        entity_id=entity.id,
                        entity_type=entity.type,
                        matched_text=match.group(0),
                        confidence=_confidence_for(rank),
                    )
                )
                break
    return mentions


def find_mention_occurrences(text: str, entities: Sequence[EntityInfo]) -> list[MentionOccurrence]:
    """Return every occurrence of every entity in `text`, ordered by position.

    Overlapping matches for the same entity are resolved in favour of the
    better-ranked pattern, so "John Smith" yields one exact occurrence rather
    than an exact match plus two partial ones.
    """
    if not text or not entities:
        return []

    occurrences: list[MentionOccurrence] = []
    for entity in entities:
        if not _usable(entity):
            continue
        kept: list[tuple[int, int]] = []
        for rank, pattern in _patterns_for(entity):
            for match in pattern.finditer(text):
                start, end = match.span()
                if any(start < k_end and k_start < end for k_start, k_end in kept):
                    continue
                kept.append((start, end))
                occurrences.append(
                    MentionOccurrence(
                        entity_id=entity.id,
                        entity_type=entity.type,
                        matched_text=match.group(0),
                        confidence=_confidence_for(rank),
                        start=start,
                        end=end,
                        rank=rank,
                        kind=_KIND_BY_RANK[rank],
                    )
                )
    occurrences.sort(key=lambda occ: (occ.start, occ.rank))
    return occurrences


def field_text(value: Any) -> str:
    """Flatten a field value to text: strings as-is, string items of lists joined by spaces."""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return " ".join(item for item in value if isinstance(item, str))
    return ""


def extract_text_from_node(data: Mapping[str, Any] | StoryNode, fields: Iterable[str]) -> str:
    """Join the text of the given fields of a node (or node dict) with spaces."""
    texts: list[str] = []
    for field in fields:
        value = data.get_field(field) if isinstance(data, StoryNode) else data.get(field)
        text = field_text(value)
        if text:
            texts.append(text)
    return " ".join(texts)


def clear_pattern_cache() -> None:
    """Drop cached compiled patterns (e.g. after changing the partial-token setting)."""
    _build_patterns.cache_clear()
