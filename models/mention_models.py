# models/mention_models.py
"""Models for entity mentions, mention reconciliation and rename results.

Wire shapes are camelCase (`entityId`, `matchedText`, `edgesCreated`); Python
attributes are snake_case. Use `model_dump(by_alias=True)` for the wire form.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EntityInfo(_CamelModel):
    """A mentionable entity as seen by the extractor."""

    id: str
    type: str
    name: str
    aliases: list[str] = Field(default_factory=list)


class Mention(_CamelModel):
    entity_id: str
    entity_type: str
    matched_text: str
    confidence: float


class MentionOccurrence(_CamelModel):
    """One match of one pattern in a text.

    `rank` orders match kinds: 1 exact, 2 possessive, 3 alias, 4 title, 5 partial.
    """

    entity_id: str
    entity_type: str
    matched_text: str
    confidence: float
    start: int
    end: int
    rank: int
    kind: str


class MentionRebuildResult(_CamelModel):
    edges_created: int = 0
    edges_removed: int = 0
    nodes_processed: list[str] = Field(default_factory=list)

    def merge(self, other: MentionRebuildResult) -> MentionRebuildResult:
        return MentionRebuildResult(
            edges_created=self.edges_created + other.edges_created,
            edges_removed=self.edges_removed + other.edges_removed,
            nodes_processed=[*self.nodes_processed, *other.nodes_processed],
        )


class TextUpdate(_CamelModel):
    """One field rewritten by a rename."""

    node_id: str
    node_type: str
    field: str
    old_text: str
    new_text: str
    match_count: int


class RenameResult(_CamelModel):
    entity_id: str
    old_name: str
    new_name: str
    text_updates: list[TextUpdate] = Field(default_factory=list)
    total_replacements: int = 0
    mentions_updated: int = 0
    mentions_rebuilt: bool = False


class TemporalViolation(_CamelModel):
    """An entity referenced at a beat earlier than the beat where it is introduced."""

    node_id: str
    node_type: str
    entity_id: str
    entity_name: str
    at_beat_id: str
    at_position: int
    introduced_at_beat_id: str
    introduced_at_position: int
    message: str
