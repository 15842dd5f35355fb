# models/graph_models.py
"""Typed node and edge models for the story graph.

Nodes form a Pydantic discriminated union on their `type` tag. Every node
model allows extra fields so partial updates can carry properties that are not
modelled explicitly; those extras survive merges and serialization.

`GraphState` is an id-keyed node arena plus an ordered edge list. Edge order
is creation order and is significant when a delete matches several edges.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .graph_constants import (
    ACT_MAX,
    ACT_MIN,
    BEAT_POSITION_MAX,
    BEAT_POSITION_MIN,
)


class StoryNode(BaseModel):
    """Base for every node kind in the story graph."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    type: str

    def get_field(self, name: str, default: Any = None) -> Any:
        """Return a declared or extra field value, or `default` when absent."""
        if name in type(self).model_fields:
            return getattr(self, name)
        extra = self.__pydantic_extra__ or {}
        return extra.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the node to its wire dict, omitting unset optional fields."""
        return self.model_dump(exclude_none=True)


class Character(StoryNode):
    type: Literal["Character"] = "Character"
    name: str
    description: str | None = None
    archetype: str | None = None
    traits: list[str] | None = None
    aliases: list[str] | None = None
    notes: str | None = None
    status: str | None = None


class Location(StoryNode):
    type: Literal["Location"] = "Location"
    name: str
    description: str | None = None
    parent_location_id: str | None = None
    tags: list[str] | None = None
    aliases: list[str] | None = None


class StoryObject(StoryNode):
    """A prop or item. Its wire tag is `Object`."""

    type: Literal["Object"] = "Object"
    name: str
    description: str | None = None
    introduced_in_scene_id: str | None = None
    tags: list[str] | None = None
    aliases: list[str] | None = None


class Scene(StoryNode):
    type: Literal["Scene"] = "Scene"
    heading: str
    title: str | None = None
    scene_overview: str | None = None
    key_actions: list[str] | None = None
    order_index: int | None = None
    int_ext: str | None = None
    time_of_day: str | None = None
    mood: str | None = None
    status: str | None = None


class Beat(StoryNode):
    """A fixed structural slot on the story timeline (e.g. `Catalyst`)."""

    type: Literal["Beat"] = "Beat"
    beat_type: str
    act: int | None = Field(None, ge=ACT_MIN, le=ACT_MAX)
    position_index: int | None = Field(None, ge=BEAT_POSITION_MIN, le=BEAT_POSITION_MAX)
    guidance: str | None = None
    notes: str | None = None
    status: str | None = None


class _PlotElement(StoryNode):
    title: str
    summary: str | None = None
    intent: str | None = None
    priority: str | None = None
    urgency: str | None = None
    stakes_change: str | None = None
    status: str | None = None
    act: int | None = Field(None, ge=ACT_MIN, le=ACT_MAX)
    order_index: int | None = None
    tags: list[str] | None = None


class StoryBeat(_PlotElement):
    type: Literal["StoryBeat"] = "StoryBeat"


class PlotPoint(_PlotElement):
    """Legacy name for a story beat. Kept for graphs created before the rename."""

    type: Literal["PlotPoint"] = "PlotPoint"


class Idea(StoryNode):
    type: Literal["Idea"] = "Idea"
    title: str
    description: str | None = None
    source: str | None = None
    status: str | None = None


class CharacterArc(StoryNode):
    type: Literal["CharacterArc"] = "CharacterArc"
    character_id: str
    arc_type: str | None = None
    start_state: str | None = None
    end_state: str | None = None
    key_moments: list[str] | None = None
    status: str | None = None


class Setting(StoryNode):
    type: Literal["Setting"] = "Setting"
    name: str
    description: str | None = None
    time_period: str | None = None
    atmosphere: str | None = None
    notes: str | None = None


class Logline(StoryNode):
    type: Literal["Logline"] = "Logline"
    text: str


Node = Annotated[
    Union[
        Character,
        Location,
        StoryObject,
        Scene,
        Beat,
        StoryBeat,
        PlotPoint,
        Idea,
        CharacterArc,
        Setting,
        Logline,
    ],
    Field(discriminator="type"),
]

NODE_ADAPTER: TypeAdapter[Node] = TypeAdapter(Node)

NODE_CLASSES: dict[str, type[StoryNode]] = {
    "Character": Character,
    "Location": Location,
    "Object": StoryObject,
    "Scene": Scene,
    "Beat": Beat,
    "StoryBeat": StoryBeat,
    "PlotPoint": PlotPoint,
    "Idea": Idea,
    "CharacterArc": CharacterArc,
    "Setting": Setting,
    "Logline": Logline,
}


def parse_node(data: Mapping[str, Any] | StoryNode) -> StoryNode:
    """Parse a wire dict (or re-validate a model) into its typed node class.

    Raises:
        pydantic.ValidationError: If the payload has an unknown type tag or does
            not satisfy the schema for its kind.
    """
    if isinstance(data, StoryNode):
        data = data.model_dump()
    return NODE_ADAPTER.validate_python(dict(data))


class EdgeProvenance(BaseModel):
    """Who or what created an edge."""

    model_config = ConfigDict(extra="allow")

    source: Literal["human", "extractor", "import"]
    patch_id: str | None = None
    model: str | None = None
    created_by: str | None = None


class Edge(BaseModel):
    """A typed, directed edge. `from` is exposed as `from_` in Python."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    type: str
    from_: str = Field(..., alias="from")
    to: str
    properties: dict[str, Any] | None = None
    provenance: EdgeProvenance | None = None
    status: str | None = None
    created_at: str | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        """The `(type, from, to)` triple used for duplicate and delete matching."""
        return (self.type, self.from_, self.to)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GraphState(BaseModel):
    """An immutable snapshot of the story graph.

    Operations never modify a `GraphState` in place; they return a new one so
    callers can keep the version chain.
    """

    model_config = ConfigDict(frozen=True)

    nodes: dict[str, Node] = Field(default_factory=dict)
    edges: list[Edge] = Field(default_factory=list)

    def get_node(self, node_id: str) -> StoryNode | None:
        return self.nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def iter_nodes(self, *node_types: str) -> Iterator[StoryNode]:
        """Yield nodes in insertion order, optionally restricted to the given types."""
        for node in self.nodes.values():
            if not node_types or node.type in node_types:
                yield node

    def edges_from(self, node_id: str, edge_type: str | None = None) -> list[Edge]:
        return [e for e in self.edges if e.from_ == node_id and (edge_type is None or e.type == edge_type)]

    def edges_to(self, node_id: str, edge_type: str | None = None) -> list[Edge]:
        return [e for e in self.edges if e.to == node_id and (edge_type is None or e.type == edge_type)]

    def edges_of_type(self, edge_type: str) -> list[Edge]:
        return [e for e in self.edges if e.type == edge_type]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to `{"nodes": [...], "edges": [...]}` for persistence."""
        return {
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GraphState:
        """Build a graph from persisted data.

        `nodes` may be a list of node dicts or a mapping of id to node dict.
        """
        raw_nodes = data.get("nodes") or []
        node_items: Iterable[Any] = raw_nodes.values() if isinstance(raw_nodes, Mapping) else raw_nodes
        nodes: dict[str, StoryNode] = {}
        for raw in node_items:
            node = parse_node(raw)
            nodes[node.id] = node
        edges = [Edge.model_validate(raw) for raw in data.get("edges") or []]
        return cls(nodes=nodes, edges=edges)
