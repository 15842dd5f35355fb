# core/graph.py
"""Working-copy helpers over `GraphState`.

`WorkingGraph` is the mutable scratch space used while folding ops or
rebuilding mentions. It copies the node map and edge list once, and callers
freeze it back into a new `GraphState` when done. Node and edge models are
shared with the source graph until replaced, so they must never be mutated
in place.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from typing import Any

from models.graph_models import Edge, GraphState, StoryNode


def edge_key(edge_type: str, from_id: str, to_id: str) -> str:
    return f"{edge_type}:{from_id}:{to_id}"


def _short_hash(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()[:12]


def generate_edge_id(edge_type: str, from_id: str, to_id: str, taken: Iterable[str] = ()) -> str:
    """Return a deterministic id for an edge, suffixed if it collides with `taken`."""
    base = f"edge_{_short_hash(edge_key(edge_type, from_id, to_id))}"
    taken_ids = set(taken)
    candidate = base
    suffix = 1
    while candidate in taken_ids:
        candidate = f"{base}_{suffix}"
        suffix += 1
    return candidate


def mention_edge_id(from_id: str, to_id: str, field: str) -> str:
    """Return the deterministic id of the MENTIONS edge for one (node, entity, field)."""
    return f"mention_{_short_hash(f'{from_id}:{to_id}:{field}')}"


def node_to_dict(node: StoryNode) -> dict[str, Any]:
    """Dump a node including extra fields, keeping explicit `None` out."""
    return node.model_dump(exclude_none=True)


class WorkingGraph:
    """A copy-on-write view of a `GraphState` for in-order mutation."""

    def __init__(self, graph: GraphState):
        self.nodes: dict[str, StoryNode] = dict(graph.nodes)
        self.edges: list[Edge] = list(graph.edges)

    def edge_ids(self) -> set[str]:
        return {e.id for e in self.edges if e.id is not None}

    def find_edges(self, edge_type: str, from_id: str, to_id: str) -> list[int]:
        """Return indexes of edges matching the triple, in edge order."""
        return [i for i, e in enumerate(self.edges) if e.type == edge_type and e.from_ == from_id and e.to == to_id]

    def remove_node(self, node_id: str) -> int:
        """Remove a node and every edge touching it. Returns the number of edges removed."""
        self.nodes.pop(node_id, None)
        before = len(self.edges)
        self.edges = [e for e in self.edges if e.from_ != node_id and e.to != node_id]
        return before - len(self.edges)

    def freeze(self) -> GraphState:
        return GraphState(nodes=self.nodes, edges=self.edges)
