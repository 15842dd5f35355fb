# processing/mention_reconciler.py
"""Keep derived MENTIONS edges in sync with node text.

MENTIONS edges are never hand edited. After text changes, callers invoke one
of the rebuild functions here, which replace a node's outgoing MENTIONS edges
with exactly what extraction finds in its current text. Every function returns
a new `GraphState` together with a summary; the input graph is not modified.
"""

from __future__ import annotations

from collections.abc import Sequence

from core.graph import WorkingGraph, mention_edge_id
from models.graph_constants import (
    DEFAULT_EDGE_STATUS,
    EXTRACTABLE_FIELDS,
    MENTIONABLE_NODE_TYPES,
    MENTIONS_EDGE_TYPE,
)
from models.graph_models import Edge, EdgeProvenance, GraphState, StoryNode
from models.mention_models import EntityInfo, MentionRebuildResult
from processing.mention_extraction import extract_mentions, field_text


def build_entity_catalog(graph: GraphState) -> list[EntityInfo]:
    """Collect every mentionable entity (Character, Location, Object) with a non-empty name."""
    entities: list[EntityInfo] = []
    for entity_type in MENTIONABLE_NODE_TYPES:
        for node in graph.iter_nodes(entity_type):
            name = node.get_field("name")
            if not isinstance(name, str) or not name.strip():
                continue
            aliases = node.get_field("aliases") or []
            entities.append(
                EntityInfo(
                    id=node.id,
                    type=node.type,
                    name=name,
                    aliases=[a for a in aliases if isinstance(a, str) and a.strip()],
                )
            )
    return entities


def _is_mention_from(edge: Edge, node_id: str) -> bool:
    return edge.type == MENTIONS_EDGE_TYPE and edge.from_ == node_id


def _mention_edges_for(node: StoryNode, entities: Sequence[EntityInfo]) -> list[Edge]:
    """Extract mentions field by field and turn them into MENTIONS edges."""
    fields = EXTRACTABLE_FIELDS.get(node.type, ())
    edges: list[Edge] = []
    seen: set[tuple[str, str]] = set()
    for field in fields:
        text = field_text(node.get_field(field))
        if not text:
            continue
        for mention in extract_mentions(text, entities):
            if (mention.entity_id, field) in seen:
                continue
            seen.add((mention.entity_id, field))
            edges.append(
                Edge(
                    id=mention_edge_id(node.id, mention.entity_id, field),
                    type=MENTIONS_EDGE_TYPE,
                    from_=node.id,
                    to=mention.entity_id,
                    properties={
                        "field": field,
                        "confidence": mention.confidence,
                        "matchedText": mention.matched_text,
                    },
                    provenance=EdgeProvenance(source="extractor"),
                    status=DEFAULT_EDGE_STATUS,
                )
            )
    return edges


def remove_mentions_from_node(graph: GraphState, node_id: str) -> tuple[GraphState, int]:
    """Delete the MENTIONS edges whose source is `node_id`. Other edges are kept."""
    kept = [e for e in graph.edges if not _is_mention_from(e, node_id)]
    removed = len(graph.edges) - len(kept)
    if not removed:
        return graph, 0
    return GraphState(nodes=graph.nodes, edges=kept), removed


def remove_mentions_to_entity(graph: GraphState, entity_id: str) -> tuple[GraphState, int]:
    """Delete the MENTIONS edges that point at `entity_id`."""
    kept = [e for e in graph.edges if not (e.type == MENTIONS_EDGE_TYPE and e.to == entity_id)]
    removed = len(graph.edges) - len(kept)
    if not removed:
        return graph, 0
    return GraphState(nodes=graph.nodes, edges=kept), removed


def rebuild_mentions_for_node(
    graph: GraphState,
    node_id: str,
    entities: Sequence[EntityInfo] | None = None,
) -> tuple[GraphState, MentionRebuildResult]:
    """Replace a node's outgoing MENTIONS edges with fresh extraction results.

    Args:
        graph: Current graph.
        node_id: Node whose text should be rescanned.
        entities: Optional pre-built catalog; built from `graph` when omitted.

    Returns:
        The new graph and a summary. A missing node or a node kind without
        extractable fields yields the input graph and an empty summary.
    """
    node = graph.get_node(node_id)
    if node is None or node.type not in EXTRACTABLE_FIELDS:
        return graph, MentionRebuildResult()

    if entities is None:
        entities = build_entity_catalog(graph)

    working = WorkingGraph(graph)
    before = len(working.edges)
    working.edges = [e for e in working.edges if not _is_mention_from(e, node_id)]
    removed = before - len(working.edges)

    new_edges = _mention_edges_for(node, entities)
    working.edges.extend(new_edges)

    return working.freeze(), MentionRebuildResult(edges_created=len(new_edges), edges_removed=removed, nodes_processed=[node_id])


def rebuild_mentions_for_nodes(graph: GraphState, node_ids: Sequence[str]) -> tuple[GraphState, MentionRebuildResult]:
    """Rebuild mentions for several nodes, sharing one entity catalog."""
    result = MentionRebuildResult()
    entities = build_entity_catalog(graph)
    for node_id in node_ids:
        graph, node_result = rebuild_mentions_for_node(graph, node_id, entities)
        result = result.merge(node_result)
    return graph, result


def rebuild_all_mentions(graph: GraphState) -> tuple[GraphState, MentionRebuildResult]:
    """Drop every MENTIONS edge in the graph and regenerate them for all extractable nodes."""
    working = WorkingGraph(graph)
    before = len(working.edges)
    working.edges = [e for e in working.edges if e.type != MENTIONS_EDGE_TYPE]
    removed = before - len(working.edges)

    entities = build_entity_catalog(graph)
    created = 0
    processed: list[str] = []
    for node in graph.iter_nodes(*EXTRACTABLE_FIELDS):
        processed.append(node.id)
        new_edges = _mention_edges_for(node, entities)
        working.edges.extend(new_edges)
        created += len(new_edges)

    return working.freeze(), MentionRebuildResult(edges_created=created, edges_removed=removed, nodes_processed=processed)
