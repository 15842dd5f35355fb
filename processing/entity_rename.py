# processing/entity_rename.py
"""Rename an entity and propagate the new name through the graph."""

from __future__ import annotations

from typing import Any

import structlog

from core.exceptions import EntityNotFoundError, StoryGraphValidationError, create_error_context
from core.graph import WorkingGraph, node_to_dict
from models.graph_constants import MENTIONABLE_NODE_TYPES, MENTIONS_EDGE_TYPE
from models.graph_models import GraphState, parse_node
from models.mention_models import RenameResult, TextUpdate
from processing.mention_reconciler import rebuild_all_mentions
from utils.text_processing import normalize_entity_name, replace_whole_word, split_name_tokens

logger = structlog.get_logger(__name__)


def _rewrite_value(value: Any, old_name: str, new_name: str) -> tuple[Any, int]:
    if isinstance(value, str):
        return replace_whole_word(value, old_name, new_name)
    if isinstance(value, list):
        total = 0
        rewritten = []
        for item in value:
            if isinstance(item, str):
                item, count = replace_whole_word(item, old_name, new_name)
                total += count
            rewritten.append(item)
        return rewritten, total
    return value, 0


def _needs_rebuild(old_name: str, new_name: str) -> bool:
    return len(old_name) != len(new_name) or len(split_name_tokens(old_name)) != len(split_name_tokens(new_name))


def rename_entity(graph: GraphState, entity_id: str, new_name: str) -> tuple[GraphState, RenameResult]:
    """Rename a Character, Location or Object and rewrite references to it.

    Every string (or list-of-strings) field of each node that currently
    MENTIONS the entity has whole-word, case-sensitive occurrences of the old
    name replaced, possessives first. `matchedText` on the entity's MENTIONS
    edges is rewritten the same way. When the name changed length or word
    count, all mentions are rebuilt so new partial matches are picked up.

    Args:
        graph: Current graph.
        entity_id: Id of the entity to rename.
        new_name: The new name. Whitespace is collapsed and smart quotes straightened.

    Returns:
        The new graph and a `RenameResult`.

    Raises:
        EntityNotFoundError: If no node has `entity_id`.
        StoryGraphValidationError: If the node is not a named entity or the new name is blank.
    """
    node = graph.get_node(entity_id)
    if node is None:
        raise EntityNotFoundError(f"Entity not found: {entity_id}", details=create_error_context(entity_id=entity_id))

    old_name = node.get_field("name")
    if node.type not in MENTIONABLE_NODE_TYPES or not isinstance(old_name, str) or not old_name:
        raise StoryGraphValidationError(
            f"Entity {entity_id} has no name field",
            details=create_error_context(entity_id=entity_id, node_type=node.type),
        )
    new_name = normalize_entity_name(new_name)
    if not new_name:
        raise StoryGraphValidationError("New name must not be blank", details=create_error_context(entity_id=entity_id))

    if old_name == new_name:
        return graph, RenameResult(entity_id=entity_id, old_name=old_name, new_name=new_name)

    working = WorkingGraph(graph)
    working.nodes[entity_id] = parse_node({**node_to_dict(node), "name": new_name})

    mentioning_ids: list[str] = []
    for edge in graph.edges:
        if edge.type == MENTIONS_EDGE_TYPE and edge.to == entity_id and edge.from_ not in mentioning_ids:
            mentioning_ids.append(edge.from_)

    text_updates: list[TextUpdate] = []
    total_replacements = 0
    for source_id in mentioning_ids:
        source = working.nodes.get(source_id)
        if source is None:
            continue
        data = node_to_dict(source)
        changed = False
        for field, value in data.items():
            if field in ("id", "type"):
                continue
            new_value, count = _rewrite_value(value, old_name, new_name)
            if not count:
                continue
            data[field] = new_value
            changed = True
            total_replacements += count
            text_updates.append(
                TextUpdate(
                    node_id=source_id,
                    node_type=source.type,
                    field=field,
                    old_text=value if isinstance(value, str) else " | ".join(str(v) for v in value),
                    new_text=new_value if isinstance(new_value, str) else " | ".join(str(v) for v in new_value),
                    match_count=count,
                )
            )
        if changed:
            working.nodes[source_id] = parse_node(data)

    mentions_updated = 0
    for index, edge in enumerate(working.edges):
        if edge.type != MENTIONS_EDGE_TYPE or edge.to != entity_id or not edge.properties:
            continue
        matched = edge.properties.get("matchedText")
        if not isinstance(matched, str):
            continue
        new_matched, count = replace_whole_word(matched, old_name, new_name)
        if count:
            working.edges[index] = edge.model_copy(update={"properties": {**edge.properties, "matchedText": new_matched}})
            mentions_updated += 1

    result_graph = working.freeze()
    rebuild = _needs_rebuild(old_name, new_name)
    if rebuild:
        result_graph, _ = rebuild_all_mentions(result_graph)

    logger.info(
        "Renamed entity",
        entity_id=entity_id,
        old_name=old_name,
        new_name=new_name,
        nodes_updated=len({u.node_id for u in text_updates}),
        mentions_rebuilt=rebuild,
    )
    return result_graph, RenameResult(
        entity_id=entity_id,
        old_name=old_name,
        new_name=new_name,
        text_updates=text_updates,
        total_replacements=total_replacements,
        mentions_updated=mentions_updated,
        mentions_rebuilt=rebuild,
    )
