# processing/mention_validation.py
"""Detect entities referenced before they are introduced on the beat timeline.

A character is introduced at the earliest Beat (by `position_index`) where it
appears: a Scene that HAS_CHARACTER it, or a StoryBeat/PlotPoint/Scene that
MENTIONS it. Scenes reach the timeline through the story beat that is
SATISFIED_BY them; story beats through ALIGNS_WITH.
"""

from __future__ import annotations

import math
import re

from models.graph_constants import EXTRACTABLE_FIELDS, TIMELINE_NODE_TYPES
from models.graph_models import GraphState
from models.mention_models import EntityInfo, TemporalViolation
from models.package_models import NarrativePackage
from processing.mention_extraction import extract_mentions, extract_text_from_node
from processing.mention_reconciler import build_entity_catalog


def get_beat_order(graph: GraphState) -> dict[str, int]:
    """Map beat id to its `position_index` (beats without a position are skipped)."""
    order: dict[str, int] = {}
    for beat in graph.iter_nodes("Beat"):
        position = beat.get_field("position_index")
        if isinstance(position, int):
            order[beat.id] = position
    return order


def get_aligned_beat(graph: GraphState, story_beat_id: str) -> str | None:
    for edge in graph.edges:
        if edge.type == "ALIGNS_WITH" and edge.from_ == story_beat_id:
            return edge.to
    return None


def get_scene_aligned_beat(graph: GraphState, scene_id: str) -> str | None:
    for edge in graph.edges:
        if edge.type == "SATISFIED_BY" and edge.to == scene_id:
            return get_aligned_beat(graph, edge.from_)
    return None


def _timeline_beat(graph: GraphState, node_id: str, node_type: str) -> str | None:
    if node_type in TIMELINE_NODE_TYPES:
        return get_aligned_beat(graph, node_id)
    if node_type == "Scene":
        return get_scene_aligned_beat(graph, node_id)
    return None


def format_beat_name(beat_id: str) -> str:
    """`beat_OpeningImage` -> `Opening Image`."""
    name = beat_id.replace("beat_", "", 1)
    return re.sub(r"([A-Z])", r" \1", name).strip()


def compute_introduction_points(graph: GraphState) -> dict[str, str]:
    """Return the beat id where each character first appears, keyed by character id.

    Characters that never reach the timeline are absent from the result.
    """
    beat_order = get_beat_order(graph)
    introductions: dict[str, str] = {}
    best_position: dict[str, int] = {}

    for edge in graph.edges:
        if edge.type == "HAS_CHARACTER":
            beat_id = get_scene_aligned_beat(graph, edge.from_)
        elif edge.type == "MENTIONS":
            source = graph.get_node(edge.from_)
            if source is None:
                continue
            beat_id = _timeline_beat(graph, source.id, source.type)
        else:
            continue

        target = graph.get_node(edge.to)
        if beat_id is None or target is None or target.type != "Character" or beat_id not in beat_order:
            continue
        position = beat_order[beat_id]
        if position < best_position.get(edge.to, math.inf):
            best_position[edge.to] = position
            introductions[edge.to] = beat_id

    return introductions


def _violation(
    node_id: str,
    node_type: str,
    entity: EntityInfo | None,
    entity_id: str,
    at_beat: str,
    at_position: int,
    intro_beat: str,
    intro_position: int,
) -> TemporalViolation:
    name = entity.name if entity else entity_id
    return TemporalViolation(
        node_id=node_id,
        node_type=node_type,
        entity_id=entity_id,
        entity_name=name,
        at_beat_id=at_beat,
        at_position=at_position,
        introduced_at_beat_id=intro_beat,
        introduced_at_position=intro_position,
        message=(
            f'"{name}" referenced at {format_beat_name(at_beat)} (position {at_position}) '
            f"but introduced at {format_beat_name(intro_beat)} (position {intro_position})"
        ),
    )


def validate_temporal_consistency(graph: GraphState) -> list[TemporalViolation]:
    """Report story beats and scenes whose text references a character before its introduction."""
    beat_order = get_beat_order(graph)
    introductions = compute_introduction_points(graph)
    entities = build_entity_catalog(graph)
    by_id = {entity.id: entity for entity in entities}
    violations: list[TemporalViolation] = []

    for node in graph.iter_nodes("StoryBeat", "PlotPoint", "Scene"):
        at_beat = _timeline_beat(graph, node.id, node.type)
        if at_beat is None or at_beat not in beat_order:
            continue
        at_position = beat_order[at_beat]
        text = extract_text_from_node(node, EXTRACTABLE_FIELDS[node.type])
        for mention in extract_mentions(text, entities):
            intro_beat = introductions.get(mention.entity_id)
            if intro_beat is None or intro_beat not in beat_order:
                continue
            intro_position = beat_order[intro_beat]
            if intro_position > at_position:
                violations.append(
                    _violation(node.id, node.type, by_id.get(mention.entity_id), mention.entity_id, at_beat, at_position, intro_beat, intro_position)
                )
    return violations


def validate_proposal_mentions(pkg: NarrativePackage, graph: GraphState) -> list[TemporalViolation]:
    """Check the story beats a package would add for references that precede an introduction.

    Entities added by the package are introduced by their first mention among
    the package's story beats, taken in timeline order.
    """
    beat_order = get_beat_order(graph)
    introductions = compute_introduction_points(graph)

    proposed_entities = []
    for change in pkg.changes.nodes:
        if change.operation != "add" or change.node_type not in ("Character", "Location", "Object"):
            continue
        data = change.data or {}
        name = data.get("name")
        if isinstance(name, str) and name.strip():
            proposed_entities.append(EntityInfo(id=change.node_id, type=change.node_type, name=name, aliases=data.get("aliases") or []))
    proposed_ids = {entity.id for entity in proposed_entities}
    all_entities = [*build_entity_catalog(graph), *proposed_entities]
    by_id = {entity.id: entity for entity in all_entities}

    placed = []
    for change in pkg.changes.nodes:
        if change.operation != "add" or change.node_type not in TIMELINE_NODE_TYPES:
            continue
        aligned_to = next(
            (e.to for e in pkg.changes.edges if e.operation == "add" and e.edge_type == "ALIGNS_WITH" and e.from_ == change.node_id),
            None,
        )
        if aligned_to is not None and aligned_to in beat_order:
            placed.append((beat_order[aligned_to], aligned_to, change))
    placed.sort(key=lambda item: item[0])

    proposed_introductions: dict[str, tuple[str, int]] = {}
    violations: list[TemporalViolation] = []
    for position, aligned_to, change in placed:
        text = extract_text_from_node(change.data or {}, EXTRACTABLE_FIELDS[change.node_type])
        for mention in extract_mentions(text, all_entities):
            if mention.entity_id in proposed_ids and mention.entity_id not in proposed_introductions:
                proposed_introductions[mention.entity_id] = (aligned_to, position)

            intro_beat = introductions.get(mention.entity_id)
            intro_position = beat_order.get(intro_beat) if intro_beat else None
            proposed = proposed_introductions.get(mention.entity_id)
            if proposed and (intro_position is None or proposed[1] < intro_position):
                intro_beat, intro_position = proposed

            if intro_beat is None or intro_position is None:
                continue
            if intro_position > position:
                violations.append(
                    _violation(change.node_id, change.node_type, by_id.get(mention.entity_id), mention.entity_id, aligned_to, position, intro_beat, intro_position)
                )
    return violations
