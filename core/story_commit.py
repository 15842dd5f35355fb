# core/story_commit.py
"""Commit a patch as one logical unit: validate, apply, reconcile, patch text.

This is the boundary callers use to change a story. It raises on invalid input
(unlike the pure functions it composes) and logs what it did.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from core.exceptions import PatchValidationError, StaleBaseVersionError, create_error_context
from core.patch_applier import apply_patch
from core.patch_validator import validate_patch
from models.graph_constants import EXTRACTABLE_FIELDS, MENTIONABLE_NODE_TYPES
from models.graph_models import GraphState
from models.mention_models import MentionRebuildResult
from models.patch_models import (
    AddNodeOp,
    CommitResult,
    DeleteNodeOp,
    Patch,
    UpdateNodeOp,
)
from models.story_context_models import StoryContextChange
from processing.mention_reconciler import rebuild_all_mentions, rebuild_mentions_for_nodes
from processing.story_context_patcher import apply_story_context_changes
from utils.text_processing import truncate_for_log

logger = structlog.get_logger(__name__)


def touched_node_ids(patch: Patch) -> list[str]:
    """Ids of nodes added, updated or deleted by `patch`, in first-touch order."""
    ids: list[str] = []
    for op in patch.ops:
        if isinstance(op, AddNodeOp):
            node_id = op.node.get("id")
        elif isinstance(op, (UpdateNodeOp, DeleteNodeOp)):
            node_id = op.id
        else:
            continue
        if isinstance(node_id, str) and node_id not in ids:
            ids.append(node_id)
    return ids


def _touches_entities(before: GraphState, after: GraphState, node_ids: Sequence[str]) -> bool:
    for node_id in node_ids:
        for graph in (before, after):
            node = graph.get_node(node_id)
            if node is not None and node.type in MENTIONABLE_NODE_TYPES:
                return True
    return False


def commit_patch(
    graph: GraphState,
    patch: Patch,
    story_context: str | None = None,
    story_context_changes: Sequence[StoryContextChange] | None = None,
    current_version_id: str | None = None,
) -> CommitResult:
    """Validate and apply `patch`, then bring derived state up to date.

    Mentions are rebuilt for the extractable nodes the patch touched. When the
    patch adds, changes or removes a mentionable entity, every node may be
    affected, so all mentions are rebuilt instead.

    Args:
        graph: Graph at the patch's base version.
        patch: The change set to commit.
        story_context: Current story context document.
        story_context_changes: Edits to apply to the story context in the same commit.
        current_version_id: When given, must equal `patch.base_story_version_id`.

    Returns:
        A `CommitResult` with the new graph and story context.

    Raises:
        StaleBaseVersionError: If the patch was built against another version.
        PatchValidationError: If the patch fails validation. `details["errors"]`
            lists the issues.
    """
    log = logger.bind(patch_id=patch.id, base_version=patch.base_story_version_id)

    if current_version_id is not None and patch.base_story_version_id != current_version_id:
        log.warning("Rejected patch built against a stale version", current_version=current_version_id)
        raise StaleBaseVersionError(
            f"Patch {patch.id} targets version {patch.base_story_version_id}, current is {current_version_id}",
            details=create_error_context(patch_id=patch.id, base_version=patch.base_story_version_id, current_version=current_version_id),
        )

    validation = validate_patch(graph, patch)
    for warning in validation.warnings:
        log.warning("Patch validation warning", code=warning.code, message=truncate_for_log(warning.message), op_index=warning.op_index)
    if not validation.success:
        log.warning("Patch failed validation", error_count=len(validation.errors), codes=validation.error_codes)
        raise PatchValidationError(
            f"Patch {patch.id} failed validation with {len(validation.errors)} error(s)",
            details=create_error_context(patch_id=patch.id, errors=[issue.model_dump(exclude_none=True) for issue in validation.errors]),
        )

    new_graph = apply_patch(graph, patch)

    touched = touched_node_ids(patch)
    full_rebuild = _touches_entities(graph, new_graph, touched)
    if full_rebuild:
        new_graph, rebuild = rebuild_all_mentions(new_graph)
    else:
        targets = [node_id for node_id in touched if (node := new_graph.get_node(node_id)) is not None and node.type in EXTRACTABLE_FIELDS]
        new_graph, rebuild = rebuild_mentions_for_nodes(new_graph, targets) if targets else (new_graph, MentionRebuildResult())

    new_context = story_context
    if story_context_changes:
        new_context = apply_story_context_changes(story_context or "", story_context_changes)

    log.info(
        "Committed patch",
        ops=len(patch.ops),
        nodes=len(new_graph.nodes),
        edges=len(new_graph.edges),
        mentions_created=rebuild.edges_created,
        mentions_removed=rebuild.edges_removed,
        nodes_reconciled=len(rebuild.nodes_processed),
        full_rebuild=full_rebuild,
    )
    return CommitResult(
        graph=new_graph,
        story_context=new_context,
        validation=validation,
        edges_created=rebuild.edges_created,
        edges_removed=rebuild.edges_removed,
        nodes_reconciled=rebuild.nodes_processed,
        full_rebuild=full_rebuild,
    )
