# processing/package_conversion.py
"""Translate AI narrative packages into graph patches.

Node changes become ADD_NODE / UPDATE_NODE / DELETE_NODE ops and edge changes
become ADD_EDGE / DELETE_EDGE ops. Story context changes are not graph changes;
they are applied to the supplied document and returned alongside the patch.

Generators sometimes invent edge types. Edge changes whose type is not a
patchable edge type (unknown names, or the derived MENTIONS type) are left out
of the patch and listed in `dropped_edges` instead of failing the conversion.
"""

from __future__ import annotations

from collections.abc import Collection

from models.graph_constants import PATCHABLE_EDGE_TYPES
from models.graph_models import Edge, EdgeProvenance
from models.package_models import (
    ConversionResult,
    EdgeChange,
    NarrativePackage,
    PackageValidationResult,
    StoryContextUpdate,
)
from models.patch_models import (
    AddEdgeOp,
    AddNodeOp,
    DeleteEdgeOp,
    DeleteNodeOp,
    EdgeRef,
    Patch,
    PatchOp,
    UpdateNodeOp,
    utc_now_iso,
)
from processing.story_context_patcher import apply_story_context_changes


def package_patch_id(pkg: NarrativePackage) -> str:
    return f"patch_pkg_{pkg.id}"


def package_to_patch(
    pkg: NarrativePackage,
    base_version_id: str,
    current_story_context: str | None = None,
    created_at: str | None = None,
) -> ConversionResult:
    """Convert a narrative package into a patch plus an optional story-context update.

    Args:
        pkg: The package to convert.
        base_version_id: Story version the patch will be validated against.
        current_story_context: Current story context document, used when the
            package carries story-context changes.
        created_at: Timestamp for the patch; defaults to now (UTC).

    Returns:
        A `ConversionResult`. `story_context_update` is set only when the package
        has story-context changes.
    """
    patch_id = package_patch_id(pkg)
    ops: list[PatchOp] = []

    for change in pkg.changes.nodes:
        if change.operation == "add":
            ops.append(AddNodeOp(node={**(change.data or {}), "type": change.node_type, "id": change.node_id}))
        elif change.operation == "modify":
            ops.append(UpdateNodeOp(id=change.node_id, set_=dict(change.data or {})))
        elif change.operation == "delete":
            ops.append(DeleteNodeOp(id=change.node_id))

    dropped: list[EdgeChange] = []
    for edge_change in pkg.changes.edges:
        if edge_change.edge_type not in PATCHABLE_EDGE_TYPES:
            dropped.append(edge_change)
            continue
        if edge_change.operation == "add":
            ops.append(
                AddEdgeOp(
                    edge=Edge(
                        type=edge_change.edge_type,
                        from_=edge_change.from_,
                        to=edge_change.to,
                        properties=dict(edge_change.properties) if edge_change.properties else None,
                        provenance=EdgeProvenance(source="extractor", patch_id=pkg.id),
                    )
                )
            )
        else:
            ops.append(DeleteEdgeOp(edge=EdgeRef(type=edge_change.edge_type, from_=edge_change.from_, to=edge_change.to)))

    patch = Patch(
        id=patch_id,
        base_story_version_id=base_version_id,
        created_at=created_at or utc_now_iso(),
        ops=ops,
        metadata={
            "source": "ai_generation",
            "package_id": pkg.id,
            "package_title": pkg.title,
            "confidence": pkg.confidence,
        },
    )

    story_context_update = None
    if pkg.changes.story_context:
        story_context_update = StoryContextUpdate(
            new_context=apply_story_context_changes(current_story_context or "", pkg.changes.story_context),
            changes=list(pkg.changes.story_context),
        )

    return ConversionResult(patch=patch, story_context_update=story_context_update, dropped_edges=dropped)


def validate_package_for_conversion(pkg: NarrativePackage, existing_node_ids: Collection[str]) -> PackageValidationResult:
    """Check that modify/delete node changes and edge deletes refer to existing nodes."""
    errors: list[str] = []
    for change in pkg.changes.nodes:
        if change.operation != "add" and change.node_id not in existing_node_ids:
            errors.append(f"Cannot {change.operation} non-existent node: {change.node_id}")

    for edge_change in pkg.changes.edges:
        if edge_change.operation == "delete" and (edge_change.from_ not in existing_node_ids or edge_change.to not in existing_node_ids):
            errors.append(f"Cannot delete edge between non-existent nodes: {edge_change.from_} -> {edge_change.to}")

    return PackageValidationResult(valid=not errors, errors=errors)
