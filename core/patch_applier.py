# core/patch_applier.py
"""Apply validated patches to a graph, producing a new graph state.

The applier assumes its input was accepted by `validate_patch`. It does not
re-run validation; when an op cannot be applied at all it raises
`PatchApplicationError` with the op index, which signals a caller bug rather
than a condition to recover from.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import ValidationError

from core.exceptions import PatchApplicationError, create_error_context
from core.graph import WorkingGraph, generate_edge_id, node_to_dict
from models.graph_constants import DEFAULT_EDGE_STATUS
from models.graph_models import Edge, EdgeProvenance, GraphState, parse_node
from models.patch_models import (
    AddEdgeOp,
    AddNodeOp,
    DeleteEdgeOp,
    DeleteNodeOp,
    Patch,
    PatchOp,
    UpdateNodeOp,
)


def apply_patch(graph: GraphState, patch: Patch) -> GraphState:
    """Apply every op of `patch` in order and return the resulting graph.

    Args:
        graph: The graph to start from. It is not modified.
        patch: A patch that has passed validation against `graph`.

    Returns:
        A new `GraphState`.

    Raises:
        PatchApplicationError: If an op cannot be applied.
    """
    working = WorkingGraph(graph)
    for index, op in enumerate(patch.ops):
        _apply_op(working, op, patch, index)
    return working.freeze()


def apply_patches(graph: GraphState, patches: Iterable[Patch]) -> GraphState:
    """Fold several patches over `graph` in order."""
    for patch in patches:
        graph = apply_patch(graph, patch)
    return graph


def _fail(message: str, patch: Patch, index: int, op: PatchOp) -> PatchApplicationError:
    return PatchApplicationError(message, details=create_error_context(op_index=index, op=op.op, patch_id=patch.id))


def _apply_op(working: WorkingGraph, op: PatchOp, patch: Patch, index: int) -> None:
    if isinstance(op, AddNodeOp):
        node_id = op.node.get("id")
        if node_id in working.nodes:
            raise _fail(f'Node with ID "{node_id}" already exists', patch, index, op)
        try:
            node = parse_node(op.node)
        except ValidationError as exc:
            raise _fail(f'Node payload for "{node_id}" is invalid: {exc.error_count()} error(s)', patch, index, op) from exc
        working.nodes[node.id] = node

    elif isinstance(op, UpdateNodeOp):
        existing = working.nodes.get(op.id)
        if existing is None:
            raise _fail(f'Node "{op.id}" not found', patch, index, op)
        for field in ("id", "type"):
            if field in op.set_ or field in op.unset:
                raise _fail(f'Cannot change "{field}" of node "{op.id}"', patch, index, op)
        merged = {**node_to_dict(existing), **op.set_}
        for field in op.unset:
            merged.pop(field, None)
        try:
            working.nodes[op.id] = parse_node(merged)
        except ValidationError as exc:
            raise _fail(f'Update leaves node "{op.id}" invalid: {exc.error_count()} error(s)', patch, index, op) from exc

    elif isinstance(op, DeleteNodeOp):
        if op.id not in working.nodes:
            raise _fail(f'Node "{op.id}" not found', patch, index, op)
        working.remove_node(op.id)

    elif isinstance(op, AddEdgeOp):
        edge = op.edge
        if working.find_edges(edge.type, edge.from_, edge.to):
            raise _fail(f'Edge "{edge.type}" from "{edge.from_}" to "{edge.to}" already exists', patch, index, op)
        taken = working.edge_ids()
        if edge.id is not None and edge.id in taken:
            raise _fail(f'Edge with ID "{edge.id}" already exists', patch, index, op)
        working.edges.append(_normalize_edge(edge, patch, taken))

    elif isinstance(op, DeleteEdgeOp):
        ref = op.edge
        if ref.id is not None:
            matches = [i for i, e in enumerate(working.edges) if e.id == ref.id]
            missing = f'Edge with ID "{ref.id}" not found'
        else:
            matches = working.find_edges(ref.type, ref.from_, ref.to)
            missing = f'Edge "{ref.type}" from "{ref.from_}" to "{ref.to}" not found'
        if not matches:
            raise _fail(missing, patch, index, op)
        del working.edges[matches[0]]


def _normalize_edge(edge: Edge, patch: Patch, taken: set[str]) -> Edge:
    """Fill in id, status, provenance and timestamp defaults for a new edge."""
    return edge.model_copy(
        update={
            "id": edge.id or generate_edge_id(edge.type, edge.from_, edge.to, taken),
            "status": edge.status or DEFAULT_EDGE_STATUS,
            "provenance": edge.provenance or EdgeProvenance(source="import", patch_id=patch.id),
            "created_at": edge.created_at or patch.created_at,
        }
    )
