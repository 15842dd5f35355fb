# core/patch_validator.py
"""Validate patches against a graph before they are applied.

`validate_patch` simulates the ops of a patch in order against a lightweight
working view of the graph (known node ids and types, node data and the edge
list) so later ops can reference nodes and edges introduced earlier in the same
patch. All problems are collected; nothing is raised and the input graph is
never touched.

Issue codes:
    DUPLICATE_ID, INVALID_TYPE, MISSING_REQUIRED, INVALID_FIELD, OUT_OF_RANGE,
    NODE_NOT_FOUND, IMMUTABLE_FIELD, INVALID_EDGE_TYPE, DERIVED_EDGE,
    FK_INTEGRITY, INVALID_EDGE_SOURCE, INVALID_EDGE_TARGET, DUPLICATE_EDGE,
    INVALID_EDGE_ID, INVALID_EDGE_PROPERTY, INVALID_EDGE_STATUS, EDGE_NOT_FOUND.
Warning codes:
    AMBIGUOUS_EDGE_DELETE.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

import config
from core.graph import generate_edge_id, node_to_dict
from models.graph_constants import (
    DERIVED_EDGE_TYPES,
    EDGE_RULES,
    EDGE_STATUSES,
    PATCHABLE_EDGE_TYPES,
)
from models.graph_models import NODE_CLASSES, Edge, GraphState, StoryNode, parse_node
from models.patch_models import (
    AddEdgeOp,
    AddNodeOp,
    DeleteEdgeOp,
    DeleteNodeOp,
    Patch,
    UpdateNodeOp,
    ValidationIssue,
    ValidationResult,
)

_IMMUTABLE_NODE_FIELDS = ("id", "type")
_RANGE_ERROR_TYPES = {"greater_than", "greater_than_equal", "less_than", "less_than_equal"}


@dataclass
class _EdgeRow:
    id: str | None
    type: str
    from_: str
    to: str


class _WorkingView:
    """What the graph would look like after the ops simulated so far."""

    def __init__(self, graph: GraphState):
        self.node_types: dict[str, str] = {node_id: node.type for node_id, node in graph.nodes.items()}
        self.nodes: dict[str, StoryNode] = dict(graph.nodes)
        # Stored edges without an id can only be matched by their triple, as in the applier.
        self.edges: list[_EdgeRow] = [_EdgeRow(e.id, e.type, e.from_, e.to) for e in graph.edges]

    def remove_node(self, node_id: str) -> None:
        self.node_types.pop(node_id, None)
        self.nodes.pop(node_id, None)
        self.edges = [e for e in self.edges if e.from_ != node_id and e.to != node_id]


class _IssueCollector:
    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, code: str, message: str, op_index: int, **context: Any) -> None:
        self.errors.append(ValidationIssue(code=code, message=message, op_index=op_index, **context))

    def warning(self, code: str, message: str, op_index: int, **context: Any) -> None:
        self.warnings.append(ValidationIssue(code=code, message=message, op_index=op_index, **context))


def validate_patch(graph: GraphState, patch: Patch) -> ValidationResult:
    """Validate every op of `patch` against `graph` without applying it.

    Args:
        graph: The graph the patch would be applied to.
        patch: The patch to check.

    Returns:
        A `ValidationResult`; `success` is True when no errors were found.
        Warnings never affect `success`.
    """
    view = _WorkingView(graph)
    issues = _IssueCollector()

    for index, op in enumerate(patch.ops):
        if isinstance(op, AddNodeOp):
            _check_add_node(view, op, index, issues)
        elif isinstance(op, UpdateNodeOp):
            _check_update_node(view, op, index, issues)
        elif isinstance(op, DeleteNodeOp):
            _check_delete_node(view, op, index, issues)
        elif isinstance(op, AddEdgeOp):
            _check_add_edge(view, op.edge, index, issues)
        elif isinstance(op, DeleteEdgeOp):
            _check_delete_edge(view, op, index, issues)

    return ValidationResult(success=not issues.errors, errors=issues.errors, warnings=issues.warnings)


def is_patch_valid(graph: GraphState, patch: Patch) -> bool:
    return validate_patch(graph, patch).success


def _report_schema_errors(
    exc: ValidationError,
    node_id: str,
    index: int,
    issues: _IssueCollector,
    missing_code: str,
) -> None:
    for err in exc.errors():
        loc = err.get("loc") or ()
        # Discriminated unions prefix the location with the tag.
        field = str(loc[-1]) if loc else None
        err_type = err.get("type", "")
        if err_type == "missing":
            code = missing_code
        elif err_type in _RANGE_ERROR_TYPES:
            code = "OUT_OF_RANGE"
        else:
            code = "INVALID_FIELD"
        issues.error(
            code,
            f'Node "{node_id}" field "{field}": {err.get("msg", "invalid value")}',
            index,
            node_id=node_id,
            field=field,
        )


def _check_add_node(view: _WorkingView, op: AddNodeOp, index: int, issues: _IssueCollector) -> None:
    payload = op.node
    node_id = payload.get("id")
    node_type = payload.get("type")

    if not isinstance(node_id, str) or not node_id:
        issues.error("MISSING_REQUIRED", "ADD_NODE payload has no id", index, field="id")
        return
    if node_id in view.node_types:
        issues.error("DUPLICATE_ID", f'Node with ID "{node_id}" already exists', index, node_id=node_id)
        return
    if not isinstance(node_type, str) or node_type not in NODE_CLASSES:
        issues.error("INVALID_TYPE", f'Unknown node type "{node_type}" for node "{node_id}"', index, node_id=node_id, field="type")
        # Register the id so later ops in the patch are not flagged twice.
        view.node_types[node_id] = str(node_type)
        return

    view.node_types[node_id] = node_type
    try:
        view.nodes[node_id] = parse_node(payload)
    except ValidationError as exc:
        _report_schema_errors(exc, node_id, index, issues, missing_code="MISSING_REQUIRED")


def _check_update_node(view: _WorkingView, op: UpdateNodeOp, index: int, issues: _IssueCollector) -> None:
    if op.id not in view.node_types:
        issues.error("NODE_NOT_FOUND", f'Node "{op.id}" not found', index, node_id=op.id)
        return

    immutable = [f for f in _IMMUTABLE_NODE_FIELDS if f in op.set_ or f in op.unset]
    for field in immutable:
        issues.error("IMMUTABLE_FIELD", f'Cannot change "{field}" of node "{op.id}"', index, node_id=op.id, field=field)
    if immutable:
        return

    existing = view.nodes.get(op.id)
    if existing is None:
        # Added earlier in this patch with a payload that already failed validation.
        return

    merged = {**node_to_dict(existing), **op.set_}
    for field in op.unset:
        merged.pop(field, None)
    try:
        view.nodes[op.id] = parse_node(merged)
    except ValidationError as exc:
        _report_schema_errors(exc, op.id, index, issues, missing_code="INVALID_FIELD")


def _check_delete_node(view: _WorkingView, op: DeleteNodeOp, index: int, issues: _IssueCollector) -> None:
    if op.id not in view.node_types:
        issues.error("NODE_NOT_FOUND", f'Node "{op.id}" not found', index, node_id=op.id)
        return
    view.remove_node(op.id)


def _check_edge_properties(edge: Edge, index: int, issues: _IssueCollector) -> None:
    props = edge.properties or {}
    label = edge.id or f"{edge.type}:{edge.from_}:{edge.to}"

    order = props.get("order")
    if order is not None and (not _is_number(order) or order < 1):
        issues.error("INVALID_EDGE_PROPERTY", f'Edge "{label}" has invalid order: {order} (must be >= 1)', index, edge_id=edge.id, field="order")

    for name in ("weight", "confidence"):
        value = props.get(name)
        if value is not None and (not _is_number(value) or not 0 <= value <= 1):
            issues.error("INVALID_EDGE_PROPERTY", f'Edge "{label}" has invalid {name}: {value} (must be 0-1)', index, edge_id=edge.id, field=name)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_add_edge(view: _WorkingView, edge: Edge, index: int, issues: _IssueCollector) -> None:
    if edge.type in DERIVED_EDGE_TYPES:
        issues.error("DERIVED_EDGE", f'"{edge.type}" edges are maintained automatically and cannot be added by a patch', index, edge_id=edge.id)
        return
    if edge.type not in PATCHABLE_EDGE_TYPES:
        issues.error("INVALID_EDGE_TYPE", f'Unknown edge type: "{edge.type}"', index, edge_id=edge.id)
        return

    before = len(issues.errors)

    from_type = view.node_types.get(edge.from_)
    to_type = view.node_types.get(edge.to)
    if from_type is None:
        issues.error("FK_INTEGRITY", f'Edge "{edge.type}" references non-existent source node "{edge.from_}"', index, node_id=edge.from_)
    if to_type is None:
        issues.error("FK_INTEGRITY", f'Edge "{edge.type}" references non-existent target node "{edge.to}"', index, node_id=edge.to)

    if config.ENFORCE_EDGE_ENDPOINT_RULES:
        allowed_sources, allowed_targets = EDGE_RULES[edge.type]
        if from_type is not None and from_type not in allowed_sources:
            issues.error("INVALID_EDGE_SOURCE", f'Edge "{edge.type}" cannot have source type "{from_type}"', index, node_id=edge.from_)
        if to_type is not None and to_type not in allowed_targets:
            issues.error("INVALID_EDGE_TARGET", f'Edge "{edge.type}" cannot have target type "{to_type}"', index, node_id=edge.to)

    if any(row.type == edge.type and row.from_ == edge.from_ and row.to == edge.to for row in view.edges):
        issues.error("DUPLICATE_EDGE", f'Duplicate edge: "{edge.type}" from "{edge.from_}" to "{edge.to}"', index)

    taken_ids = {row.id for row in view.edges if row.id is not None}
    if edge.id is not None and (not edge.id or edge.id in taken_ids):
        issues.error("INVALID_EDGE_ID", f'Edge ID "{edge.id}" is empty or already in use', index, edge_id=edge.id)

    _check_edge_properties(edge, index, issues)

    if edge.status is not None and edge.status not in EDGE_STATUSES:
        issues.error(
            "INVALID_EDGE_STATUS",
            f'Edge has invalid status: "{edge.status}" (must be one of: {", ".join(sorted(EDGE_STATUSES))})',
            index,
            edge_id=edge.id,
            field="status",
        )

    if len(issues.errors) == before:
        edge_id = edge.id or generate_edge_id(edge.type, edge.from_, edge.to, taken_ids)
        view.edges.append(_EdgeRow(edge_id, edge.type, edge.from_, edge.to))


def _check_delete_edge(view: _WorkingView, op: DeleteEdgeOp, index: int, issues: _IssueCollector) -> None:
    ref = op.edge
    if ref.type in DERIVED_EDGE_TYPES:
        issues.error("DERIVED_EDGE", f'"{ref.type}" edges are maintained automatically and cannot be deleted by a patch', index, edge_id=ref.id)
        return

    if ref.id is not None:
        matches = [i for i, row in enumerate(view.edges) if row.id == ref.id]
        if not matches:
            issues.error("EDGE_NOT_FOUND", f'Edge with ID "{ref.id}" not found', index, edge_id=ref.id)
            return
        if view.edges[matches[0]].type in DERIVED_EDGE_TYPES:
            issues.error("DERIVED_EDGE", f'Edge "{ref.id}" is a derived edge and cannot be deleted by a patch', index, edge_id=ref.id)
            return
    else:
        matches = [i for i, row in enumerate(view.edges) if (row.type, row.from_, row.to) == ref.key]
        if not matches:
            issues.error("EDGE_NOT_FOUND", f'Edge "{ref.type}" from "{ref.from_}" to "{ref.to}" not found', index)
            return
        if len(matches) > 1:
            issues.warning(
                "AMBIGUOUS_EDGE_DELETE",
                f'{len(matches)} edges match "{ref.type}" from "{ref.from_}" to "{ref.to}"; only the first will be deleted',
                index,
            )

    del view.edges[matches[0]]
