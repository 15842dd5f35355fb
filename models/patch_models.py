# models/patch_models.py
"""Patch, patch-op and validation result models.

A `Patch` is the only way the story graph changes. Ops are a discriminated
union on `op`; node payloads in `ADD_NODE` stay as wire dicts so the validator
can report schema problems as issues instead of failing at construction.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .graph_models import Edge, GraphState


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AddNodeOp(BaseModel):
    op: Literal["ADD_NODE"] = "ADD_NODE"
    node: dict[str, Any]

    @field_validator("node", mode="before")
    @classmethod
    def _dump_node_model(cls, value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value.model_dump(exclude_none=True)
        return value


class UpdateNodeOp(BaseModel):
    """Shallow-merge `set` into a node and drop the fields named in `unset`."""

    model_config = ConfigDict(populate_by_name=True)

    op: Literal["UPDATE_NODE"] = "UPDATE_NODE"
    id: str
    set_: dict[str, Any] = Field(default_factory=dict, alias="set")
    unset: list[str] = Field(default_factory=list)


class DeleteNodeOp(BaseModel):
    op: Literal["DELETE_NODE"] = "DELETE_NODE"
    id: str


class AddEdgeOp(BaseModel):
    op: Literal["ADD_EDGE"] = "ADD_EDGE"
    edge: Edge


class EdgeRef(BaseModel):
    """Identifies an edge to delete, either by id or by its `(type, from, to)` triple."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    type: str | None = None
    from_: str | None = Field(None, alias="from")
    to: str | None = None

    @model_validator(mode="after")
    def _require_id_or_triple(self) -> EdgeRef:
        if self.id is None and (self.type is None or self.from_ is None or self.to is None):
            raise ValueError("edge reference needs an id or a complete (type, from, to) triple")
        return self

    @property
    def key(self) -> tuple[str | None, str | None, str | None]:
        return (self.type, self.from_, self.to)


class DeleteEdgeOp(BaseModel):
    op: Literal["DELETE_EDGE"] = "DELETE_EDGE"
    edge: EdgeRef


PatchOp = Annotated[
    Union[AddNodeOp, UpdateNodeOp, DeleteNodeOp, AddEdgeOp, DeleteEdgeOp],
    Field(discriminator="op"),
]


class Patch(BaseModel):
    """An ordered, atomic change set against one story version."""

    id: str
    base_story_version_id: str
    created_at: str = Field(default_factory=utc_now_iso)
    ops: list[PatchOp] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ValidationIssue(BaseModel):
    """A single validation finding, tied to the op that produced it."""

    code: str
    message: str
    op_index: int | None = None
    node_id: str | None = None
    edge_id: str | None = None
    field: str | None = None


class ValidationResult(BaseModel):
    success: bool = True
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @property
    def error_codes(self) -> list[str]:
        return [issue.code for issue in self.errors]

    @property
    def warning_codes(self) -> list[str]:
        return [issue.code for issue in self.warnings]


class CommitResult(BaseModel):
    """Everything produced by one logical commit of a patch."""

    graph: GraphState
    story_context: str | None = None
    validation: ValidationResult
    edges_created: int = 0
    edges_removed: int = 0
    nodes_reconciled: list[str] = Field(default_factory=list)
    full_rebuild: bool = False
