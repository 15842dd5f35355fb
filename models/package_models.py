# models/package_models.py
"""Models for AI-proposed narrative packages.

A `NarrativePackage` is the proposal format produced by generation: a titled,
rationalised bundle of node, edge and story-context changes. These models are
permissive where generators are loose (optional lists, free-form `data`) and
strict where conversion depends on a value (`operation`).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .patch_models import Patch
from .story_context_models import StoryContextChange


class NodeChange(BaseModel):
    operation: Literal["add", "modify", "delete"]
    node_type: str
    node_id: str
    data: dict[str, Any] | None = None
    previous_data: dict[str, Any] | None = None


class EdgeChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation: Literal["add", "delete"]
    edge_type: str
    from_: str = Field(..., alias="from")
    to: str
    from_name: str | None = None
    to_name: str | None = None
    properties: dict[str, Any] | None = None


class ConflictInfo(BaseModel):
    type: Literal["contradicts", "duplicates", "interferes"]
    existing_node_id: str
    description: str
    source: Literal["llm", "lint"] = "llm"
    resolution_included: bool = False


class PackageChanges(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    story_context: list[StoryContextChange] | None = Field(None, alias="storyContext")
    nodes: list[NodeChange] = Field(default_factory=list)
    edges: list[EdgeChange] = Field(default_factory=list)


class PackageImpact(BaseModel):
    fulfills_gaps: list[str] = Field(default_factory=list)
    creates_gaps: list[str] = Field(default_factory=list)
    conflicts: list[ConflictInfo] = Field(default_factory=list)


class NarrativePackage(BaseModel):
    id: str
    title: str
    rationale: str = ""
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    parent_package_id: str | None = None
    refinement_prompt: str | None = None
    style_tags: list[str] = Field(default_factory=list)
    changes: PackageChanges = Field(default_factory=PackageChanges)
    impact: PackageImpact = Field(default_factory=PackageImpact)


class StoryContextUpdate(BaseModel):
    new_context: str
    changes: list[StoryContextChange]


class ConversionResult(BaseModel):
    patch: Patch
    story_context_update: StoryContextUpdate | None = None
    dropped_edges: list[EdgeChange] = Field(default_factory=list)


class PackageValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
