# models/__init__.py
"""Export commonly used story graph model types.

This package exposes a stable import surface for the Pydantic models used by
the validator, applier and processing modules.
"""

from .graph_models import (
    NODE_CLASSES,
    Beat,
    Character,
    CharacterArc,
    Edge,
    EdgeProvenance,
    GraphState,
    Idea,
    Location,
    Logline,
    Node,
    PlotPoint,
    Scene,
    Setting,
    StoryBeat,
    StoryNode,
    StoryObject,
    parse_node,
)
from .mention_models import (
    EntityInfo,
    Mention,
    MentionOccurrence,
    MentionRebuildResult,
    RenameResult,
    TemporalViolation,
    TextUpdate,
)
from .package_models import (
    ConflictInfo,
    ConversionResult,
    EdgeChange,
    NarrativePackage,
    NodeChange,
    PackageChanges,
    PackageImpact,
    PackageValidationResult,
    StoryContextUpdate,
)
from .patch_models import (
    AddEdgeOp,
    AddNodeOp,
    CommitResult,
    DeleteEdgeOp,
    DeleteNodeOp,
    EdgeRef,
    Patch,
    PatchOp,
    UpdateNodeOp,
    ValidationIssue,
    ValidationResult,
)
from .story_context_models import StoryContextChange

__all__ = [
    "NODE_CLASSES",
    "StoryNode",
    "Character",
    "Location",
    "StoryObject",
    "Scene",
    "Beat",
    "StoryBeat",
    "PlotPoint",
    "Idea",
    "CharacterArc",
    "Setting",
    "Logline",
    "Node",
    "parse_node",
    "Edge",
    "EdgeProvenance",
    "GraphState",
    "Patch",
    "PatchOp",
    "AddNodeOp",
    "UpdateNodeOp",
    "DeleteNodeOp",
    "AddEdgeOp",
    "DeleteEdgeOp",
    "EdgeRef",
    "ValidationIssue",
    "ValidationResult",
    "CommitResult",
    "EntityInfo",
    "Mention",
    "MentionOccurrence",
    "MentionRebuildResult",
    "RenameResult",
    "TextUpdate",
    "TemporalViolation",
    "StoryContextChange",
    "NarrativePackage",
    "NodeChange",
    "EdgeChange",
    "ConflictInfo",
    "PackageChanges",
    "PackageImpact",
    "StoryContextUpdate",
    "ConversionResult",
    "PackageValidationResult",
]
