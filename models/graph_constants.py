# models/graph_constants.py
"""
Canonical schema constants for the story graph.

**Schema policy (contract):**

- **Node types (STRICT):** every node carries a `type` tag drawn from
  `NODE_TYPES`. The patch validator reports unknown tags as `INVALID_TYPE`
  rather than admitting new kinds into the graph.

- **Edge types (STRICT):** hand-authored edges must use a type from
  `PATCHABLE_EDGE_TYPES` and connect the node kinds listed in `EDGE_RULES`.
  `MENTIONS` is a derived edge type. Only the mention reconciler writes it.

- **Mention extraction (allow-list):** `EXTRACTABLE_FIELDS` names the node
  kinds whose free text is scanned for entity mentions, in the order fields are
  processed. `MENTIONABLE_NODE_TYPES` names the kinds that can be mentioned.
"""

# --- Node types ---
NODE_TYPES: tuple[str, ...] = (
    "Character",
    "Location",
    "Object",
    "Scene",
    "Beat",
    "StoryBeat",
    "PlotPoint",
    "Idea",
    "CharacterArc",
    "Setting",
    "Logline",
)

# --- Edge types ---
MENTIONS_EDGE_TYPE = "MENTIONS"

# Endpoint rules as (allowed source types, allowed target types).
EDGE_RULES: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    "HAS_CHARACTER": (frozenset({"Scene"}), frozenset({"Character"})),
    "LOCATED_AT": (frozenset({"Scene"}), frozenset({"Location"})),
    "FEATURES_OBJECT": (frozenset({"Scene"}), frozenset({"Object"})),
    "HAS_ARC": (frozenset({"Character"}), frozenset({"CharacterArc"})),
    "ALIGNS_WITH": (frozenset({"StoryBeat", "PlotPoint"}), frozenset({"Beat"})),
    "SATISFIED_BY": (frozenset({"StoryBeat", "PlotPoint"}), frozenset({"Scene"})),
    "PRECEDES": (frozenset({"StoryBeat", "PlotPoint"}), frozenset({"StoryBeat", "PlotPoint"})),
    "ADVANCES": (frozenset({"StoryBeat", "PlotPoint"}), frozenset({"CharacterArc"})),
    "PART_OF": (frozenset({"Location"}), frozenset({"Location", "Setting"})),
}

# Edge types a patch may add or delete directly.
PATCHABLE_EDGE_TYPES: frozenset[str] = frozenset(EDGE_RULES)

# Edge types maintained by reconciliation; never accepted in ADD_EDGE/DELETE_EDGE.
DERIVED_EDGE_TYPES: frozenset[str] = frozenset({MENTIONS_EDGE_TYPE})

EDGE_STATUSES: frozenset[str] = frozenset({"proposed", "approved", "rejected"})
DEFAULT_EDGE_STATUS = "approved"

# --- Mention extraction ---
# Field order matters: mention edges are emitted field by field in this order.
EXTRACTABLE_FIELDS: dict[str, tuple[str, ...]] = {
    "StoryBeat": ("title", "summary"),
    "PlotPoint": ("title", "summary"),
    "Scene": ("heading", "scene_overview", "key_actions"),
    "Character": ("description",),
    "Location": ("description",),
    "CharacterArc": ("start_state", "end_state", "key_moments"),
    "Idea": ("title", "description"),
}

MENTIONABLE_NODE_TYPES: tuple[str, ...] = ("Character", "Location", "Object")

# Honorifics recognised in front of a surname ("Captain Morrison").
HONORIFIC_TITLES: tuple[str, ...] = (
    "Captain",
    "Sergeant",
    "Detective",
    "Dr.",
    "Mr.",
    "Mrs.",
    "Ms.",
)

# --- Beats ---
BEAT_POSITION_MIN = 1
BEAT_POSITION_MAX = 15
ACT_MIN = 1
ACT_MAX = 5

# Node types that can be placed on the beat timeline (via ALIGNS_WITH).
TIMELINE_NODE_TYPES: frozenset[str] = frozenset({"StoryBeat", "PlotPoint"})
