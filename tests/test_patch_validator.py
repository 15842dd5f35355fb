# tests/test_patch_validator.py
"""
Tests for patch validation.

Validation simulates ops in order against a working view, so later ops can see
nodes and edges introduced (or removed) by earlier ones. Every problem found is
reported; nothing is raised.
"""

import config
from core.graph import generate_edge_id
from core.patch_applier import apply_patch
from core.patch_validator import is_patch_valid, validate_patch
from models.graph_models import GraphState
from tests.graph_builders import (
    add_edge,
    add_node,
    character,
    delete_edge,
    delete_node,
    edge,
    make_graph,
    make_patch,
    scene,
    story_beat,
    update_node,
)


class TestNodeOps:
    """ADD_NODE, UPDATE_NODE and DELETE_NODE checks."""

    def test_valid_patch_passes(self, story_graph):
        patch = make_patch(
            add_node(character("char_mara", "Mara")),
            add_edge("HAS_CHARACTER", "scene_1", "char_mara"),
        )
        result = validate_patch(story_graph, patch)
        assert result.success
        assert result.errors == []
        assert is_patch_valid(story_graph, patch)

    def test_duplicate_node_id(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_node(character("char_john", "Other John"))))
        assert result.error_codes == ["DUPLICATE_ID"]
        assert result.errors[0].node_id == "char_john"

    def test_duplicate_within_patch(self, story_graph):
        patch = make_patch(add_node(character("char_mara", "Mara")), add_node(character("char_mara", "Mara")))
        result = validate_patch(story_graph, patch)
        assert result.error_codes == ["DUPLICATE_ID"]
        assert result.errors[0].op_index == 1

    def test_unknown_node_type(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_node({"id": "x_1", "type": "Dragon", "name": "Smaug"})))
        assert result.error_codes == ["INVALID_TYPE"]

    def test_unhashable_node_type(self, story_graph):
        """A list or dict in `type` is reported, not raised."""
        for bad_type in (["Character"], {"kind": "Character"}):
            result = validate_patch(story_graph, make_patch(add_node({"id": "x_1", "type": bad_type, "name": "X"})))
            assert not result.success
            assert result.error_codes == ["INVALID_TYPE"]

    def test_missing_required_field(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_node({"id": "char_x", "type": "Character"})))
        assert result.error_codes == ["MISSING_REQUIRED"]
        assert result.errors[0].field == "name"

    def test_missing_id(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_node({"type": "Character", "name": "Nobody"})))
        assert result.error_codes == ["MISSING_REQUIRED"]
        assert result.errors[0].field == "id"

    def test_out_of_range_beat_position(self, story_graph):
        payload = {"id": "beat_Extra", "type": "Beat", "beat_type": "Extra", "position_index": 16}
        result = validate_patch(story_graph, make_patch(add_node(payload)))
        assert result.error_codes == ["OUT_OF_RANGE"]
        assert result.errors[0].field == "position_index"

    def test_update_missing_node(self, story_graph):
        result = validate_patch(story_graph, make_patch(update_node("char_ghost", {"name": "Ghost"})))
        assert result.error_codes == ["NODE_NOT_FOUND"]

    def test_update_cannot_change_type(self, story_graph):
        result = validate_patch(story_graph, make_patch(update_node("char_john", {"type": "Location"})))
        assert result.error_codes == ["IMMUTABLE_FIELD"]
        assert result.errors[0].field == "type"

    def test_update_cannot_unset_required_field(self, story_graph):
        result = validate_patch(story_graph, make_patch(update_node("char_john", unset=["name"])))
        assert result.error_codes == ["INVALID_FIELD"]

    def test_update_with_wrong_value_type(self, story_graph):
        result = validate_patch(story_graph, make_patch(update_node("char_john", {"name": None})))
        assert result.error_codes == ["INVALID_FIELD"]

    def test_update_node_added_earlier(self, story_graph):
        patch = make_patch(
            add_node(character("char_mara", "Mara")),
            update_node("char_mara", {"description": "A courier."}),
        )
        assert validate_patch(story_graph, patch).success

    def test_delete_missing_node(self, story_graph):
        result = validate_patch(story_graph, make_patch(delete_node("char_ghost")))
        assert result.error_codes == ["NODE_NOT_FOUND"]

    def test_edge_to_deleted_node_fails(self, story_graph):
        patch = make_patch(delete_node("char_john"), add_edge("HAS_CHARACTER", "scene_1", "char_john"))
        result = validate_patch(story_graph, patch)
        assert result.error_codes == ["FK_INTEGRITY"]
        assert result.errors[0].op_index == 1


class TestEdgeOps:
    """ADD_EDGE and DELETE_EDGE checks."""

    def test_unknown_edge_type(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_edge("LOVES", "char_john", "char_john")))
        assert result.error_codes == ["INVALID_EDGE_TYPE"]

    def test_mentions_cannot_be_added(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_edge("MENTIONS", "sb_1", "char_john")))
        assert result.error_codes == ["DERIVED_EDGE"]

    def test_mentions_cannot_be_deleted(self, story_graph):
        result = validate_patch(story_graph, make_patch(delete_edge("MENTIONS", "sb_1", "char_john")))
        assert result.error_codes == ["DERIVED_EDGE"]

    def test_missing_endpoint(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_edge("HAS_CHARACTER", "scene_9", "char_john")))
        assert result.error_codes == ["FK_INTEGRITY"]
        assert result.errors[0].node_id == "scene_9"

    def test_invalid_source_kind(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_edge("HAS_CHARACTER", "sb_1", "char_john")))
        assert result.error_codes == ["INVALID_EDGE_SOURCE"]

    def test_invalid_target_kind(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_edge("HAS_CHARACTER", "scene_1", "loc_diner")))
        assert result.error_codes == ["INVALID_EDGE_TARGET"]

    def test_endpoint_rules_can_be_disabled(self, story_graph, monkeypatch):
        monkeypatch.setattr(config, "ENFORCE_EDGE_ENDPOINT_RULES", False)
        result = validate_patch(story_graph, make_patch(add_edge("HAS_CHARACTER", "scene_1", "loc_diner")))
        assert result.success

    def test_duplicate_edge(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_edge("HAS_CHARACTER", "scene_1", "char_john")))
        assert result.error_codes == ["DUPLICATE_EDGE"]

    def test_duplicate_edge_within_patch(self, story_graph):
        patch = make_patch(
            add_edge("FEATURES_OBJECT", "scene_1", "obj_key"),
        )
        # The object does not exist yet, so only FK_INTEGRITY is reported.
        assert validate_patch(story_graph, patch).error_codes == ["FK_INTEGRITY"]

        patch = make_patch(
            add_node({"id": "obj_key", "type": "Object", "name": "Brass key"}),
            add_edge("FEATURES_OBJECT", "scene_1", "obj_key"),
            add_edge("FEATURES_OBJECT", "scene_1", "obj_key"),
        )
        result = validate_patch(story_graph, patch)
        assert result.error_codes == ["DUPLICATE_EDGE"]
        assert result.errors[0].op_index == 2

    def test_edge_id_in_use(self, story_graph):
        result = validate_patch(story_graph, make_patch(add_edge("LOCATED_AT", "scene_1", "loc_diner", edge_id="edge_has_john")))
        # The triple already exists too.
        assert set(result.error_codes) == {"DUPLICATE_EDGE", "INVALID_EDGE_ID"}

    def test_invalid_edge_properties(self, story_graph):
        patch = make_patch(
            add_node(character("char_mara", "Mara")),
            add_edge("HAS_CHARACTER", "scene_1", "char_mara", properties={"order": 0, "weight": 1.5, "confidence": 0.4}),
        )
        result = validate_patch(story_graph, patch)
        assert result.error_codes == ["INVALID_EDGE_PROPERTY", "INVALID_EDGE_PROPERTY"]
        assert {issue.field for issue in result.errors} == {"order", "weight"}

    def test_boolean_is_not_a_weight(self, story_graph):
        patch = make_patch(
            add_node(character("char_mara", "Mara")),
            add_edge("HAS_CHARACTER", "scene_1", "char_mara", properties={"weight": True}),
        )
        assert validate_patch(story_graph, patch).error_codes == ["INVALID_EDGE_PROPERTY"]

    def test_invalid_edge_status(self, story_graph):
        patch = make_patch(
            add_node(character("char_mara", "Mara")),
            add_edge("HAS_CHARACTER", "scene_1", "char_mara", status="maybe"),
        )
        result = validate_patch(story_graph, patch)
        assert result.error_codes == ["INVALID_EDGE_STATUS"]

    def test_delete_missing_edge(self, story_graph):
        result = validate_patch(story_graph, make_patch(delete_edge("HAS_CHARACTER", "scene_1", "char_nobody")))
        assert result.error_codes == ["EDGE_NOT_FOUND"]

    def test_delete_missing_edge_by_id(self, story_graph):
        result = validate_patch(story_graph, make_patch(delete_edge(edge_id="edge_missing")))
        assert result.error_codes == ["EDGE_NOT_FOUND"]

    def test_delete_by_id(self, story_graph):
        assert validate_patch(story_graph, make_patch(delete_edge(edge_id="edge_has_john"))).success

    def test_delete_mention_edge_by_id(self):
        graph = make_graph(
            character("char_1", "Ann"),
            story_beat("sb_1", "Ann waits"),
            edges=[edge("MENTIONS", "sb_1", "char_1", edge_id="mention_1")],
        )
        result = validate_patch(graph, make_patch(delete_edge(edge_id="mention_1")))
        assert result.error_codes == ["DERIVED_EDGE"]

    def test_ambiguous_delete_is_a_warning(self):
        graph = make_graph(
            scene("scene_1", "INT. HOUSE - DAY"),
            character("char_1", "Ann"),
            edges=[
                edge("HAS_CHARACTER", "scene_1", "char_1", edge_id="e1"),
                edge("HAS_CHARACTER", "scene_1", "char_1", edge_id="e2"),
            ],
        )
        result = validate_patch(graph, make_patch(delete_edge("HAS_CHARACTER", "scene_1", "char_1")))
        assert result.success
        assert result.warning_codes == ["AMBIGUOUS_EDGE_DELETE"]

    def test_add_then_delete_in_same_patch(self, story_graph):
        patch = make_patch(
            add_node(character("char_mara", "Mara")),
            add_edge("HAS_CHARACTER", "scene_1", "char_mara"),
            delete_edge("HAS_CHARACTER", "scene_1", "char_mara"),
        )
        assert validate_patch(story_graph, patch).success

    def test_stored_edge_without_id_is_matched_by_triple_only(self):
        graph = GraphState.from_dict(
            {
                "nodes": [
                    {"id": "sb_1", "type": "StoryBeat", "title": "Ann waits"},
                    {"id": "sb_2", "type": "StoryBeat", "title": "Ann leaves"},
                ],
                "edges": [{"type": "PRECEDES", "from": "sb_1", "to": "sb_2"}],
            }
        )
        derived_id = generate_edge_id("PRECEDES", "sb_1", "sb_2")

        by_id = validate_patch(graph, make_patch(delete_edge(edge_id=derived_id)))
        assert by_id.error_codes == ["EDGE_NOT_FOUND"]

        by_triple = make_patch(delete_edge("PRECEDES", "sb_1", "sb_2"))
        assert validate_patch(graph, by_triple).success
        assert apply_patch(graph, by_triple).edges == []

    def test_explicit_id_may_reuse_id_of_unidentified_edge(self):
        graph = GraphState.from_dict(
            {
                "nodes": [
                    {"id": "sb_1", "type": "StoryBeat", "title": "Ann waits"},
                    {"id": "sb_2", "type": "StoryBeat", "title": "Ann leaves"},
                    {"id": "sb_3", "type": "StoryBeat", "title": "Ann returns"},
                ],
                "edges": [{"type": "PRECEDES", "from": "sb_1", "to": "sb_2"}],
            }
        )
        patch = make_patch(add_edge("PRECEDES", "sb_2", "sb_3", edge_id=generate_edge_id("PRECEDES", "sb_1", "sb_2")))
        assert validate_patch(graph, patch).success
        assert len(apply_patch(graph, patch).edges) == 2

    def test_second_delete_of_same_edge_fails(self, story_graph):
        patch = make_patch(
            delete_edge("HAS_CHARACTER", "scene_1", "char_john"),
            delete_edge("HAS_CHARACTER", "scene_1", "char_john"),
        )
        result = validate_patch(story_graph, patch)
        assert result.error_codes == ["EDGE_NOT_FOUND"]
        assert result.errors[0].op_index == 1


class TestValidationBehaviour:
    """Properties of validation as a whole."""

    def test_collects_every_error(self, story_graph):
        patch = make_patch(
            update_node("char_ghost", {"name": "Ghost"}),
            add_edge("LOVES", "char_john", "char_john"),
            delete_node("scene_404"),
        )
        result = validate_patch(story_graph, patch)
        assert not result.success
        assert [(i.code, i.op_index) for i in result.errors] == [
            ("NODE_NOT_FOUND", 0),
            ("INVALID_EDGE_TYPE", 1),
            ("NODE_NOT_FOUND", 2),
        ]

    def test_does_not_modify_graph(self, story_graph):
        before = story_graph.to_dict()
        validate_patch(
            story_graph,
            make_patch(delete_node("char_john"), add_node(character("char_mara", "Mara"))),
        )
        assert story_graph.to_dict() == before

    def test_empty_patch_is_valid(self, story_graph):
        result = validate_patch(story_graph, make_patch())
        assert result.success
        assert result.warnings == []
