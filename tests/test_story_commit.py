# tests/test_story_commit.py
"""
Tests for committing a patch end to end.

A commit validates, applies, reconciles mentions and patches the story context
in one step, raising on bad input instead of returning partial results.
"""

import pytest

from core.exceptions import PatchValidationError, StaleBaseVersionError
from core.story_commit import commit_patch, touched_node_ids
from models.story_context_models import StoryContextChange
from tests.graph_builders import (
    add_edge,
    add_node,
    character,
    delete_node,
    make_patch,
    story_beat,
    update_node,
)


def mentions(graph, node_id=None):
    return [e for e in graph.edges if e.type == "MENTIONS" and (node_id is None or e.from_ == node_id)]


class TestCommit:
    def test_text_change_reconciles_touched_node(self, story_graph):
        patch = make_patch(update_node("sb_1", {"summary": "John takes the offer at the Blue Moon Diner."}))
        result = commit_patch(story_graph, patch)

        assert not result.full_rebuild
        assert result.nodes_reconciled == ["sb_1"]
        assert [(e.to, e.properties["confidence"]) for e in mentions(result.graph, "sb_1")] == [
            ("char_john", 0.7),
            ("loc_diner", 1.0),
        ]
        assert result.edges_created == 2
        assert result.validation.success

    def test_new_entity_triggers_full_rebuild(self, story_graph):
        seeded = commit_patch(story_graph, make_patch(update_node("sb_1", {"summary": "Mara makes an offer."}))).graph
        assert mentions(seeded, "sb_1") == []

        result = commit_patch(seeded, make_patch(add_node(character("char_mara", "Mara")), add_edge("HAS_CHARACTER", "scene_1", "char_mara")))
        assert result.full_rebuild
        assert [e.to for e in mentions(result.graph, "sb_1")] == ["char_mara"]

    def test_deleting_entity_drops_its_mentions(self, story_graph):
        graph = commit_patch(story_graph, make_patch(add_node(story_beat("sb_2", "Johnny runs")))).graph
        assert [e.to for e in mentions(graph, "sb_2")] == ["char_john"]

        result = commit_patch(graph, make_patch(delete_node("char_john")))
        assert result.full_rebuild
        assert mentions(result.graph, "sb_2") == []

    def test_story_context_changes(self, story_graph):
        change = StoryContextChange(operation="add", section="Themes", content="Loyalty.")
        result = commit_patch(
            story_graph,
            make_patch(update_node("sb_1", {"title": "The deal"})),
            story_context="## Setting\n\nA diner.",
            story_context_changes=[change],
        )
        assert result.story_context == "## Setting\n\nA diner.\n\n## Themes\n\nLoyalty."

    def test_story_context_passes_through(self, story_graph):
        result = commit_patch(story_graph, make_patch(), story_context="## Setting\n\nA diner.")
        assert result.story_context == "## Setting\n\nA diner."
        assert result.graph == story_graph

    def test_input_graph_is_untouched(self, story_graph):
        before = story_graph.to_dict()
        commit_patch(story_graph, make_patch(delete_node("char_john")))
        assert story_graph.to_dict() == before

    def test_only_the_commit_step_logs(self, story_graph, caplog):
        caplog.set_level("DEBUG")
        commit_patch(story_graph, make_patch(update_node("sb_1", {"summary": "John waits."})))

        sources = {record.name for record in caplog.records}
        assert "core.story_commit" in sources
        assert "processing.mention_reconciler" not in sources


class TestCommitErrors:
    def test_invalid_patch_raises_with_issues(self, story_graph):
        patch = make_patch(add_edge("MENTIONS", "sb_1", "char_john"), delete_node("char_ghost"))
        with pytest.raises(PatchValidationError) as exc_info:
            commit_patch(story_graph, patch)
        assert [issue["code"] for issue in exc_info.value.errors] == ["DERIVED_EDGE", "NODE_NOT_FOUND"]

    def test_stale_base_version(self, story_graph):
        patch = make_patch(update_node("sb_1", {"title": "Late"}), base="sv_1")
        with pytest.raises(StaleBaseVersionError):
            commit_patch(story_graph, patch, current_version_id="sv_2")

    def test_matching_base_version(self, story_graph):
        patch = make_patch(update_node("sb_1", {"title": "On time"}), base="sv_2")
        result = commit_patch(story_graph, patch, current_version_id="sv_2")
        assert result.graph.get_node("sb_1").title == "On time"


class TestTouchedNodes:
    def test_first_touch_order(self):
        patch = make_patch(
            update_node("sb_1", {"title": "A"}),
            add_node(character("char_mara", "Mara")),
            add_edge("HAS_CHARACTER", "scene_1", "char_mara"),
            update_node("sb_1", {"title": "B"}),
            delete_node("char_john"),
        )
        assert touched_node_ids(patch) == ["sb_1", "char_mara", "char_john"]
