# tests/test_package_conversion.py
"""Tests for turning narrative packages into patches."""

import pytest

from core.patch_applier import apply_patch
from core.patch_validator import validate_patch
from models.package_models import EdgeChange, NarrativePackage, NodeChange, PackageChanges
from models.patch_models import AddEdgeOp, AddNodeOp, DeleteEdgeOp, DeleteNodeOp, UpdateNodeOp
from models.story_context_models import StoryContextChange
from processing.package_conversion import (
    package_patch_id,
    package_to_patch,
    validate_package_for_conversion,
)


@pytest.fixture
def package():
    return NarrativePackage(
        id="pkg_7",
        title="Mara joins the crew",
        rationale="Gives John an ally.",
        confidence=0.75,
        changes=PackageChanges(
            nodes=[
                NodeChange(operation="add", node_type="Character", node_id="char_mara", data={"name": "Mara", "description": "A courier."}),
                NodeChange(operation="modify", node_type="StoryBeat", node_id="sb_1", data={"summary": "Mara makes an offer."}),
            ],
            edges=[
                EdgeChange(operation="add", edge_type="HAS_CHARACTER", from_="scene_1", to="char_mara", properties={"weight": 0.5}),
                EdgeChange(operation="add", edge_type="ADMIRES", from_="char_mara", to="char_john"),
                EdgeChange(operation="add", edge_type="MENTIONS", from_="sb_1", to="char_mara"),
                EdgeChange(operation="delete", edge_type="LOCATED_AT", from_="scene_1", to="loc_diner"),
            ],
        ),
    )


class TestPackageToPatch:
    def test_patch_identity_and_metadata(self, package):
        result = package_to_patch(package, "sv_3", created_at="2026-01-01T00:00:00+00:00")
        patch = result.patch
        assert patch.id == package_patch_id(package) == "patch_pkg_pkg_7"
        assert patch.base_story_version_id == "sv_3"
        assert patch.created_at == "2026-01-01T00:00:00+00:00"
        assert patch.metadata == {
            "source": "ai_generation",
            "package_id": "pkg_7",
            "package_title": "Mara joins the crew",
            "confidence": 0.75,
        }

    def test_node_changes_become_node_ops(self, package):
        ops = package_to_patch(package, "sv_3").patch.ops
        assert isinstance(ops[0], AddNodeOp)
        assert ops[0].node == {"name": "Mara", "description": "A courier.", "type": "Character", "id": "char_mara"}
        assert isinstance(ops[1], UpdateNodeOp)
        assert ops[1].id == "sb_1"
        assert ops[1].set_ == {"summary": "Mara makes an offer."}

    def test_delete_node_change(self):
        pkg = NarrativePackage(
            id="pkg_8",
            title="Cut John",
            changes=PackageChanges(nodes=[NodeChange(operation="delete", node_type="Character", node_id="char_john")]),
        )
        ops = package_to_patch(pkg, "sv_3").patch.ops
        assert len(ops) == 1
        assert isinstance(ops[0], DeleteNodeOp)
        assert ops[0].id == "char_john"

    def test_edge_changes_become_edge_ops(self, package):
        ops = package_to_patch(package, "sv_3").patch.ops
        edge_ops = ops[2:]
        assert [type(op) for op in edge_ops] == [AddEdgeOp, DeleteEdgeOp]

        added = edge_ops[0].edge
        assert added.key == ("HAS_CHARACTER", "scene_1", "char_mara")
        assert added.properties == {"weight": 0.5}
        assert added.provenance.source == "extractor"
        assert added.provenance.patch_id == "pkg_7"

        assert edge_ops[1].edge.key == ("LOCATED_AT", "scene_1", "loc_diner")

    def test_unpatchable_edges_are_dropped(self, package):
        result = package_to_patch(package, "sv_3")
        assert [e.edge_type for e in result.dropped_edges] == ["ADMIRES", "MENTIONS"]

    def test_story_context_update(self, package):
        package.changes.story_context = [StoryContextChange(operation="add", section="Characters", content="Mara, a courier.")]
        result = package_to_patch(package, "sv_3", current_story_context="## Themes\n\nTrust.")
        assert result.story_context_update.new_context == "## Themes\n\nTrust.\n\n## Characters\n\nMara, a courier."
        assert len(result.story_context_update.changes) == 1

    def test_no_story_context_update_without_changes(self, package):
        assert package_to_patch(package, "sv_3").story_context_update is None

    def test_story_context_alias(self):
        changes = PackageChanges.model_validate(
            {"storyContext": [{"operation": "delete", "section": "Themes", "content": "Trust."}]}
        )
        assert changes.story_context[0].operation == "delete"


@pytest.mark.integration
class TestConvertedPatchApplies:
    def test_validates_and_applies(self, story_graph, package):
        patch = package_to_patch(package, "sv_3").patch
        assert validate_patch(story_graph, patch).success

        graph = apply_patch(story_graph, patch)
        assert graph.get_node("char_mara").description == "A courier."
        assert graph.get_node("sb_1").summary == "Mara makes an offer."
        new_edge = graph.edges_to("char_mara", "HAS_CHARACTER")[0]
        assert new_edge.provenance.patch_id == "pkg_7"
        assert new_edge.status == "approved"
        assert not graph.edges_from("scene_1", "LOCATED_AT")


class TestPackageValidation:
    def test_valid_package(self, story_graph, package):
        assert validate_package_for_conversion(package, story_graph.nodes.keys()).valid

    def test_references_to_missing_nodes(self, package):
        result = validate_package_for_conversion(package, {"scene_1"})
        assert not result.valid
        assert result.errors == [
            "Cannot modify non-existent node: sb_1",
            "Cannot delete edge between non-existent nodes: scene_1 -> loc_diner",
        ]
