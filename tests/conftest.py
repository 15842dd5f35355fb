# tests/conftest.py
import os
import sys

import pytest

# Ensure repository root is on PYTHONPATH for tests
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

# Tests reload configuration explicitly; keep the signal handler out of the runner.
os.environ.setdefault("CONFIG_DISABLE_SIGHUP", "1")

from processing.mention_extraction import clear_pattern_cache  # noqa: E402
from tests.graph_builders import (  # noqa: E402
    beat,
    character,
    edge,
    location,
    make_graph,
    scene,
    story_beat,
)


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom CLI options for this repo.

    --unit-stubs: accept the flag and optionally adjust collection behavior to
    focus on lightweight, hermetic tests. This flag is a no-op by default but
    prevents failures from unknown options and allows CI toggling.
    """
    parser.addoption(
        "--unit-stubs",
        action="store_true",
        default=False,
        help="Run unit tests only; ignore heavier suites.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """When --unit-stubs is passed, skip heavier-marked tests by default.

    We respect existing markers defined in pyproject.toml: integration, slow,
    performance.
    """
    if not config.getoption("--unit-stubs"):
        return

    skip_marker = pytest.mark.skip(reason="skipped by --unit-stubs")
    heavy_markers = {"integration", "slow", "performance"}
    for item in items:
        for m in item.iter_markers():
            if m.name in heavy_markers:
                item.add_marker(skip_marker)
                break


@pytest.fixture(autouse=True)
def _fresh_mention_patterns():
    """Compiled patterns are cached per name; start every test from an empty cache."""
    clear_pattern_cache()
    yield
    clear_pattern_cache()


@pytest.fixture
def story_graph():
    """A small story: one scene with John in it, a story beat and two timeline beats."""
    return make_graph(
        character("char_john", "John Smith", aliases=["Johnny"]),
        location("loc_diner", "Blue Moon Diner"),
        scene("scene_1", "INT. BLUE MOON DINER - NIGHT"),
        story_beat("sb_1", "The offer", summary="A stranger makes an offer."),
        beat("beat_OpeningImage", 1, act=1),
        beat("beat_Catalyst", 4, act=1),
        edges=[
            edge("HAS_CHARACTER", "scene_1", "char_john", edge_id="edge_has_john"),
            edge("LOCATED_AT", "scene_1", "loc_diner", edge_id="edge_at_diner"),
            edge("ALIGNS_WITH", "sb_1", "beat_Catalyst", edge_id="edge_sb1_catalyst"),
            edge("SATISFIED_BY", "sb_1", "scene_1", edge_id="edge_sb1_scene1"),
        ],
    )
