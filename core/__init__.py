"""Core package: graph working copies, patch validation and application, commit orchestration.

Embedding applications call `core.setup_story_graph_logging()` once at startup,
then drive the engine through `core.story_commit.commit_patch`.
"""

from core.logging_config import setup_story_graph_logging

__all__ = ["setup_story_graph_logging"]
