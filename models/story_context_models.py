# models/story_context_models.py
"""Models describing edits to the free-text story context document."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class StoryContextChange(BaseModel):
    """A single targeted edit to a `## Section` of the story context."""

    operation: Literal["add", "modify", "delete"]
    section: str
    content: str = ""
    previous_content: str | None = None
