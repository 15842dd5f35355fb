# processing/story_context_patcher.py
"""Apply targeted edits to the story context document.

The story context is markdown divided into sections by `## Name` header lines;
a section runs until the next `## ` header or the end of the document. Edits
are applied in order and the patcher never fails: a missing section is created
and content that is not found is left alone.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import config
from models.story_context_models import StoryContextChange

_ANY_SECTION_HEADER_RE = re.compile(r"^## (.+?)[ \t]*$", re.MULTILINE)
_NEXT_HEADER_RE = re.compile(r"^## ", re.MULTILINE)
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")


def _section_header_re(section: str) -> re.Pattern[str]:
    return re.compile(rf"^## {re.escape(section)}[ \t]*$", re.MULTILINE)


def list_sections(document: str) -> list[str]:
    """Return section names in document order."""
    return [m.group(1) for m in _ANY_SECTION_HEADER_RE.finditer(document or "")]


def add_to_section(document: str, section: str, content: str) -> str:
    """Insert `content` at the end of `section`, creating the section if needed.

    The content goes immediately before the next `## ` header (or at the end of
    the document), separated from its neighbours by blank lines.
    """
    if not content.strip():
        return document

    header = _section_header_re(section).search(document)
    if header is None:
        base = document.rstrip()
        prefix = f"{base}\n\n" if base else ""
        return f"{prefix}## {section}\n\n{content}\n"

    next_header = _NEXT_HEADER_RE.search(document, header.end())
    insert_at = next_header.start() if next_header else len(document)
    before = document[:insert_at].rstrip()
    after = document[insert_at:]
    if after:
        return f"{before}\n\n{content}\n\n{after}"
    return f"{before}\n\n{content}\n"


def _modify(document: str, change: StoryContextChange) -> str:
    if not change.previous_content:
        return add_to_section(document, change.section, change.content)
    # Literal replacement; the lambda keeps backslashes in content from being read as group refs.
    return re.sub(re.escape(change.previous_content), lambda _m: change.content, document)


def _delete(document: str, content: str) -> str:
    if not content:
        return document
    document = re.sub(re.escape(content) + r"\s*", "", document)
    return _EXCESS_NEWLINES_RE.sub("\n\n", document)


def apply_story_context_changes(document: str, changes: Iterable[StoryContextChange]) -> str:
    """Apply `changes` to `document` in order and return the new document.

    Args:
        document: Current story context markdown (may be empty).
        changes: Edits to apply.

    Returns:
        The edited document, trimmed of leading and trailing whitespace when
        `STORY_CONTEXT_TRIM_RESULT` is enabled.
    """
    result = document or ""
    for change in changes:
        if change.operation == "add":
            result = add_to_section(result, change.section, change.content)
        elif change.operation == "modify":
            result = _modify(result, change)
        elif change.operation == "delete":
            result = _delete(result, change.content)
    return result.strip() if config.STORY_CONTEXT_TRIM_RESULT else result
