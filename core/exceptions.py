# core/exceptions.py
"""Define standardized exception types for the story graph engine.

Pure engine functions report recoverable problems as values (validation
results, zero-effect rebuild results). Exceptions are reserved for programming
errors (applying an unvalidated patch) and for the commit boundary, which turns
a failed validation into a `PatchValidationError`.
"""

from typing import Any


class StoryGraphError(Exception):
    """Base exception for all story graph errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class PatchApplicationError(StoryGraphError):
    """Raised when the applier is handed a patch that cannot be applied.

    Callers must validate before applying; hitting this means that contract
    was broken. `details["op_index"]` names the offending op.
    """

    @property
    def op_index(self) -> int | None:
        return self.details.get("op_index")


class PatchValidationError(StoryGraphError):
    """Raised at the commit boundary when a patch fails validation.

    `details["errors"]` holds the collected validation issues as dicts.
    """

    @property
    def errors(self) -> list[dict[str, Any]]:
        return self.details.get("errors", [])


class StaleBaseVersionError(StoryGraphError):
    """Raised when a patch targets a story version other than the current one."""


class EntityNotFoundError(StoryGraphError):
    """Raised when an operation names an entity node that does not exist."""


class StoryGraphValidationError(StoryGraphError):
    """Errors related to data validation outside the patch validator."""


def create_error_context(**kwargs: Any) -> dict[str, Any]:
    """Build a context dictionary for structured errors.

    Args:
        **kwargs: Key-value pairs to include.

    Returns:
        A dictionary containing only keys whose values are not `None`.
    """
    return {k: v for k, v in kwargs.items() if v is not None}
