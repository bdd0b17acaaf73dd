"""Custom exceptions for the gradeledger_rubrics package."""

from __future__ import annotations

from gradeledger_common import OperationError, SerializationError


class RubricParseError(SerializationError):
    """Raised when rubric text is not a JSON object."""

    def __init__(self, message: str, raw_text: str | None = None):
        context = {}
        if raw_text is not None:
            context["preview"] = raw_text[:80]
        super().__init__(f"Cannot parse rubric: {message}", context=context)


class ReadOnlyRubricError(OperationError):
    """Raised when a structured edit targets a read-only rubric shape."""

    def __init__(self, variant: str, reason: str | None = None):
        self.variant = variant
        super().__init__(
            f"Rubric points stored in '{variant}' cannot be edited" + (f": {reason}" if reason else ""),
            context={"variant": variant},
        )
