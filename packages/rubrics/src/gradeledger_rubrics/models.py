"""Rubric data models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SourceVariant(str, Enum):
    """Where a rubric document keeps its scoring points.

    Resolved once when the document is loaded and kept for the whole edit
    session, so edits are written back to the same location.
    """

    SEGMENTS = "content.segments"
    ANSWER_POINTS = "answerPoints"
    CONTENT_POINTS = "content.points"
    CONTENT_STEPS = "content.steps"
    NONE = "none"

    @property
    def editable(self) -> bool:
        """Segmented documents only support viewing."""
        return self is not SourceVariant.SEGMENTS

    @property
    def path(self) -> tuple[str, ...]:
        """Keys leading to the point list inside the document."""
        if self is SourceVariant.NONE:
            return ()
        return tuple(self.value.split("."))


def to_number(value: Any) -> float:
    """Numeric value of a JSON scalar; anything non-numeric is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return 0
        if not math.isfinite(parsed):
            return 0
        return int(parsed) if parsed.is_integer() else parsed
    return 0


@dataclass
class EditablePoint:
    """A scoring point in its canonical editable form.

    Attributes:
        id: Point id, ``p-<n>`` when the document had none
        content: What the answer must contain
        score: Points awarded
        question_segment: Part of the question the point belongs to
        keywords: Non-empty keywords that signal the point
    """

    id: str
    content: str
    score: float = 0
    question_segment: str | None = None
    keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.question_segment is not None:
            data["questionSegment"] = self.question_segment
        data["content"] = self.content
        data["score"] = self.score
        data["keywords"] = list(self.keywords)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> EditablePoint:
        """Build a point from its dict form; a missing id becomes ``p-<index + 1>``."""
        point_id = str(data.get("id") or "").strip()
        return cls(
            id=point_id or f"p-{index + 1}",
            content=str(data.get("content", "")),
            score=to_number(data.get("score")),
            question_segment=data.get("questionSegment"),
            keywords=[k for k in data.get("keywords") or [] if isinstance(k, str) and k.strip()],
        )


@dataclass
class RubricDefaults:
    """Caller-supplied values used where a document is silent or unreadable."""

    question_id: str = ""
    subject: str = ""
    question_type: str = ""
    total_score: float | None = None


@dataclass
class RubricPreview:
    """Summary shown above the point list."""

    title: str
    question_id: str
    subject: str
    question_type: str
    strategy_label: str
    total_score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "questionId": self.question_id,
            "subject": self.subject,
            "questionType": self.question_type,
            "strategyLabel": self.strategy_label,
            "totalScore": self.total_score,
        }


@dataclass
class NormalizedRubric:
    """A rubric document reduced to an ordered list of editable points.

    Attributes:
        points: Canonical points in document order
        source_variant: Where the points were found
        preview: Title, ids and total for display
        document: The parsed document, None when parsing failed
        raw_text: The text exactly as supplied
        read_only_reason: Why structured editing is unavailable, if it is
        parse_error: Why the text could not be parsed, if it could not
    """

    points: list[EditablePoint]
    source_variant: SourceVariant
    preview: RubricPreview
    document: dict[str, Any] | None
    raw_text: str
    read_only_reason: str | None = None
    parse_error: str | None = None

    @property
    def editable(self) -> bool:
        return self.parse_error is None and self.read_only_reason is None

    @property
    def total_score(self) -> float:
        return self.preview.total_score
