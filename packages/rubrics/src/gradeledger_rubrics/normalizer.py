"""Rubric schema normalization.

Rubric documents have been produced in four shapes over time. Scoring
points live in exactly one of:

- ``answerPoints``
- ``content.points``
- ``content.steps``
- ``content.segments[*]`` (each segment with its own points or steps)

``normalize`` finds the shape with a fixed sequence of structural probes
and flattens the points into ``EditablePoint`` objects. It never raises:
unreadable text produces an empty rubric whose preview is built from the
caller's defaults.

Example:
    >>> rubric = normalize('{"answerPoints": [{"content": "Cause", "score": 2}]}')
    >>> rubric.source_variant.value, rubric.total_score
    ('answerPoints', 2)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from .exceptions import RubricParseError
from .models import (
    EditablePoint,
    NormalizedRubric,
    RubricDefaults,
    RubricPreview,
    SourceVariant,
    to_number,
)

logger = logging.getLogger(__name__)

SEGMENTS_READ_ONLY_REASON = (
    "Points are organised in segments; segmented rubrics can be viewed but not edited point by point"
)

DEFAULT_STRATEGY_LABEL = "Standard"

STRATEGY_LABELS = {
    "point_accumulation": "Per point",
    "sequential_logic": "Step by step",
    "rubric_matrix": "Level matrix",
    "standard": "Standard",
    "all": "All points required",
    "weighted": "Weighted",
    "pick_n": "Any N points",
}


def as_mapping(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def mapping_list(value: Any) -> list[dict[str, Any]]:
    """Object entries of a JSON array; anything else yields an empty list."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def first_text(*values: Any) -> str:
    """First value that is a string with non-whitespace content, trimmed."""
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def parse_document(raw_text: str) -> dict[str, Any]:
    """Parse rubric text into a JSON object.

    Raises:
        RubricParseError: If the text is empty, not JSON, or not an object
    """
    text = (raw_text or "").strip()
    if not text:
        raise RubricParseError("empty rubric text")
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise RubricParseError(str(e), raw_text=raw_text) from e
    if not isinstance(document, dict):
        raise RubricParseError(
            f"expected a JSON object, got {type(document).__name__}", raw_text=raw_text
        )
    return document


def _content(document: dict[str, Any]) -> dict[str, Any]:
    return as_mapping(document.get("content")) or {}


def probe_segments(document: dict[str, Any]) -> list[dict[str, Any]] | None:
    return mapping_list(_content(document).get("segments")) or None


def probe_answer_points(document: dict[str, Any]) -> list[dict[str, Any]] | None:
    return mapping_list(document.get("answerPoints")) or None


def probe_content_points(document: dict[str, Any]) -> list[dict[str, Any]] | None:
    return mapping_list(_content(document).get("points")) or None


def probe_content_steps(document: dict[str, Any]) -> list[dict[str, Any]] | None:
    return mapping_list(_content(document).get("steps")) or None


PROBES: list[tuple[SourceVariant, Callable[[dict[str, Any]], list[dict[str, Any]] | None]]] = [
    (SourceVariant.SEGMENTS, probe_segments),
    (SourceVariant.ANSWER_POINTS, probe_answer_points),
    (SourceVariant.CONTENT_POINTS, probe_content_points),
    (SourceVariant.CONTENT_STEPS, probe_content_steps),
]


def detect_variant(document: dict[str, Any]) -> tuple[SourceVariant, list[dict[str, Any]]]:
    """Return the first variant whose probe finds entries, with those entries."""
    for variant, probe in PROBES:
        found = probe(document)
        if found:
            return variant, found
    return SourceVariant.NONE, []


def point_id(raw: dict[str, Any], index: int) -> str:
    """Id of the raw point at ``index`` (0-based) of its list."""
    return first_text(raw.get("id")) or f"p-{index + 1}"


def normalize_point(
    raw: dict[str, Any], index: int, segment_label: str | None = None
) -> EditablePoint | None:
    """Canonical form of one raw point, or None if it has no content."""
    content = first_text(raw.get("content"), raw.get("standard"), raw.get("name"))
    if not content:
        return None
    keywords = raw.get("keywords")
    return EditablePoint(
        id=point_id(raw, index),
        content=content,
        score=to_number(raw.get("score")),
        question_segment=first_text(raw.get("questionSegment"), segment_label) or None,
        keywords=[k.strip() for k in keywords if isinstance(k, str) and k.strip()]
        if isinstance(keywords, list)
        else [],
    )


def _segment_points(segments: list[dict[str, Any]]) -> list[EditablePoint]:
    points = []
    position = 0
    for segment in segments:
        label = first_text(segment.get("title"), segment.get("name"), segment.get("id"))
        nested = as_mapping(segment.get("content")) or {}
        raw_points = (
            mapping_list(nested.get("points"))
            + mapping_list(nested.get("steps"))
            + mapping_list(segment.get("points"))
            + mapping_list(segment.get("steps"))
        )
        for raw in raw_points:
            point = normalize_point(raw, position, label or None)
            position += 1
            if point is not None:
                points.append(point)
    return points


def declared_total(document: dict[str, Any]) -> float:
    """First positive total the document declares, else 0."""
    metadata = as_mapping(document.get("metadata")) or {}
    for candidate in (
        document.get("totalScore"),
        _content(document).get("totalScore"),
        metadata.get("totalScore"),
    ):
        value = to_number(candidate)
        if value > 0:
            return value
    return 0


def resolve_total(points: list[EditablePoint], document: dict[str, Any], defaults: RubricDefaults) -> float:
    """Sum of point scores, else declared total, else caller fallback, else 0."""
    points_total = sum(point.score for point in points)
    if points_total > 0:
        return points_total
    declared = declared_total(document)
    if declared > 0:
        return declared
    fallback = to_number(defaults.total_score)
    return fallback if fallback > 0 else 0


def strategy_label(raw_strategy: str) -> str:
    if not raw_strategy:
        return DEFAULT_STRATEGY_LABEL
    return STRATEGY_LABELS.get(raw_strategy, raw_strategy)


def _fallback_title(defaults: RubricDefaults) -> str:
    return f"{defaults.subject} {defaults.question_type}".strip() or "Untitled rubric"


def fallback_preview(defaults: RubricDefaults) -> RubricPreview:
    """Preview built only from caller defaults."""
    total = to_number(defaults.total_score)
    return RubricPreview(
        title=_fallback_title(defaults),
        question_id=defaults.question_id or "untitled",
        subject=defaults.subject or "-",
        question_type=defaults.question_type or "-",
        strategy_label=DEFAULT_STRATEGY_LABEL,
        total_score=total if total > 0 else 0,
    )


def build_preview(
    document: dict[str, Any], points: list[EditablePoint], defaults: RubricDefaults
) -> RubricPreview:
    metadata = as_mapping(document.get("metadata")) or {}
    return RubricPreview(
        title=first_text(metadata.get("title")) or _fallback_title(defaults),
        question_id=first_text(
            metadata.get("questionId"), document.get("questionId"), document.get("questionKey")
        )
        or defaults.question_id
        or "untitled",
        subject=first_text(metadata.get("subject")) or defaults.subject or "-",
        question_type=first_text(metadata.get("questionType")) or defaults.question_type or "-",
        strategy_label=strategy_label(
            first_text(
                metadata.get("strategyType"),
                document.get("strategyType"),
                document.get("scoringStrategy"),
            )
        ),
        total_score=resolve_total(points, document, defaults),
    )


def normalize(raw_text: str, defaults: RubricDefaults | None = None) -> NormalizedRubric:
    """Normalize rubric text of any known shape.

    Args:
        raw_text: Rubric text as generated, imported or typed
        defaults: Values used where the document is silent or unreadable

    Returns:
        The canonical rubric. Unparseable text yields no points, a preview
        from ``defaults`` and ``parse_error`` set; ``raw_text`` is kept
        verbatim either way.
    """
    defaults = defaults or RubricDefaults()
    try:
        document = parse_document(raw_text)
    except RubricParseError as e:
        logger.debug("Rubric text not parseable: %s", e)
        return NormalizedRubric(
            points=[],
            source_variant=SourceVariant.NONE,
            preview=fallback_preview(defaults),
            document=None,
            raw_text=raw_text,
            parse_error=str(e),
        )

    variant, entries = detect_variant(document)
    read_only_reason = None
    if variant is SourceVariant.SEGMENTS:
        points = _segment_points(entries)
        read_only_reason = SEGMENTS_READ_ONLY_REASON
    else:
        points = []
        for index, raw in enumerate(entries):
            point = normalize_point(raw, index)
            if point is None:
                logger.debug("Dropping rubric point %d without content", index)
                continue
            points.append(point)

    return NormalizedRubric(
        points=points,
        source_variant=variant,
        preview=build_preview(document, points, defaults),
        document=document,
        raw_text=raw_text,
        read_only_reason=read_only_reason,
    )
