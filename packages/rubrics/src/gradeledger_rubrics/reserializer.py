"""Write edited rubric points back into their original document shape."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable
from typing import Any

from gradeledger_common import ValidationError

from .exceptions import ReadOnlyRubricError
from .models import EditablePoint, SourceVariant
from .normalizer import as_mapping, mapping_list, parse_document, point_id

logger = logging.getLogger(__name__)


def infer_target(document: dict[str, Any]) -> SourceVariant:
    """Location for points of a document that has none yet.

    An existing empty ``content.steps`` or ``content.points`` array names
    the intended shape; otherwise points go to ``answerPoints``.
    """
    content = as_mapping(document.get("content"))
    if content is not None:
        if isinstance(content.get("steps"), list):
            return SourceVariant.CONTENT_STEPS
        if isinstance(content.get("points"), list):
            return SourceVariant.CONTENT_POINTS
    return SourceVariant.ANSWER_POINTS


def _container(document: dict[str, Any], variant: SourceVariant) -> dict[str, Any]:
    """The object holding the point list of ``variant``, created if missing."""
    if variant is SourceVariant.ANSWER_POINTS:
        return document
    content = document.setdefault("content", {})
    if not isinstance(content, dict):
        raise ValidationError(
            f"Cannot write '{variant.value}': 'content' is not an object",
            context={"variant": variant.value},
        )
    return content


def _coerce(point: EditablePoint | dict[str, Any], index: int) -> EditablePoint:
    return point if isinstance(point, EditablePoint) else EditablePoint.from_dict(point, index)


def reserialize(
    original: dict[str, Any],
    edited_points: Iterable[EditablePoint | dict[str, Any]],
    variant: SourceVariant | str,
) -> dict[str, Any]:
    """Return a copy of ``original`` with ``edited_points`` written back.

    Only the point list of ``variant`` is replaced. An edited point whose id
    matches an original point is laid over a copy of that point, so fields
    the editor does not know about survive. When the edited points add up
    to a positive total, the top-level and ``metadata`` totals are updated,
    as is ``content.totalScore`` if the document has one; a zero total
    leaves every declared total as it was.

    Args:
        original: The parsed document the points were normalized from
        edited_points: Points in their new order
        variant: Source variant fixed when the document was loaded

    Raises:
        ReadOnlyRubricError: For segmented documents
    """
    variant = SourceVariant(variant)
    if not variant.editable:
        raise ReadOnlyRubricError(variant.value, "segment structure would be lost")

    document = copy.deepcopy(original)
    if variant is SourceVariant.NONE:
        variant = infer_target(document)
        logger.debug("Writing points of a point-less rubric to '%s'", variant.value)

    container = _container(document, variant)
    list_key = variant.path[-1]
    existing = {
        point_id(raw, index): raw
        for index, raw in enumerate(mapping_list(container.get(list_key)))
    }

    points = [_coerce(point, index) for index, point in enumerate(edited_points)]
    written = []
    for point in points:
        merged = copy.deepcopy(existing.get(point.id, {}))
        merged.update(point.to_dict())
        if point.question_segment is None:
            merged.pop("questionSegment", None)
        written.append(merged)
    container[list_key] = written

    total = sum(point.score for point in points)
    if total > 0:
        document["totalScore"] = total
        metadata = document.get("metadata")
        if isinstance(metadata, dict):
            metadata["totalScore"] = total
        content = document.get("content")
        if isinstance(content, dict) and "totalScore" in content:
            content["totalScore"] = total

    return document


def reserialize_text(
    raw_text: str,
    edited_points: Iterable[EditablePoint | dict[str, Any]],
    variant: SourceVariant | str,
) -> str:
    """Parse ``raw_text``, write the points back and return JSON text.

    Raises:
        RubricParseError: If ``raw_text`` is not a JSON object
        ReadOnlyRubricError: For segmented documents
    """
    document = reserialize(parse_document(raw_text), edited_points, variant)
    return json.dumps(document, ensure_ascii=False, indent=2)
