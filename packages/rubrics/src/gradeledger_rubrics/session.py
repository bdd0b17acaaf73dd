"""Edit session over one loaded rubric."""

from __future__ import annotations

import copy
import json
import logging

from gradeledger_common import NotFoundError

from .exceptions import ReadOnlyRubricError
from .models import EditablePoint, NormalizedRubric, RubricDefaults, SourceVariant
from .normalizer import normalize
from .reserializer import reserialize

logger = logging.getLogger(__name__)


class RubricEditSession:
    """Holds the editable points of one rubric until they are committed.

    The source variant is resolved when the session opens and never
    changes, so ``commit`` always writes to where the points came from.

    Example:
        ```python
        session = RubricEditSession.open(rubric_text)
        session.add_point("Mentions the treaty", score=2, keywords=["treaty"])
        rubric_text = session.commit()
        ```
    """

    def __init__(self, rubric: NormalizedRubric):
        self._rubric = rubric
        self._points = copy.deepcopy(rubric.points)
        self._dirty = False

    @classmethod
    def open(cls, raw_text: str, defaults: RubricDefaults | None = None) -> RubricEditSession:
        return cls(normalize(raw_text, defaults))

    @property
    def rubric(self) -> NormalizedRubric:
        return self._rubric

    @property
    def variant(self) -> SourceVariant:
        return self._rubric.source_variant

    @property
    def read_only_reason(self) -> str | None:
        return self._rubric.read_only_reason

    @property
    def points(self) -> list[EditablePoint]:
        return list(self._points)

    @property
    def total_score(self) -> float:
        return sum(point.score for point in self._points)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def _check_editable(self) -> None:
        if self._rubric.parse_error is not None:
            raise ReadOnlyRubricError(self.variant.value, "rubric text could not be parsed")
        if not self.variant.editable:
            raise ReadOnlyRubricError(self.variant.value, self._rubric.read_only_reason)

    def _next_id(self) -> str:
        taken = {point.id for point in self._points}
        n = len(self._points) + 1
        while f"p-{n}" in taken:
            n += 1
        return f"p-{n}"

    def replace_points(self, points: list[EditablePoint]) -> None:
        self._check_editable()
        self._points = list(points)
        self._dirty = True

    def add_point(
        self,
        content: str,
        score: float = 0,
        question_segment: str | None = None,
        keywords: list[str] | None = None,
    ) -> EditablePoint:
        """Append a new point with a fresh ``p-<n>`` id."""
        self._check_editable()
        point = EditablePoint(
            id=self._next_id(),
            content=content,
            score=score,
            question_segment=question_segment,
            keywords=list(keywords or []),
        )
        self._points.append(point)
        self._dirty = True
        return point

    def remove_point(self, point_id: str) -> EditablePoint:
        """Remove a point by id.

        Raises:
            NotFoundError: If no point has ``point_id``
        """
        self._check_editable()
        for index, point in enumerate(self._points):
            if point.id == point_id:
                self._dirty = True
                return self._points.pop(index)
        raise NotFoundError(f"No rubric point '{point_id}'", context={"point_id": point_id})

    def commit(self) -> str:
        """Rubric text with the current points written back.

        Unparseable text is returned verbatim so it can still be saved.

        Raises:
            ReadOnlyRubricError: For segmented documents
        """
        if self._rubric.document is None:
            return self._rubric.raw_text
        document = reserialize(self._rubric.document, self._points, self.variant)
        self._dirty = False
        logger.debug("Committed %d rubric points to '%s'", len(self._points), self.variant.value)
        return json.dumps(document, ensure_ascii=False, indent=2)
