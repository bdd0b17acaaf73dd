"""Rubric persistence keyed by question."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gradeledger_common import ValidationError

from .models import NormalizedRubric, RubricDefaults
from .normalizer import normalize

if TYPE_CHECKING:
    from gradeledger_data.storage import KeyValueStorage

logger = logging.getLogger(__name__)

RUBRIC_PREFIX = "rubric_v2_"


def compose_question_key(platform: str, *scope: str, question_key: str) -> str:
    """Build a composite ``platform:...:questionKey`` key.

    Empty scope parts are skipped.

    Raises:
        ValidationError: If ``question_key`` is empty
    """
    if not question_key or not question_key.strip():
        raise ValidationError("question_key is required")
    parts = [platform, *scope, question_key]
    return ":".join(part.strip() for part in parts if part and part.strip())


class RubricRepository:
    """Stores rubric JSON text in key/value storage.

    Values are saved verbatim, including text that does not parse, so a
    rubric the user typed is never lost.

    Example:
        ```python
        rubrics = RubricRepository(storage)
        await rubrics.save("zhixue:exam-7:q3", rubric_text)
        rubric = await rubrics.load_normalized("zhixue:exam-7:q3")
        ```
    """

    def __init__(self, storage: KeyValueStorage, prefix: str = RUBRIC_PREFIX):
        self.storage = storage
        self.prefix = prefix

    def _key(self, question_key: str) -> str:
        if not question_key:
            raise ValidationError("question_key is required")
        return f"{self.prefix}{question_key}"

    async def save(self, question_key: str, rubric_text: str) -> None:
        await self.storage.set(self._key(question_key), rubric_text)
        logger.debug("Saved rubric for %s", question_key)

    async def load(self, question_key: str) -> str | None:
        return await self.storage.get(self._key(question_key))

    async def load_normalized(
        self, question_key: str, defaults: RubricDefaults | None = None
    ) -> NormalizedRubric | None:
        """Load and normalize; the question key is the default question id."""
        text = await self.load(question_key)
        if text is None:
            return None
        return normalize(text, defaults or RubricDefaults(question_id=question_key))

    async def delete(self, question_key: str) -> bool:
        return await self.storage.delete(self._key(question_key))

    async def list_keys(self) -> list[str]:
        """Question keys with a stored rubric, sorted."""
        keys = await self.storage.keys()
        return sorted(k[len(self.prefix):] for k in keys if k.startswith(self.prefix))
