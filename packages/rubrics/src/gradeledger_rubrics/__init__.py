"""Rubric normalization, editing and persistence.

- **Normalizer**: reduces any known rubric shape to editable points
- **Reserializer**: writes edited points back into the original shape
- **Session**: edit session with a fixed source variant
- **Repository**: rubric text storage keyed by question
"""

from gradeledger_rubrics.exceptions import ReadOnlyRubricError, RubricParseError
from gradeledger_rubrics.models import (
    EditablePoint,
    NormalizedRubric,
    RubricDefaults,
    RubricPreview,
    SourceVariant,
)
from gradeledger_rubrics.normalizer import detect_variant, normalize, parse_document
from gradeledger_rubrics.repository import RUBRIC_PREFIX, RubricRepository, compose_question_key
from gradeledger_rubrics.reserializer import infer_target, reserialize, reserialize_text
from gradeledger_rubrics.session import RubricEditSession

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "EditablePoint",
    "NormalizedRubric",
    "RUBRIC_PREFIX",
    "ReadOnlyRubricError",
    "RubricDefaults",
    "RubricEditSession",
    "RubricParseError",
    "RubricPreview",
    "RubricRepository",
    "SourceVariant",
    "compose_question_key",
    "detect_variant",
    "infer_target",
    "normalize",
    "parse_document",
    "reserialize",
    "reserialize_text",
]
