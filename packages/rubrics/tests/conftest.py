"""Pytest configuration for gradeledger_rubrics tests."""

import json
import sys
from pathlib import Path

import pytest

# Add the package source to path for testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


@pytest.fixture
def answer_points_doc():
    return {
        "version": "2.0",
        "metadata": {
            "title": "Causes of the Opium War",
            "subject": "History",
            "questionId": "q-17",
            "questionType": "essay",
            "totalScore": 5,
            "strategyType": "point_accumulation",
        },
        "answerPoints": [
            {
                "id": "p1",
                "questionSegment": "(1)",
                "content": "Trade imbalance",
                "score": 2,
                "keywords": ["silver", "", 3],
                "requiredKeywords": ["silver"],
            },
            {"id": "p2", "content": "Opium smuggling", "score": 3, "keywords": []},
        ],
        "gradingNotes": ["Accept synonyms", "Ignore spelling"],
        "providerTrace": {"model": "m-1", "latencyMs": 812},
        "totalScore": 5,
    }


@pytest.fixture
def segments_doc():
    return {
        "metadata": {"title": "Reading", "totalScore": 6},
        "content": {
            "segments": [
                {
                    "id": "s1",
                    "title": "Part A",
                    "content": {"points": [{"content": "Main idea", "score": 2}]},
                },
                {
                    "name": "Part B",
                    "content": {"steps": [{"standard": "Cites evidence", "score": "4"}]},
                },
            ]
        },
    }


@pytest.fixture
def as_text():
    return lambda doc: json.dumps(doc, ensure_ascii=False)
