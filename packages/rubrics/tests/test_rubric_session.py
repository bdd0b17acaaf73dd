"""Tests for rubric edit sessions and persistence."""

import json

import pytest

from gradeledger_common import NotFoundError, ValidationError
from gradeledger_data.storage import InMemoryStorage
from gradeledger_rubrics import (
    ReadOnlyRubricError,
    RubricDefaults,
    RubricEditSession,
    RubricRepository,
    SourceVariant,
    compose_question_key,
)


class TestRubricEditSession:

    def test_variant_fixed_at_open(self, answer_points_doc, as_text):
        session = RubricEditSession.open(as_text(answer_points_doc))
        session.replace_points([])
        assert session.variant is SourceVariant.ANSWER_POINTS

    def test_add_and_commit(self, answer_points_doc, as_text):
        session = RubricEditSession.open(as_text(answer_points_doc))

        point = session.add_point("Lin Zexu's campaign", score=1, keywords=["Lin"])
        assert point.id == "p-3"
        assert session.is_dirty
        assert session.total_score == 6

        result = json.loads(session.commit())
        assert [p["id"] for p in result["answerPoints"]] == ["p1", "p2", "p-3"]
        assert result["totalScore"] == 6
        assert result["gradingNotes"] == answer_points_doc["gradingNotes"]
        assert not session.is_dirty

    def test_generated_id_skips_taken(self):
        session = RubricEditSession.open('{"answerPoints": [{"id": "p-2", "content": "a"}]}')
        assert session.add_point("b").id == "p-3"

    def test_remove_point(self, answer_points_doc, as_text):
        session = RubricEditSession.open(as_text(answer_points_doc))

        removed = session.remove_point("p1")

        assert removed.content == "Trade imbalance"
        assert [p.id for p in session.points] == ["p2"]
        with pytest.raises(NotFoundError):
            session.remove_point("p1")

    def test_points_are_copies(self, answer_points_doc, as_text):
        session = RubricEditSession.open(as_text(answer_points_doc))
        session.points[0].keywords.append("tea")
        assert session.rubric.points[0].keywords == ["silver"]

    def test_segmented_session_is_read_only(self, segments_doc, as_text):
        session = RubricEditSession.open(as_text(segments_doc))

        assert session.read_only_reason
        assert len(session.points) == 2
        with pytest.raises(ReadOnlyRubricError):
            session.add_point("x")
        with pytest.raises(ReadOnlyRubricError):
            session.commit()

    def test_unparseable_text_committed_verbatim(self):
        session = RubricEditSession.open("1. mentions cause (2 pts)", RubricDefaults(question_id="q"))

        assert session.commit() == "1. mentions cause (2 pts)"
        with pytest.raises(ReadOnlyRubricError):
            session.add_point("x")

    def test_empty_document_gets_answer_points(self):
        session = RubricEditSession.open("{}")
        session.add_point("First point", score=2)

        assert json.loads(session.commit())["answerPoints"][0]["content"] == "First point"


class TestRubricRepository:

    @pytest.fixture
    def repository(self):
        return RubricRepository(InMemoryStorage())

    @pytest.mark.asyncio
    async def test_save_load_delete(self, repository):
        await repository.save("zhixue:exam-1:q3", '{"answerPoints": []}')

        assert await repository.load("zhixue:exam-1:q3") == '{"answerPoints": []}'
        assert await repository.storage.get("rubric_v2_zhixue:exam-1:q3") is not None
        assert await repository.list_keys() == ["zhixue:exam-1:q3"]
        assert await repository.delete("zhixue:exam-1:q3") is True
        assert await repository.load("zhixue:exam-1:q3") is None

    @pytest.mark.asyncio
    async def test_unparseable_text_saved_verbatim(self, repository):
        await repository.save("q1", "free text rubric")
        assert await repository.load("q1") == "free text rubric"

    @pytest.mark.asyncio
    async def test_load_normalized_defaults_question_id(self, repository):
        await repository.save("q9", "not json")

        rubric = await repository.load_normalized("q9")

        assert rubric.preview.question_id == "q9"
        assert rubric.parse_error
        assert await repository.load_normalized("missing") is None

    @pytest.mark.asyncio
    async def test_list_keys_ignores_other_entries(self, repository):
        await repository.storage.set("grading_records_v2", "[]")
        await repository.save("b", "{}")
        await repository.save("a", "{}")
        assert await repository.list_keys() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, repository):
        with pytest.raises(ValidationError):
            await repository.save("", "{}")


class TestComposeQuestionKey:

    def test_compose(self):
        assert compose_question_key("zhixue", "exam-1", question_key="q3") == "zhixue:exam-1:q3"

    def test_empty_scope_skipped(self):
        assert compose_question_key("zhixue", "", " ", question_key="q3") == "zhixue:q3"

    def test_question_key_required(self):
        with pytest.raises(ValidationError):
            compose_question_key("zhixue", question_key=" ")
