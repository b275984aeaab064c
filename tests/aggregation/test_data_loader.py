"""
Tests for the request-scoped data loader and row-to-record conversion.
"""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from libs.domain_types import QuestionKind, SessionStatus

from insights.core.aggregation import InsightsDataLoader
from insights.core.db_error_handling import DatabaseOperationError
from insights.models.models import Question, Response

VIC = "VIC Selective Entry (Year 9 Entry)"


@pytest.fixture
def loader(db_session):
    return InsightsDataLoader(db_session, user_id=1, product_type=VIC)


class TestSessions:
    def test_filters_by_user_product_and_mode(self, loader, add_session):
        diagnostic = add_session(test_mode="diagnostic", section_name="Reading Reasoning")
        add_session(test_mode="drill", section_name="Reading Reasoning")
        add_session(test_mode="diagnostic", user_id=2)
        add_session(test_mode="diagnostic", product_type="Year 5 NAPLAN")

        sessions = loader.sessions(["diagnostic"])

        assert [s.id for s in sessions] == [diagnostic.id]
        assert sessions[0].status == SessionStatus.COMPLETED

    def test_prefix_lookup(self, loader, add_session):
        add_session(test_mode="practice_1")
        add_session(test_mode="practice_2")
        add_session(test_mode="diagnostic")

        modes = [s.test_mode for s in loader.sessions_with_prefix("practice_")]

        assert modes == ["practice_1", "practice_2"]

    def test_sessions_are_memoized(self, loader, add_session, db_session):
        add_session(test_mode="diagnostic")
        loader.sessions()

        with patch.object(db_session, "query", side_effect=AssertionError("queried again")):
            assert len(loader.sessions()) == 1

    def test_malformed_session_is_skipped(self, loader, add_session):
        add_session(test_mode="practice", final_score=150)
        good = add_session(test_mode="practice", final_score=70)

        assert [s.id for s in loader.sessions()] == [good.id]

    def test_question_order_becomes_tuple(self, loader, add_session):
        add_session(test_mode="drill", question_order=[3, 1, 2])

        assert loader.sessions()[0].question_order == (3, 1, 2)


class TestCatalog:
    def test_catalog_scope_prefers_first_mode_with_questions(self, loader, add_questions):
        add_questions(2, section_name="Reading Reasoning", test_mode="practice")

        scope = loader.catalog_scope(["practice_3", "practice"])

        assert len(scope) == 2
        assert all(q.test_mode == "practice" for q in scope)

    def test_catalog_scope_by_section(self, loader, add_questions):
        add_questions(2, section_name="Reading Reasoning")
        add_questions(3, section_name="Verbal Reasoning")

        scope = loader.catalog_scope(["diagnostic"], "Verbal Reasoning")

        assert len(scope) == 3

    def test_essay_kind_is_carried(self, loader, add_questions):
        add_questions(1, section_name="Written Expression", question_kind=QuestionKind.ESSAY)

        assert loader.catalog("diagnostic")[0].is_essay is True

    def test_questions_by_id_ignores_unknown_ids(self, loader, add_questions):
        question = add_questions(1, section_name="Reading Reasoning")[0]

        found = loader.questions_by_id([question.id, 9999])

        assert set(found) == {question.id}


class TestAttemptsAndAssessments:
    def test_attempts_for_session(self, loader, add_questions, add_session, add_response):
        questions = add_questions(2, section_name="Reading Reasoning")
        session = add_session(section_name="Reading Reasoning")
        add_response(session, questions[0], is_correct=True, time_spent_seconds=12)
        add_response(session, questions[1], is_correct=False)

        attempts = loader.attempts_for_session(session.id)

        assert [a.is_correct for a in attempts] == [True, False]
        assert attempts[0].time_spent_seconds == 12

    def test_assessments_keyed_by_question(
        self, loader, add_questions, add_session, add_writing_assessment
    ):
        essay = add_questions(
            1, section_name="Written Expression", question_kind=QuestionKind.ESSAY
        )[0]
        session = add_session(section_name="Written Expression")
        add_writing_assessment(session, essay, earned=20, maximum=30)

        assessments = loader.assessments_for_session(session.id)

        assert assessments[essay.id].earned_score == 20


class TestStorageFailure:
    def test_query_error_raises_database_operation_error(self, loader, db_session):
        error = OperationalError("SELECT", {}, Exception("db down"))

        with patch.object(db_session, "query", side_effect=error):
            with pytest.raises(DatabaseOperationError) as exc_info:
                loader.sessions()

        assert exc_info.value.operation_name == "load test sessions"


class TestConstraints:
    def test_one_response_per_session_question(
        self, db_session, add_questions, add_session, add_response
    ):
        question = add_questions(1, section_name="Reading Reasoning")[0]
        session = add_session(section_name="Reading Reasoning")
        add_response(session, question)

        db_session.add(
            Response(
                test_session_id=session.id,
                user_id=1,
                question_id=question.id,
                user_answer="B",
                is_correct=False,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_question_max_points_must_be_positive(self, db_session):
        db_session.add(
            Question(
                product_type=VIC,
                test_mode="diagnostic",
                section_name="Reading Reasoning",
                sub_skill_name="Inference",
                max_points=0,
            )
        )
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()
