"""
Pytest configuration and shared fixtures for testing.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from itertools import count
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from libs.domain_types import QuestionKind, SessionStatus

from insights.core.aggregation import (
    AssessmentRecord,
    AttemptRecord,
    QuestionRecord,
    SessionRecord,
)
from insights.main import app
from insights.models import Base, get_db
from insights.models.models import Question, Response, TestSession, WritingAssessment

VIC = "VIC Selective Entry (Year 9 Entry)"
VIC_SECTIONS = (
    "Reading Reasoning",
    "Mathematical Reasoning",
    "Verbal Reasoning",
    "Quantitative Reasoning",
    "Written Expression",
)
BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests; tables are managed by the db_session fixture."""
    yield


app.router.lifespan_context = _test_lifespan


# SQLite file next to this module so the path does not depend on the cwd
_TEST_DB = Path(__file__).parent / "test.db"
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.

    Each request gets its own session on the same test.db file that
    db_session writes to.
    """

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# Record factories (no database)
# =============================================================================


@pytest.fixture
def make_question_record():
    """Factory for QuestionRecord with sensible defaults."""
    ids = count(1)

    def _make(
        section_name="Mathematical Reasoning",
        sub_skill_name="Algebra",
        max_points=1,
        question_kind=QuestionKind.STANDARD,
        **kwargs,
    ):
        kwargs.setdefault("id", next(ids))
        kwargs.setdefault("product_type", VIC)
        kwargs.setdefault("test_mode", "diagnostic")
        return QuestionRecord(
            section_name=section_name,
            sub_skill_name=sub_skill_name,
            max_points=max_points,
            question_kind=question_kind,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_attempt():
    """Factory for AttemptRecord against a question record."""

    def _make(question, is_correct=True, session_id=1, user_id=1):
        return AttemptRecord(
            question_id=question.id,
            session_id=session_id,
            user_id=user_id,
            is_correct=is_correct,
            user_answer="A",
        )

    return _make


@pytest.fixture
def make_assessment():
    """Factory for AssessmentRecord against a question record."""

    def _make(question, earned, maximum, session_id=1, user_id=1):
        return AssessmentRecord(
            question_id=question.id,
            session_id=session_id,
            user_id=user_id,
            earned_score=earned,
            max_possible_score=maximum,
        )

    return _make


@pytest.fixture
def make_session_record():
    """Factory for SessionRecord."""
    ids = count(1)

    def _make(
        test_mode="practice",
        section_name=None,
        status=SessionStatus.COMPLETED,
        offset_minutes=0,
        **kwargs,
    ):
        started = BASE_TIME + timedelta(minutes=offset_minutes)
        kwargs.setdefault("id", next(ids))
        kwargs.setdefault("user_id", 1)
        kwargs.setdefault("product_type", VIC)
        kwargs.setdefault("started_at", started)
        if status == SessionStatus.COMPLETED:
            kwargs.setdefault("completed_at", started + timedelta(minutes=30))
        return SessionRecord(
            test_mode=test_mode,
            section_name=section_name,
            status=status,
            **kwargs,
        )

    return _make


# =============================================================================
# Database factories
# =============================================================================


@pytest.fixture
def add_questions(db_session):
    """
    Insert catalog questions.

    Usage:
        add_questions(3, section_name="Reading Reasoning", sub_skill_name="Inference")
    """

    def _add(
        n,
        section_name,
        sub_skill_name="General",
        test_mode="diagnostic",
        product_type=VIC,
        question_kind=QuestionKind.STANDARD,
        max_points=1,
        correct_answer="A",
        difficulty=1,
    ):
        questions = [
            Question(
                product_type=product_type,
                test_mode=test_mode,
                section_name=section_name,
                sub_skill_name=sub_skill_name,
                question_kind=question_kind,
                max_points=max_points,
                correct_answer=correct_answer,
                difficulty=difficulty,
            )
            for _ in range(n)
        ]
        db_session.add_all(questions)
        db_session.commit()
        for question in questions:
            db_session.refresh(question)
        return questions

    return _add


@pytest.fixture
def add_session(db_session):
    """Insert a test session row."""
    offsets = count(0)

    def _add(
        test_mode="diagnostic",
        section_name=None,
        status=SessionStatus.COMPLETED,
        user_id=1,
        product_type=VIC,
        **kwargs,
    ):
        started = BASE_TIME + timedelta(hours=next(offsets))
        kwargs.setdefault("started_at", started)
        kwargs.setdefault("updated_at", started)
        if status == SessionStatus.COMPLETED:
            kwargs.setdefault("completed_at", started + timedelta(minutes=30))
        session = TestSession(
            user_id=user_id,
            product_type=product_type,
            test_mode=test_mode,
            section_name=section_name,
            status=status,
            **kwargs,
        )
        db_session.add(session)
        db_session.commit()
        db_session.refresh(session)
        return session

    return _add


@pytest.fixture
def add_response(db_session):
    """Insert a response row."""

    def _add(session, question, is_correct=True, time_spent_seconds=30):
        response = Response(
            test_session_id=session.id,
            user_id=session.user_id,
            question_id=question.id,
            user_answer="A" if is_correct else "B",
            is_correct=is_correct,
            time_spent_seconds=time_spent_seconds,
        )
        db_session.add(response)
        db_session.commit()
        return response

    return _add


@pytest.fixture
def add_writing_assessment(db_session):
    """Insert a writing assessment row."""

    def _add(session, question, earned, maximum):
        assessment = WritingAssessment(
            test_session_id=session.id,
            question_id=question.id,
            user_id=session.user_id,
            earned_score=earned,
            max_possible_score=maximum,
        )
        db_session.add(assessment)
        db_session.commit()
        return assessment

    return _add


@pytest.fixture
def completed_vic_diagnostic(add_questions, add_session, add_response):
    """
    A fully completed VIC diagnostic: one session per section, two questions
    per section, first question correct and second wrong.
    """
    sessions = {}
    for section in VIC_SECTIONS:
        questions = add_questions(2, section_name=section, sub_skill_name=f"{section} core")
        session = add_session(test_mode="diagnostic", section_name=section)
        add_response(session, questions[0], is_correct=True)
        add_response(session, questions[1], is_correct=False)
        sessions[section] = session
    return sessions
