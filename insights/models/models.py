"""
Database models for the performance insights service.

Question is the read-only catalog. TestSession, Response and
WritingAssessment form the attempt store the aggregation core reads from.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    Enum,
    Float,
    JSON,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from libs.domain_types import QuestionKind, SessionStatus

from .base import Base


class Question(Base):
    """Catalog entry for a single question."""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    product_type = Column(String(100), nullable=False)
    test_mode = Column(String(50), nullable=False)
    section_name = Column(String(100), nullable=False)
    sub_skill_name = Column(String(150), nullable=False)
    question_kind = Column(
        Enum(QuestionKind), default=QuestionKind.STANDARD, nullable=False
    )
    max_points = Column(Integer, default=1, nullable=False)
    correct_answer = Column(Text, nullable=True)  # None for essay prompts
    difficulty = Column(Integer, default=1, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    responses = relationship("Response", back_populates="question")

    __table_args__ = (
        Index("ix_questions_product_mode", "product_type", "test_mode"),
        Index("ix_questions_product_section", "product_type", "section_name"),
        CheckConstraint("max_points >= 1", name="ck_questions_max_points_positive"),
        CheckConstraint(
            "difficulty BETWEEN 1 AND 3", name="ck_questions_difficulty_range"
        ),
    )


class TestSession(Base):
    """One user's pass through a test section (or a whole legacy test)."""

    __tablename__ = "test_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    product_type = Column(String(100), nullable=False)
    # diagnostic, drill, practice, or practice_<n> for numbered practice tests
    test_mode = Column(String(50), nullable=False)
    # None marks a whole-test session covering every section of the product
    section_name = Column(String(100), nullable=True)
    status = Column(
        Enum(SessionStatus),
        default=SessionStatus.NOT_STARTED,
        nullable=False,
        index=True,
    )

    # Progress (last write wins)
    total_questions = Column(Integer, default=0, nullable=False)
    current_question_index = Column(Integer, default=0, nullable=False)
    answers = Column(JSON, nullable=True)  # {question_id: answer}
    flagged_questions = Column(JSON, nullable=True)  # [question_id]
    time_remaining_seconds = Column(Integer, nullable=True)
    question_order = Column(JSON, nullable=True)  # [question_id]
    questions_answered = Column(Integer, default=0, nullable=False)
    difficulty = Column(Integer, nullable=True)  # drills only

    # Completion
    correct_answers = Column(Integer, nullable=True)
    final_score = Column(Float, nullable=True)  # percentage 0-100
    section_scores = Column(JSON, nullable=True)  # {section_name: percentage}
    total_time_seconds = Column(Integer, nullable=True)

    started_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)

    responses = relationship(
        "Response", back_populates="test_session", cascade="all, delete-orphan"
    )
    writing_assessments = relationship(
        "WritingAssessment",
        back_populates="test_session",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index(
            "ix_test_sessions_user_product_mode",
            "user_id",
            "product_type",
            "test_mode",
        ),
        Index("ix_test_sessions_user_completed", "user_id", "completed_at"),
    )


class Response(Base):
    """A user's answer to one question within a session."""

    __tablename__ = "responses"

    id = Column(Integer, primary_key=True, index=True)
    test_session_id = Column(
        Integer,
        ForeignKey("test_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Integer, nullable=False, index=True)
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_answer = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    time_spent_seconds = Column(Integer, nullable=True)
    answered_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    test_session = relationship("TestSession", back_populates="responses")
    question = relationship("Question", back_populates="responses")

    __table_args__ = (
        UniqueConstraint(
            "test_session_id", "question_id", name="uq_responses_session_question"
        ),
    )


class WritingAssessment(Base):
    """Graded result for an essay response, written by the grading process."""

    __tablename__ = "writing_assessments"

    id = Column(Integer, primary_key=True, index=True)
    test_session_id = Column(
        Integer,
        ForeignKey("test_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(Integer, nullable=False, index=True)
    earned_score = Column(Integer, nullable=False)
    max_possible_score = Column(Integer, nullable=False)
    assessed_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    test_session = relationship("TestSession", back_populates="writing_assessments")

    __table_args__ = (
        UniqueConstraint(
            "test_session_id",
            "question_id",
            name="uq_writing_assessments_session_question",
        ),
        CheckConstraint(
            "earned_score >= 0", name="ck_writing_assessments_earned_nonnegative"
        ),
        CheckConstraint(
            "max_possible_score >= 1", name="ck_writing_assessments_max_positive"
        ),
    )
