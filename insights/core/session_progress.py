"""
Session persistence: create/resume, progress auto-save, completion and
answer recording.

Status moves only forward: not_started -> in_progress -> completed.
Progress fields (current question, answers, flags, time remaining) are last
write wins, but no write is accepted once a session is completed. The guard
is part of the UPDATE statement itself, so a late auto-save racing a
completion cannot reopen or overwrite the completed session.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from libs.domain_types import QuestionKind, SessionStatus, TestMode

from insights.core.aggregation import (
    InsightsDataLoader,
    percentage,
    reconcile_session,
    rollup,
)
from insights.core.aggregation.resolver import parse_practice_test_number
from insights.core.analytics import AnalyticsTracker, EventType
from insights.core.datetime_utils import utc_now
from insights.core.test_structure import expected_sections
from insights.models.models import Question, Response, TestSession, WritingAssessment

logger = logging.getLogger(__name__)

_BASE_MODES = {mode.value for mode in TestMode}


class SessionNotFoundError(LookupError):
    """Raised when a session id does not exist."""

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Test session {session_id} not found")


class QuestionNotFoundError(LookupError):
    """Raised when a question id does not exist."""

    def __init__(self, question_id: int):
        self.question_id = question_id
        super().__init__(f"Question {question_id} not found")


class SessionTransitionError(Exception):
    """Raised for a write that would move a session backwards.

    The usual cause is a stale auto-save arriving after completion.
    """

    def __init__(self, session_id: int, status: SessionStatus, operation: str):
        self.session_id = session_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} session {session_id}: session is {status.value}"
        )


class InvalidAssessmentError(ValueError):
    """Raised when an essay assessment is rejected at ingestion."""


def validate_test_mode(test_mode: str) -> str:
    """Accept diagnostic, practice, drill or practice_<n>."""
    if test_mode in _BASE_MODES or parse_practice_test_number(test_mode) is not None:
        return test_mode
    raise ValueError(
        f"Unknown test mode {test_mode!r}; expected one of "
        f"{sorted(_BASE_MODES)} or practice_<n>"
    )


def is_answer_correct(user_answer: Optional[str], correct_answer: Optional[str]) -> bool:
    """
    Grade a multiple-choice answer.

    Comparison is trimmed and case-insensitive. When the key is a single
    letter, an answer that starts with that letter ("B) 12") also matches.
    """
    if user_answer is None or correct_answer is None:
        return False
    answer = user_answer.strip().lower()
    key = correct_answer.strip().lower()
    if not answer or not key:
        return False
    if answer == key:
        return True
    return len(key) == 1 and key.isalpha() and answer[0] == key


def get_session(db: Session, session_id: int) -> TestSession:
    """
    Fetch a session by id.

    Raises:
        SessionNotFoundError: If it does not exist
    """
    session = db.query(TestSession).filter(TestSession.id == session_id).first()
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


def _reject_stale_write(db: Session, session_id: int, operation: str) -> None:
    """Raise the right error after a guarded UPDATE matched no row."""
    session = get_session(db, session_id)
    AnalyticsTracker.track_stale_write_rejected(session.user_id, session_id, operation)
    logger.warning(
        f"Rejected {operation} for session {session_id} in status "
        f"{session.status.value}",
        extra={"session_id": session_id, "user_id": session.user_id},
    )
    raise SessionTransitionError(session_id, session.status, operation)


def create_or_resume_session(
    db: Session,
    user_id: int,
    product_type: str,
    test_mode: str,
    section_name: Optional[str] = None,
    *,
    total_questions: int = 0,
    question_order: Optional[Sequence[int]] = None,
    difficulty: Optional[int] = None,
) -> Tuple[TestSession, bool]:
    """
    Return the open session for this scope or create a new one.

    A completed session is never resumed; starting the same section again
    after completion creates a new session.

    Returns:
        Tuple of (session, created)
    """
    validate_test_mode(test_mode)

    query = db.query(TestSession).filter(
        TestSession.user_id == user_id,
        TestSession.product_type == product_type,
        TestSession.test_mode == test_mode,
        TestSession.status != SessionStatus.COMPLETED,
    )
    if section_name is None:
        query = query.filter(TestSession.section_name.is_(None))
    else:
        query = query.filter(TestSession.section_name == section_name)
    existing = query.order_by(TestSession.started_at.desc(), TestSession.id.desc()).first()

    if existing is not None:
        AnalyticsTracker.track_session_resumed(user_id, existing.id)
        return existing, False

    now = utc_now()
    session = TestSession(
        user_id=user_id,
        product_type=product_type,
        test_mode=test_mode,
        section_name=section_name,
        status=SessionStatus.NOT_STARTED,
        total_questions=total_questions or len(question_order or ()),
        question_order=list(question_order) if question_order else None,
        difficulty=difficulty,
        answers={},
        flagged_questions=[],
        started_at=now,
        updated_at=now,
    )
    db.add(session)
    db.commit()
    db.refresh(session)

    AnalyticsTracker.track_session_created(user_id, session.id, product_type, test_mode)
    return session, True


def save_progress(
    db: Session,
    session_id: int,
    *,
    current_question_index: int,
    answers: Dict[str, Any],
    flagged_questions: List[int],
    time_remaining_seconds: Optional[int] = None,
) -> TestSession:
    """
    Store the latest progress snapshot for an open session.

    Moves a not_started session to in_progress.

    Raises:
        SessionNotFoundError: If the session does not exist
        SessionTransitionError: If the session is already completed
    """
    updated = (
        db.query(TestSession)
        .filter(
            TestSession.id == session_id,
            TestSession.status != SessionStatus.COMPLETED,
        )
        .update(
            {
                TestSession.status: SessionStatus.IN_PROGRESS,
                TestSession.current_question_index: current_question_index,
                TestSession.answers: answers,
                TestSession.flagged_questions: flagged_questions,
                TestSession.time_remaining_seconds: time_remaining_seconds,
                TestSession.questions_answered: len(answers),
                TestSession.updated_at: utc_now(),
            },
            synchronize_session=False,
        )
    )
    if updated == 0:
        db.rollback()
        _reject_stale_write(db, session_id, "save progress for")
    db.commit()

    session = get_session(db, session_id)
    db.refresh(session)
    AnalyticsTracker.track_event(
        EventType.SESSION_PROGRESS_SAVED,
        user_id=session.user_id,
        properties={
            "session_id": session_id,
            "current_question_index": current_question_index,
            "questions_answered": len(answers),
        },
    )
    return session


@dataclass
class _SessionScore:
    final_score: Optional[float] = None
    section_scores: Optional[Dict[str, int]] = None
    correct_answers: int = 0
    question_count: int = 0
    has_responses: bool = False


def _catalog_modes(test_mode: str) -> List[str]:
    if parse_practice_test_number(test_mode) is not None:
        return [test_mode, TestMode.PRACTICE.value]
    return [test_mode]


def _score_session(db: Session, session: TestSession) -> _SessionScore:
    """Score a session from its responses with the aggregation pipeline."""
    loader = InsightsDataLoader(db, session.user_id, session.product_type)
    attempts = loader.attempts_for_session(session.id)

    if session.question_order:
        scope_by_id = loader.questions_by_id(session.question_order)
        scope = [scope_by_id[qid] for qid in session.question_order if qid in scope_by_id]
    elif session.test_mode == TestMode.DRILL.value:
        # Drills without a recorded question order are scored on what was answered
        scope = []
    else:
        scope = loader.catalog_scope(_catalog_modes(session.test_mode), session.section_name)

    catalog = loader.questions_by_id(a.question_id for a in attempts)
    units = reconcile_session(
        attempts, catalog, loader.assessments_for_session(session.id), scope
    )
    if not units:
        return _SessionScore(has_responses=bool(attempts))

    result = rollup(units)
    return _SessionScore(
        final_score=float(result.overall_score),
        section_scores=result.section_scores(),
        correct_answers=sum(1 for attempt in attempts if attempt.is_correct),
        question_count=len(units),
        has_responses=bool(attempts),
    )


def complete_session(
    db: Session,
    session_id: int,
    *,
    total_time_seconds: Optional[int] = None,
    correct_answers: Optional[int] = None,
    total_questions: Optional[int] = None,
) -> TestSession:
    """
    Complete an in-progress session and store its scores.

    Scores are computed from the recorded responses. When the session has
    no responses, client-reported correct_answers / total_questions are
    stored instead so that the result can later be estimated.

    Raises:
        SessionNotFoundError: If the session does not exist
        SessionTransitionError: If the session is not in progress
    """
    session = get_session(db, session_id)
    if session.status != SessionStatus.IN_PROGRESS:
        _reject_stale_write(db, session_id, "complete")

    score = _score_session(db, session)
    if not score.has_responses and correct_answers is not None and total_questions:
        correct = min(correct_answers, total_questions)
        score = _SessionScore(
            final_score=float(percentage(correct, total_questions)),
            correct_answers=correct,
            question_count=total_questions,
        )

    updated = (
        db.query(TestSession)
        .filter(
            TestSession.id == session_id,
            TestSession.status == SessionStatus.IN_PROGRESS,
            TestSession.completed_at.is_(None),
        )
        .update(
            {
                TestSession.status: SessionStatus.COMPLETED,
                TestSession.completed_at: utc_now(),
                TestSession.updated_at: utc_now(),
                TestSession.final_score: score.final_score,
                TestSession.section_scores: score.section_scores,
                TestSession.correct_answers: score.correct_answers,
                TestSession.total_questions: (
                    score.question_count or session.total_questions
                ),
                TestSession.total_time_seconds: total_time_seconds,
            },
            synchronize_session=False,
        )
    )
    if updated == 0:
        db.rollback()
        _reject_stale_write(db, session_id, "complete")
    db.commit()

    db.refresh(session)
    AnalyticsTracker.track_session_completed(
        session.user_id, session.id, session.final_score, total_time_seconds
    )
    return session


def _open_session_for_write(db: Session, session_id: int, operation: str) -> TestSession:
    """Touch an open session (moving not_started to in_progress) or reject."""
    updated = (
        db.query(TestSession)
        .filter(
            TestSession.id == session_id,
            TestSession.status != SessionStatus.COMPLETED,
        )
        .update(
            {
                TestSession.status: SessionStatus.IN_PROGRESS,
                TestSession.updated_at: utc_now(),
            },
            synchronize_session=False,
        )
    )
    if updated == 0:
        db.rollback()
        _reject_stale_write(db, session_id, operation)
    return get_session(db, session_id)


def record_response(
    db: Session,
    session_id: int,
    question_id: int,
    user_answer: str,
    time_spent_seconds: Optional[int] = None,
) -> Response:
    """
    Grade and store an answer.

    One response is kept per (session, question); answering again while the
    session is open replaces the earlier answer.

    Raises:
        SessionNotFoundError: If the session does not exist
        QuestionNotFoundError: If the question does not exist
        SessionTransitionError: If the session is already completed
    """
    question = db.query(Question).filter(Question.id == question_id).first()
    if question is None:
        get_session(db, session_id)
        raise QuestionNotFoundError(question_id)

    session = _open_session_for_write(db, session_id, "record a response for")
    is_correct = is_answer_correct(user_answer, question.correct_answer)

    response = (
        db.query(Response)
        .filter(
            Response.test_session_id == session_id,
            Response.question_id == question_id,
        )
        .first()
    )
    if response is None:
        response = Response(
            test_session_id=session_id,
            user_id=session.user_id,
            question_id=question_id,
        )
        db.add(response)
    response.user_answer = user_answer
    response.is_correct = is_correct
    response.time_spent_seconds = time_spent_seconds
    response.answered_at = utc_now()
    db.commit()
    db.refresh(response)

    AnalyticsTracker.track_event(
        EventType.RESPONSE_RECORDED,
        user_id=session.user_id,
        properties={
            "session_id": session_id,
            "question_id": question_id,
            "is_correct": is_correct,
        },
    )
    return response


def record_assessment(
    db: Session,
    session_id: int,
    question_id: int,
    earned_score: int,
    max_possible_score: int,
) -> WritingAssessment:
    """
    Store the grading result for an essay response.

    Assessments arrive asynchronously and are accepted after completion.
    A second assessment for the same (session, question) replaces the first.

    Raises:
        SessionNotFoundError: If the session does not exist
        QuestionNotFoundError: If the question does not exist
        InvalidAssessmentError: For non-essay questions or out-of-range scores
    """
    session = get_session(db, session_id)
    question = db.query(Question).filter(Question.id == question_id).first()
    if question is None:
        raise QuestionNotFoundError(question_id)
    if question.question_kind != QuestionKind.ESSAY:
        raise InvalidAssessmentError(
            f"Question {question_id} is not an essay question"
        )
    if max_possible_score < 1:
        raise InvalidAssessmentError("max_possible_score must be at least 1")
    if not 0 <= earned_score <= max_possible_score:
        raise InvalidAssessmentError(
            f"earned_score must be between 0 and {max_possible_score}"
        )

    assessment = (
        db.query(WritingAssessment)
        .filter(
            WritingAssessment.test_session_id == session_id,
            WritingAssessment.question_id == question_id,
        )
        .first()
    )
    if assessment is None:
        assessment = WritingAssessment(
            test_session_id=session_id,
            question_id=question_id,
            user_id=session.user_id,
        )
        db.add(assessment)
    assessment.earned_score = earned_score
    assessment.max_possible_score = max_possible_score
    assessment.assessed_at = utc_now()
    db.commit()
    db.refresh(assessment)

    AnalyticsTracker.track_event(
        EventType.ASSESSMENT_RECORDED,
        user_id=session.user_id,
        properties={
            "session_id": session_id,
            "question_id": question_id,
            "earned_score": earned_score,
            "max_possible_score": max_possible_score,
        },
    )
    return assessment


@dataclass
class SectionProgress:
    """Progress of one section of a diagnostic or practice test."""

    section_name: str
    status: SessionStatus
    questions_completed: int = 0
    total_questions: int = 0
    session_id: Optional[int] = None
    updated_at: Optional[datetime] = None


def get_section_progress(
    db: Session, user_id: int, product_type: str, test_mode: str
) -> List[SectionProgress]:
    """
    Per-section progress for a test mode.

    Each expected section reports its most recent session. Products without
    a static structure report the sections they have sessions for.
    """
    validate_test_mode(test_mode)
    sessions = (
        db.query(TestSession)
        .filter(
            TestSession.user_id == user_id,
            TestSession.product_type == product_type,
            TestSession.test_mode == test_mode,
            TestSession.section_name.isnot(None),
        )
        .order_by(TestSession.started_at, TestSession.id)
        .all()
    )

    latest: Dict[str, TestSession] = {}
    for session in sessions:
        latest[session.section_name] = session

    sections = expected_sections(product_type) or tuple(latest)
    progress = []
    for section_name in sections:
        session = latest.get(section_name)
        if session is None:
            progress.append(
                SectionProgress(section_name=section_name, status=SessionStatus.NOT_STARTED)
            )
            continue
        progress.append(
            SectionProgress(
                section_name=section_name,
                status=session.status,
                questions_completed=session.questions_answered or 0,
                total_questions=session.total_questions or 0,
                session_id=session.id,
                updated_at=session.updated_at,
            )
        )
    return progress
