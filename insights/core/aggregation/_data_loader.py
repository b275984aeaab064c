"""
Data loader for performance aggregation.

InsightsDataLoader is the only place the aggregation code touches the
database. It converts ORM rows into validated records and memoizes catalog
and session lookups for the lifetime of one request, so building several
results (every practice test, for example) reuses the same queries.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from insights.core.db_error_handling import storage_operation
from insights.models.models import Question, Response, TestSession, WritingAssessment

from ._types import (
    AssessmentRecord,
    AttemptRecord,
    MalformedRecordError,
    QuestionRecord,
    SessionRecord,
)

logger = logging.getLogger(__name__)


def question_record_from_row(row: Question) -> QuestionRecord:
    """Build a QuestionRecord from a Question row."""
    return QuestionRecord(
        id=row.id,
        product_type=row.product_type,
        test_mode=row.test_mode,
        section_name=row.section_name,
        sub_skill_name=row.sub_skill_name,
        max_points=row.max_points,
        question_kind=row.question_kind,
        correct_answer=row.correct_answer,
        difficulty=row.difficulty,
    )


def session_record_from_row(row: TestSession) -> SessionRecord:
    """Build a SessionRecord from a TestSession row."""
    return SessionRecord(
        id=row.id,
        user_id=row.user_id,
        product_type=row.product_type,
        test_mode=row.test_mode,
        status=row.status,
        section_name=row.section_name,
        total_questions=row.total_questions or 0,
        questions_answered=row.questions_answered or 0,
        correct_answers=row.correct_answers,
        final_score=row.final_score,
        question_order=tuple(row.question_order or ()),
        difficulty=row.difficulty,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )


def attempt_record_from_row(row: Response) -> AttemptRecord:
    """Build an AttemptRecord from a Response row."""
    return AttemptRecord(
        question_id=row.question_id,
        session_id=row.test_session_id,
        user_id=row.user_id,
        is_correct=bool(row.is_correct),
        user_answer=row.user_answer or "",
        time_spent_seconds=row.time_spent_seconds,
    )


def assessment_record_from_row(row: WritingAssessment) -> AssessmentRecord:
    """Build an AssessmentRecord from a WritingAssessment row."""
    return AssessmentRecord(
        question_id=row.question_id,
        session_id=row.test_session_id,
        user_id=row.user_id,
        earned_score=row.earned_score,
        max_possible_score=row.max_possible_score,
    )


def _convert(rows: Iterable, converter, kind: str) -> List:
    records = []
    for row in rows:
        try:
            records.append(converter(row))
        except MalformedRecordError as e:
            logger.warning(f"Ignoring malformed {kind} row {row.id}: {e}")
    return records


class InsightsDataLoader:
    """
    Request-scoped loader for one user's data on one product.

    Usage:
        loader = InsightsDataLoader(db, user_id=7, product_type="VIC Selective Entry (Year 9 Entry)")
        sessions = loader.sessions(["diagnostic"])
        attempts = loader.attempts_for_session(sessions[0].id)

    Storage errors are raised as DatabaseOperationError.
    """

    def __init__(self, db: Session, user_id: int, product_type: str):
        self._db = db
        self.user_id = user_id
        self.product_type = product_type
        self._sessions: Optional[List[SessionRecord]] = None
        self._catalogs: Dict[str, List[QuestionRecord]] = {}
        self._questions: Dict[int, QuestionRecord] = {}
        self._attempts: Dict[int, List[AttemptRecord]] = {}
        self._assessments: Dict[int, Dict[int, AssessmentRecord]] = {}

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _all_sessions(self) -> List[SessionRecord]:
        if self._sessions is None:
            with storage_operation("load test sessions"):
                rows = (
                    self._db.query(TestSession)
                    .filter(
                        TestSession.user_id == self.user_id,
                        TestSession.product_type == self.product_type,
                    )
                    .order_by(TestSession.started_at, TestSession.id)
                    .all()
                )
            self._sessions = _convert(rows, session_record_from_row, "session")
        return self._sessions

    def sessions(self, test_modes: Optional[Sequence[str]] = None) -> List[SessionRecord]:
        """Sessions for the user and product, oldest first, optionally by mode."""
        sessions = self._all_sessions()
        if test_modes is None:
            return list(sessions)
        modes = set(test_modes)
        return [session for session in sessions if session.test_mode in modes]

    def sessions_with_prefix(self, prefix: str) -> List[SessionRecord]:
        """Sessions whose test_mode starts with prefix, oldest first."""
        return [s for s in self._all_sessions() if s.test_mode.startswith(prefix)]

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def catalog(self, test_mode: str) -> List[QuestionRecord]:
        """All catalog questions for the product and test mode."""
        if test_mode not in self._catalogs:
            with storage_operation("load question catalog"):
                rows = (
                    self._db.query(Question)
                    .filter(
                        Question.product_type == self.product_type,
                        Question.test_mode == test_mode,
                    )
                    .order_by(Question.id)
                    .all()
                )
            records = _convert(rows, question_record_from_row, "question")
            self._catalogs[test_mode] = records
            for record in records:
                self._questions[record.id] = record
        return self._catalogs[test_mode]

    def catalog_scope(
        self, test_modes: Sequence[str], section_name: Optional[str] = None
    ) -> List[QuestionRecord]:
        """
        Catalog questions for the first test mode that has any.

        Args:
            test_modes: Candidate catalog modes, most specific first
            section_name: Restrict to one section; None for the whole test
        """
        for test_mode in test_modes:
            questions = self.catalog(test_mode)
            if questions:
                if section_name is None:
                    return list(questions)
                return [q for q in questions if q.section_name == section_name]
        return []

    def questions_by_id(self, question_ids: Iterable[int]) -> Dict[int, QuestionRecord]:
        """Question records for the given ids. Unknown ids are absent."""
        wanted = set(question_ids)
        missing = wanted - self._questions.keys()
        if missing:
            with storage_operation("load questions"):
                rows = self._db.query(Question).filter(Question.id.in_(missing)).all()
            for record in _convert(rows, question_record_from_row, "question"):
                self._questions[record.id] = record
        return {qid: self._questions[qid] for qid in wanted if qid in self._questions}

    # ------------------------------------------------------------------
    # Attempts and assessments
    # ------------------------------------------------------------------

    def attempts_for_session(self, session_id: int) -> List[AttemptRecord]:
        """Attempts recorded for a session, in answer order."""
        if session_id not in self._attempts:
            with storage_operation("load responses"):
                rows = (
                    self._db.query(Response)
                    .filter(Response.test_session_id == session_id)
                    .order_by(Response.answered_at, Response.id)
                    .all()
                )
            self._attempts[session_id] = _convert(rows, attempt_record_from_row, "response")
        return self._attempts[session_id]

    def assessments_for_session(self, session_id: int) -> Dict[int, AssessmentRecord]:
        """Writing assessments for a session keyed by question id."""
        if session_id not in self._assessments:
            with storage_operation("load writing assessments"):
                rows = (
                    self._db.query(WritingAssessment)
                    .filter(WritingAssessment.test_session_id == session_id)
                    .all()
                )
            self._assessments[session_id] = {
                record.question_id: record
                for record in _convert(rows, assessment_record_from_row, "assessment")
            }
        return self._assessments[session_id]
