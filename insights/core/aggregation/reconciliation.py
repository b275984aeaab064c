"""
Score reconciliation: attempt records to normalized point units.

Standard questions score binary correctness against the catalog's max
points. Essay questions take their points from a writing assessment when one
exists; until then the binary answer stands in as a placeholder and the unit
is flagged non-final.
"""

import logging
from typing import Iterable, List, Mapping, Optional

from ._types import AssessmentRecord, AttemptRecord, QuestionRecord, ReconciledUnit

logger = logging.getLogger(__name__)


def reconcile_attempt(
    attempt: AttemptRecord,
    question: QuestionRecord,
    assessment: Optional[AssessmentRecord] = None,
) -> ReconciledUnit:
    """
    Reconcile a single attempt into a points unit.

    Args:
        attempt: The user's attempt
        question: Catalog entry for the attempted question
        assessment: Writing assessment for the (session, question) pair, if any.
            Ignored for standard questions.

    Returns:
        ReconciledUnit with 0 <= earned_points <= max_points
    """
    max_points = question.max_points
    earned_points = max_points if attempt.is_correct else 0

    if not question.is_essay:
        return ReconciledUnit(
            section_name=question.section_name,
            sub_skill_name=question.sub_skill_name,
            earned_points=earned_points,
            max_points=max_points,
            attempted=True,
        )

    if assessment is None:
        return ReconciledUnit(
            section_name=question.section_name,
            sub_skill_name=question.sub_skill_name,
            earned_points=earned_points,
            max_points=max_points,
            attempted=True,
            is_essay=True,
            is_final=False,
        )

    max_points = assessment.max_possible_score
    earned_points = assessment.earned_score
    if earned_points < 0 or earned_points > max_points:
        clamped = min(max(earned_points, 0), max_points)
        logger.warning(
            f"Data inconsistency: assessment for question {question.id} in "
            f"session {attempt.session_id} has earned {earned_points} of "
            f"{max_points}; clamping to {clamped}",
            extra={"session_id": attempt.session_id, "user_id": attempt.user_id},
        )
        earned_points = clamped

    return ReconciledUnit(
        section_name=question.section_name,
        sub_skill_name=question.sub_skill_name,
        earned_points=earned_points,
        max_points=max_points,
        attempted=True,
        is_essay=True,
    )


def unattempted_unit(question: QuestionRecord) -> ReconciledUnit:
    """Unit for a catalog question the user never answered."""
    return ReconciledUnit(
        section_name=question.section_name,
        sub_skill_name=question.sub_skill_name,
        earned_points=0,
        max_points=question.max_points,
        attempted=False,
        is_essay=question.is_essay,
    )


def reconcile_session(
    attempts: Iterable[AttemptRecord],
    catalog: Mapping[int, QuestionRecord],
    assessments: Optional[Mapping[int, AssessmentRecord]] = None,
    scope: Iterable[QuestionRecord] = (),
) -> List[ReconciledUnit]:
    """
    Reconcile every attempt of a session plus its unanswered questions.

    Args:
        attempts: Attempts recorded for the session
        catalog: Question records by id, covering at least the attempted ids
        assessments: Writing assessments for the session, keyed by question id
        scope: Catalog questions the session covers. Questions in scope with
            no attempt become unattempted units so that totals reflect the
            full catalog.

    Returns:
        List of reconciled units. Attempts whose question is missing from the
        catalog are skipped with a warning.
    """
    assessments = assessments or {}
    units: List[ReconciledUnit] = []
    seen = set()

    for attempt in attempts:
        if attempt.question_id in seen:
            logger.debug(
                f"Ignoring duplicate attempt for question {attempt.question_id} "
                f"in session {attempt.session_id}"
            )
            continue
        question = catalog.get(attempt.question_id)
        if question is None:
            logger.warning(
                f"Skipping attempt for question {attempt.question_id}: "
                "not found in question catalog",
                extra={"session_id": attempt.session_id, "user_id": attempt.user_id},
            )
            continue
        seen.add(attempt.question_id)
        units.append(
            reconcile_attempt(attempt, question, assessments.get(question.id))
        )

    for question in scope:
        if question.id in seen:
            continue
        seen.add(question.id)
        units.append(unattempted_unit(question))

    return units
