"""
Insights read operations used by the API.

Each function builds a request-scoped InsightsDataLoader and runs the
aggregation pipeline. Incomplete and estimated outcomes are reported to
analytics.
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from libs.domain_types import (
    InsightsStatus,
    InsightsView,
    ResultMode,
    SessionStatus,
    TestMode,
)

from insights.core.aggregation import (
    DrillResults,
    EstimationStrategy,
    GroupStat,
    InsightsDataLoader,
    PracticeTestPoint,
    ResolvedTest,
    SectionTrend,
    build_drill_results,
    percentage,
    progress_over_time,
    rank_sub_skills,
    resolve_diagnostic,
    resolve_practice_test,
    section_analysis,
)
from insights.core.aggregation._constants import PRACTICE_MODE_PREFIX
from insights.core.analytics import AnalyticsTracker, EventType
from insights.core.config import settings
from insights.core.db_error_handling import storage_operation
from insights.models.models import Response, TestSession

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticInsights:
    """Diagnostic result with strengths and weaknesses."""

    test: ResolvedTest
    strengths: List[GroupStat] = field(default_factory=list)
    weaknesses: List[GroupStat] = field(default_factory=list)


@dataclass
class PracticeTestsInsights:
    """Every numbered practice test plus trends across them."""

    tests: List[ResolvedTest]
    progress_over_time: List[PracticeTestPoint] = field(default_factory=list)
    section_analysis: Dict[str, SectionTrend] = field(default_factory=dict)


@dataclass
class OverallPerformance:
    """Headline numbers for a user's product dashboard."""

    questions_attempted: int
    questions_correct: int
    overall_accuracy: int
    study_time_hours: float
    average_test_score: Optional[int]
    diagnostic_completed: bool
    practice_tests_completed: List[int]


def _report_outcome(
    test: ResolvedTest, user_id: int, product_type: str, label: str
) -> None:
    if test.status == InsightsStatus.INCOMPLETE:
        AnalyticsTracker.track_insights_outcome(
            EventType.INSIGHTS_INCOMPLETE,
            user_id,
            product_type,
            label,
            missing_sections=list(test.missing_sections),
        )
    elif test.is_available and test.result.mode == ResultMode.ESTIMATED:
        AnalyticsTracker.track_insights_outcome(
            EventType.INSIGHTS_ESTIMATED, user_id, product_type, label
        )


def get_diagnostic_results(
    db: Session,
    user_id: int,
    product_type: str,
    view: InsightsView = InsightsView.SCORE,
) -> DiagnosticInsights:
    """
    Diagnostic insights, gated on every section being completed.

    Args:
        db: Database session
        user_id: User to report on
        product_type: Product type name
        view: Order strengths and weaknesses by score or by accuracy
    """
    loader = InsightsDataLoader(db, user_id, product_type)
    test = resolve_diagnostic(loader)
    _report_outcome(test, user_id, product_type, "diagnostic")

    if not test.is_available:
        return DiagnosticInsights(test=test)

    strengths, weaknesses = rank_sub_skills(
        test.result.sub_skill_breakdown,
        view=view,
        top_n=settings.INSIGHTS_TOP_N_SUB_SKILLS,
    )
    return DiagnosticInsights(test=test, strengths=strengths, weaknesses=weaknesses)


def get_practice_test_result(
    db: Session,
    user_id: int,
    product_type: str,
    test_number: int,
    estimator: Optional[EstimationStrategy] = None,
) -> ResolvedTest:
    """Result for one numbered practice test."""
    loader = InsightsDataLoader(db, user_id, product_type)
    test = resolve_practice_test(loader, test_number, estimator=estimator)
    _report_outcome(test, user_id, product_type, f"practice_{test_number}")
    return test


def get_practice_test_results(
    db: Session,
    user_id: int,
    product_type: str,
    estimator: Optional[EstimationStrategy] = None,
) -> PracticeTestsInsights:
    """
    Results for practice tests 1..PRACTICE_TEST_COUNT with trends.

    All tests share one data loader, so sessions and catalogs are queried
    once per request.
    """
    loader = InsightsDataLoader(db, user_id, product_type)
    tests = []
    for test_number in range(1, settings.PRACTICE_TEST_COUNT + 1):
        test = resolve_practice_test(loader, test_number, estimator=estimator)
        _report_outcome(test, user_id, product_type, f"practice_{test_number}")
        tests.append(test)

    return PracticeTestsInsights(
        tests=tests,
        progress_over_time=progress_over_time(tests),
        section_analysis=section_analysis(tests),
    )


def get_drill_results(db: Session, user_id: int, product_type: str) -> DrillResults:
    """Drill insights across every completed drill session."""
    loader = InsightsDataLoader(db, user_id, product_type)
    return build_drill_results(
        loader,
        mastery_threshold=settings.DRILL_MASTERY_THRESHOLD,
        recent_limit=settings.DRILL_RECENT_ACTIVITY_LIMIT,
    )


def _round_to_half_hour(seconds: int) -> float:
    halves = (Decimal(seconds) / 1800).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(halves) / 2


def get_overall_performance(
    db: Session, user_id: int, product_type: str
) -> OverallPerformance:
    """
    Dashboard summary across every mode of the product.

    Study time sums time spent on responses and is rounded to the nearest
    half hour. The average test score covers completed diagnostic and
    practice sessions with a stored final score.
    """
    with storage_operation("load overall performance"):
        attempted, correct, seconds = (
            db.query(
                func.count(Response.id),
                func.coalesce(
                    func.sum(case((Response.is_correct.is_(True), 1), else_=0)), 0
                ),
                func.coalesce(func.sum(Response.time_spent_seconds), 0),
            )
            .join(TestSession, Response.test_session_id == TestSession.id)
            .filter(
                TestSession.user_id == user_id,
                TestSession.product_type == product_type,
            )
            .one()
        )

        scored_sessions = (
            db.query(TestSession.test_mode, TestSession.final_score)
            .filter(
                TestSession.user_id == user_id,
                TestSession.product_type == product_type,
                TestSession.status == SessionStatus.COMPLETED,
                TestSession.final_score.isnot(None),
            )
            .all()
        )

    test_scores = [
        final_score
        for test_mode, final_score in scored_sessions
        if test_mode == TestMode.DIAGNOSTIC.value
        or test_mode == TestMode.PRACTICE.value
        or test_mode.startswith(PRACTICE_MODE_PREFIX)
    ]
    average_test_score = (
        percentage(sum(test_scores), 100 * len(test_scores)) if test_scores else None
    )

    loader = InsightsDataLoader(db, user_id, product_type)
    diagnostic = resolve_diagnostic(loader)
    completed_tests = [
        test_number
        for test_number in range(1, settings.PRACTICE_TEST_COUNT + 1)
        if resolve_practice_test(loader, test_number).gate_passed
    ]

    return OverallPerformance(
        questions_attempted=int(attempted),
        questions_correct=int(correct),
        overall_accuracy=percentage(int(correct), int(attempted)),
        study_time_hours=_round_to_half_hour(int(seconds)),
        average_test_score=average_test_score,
        diagnostic_completed=diagnostic.gate_passed,
        practice_tests_completed=completed_tests,
    )
