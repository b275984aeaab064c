"""
Performance aggregation for diagnostic tests, practice tests and drills.

Pipeline:

    question catalog + attempts + writing assessments
        -> reconciliation (points per question)
        -> rollup (score and accuracy per sub-skill, section and overall)
        -> completeness gate (diagnostic and practice tests only)

Everything below the data loader is a pure function of its inputs, so a
result can be recomputed at any time from the attempt store.

Usage Example
-------------

    from insights.core.aggregation import InsightsDataLoader, resolve_diagnostic

    loader = InsightsDataLoader(db, user_id=7, product_type="Year 5 NAPLAN")
    diagnostic = resolve_diagnostic(loader)

    if diagnostic.is_available:
        print(diagnostic.result.overall_score)
    else:
        print(f"Still to do: {diagnostic.missing_sections}")
"""

# Types
from ._types import (
    AggregateResult,
    AssessmentRecord,
    AttemptRecord,
    CompletenessResult,
    DrillActivity,
    DrillResults,
    DrillSubSkillSummary,
    GroupStat,
    MalformedRecordError,
    QuestionRecord,
    ReconciledUnit,
    ResolvedTest,
    SessionRecord,
)

# Data access
from ._data_loader import InsightsDataLoader

# Pipeline stages
from .reconciliation import reconcile_attempt, reconcile_session, unattempted_unit
from .rollup import percentage, rank_sub_skills, rollup
from .completeness import check_completeness, completed_section_names
from .estimation import EstimationStrategy, SessionTotalsEstimator, apportion
from .resolver import (
    parse_practice_test_number,
    practice_test_mode,
    resolve_diagnostic,
    resolve_practice_test,
    resolve_test,
    sessions_for_practice_test,
)
from .drills import build_drill_results, recommended_level
from .practice_trends import (
    PracticeTestPoint,
    SectionTrend,
    improvement_trend,
    progress_over_time,
    section_analysis,
)

__all__ = [
    # Types
    "AggregateResult",
    "AssessmentRecord",
    "AttemptRecord",
    "CompletenessResult",
    "DrillActivity",
    "DrillResults",
    "DrillSubSkillSummary",
    "GroupStat",
    "MalformedRecordError",
    "QuestionRecord",
    "ReconciledUnit",
    "ResolvedTest",
    "SessionRecord",
    "PracticeTestPoint",
    "SectionTrend",
    # Data access
    "InsightsDataLoader",
    # Reconciliation and rollup
    "reconcile_attempt",
    "reconcile_session",
    "unattempted_unit",
    "percentage",
    "rank_sub_skills",
    "rollup",
    # Completeness
    "check_completeness",
    "completed_section_names",
    # Estimation
    "EstimationStrategy",
    "SessionTotalsEstimator",
    "apportion",
    # Resolution
    "parse_practice_test_number",
    "practice_test_mode",
    "resolve_diagnostic",
    "resolve_practice_test",
    "resolve_test",
    "sessions_for_practice_test",
    # Drills and trends
    "build_drill_results",
    "recommended_level",
    "improvement_trend",
    "progress_over_time",
    "section_analysis",
]
