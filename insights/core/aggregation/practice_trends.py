"""
Trends across numbered practice tests.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np

from libs.domain_types import ResultMode

from ._constants import TREND_DECIMALS
from ._types import ResolvedTest


@dataclass
class PracticeTestPoint:
    """One completed practice test on the progress chart."""

    test_number: int
    score: int
    accuracy: int
    mode: ResultMode
    completed_at: Optional[datetime] = None


@dataclass
class SectionTrend:
    """Score statistics for one section across completed practice tests."""

    section_name: str
    average_score: int
    best_score: int
    improvement_trend: float
    tests_counted: int


def improvement_trend(scores: Sequence[float]) -> float:
    """
    Least-squares slope of scores over test order, in points per test.

    Returns 0.0 for fewer than two scores.
    """
    if len(scores) < 2:
        return 0.0
    x = np.arange(len(scores), dtype=float)
    slope = np.polyfit(x, np.asarray(scores, dtype=float), 1)[0]
    return round(float(slope), TREND_DECIMALS)


def progress_over_time(tests: Sequence[ResolvedTest]) -> List[PracticeTestPoint]:
    """Available practice tests ordered by test number."""
    available = sorted(
        (test for test in tests if test.is_available and test.test_number is not None),
        key=lambda test: test.test_number,
    )
    return [
        PracticeTestPoint(
            test_number=test.test_number,
            score=test.result.overall_score,
            accuracy=test.result.overall_accuracy,
            mode=test.result.mode,
            completed_at=test.completed_at,
        )
        for test in available
    ]


def section_analysis(tests: Sequence[ResolvedTest]) -> Dict[str, SectionTrend]:
    """
    Per-section average, best and improvement trend across available tests.

    Averages are rounded half-up to whole percentages.
    """
    scores: Dict[str, List[int]] = {}
    for test in sorted(
        (t for t in tests if t.is_available and t.test_number is not None),
        key=lambda t: t.test_number,
    ):
        for stat in test.result.section_breakdown:
            scores.setdefault(stat.name, []).append(stat.score)

    analysis = {}
    for section_name, section_scores in scores.items():
        average = int(
            np.floor(np.mean(np.asarray(section_scores, dtype=float)) + 0.5)
        )
        analysis[section_name] = SectionTrend(
            section_name=section_name,
            average_score=average,
            best_score=max(section_scores),
            improvement_trend=improvement_trend(section_scores),
            tests_counted=len(section_scores),
        )
    return analysis
