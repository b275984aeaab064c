"""
Tests for trends across numbered practice tests.
"""
import pytest

from libs.domain_types import InsightsStatus, ResultMode

from insights.core.aggregation import (
    AggregateResult,
    GroupStat,
    ResolvedTest,
    improvement_trend,
    progress_over_time,
    section_analysis,
)


def _resolved(test_number, section_scores, mode=ResultMode.EXACT):
    breakdown = [
        GroupStat(
            name=name,
            score=score,
            accuracy=score,
            questions_correct=score,
            questions_total=100,
            questions_attempted=100,
        )
        for name, score in section_scores.items()
    ]
    overall = round(sum(section_scores.values()) / len(section_scores))
    return ResolvedTest(
        status=InsightsStatus.AVAILABLE,
        result=AggregateResult(
            overall_score=overall,
            overall_accuracy=overall,
            total_questions_correct=sum(section_scores.values()),
            total_questions=100 * len(section_scores),
            total_questions_attempted=100 * len(section_scores),
            section_breakdown=breakdown,
            mode=mode,
        ),
        test_number=test_number,
    )


class TestImprovementTrend:
    def test_steady_improvement(self):
        assert improvement_trend([50, 60, 70]) == pytest.approx(10.0)

    def test_decline_is_negative(self):
        assert improvement_trend([80, 70]) == pytest.approx(-10.0)

    def test_flat(self):
        assert improvement_trend([65, 65, 65]) == pytest.approx(0.0)

    def test_single_score_has_no_trend(self):
        assert improvement_trend([70]) == 0.0

    def test_empty(self):
        assert improvement_trend([]) == 0.0

    def test_rounded_to_two_decimals(self):
        trend = improvement_trend([50, 61, 64])

        assert trend == pytest.approx(7.0)
        assert trend == round(trend, 2)


class TestProgressOverTime:
    def test_only_available_tests_in_number_order(self):
        tests = [
            _resolved(3, {"Reading": 70}),
            ResolvedTest(status=InsightsStatus.INCOMPLETE, test_number=2),
            _resolved(1, {"Reading": 50}, mode=ResultMode.ESTIMATED),
        ]

        points = progress_over_time(tests)

        assert [p.test_number for p in points] == [1, 3]
        assert points[0].score == 50
        assert points[0].mode == ResultMode.ESTIMATED

    def test_no_available_tests(self):
        tests = [ResolvedTest(status=InsightsStatus.NOT_STARTED, test_number=1)]

        assert progress_over_time(tests) == []


class TestSectionAnalysis:
    def test_average_best_and_trend(self):
        tests = [
            _resolved(1, {"Reading": 50, "Numeracy": 81}),
            _resolved(2, {"Reading": 60, "Numeracy": 80}),
            _resolved(3, {"Reading": 71, "Numeracy": 80}),
        ]

        analysis = section_analysis(tests)

        reading = analysis["Reading"]
        assert reading.average_score == 60  # 60.33
        assert reading.best_score == 71
        assert reading.improvement_trend == pytest.approx(10.5)
        assert reading.tests_counted == 3
        assert analysis["Numeracy"].average_score == 80  # 80.33

    def test_average_rounds_half_up(self):
        tests = [_resolved(1, {"Reading": 60}), _resolved(2, {"Reading": 61})]

        assert section_analysis(tests)["Reading"].average_score == 61

    def test_unavailable_tests_are_skipped(self):
        tests = [
            _resolved(1, {"Reading": 40}),
            ResolvedTest(status=InsightsStatus.INCOMPLETE, test_number=2),
        ]

        reading = section_analysis(tests)["Reading"]

        assert reading.tests_counted == 1
        assert reading.improvement_trend == 0.0
