"""
Rollup of reconciled units into section, sub-skill and overall statistics.

Two views are produced for every group:

* score    = earned / total possible points (unanswered questions count)
* accuracy = earned / attempted points (unanswered questions excluded)

Overall accuracy deliberately uses the total-possible denominator, so it
equals the overall score. Section and sub-skill accuracy use attempted
points. Dashboards rely on this asymmetry, so it is kept.

All percentages are computed from unrounded point sums and rounded half-up
to integers in [0, 100].
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

from libs.domain_types import InsightsView, ResultMode

from ._constants import PERCENT_SCALE
from ._types import AggregateResult, GroupStat, ReconciledUnit


def percentage(numerator: float, denominator: float) -> int:
    """
    Integer percentage rounded half-up and clamped to [0, 100].

    Returns 0 when the denominator is not positive.
    """
    if denominator <= 0:
        return 0
    value = (Decimal(numerator) * PERCENT_SCALE / Decimal(denominator)).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return max(0, min(PERCENT_SCALE, int(value)))


@dataclass
class _Tally:
    earned: int = 0
    total: int = 0
    attempted: int = 0
    essay_only: bool = True

    def add(self, unit: ReconciledUnit) -> None:
        self.earned += unit.earned_points
        self.total += unit.max_points
        if unit.attempted:
            self.attempted += unit.max_points
        if not unit.is_essay:
            self.essay_only = False

    def to_stat(self, name: str, section_name: Optional[str] = None) -> GroupStat:
        score = percentage(self.earned, self.total)
        # Writing has no separate notion of accuracy
        accuracy = score if self.essay_only else percentage(self.earned, self.attempted)
        return GroupStat(
            name=name,
            score=score,
            accuracy=accuracy,
            questions_correct=self.earned,
            questions_total=self.total,
            questions_attempted=self.attempted,
            section_name=section_name,
        )


def _tally_by(
    units: Iterable[ReconciledUnit], key: Callable[[ReconciledUnit], Hashable]
) -> Dict[Hashable, _Tally]:
    # dicts keep first-seen order, which is the tie-break order for rankings
    tallies: Dict[Hashable, _Tally] = {}
    for unit in units:
        tallies.setdefault(key(unit), _Tally()).add(unit)
    return tallies


def rollup_sections(units: Sequence[ReconciledUnit]) -> List[GroupStat]:
    """Per-section statistics in first-seen order."""
    tallies = _tally_by(units, lambda unit: unit.section_name)
    return [tally.to_stat(name) for name, tally in tallies.items()]


def rollup_sub_skills(units: Sequence[ReconciledUnit]) -> List[GroupStat]:
    """Per-(section, sub-skill) statistics in first-seen order."""
    tallies = _tally_by(units, lambda unit: (unit.section_name, unit.sub_skill_name))
    return [
        tally.to_stat(sub_skill, section_name=section)
        for (section, sub_skill), tally in tallies.items()
    ]


def rollup(
    units: Sequence[ReconciledUnit], mode: ResultMode = ResultMode.EXACT
) -> AggregateResult:
    """
    Roll reconciled units up into an AggregateResult.

    Args:
        units: Reconciled units for one test (any number of sessions)
        mode: EXACT when every unit came from attempts, ESTIMATED otherwise

    Returns:
        AggregateResult whose section and sub-skill point sums add up to the
        overall totals.
    """
    overall = _Tally()
    pending = 0
    for unit in units:
        overall.add(unit)
        if unit.is_essay and not unit.is_final:
            pending += 1

    overall_score = percentage(overall.earned, overall.total)

    return AggregateResult(
        overall_score=overall_score,
        overall_accuracy=overall_score,
        total_questions_correct=overall.earned,
        total_questions=overall.total,
        total_questions_attempted=overall.attempted,
        section_breakdown=rollup_sections(units),
        sub_skill_breakdown=rollup_sub_skills(units),
        mode=mode,
        pending_assessments=pending,
    )


def rank_sub_skills(
    stats: Sequence[GroupStat],
    view: InsightsView = InsightsView.SCORE,
    top_n: int = 5,
) -> Tuple[List[GroupStat], List[GroupStat]]:
    """
    Pick the strongest and weakest sub-skills.

    Args:
        stats: Sub-skill statistics
        view: Rank by score or by accuracy
        top_n: Length of each list

    Returns:
        Tuple of (strengths, weaknesses). Strengths are highest first and
        weaknesses lowest first. Ties keep input order.
    """
    if view == InsightsView.ACCURACY:
        value = lambda stat: stat.accuracy  # noqa: E731
    else:
        value = lambda stat: stat.score  # noqa: E731

    strengths = sorted(stats, key=lambda stat: -value(stat))[:top_n]
    weaknesses = sorted(stats, key=value)[:top_n]
    return strengths, weaknesses
