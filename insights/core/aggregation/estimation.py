"""
Degraded estimation for legacy sessions without per-question attempts.

Some older practice sessions stored only a session-level percentage. For
those, the percentage is spread across the session's sections and sub-skills
in proportion to each group's share of catalog points. Integer points are
apportioned with the largest-remainder method so the groups always sum back
to the session-level figure.

Results built from estimated units are reported with mode ESTIMATED.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Protocol, Sequence, Tuple

from ._types import QuestionRecord, ReconciledUnit, SessionRecord

logger = logging.getLogger(__name__)


class EstimationStrategy(Protocol):
    """
    Protocol for estimating reconciled units from session totals.

    Implementations return an empty list when the session cannot be
    estimated.
    """

    def estimate(
        self, session: SessionRecord, scope: Sequence[QuestionRecord]
    ) -> List[ReconciledUnit]:
        """
        Estimate units for a session.

        Args:
            session: Completed session with a stored final score
            scope: Catalog questions the session covered

        Returns:
            Estimated units, or an empty list if estimation is impossible
        """
        ...


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def apportion(total: int, weights: Sequence[int]) -> List[int]:
    """
    Split an integer total across weights by largest remainder.

    Each share is floor(total * w / sum(w)); leftover units go to the shares
    with the largest fractional remainders, earlier weights winning ties.

    >>> apportion(72, [40, 60])
    [29, 43]
    """
    weight_sum = sum(weights)
    if weight_sum <= 0 or total <= 0:
        return [0 for _ in weights]

    shares = []
    remainders = []
    for index, weight in enumerate(weights):
        quota = Decimal(total) * Decimal(weight) / Decimal(weight_sum)
        floor = int(quota)
        shares.append(floor)
        remainders.append((quota - floor, index))

    leftover = total - sum(shares)
    for _, index in sorted(remainders, key=lambda item: (-item[0], item[1]))[:leftover]:
        shares[index] += 1
    return shares


class SessionTotalsEstimator:
    """
    Estimate units by distributing a session's final score over its catalog.

    Earned points and attempted points are both apportioned first across
    sections and then across sub-skills within each section, weighted by
    catalog max points. Attempted points come from the session's
    questions_answered / total_questions ratio when total_questions is
    recorded; otherwise every question is treated as attempted.
    """

    def estimate(
        self, session: SessionRecord, scope: Sequence[QuestionRecord]
    ) -> List[ReconciledUnit]:
        if session.final_score is None or not scope:
            return []

        groups: Dict[str, Dict[str, Tuple[int, bool]]] = {}
        for question in scope:
            sub_skills = groups.setdefault(question.section_name, {})
            points, essay_only = sub_skills.get(question.sub_skill_name, (0, True))
            sub_skills[question.sub_skill_name] = (
                points + question.max_points,
                essay_only and question.is_essay,
            )

        total_points = sum(
            points for sub_skills in groups.values() for points, _ in sub_skills.values()
        )
        earned_total = _round_half_up(
            Decimal(str(session.final_score)) * total_points / 100
        )
        attempted_total = total_points
        if session.total_questions > 0:
            ratio = Decimal(min(session.questions_answered, session.total_questions))
            attempted_total = _round_half_up(
                ratio * total_points / session.total_questions
            )
        attempted_total = min(max(attempted_total, earned_total), total_points)

        section_names = list(groups)
        section_weights = [
            sum(points for points, _ in groups[name].values()) for name in section_names
        ]
        section_earned = apportion(earned_total, section_weights)
        section_attempted = apportion(attempted_total, section_weights)

        units: List[ReconciledUnit] = []
        for section_index, section_name in enumerate(section_names):
            sub_skills = groups[section_name]
            names = list(sub_skills)
            weights = [sub_skills[name][0] for name in names]
            earned_shares = apportion(section_earned[section_index], weights)
            attempted_shares = apportion(section_attempted[section_index], weights)

            for name, weight, earned, attempted in zip(
                names, weights, earned_shares, attempted_shares
            ):
                # Apportionment is not monotone, keep earned <= attempted <= weight
                attempted = min(max(attempted, earned), weight)
                is_essay = sub_skills[name][1]
                if attempted > 0:
                    units.append(
                        ReconciledUnit(
                            section_name=section_name,
                            sub_skill_name=name,
                            earned_points=earned,
                            max_points=attempted,
                            attempted=True,
                            is_essay=is_essay,
                        )
                    )
                if weight - attempted > 0:
                    units.append(
                        ReconciledUnit(
                            section_name=section_name,
                            sub_skill_name=name,
                            earned_points=0,
                            max_points=weight - attempted,
                            attempted=False,
                            is_essay=is_essay,
                        )
                    )

        logger.info(
            f"Estimated session {session.id} from final score "
            f"{session.final_score} across {len(section_names)} section(s)",
            extra={"session_id": session.id, "user_id": session.user_id},
        )
        return units
