"""
Drill insights.

Drills run through the same reconciliation and rollup as tests but are never
gated on completeness: every completed drill session counts on its own. On
top of the rollup, each sub-skill gets accuracy per difficulty level and a
recommended next level.
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Tuple

from libs.domain_types import InsightsStatus, TestMode

from insights.core.datetime_utils import sort_key_utc

from ._constants import DEFAULT_DRILL_DIFFICULTY, DRILL_DIFFICULTY_LEVELS
from ._data_loader import InsightsDataLoader
from ._types import (
    DrillActivity,
    DrillResults,
    DrillSubSkillSummary,
    ReconciledUnit,
    SessionRecord,
)
from .reconciliation import reconcile_session
from .rollup import percentage, rollup, rollup_sub_skills

logger = logging.getLogger(__name__)


def recommended_level(
    accuracy_by_difficulty: Dict[int, Optional[int]], mastery_threshold: int
) -> int:
    """
    Next drill difficulty for a sub-skill.

    Level 3 once levels 1 and 2 both reach the mastery threshold, level 2
    once level 1 does, otherwise level 1. Unattempted levels count as 0.
    """
    level_1 = accuracy_by_difficulty.get(1) or 0
    level_2 = accuracy_by_difficulty.get(2) or 0
    if level_1 >= mastery_threshold and level_2 >= mastery_threshold:
        return 3
    if level_1 >= mastery_threshold:
        return 2
    return 1


def drill_session_units(
    loader: InsightsDataLoader, session: SessionRecord
) -> List[ReconciledUnit]:
    """Units for one drill session, scoped to the questions it served."""
    attempts = loader.attempts_for_session(session.id)
    catalog = loader.questions_by_id(
        [a.question_id for a in attempts] + list(session.question_order)
    )
    scope = [catalog[qid] for qid in session.question_order if qid in catalog]
    return reconcile_session(
        attempts, catalog, loader.assessments_for_session(session.id), scope
    )


def _dominant_sub_skill(units: List[ReconciledUnit]) -> Tuple[str, str]:
    counts = Counter((unit.section_name, unit.sub_skill_name) for unit in units)
    return counts.most_common(1)[0][0]


def build_drill_results(
    loader: InsightsDataLoader,
    mastery_threshold: int,
    recent_limit: int,
) -> DrillResults:
    """
    Aggregate every completed drill session of the user on the product.

    Args:
        loader: Data loader for the user and product
        mastery_threshold: Accuracy needed at a level to unlock the next one
        recent_limit: Number of recent activities to return

    Returns:
        DrillResults with status NOT_STARTED when there are no completed
        drills with data.
    """
    completed = [
        session
        for session in loader.sessions([TestMode.DRILL.value])
        if session.is_completed
    ]

    all_units: List[ReconciledUnit] = []
    units_by_level: Dict[int, List[ReconciledUnit]] = defaultdict(list)
    sessions_by_sub_skill: Counter = Counter()
    activities: List[DrillActivity] = []

    for session in completed:
        units = drill_session_units(loader, session)
        if not units:
            logger.debug(f"Drill session {session.id} has no questions; skipping")
            continue

        difficulty = session.difficulty or DEFAULT_DRILL_DIFFICULTY
        all_units.extend(units)
        units_by_level[difficulty].extend(units)
        for key in {(unit.section_name, unit.sub_skill_name) for unit in units}:
            sessions_by_sub_skill[key] += 1

        session_result = rollup(units)
        section_name, sub_skill_name = _dominant_sub_skill(units)
        activities.append(
            DrillActivity(
                session_id=session.id,
                section_name=session.section_name or section_name,
                sub_skill_name=sub_skill_name,
                difficulty=difficulty,
                score=session_result.overall_score,
                accuracy=percentage(
                    session_result.total_questions_correct,
                    session_result.total_questions_attempted,
                ),
                questions_correct=session_result.total_questions_correct,
                questions_total=session_result.total_questions,
                completed_at=session.completed_at,
            )
        )

    if not all_units:
        return DrillResults(status=InsightsStatus.NOT_STARTED)

    level_accuracy: Dict[int, Dict[Tuple[str, str], int]] = {}
    for level in DRILL_DIFFICULTY_LEVELS:
        level_accuracy[level] = {
            (stat.section_name, stat.name): stat.accuracy
            for stat in rollup_sub_skills(units_by_level.get(level, []))
            if stat.questions_attempted > 0
        }

    overall = rollup(all_units)
    sections: Dict[str, List[DrillSubSkillSummary]] = {}
    for stat in overall.sub_skill_breakdown:
        key = (stat.section_name, stat.name)
        by_difficulty = {
            level: level_accuracy[level].get(key) for level in DRILL_DIFFICULTY_LEVELS
        }
        sections.setdefault(stat.section_name, []).append(
            DrillSubSkillSummary(
                section_name=stat.section_name,
                sub_skill_name=stat.name,
                score=stat.score,
                accuracy=stat.accuracy,
                questions_correct=stat.questions_correct,
                questions_total=stat.questions_total,
                questions_attempted=stat.questions_attempted,
                sessions_completed=sessions_by_sub_skill[key],
                accuracy_by_difficulty=by_difficulty,
                recommended_level=recommended_level(by_difficulty, mastery_threshold),
            )
        )

    activities.sort(
        key=lambda a: (sort_key_utc(a.completed_at), a.session_id), reverse=True
    )

    return DrillResults(
        status=InsightsStatus.AVAILABLE,
        overall=overall,
        sections=sections,
        recent_activity=activities[:recent_limit],
        sessions_completed=len(activities),
    )
