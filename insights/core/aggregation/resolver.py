"""
Session-to-test resolution for diagnostic and numbered practice tests.

A test is made of one completed session per section (or one whole-test
session for legacy data). Resolution picks those sessions, runs the
completeness gate, and reduces each session to reconciled units:

1. Exact path: the session has per-question attempts.
2. Estimated path: no attempts but a stored final score, and estimation is
   allowed (practice tests only). See estimation.SessionTotalsEstimator.
3. No attempts and nothing to estimate, but catalog questions in scope:
   every question counts as unanswered, giving an exact zero.
4. Otherwise the test has no usable data and is reported as not started.

Practice sessions tagged ``practice_<n>`` belong to test n. Older generic
``practice`` sessions are assigned to test numbers by creation order within
each section.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Set, Tuple

from libs.domain_types import InsightsStatus, ResultMode, TestMode

from insights.core.datetime_utils import sort_key_utc
from insights.core.test_structure import expected_sections

from ._constants import PRACTICE_MODE_PREFIX
from ._data_loader import InsightsDataLoader
from ._types import ReconciledUnit, ResolvedTest, SessionRecord
from .completeness import check_completeness, completed_section_names
from .estimation import EstimationStrategy, SessionTotalsEstimator
from .reconciliation import reconcile_session
from .rollup import rollup

logger = logging.getLogger(__name__)


def practice_test_mode(test_number: int) -> str:
    """Stored test_mode for practice test ``test_number`` (1-based)."""
    if test_number < 1:
        raise ValueError(f"Practice test number must be >= 1 (got {test_number})")
    return f"{PRACTICE_MODE_PREFIX}{test_number}"


def parse_practice_test_number(test_mode: str) -> Optional[int]:
    """Test number encoded in a ``practice_<n>`` mode, else None."""
    if not test_mode.startswith(PRACTICE_MODE_PREFIX):
        return None
    suffix = test_mode[len(PRACTICE_MODE_PREFIX) :]
    if not suffix.isdigit() or int(suffix) < 1:
        return None
    return int(suffix)


def sessions_for_practice_test(
    sessions: Sequence[SessionRecord], test_number: int
) -> List[SessionRecord]:
    """
    Sessions belonging to practice test ``test_number``.

    Sessions tagged with the numbered mode win. Without any, the
    ``test_number``-th generic practice session of each section (by start
    time) is used.
    """
    tagged_mode = practice_test_mode(test_number)
    tagged = [session for session in sessions if session.test_mode == tagged_mode]
    if tagged:
        return tagged

    by_section: Dict[Optional[str], List[SessionRecord]] = defaultdict(list)
    for session in sessions:
        if session.test_mode == TestMode.PRACTICE.value:
            by_section[session.section_name].append(session)

    resolved = []
    for section_sessions in by_section.values():
        ordered = sorted(
            section_sessions, key=lambda s: (sort_key_utc(s.started_at), s.id)
        )
        if len(ordered) >= test_number:
            resolved.append(ordered[test_number - 1])
    return resolved


def latest_completed_by_section(
    sessions: Sequence[SessionRecord],
) -> Dict[Optional[str], SessionRecord]:
    """Most recently completed session per section (None key = whole test)."""
    latest: Dict[Optional[str], SessionRecord] = {}
    for session in sessions:
        if not session.is_completed:
            continue
        current = latest.get(session.section_name)
        if current is None or sort_key_utc(session.completed_at) >= sort_key_utc(
            current.completed_at
        ):
            latest[session.section_name] = session
    return latest


def resolve_expected_sections(
    loader: InsightsDataLoader, catalog_modes: Sequence[str]
) -> Tuple[str, ...]:
    """Static section list for the product, else the catalog's sections."""
    static = expected_sections(loader.product_type)
    if static is not None:
        return static
    sections: List[str] = []
    for question in loader.catalog_scope(catalog_modes):
        if question.section_name not in sections:
            sections.append(question.section_name)
    return tuple(sections)


def _assign_sessions(
    latest: Dict[Optional[str], SessionRecord], expected: Sequence[str]
) -> List[Tuple[SessionRecord, Optional[Set[str]]]]:
    """Pair each session with the sections it supplies (None = all of it)."""
    if not expected:
        return [(session, None) for session in latest.values()]

    whole = latest.get(None)
    assignments: Dict[int, Tuple[SessionRecord, Set[str]]] = {}
    for section in expected:
        candidates = [s for s in (latest.get(section), whole) if s is not None]
        chosen = max(candidates, key=lambda s: sort_key_utc(s.completed_at))
        assignments.setdefault(chosen.id, (chosen, set()))[1].add(section)
    return list(assignments.values())


def _units_for_session(
    loader: InsightsDataLoader,
    session: SessionRecord,
    sections: Optional[Set[str]],
    catalog_modes: Sequence[str],
    estimator: Optional[EstimationStrategy],
) -> Tuple[Optional[List[ReconciledUnit]], bool]:
    """Units for one session and whether they were estimated.

    A completed session without attempts is scored as all-unanswered
    against its catalog scope, unless the estimator can use its stored
    final score. Returns (None, False) only when there is neither a scope
    nor an estimable final score.
    """
    scope = loader.catalog_scope(catalog_modes, session.section_name)
    if sections is not None:
        scope = [question for question in scope if question.section_name in sections]

    attempts = loader.attempts_for_session(session.id)
    if attempts:
        catalog = loader.questions_by_id(a.question_id for a in attempts)
        units = reconcile_session(
            attempts, catalog, loader.assessments_for_session(session.id), scope
        )
        if sections is not None:
            units = [unit for unit in units if unit.section_name in sections]
        return units, False

    if estimator is not None and session.final_score is not None:
        units = estimator.estimate(session, scope)
        if units:
            return units, True

    if scope:
        logger.info(
            f"Session {session.id} is completed with no answers; "
            "scoring every question in scope as unanswered",
            extra={"session_id": session.id, "user_id": session.user_id},
        )
        return reconcile_session([], {}, {}, scope), False

    logger.info(
        f"Session {session.id} is completed but has no attempts or usable "
        "final score",
        extra={"session_id": session.id, "user_id": session.user_id},
    )
    return None, False


def resolve_test(
    loader: InsightsDataLoader,
    sessions: Sequence[SessionRecord],
    catalog_modes: Sequence[str],
    *,
    estimator: Optional[EstimationStrategy] = None,
    test_number: Optional[int] = None,
) -> ResolvedTest:
    """
    Resolve a set of candidate sessions into a gated test result.

    Args:
        loader: Data loader for the user and product
        sessions: Every session of the test, any status
        catalog_modes: Catalog test modes to score against, most specific first
        estimator: Strategy for sessions without attempts. None disables
            estimation.
        test_number: Practice test number, echoed on the result

    Returns:
        ResolvedTest with status AVAILABLE, INCOMPLETE or NOT_STARTED
    """
    if not sessions:
        return ResolvedTest(status=InsightsStatus.NOT_STARTED, test_number=test_number)

    expected = resolve_expected_sections(loader, catalog_modes)
    latest = latest_completed_by_section(sessions)
    gate = check_completeness(
        expected, completed_section_names(latest.values(), expected)
    )
    if not latest or not gate.is_complete:
        logger.debug(
            f"Test incomplete for user {loader.user_id}: missing "
            f"{list(gate.missing_sections)}"
        )
        return ResolvedTest(
            status=InsightsStatus.INCOMPLETE,
            test_number=test_number,
            missing_sections=gate.missing_sections,
        )

    units: List[ReconciledUnit] = []
    estimated = False
    used: List[SessionRecord] = []
    for session, sections in _assign_sessions(latest, expected):
        session_units, session_estimated = _units_for_session(
            loader, session, sections, catalog_modes, estimator
        )
        if session_units is None:
            return ResolvedTest(
                status=InsightsStatus.NOT_STARTED,
                test_number=test_number,
                gate_passed=True,
            )
        units.extend(session_units)
        estimated = estimated or session_estimated
        used.append(session)

    mode = ResultMode.ESTIMATED if estimated else ResultMode.EXACT
    return ResolvedTest(
        status=InsightsStatus.AVAILABLE,
        result=rollup(units, mode=mode),
        test_number=test_number,
        session_ids=tuple(session.id for session in used),
        completed_at=max(
            (session.completed_at for session in used if session.completed_at),
            key=sort_key_utc,
            default=None,
        ),
        gate_passed=True,
    )


def resolve_diagnostic(loader: InsightsDataLoader) -> ResolvedTest:
    """Diagnostic result. Only the exact path is used."""
    return resolve_test(
        loader,
        loader.sessions([TestMode.DIAGNOSTIC.value]),
        [TestMode.DIAGNOSTIC.value],
    )


def resolve_practice_test(
    loader: InsightsDataLoader,
    test_number: int,
    estimator: Optional[EstimationStrategy] = None,
) -> ResolvedTest:
    """Result for practice test ``test_number``, estimating legacy sessions."""
    numbered_mode = practice_test_mode(test_number)
    candidates = loader.sessions([numbered_mode, TestMode.PRACTICE.value])
    return resolve_test(
        loader,
        sessions_for_practice_test(candidates, test_number),
        [numbered_mode, TestMode.PRACTICE.value],
        estimator=estimator or SessionTotalsEstimator(),
        test_number=test_number,
    )
