"""
Section completeness gate.

Insights for a diagnostic or numbered practice test are only shown once
every expected section of the product has a completed session. Anything
less yields an "incomplete" outcome listing the missing sections; this is
normal control flow and never reported as a zero score.
"""

from typing import Iterable, Set

from ._types import CompletenessResult, SessionRecord


def completed_section_names(
    sessions: Iterable[SessionRecord], expected_sections: Iterable[str]
) -> Set[str]:
    """
    Sections covered by completed sessions.

    A completed whole-test session (no section name) covers every expected
    section.
    """
    expected = list(expected_sections)
    completed: Set[str] = set()
    for session in sessions:
        if not session.is_completed:
            continue
        if session.is_whole_test:
            completed.update(expected)
        else:
            completed.add(session.section_name)
    return completed


def check_completeness(
    expected_sections: Iterable[str], completed_sections: Iterable[str]
) -> CompletenessResult:
    """
    Check that every expected section has been completed.

    Args:
        expected_sections: Sections the product's test is made of
        completed_sections: Sections with a completed session

    Returns:
        CompletenessResult. Missing sections keep the expected order.
    """
    expected = tuple(expected_sections)
    completed = set(completed_sections)
    missing = tuple(section for section in expected if section not in completed)
    return CompletenessResult(
        is_complete=not missing,
        expected_sections=expected,
        completed_sections=tuple(s for s in expected if s in completed),
        missing_sections=missing,
    )
