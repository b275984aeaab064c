"""Shared domain types for the performance insights service.

This package is the single source of truth for domain enums used by the
ORM models, the aggregation core and the API schemas.

Usage:
    from libs.domain_types import QuestionKind, SessionStatus
"""

import enum


class QuestionKind(str, enum.Enum):
    """How a question is scored."""

    STANDARD = "standard"  # binary correctness
    ESSAY = "essay"  # weighted points from a separate assessment


class SessionStatus(str, enum.Enum):
    """Lifecycle status of a test session."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TestMode(str, enum.Enum):
    """Base test modes.

    Numbered practice sessions are stored as ``practice_<n>`` and are not
    members of this enum.
    """

    DIAGNOSTIC = "diagnostic"
    PRACTICE = "practice"
    DRILL = "drill"


class ResultMode(str, enum.Enum):
    """Whether an aggregate was computed from attempts or estimated."""

    EXACT = "exact"
    ESTIMATED = "estimated"


class InsightsStatus(str, enum.Enum):
    """Availability of an insights result."""

    AVAILABLE = "available"
    INCOMPLETE = "incomplete"
    NOT_STARTED = "not_started"


class InsightsView(str, enum.Enum):
    """Which percentage a sub-skill ranking is ordered by."""

    SCORE = "score"
    ACCURACY = "accuracy"


__all__ = [
    "QuestionKind",
    "SessionStatus",
    "TestMode",
    "ResultMode",
    "InsightsStatus",
    "InsightsView",
]
