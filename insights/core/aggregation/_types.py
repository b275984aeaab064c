"""
Record and result types for performance aggregation.

Records (QuestionRecord, AttemptRecord, AssessmentRecord, SessionRecord) are
built at the store boundary and validate themselves on construction, so the
reconciliation and rollup code never sees a malformed row. Results are plain
dataclasses consumed by the API layer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from libs.domain_types import (
    InsightsStatus,
    QuestionKind,
    ResultMode,
    SessionStatus,
)


class MalformedRecordError(ValueError):
    """Raised when a stored row cannot be turned into a valid record."""


# =============================================================================
# Store records
# =============================================================================


@dataclass(frozen=True)
class QuestionRecord:
    """Catalog entry for a question."""

    id: int
    product_type: str
    test_mode: str
    section_name: str
    sub_skill_name: str
    max_points: int = 1
    question_kind: QuestionKind = QuestionKind.STANDARD
    correct_answer: Optional[str] = None
    difficulty: int = 1

    def __post_init__(self) -> None:
        if not self.section_name:
            raise MalformedRecordError(f"Question {self.id} has no section name")
        if not self.sub_skill_name:
            raise MalformedRecordError(f"Question {self.id} has no sub-skill name")
        if self.max_points is None or self.max_points < 1:
            raise MalformedRecordError(
                f"Question {self.id} has invalid max_points {self.max_points!r}"
            )
        if self.difficulty not in (1, 2, 3):
            raise MalformedRecordError(
                f"Question {self.id} has invalid difficulty {self.difficulty!r}"
            )

    @property
    def is_essay(self) -> bool:
        return self.question_kind == QuestionKind.ESSAY


@dataclass(frozen=True)
class AttemptRecord:
    """One answered question within a session."""

    question_id: int
    session_id: int
    user_id: int
    is_correct: bool
    user_answer: str = ""
    time_spent_seconds: Optional[int] = None

    def __post_init__(self) -> None:
        if self.time_spent_seconds is not None and self.time_spent_seconds < 0:
            raise MalformedRecordError(
                f"Attempt for question {self.question_id} has negative time spent"
            )


@dataclass(frozen=True)
class AssessmentRecord:
    """Graded essay result.

    earned_score is not range-checked here: out-of-range values are clamped
    and logged during reconciliation.
    """

    question_id: int
    session_id: int
    user_id: int
    earned_score: int
    max_possible_score: int

    def __post_init__(self) -> None:
        if self.max_possible_score is None or self.max_possible_score < 1:
            raise MalformedRecordError(
                f"Assessment for question {self.question_id} has invalid "
                f"max_possible_score {self.max_possible_score!r}"
            )
        if self.earned_score is None:
            raise MalformedRecordError(
                f"Assessment for question {self.question_id} has no earned score"
            )


@dataclass(frozen=True)
class SessionRecord:
    """Read-only view of a test session."""

    id: int
    user_id: int
    product_type: str
    test_mode: str
    status: SessionStatus
    section_name: Optional[str] = None
    total_questions: int = 0
    questions_answered: int = 0
    correct_answers: Optional[int] = None
    final_score: Optional[float] = None
    question_order: Tuple[int, ...] = ()
    difficulty: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.final_score is not None and not 0 <= self.final_score <= 100:
            raise MalformedRecordError(
                f"Session {self.id} has final_score {self.final_score!r} "
                "outside 0-100"
            )
        if self.total_questions < 0 or self.questions_answered < 0:
            raise MalformedRecordError(
                f"Session {self.id} has negative question counts"
            )

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def is_whole_test(self) -> bool:
        """True for legacy sessions that cover every section at once."""
        return self.section_name is None


# =============================================================================
# Derived values
# =============================================================================


@dataclass(frozen=True)
class ReconciledUnit:
    """Normalized points for one question (or one estimated group)."""

    section_name: str
    sub_skill_name: str
    earned_points: int
    max_points: int
    attempted: bool
    is_essay: bool = False
    # False while an essay is still waiting for its assessment
    is_final: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.earned_points <= self.max_points:
            raise ValueError(
                f"earned_points {self.earned_points} outside 0..{self.max_points}"
            )


@dataclass(frozen=True)
class GroupStat:
    """Score and accuracy for one section or sub-skill.

    The questions_* figures are point sums. They equal question counts
    when every question in the group is worth one point.
    """

    name: str
    score: int
    accuracy: int
    questions_correct: int
    questions_total: int
    questions_attempted: int
    section_name: Optional[str] = None


@dataclass
class AggregateResult:
    """Rolled-up statistics for a set of reconciled units."""

    overall_score: int
    overall_accuracy: int
    total_questions_correct: int
    total_questions: int
    total_questions_attempted: int
    section_breakdown: List[GroupStat] = field(default_factory=list)
    sub_skill_breakdown: List[GroupStat] = field(default_factory=list)
    mode: ResultMode = ResultMode.EXACT
    pending_assessments: int = 0

    def section_scores(self) -> Dict[str, int]:
        """Map of section name to score percentage."""
        return {stat.name: stat.score for stat in self.section_breakdown}


@dataclass(frozen=True)
class CompletenessResult:
    """Outcome of the section completeness check."""

    is_complete: bool
    expected_sections: Tuple[str, ...]
    completed_sections: Tuple[str, ...]
    missing_sections: Tuple[str, ...]


@dataclass
class ResolvedTest:
    """Insights for one diagnostic or numbered practice test.

    When status is not AVAILABLE, result is None. INCOMPLETE carries the
    sections still missing a completed session. gate_passed is True once
    every expected section has a completed session, even when none of them
    has scorable data.
    """

    status: InsightsStatus
    result: Optional[AggregateResult] = None
    test_number: Optional[int] = None
    missing_sections: Tuple[str, ...] = ()
    session_ids: Tuple[int, ...] = ()
    completed_at: Optional[datetime] = None
    gate_passed: bool = False

    @property
    def is_available(self) -> bool:
        return self.status == InsightsStatus.AVAILABLE


# =============================================================================
# Drill results
# =============================================================================


@dataclass
class DrillSubSkillSummary:
    """Drill performance on one sub-skill across all completed drills."""

    section_name: str
    sub_skill_name: str
    score: int
    accuracy: int
    questions_correct: int
    questions_total: int
    questions_attempted: int
    sessions_completed: int
    # None for levels never attempted
    accuracy_by_difficulty: Dict[int, Optional[int]] = field(default_factory=dict)
    recommended_level: int = 1


@dataclass
class DrillActivity:
    """One completed drill session."""

    session_id: int
    section_name: str
    sub_skill_name: str
    difficulty: int
    score: int
    accuracy: int
    questions_correct: int
    questions_total: int
    completed_at: Optional[datetime] = None


@dataclass
class DrillResults:
    """Drill insights for a user and product. Drills are never gated."""

    status: InsightsStatus
    overall: Optional[AggregateResult] = None
    sections: Dict[str, List[DrillSubSkillSummary]] = field(default_factory=dict)
    recent_activity: List[DrillActivity] = field(default_factory=list)
    sessions_completed: int = 0
