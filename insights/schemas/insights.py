"""
Pydantic schemas for insights endpoints.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime

from libs.domain_types import InsightsStatus, InsightsView, ResultMode, SessionStatus


class GroupStatSchema(BaseModel):
    """Score and accuracy for a section or sub-skill."""

    name: str = Field(..., description="Section or sub-skill name")
    section_name: Optional[str] = Field(
        None, description="Owning section (sub-skills only)"
    )
    score: int = Field(..., ge=0, le=100, description="Earned / total possible (%)")
    accuracy: int = Field(..., ge=0, le=100, description="Earned / attempted (%)")
    questions_correct: int = Field(..., description="Points earned")
    questions_total: int = Field(..., description="Points possible")
    questions_attempted: int = Field(..., description="Points attempted")

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class AggregateResultSchema(BaseModel):
    """Rolled-up result of a test."""

    overall_score: int = Field(..., ge=0, le=100)
    overall_accuracy: int = Field(
        ...,
        ge=0,
        le=100,
        description="Uses the total-possible denominator, unlike section accuracy",
    )
    total_questions_correct: int
    total_questions: int
    total_questions_attempted: int
    section_breakdown: List[GroupStatSchema] = Field(default_factory=list)
    sub_skill_breakdown: List[GroupStatSchema] = Field(default_factory=list)
    mode: ResultMode = Field(..., description="exact or estimated")
    pending_assessments: int = Field(
        0, description="Essays still scored by placeholder"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class TestResultSchema(BaseModel):
    """A diagnostic or numbered practice test result."""

    status: InsightsStatus = Field(
        ..., description="available, incomplete or not_started"
    )
    test_number: Optional[int] = Field(None, description="Practice test number")
    result: Optional[AggregateResultSchema] = Field(
        None, description="Present only when status is available"
    )
    missing_sections: List[str] = Field(
        default_factory=list, description="Sections without a completed session"
    )
    session_ids: List[int] = Field(default_factory=list)
    completed_at: Optional[datetime] = None

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class DiagnosticResultsResponse(TestResultSchema):
    """Diagnostic result with strengths and weaknesses."""

    view: InsightsView = Field(InsightsView.SCORE, description="Ranking view")
    strengths: List[GroupStatSchema] = Field(default_factory=list)
    weaknesses: List[GroupStatSchema] = Field(default_factory=list)


class PracticeTestPointSchema(BaseModel):
    """One point on the practice progress chart."""

    test_number: int
    score: int
    accuracy: int
    mode: ResultMode
    completed_at: Optional[datetime] = None

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class SectionTrendSchema(BaseModel):
    """Section statistics across practice tests."""

    section_name: str
    average_score: int
    best_score: int
    improvement_trend: float = Field(
        ..., description="Least-squares slope of score per test"
    )
    tests_counted: int

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class PracticeTestsResponse(BaseModel):
    """All practice tests with trends."""

    tests: List[TestResultSchema]
    progress_over_time: List[PracticeTestPointSchema] = Field(default_factory=list)
    section_analysis: Dict[str, SectionTrendSchema] = Field(default_factory=dict)

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class DrillSubSkillSchema(BaseModel):
    """Drill performance on one sub-skill."""

    section_name: str
    sub_skill_name: str
    score: int
    accuracy: int
    questions_correct: int
    questions_total: int
    questions_attempted: int
    sessions_completed: int
    accuracy_by_difficulty: Dict[int, Optional[int]] = Field(
        default_factory=dict, description="Accuracy per level, null if unattempted"
    )
    recommended_level: int = Field(..., ge=1, le=3)

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class DrillActivitySchema(BaseModel):
    """A recent drill session."""

    session_id: int
    section_name: str
    sub_skill_name: str
    difficulty: int
    score: int
    accuracy: int
    questions_correct: int
    questions_total: int
    completed_at: Optional[datetime] = None

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class DrillResultsResponse(BaseModel):
    """Drill insights."""

    status: InsightsStatus
    overall: Optional[AggregateResultSchema] = None
    sections: Dict[str, List[DrillSubSkillSchema]] = Field(default_factory=dict)
    recent_activity: List[DrillActivitySchema] = Field(default_factory=list)
    sessions_completed: int = 0

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class OverallPerformanceResponse(BaseModel):
    """Dashboard summary for a product."""

    questions_attempted: int
    questions_correct: int
    overall_accuracy: int = Field(..., ge=0, le=100)
    study_time_hours: float = Field(..., description="Rounded to the nearest 0.5")
    average_test_score: Optional[int] = None
    diagnostic_completed: bool
    practice_tests_completed: List[int] = Field(default_factory=list)

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class SectionProgressSchema(BaseModel):
    """Progress of one section."""

    section_name: str
    status: SessionStatus
    questions_completed: int = 0
    total_questions: int = 0
    session_id: Optional[int] = None
    updated_at: Optional[datetime] = None

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class SectionProgressResponse(BaseModel):
    """Progress of every section of a test mode."""

    test_mode: str
    sections: List[SectionProgressSchema]
