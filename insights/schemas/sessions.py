"""
Pydantic schemas for session persistence endpoints.
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from libs.domain_types import SessionStatus


class SessionCreateRequest(BaseModel):
    """Schema for creating or resuming a session."""

    user_id: int = Field(..., ge=1, description="User ID")
    product_id: str = Field(
        ..., min_length=1, description="Product id (e.g. vic-selective) or type name"
    )
    test_mode: str = Field(
        ..., description="diagnostic, drill, practice or practice_<n>"
    )
    section_name: Optional[str] = Field(
        None, description="Section; omit for a whole-test session"
    )
    total_questions: int = Field(0, ge=0, description="Questions in the session")
    question_order: Optional[List[int]] = Field(
        None, description="Question ids in delivery order"
    )
    difficulty: Optional[int] = Field(
        None, ge=1, le=3, description="Drill difficulty level"
    )

    @field_validator("section_name")
    @classmethod
    def strip_section_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None


class SessionResponse(BaseModel):
    """Schema for a test session."""

    id: int = Field(..., description="Session ID")
    user_id: int = Field(..., description="User ID")
    product_type: str = Field(..., description="Product type name")
    test_mode: str = Field(..., description="Test mode")
    section_name: Optional[str] = Field(None, description="Section name")
    status: SessionStatus = Field(..., description="Session status")
    total_questions: int = Field(0, description="Questions in the session")
    current_question_index: int = Field(0, description="Current question index")
    answers: Optional[Dict[str, Any]] = Field(None, description="Answers by question id")
    flagged_questions: Optional[List[int]] = Field(
        None, description="Flagged question ids"
    )
    time_remaining_seconds: Optional[int] = Field(
        None, description="Seconds left on the timer"
    )
    question_order: Optional[List[int]] = Field(
        None, description="Question ids in delivery order"
    )
    questions_answered: int = Field(0, description="Questions answered so far")
    difficulty: Optional[int] = Field(None, description="Drill difficulty")
    correct_answers: Optional[int] = Field(None, description="Correct answers")
    final_score: Optional[float] = Field(None, description="Final score percentage")
    section_scores: Optional[Dict[str, int]] = Field(
        None, description="Score percentage per section"
    )
    total_time_seconds: Optional[int] = Field(None, description="Time taken")
    started_at: datetime = Field(..., description="Session start timestamp")
    updated_at: datetime = Field(..., description="Last progress save")
    completed_at: Optional[datetime] = Field(
        None, description="Session completion timestamp"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class SessionCreateResponse(BaseModel):
    """Schema for the create-or-resume result."""

    session: SessionResponse = Field(..., description="Created or resumed session")
    resumed: bool = Field(..., description="True if an open session was resumed")


class ProgressUpdateRequest(BaseModel):
    """Schema for an auto-save of session progress."""

    current_question_index: int = Field(..., ge=0)
    answers: Dict[str, Any] = Field(default_factory=dict)
    flagged_questions: List[int] = Field(default_factory=list)
    time_remaining_seconds: Optional[int] = Field(None, ge=0)


class CompleteSessionRequest(BaseModel):
    """Schema for completing a session.

    correct_answers and total_questions are only used when the session has
    no recorded responses.
    """

    total_time_seconds: Optional[int] = Field(None, ge=0)
    correct_answers: Optional[int] = Field(None, ge=0)
    total_questions: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_counts(self) -> "CompleteSessionRequest":
        if (
            self.correct_answers is not None
            and self.total_questions is not None
            and self.correct_answers > self.total_questions
        ):
            raise ValueError("correct_answers cannot exceed total_questions")
        return self


class ResponseSubmission(BaseModel):
    """Schema for answering one question."""

    question_id: int = Field(..., ge=1)
    user_answer: str = Field(..., min_length=1, max_length=20000)
    time_spent_seconds: Optional[int] = Field(None, ge=0)


class ResponseRecorded(BaseModel):
    """Schema for a stored response."""

    id: int
    test_session_id: int
    question_id: int
    user_answer: str
    is_correct: bool
    time_spent_seconds: Optional[int] = None
    answered_at: datetime

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class AssessmentSubmission(BaseModel):
    """Schema for an essay grading result."""

    session_id: int = Field(..., ge=1)
    question_id: int = Field(..., ge=1)
    earned_score: int = Field(..., ge=0)
    max_possible_score: int = Field(..., ge=1)

    @model_validator(mode="after")
    def check_range(self) -> "AssessmentSubmission":
        if self.earned_score > self.max_possible_score:
            raise ValueError("earned_score cannot exceed max_possible_score")
        return self


class AssessmentRecorded(BaseModel):
    """Schema for a stored assessment."""

    id: int
    test_session_id: int
    question_id: int
    earned_score: int
    max_possible_score: int
    assessed_at: datetime

    class Config:
        """Pydantic configuration."""

        from_attributes = True
