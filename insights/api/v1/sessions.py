"""
Session persistence endpoints.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from insights.core.db_error_handling import handle_db_error
from insights.core.error_responses import ErrorMessages, raise_bad_request
from insights.core.session_progress import (
    InvalidAssessmentError,
    QuestionNotFoundError,
    SessionNotFoundError,
    SessionTransitionError,
    complete_session,
    create_or_resume_session,
    get_session,
    record_assessment,
    record_response,
    save_progress,
    validate_test_mode,
)
from insights.core.test_structure import resolve_product_type
from insights.models import get_db
from insights.schemas.sessions import (
    AssessmentRecorded,
    AssessmentSubmission,
    CompleteSessionRequest,
    ProgressUpdateRequest,
    ResponseRecorded,
    ResponseSubmission,
    SessionCreateRequest,
    SessionCreateResponse,
    SessionResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)

# Domain errors mapped to HTTP responses by the application exception handlers
_DOMAIN_ERRORS = (
    SessionNotFoundError,
    QuestionNotFoundError,
    SessionTransitionError,
)


@router.post("/sessions", response_model=SessionCreateResponse)
def create_or_resume(
    request: SessionCreateRequest,
    db: Session = Depends(get_db),
):
    """
    Resume the open session for a user, product, mode and section, or
    create a new one.
    """
    try:
        validate_test_mode(request.test_mode)
    except ValueError:
        raise_bad_request(ErrorMessages.invalid_test_mode(request.test_mode))

    with handle_db_error(db, "start test session", passthrough=_DOMAIN_ERRORS):
        session, created = create_or_resume_session(
            db,
            request.user_id,
            resolve_product_type(request.product_id),
            request.test_mode,
            request.section_name,
            total_questions=request.total_questions,
            question_order=request.question_order,
            difficulty=request.difficulty,
        )
        return SessionCreateResponse(
            session=SessionResponse.model_validate(session),
            resumed=not created,
        )


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def read_session(session_id: int, db: Session = Depends(get_db)):
    """
    Get a session with its saved progress.
    """
    return SessionResponse.model_validate(get_session(db, session_id))


@router.put("/sessions/{session_id}/progress", response_model=SessionResponse)
def update_progress(
    session_id: int,
    request: ProgressUpdateRequest,
    db: Session = Depends(get_db),
):
    """
    Auto-save session progress. Rejected with 409 once the session is
    completed.
    """
    with handle_db_error(db, "save session progress", passthrough=_DOMAIN_ERRORS):
        session = save_progress(
            db,
            session_id,
            current_question_index=request.current_question_index,
            answers=request.answers,
            flagged_questions=request.flagged_questions,
            time_remaining_seconds=request.time_remaining_seconds,
        )
        return SessionResponse.model_validate(session)


@router.post("/sessions/{session_id}/complete", response_model=SessionResponse)
def complete(
    session_id: int,
    request: CompleteSessionRequest,
    db: Session = Depends(get_db),
):
    """
    Complete an in-progress session and store its scores.
    """
    with handle_db_error(db, "complete test session", passthrough=_DOMAIN_ERRORS):
        session = complete_session(
            db,
            session_id,
            total_time_seconds=request.total_time_seconds,
            correct_answers=request.correct_answers,
            total_questions=request.total_questions,
        )
        return SessionResponse.model_validate(session)


@router.post(
    "/sessions/{session_id}/responses",
    response_model=ResponseRecorded,
    status_code=status.HTTP_201_CREATED,
)
def submit_response(
    session_id: int,
    request: ResponseSubmission,
    db: Session = Depends(get_db),
):
    """
    Record (or replace) the answer to one question.
    """
    with handle_db_error(db, "record response", passthrough=_DOMAIN_ERRORS):
        response = record_response(
            db,
            session_id,
            request.question_id,
            request.user_answer,
            request.time_spent_seconds,
        )
        return ResponseRecorded.model_validate(response)


@router.post(
    "/assessments",
    response_model=AssessmentRecorded,
    status_code=status.HTTP_201_CREATED,
)
def submit_assessment(
    request: AssessmentSubmission,
    db: Session = Depends(get_db),
):
    """
    Record the grading result of an essay response.
    """
    with handle_db_error(
        db,
        "record writing assessment",
        passthrough=_DOMAIN_ERRORS + (InvalidAssessmentError,),
    ):
        assessment = record_assessment(
            db,
            request.session_id,
            request.question_id,
            request.earned_score,
            request.max_possible_score,
        )
        return AssessmentRecorded.model_validate(assessment)
