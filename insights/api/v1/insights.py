"""
Insights endpoints: diagnostic, practice tests, drills and overview.

Incomplete tests are returned with HTTP 200 and status "incomplete"; they
are a normal state, not an error. Storage failures surface as 503 through
the DatabaseOperationError handler.
"""
import logging
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from libs.domain_types import InsightsView, TestMode

from insights.core.config import settings
from insights.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
)
from insights.core.results import (
    get_diagnostic_results,
    get_drill_results,
    get_overall_performance,
    get_practice_test_result,
    get_practice_test_results,
)
from insights.core.session_progress import get_section_progress, validate_test_mode
from insights.core.test_structure import resolve_product_type
from insights.models import get_db
from insights.schemas.insights import (
    DiagnosticResultsResponse,
    DrillResultsResponse,
    GroupStatSchema,
    OverallPerformanceResponse,
    PracticeTestsResponse,
    SectionProgressResponse,
    SectionProgressSchema,
    TestResultSchema,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/{product_id}/overview", response_model=OverallPerformanceResponse)
def get_overview(
    user_id: int = Path(..., ge=1),
    product_id: str = Path(...),
    db: Session = Depends(get_db),
):
    """
    Dashboard summary for a user's product.
    """
    product_type = resolve_product_type(product_id)
    overview = get_overall_performance(db, user_id, product_type)
    return OverallPerformanceResponse.model_validate(overview, from_attributes=True)


@router.get("/{product_id}/diagnostic", response_model=DiagnosticResultsResponse)
def get_diagnostic(
    user_id: int = Path(..., ge=1),
    product_id: str = Path(...),
    view: InsightsView = Query(InsightsView.SCORE),
    db: Session = Depends(get_db),
):
    """
    Diagnostic results.

    Returns status "incomplete" with the missing sections until every
    section of the diagnostic has been completed.
    """
    product_type = resolve_product_type(product_id)
    insights = get_diagnostic_results(db, user_id, product_type, view=view)
    test = TestResultSchema.model_validate(insights.test, from_attributes=True)
    return DiagnosticResultsResponse(
        **test.model_dump(),
        view=view,
        strengths=[
            GroupStatSchema.model_validate(stat, from_attributes=True)
            for stat in insights.strengths
        ],
        weaknesses=[
            GroupStatSchema.model_validate(stat, from_attributes=True)
            for stat in insights.weaknesses
        ],
    )


@router.get(
    "/{product_id}/diagnostic/progress", response_model=SectionProgressResponse
)
def get_diagnostic_progress(
    user_id: int = Path(..., ge=1),
    product_id: str = Path(...),
    test_mode: str = Query(TestMode.DIAGNOSTIC.value),
    db: Session = Depends(get_db),
):
    """
    Per-section progress for the diagnostic (or another test mode).
    """
    try:
        validate_test_mode(test_mode)
    except ValueError:
        raise_bad_request(ErrorMessages.invalid_test_mode(test_mode))

    product_type = resolve_product_type(product_id)
    sections = get_section_progress(db, user_id, product_type, test_mode)
    return SectionProgressResponse(
        test_mode=test_mode,
        sections=[
            SectionProgressSchema.model_validate(section, from_attributes=True)
            for section in sections
        ],
    )


@router.get("/{product_id}/practice-tests", response_model=PracticeTestsResponse)
def list_practice_tests(
    user_id: int = Path(..., ge=1),
    product_id: str = Path(...),
    db: Session = Depends(get_db),
):
    """
    Every numbered practice test with progress and section trends.
    """
    product_type = resolve_product_type(product_id)
    insights = get_practice_test_results(db, user_id, product_type)
    return PracticeTestsResponse.model_validate(insights, from_attributes=True)


@router.get(
    "/{product_id}/practice-tests/{test_number}", response_model=TestResultSchema
)
def get_practice_test(
    user_id: int = Path(..., ge=1),
    product_id: str = Path(...),
    test_number: int = Path(...),
    db: Session = Depends(get_db),
):
    """
    One numbered practice test. The result may be estimated for legacy data.
    """
    if not 1 <= test_number <= settings.PRACTICE_TEST_COUNT:
        raise_bad_request(
            ErrorMessages.practice_test_out_of_range(
                test_number, settings.PRACTICE_TEST_COUNT
            )
        )
    product_type = resolve_product_type(product_id)
    test = get_practice_test_result(db, user_id, product_type, test_number)
    return TestResultSchema.model_validate(test, from_attributes=True)


@router.get("/{product_id}/drills", response_model=DrillResultsResponse)
def get_drills(
    user_id: int = Path(..., ge=1),
    product_id: str = Path(...),
    db: Session = Depends(get_db),
):
    """
    Drill results grouped by section and sub-skill.
    """
    product_type = resolve_product_type(product_id)
    drills = get_drill_results(db, user_id, product_type)
    return DrillResultsResponse.model_validate(drills, from_attributes=True)
