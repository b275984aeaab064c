"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from insights.api.v1.api import api_router
from insights.core.analytics import AnalyticsTracker
from insights.core.config import settings
from insights.core.db_error_handling import DatabaseOperationError
from insights.core.error_responses import ErrorMessages
from insights.core.logging_config import setup_logging
from insights.core.session_progress import (
    InvalidAssessmentError,
    QuestionNotFoundError,
    SessionNotFoundError,
    SessionTransitionError,
)
from insights.middleware import RequestLoggingMiddleware

setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    Creates tables on startup outside production, where the schema is
    managed by the deployment.
    """
    if settings.ENV != "production":
        from insights.models import Base, engine

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")

    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started ({settings.ENV})")
    yield
    logger.info("Application shutting down")


tags_metadata = [
    {
        "name": "health",
        "description": "Health check endpoint for monitoring application status",
    },
    {
        "name": "insights",
        "description": "Diagnostic, practice test and drill performance insights",
    },
    {
        "name": "sessions",
        "description": "Test session persistence, answers and essay assessments",
    },
]


def _error_response(
    request: Request, status_code: int, detail: str, exc: Exception
) -> JSONResponse:
    AnalyticsTracker.track_api_error(
        method=request.method,
        path=str(request.url.path),
        error_type=exc.__class__.__name__,
        error_message=detail,
    )
    return JSONResponse(status_code=status_code, content={"detail": detail})


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "Performance insights for test-preparation products.\n\n"
            "Reduces raw attempts, essay assessments and multi-section sessions "
            "to consistent score, accuracy and sub-skill breakdowns."
        ),
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.exception_handler(DatabaseOperationError)
    async def storage_error_handler(request: Request, exc: DatabaseOperationError):
        """Storage failures are retryable."""
        logger.error(f"Storage failure during {exc.operation_name}")
        return _error_response(
            request,
            status.HTTP_503_SERVICE_UNAVAILABLE,
            ErrorMessages.STORAGE_UNAVAILABLE,
            exc,
        )

    @app.exception_handler(SessionNotFoundError)
    async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
        return _error_response(
            request, status.HTTP_404_NOT_FOUND, ErrorMessages.SESSION_NOT_FOUND, exc
        )

    @app.exception_handler(QuestionNotFoundError)
    async def question_not_found_handler(request: Request, exc: QuestionNotFoundError):
        return _error_response(
            request, status.HTTP_404_NOT_FOUND, ErrorMessages.QUESTION_NOT_FOUND, exc
        )

    @app.exception_handler(SessionTransitionError)
    async def transition_error_handler(request: Request, exc: SessionTransitionError):
        return _error_response(
            request,
            status.HTTP_409_CONFLICT,
            ErrorMessages.session_transition_rejected(exc.session_id, exc.status.value),
            exc,
        )

    @app.exception_handler(InvalidAssessmentError)
    async def invalid_assessment_handler(request: Request, exc: InvalidAssessmentError):
        return _error_response(request, status.HTTP_400_BAD_REQUEST, str(exc), exc)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions with a traceable error id.
        """
        error_id = str(uuid.uuid4())
        logger.exception(f"Unhandled exception [error_id={error_id}]: {exc}")
        AnalyticsTracker.track_api_error(
            method=request.method,
            path=str(request.url.path),
            error_type=exc.__class__.__name__,
            error_message=str(exc),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "error_id": error_id},
        )

    return app


app = create_application()


@app.get("/")
def root():
    """
    Root endpoint.
    """
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs",
    }
