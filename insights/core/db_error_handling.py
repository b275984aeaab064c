"""
Database error handling utilities.

Two entry points:

* ``storage_operation`` wraps read paths outside the HTTP layer (the
  aggregation data loader). SQLAlchemy errors become DatabaseOperationError,
  which the application maps to a retryable 503 response.
* ``handle_db_error`` wraps write endpoints: it rolls the session back, logs
  the failure and raises an HTTPException.

Usage:
    from insights.core.db_error_handling import handle_db_error

    with handle_db_error(db, "save session progress"):
        session = save_progress(db, session_id, ...)
        return SessionResponse.model_validate(session)
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional, Tuple, Type

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session


logger = logging.getLogger(__name__)


class DatabaseOperationError(Exception):
    """Exception raised when a database operation fails.

    Used in non-HTTP code (the aggregation core, services) where
    HTTPException is not appropriate. It signals a retryable storage failure;
    callers are expected to retry the whole request rather than the core
    retrying silently.

    Attributes:
        operation_name: Human-readable name of the operation that failed
        original_error: The underlying exception that caused the failure
        message: The formatted error message
    """

    def __init__(
        self,
        operation_name: str,
        original_error: Exception,
        message: Optional[str] = None,
    ):
        self.operation_name = operation_name
        self.original_error = original_error
        self.message = message or f"Failed to {operation_name}: {str(original_error)}"
        super().__init__(self.message)


@contextmanager
def storage_operation(operation_name: str) -> Generator[None, None, None]:
    """Convert SQLAlchemy errors raised inside the block to DatabaseOperationError.

    Args:
        operation_name: Human-readable name of the operation, e.g. "load responses"

    Raises:
        DatabaseOperationError: If the wrapped code raises SQLAlchemyError
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Database error during {operation_name}: {e}", exc_info=True)
        raise DatabaseOperationError(operation_name, e) from e


@contextmanager
def handle_db_error(
    db: Session,
    operation_name: str,
    *,
    reraise_http_exceptions: bool = True,
    passthrough: Tuple[Type[Exception], ...] = (),
    status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE,
    detail_template: Optional[str] = None,
    log_level: int = logging.ERROR,
) -> Generator[None, None, None]:
    """Context manager for handling database errors consistently.

    On exception the session is rolled back, the error logged and an
    HTTPException raised.

    Args:
        db: The SQLAlchemy database session to rollback on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "save session progress").
        reraise_http_exceptions: If True (default), HTTPExceptions raised within
            the context are re-raised without modification.
        passthrough: Domain exception types that are re-raised unchanged after
            rollback so application exception handlers can map them.
        status_code: HTTP status code for the raised HTTPException. Defaults to
            503 since storage failures are retryable.
        detail_template: Optional template for the error detail. May contain
            {operation_name} and {error}. Defaults to
            "Failed to {operation_name}. Please try again later."
        log_level: Logging level for error messages. Defaults to logging.ERROR.

    Raises:
        HTTPException: On any other exception, with the session rolled back.

    Note:
        Return the endpoint response inside the block so serialization
        failures are logged with the operation context.
    """
    try:
        yield
    except HTTPException as e:
        if reraise_http_exceptions:
            raise
        db.rollback()
        detail = _format_detail(detail_template, operation_name, e.detail)
        logger.log(
            log_level,
            f"Database error during {operation_name}: {e.detail}",
            exc_info=True,
        )
        raise HTTPException(status_code=status_code, detail=detail)
    except Exception as e:
        db.rollback()
        if passthrough and isinstance(e, passthrough):
            raise
        detail = _format_detail(detail_template, operation_name, str(e))
        logger.log(
            log_level,
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )
        raise HTTPException(status_code=status_code, detail=detail)


def _format_detail(template: Optional[str], operation_name: str, error: str) -> str:
    if template:
        return template.format(operation_name=operation_name, error=error)
    return f"Failed to {operation_name}. Please try again later."
