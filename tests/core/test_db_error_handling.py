"""
Tests for db_error_handling module.

Covers storage_operation (read paths in the aggregation core) and the
handle_db_error context manager used by write endpoints.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException, status
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from insights.core.db_error_handling import (
    DatabaseOperationError,
    handle_db_error,
    storage_operation,
)
from insights.core.session_progress import SessionTransitionError
from libs.domain_types import SessionStatus


def create_mock_db():
    """Create a MagicMock that passes isinstance(mock, Session) check."""
    return MagicMock(spec=Session)


class TestDatabaseOperationError:
    """Tests for the DatabaseOperationError exception class."""

    def test_basic_initialization(self):
        original = ValueError("connection reset")
        error = DatabaseOperationError(
            operation_name="load responses",
            original_error=original,
        )

        assert error.operation_name == "load responses"
        assert error.original_error is original
        assert error.message == "Failed to load responses: connection reset"

    def test_custom_message(self):
        error = DatabaseOperationError(
            operation_name="load catalog",
            original_error=ValueError("db error"),
            message="Catalog unavailable",
        )

        assert str(error) == "Catalog unavailable"


class TestStorageOperation:
    """Tests for the storage_operation context manager."""

    def test_passes_through_on_success(self):
        result = []

        with storage_operation("load sessions"):
            result.append("loaded")

        assert result == ["loaded"]

    def test_sqlalchemy_error_becomes_database_operation_error(self):
        original = OperationalError("SELECT 1", {}, Exception("server closed"))

        with pytest.raises(DatabaseOperationError) as exc_info:
            with storage_operation("load sessions"):
                raise original

        assert exc_info.value.operation_name == "load sessions"
        assert exc_info.value.original_error is original
        assert exc_info.value.__cause__ is original

    def test_other_errors_are_not_wrapped(self):
        with pytest.raises(KeyError):
            with storage_operation("load sessions"):
                raise KeyError("missing")

    def test_failure_is_logged(self):
        with patch("insights.core.db_error_handling.logger") as mock_logger:
            with pytest.raises(DatabaseOperationError):
                with storage_operation("load writing assessments"):
                    raise SQLAlchemyError("boom")

        assert "load writing assessments" in mock_logger.error.call_args[0][0]


class TestHandleDbErrorContextManager:
    """Tests for the handle_db_error context manager."""

    def test_success_case_no_exception(self):
        """Test that code executes normally when no exception occurs."""
        db = create_mock_db()
        result = []

        with handle_db_error(db, "save session progress"):
            result.append("executed")

        assert result == ["executed"]
        db.rollback.assert_not_called()

    def test_rollback_and_503_on_exception(self):
        db = create_mock_db()

        with pytest.raises(HTTPException) as exc_info:
            with handle_db_error(db, "save session progress"):
                raise SQLAlchemyError("deadlock")

        db.rollback.assert_called_once()
        assert exc_info.value.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert (
            exc_info.value.detail
            == "Failed to save session progress. Please try again later."
        )

    def test_http_exception_reraised_unchanged(self):
        db = create_mock_db()

        with pytest.raises(HTTPException) as exc_info:
            with handle_db_error(db, "record response"):
                raise HTTPException(status_code=400, detail="bad input")

        assert exc_info.value.status_code == 400
        db.rollback.assert_not_called()

    def test_http_exception_converted_when_not_reraised(self):
        db = create_mock_db()

        with pytest.raises(HTTPException) as exc_info:
            with handle_db_error(db, "record response", reraise_http_exceptions=False):
                raise HTTPException(status_code=400, detail="bad input")

        assert exc_info.value.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        db.rollback.assert_called_once()

    def test_passthrough_exceptions_reraised_after_rollback(self):
        db = create_mock_db()
        error = SessionTransitionError(7, SessionStatus.COMPLETED, "complete")

        with pytest.raises(SessionTransitionError) as exc_info:
            with handle_db_error(db, "complete session", passthrough=(SessionTransitionError,)):
                raise error

        assert exc_info.value is error
        db.rollback.assert_called_once()

    def test_custom_status_and_template(self):
        db = create_mock_db()

        with pytest.raises(HTTPException) as exc_info:
            with handle_db_error(
                db,
                "record assessment",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail_template="Could not {operation_name}: {error}",
            ):
                raise ValueError("constraint failed")

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Could not record assessment: constraint failed"

    def test_log_level_is_respected(self):
        db = create_mock_db()

        with patch("insights.core.db_error_handling.logger") as mock_logger:
            with pytest.raises(HTTPException):
                with handle_db_error(db, "start session", log_level=logging.WARNING):
                    raise SQLAlchemyError("boom")

        assert mock_logger.log.call_args[0][0] == logging.WARNING
