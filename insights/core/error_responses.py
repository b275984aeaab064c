"""
Standardized error response messages and builders.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include relevant IDs in parentheses when helpful for debugging: "(ID: 123)"
- Use "Please try again later." for transient server errors

Usage:
    from insights.core.error_responses import ErrorMessages, raise_bad_request

    if test_mode is None:
        raise_bad_request(ErrorMessages.invalid_test_mode(raw_mode))
"""

from typing import NoReturn

from fastapi import HTTPException, status


class ErrorMessages:
    """Centralized error message constants and templates."""

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    SESSION_NOT_FOUND = "Test session not found."
    QUESTION_NOT_FOUND = "Question not found."

    # ==========================================================================
    # Server Errors (503)
    # ==========================================================================
    STORAGE_UNAVAILABLE = "Storage is temporarily unavailable. Please try again later."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def session_transition_rejected(session_id: int, status: str) -> str:
        """Message for a write against a session that cannot accept it."""
        return (
            f"Test session (ID: {session_id}) is {status} and cannot be modified. "
            "Start a new session to retake this section."
        )

    @staticmethod
    def invalid_test_mode(test_mode: str) -> str:
        return (
            f"Unknown test mode '{test_mode}'. "
            "Use diagnostic, drill, practice or practice_<n>."
        )

    @staticmethod
    def practice_test_out_of_range(test_number: int, max_tests: int) -> str:
        return f"Practice test {test_number} does not exist (1-{max_tests})."


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request exception.

    Args:
        detail: User-facing error message
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )

