"""
Analytics and event tracking for session lifecycle and insight outcomes.
"""
import logging
from enum import Enum
from typing import Any, Dict, Optional

from insights.core.config import settings
from insights.core.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Analytics event types."""

    # Session events
    SESSION_CREATED = "session.created"
    SESSION_RESUMED = "session.resumed"
    SESSION_PROGRESS_SAVED = "session.progress_saved"
    SESSION_COMPLETED = "session.completed"
    SESSION_STALE_WRITE_REJECTED = "session.stale_write_rejected"

    # Answer events
    RESPONSE_RECORDED = "response.recorded"
    ASSESSMENT_RECORDED = "assessment.recorded"

    # Insight events
    INSIGHTS_INCOMPLETE = "insights.incomplete"
    INSIGHTS_ESTIMATED = "insights.estimated"

    # API events
    API_ERROR = "api.error"


class AnalyticsTracker:
    """
    Analytics event tracker.

    Events are emitted as structured log records; the JSON formatter puts
    event_data on its own field so log pipelines can route them.
    """

    @staticmethod
    def track_event(
        event_type: EventType,
        user_id: Optional[int] = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Track an analytics event.

        Args:
            event_type: Type of event being tracked
            user_id: Optional user ID associated with the event
            properties: Optional dictionary of event properties

        Example:
            AnalyticsTracker.track_event(
                EventType.SESSION_COMPLETED,
                user_id=123,
                properties={"session_id": 9, "final_score": 72},
            )
        """
        event_data = {
            "event": event_type.value,
            "timestamp": utc_now().isoformat(),
            "user_id": user_id,
            "properties": properties or {},
            "environment": settings.ENV,
        }

        logger.info(
            f"Analytics Event: {event_type.value}",
            extra={
                "event_data": event_data,
                "user_id": user_id,
            },
        )

    @staticmethod
    def track_session_created(
        user_id: int, session_id: int, product_type: str, test_mode: str
    ) -> None:
        AnalyticsTracker.track_event(
            EventType.SESSION_CREATED,
            user_id=user_id,
            properties={
                "session_id": session_id,
                "product_type": product_type,
                "test_mode": test_mode,
            },
        )

    @staticmethod
    def track_session_resumed(user_id: int, session_id: int) -> None:
        AnalyticsTracker.track_event(
            EventType.SESSION_RESUMED,
            user_id=user_id,
            properties={"session_id": session_id},
        )

    @staticmethod
    def track_session_completed(
        user_id: int,
        session_id: int,
        final_score: Optional[float],
        total_time_seconds: Optional[int],
    ) -> None:
        AnalyticsTracker.track_event(
            EventType.SESSION_COMPLETED,
            user_id=user_id,
            properties={
                "session_id": session_id,
                "final_score": final_score,
                "total_time_seconds": total_time_seconds,
            },
        )

    @staticmethod
    def track_stale_write_rejected(
        user_id: Optional[int], session_id: int, operation: str
    ) -> None:
        """Track a write that arrived after the session was completed."""
        AnalyticsTracker.track_event(
            EventType.SESSION_STALE_WRITE_REJECTED,
            user_id=user_id,
            properties={"session_id": session_id, "operation": operation},
        )

    @staticmethod
    def track_api_error(
        method: str,
        path: str,
        error_type: str,
        error_message: str,
        user_id: Optional[int] = None,
    ) -> None:
        """Track API error."""
        AnalyticsTracker.track_event(
            EventType.API_ERROR,
            user_id=user_id,
            properties={
                "method": method,
                "path": path,
                "error_type": error_type,
                "error_message": error_message,
            },
        )

    @staticmethod
    def track_insights_outcome(
        event_type: EventType,
        user_id: int,
        product_type: str,
        test_label: str,
        **properties: Any,
    ) -> None:
        """Track an incomplete or estimated insights result."""
        AnalyticsTracker.track_event(
            event_type,
            user_id=user_id,
            properties={
                "product_type": product_type,
                "test": test_label,
                **properties,
            },
        )
