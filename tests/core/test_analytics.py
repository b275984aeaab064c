"""
Tests for analytics event tracking.
"""
from unittest.mock import patch

from insights.core.analytics import AnalyticsTracker, EventType


class TestTrackEvent:
    def test_event_logged_with_structured_data(self):
        with patch("insights.core.analytics.logger") as mock_logger:
            AnalyticsTracker.track_event(
                EventType.SESSION_COMPLETED,
                user_id=5,
                properties={"session_id": 9},
            )

        message = mock_logger.info.call_args[0][0]
        extra = mock_logger.info.call_args[1]["extra"]
        assert message == "Analytics Event: session.completed"
        assert extra["user_id"] == 5
        assert extra["event_data"]["event"] == "session.completed"
        assert extra["event_data"]["properties"] == {"session_id": 9}
        assert "timestamp" in extra["event_data"]

    def test_missing_properties_default_to_empty(self):
        with patch("insights.core.analytics.logger") as mock_logger:
            AnalyticsTracker.track_event(EventType.SESSION_RESUMED)

        extra = mock_logger.info.call_args[1]["extra"]
        assert extra["event_data"]["properties"] == {}
        assert extra["user_id"] is None


class TestHelpers:
    def test_stale_write_rejected(self):
        with patch.object(AnalyticsTracker, "track_event") as mock_track:
            AnalyticsTracker.track_stale_write_rejected(3, 14, "save progress for")

        mock_track.assert_called_once_with(
            EventType.SESSION_STALE_WRITE_REJECTED,
            user_id=3,
            properties={"session_id": 14, "operation": "save progress for"},
        )

    def test_insights_outcome_merges_properties(self):
        with patch.object(AnalyticsTracker, "track_event") as mock_track:
            AnalyticsTracker.track_insights_outcome(
                EventType.INSIGHTS_INCOMPLETE,
                1,
                "Year 5 NAPLAN",
                "diagnostic",
                missing_sections=["Writing"],
            )

        properties = mock_track.call_args[1]["properties"]
        assert properties == {
            "product_type": "Year 5 NAPLAN",
            "test": "diagnostic",
            "missing_sections": ["Writing"],
        }

    def test_api_error(self):
        with patch.object(AnalyticsTracker, "track_event") as mock_track:
            AnalyticsTracker.track_api_error("GET", "/v1/health", "ValueError", "bad")

        assert mock_track.call_args[0][0] == EventType.API_ERROR
