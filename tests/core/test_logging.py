"""Tests for log masking and request context propagation."""

from src.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_moderator_id,
    set_moderator_id,
)
from src.core.logging import add_context_processor, filter_sensitive_data


class TestFilterSensitiveData:
    """Tests for the masking processor."""

    def test_masks_reporter_email(self) -> None:
        event = filter_sensitive_data(
            None, "info", {"event": "report_filed", "reporter_email": "eve@example.com"}
        )

        assert event["event"] == "report_filed"
        assert event["reporter_email"].startswith("ev")
        assert event["reporter_email"].endswith("om")
        assert "example" not in event["reporter_email"]

    def test_short_values_fully_masked(self) -> None:
        event = filter_sensitive_data(None, "info", {"token": "abc"})

        assert event["token"] == "***"

    def test_nested_dicts_masked(self) -> None:
        event = filter_sensitive_data(
            None, "info", {"headers": {"authorization": "Bearer secret-value"}}
        )

        assert "secret-value" not in event["headers"]["authorization"]

    def test_other_values_untouched(self) -> None:
        event = filter_sensitive_data(
            None, "info", {"comment_id": "c-1", "count": 5, "email_count": 3}
        )

        assert event == {"comment_id": "c-1", "count": 5, "email_count": 3}


class TestRequestContext:
    """Tests for contextvars-backed request context."""

    def setup_method(self) -> None:
        clear_context()

    def test_context_manager_scopes_values(self) -> None:
        with RequestContext(request_id="req-1", moderator_id="mod-1"):
            assert get_context() == {"request_id": "req-1", "moderator_id": "mod-1"}

        assert get_context() == {}

    def test_generates_request_id(self) -> None:
        with RequestContext():
            assert get_context()["request_id"]

    def test_context_added_to_log_events(self) -> None:
        set_moderator_id("mod-9")

        event = add_context_processor(None, "info", {"event": "comment_deleted"})

        assert event["moderator_id"] == "mod-9"
        clear_context()
        assert get_moderator_id() is None
