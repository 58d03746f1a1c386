"""Tests for request context and log processors."""

from uuid import uuid4

from coursetrack.core.context import (
    clear_context,
    get_context,
    get_request_id,
    set_caller,
    set_request_id,
    set_trace_id,
)
from coursetrack.core.logging import add_request_context, mask_sensitive_data
from coursetrack.core.middleware import parse_traceparent


class TestContext:
    def setup_method(self) -> None:
        clear_context()

    def teardown_method(self) -> None:
        clear_context()

    def test_set_request_id_generates_one(self) -> None:
        rid = set_request_id()
        assert rid
        assert get_request_id() == rid

    def test_set_request_id_keeps_incoming(self) -> None:
        assert set_request_id("abc-123") == "abc-123"

    def test_context_contains_caller(self) -> None:
        caller_id = uuid4()
        set_request_id("req-1")
        set_caller(caller_id, "student")

        assert get_context() == {
            "request_id": "req-1",
            "caller_id": str(caller_id),
            "caller_role": "student",
        }

    def test_clear_context(self) -> None:
        set_request_id("req-1")
        set_trace_id("trace-1")
        clear_context()
        assert get_context() == {}

    def test_add_request_context_does_not_override(self) -> None:
        set_request_id("req-1")
        event = add_request_context(None, "info", {"request_id": "explicit"})
        assert event["request_id"] == "explicit"


class TestMasking:
    def test_password_is_masked(self) -> None:
        event = mask_sensitive_data(None, "info", {"password": "secret123"})
        assert event["password"] == "se*****23"

    def test_short_token_fully_masked(self) -> None:
        event = mask_sensitive_data(None, "info", {"token": "abc"})
        assert event["token"] == "***"

    def test_nested_values_are_masked(self) -> None:
        event = mask_sensitive_data(
            None, "info", {"headers": {"authorization": "Bearer xyz.abc"}}
        )
        assert event["headers"]["authorization"].startswith("Be")
        assert "xyz" not in event["headers"]["authorization"]

    def test_other_keys_untouched(self) -> None:
        event = mask_sensitive_data(None, "info", {"course_id": "c-1"})
        assert event == {"course_id": "c-1"}


def test_parse_traceparent() -> None:
    header = "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01"
    assert parse_traceparent(header) == "4bf92f3577b34da6a3ce929d0e0e4736"
    assert parse_traceparent(None) is None
