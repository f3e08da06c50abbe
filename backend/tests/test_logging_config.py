"""Tests for log context binding and processors."""

import pytest
import structlog

from app.logging_config import (
    SERVICE_NAME,
    add_service_context,
    bind_connection,
    bind_player,
    bind_request,
    drop_color_message,
)


@pytest.fixture(autouse=True)
def clean_contextvars():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


class TestProcessors:
    """Tests for the project processors."""

    def test_service_context_added(self):
        processor = add_service_context("production")

        event = processor(None, "info", {"event": "player_initialized"})

        assert event["service"] == SERVICE_NAME
        assert event["env"] == "production"

    def test_service_context_does_not_override(self):
        processor = add_service_context("production")

        event = processor(None, "info", {"event": "x", "env": "test"})

        assert event["env"] == "test"

    def test_color_message_dropped(self):
        event = drop_color_message(
            None, "info", {"event": "started", "color_message": "\x1b[32mstarted"}
        )

        assert event == {"event": "started"}


class TestContextBinding:
    """Tests for request, connection and player context."""

    def test_request_then_player(self):
        bind_request("req-1")
        bind_player("alice")

        assert structlog.contextvars.get_contextvars() == {
            "request_id": "req-1",
            "user_name": "alice",
        }

    def test_new_request_drops_previous_player(self):
        bind_request("req-1")
        bind_player("alice")

        bind_request("req-2")

        assert structlog.contextvars.get_contextvars() == {"request_id": "req-2"}

    def test_connection_context(self):
        bind_request("req-1")

        bind_connection("conn-1")
        bind_player("bob")

        assert structlog.contextvars.get_contextvars() == {
            "connection_id": "conn-1",
            "user_name": "bob",
        }

    def test_empty_player_not_bound(self):
        bind_request("req-1")
        bind_player("")

        assert "user_name" not in structlog.contextvars.get_contextvars()

    def test_context_merged_into_events(self):
        bind_request("req-1")
        bind_player("alice")

        event = structlog.contextvars.merge_contextvars(None, "info", {"event": "x"})

        assert event == {"event": "x", "request_id": "req-1", "user_name": "alice"}
