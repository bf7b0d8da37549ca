"""
Tests for observability/logging.py - structlog processors and the
container logger.
"""
import structlog
from structlog.testing import capture_logs

from observability.logging import (
    ContainerLogger,
    LogContext,
    add_service_context,
    add_trace_context,
    add_timestamp,
)


class TestProcessors:
    """Tests for the custom structlog processors."""

    def test_trace_context_without_span(self):
        event = add_trace_context(None, "info", {"event": "x"})

        assert "trace_id" not in event

    def test_trace_context_with_span(self, tracer):
        with tracer.start_as_current_span("op"):
            event = add_trace_context(None, "info", {"event": "x"})

        assert len(event["trace_id"]) == 32
        assert len(event["span_id"]) == 16

    def test_service_context(self):
        processor = add_service_context("orders", "staging")

        event = processor(None, "info", {"event": "x"})

        assert event["service"] == "orders"
        assert event["environment"] == "staging"

    def test_timestamp(self):
        event = add_timestamp(None, "info", {"event": "x"})

        assert event["timestamp"].endswith("+00:00")


class TestLogContext:
    """Tests for LogContext."""

    def test_binds_and_unbinds(self):
        with LogContext(provider="mail"):
            assert structlog.contextvars.get_contextvars()["provider"] == "mail"

        assert "provider" not in structlog.contextvars.get_contextvars()

    def test_nested_context_restores_outer_value(self):
        with LogContext(provider="mail"):
            with LogContext(provider="queue"):
                assert structlog.contextvars.get_contextvars()["provider"] == "queue"

            assert structlog.contextvars.get_contextvars()["provider"] == "mail"

        assert "provider" not in structlog.contextvars.get_contextvars()


class TestContainerLogger:
    """Tests for ContainerLogger events."""

    def test_service_bound_event(self):
        logger = ContainerLogger()

        with capture_logs() as logs:
            logger.service_bound("db", shared=True)

        assert logs == [
            {
                "event": "Service bound",
                "service": "db",
                "shared": True,
                "component": "container",
                "log_level": "debug",
            }
        ]

    def test_delivery_failed_event(self):
        logger = ContainerLogger()

        with capture_logs() as logs:
            logger.delivery_failed(("a", "b"), RuntimeError("boom"))

        assert logs[0]["log_level"] == "error"
        assert logs[0]["deps"] == ["a", "b"]
        assert logs[0]["error_type"] == "RuntimeError"
