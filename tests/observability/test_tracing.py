"""
Tests for observability/tracing.py.
"""
import pytest
from opentelemetry import trace

from observability.tracing import TracingConfig, create_span, setup_tracing, shutdown_tracing


class TestSetupTracing:
    """Tests for setup_tracing()."""

    def teardown_method(self):
        shutdown_tracing()

    def test_disabled_returns_current_provider(self):
        provider = setup_tracing(TracingConfig(enabled=False))

        assert provider is trace.get_tracer_provider()


class TestCreateSpan:
    """Tests for create_span()."""

    def test_yields_span(self):
        with create_span("container.boot", attributes={"di.providers": 2}) as span:
            assert span is not None

    def test_reraises(self):
        with pytest.raises(ValueError):
            with create_span("container.boot"):
                raise ValueError("boom")
