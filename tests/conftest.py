"""
Test Configuration

Pytest fixtures shared by all tests.
"""
import asyncio

import pytest
from typing import Any, Callable, Dict

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from config import ContainerConfig
from di import Container, SyncContainer, reset_container


class CountingFactory:
    """Factory spy that records how often it ran."""

    def __init__(self, value: Callable[[int], Any] = lambda n: {"count": n}):
        self.calls = 0
        self._value = value

    def __call__(self, container: Any) -> Any:
        self.calls += 1
        return self._value(self.calls)


class AsyncCountingFactory(CountingFactory):
    """Async factory spy; yields to the loop before returning."""

    async def __call__(self, container: Any) -> Any:
        self.calls += 1
        calls = self.calls
        await asyncio.sleep(0)
        return self._value(calls)


@pytest.fixture
def container_config() -> ContainerConfig:
    """Container configuration independent of the environment."""
    return ContainerConfig(lock_on_boot=False, trace_resolutions=True)


@pytest.fixture
def container(container_config) -> Container:
    """Fresh asynchronous container."""
    return Container(container_config)


@pytest.fixture
def sync_container(container_config) -> SyncContainer:
    """Fresh synchronous container."""
    return SyncContainer(container_config)


@pytest.fixture
def counting_factory() -> CountingFactory:
    return CountingFactory()


@pytest.fixture
def async_counting_factory() -> AsyncCountingFactory:
    return AsyncCountingFactory()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """In-memory exporter behind a private tracer provider."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider.get_tracer("tests")


@pytest.fixture
def recorder():
    """Collects watcher callback invocations as (services, container) pairs."""
    calls: list = []

    def record(services: Dict[str, Any], container: Any) -> None:
        calls.append((services, container))

    record.calls = calls
    return record


@pytest.fixture(autouse=True)
def _reset_global_container():
    yield
    reset_container()
