"""
Observability Package

Structured logging and tracing for the container.

Components:
- tracing: OpenTelemetry spans around service resolution
- logging: Structlog integration with trace context propagation

Usage:
    from observability import setup_observability, get_logger

    setup_observability(service_name="my-app")
    logger = get_logger(__name__)
"""
from dataclasses import replace
from typing import Optional

from .logging import (
    ContainerLogger,
    LogContext,
    LoggingConfig,
    get_logger,
    setup_logging,
    shutdown_logging,
)
from .tracing import (
    TracingConfig,
    create_span,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)


def setup_observability(
    service_name: Optional[str] = None,
    logging_config: Optional[LoggingConfig] = None,
    tracing_config: Optional[TracingConfig] = None,
) -> None:
    """
    Initialize logging and tracing.

    Args:
        service_name: Overrides the service name of both configs
        logging_config: Logging configuration (defaults to ``get_config().logging``)
        tracing_config: Tracing configuration (defaults to ``get_config().tracing``)
    """
    if logging_config is None or tracing_config is None:
        # config imports this package's config dataclasses
        from config import get_config

        config = get_config()
        logging_config = logging_config or config.logging
        tracing_config = tracing_config or config.tracing

    if service_name:
        logging_config = replace(logging_config, service_name=service_name)
        tracing_config = replace(tracing_config, service_name=service_name)

    setup_tracing(tracing_config)
    setup_logging(logging_config)


def shutdown_observability() -> None:
    """Flush spans and logging handlers."""
    shutdown_tracing()
    shutdown_logging()


__all__ = [
    # Setup
    "setup_observability",
    "shutdown_observability",

    # Logging
    "ContainerLogger",
    "LogContext",
    "LoggingConfig",
    "get_logger",
    "setup_logging",
    "shutdown_logging",

    # Tracing
    "TracingConfig",
    "create_span",
    "get_tracer",
    "setup_tracing",
    "shutdown_tracing",
]
