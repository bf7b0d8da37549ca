"""
Structured Logging with Trace Context

Integrates structlog with OpenTelemetry trace context propagation,
ensuring all log messages include trace_id and span_id for correlation
with distributed traces.

Features:
- Structured JSON logging for log aggregation
- Automatic trace context injection (trace_id, span_id)
- Configurable log levels and output formats
- Request context enrichment

Usage:
    from observability.logging import setup_logging, get_logger

    # Setup at startup
    setup_logging(LoggingConfig(level="INFO", json_format=True))

    # Get logger
    logger = get_logger(__name__)
    logger.info("Service bound", service="db", shared=True)
"""
from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

import structlog
from opentelemetry import trace
from structlog.types import EventDict, WrappedLogger

# Global state
_configured: bool = False
_console_handler: Optional[logging.Handler] = None


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    service_name: str = field(
        default_factory=lambda: os.getenv("OTEL_SERVICE_NAME", "appwire")
    )
    level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    json_format: bool = field(
        default_factory=lambda: os.getenv("LOG_FORMAT", "json").lower() == "json"
    )
    enable_trace_context: bool = True
    log_to_console: bool = field(
        default_factory=lambda: os.getenv("LOG_TO_CONSOLE", "true").lower() == "true"
    )
    include_timestamp: bool = True
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )


def add_trace_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """
    Structlog processor that adds OpenTelemetry trace context to log events.

    Adds trace_id and span_id from the current span context, enabling
    correlation between logs and traces in observability backends.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        if ctx.is_valid:
            event_dict["trace_id"] = format(ctx.trace_id, "032x")
            event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_service_context(
    service_name: str,
    environment: str,
) -> structlog.types.Processor:
    """
    Create a processor that adds service context to all log events.

    Args:
        service_name: Name of the service
        environment: Deployment environment
    """

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        event_dict["environment"] = environment
        return event_dict

    return processor


def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add ISO8601 timestamp."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure structlog with OpenTelemetry trace context integration.

    Args:
        config: Logging configuration. Uses defaults if not provided.
    """
    global _configured

    if _configured:
        return

    config = config or LoggingConfig()

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(config.service_name, config.environment),
    ]

    if config.include_timestamp:
        processors.append(add_timestamp)

    if config.enable_trace_context:
        processors.append(add_trace_context)

    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ])

    if config.json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configure_stdlib_logging(config)

    _configured = True


def _configure_stdlib_logging(config: LoggingConfig) -> None:
    """Configure Python standard library logging."""
    global _console_handler

    level = getattr(logging, config.level, logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)
        _console_handler = None

    if config.log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        if config.json_format:
            console_handler.setFormatter(_JsonFormatter())
        else:
            console_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
        root_logger.addHandler(console_handler)
        _console_handler = console_handler

    logging.getLogger("opentelemetry").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


class _JsonFormatter(logging.Formatter):
    """JSON formatter for stdlib logging."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        # structlog already rendered the event as JSON
        if message.startswith("{"):
            return message

        log_record: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Args:
        name: Logger name, typically __name__

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Service resolved", service="db")
    """
    if not _configured:
        setup_logging()

    return structlog.get_logger(name)


def shutdown_logging() -> None:
    """Flush handlers and allow ``setup_logging`` to run again."""
    global _configured

    for handler in logging.getLogger().handlers:
        handler.flush()

    structlog.reset_defaults()
    _configured = False


class LogContext:
    """
    Context manager for adding contextual information to all logs.

    Values bound by an enclosing ``LogContext`` are restored on exit.

    Example:
        >>> with LogContext(provider="DatabaseProvider"):
        ...     logger.info("Registering")
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs
        self._tokens: Dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


class ContainerLogger:
    """Logger specialized for container operations."""

    def __init__(self, name: str = "appwire.container"):
        self._logger = get_logger(name)

    def service_bound(self, service: str, shared: bool) -> None:
        self._logger.debug(
            "Service bound",
            service=service,
            shared=shared,
            component="container",
        )

    def resolve_started(self, service: str, shared: bool) -> None:
        self._logger.debug(
            "Resolution started",
            service=service,
            shared=shared,
            component="container",
        )

    def resolve_finished(self, service: str, shared: bool, duration: float) -> None:
        self._logger.debug(
            "Resolution completed",
            service=service,
            shared=shared,
            duration_ms=round(duration * 1000, 3),
            component="container",
        )

    def resolve_failed(self, service: str, error: BaseException) -> None:
        self._logger.warning(
            "Resolution failed",
            service=service,
            error=str(error),
            error_type=type(error).__name__,
            component="container",
        )

    def watcher_registered(self, kind: str, deps: Sequence[str]) -> None:
        self._logger.debug(
            "Watcher registered",
            kind=kind,
            deps=list(deps),
            component="watcher",
        )

    def watcher_fired(self, kind: str, deps: Sequence[str], trigger: str) -> None:
        self._logger.debug(
            "Watcher fired",
            kind=kind,
            deps=list(deps),
            trigger=trigger,
            component="watcher",
        )

    def delivery_failed(self, deps: Sequence[str], error: BaseException) -> None:
        self._logger.error(
            "Watcher delivery failed",
            deps=list(deps),
            error=str(error),
            error_type=type(error).__name__,
            component="watcher",
        )

    def provider_event(self, event: str, provider: str) -> None:
        self._logger.debug(
            f"Provider {event}",
            provider=provider,
            component="provider",
        )

    def lock_changed(self, locked: bool) -> None:
        self._logger.info(
            "Container locked" if locked else "Container unlocked",
            component="container",
        )
