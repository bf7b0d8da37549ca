"""
Container Errors

Error hierarchy for the dependency-injection container.

Features:
- Hierarchical exception classes with context preservation
- Error severity levels for prioritized handling
- Structured error context for debugging
- OpenTelemetry integration for error tracing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


class ErrorSeverity(Enum):
    """Error severity levels for prioritized handling."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Structured context for error debugging and tracing."""

    operation: str
    component: str
    service_name: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            "operation": self.operation,
            "component": self.component,
            "service_name": self.service_name,
            "timestamp": self.timestamp.isoformat(),
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "metadata": self.metadata,
        }


class ContainerError(Exception):
    """
    Base exception for all container errors.

    Provides:
    - Structured error context
    - Severity level
    - Chained exception support
    - OpenTelemetry span recording
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "CONTAINER_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.severity = severity or self.default_severity
        self.cause = cause
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.timestamp = datetime.now(timezone.utc)

        self._record_to_span()

    def _record_to_span(self) -> None:
        """Record exception to current OpenTelemetry span."""
        span = trace.get_current_span()
        if span and span.is_recording():
            span.set_status(Status(StatusCode.ERROR, self.message))
            span.record_exception(self)
            span.set_attribute("error.code", self.error_code)
            span.set_attribute("error.severity", self.severity.value)
            span.set_attribute("error.recoverable", self.recoverable)
            if self.context:
                span.set_attribute("error.component", self.context.component)
                span.set_attribute("error.operation", self.context.operation)
                ctx = span.get_span_context()
                if ctx.is_valid and self.context.trace_id is None:
                    self.context.trace_id = format(ctx.trace_id, "032x")
                    self.context.span_id = format(ctx.span_id, "016x")

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.context:
            parts.append(f" (component: {self.context.component})")
        if self.cause:
            parts.append(f" [caused by: {self.cause}]")
        return "".join(parts)


class UndeclaredServiceError(ContainerError, KeyError):
    """Raised by ``make`` when a service name has no binding."""

    error_code = "UNDECLARED_SERVICE"
    default_severity = ErrorSeverity.ERROR

    def __init__(self, service_name: str, **kwargs: Any):
        kwargs.setdefault(
            "context",
            ErrorContext(operation="make", component="container", service_name=service_name),
        )
        kwargs.setdefault(
            "suggestions",
            [f'bind "{service_name}" before resolving it, or use wait_for()'],
        )
        super().__init__(f'Undeclared service "{service_name}"', **kwargs)
        self.service_name = service_name

    # KeyError.__str__ would repr() the message
    __str__ = ContainerError.__str__


class ContainerLockedError(ContainerError):
    """Raised by ``bind`` while the container is locked."""

    error_code = "CONTAINER_LOCKED"
    default_severity = ErrorSeverity.WARNING

    def __init__(self, service_name: str, **kwargs: Any):
        kwargs.setdefault(
            "context",
            ErrorContext(operation="bind", component="container", service_name=service_name),
        )
        super().__init__(
            f'Cannot bind "{service_name}": container is locked',
            recoverable=True,
            **kwargs,
        )
        self.service_name = service_name
