"""
Core Module

Foundational pieces shared by the container:
- Error hierarchy with structured context
- Async helpers for awaiting, gathering and timing out

Usage:
    from core import UndeclaredServiceError, with_timeout
"""

from core.errors import (
    ContainerError,
    ContainerLockedError,
    ErrorContext,
    ErrorSeverity,
    UndeclaredServiceError,
)
from core.async_utils import (
    ResolutionTimeoutError,
    gather_mapping,
    maybe_await,
    with_timeout,
)

__all__ = [
    # Errors
    "ContainerError",
    "ContainerLockedError",
    "ErrorContext",
    "ErrorSeverity",
    "ResolutionTimeoutError",
    "UndeclaredServiceError",

    # Async utilities
    "gather_mapping",
    "maybe_await",
    "with_timeout",
]
