"""
Async Utilities

Small async helpers shared by the container:
- Awaiting values that may or may not be awaitable
- Concurrent resolution of a list of names into an ordered mapping
- Timeouts for readiness waits that may never complete
"""

from __future__ import annotations

import asyncio
import inspect
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    TypeVar,
    Union,
)

from core.errors import ContainerError, ErrorContext, ErrorSeverity

T = TypeVar("T")


async def maybe_await(value: Union[T, Awaitable[T]]) -> T:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def gather_mapping(
    names: Iterable[str],
    resolve: Callable[[str], Awaitable[Any]],
) -> Dict[str, Any]:
    """
    Resolve every name concurrently and return ``{name: result}``.

    The mapping preserves the order of ``names``. ``resolve`` is called for
    every name before any of the results is awaited, so a name that cannot
    be resolved synchronously fails before the rest are awaited.

    Usage:
        services = await gather_mapping(["db", "cache"], container.make)
    """
    names = list(names)
    pending = [resolve(name) for name in names]
    results = await asyncio.gather(*pending)
    return dict(zip(names, results))


class ResolutionTimeoutError(ContainerError):
    """A readiness wait did not complete in time."""

    error_code = "RESOLUTION_TIMEOUT"
    default_severity = ErrorSeverity.WARNING

    def __init__(self, message: str, timeout_seconds: float, **kwargs: Any):
        super().__init__(message, recoverable=True, **kwargs)
        self.timeout_seconds = timeout_seconds


async def with_timeout(
    awaitable: Awaitable[T],
    seconds: float,
    operation: str = "wait_for",
) -> T:
    """
    Await ``awaitable`` for at most ``seconds``.

    The container never times out on its own; a ``wait_for`` whose
    dependencies are never bound stays pending forever. Wrap it here
    when that matters to the caller.

    Usage:
        services = await with_timeout(container.wait_for(["db"]), 5.0)
    """
    try:
        async with asyncio.timeout(seconds):
            return await awaitable
    except TimeoutError as exc:
        raise ResolutionTimeoutError(
            f"{operation} did not complete after {seconds} seconds",
            timeout_seconds=seconds,
            context=ErrorContext(operation=operation, component="async_utils"),
            cause=exc,
        ) from exc
