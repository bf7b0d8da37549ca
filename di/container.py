"""
Dependency Injection Container

Maps service names to factories and produces instances on demand, on an
asyncio event loop.

Features:
- Shared (singleton) and transient bindings
- Sync or async factories
- At most one in-flight construction per shared service
- Watchers fired when a set of services is declared or resolved
- Provider objects with optional register/boot hooks

Usage:
    container = Container()

    container.singleton("config", lambda c: load_config())
    container.singleton("db", make_database)       # async def make_database(c)
    container.bind("request", lambda c: Request())  # new instance every time

    db = await container.make("db")

    # Called once both services exist
    container.after_resolving(["config", "db"], on_database_ready)

    # Resolves once both names are bound, even if bound later
    services = await container.wait_for(["db", "mailer"])

Everything runs on one event loop. ``make`` and ``wait_for`` need a running
loop. ``bind`` and ``on_ready`` do not: watchers they complete outside a
loop are delivered on the next ``make``, ``wait_for``, ``on_ready`` or
``settle`` inside one.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
import time
from typing import Any, Awaitable, Dict, List, Optional

from core.async_utils import gather_mapping, maybe_await
from core.errors import UndeclaredServiceError
from di.base import (
    Binding,
    ContainerBase,
    Deps,
    ServiceWatcher,
    WatcherCallback,
    WatcherKind,
    normalize_deps,
)

# Global container instance
_container: Optional["Container"] = None
_container_lock = threading.Lock()


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class Container(ContainerBase):
    """
    Asynchronous dependency-injection container.

    ``make`` returns an awaitable. Concurrent ``make`` calls for a shared
    service that is still being constructed all wait on the same task, so
    its factory runs once. If that factory fails, every waiter gets the
    error and the next ``make`` tries again.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._resolving: Dict[str, "asyncio.Task[Any]"] = {}
        self._deliveries: List["asyncio.Task[Any]"] = []
        # set by a bind that completed a bound watcher outside a running loop
        self._delivery_pending = False

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def make(self, name: str) -> Awaitable[Any]:
        """
        Resolve ``name``.

        Raises ``UndeclaredServiceError`` immediately, before anything is
        scheduled, when ``name`` has no binding.

        While a shared service is being constructed, every caller gets a
        shielded view of the one construction task: cancelling a caller
        never cancels the construction the others are waiting on.
        """
        binding = self._bindings.get(name)
        if binding is None:
            raise UndeclaredServiceError(name)

        loop = asyncio.get_running_loop()
        self._flush_pending_deliveries()

        if not binding.shared:
            return loop.create_task(self._produce(name, binding))

        if name in self._shared:
            cached = loop.create_future()
            cached.set_result(self._shared[name])
            return cached

        task = self._resolving.get(name)
        if task is None:
            task = loop.create_task(self._make_singleton(name, binding))
            self._resolving[name] = task
        return asyncio.shield(task)

    async def _make_singleton(self, name: str, binding: Binding) -> Any:
        try:
            return await self._produce(name, binding)
        finally:
            self._resolving.pop(name, None)

    async def _produce(self, name: str, binding: Binding) -> Any:
        self._log.resolve_started(name, binding.shared)
        started = time.perf_counter()

        try:
            with self._resolution_span(name, binding):
                instance = await maybe_await(binding.factory(self))
        except Exception as exc:
            self._log.resolve_failed(name, exc)
            raise

        self._log.resolve_finished(name, binding.shared, time.perf_counter() - started)

        if binding.shared:
            self._shared[name] = instance

        await self._process_resolved_watchers(name, instance)

        return instance

    async def _process_resolved_watchers(self, name: str, instance: Any) -> None:
        pending = []
        for watcher, services in self._ready_resolved_watchers(name, instance):
            result = watcher.callback(services, self)
            if inspect.isawaitable(result):
                pending.append(result)

        if pending:
            await asyncio.gather(*pending)

    # ------------------------------------------------------------------
    # Bound watchers
    # ------------------------------------------------------------------

    def wait_for(self, deps: Deps) -> Awaitable[Dict[str, Any]]:
        """
        Awaitable of ``{name: instance}`` for every name in ``deps``.

        Resolves as soon as every name has a binding; if some are not bound
        yet, waits for the ``bind`` that completes the set. Never times out
        on its own (see ``core.async_utils.with_timeout``). Cancelling the
        awaitable withdraws the wait.
        """
        deps = normalize_deps(deps)
        loop = asyncio.get_running_loop()
        self._flush_pending_deliveries()

        if self._deps_declared(deps):
            return loop.create_task(gather_mapping(deps, self.make))

        deferred = loop.create_future()
        watcher = ServiceWatcher(WatcherKind.BOUND, deps, deferred=deferred)
        deferred.add_done_callback(lambda done: self._withdraw(watcher, done))
        self._add_bound_watcher(watcher)
        return deferred

    def _withdraw(self, watcher: ServiceWatcher, deferred: "asyncio.Future[Any]") -> None:
        if deferred.cancelled():
            self._discard_watcher(watcher)

    def on_ready(self, deps: Deps, callback: WatcherCallback) -> None:
        """
        Call ``callback(services, container)`` once every name in ``deps`` is
        bound and resolved.

        Delivery runs in a background task; ``settle`` awaits it. Outside a
        running loop the delivery waits for the next ``make``, ``wait_for``,
        ``on_ready`` or ``settle`` made inside one.
        """
        watcher = ServiceWatcher(WatcherKind.BOUND, normalize_deps(deps), callback=callback)
        declared = self._deps_declared(watcher.deps)

        if not _loop_running():
            self._add_bound_watcher(watcher)
            self._delivery_pending = self._delivery_pending or declared
            return

        self._flush_pending_deliveries()
        if declared:
            self._consume(watcher, None)
            self._schedule_delivery(watcher)
        else:
            self._add_bound_watcher(watcher)

    def _process_bound_watchers(self, name: str) -> None:
        if not _loop_running():
            self._delivery_pending = True
            return
        self._flush_pending_deliveries()
        for watcher in self._ready_bound_watchers(name):
            self._schedule_delivery(watcher)

    def _flush_pending_deliveries(self) -> None:
        """Schedule watchers completed by binds made outside a running loop."""
        if not self._delivery_pending:
            return
        self._delivery_pending = False
        for watcher in self._ready_bound_watchers(None):
            self._schedule_delivery(watcher)

    def _schedule_delivery(self, watcher: ServiceWatcher) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(watcher))
        task.add_done_callback(lambda done: self._delivery_done(watcher, done))
        self._deliveries.append(task)

    async def _deliver(self, watcher: ServiceWatcher) -> None:
        deferred = watcher.deferred

        try:
            services = await gather_mapping(watcher.deps, self.make)
        except Exception as exc:
            if deferred is None:
                raise
            if not deferred.done():
                deferred.set_exception(exc)
            return

        if deferred is not None:
            # already done if the caller cancelled it
            if not deferred.done():
                deferred.set_result(services)
            return

        await maybe_await(watcher.callback(services, self))

    def _delivery_done(self, watcher: ServiceWatcher, task: "asyncio.Task[Any]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._log.delivery_failed(watcher.deps, error)

    async def settle(self) -> None:
        """
        Wait for every scheduled bound-watcher delivery, including ones
        scheduled while waiting, and re-raise the first failure.
        """
        self._flush_pending_deliveries()
        errors: List[BaseException] = []

        while self._deliveries:
            batch, self._deliveries = self._deliveries, []
            results = await asyncio.gather(*batch, return_exceptions=True)
            errors.extend(
                result for result in results
                if isinstance(result, BaseException)
                and not isinstance(result, asyncio.CancelledError)
            )

        if errors:
            raise errors[0]


def get_container() -> Container:
    """Get or create the process-wide container."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
    return _container


def reset_container() -> None:
    """Drop the process-wide container; the next ``get_container`` builds a new one."""
    global _container
    with _container_lock:
        _container = None
