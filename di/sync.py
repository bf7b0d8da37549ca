"""
Synchronous Container

Same bindings, providers and watchers as ``di.container.Container`` for
code without an event loop. Factories return instances directly and
``make`` returns the instance.

Watcher callbacks run inline, inside the ``bind`` or ``make`` call that
completes them, so their exceptions surface from that call.
"""

from __future__ import annotations

import time
from concurrent.futures import Future
from typing import Any, Dict, Iterable

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


class SyncContainer(ContainerBase):
    """
    Synchronous dependency-injection container.

    Usage:
        container = SyncContainer()
        container.singleton("settings", lambda c: Settings.from_env())
        settings = container.make("settings")
    """

    def make(self, name: str) -> Any:
        binding = self._bindings.get(name)
        if binding is None:
            raise UndeclaredServiceError(name)

        if binding.shared and name in self._shared:
            return self._shared[name]

        return self._produce(name, binding)

    def _produce(self, name: str, binding: Binding) -> Any:
        self._log.resolve_started(name, binding.shared)
        started = time.perf_counter()

        try:
            with self._resolution_span(name, binding):
                instance = binding.factory(self)
        except Exception as exc:
            self._log.resolve_failed(name, exc)
            raise

        self._log.resolve_finished(name, binding.shared, time.perf_counter() - started)

        if binding.shared:
            self._shared[name] = instance

        for watcher, services in self._ready_resolved_watchers(name, instance):
            watcher.callback(services, self)

        return instance

    def _resolve_all(self, deps: Iterable[str]) -> Dict[str, Any]:
        return {dep: self.make(dep) for dep in deps}

    def wait_for(self, deps: Deps) -> "Future[Dict[str, Any]]":
        """
        Future of ``{name: instance}`` for every name in ``deps``.

        Already done when every name is bound; otherwise completed by the
        ``bind`` that declares the last missing name.
        """
        deps = normalize_deps(deps)
        future: "Future[Dict[str, Any]]" = Future()

        if self._deps_declared(deps):
            self._fulfil(future, deps)
        else:
            watcher = ServiceWatcher(WatcherKind.BOUND, deps, deferred=future)
            future.add_done_callback(lambda done: self._withdraw(watcher, done))
            self._add_bound_watcher(watcher)

        return future

    def _withdraw(self, watcher: ServiceWatcher, future: "Future[Dict[str, Any]]") -> None:
        if future.cancelled():
            self._discard_watcher(watcher)

    def on_ready(self, deps: Deps, callback: WatcherCallback) -> None:
        """Call ``callback(services, container)`` once every name in ``deps`` is bound."""
        watcher = ServiceWatcher(WatcherKind.BOUND, normalize_deps(deps), callback=callback)

        if self._deps_declared(watcher.deps):
            self._consume(watcher, None)
            callback(self._resolve_all(watcher.deps), self)
        else:
            self._add_bound_watcher(watcher)

    def _process_bound_watchers(self, name: str) -> None:
        for watcher in self._ready_bound_watchers(name):
            if watcher.deferred is not None:
                self._fulfil(watcher.deferred, watcher.deps)
            else:
                watcher.callback(self._resolve_all(watcher.deps), self)

    def _fulfil(self, future: "Future[Dict[str, Any]]", deps: Iterable[str]) -> None:
        try:
            services = self._resolve_all(deps)
        except Exception as exc:
            future.set_exception(exc)
            return
        future.set_result(services)
