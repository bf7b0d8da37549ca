"""
Container Bookkeeping

State and rules shared by the asynchronous ``Container`` and the
``SyncContainer``: the binding table, the shared-instance cache, the
provider list, the boot and lock flags, and the two watcher lists.

The subclasses differ only in how an instance is produced and how a
ready bound watcher is delivered; everything that decides *whether*
something is ready lives here.
"""

from __future__ import annotations

from contextlib import nullcontext
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    ContextManager,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
    Union,
)

from opentelemetry import trace

from config import ContainerConfig, get_config
from core.errors import ContainerLockedError
from di.providers import call_hook, provider_name
from observability.logging import ContainerLogger, LogContext

Factory = Callable[[Any], Any]
WatcherCallback = Callable[[Dict[str, Any], Any], Any]
Deps = Union[str, Iterable[str]]


class WatcherKind(Enum):
    """Which event a watcher waits for."""

    BOUND = "bound"        # every dependency has a binding
    RESOLVED = "resolved"  # every dependency has an instance


@dataclass(frozen=True)
class Binding:
    """A factory and its sharing policy, stored under a service name."""

    factory: Factory
    shared: bool = False


@dataclass(eq=False)
class ServiceWatcher:
    """
    A one-shot callback waiting on a set of service names.

    ``deferred`` replaces ``callback`` for the awaitable form of
    ``wait_for``: the mapping is delivered into the future instead.
    """

    kind: WatcherKind
    deps: Tuple[str, ...]
    callback: Optional[WatcherCallback] = None
    deferred: Any = None
    fired: bool = field(default=False, init=False)


def normalize_deps(deps: Deps) -> Tuple[str, ...]:
    """Distinct dependency names in declaration order."""
    if isinstance(deps, str):
        deps = (deps,)
    return tuple(dict.fromkeys(deps))


class ContainerBase:
    """
    Binding registry, provider lifecycle and watcher evaluation.

    Subclasses implement ``make``, ``wait_for``, ``on_ready`` and
    ``_process_bound_watchers``.
    """

    def __init__(
        self,
        config: Optional[ContainerConfig] = None,
        tracer: Optional[trace.Tracer] = None,
    ) -> None:
        self._config = config or get_config().container
        self._tracer = tracer or trace.get_tracer(__name__)
        self._bindings: Dict[str, Binding] = {}
        self._shared: Dict[str, Any] = {}
        self._providers: List[Any] = []
        self._booted = False
        self._locked = False
        self._bound_watchers: List[ServiceWatcher] = []
        self._resolved_watchers: List[ServiceWatcher] = []
        self._log = ContainerLogger()

    @property
    def booted(self) -> bool:
        return self._booted

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> None:
        """Reject further ``bind`` calls until ``unlock``."""
        self._locked = True
        self._log.lock_changed(True)

    def unlock(self) -> None:
        self._locked = False
        self._log.lock_changed(False)

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    def bind(self, name: str, factory: Factory, shared: bool = False) -> "ContainerBase":
        """
        Bind ``name`` to ``factory``, replacing any previous binding.

        An instance already cached for ``name`` is kept and still returned
        by ``make`` if the new binding is shared.
        """
        if self._locked:
            raise ContainerLockedError(name)

        self._bindings[name] = Binding(factory=factory, shared=shared)
        self._log.service_bound(name, shared)

        self._process_bound_watchers(name)

        return self

    def singleton(self, name: str, factory: Factory) -> "ContainerBase":
        """Bind a shared service: the factory runs at most once."""
        return self.bind(name, factory, shared=True)

    def is_bound(self, name: str) -> bool:
        return name in self._bindings

    def is_resolved(self, name: str) -> bool:
        """Whether a shared instance of ``name`` is cached."""
        return name in self._shared

    def _deps_declared(self, deps: Iterable[str]) -> bool:
        return all(dep in self._bindings for dep in deps)

    def _process_bound_watchers(self, name: str) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def use(self, provider: Any) -> None:
        """Register a provider, booting it at once if the container has booted."""
        name = provider_name(provider)

        with LogContext(provider=name):
            if call_hook(provider, "register", self):
                self._log.provider_event("registered", name)

            if self._booted and call_hook(provider, "boot", self):
                self._log.provider_event("booted", name)

        self._providers.append(provider)

    def boot(self) -> None:
        """
        Run every provider's ``boot`` hook.

        Not idempotent: a second call boots every provider again.
        """
        self._booted = True

        for provider in list(self._providers):
            name = provider_name(provider)
            with LogContext(provider=name):
                if call_hook(provider, "boot", self):
                    self._log.provider_event("booted", name)

        if self._config.lock_on_boot:
            self.lock()

    # ------------------------------------------------------------------
    # Watchers
    # ------------------------------------------------------------------

    def after_resolving(self, deps: Deps, callback: WatcherCallback) -> None:
        """Call ``callback(services, container)`` once every dependency has been resolved."""
        watcher = ServiceWatcher(WatcherKind.RESOLVED, normalize_deps(deps), callback=callback)
        self._resolved_watchers.append(watcher)
        self._log.watcher_registered(watcher.kind.value, watcher.deps)

    def _add_bound_watcher(self, watcher: ServiceWatcher) -> None:
        self._bound_watchers.append(watcher)
        self._log.watcher_registered(watcher.kind.value, watcher.deps)

    def _consume(self, watcher: ServiceWatcher, trigger: Optional[str]) -> None:
        watcher.fired = True
        watchers = (
            self._bound_watchers
            if watcher.kind is WatcherKind.BOUND
            else self._resolved_watchers
        )
        if watcher in watchers:
            watchers.remove(watcher)
        self._log.watcher_fired(watcher.kind.value, watcher.deps, trigger or "")

    def _discard_watcher(self, watcher: ServiceWatcher) -> None:
        """Drop a watcher whose waiter went away before it fired."""
        watcher.fired = True
        if watcher in self._bound_watchers:
            self._bound_watchers.remove(watcher)

    def _ready_bound_watchers(self, name: Optional[str]) -> Iterator[ServiceWatcher]:
        """
        Consume and yield bound watchers whose dependencies are all declared.

        With a ``name``, only watchers depending on it are considered.
        """
        for watcher in list(self._bound_watchers):
            if watcher.fired or (name is not None and name not in watcher.deps):
                continue
            if not self._deps_declared(watcher.deps):
                continue
            self._consume(watcher, name)
            yield watcher

    def _ready_resolved_watchers(
        self,
        name: str,
        instance: Any,
    ) -> Iterator[Tuple[ServiceWatcher, Dict[str, Any]]]:
        """
        Consume and yield resolved watchers completed by ``(name, instance)``.

        Dependencies other than ``name`` are taken from the shared cache, so
        a transient dependency only counts in the pass that produced it.
        """
        for watcher in list(self._resolved_watchers):
            if watcher.fired or name not in watcher.deps:
                continue

            services: Dict[str, Any] = {}
            for dep in watcher.deps:
                if dep == name:
                    services[dep] = instance
                elif dep in self._shared:
                    services[dep] = self._shared[dep]

            if len(services) != len(watcher.deps):
                continue

            self._consume(watcher, name)
            yield watcher, services

    def _resolution_span(self, name: str, binding: Binding) -> ContextManager[Any]:
        if not self._config.trace_resolutions:
            return nullcontext()
        return self._tracer.start_as_current_span(
            "container.resolve",
            attributes={"di.service": name, "di.shared": binding.shared},
        )


def resolver(container: ContainerBase) -> Callable[..., Any]:
    """
    Build an "app function" over ``container``.

    ``app()`` returns the container itself and ``app(name)`` is
    ``container.make(name)``.

    Usage:
        app = resolver(container)
        db = await app("db")
    """

    def app(name: Optional[str] = None) -> Any:
        if name is None:
            return container
        return container.make(name)

    return app
