"""
Service Providers

A provider groups the bindings of one component. The container only ever
calls two optional hooks on it:

- ``register(container)`` - called once by ``use``; bind services here.
- ``boot(container)`` - called by ``boot`` (or by ``use`` after boot);
  wire things that need other components' bindings.

Any object works as a provider; neither hook is required and no base
class is needed. ``ServiceProviderBase`` exists for providers that prefer
to subclass.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from di.base import ContainerBase


@runtime_checkable
class ServiceProvider(Protocol):
    """Structural type of a provider. Both hooks are optional at runtime."""

    def register(self, container: "ContainerBase") -> Any: ...

    def boot(self, container: "ContainerBase") -> Any: ...


class ServiceProviderBase:
    """
    Convenience base with no-op hooks.

    Usage:
        class CacheProvider(ServiceProviderBase):
            def register(self, container):
                container.singleton("cache", lambda c: Cache())
    """

    def register(self, container: "ContainerBase") -> None:
        """Bind this component's services."""

    def boot(self, container: "ContainerBase") -> None:
        """Run after every provider has registered."""

    @property
    def name(self) -> str:
        return type(self).__name__


def provider_name(provider: Any) -> str:
    """Human-readable provider name for logs."""
    name: Optional[str] = getattr(provider, "name", None)
    if isinstance(name, str):
        return name
    return type(provider).__name__


def call_hook(provider: Any, hook: str, container: "ContainerBase") -> bool:
    """
    Call ``provider.<hook>(container)`` when the provider defines it.

    Returns whether the hook was present.
    """
    method = getattr(provider, hook, None)
    if method is None:
        return False
    method(container)
    return True
