"""
Dependency Injection Module

Maps service names to factories, produces instances lazily, and notifies
interested parties when a set of services becomes available.

- ``Container``: asyncio container; ``make`` returns an awaitable and
  deduplicates concurrent construction of shared services
- ``SyncContainer``: the same model for code without an event loop
- Bound watchers (``wait_for``/``on_ready``) fire once every dependency
  has a binding
- Resolved watchers (``after_resolving``) fire once every dependency has
  an instance
- Providers expose optional ``register(container)``/``boot(container)``

Usage:
    from di import Container, ServiceProviderBase

    class MailProvider(ServiceProviderBase):
        def register(self, container):
            container.singleton("mailer", lambda c: Mailer())

        def boot(self, container):
            container.on_ready(["mailer", "queue"], wire_mail_queue)

    container = Container()
    container.use(MailProvider())
    container.boot()

    mailer = await container.make("mailer")
"""

from di.base import (
    Binding,
    ContainerBase,
    ServiceWatcher,
    WatcherKind,
    resolver,
)
from di.container import (
    Container,
    get_container,
    reset_container,
)
from di.providers import (
    ServiceProvider,
    ServiceProviderBase,
)
from di.sync import SyncContainer

__all__ = [
    # Containers
    "Container",
    "SyncContainer",
    "ContainerBase",

    # Bookkeeping types
    "Binding",
    "ServiceWatcher",
    "WatcherKind",

    # Providers
    "ServiceProvider",
    "ServiceProviderBase",

    # Global access
    "get_container",
    "reset_container",
    "resolver",
]
