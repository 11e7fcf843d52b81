"""Declarative wiring of handler and middleware classes.

Classes are marked with :func:`raiser_handler` / :func:`raiser_middleware`
where they are defined; :meth:`Catalog.install` later instantiates them
and registers them on a bus, in place of hand-written setup code::

    @raiser_handler(priority=100)
    class ReserveStock(EventHandler[OrderPlaced]):
        async def handle(self, event: OrderPlaced) -> None: ...

    @raiser_middleware(priority=50)
    class Timing(Middleware):
        async def call(self, event, next) -> None:
            await next()

    bus = AsyncEventBus()
    install(bus)

Components may be tagged with a ``bus_name`` so that several buses in one
application each receive their own set.
"""

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from raiser.base_bus import BaseEventBus
from raiser.exceptions import CatalogError
from raiser.handlers import handler_event_type
from raiser.subscription import Subscription

log = logger.bind(source=__name__)

type Factories = Mapping[type, Callable[[], Any]]


@dataclass(frozen=True, slots=True)
class HandlerSpec:
    """A declared handler class.

    Attributes:
        target: The handler class.
        event_type: Event type it is registered for.
        priority: Registration priority.
        bus_name: Bus it belongs to, None for the default bus.
    """

    target: type
    event_type: type
    priority: int
    bus_name: str | None

    @property
    def source(self) -> str:
        return self.target.__module__


@dataclass(frozen=True, slots=True)
class MiddlewareSpec:
    """A declared middleware class."""

    target: type
    priority: int
    bus_name: str | None

    @property
    def source(self) -> str:
        return self.target.__module__


def _check_concrete(cls: Any, decorator: str) -> None:
    if not inspect.isclass(cls):
        raise CatalogError(f"@{decorator} can only be applied to classes")
    if inspect.isabstract(cls):
        raise CatalogError(
            f"@{decorator} cannot be applied to abstract class "
            f"'{cls.__qualname__}'; it must be concrete"
        )


class Catalog:
    """Collection of declared handler and middleware classes."""

    def __init__(self) -> None:
        self.handler_specs: list[HandlerSpec] = []
        self.middleware_specs: list[MiddlewareSpec] = []

    def handler[C: type](
        self,
        event_type: type | None = None,
        *,
        priority: int = 0,
        bus_name: str | None = None,
    ) -> Callable[[C], C]:
        """Class decorator declaring a handler.

        Args:
            event_type: Event type to handle.  Inferred from an
                ``EventHandler[E]`` base or the ``handle`` annotation when
                omitted.
            priority: Registration priority.
            bus_name: Target bus, None for the default bus.

        Returns:
            Decorator returning the class unchanged.

        Raises:
            CatalogError: If the target is not a concrete class with a
                callable ``handle``, or its event type cannot be inferred.
        """

        def decorator(cls: C) -> C:
            _check_concrete(cls, "raiser_handler")
            if not callable(getattr(cls, "handle", None)):
                raise CatalogError(
                    f"'{cls.__qualname__}' must define a callable 'handle'"
                )
            resolved = event_type
            if resolved is None:
                try:
                    resolved = handler_event_type(cls)
                except TypeError as exc:
                    raise CatalogError(
                        f"cannot infer the event type of '{cls.__qualname__}'"
                    ) from exc
            self.handler_specs.append(HandlerSpec(cls, resolved, priority, bus_name))
            return cls

        return decorator

    def middleware[C: type](
        self,
        *,
        priority: int = 0,
        bus_name: str | None = None,
    ) -> Callable[[C], C]:
        """Class decorator declaring a middleware.

        Raises:
            CatalogError: If the target is not a concrete class whose
                instances are callable or expose ``call``.
        """

        def decorator(cls: C) -> C:
            _check_concrete(cls, "raiser_middleware")
            if not (callable(getattr(cls, "call", None)) or "__call__" in dir(cls)):
                raise CatalogError(
                    f"'{cls.__qualname__}' must define 'call' or '__call__'"
                )
            self.middleware_specs.append(MiddlewareSpec(cls, priority, bus_name))
            return cls

        return decorator

    def bus_names(self) -> list[str | None]:
        """Distinct bus names in declaration order; None is the default bus."""
        names: list[str | None] = []
        for spec in [*self.middleware_specs, *self.handler_specs]:
            if spec.bus_name not in names:
                names.append(spec.bus_name)
        return names

    def install(
        self,
        bus: BaseEventBus,
        *,
        bus_name: str | None = None,
        factories: Factories | None = None,
    ) -> list[Subscription]:
        """Instantiate and register every component declared for *bus_name*.

        Middleware are registered first, then handlers, each in declaration
        order.  The bus orders them by priority at publish time.

        Args:
            bus: Bus to register on.
            bus_name: Only components declared with this name are
                installed; None selects the default bus.
            factories: Zero-argument constructors for classes that need
                dependencies.  Other classes are built with ``cls()``.

        Returns:
            Subscriptions for all registrations, in registration order.

        Raises:
            CatalogError: If a component cannot be instantiated.
        """
        factories = factories or {}
        subscriptions: list[Subscription] = []

        for spec in self.middleware_specs:
            if spec.bus_name != bus_name:
                continue
            instance = self._build(spec.target, factories)
            subscriptions.append(bus.add_middleware(instance, priority=spec.priority))

        for spec in self.handler_specs:
            if spec.bus_name != bus_name:
                continue
            instance = self._build(spec.target, factories)
            subscriptions.append(
                bus.register(spec.event_type, instance, priority=spec.priority)
            )

        log.debug(
            "Installed {} component(s) for bus {}",
            len(subscriptions),
            bus_name or "<default>",
        )
        return subscriptions

    @staticmethod
    def _build(cls: type, factories: Factories) -> Any:
        factory = factories.get(cls, cls)
        try:
            return factory()
        except Exception as exc:
            raise CatalogError(
                f"cannot instantiate '{cls.__qualname__}'; "
                "provide a factory for classes with constructor dependencies"
            ) from exc


# Module-level default catalog
default_catalog = Catalog()
raiser_handler = default_catalog.handler
raiser_middleware = default_catalog.middleware
install = default_catalog.install
