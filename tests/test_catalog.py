"""Tests for declarative handler and middleware wiring."""

from abc import abstractmethod

import pytest
from conftest import OrderPlaced, Ping, UserCreated

from raiser import (
    AsyncEventBus,
    Catalog,
    CatalogError,
    EventBus,
    EventHandler,
    Middleware,
)


@pytest.fixture
def catalog() -> Catalog:
    return Catalog()


class TestDeclaration:
    def test_event_type_from_generic_base(self, catalog):
        """EventHandler[E] base determines the event type."""

        @catalog.handler()
        class Welcome(EventHandler[UserCreated]):
            def handle(self, event) -> None: ...

        assert catalog.handler_specs[0].event_type is UserCreated

    def test_event_type_from_handle_annotation(self, catalog):
        """Without a generic base, the handle annotation is used."""

        @catalog.handler(priority=5)
        class Audit:
            def handle(self, event: OrderPlaced) -> None: ...

        spec = catalog.handler_specs[0]
        assert spec.event_type is OrderPlaced
        assert spec.priority == 5
        assert spec.bus_name is None
        assert spec.source == __name__

    def test_explicit_event_type_wins(self, catalog):
        """An explicit event type overrides inference."""

        @catalog.handler(Ping)
        class Any_(EventHandler[UserCreated]):
            def handle(self, event) -> None: ...

        assert catalog.handler_specs[0].event_type is Ping

    def test_decorator_returns_class(self, catalog):
        """Classes are returned unchanged."""

        class Plain:
            def handle(self, event: Ping) -> None: ...

        assert catalog.handler()(Plain) is Plain

    def test_rejects_functions(self, catalog):
        """Only classes can be declared."""
        with pytest.raises(CatalogError, match="only be applied to classes"):
            catalog.handler(Ping)(lambda e: None)

    def test_rejects_abstract(self, catalog):
        """Abstract classes cannot be declared."""
        with pytest.raises(CatalogError, match="abstract"):

            @catalog.handler(Ping)
            class Base(EventHandler[Ping]):
                @abstractmethod
                def handle(self, event: Ping) -> None: ...

    def test_rejects_missing_handle(self, catalog):
        """Handler classes need a handle method."""
        with pytest.raises(CatalogError, match="handle"):

            @catalog.handler(Ping)
            class NoHandle:
                pass

    def test_rejects_uninferable_type(self, catalog):
        """Unannotated handle without explicit type is rejected."""
        with pytest.raises(CatalogError, match="infer"):

            @catalog.handler()
            class Vague:
                def handle(self, event) -> None: ...

    def test_rejects_non_middleware(self, catalog):
        """Middleware classes need call or __call__."""
        with pytest.raises(CatalogError, match="call"):

            @catalog.middleware()
            class NotMiddleware:
                pass

    def test_bus_names(self, catalog):
        """bus_names lists distinct names, default bus as None."""

        @catalog.middleware(bus_name="payments")
        class PayLog(Middleware):
            async def call(self, event, next) -> None: ...

        @catalog.handler(Ping)
        class H:
            def handle(self, event) -> None: ...

        assert catalog.bus_names() == ["payments", None]


class TestInstall:
    @pytest.mark.asyncio
    async def test_install_registers_everything(self, catalog):
        """install() wires middleware and handlers with their priorities."""
        trail = []

        @catalog.middleware(priority=0)
        class Inner(Middleware):
            async def call(self, event, next) -> None:
                trail.append("inner")
                await next()

        @catalog.middleware(priority=100)
        class Outer:
            async def __call__(self, event, next) -> None:
                trail.append("outer")
                await next()

        @catalog.handler(priority=-10)
        class Low(EventHandler[OrderPlaced]):
            async def handle(self, event) -> None:
                trail.append("low")

        @catalog.handler(priority=100)
        class High(EventHandler[OrderPlaced]):
            async def handle(self, event) -> None:
                trail.append("high")

        bus = AsyncEventBus()
        subs = catalog.install(bus)

        assert len(subs) == 4
        assert bus.middleware_count() == 2
        assert bus.handler_count(OrderPlaced) == 2

        await bus.publish(OrderPlaced(order_id="o1"))
        assert trail == ["outer", "inner", "high", "low"]

    def test_install_filters_by_bus_name(self, catalog):
        """Only components of the requested bus are installed."""

        @catalog.handler(Ping)
        class Default:
            def handle(self, event) -> None: ...

        @catalog.handler(Ping, bus_name="payments")
        class Payments:
            def handle(self, event) -> None: ...

        default_bus, payments_bus = EventBus(), EventBus()
        catalog.install(default_bus)
        catalog.install(payments_bus, bus_name="payments")
        assert default_bus.handler_count(Ping) == 1
        assert payments_bus.handler_count(Ping) == 1

    def test_factories_supply_dependencies(self, catalog):
        """Factories build classes whose constructors need arguments."""
        sent = []

        @catalog.handler()
        class Mailer(EventHandler[UserCreated]):
            def __init__(self, outbox: list) -> None:
                self.outbox = outbox

            def handle(self, event) -> None:
                self.outbox.append(event.user_id)

        bus = EventBus()
        catalog.install(bus, factories={Mailer: lambda: Mailer(sent)})
        bus.publish(UserCreated(user_id="u9"))
        assert sent == ["u9"]

    def test_missing_factory_raises(self, catalog):
        """Constructor dependencies without a factory raise CatalogError."""

        @catalog.handler()
        class NeedsArgs(EventHandler[UserCreated]):
            def __init__(self, dep) -> None:
                self.dep = dep

            def handle(self, event) -> None: ...

        with pytest.raises(CatalogError, match="factory") as exc_info:
            catalog.install(EventBus())
        assert isinstance(exc_info.value.__cause__, TypeError)

    def test_subscriptions_undo_install(self, catalog):
        """Cancelling the returned subscriptions removes the components."""

        @catalog.handler(Ping)
        class H:
            def handle(self, event) -> None: ...

        bus = EventBus()
        for sub in catalog.install(bus):
            sub.cancel()
        assert bus.handler_count(Ping) == 0
