from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Any

from loguru import logger

from raiser._types import ErrorCallback, HandlerFn
from raiser.exceptions import AggregateHandlerError
from raiser.handlers import EventHandler, as_handler_fn, as_middleware_fn
from raiser.registry import HandlerEntry, Registry
from raiser.strategy import ErrorStrategy
from raiser.subscription import Subscription
from raiser.utils import callable_name, first_param_type

log = logger.bind(source=__name__)


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Where a handler failure happened, passed to ``on_error``.

    Attributes:
        event: The event being published.
        event_type: Exact type used for routing.
        handler_name: Display name of the failed handler.
        priority: Priority the handler was registered with.
        traceback: Traceback of the failure.
    """

    event: Any
    event_type: type
    handler_name: str
    priority: int
    traceback: TracebackType | None


@dataclass(frozen=True, slots=True)
class HandlerOutcome:
    """Result of invoking one handler: success, or the exception it raised."""

    entry: HandlerEntry
    error: Exception | None = None


class BaseEventBus(ABC):
    """Abstract base class for event buses.

    Provides everything except the execution of ``publish`` itself:
    - handler and middleware registration, each yielding a Subscription
    - the registry of live entries
    - reporting of handler failures and application of the ErrorStrategy

    Subclasses must implement:
    - publish() - run the middleware chain and handler loop
    """

    def __init__(
        self,
        *,
        error_strategy: ErrorStrategy | str = ErrorStrategy.STOP,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Initialize bus.

        Args:
            error_strategy: Policy for handler failures, fixed for the
                lifetime of the bus.  Accepts the enum or its value.
            on_error: Optional callback invoked synchronously with every
                handler failure, whatever the strategy.

        Raises:
            ValueError: If *error_strategy* is not a known strategy.
        """
        self._error_strategy = ErrorStrategy(error_strategy)
        self._on_error = on_error
        self._registry = Registry()

    @property
    def error_strategy(self) -> ErrorStrategy:
        return self._error_strategy

    @property
    def on_error(self) -> ErrorCallback | None:
        return self._on_error

    # -- registration ---------------------------------------------------------

    def register[E](
        self,
        event_type: type[E],
        handler: EventHandler[E],
        *,
        priority: int = 0,
    ) -> Subscription:
        """Register a handler object exposing ``handle(event)``.

        Args:
            event_type: Exact event type to handle.  Subclasses of it are
                not delivered.
            handler: Object whose ``handle`` method receives the event.
            priority: Higher runs earlier; ties keep registration order.

        Returns:
            Subscription that removes exactly this registration.

        Raises:
            TypeError: If *handler* has no callable ``handle``.
        """
        return self._add_handler(event_type, as_handler_fn(handler), priority)

    def on[E](
        self,
        event_type: type[E],
        handler: HandlerFn[E],
        *,
        priority: int = 0,
    ) -> Subscription:
        """Register a bare callable as handler.

        Args:
            event_type: Exact event type to handle.
            handler: Callable taking the event.
            priority: Higher runs earlier; ties keep registration order.

        Returns:
            Subscription that removes exactly this registration.

        Raises:
            TypeError: If *handler* is not callable.
        """
        if not callable(handler):
            raise TypeError(f"handler must be callable, got {type(handler).__name__}")
        return self._add_handler(event_type, handler, priority)

    def subscribe[F: Callable[..., Any]](
        self,
        event_type: type | None = None,
        *,
        priority: int = 0,
    ) -> Callable[[F], F]:
        """Decorator to register a plain function as handler.

        When *event_type* is omitted it is read from the annotation of the
        function's first parameter.  The Subscription is stored on the
        function as ``subscription``::

            @bus.subscribe()
            async def on_ping(event: Ping) -> None: ...

            on_ping.subscription.cancel()

        Returns:
            Decorator function that returns the original function.

        Raises:
            TypeError: If the event type cannot be inferred, or *func*
                cannot carry attributes (use :meth:`on` instead).
        """

        def decorator(func: F) -> F:
            if not hasattr(func, "__dict__"):
                raise TypeError(
                    f"{callable_name(func)} cannot hold a subscription; "
                    "register it with on() instead"
                )
            resolved = event_type if event_type is not None else first_param_type(func)
            func.subscription = self.on(resolved, func, priority=priority)  # type: ignore[attr-defined]
            return func

        return decorator

    def add_middleware(self, middleware: Any, *, priority: int = 0) -> Subscription:
        """Add a middleware wrapping every publish.

        Args:
            middleware: Callable ``(event, next)``, or an object exposing
                ``call(event, next)``.
            priority: Higher wraps further out; ties keep registration order.

        Returns:
            Subscription that removes exactly this middleware.

        Raises:
            TypeError: If *middleware* is neither shape.
        """
        callback = as_middleware_fn(middleware)
        name = callable_name(callback)
        entry = self._registry.add_middleware(callback, priority, name)
        log.debug("Added middleware {} (priority={})", name, priority)
        return Subscription(lambda: self._registry.remove_middleware(entry), name)

    def handler_count(self, event_type: type) -> int:
        """Number of live handlers bound to exactly *event_type*."""
        return self._registry.handler_count(event_type)

    def middleware_count(self) -> int:
        """Number of live middleware."""
        return self._registry.middleware_count()

    def _add_handler(
        self, event_type: type, callback: HandlerFn[Any], priority: int
    ) -> Subscription:
        name = callable_name(callback)
        entry = self._registry.add_handler(event_type, callback, priority, name)
        log.debug(
            "Registered {} for {} (priority={})",
            name,
            event_type.__qualname__,
            priority,
        )
        return Subscription(
            lambda: self._registry.remove_handler(entry),
            f"{name} -> {event_type.__qualname__}",
        )

    # -- dispatch -------------------------------------------------------------

    @abstractmethod
    def publish(self, event: Any) -> Any:
        """Dispatch *event* through the middleware chain to its handlers.

        Raises:
            Exception: Whatever a middleware raises, always.
            Exception: The first handler failure under STOP.
            AggregateHandlerError: All handler failures under
                CONTINUE_ON_ERROR, when there was at least one.
        """
        raise NotImplementedError

    def _settle(
        self, outcome: HandlerOutcome, event: Any, errors: list[Exception]
    ) -> None:
        """Report a failed outcome and apply the error strategy to it.

        Args:
            outcome: Result of one handler invocation.
            event: Event being published.
            errors: Failures collected so far in this publish; appended to
                under CONTINUE_ON_ERROR.

        Raises:
            Exception: The handler's own exception under STOP.
        """
        error = outcome.error
        if error is None:
            return
        entry = outcome.entry
        log.debug(
            "Handler {} failed on {}: {!r} (strategy={})",
            entry.name,
            type(event).__qualname__,
            error,
            self._error_strategy.value,
        )
        if self._on_error is not None:
            self._on_error(
                error,
                ErrorContext(
                    event=event,
                    event_type=type(event),
                    handler_name=entry.name,
                    priority=entry.priority,
                    traceback=error.__traceback__,
                ),
            )
        match self._error_strategy:
            case ErrorStrategy.STOP:
                raise error
            case ErrorStrategy.CONTINUE_ON_ERROR:
                errors.append(error)
            case ErrorStrategy.SWALLOW:
                pass

    @staticmethod
    def _raise_collected(event: Any, errors: list[Exception]) -> None:
        """Raise the aggregate of *errors* if any were collected."""
        if not errors:
            return
        count = len(errors)
        raise AggregateHandlerError(
            f"{count} handler error{'' if count == 1 else 's'} occurred "
            f"while publishing {type(event).__qualname__}",
            errors,
        )
