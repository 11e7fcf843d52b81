"""Handler and middleware capabilities.

Both calling conventions the buses accept (a bare callable, or an object
exposing one method) are collapsed into a single callable here, at
registration time, so the dispatch loops only ever deal with one shape.
"""

import typing
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import Any

from raiser._types import HandlerFn, MiddlewareFn, Next
from raiser.utils import first_param_type


class EventHandler[E](ABC):
    """Class-based handler for events of type ``E``.

    Example::

        class SendWelcome(EventHandler[UserCreated]):
            async def handle(self, event: UserCreated) -> None:
                await mailer.send(event.email)

        bus.register(UserCreated, SendWelcome())
    """

    @abstractmethod
    def handle(self, event: E) -> Awaitable[None] | None:
        """Process one event.  Raising is reported per the bus strategy."""
        raise NotImplementedError


class Middleware(ABC):
    """Class-based middleware.

    ``call`` receives every published event together with ``next``; it
    must call (and, on an async bus, await) ``next()`` to continue inward,
    or return without calling it to short-circuit the pipeline.
    """

    @abstractmethod
    def call(self, event: Any, next: Next) -> Awaitable[None] | None:
        raise NotImplementedError


def as_handler_fn(handler: Any) -> HandlerFn[Any]:
    """Return the bound ``handle`` method of a handler object.

    Raises:
        TypeError: If *handler* has no callable ``handle``.
    """
    handle = getattr(handler, "handle", None)
    if not callable(handle):
        raise TypeError(
            f"{type(handler).__qualname__} does not expose a callable 'handle'"
        )
    return handle


def as_middleware_fn(middleware: Any) -> MiddlewareFn:
    """Normalise a middleware value to an ``(event, next)`` callable.

    An object exposing a callable ``call`` is unwrapped to that method;
    any other callable is used as-is.

    Raises:
        TypeError: If *middleware* is neither.
    """
    call = getattr(middleware, "call", None)
    if callable(call):
        return call
    if callable(middleware):
        return middleware
    raise TypeError(
        f"middleware must be callable or expose 'call', "
        f"got {type(middleware).__qualname__}"
    )


def handler_event_type(cls: type) -> type:
    """Infer the event type a handler class is written for.

    Looks at a parameterised ``EventHandler[E]`` base first, then falls
    back to the annotation of ``handle``'s event parameter.

    Raises:
        TypeError: If neither source yields a class.
    """
    for base in getattr(cls, "__orig_bases__", ()):
        if typing.get_origin(base) is EventHandler:
            (arg,) = typing.get_args(base)
            if isinstance(arg, type):
                return arg
    handle = getattr(cls, "handle", None)
    if handle is None:
        raise TypeError(f"{cls.__qualname__} does not define 'handle'")
    return first_param_type(handle, skip_self=True)

