"""Synchronous event bus."""

import inspect
from typing import Any

from loguru import logger

from raiser._types import MiddlewareFn, Next
from raiser.base_bus import BaseEventBus, HandlerOutcome
from raiser.registry import HandlerEntry, MiddlewareEntry
from raiser.utils import callable_name

log = logger.bind(source=__name__)


def _invoke(func: Any, *args: Any) -> None:
    """Call *func*, refusing awaitable results.

    Raises:
        TypeError: If *func* returned an awaitable, which this bus cannot
            drive.  Coroutines are closed first so they do not leak a
            "never awaited" warning.
    """
    result = func(*args)
    if inspect.isawaitable(result):
        close = getattr(result, "close", None)
        if close is not None:
            close()
        raise TypeError(
            f"{callable_name(func)} returned an awaitable; "
            "use AsyncEventBus for async handlers and middleware"
        )


def _link(callback: MiddlewareFn, event: Any, inner: Next) -> Next:
    def link() -> None:
        _invoke(callback, event, inner)

    return link


class EventBus(BaseEventBus):
    """Synchronous event bus.

    Executes handlers synchronously in priority order.
    Recursive publish() calls execute directly (no queue).
    """

    def publish(self, event: Any) -> None:
        """Synchronously publish *event*.

        Same pipeline as :meth:`AsyncEventBus.publish`, driven without an
        event loop: middleware receive a plain ``next()`` and every
        handler returns before the next one starts.

        Warning:
            Handlers can recursively call publish().  The bus does not
            detect cycles; an unbounded chain ends in RecursionError.

        Args:
            event: Any value; its exact runtime type selects the handlers.

        Raises:
            TypeError: If a middleware returns an awaitable.
            Exception: Whatever a middleware raises, always.
            Exception: The first handler failure under STOP.
            AggregateHandlerError: All handler failures under
                CONTINUE_ON_ERROR, when there was at least one.
        """
        chain = self._registry.middleware()
        log.debug(
            "Publish {} ({} middleware)", type(event).__qualname__, len(chain)
        )
        if not chain:
            self._run_handlers(event)
            return
        self._run_chain(event, chain)

    def _run_chain(self, event: Any, chain: list[MiddlewareEntry]) -> None:
        reached = False

        def run_handlers() -> None:
            nonlocal reached
            reached = True
            self._run_handlers(event)

        head: Next = run_handlers
        for entry in reversed(chain):
            head = _link(entry.callback, event, head)
        head()

        if not reached:
            log.debug("Pipeline for {} short-circuited", type(event).__qualname__)

    def _run_handlers(self, event: Any) -> None:
        entries = self._registry.handlers(type(event))
        if not entries:
            return
        errors: list[Exception] = []
        for entry in entries:
            self._settle(self._attempt(entry, event), event, errors)
        self._raise_collected(event, errors)

    @staticmethod
    def _attempt(entry: HandlerEntry, event: Any) -> HandlerOutcome:
        """Invoke one handler, capturing its failure instead of raising."""
        try:
            _invoke(entry.callback, event)
        except Exception as exc:
            return HandlerOutcome(entry, exc)
        return HandlerOutcome(entry)
