import inspect
from typing import Any

from loguru import logger

from raiser._types import MiddlewareFn, Next
from raiser.base_bus import BaseEventBus, HandlerOutcome
from raiser.registry import HandlerEntry, MiddlewareEntry
from raiser.utils import callable_name

log = logger.bind(source=__name__)


async def _invoke(func: Any, *args: Any) -> None:
    """Call *func* and await its result when it is awaitable."""
    result = func(*args)
    if inspect.isawaitable(result):
        await result


def _link(callback: MiddlewareFn, event: Any, inner: Next) -> Next:
    async def link() -> None:
        started: list[Any] = []

        def next_step() -> Any:
            coro = inner()
            started.append(coro)
            return coro

        await _invoke(callback, event, next_step)

        # next() was called but its coroutine never ran
        for coro in started:
            if inspect.getcoroutinestate(coro) == inspect.CORO_CREATED:
                coro.close()
                raise TypeError(
                    f"{callable_name(callback)} called next() without awaiting it; "
                    "await next() in async middleware, or use EventBus for "
                    "synchronous middleware"
                )

    return link


class AsyncEventBus(BaseEventBus):
    """Asynchronous event bus.

    Runs under asyncio's cooperative scheduling.  Handlers for one event run
    strictly one after another, each awaited before the next starts.
    Handlers and middleware may be coroutine functions or plain callables.
    Recursive publish() calls from inside a handler run to completion
    before that handler resumes.
    """

    async def publish(self, event: Any) -> None:
        """Asynchronously publish *event*.

        The middleware list is snapshotted and folded into a chain, the
        highest priority outermost.  The innermost ``next`` runs the
        handlers registered for exactly ``type(event)``.  A middleware that
        does not call ``next`` ends the pipeline without error; one that
        calls ``next`` but never awaits it is rejected with TypeError.

        Warning:
            Handlers can recursively call publish().  The bus does not
            detect cycles; an unbounded chain ends in RecursionError.

        Args:
            event: Any value; its exact runtime type selects the handlers.

        Post:
            Registrations and cancellations made while this call runs
            apply from the next publish on.

        Raises:
            Exception: Whatever a middleware raises, always.
            TypeError: If a middleware calls ``next`` without awaiting it.
            Exception: The first handler failure under STOP.
            AggregateHandlerError: All handler failures under
                CONTINUE_ON_ERROR, when there was at least one.
        """
        chain = self._registry.middleware()
        log.debug(
            "Publish {} ({} middleware)", type(event).__qualname__, len(chain)
        )
        if not chain:
            await self._run_handlers(event)
            return
        await self._run_chain(event, chain)

    async def _run_chain(self, event: Any, chain: list[MiddlewareEntry]) -> None:
        reached = False

        async def run_handlers() -> None:
            nonlocal reached
            reached = True
            await self._run_handlers(event)

        head: Next = run_handlers
        for entry in reversed(chain):
            head = _link(entry.callback, event, head)
        await head()

        if not reached:
            log.debug("Pipeline for {} short-circuited", type(event).__qualname__)

    async def _run_handlers(self, event: Any) -> None:
        entries = self._registry.handlers(type(event))
        if not entries:
            return
        errors: list[Exception] = []
        for entry in entries:
            outcome = await self._attempt(entry, event)
            self._settle(outcome, event, errors)
        self._raise_collected(event, errors)

    @staticmethod
    async def _attempt(entry: HandlerEntry, event: Any) -> HandlerOutcome:
        """Invoke one handler, capturing its failure instead of raising."""
        try:
            await _invoke(entry.callback, event)
        except Exception as exc:
            return HandlerOutcome(entry, exc)
        return HandlerOutcome(entry)
