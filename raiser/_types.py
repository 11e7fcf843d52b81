"""Shared type definitions for raiser.

All type aliases use PEP 695 ``type`` statement syntax.  Callables are
typed loosely on purpose: the buses accept both plain functions and
coroutine functions and only decide how to drive the result at call time.
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from raiser.base_bus import ErrorContext

type HandlerFn[E] = Callable[[E], Awaitable[None] | None]
"""A handler bound to one event type."""

type Next = Callable[[], Any]
"""Zero-argument continuation handed to middleware."""

type MiddlewareFn = Callable[[Any, Next], Awaitable[None] | None]
"""Internal storage type for middleware after normalisation."""

type ErrorCallback = Callable[[Exception, "ErrorContext"], None]
"""Synchronous observer invoked for every handler failure."""
