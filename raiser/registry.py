"""Registry for handler and middleware entries.

Handlers are indexed by their exact event type; middleware lives in a
single global list.  Every entry carries a priority and a hidden sequence
number taken from one monotonically increasing counter, which makes the
``(priority desc, sequence asc)`` ordering total and deterministic.

The registry never hands out its live lists.  :meth:`Registry.handlers`
and :meth:`Registry.middleware` return sorted copies so that a publish in
progress is unaffected by registrations and cancellations made meanwhile.
"""

from dataclasses import dataclass, field
from itertools import count
from typing import Any

from raiser._types import HandlerFn, MiddlewareFn


# eq=False: entries compare by identity, so duplicate registrations of the
# same callable stay independently removable.
@dataclass(eq=False, frozen=True, slots=True)
class HandlerEntry:
    """One handler registration.

    Attributes:
        event_type: Exact type the handler is bound to.
        callback: Normalised handler callable.
        priority: Higher runs earlier.
        sequence: Registration counter used only as a tie-break.
        name: Display name for logging and error reports.
    """

    event_type: type
    callback: HandlerFn[Any]
    priority: int
    sequence: int
    name: str = field(default="")


@dataclass(eq=False, frozen=True, slots=True)
class MiddlewareEntry:
    """One middleware registration.

    Attributes:
        callback: Normalised ``(event, next)`` callable.
        priority: Higher wraps further out.
        sequence: Registration counter used only as a tie-break.
        name: Display name for logging.
    """

    callback: MiddlewareFn
    priority: int
    sequence: int
    name: str = field(default="")


def _order_key(entry: HandlerEntry | MiddlewareEntry) -> tuple[int, int]:
    return (-entry.priority, entry.sequence)


class Registry:
    """Live handler and middleware entries of one bus."""

    def __init__(self) -> None:
        """Initialize an empty registry.

        Post:
            No handlers, no middleware, sequence counter at 0.
        """
        self._handlers: dict[type, list[HandlerEntry]] = {}
        self._middleware: list[MiddlewareEntry] = []
        self._sequence = count()

    def add_handler(
        self,
        event_type: type,
        callback: HandlerFn[Any],
        priority: int,
        name: str,
    ) -> HandlerEntry:
        """Append a handler entry for *event_type*.

        Args:
            event_type: Exact event type to bind to.  Not validated.
            callback: Handler callable.
            priority: Ordering priority.
            name: Display name.

        Returns:
            The stored entry, needed later for removal.
        """
        entry = HandlerEntry(
            event_type=event_type,
            callback=callback,
            priority=priority,
            sequence=next(self._sequence),
            name=name,
        )
        self._handlers.setdefault(event_type, []).append(entry)
        return entry

    def remove_handler(self, entry: HandlerEntry) -> None:
        """Remove *entry* by identity.  Missing entries are ignored."""
        entries = self._handlers.get(entry.event_type)
        if entries is None:
            return
        for idx, candidate in enumerate(entries):
            if candidate is entry:
                del entries[idx]
                break
        # Clean up empty list
        if not entries:
            del self._handlers[entry.event_type]

    def add_middleware(
        self, callback: MiddlewareFn, priority: int, name: str
    ) -> MiddlewareEntry:
        """Append a middleware entry to the global list."""
        entry = MiddlewareEntry(
            callback=callback,
            priority=priority,
            sequence=next(self._sequence),
            name=name,
        )
        self._middleware.append(entry)
        return entry

    def remove_middleware(self, entry: MiddlewareEntry) -> None:
        """Remove *entry* by identity.  Missing entries are ignored."""
        for idx, candidate in enumerate(self._middleware):
            if candidate is entry:
                del self._middleware[idx]
                return

    def handlers(self, event_type: type) -> list[HandlerEntry]:
        """Return an ordered snapshot of the handlers bound to *event_type*.

        Only the exact type is consulted; handlers registered for base
        classes are not included.

        Returns:
            New list sorted by priority (high to low), then registration
            order.  Empty when nothing is registered.
        """
        entries = self._handlers.get(event_type)
        if not entries:
            return []
        return sorted(entries, key=_order_key)

    def middleware(self) -> list[MiddlewareEntry]:
        """Return an ordered snapshot of the middleware, outermost first."""
        return sorted(self._middleware, key=_order_key)

    def handler_count(self, event_type: type) -> int:
        """Number of live handlers bound to exactly *event_type*."""
        return len(self._handlers.get(event_type, ()))

    def middleware_count(self) -> int:
        """Number of live middleware."""
        return len(self._middleware)
