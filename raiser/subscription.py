"""Cancellation handle returned by every registration call."""

from collections.abc import Callable
from types import TracebackType

from loguru import logger

log = logger.bind(source=__name__)


class Subscription:
    """Handle for one handler or middleware registration.

    ``cancel()`` removes the registration at most once; later calls do
    nothing.  Cancelling while the registration is running as part of an
    in-flight publish is safe: the running pipeline works on a snapshot, so
    the removal takes effect from the next publish.

    Subscriptions double as context managers::

        with bus.on(Ping, handler):
            await bus.publish(Ping())
        # handler no longer registered here
    """

    __slots__ = ("_cancel", "_cancelled", "_label")

    def __init__(self, cancel: Callable[[], None], label: str = "") -> None:
        """Bind the handle to its removal callback.

        Args:
            cancel: Callback that removes the underlying registry entry.
            label: Display name used in log records and ``repr``.
        """
        self._cancel = cancel
        self._cancelled = False
        self._label = label

    @property
    def cancelled(self) -> bool:
        """Whether :meth:`cancel` has been called."""
        return self._cancelled

    def cancel(self) -> None:
        """Remove the registration.  Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        self._cancel()
        log.debug("Cancelled subscription {}", self._label)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<Subscription {self._label or '?'} {state}>"
