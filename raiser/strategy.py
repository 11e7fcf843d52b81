"""Handler failure policies."""

from enum import StrEnum


class ErrorStrategy(StrEnum):
    """How a bus reacts when a handler raises.

    The strategy is fixed when the bus is constructed.  Middleware errors
    are never subject to it: they always propagate to the publisher.
    """

    STOP = "stop"
    """Re-raise the first failure immediately; remaining handlers are skipped."""

    CONTINUE_ON_ERROR = "continue_on_error"
    """Run every handler, then raise one aggregate of all failures."""

    SWALLOW = "swallow"
    """Run every handler and never raise; failures only reach ``on_error``."""
