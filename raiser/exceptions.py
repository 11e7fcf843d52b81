"""Exception hierarchy for raiser.

All custom exceptions inherit from the RaiserError base class.
"""

from types import TracebackType
from typing import Self


class RaiserError(Exception):
    """Base exception for all raiser errors.

    Lets callers catch every framework-specific error with a single
    except clause.
    """


class EventValidationError(RaiserError, ValueError):
    """Event validation failed.

    Raised when fields given to a :class:`~raiser.events.DomainEvent`
    fail pydantic validation.  Wraps ``pydantic.ValidationError``.
    """


class AggregateHandlerError(ExceptionGroup, RaiserError):
    """Every handler failure collected during one publish.

    Raised only under ``ErrorStrategy.CONTINUE_ON_ERROR`` when at least one
    handler failed.  Being an ``ExceptionGroup``, it can be taken apart
    with ``except*``.
    """

    @property
    def errors(self) -> list[Exception]:
        """Underlying exceptions in the order they were raised."""
        return list(self.exceptions)

    @property
    def tracebacks(self) -> list[TracebackType | None]:
        """Tracebacks matching :attr:`errors` one to one."""
        return [exc.__traceback__ for exc in self.exceptions]

    def derive(self, excs) -> Self:  # type: ignore[override]
        return type(self)(self.message, excs)


class CatalogError(RaiserError, TypeError):
    """A declared handler or middleware cannot be wired.

    Raised when a decorated class is abstract, lacks the required
    ``handle``/``call`` capability, has no resolvable event type, or
    cannot be instantiated during :meth:`Catalog.install`.
    """


# -- Plugin errors ------------------------------------------------------------


class PluginError(RaiserError):
    """Base exception for plugin loading errors."""


class PluginNotFoundError(PluginError):
    """Required plugin package is not installed.

    Raised when a plugin declared in the [tool.raiser] plugins list
    cannot be found among installed packages.
    """


class PluginVersionError(PluginError):
    """Installed plugin version does not satisfy the requirement specifier."""


class PluginEntryPointError(PluginError):
    """Plugin has no entry point in the 'raiser.plugins' group."""


class PluginImportError(PluginError):
    """Plugin module failed to import.

    The original exception is chained via ``__cause__``.
    """
