"""raiser - typed in-process event dispatch for Python.

Components publish events; handlers registered per exact event type react
to them, wrapped by a priority-ordered middleware pipeline.  Both an
asyncio bus and a synchronous bus are provided.
"""

__version__ = "0.1.0"

from loguru import logger

# Disable all raiser logging by default.  Users opt in with:
#     from loguru import logger
#     logger.enable("raiser")
logger.disable("raiser")

from raiser.async_bus import AsyncEventBus
from raiser.base_bus import BaseEventBus, ErrorContext
from raiser.bus import EventBus
from raiser.catalog import (
    Catalog,
    default_catalog,
    install,
    raiser_handler,
    raiser_middleware,
)
from raiser.events import DomainEvent
from raiser.exceptions import (
    AggregateHandlerError,
    CatalogError,
    EventValidationError,
    PluginEntryPointError,
    PluginError,
    PluginImportError,
    PluginNotFoundError,
    PluginVersionError,
    RaiserError,
)
from raiser.handlers import EventHandler, Middleware
from raiser.strategy import ErrorStrategy
from raiser.subscription import Subscription

# Module-level default bus instance
default_bus = AsyncEventBus()

__all__ = [
    # Version
    "__version__",
    # Buses
    "AsyncEventBus",
    "BaseEventBus",
    "EventBus",
    "default_bus",
    # Configuration
    "ErrorStrategy",
    "ErrorContext",
    # Registration
    "EventHandler",
    "Middleware",
    "Subscription",
    # Declarative wiring
    "Catalog",
    "default_catalog",
    "install",
    "raiser_handler",
    "raiser_middleware",
    # Events
    "DomainEvent",
    # Exception classes
    "RaiserError",
    "AggregateHandlerError",
    "CatalogError",
    "EventValidationError",
    "PluginError",
    "PluginNotFoundError",
    "PluginVersionError",
    "PluginEntryPointError",
    "PluginImportError",
]
