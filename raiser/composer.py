"""Discovery of modules that declare raiser components.

Handler and middleware classes declared with ``@raiser_handler`` /
``@raiser_middleware`` only enter a :class:`~raiser.catalog.Catalog` once
their module is imported.  The composer performs those imports, either for
installed plugin distributions (through the ``raiser.plugins`` entry-point
group) or for dotted module paths inside the application, then installs the
resulting catalog on a bus.

Host applications may list both kinds in their ``pyproject.toml``::

    [tool.raiser]
    plugins = ["billing-handlers>=1.2"]
    local_plugins = ["myapp.handlers", "myapp.middleware"]

Typical usage::

    composer = PluginComposer()
    composer.compose_from_pyproject(Path("pyproject.toml"))
    composer.install(bus)
"""

import importlib
import importlib.metadata
import tomllib
from pathlib import Path

from loguru import logger
from packaging.requirements import Requirement
from packaging.version import Version

from raiser.base_bus import BaseEventBus
from raiser.catalog import Catalog, Factories, default_catalog
from raiser.exceptions import (
    PluginEntryPointError,
    PluginImportError,
    PluginNotFoundError,
    PluginVersionError,
)
from raiser.subscription import Subscription
from raiser.utils import normalize_name

log = logger.bind(source=__name__)

ENTRY_POINT_GROUP = "raiser.plugins"


class PluginComposer:
    """Import plugin and local modules, then wire their catalog into a bus.

    A plugin distribution advertises itself with an entry point in the
    ``raiser.plugins`` group whose value is the module declaring its
    components.  Each plugin or local module is imported at most once per
    composer.
    """

    def __init__(self, catalog: Catalog | None = None) -> None:
        self.catalog = catalog if catalog is not None else default_catalog
        self.loaded_plugins: set[str] = set()
        self.loaded_local_plugins: set[str] = set()

    # -- public API -----------------------------------------------------------

    def compose(self, plugin_requirements: list[str]) -> None:
        """Import installed plugins matching PEP 508 requirement strings.

        Args:
            plugin_requirements: e.g. ``["billing-handlers>=1.2"]``.

        Raises:
            PluginNotFoundError: If a plugin is not installed.
            PluginVersionError: If the installed version is rejected by the
                specifier.
            PluginEntryPointError: If the plugin has no entry point in
                ``raiser.plugins``.
            PluginImportError: If importing the entry point fails.
        """
        for req_str in plugin_requirements:
            self._load_plugin(Requirement(req_str))

    def compose_local(self, module_paths: list[str]) -> None:
        """Import application modules by dotted path.

        Args:
            module_paths: e.g. ``["myapp.handlers"]``.

        Raises:
            PluginImportError: If a module raises during import.
        """
        for module_path in module_paths:
            if module_path in self.loaded_local_plugins:
                log.debug("Local module already loaded: {}", module_path)
                continue
            try:
                importlib.import_module(module_path)
            except Exception as exc:
                log.exception("Failed to import local module '{}'", module_path)
                raise PluginImportError(
                    f"Failed to import local module '{module_path}'"
                ) from exc
            self.loaded_local_plugins.add(module_path)
            log.info("Local module '{}' loaded", module_path)

    def compose_from_pyproject(self, pyproject_path: Path) -> None:
        """Load everything declared under ``[tool.raiser]``.

        External ``plugins`` are imported before ``local_plugins`` so that
        application components are declared, and therefore installed,
        after plugin ones.
        """
        with open(pyproject_path, "rb") as fh:
            config = tomllib.load(fh)

        raiser_config = config.get("tool", {}).get("raiser", {})
        plugin_reqs: list[str] = raiser_config.get("plugins", [])
        local_plugins: list[str] = raiser_config.get("local_plugins", [])

        if not plugin_reqs and not local_plugins:
            log.info("No plugins declared in {}", pyproject_path)
            return
        if plugin_reqs:
            self.compose(plugin_reqs)
        if local_plugins:
            self.compose_local(local_plugins)

    def install(
        self,
        bus: BaseEventBus,
        *,
        bus_name: str | None = None,
        factories: Factories | None = None,
    ) -> list[Subscription]:
        """Install the composed catalog on *bus*.

        See :meth:`raiser.catalog.Catalog.install`.
        """
        return self.catalog.install(bus, bus_name=bus_name, factories=factories)

    # -- internals ------------------------------------------------------------

    def _load_plugin(self, requirement: Requirement) -> None:
        plugin_name = requirement.name
        normalized = normalize_name(plugin_name)
        if normalized in self.loaded_plugins:
            log.debug("Plugin already loaded: {}", plugin_name)
            return

        try:
            dist = importlib.metadata.distribution(plugin_name)
        except importlib.metadata.PackageNotFoundError as err:
            raise PluginNotFoundError(
                f"Required plugin '{plugin_name}' is not installed"
            ) from err

        installed_version = Version(dist.version)
        if not requirement.specifier.contains(installed_version, prereleases=True):
            raise PluginVersionError(
                f"Plugin '{plugin_name}' version {installed_version} "
                f"does not satisfy requirement '{requirement}'"
            )

        eps = importlib.metadata.entry_points(group=ENTRY_POINT_GROUP, name=plugin_name)
        if not eps:
            raise PluginEntryPointError(
                f"Plugin '{plugin_name}' has no entry point "
                f"in group '{ENTRY_POINT_GROUP}'"
            )
        entry_point = next(iter(eps))

        try:
            entry_point.load()
        except Exception as exc:
            log.exception("Failed to load plugin '{}'", plugin_name)
            raise PluginImportError(
                f"Failed to load plugin '{plugin_name}' from {entry_point.value}"
            ) from exc
        self.loaded_plugins.add(normalized)
        log.info("Plugin '{}' v{} loaded", plugin_name, installed_version)
