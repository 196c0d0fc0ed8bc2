"""Source registry with lazy loading and in-memory caching."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog

from filmrelay.domain.exceptions import DuplicatePluginError, PluginNotFoundError
from filmrelay.domain.ports.source import SourceAdapterPort

from .loader import load_python_plugin

log = structlog.get_logger(__name__)


class PluginRegistry:
    """
    Lazy-loading source registry.

    discover():
      - indexes ``*.py`` files only (no Python execution); files starting
        with ``_`` are skipped

    get()/ordered()/load_all()/list_names():
      - import plugin files on first use and cache the instances by name

    ordered() returns sources in *priority* order; sources not named in the
    priority list follow alphabetically.
    """

    def __init__(self, plugin_dir: Path, priority: Sequence[str] = ()) -> None:
        self._plugin_dir = plugin_dir
        self._priority = list(priority)
        self._discovered: bool = False
        self._loaded: bool = False
        self._paths: list[Path] = []
        self._cache: dict[str, SourceAdapterPort] = {}

    @property
    def plugin_dir(self) -> Path:
        return self._plugin_dir

    def discover(self) -> None:
        if self._discovered:
            return

        self._discovered = True
        self._paths = []

        if not self._plugin_dir.is_dir():
            log.warning("plugin_directory_not_found", directory=str(self._plugin_dir))
            return

        self._paths = sorted(
            (
                p
                for p in self._plugin_dir.iterdir()
                if p.is_file() and p.suffix == ".py" and not p.name.startswith("_")
            ),
            key=lambda p: p.name,
        )

        log.info(
            "plugins_discovered",
            count=len(self._paths),
            directory=str(self._plugin_dir),
        )

        if not self._paths:
            log.warning("no_plugins_found", directory=str(self._plugin_dir))

    def load_all(self) -> None:
        """
        Import every discovered plugin file once.

        Raises DuplicatePluginError when two files export the same name, and
        PluginLoadError for a broken file.
        """
        if self._loaded:
            return
        self.discover()

        for path in self._paths:
            plugin = load_python_plugin(path)
            if plugin.name in self._cache:
                raise DuplicatePluginError(
                    f"Plugin name '{plugin.name}' already exists"
                )
            self._cache[plugin.name] = plugin
            log.info("plugin_loaded", plugin_name=plugin.name, plugin_file=path.name)

        self._loaded = True

        unknown = [name for name in self._priority if name not in self._cache]
        if unknown:
            log.warning("priority_names_unknown", names=unknown)

    def list_names(self) -> list[str]:
        self.load_all()
        return sorted(self._cache)

    def get(self, name: str) -> SourceAdapterPort:
        self.load_all()
        try:
            return self._cache[name]
        except KeyError:
            raise PluginNotFoundError(f"Plugin '{name}' not found") from None

    def ordered(self) -> list[SourceAdapterPort]:
        self.load_all()
        rank = {name: i for i, name in enumerate(self._priority)}
        names = sorted(self._cache, key=lambda n: (rank.get(n, len(rank)), n))
        return [self._cache[n] for n in names]

    async def cleanup_all(self) -> None:
        """Release the HTTP clients held by loaded plugins."""
        for name, plugin in self._cache.items():
            cleanup = getattr(plugin, "cleanup", None)
            if cleanup is None:
                continue
            try:
                await cleanup()
            except Exception:
                log.warning("plugin_cleanup_failed", plugin_name=name, exc_info=True)
