from __future__ import annotations

import importlib.util
import traceback
from pathlib import Path
from types import ModuleType
from typing import Any

import structlog

from filmrelay.domain.exceptions import PluginLoadError
from filmrelay.domain.ports.source import SourceAdapterPort

log = structlog.get_logger(__name__)

# Operations every source plugin must expose.
_REQUIRED_METHODS: tuple[str, ...] = (
    "search_by_title",
    "get_catalog_page",
    "get_details",
    "resolve_episode",
    "get_streams",
)


def _import_module_from_path(path: Path) -> ModuleType:
    module_name = f"filmrelay_source_plugin_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, str(path))
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"Could not create import spec for {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)  # type: ignore[union-attr]
    except SyntaxError as e:
        tb = traceback.format_exc()
        raise PluginLoadError(f"SyntaxError while importing {path}:\n{tb}") from e
    except Exception as e:
        tb = traceback.format_exc()
        raise PluginLoadError(f"Error while importing {path}:\n{tb}") from e

    return module


def load_python_plugin(path: Path) -> SourceAdapterPort:
    """Import *path* and return its module-level ``plugin`` object."""
    try:
        module = _import_module_from_path(path)
        if not hasattr(module, "plugin"):
            raise PluginLoadError("Plugin must export 'plugin' variable")

        plugin: Any = getattr(module, "plugin")
        missing = [m for m in _REQUIRED_METHODS if not callable(getattr(plugin, m, None))]
        if missing:
            raise PluginLoadError(f"Plugin is missing methods: {', '.join(missing)}")
        if (
            not hasattr(plugin, "name")
            or not isinstance(plugin.name, str)
            or not plugin.name
        ):
            raise PluginLoadError("Plugin must have non-empty 'name' attribute")
        if ":" in plugin.name:
            raise PluginLoadError("Plugin name must not contain ':'")

        return plugin
    except PluginLoadError as e:
        log.error(
            "plugin_load_failed",
            plugin_file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise
