"""Tests for PluginRegistry and the Python plugin loader."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from filmrelay.domain.exceptions import (
    DuplicatePluginError,
    PluginLoadError,
    PluginNotFoundError,
)
from filmrelay.infrastructure.plugins.loader import load_python_plugin
from filmrelay.infrastructure.plugins.registry import PluginRegistry

_SOURCE_TEMPLATE = """\
class _Plugin:
    name = "{name}"
    async def search_by_title(self, query):
        return []
    async def get_catalog_page(self, content_type, page=1):
        return []
    async def get_details(self, item_id):
        return None
    async def resolve_episode(self, series_id, season, episode):
        return None
    async def get_streams(self, resolved_id):
        return []
    async def cleanup(self):
        self.closed = True
plugin = _Plugin()
"""


def _write_plugin(tmp_path: Path, filename: str, code: str) -> Path:
    """Write a Python plugin file with proper formatting."""
    path = tmp_path / filename
    path.write_text(textwrap.dedent(code))
    return path


def _write_source(tmp_path: Path, name: str, filename: str | None = None) -> Path:
    return _write_plugin(
        tmp_path, filename or f"{name}.py", _SOURCE_TEMPLATE.format(name=name)
    )


class TestLoader:
    def test_loads_plugin_object(self, tmp_path: Path) -> None:
        path = _write_source(tmp_path, "alpha")
        plugin = load_python_plugin(path)
        assert plugin.name == "alpha"

    def test_missing_plugin_export(self, tmp_path: Path) -> None:
        path = _write_plugin(tmp_path, "empty.py", "x = 1\n")
        with pytest.raises(PluginLoadError, match="export 'plugin'"):
            load_python_plugin(path)

    def test_missing_methods(self, tmp_path: Path) -> None:
        path = _write_plugin(
            tmp_path,
            "partial.py",
            """\
            class _Plugin:
                name = "partial"
                async def search_by_title(self, query):
                    return []
            plugin = _Plugin()
            """,
        )
        with pytest.raises(PluginLoadError, match="get_streams"):
            load_python_plugin(path)

    def test_name_with_colon_rejected(self, tmp_path: Path) -> None:
        path = _write_source(tmp_path, "bad:name", filename="bad.py")
        with pytest.raises(PluginLoadError, match="':'"):
            load_python_plugin(path)

    def test_empty_name_rejected(self, tmp_path: Path) -> None:
        path = _write_source(tmp_path, "", filename="noname.py")
        with pytest.raises(PluginLoadError, match="non-empty"):
            load_python_plugin(path)

    def test_import_error_wrapped(self, tmp_path: Path) -> None:
        path = _write_plugin(tmp_path, "broken.py", "raise RuntimeError('boom')\n")
        with pytest.raises(PluginLoadError, match="boom"):
            load_python_plugin(path)

    def test_syntax_error_wrapped(self, tmp_path: Path) -> None:
        path = _write_plugin(tmp_path, "syntax.py", "def (:\n")
        with pytest.raises(PluginLoadError, match="SyntaxError"):
            load_python_plugin(path)


class TestRegistry:
    def test_missing_directory(self, tmp_path: Path) -> None:
        registry = PluginRegistry(tmp_path / "nope")
        assert registry.list_names() == []
        assert registry.ordered() == []

    def test_skips_private_and_non_python_files(self, tmp_path: Path) -> None:
        _write_source(tmp_path, "alpha")
        _write_source(tmp_path, "hidden", filename="_hidden.py")
        (tmp_path / "notes.txt").write_text("not a plugin")

        assert PluginRegistry(tmp_path).list_names() == ["alpha"]

    def test_get_unknown(self, tmp_path: Path) -> None:
        _write_source(tmp_path, "alpha")
        with pytest.raises(PluginNotFoundError):
            PluginRegistry(tmp_path).get("beta")

    def test_get_caches_instance(self, tmp_path: Path) -> None:
        _write_source(tmp_path, "alpha")
        registry = PluginRegistry(tmp_path)
        assert registry.get("alpha") is registry.get("alpha")

    def test_duplicate_names(self, tmp_path: Path) -> None:
        _write_source(tmp_path, "alpha", filename="a.py")
        _write_source(tmp_path, "alpha", filename="b.py")
        with pytest.raises(DuplicatePluginError):
            PluginRegistry(tmp_path).load_all()

    def test_ordered_follows_priority_then_name(self, tmp_path: Path) -> None:
        for name in ("delta", "charlie", "bravo", "alpha"):
            _write_source(tmp_path, name)
        registry = PluginRegistry(tmp_path, priority=["charlie", "alpha", "ghost"])

        assert [p.name for p in registry.ordered()] == [
            "charlie",
            "alpha",
            "bravo",
            "delta",
        ]

    async def test_cleanup_all(self, tmp_path: Path) -> None:
        _write_source(tmp_path, "alpha")
        registry = PluginRegistry(tmp_path)
        plugin = registry.get("alpha")

        await registry.cleanup_all()

        assert plugin.closed is True

    async def test_cleanup_failure_does_not_propagate(self, tmp_path: Path) -> None:
        _write_plugin(
            tmp_path,
            "flaky.py",
            _SOURCE_TEMPLATE.format(name="flaky").replace(
                "self.closed = True", "raise RuntimeError('close failed')"
            ),
        )
        registry = PluginRegistry(tmp_path)
        registry.load_all()

        await registry.cleanup_all()
