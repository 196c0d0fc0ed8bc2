"""Shared test fixtures for filmrelay test suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from unittest.mock import AsyncMock

import pytest

from filmrelay.domain.entities import CatalogItem, StreamCandidate, TitleInfo
from filmrelay.domain.exceptions import PluginNotFoundError

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def inception_item() -> CatalogItem:
    return CatalogItem(id="purstream:movie:42", type="movie", name="Inception")


@pytest.fixture()
def inception_info() -> TitleInfo:
    return TitleInfo(title="Inception", year="2010", slug="movie/inception-1375666")


# ---------------------------------------------------------------------------
# Fake ports
# ---------------------------------------------------------------------------


@dataclass
class FakeSource:
    """Scriptable source satisfying SourceAdapterPort.

    Every operation is an ``AsyncMock`` so tests can both script results
    and assert on calls.
    """

    name: str = "purstream"
    search_results: list[CatalogItem] = field(default_factory=list)
    streams: list[StreamCandidate] = field(default_factory=list)
    episode_id: str | None = None
    has_catalog: bool = True

    def __post_init__(self) -> None:
        self.search_by_title = AsyncMock(return_value=self.search_results)
        self.get_catalog_page = AsyncMock(return_value=[])
        self.get_details = AsyncMock(return_value=None)
        self.resolve_episode = AsyncMock(return_value=self.episode_id)
        self.get_streams = AsyncMock(return_value=self.streams)
        self.cleanup = AsyncMock()


class FakeRegistry:
    """In-memory SourceRegistryPort; insertion order is the priority order."""

    def __init__(self, sources: list[Any]) -> None:
        self._sources = {s.name: s for s in sources}

    def discover(self) -> None:
        return None

    def list_names(self) -> list[str]:
        return sorted(self._sources)

    def get(self, name: str) -> Any:
        try:
            return self._sources[name]
        except KeyError:
            raise PluginNotFoundError(name) from None

    def ordered(self) -> list[Any]:
        return list(self._sources.values())


@dataclass
class FakeResolutionConfig:
    timeout_seconds: float = 1.0
    max_concurrent: int = 5
    match_threshold: float = 0.7
    fallback_max_words: int = 3


@pytest.fixture()
def resolution_config() -> FakeResolutionConfig:
    return FakeResolutionConfig()


@pytest.fixture()
def mock_metadata(inception_info: TitleInfo) -> AsyncMock:
    """Mock MetadataClientPort resolving every id to Inception."""
    metadata = AsyncMock()
    metadata.get_title_info = AsyncMock(return_value=inception_info)
    return metadata


@pytest.fixture()
def make_source() -> type[FakeSource]:
    """Factory for scriptable fake sources."""
    return FakeSource


@pytest.fixture()
def make_registry() -> type[FakeRegistry]:
    """Factory for in-memory source registries."""
    return FakeRegistry
