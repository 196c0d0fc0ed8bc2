"""Tests for CatalogUseCase."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

from filmrelay.application.use_cases.catalog import CatalogUseCase
from filmrelay.domain.entities import CatalogItem


def _item(item_id: str, content_type: str = "movie") -> CatalogItem:
    return CatalogItem(id=item_id, type=content_type, name=item_id)  # type: ignore[arg-type]


class TestListCatalog:
    async def test_page_from_skip(self, make_source, make_registry) -> None:
        src = make_source(name="xalaflix")
        src.get_catalog_page = AsyncMock(return_value=[_item("xalaflix:movie:1")])
        uc = CatalogUseCase(sources=make_registry([src]), timeout_seconds=1.0)

        items = await uc.list_catalog("movie", "xalaflix", skip=40)

        assert [i.id for i in items] == ["xalaflix:movie:1"]
        src.get_catalog_page.assert_awaited_once_with("movie", 3)

    async def test_search_filters_type(self, make_source, make_registry) -> None:
        src = make_source(
            name="purstream",
            search_results=[_item("purstream:movie:1"), _item("purstream:series:2", "series")],
        )
        uc = CatalogUseCase(sources=make_registry([src]), timeout_seconds=1.0)

        items = await uc.list_catalog("series", "purstream", search="dark")

        assert [i.id for i in items] == ["purstream:series:2"]
        src.search_by_title.assert_awaited_once_with("dark")
        src.get_catalog_page.assert_not_awaited()

    async def test_unknown_source(self, make_registry) -> None:
        uc = CatalogUseCase(sources=make_registry([]), timeout_seconds=1.0)
        assert await uc.list_catalog("movie", "ghost") == []

    async def test_source_failure(self, make_source, make_registry) -> None:
        src = make_source(name="frenchstream")
        src.get_catalog_page = AsyncMock(side_effect=RuntimeError("boom"))
        uc = CatalogUseCase(sources=make_registry([src]), timeout_seconds=1.0)
        assert await uc.list_catalog("movie", "frenchstream") == []

    async def test_source_timeout(self, make_source, make_registry) -> None:
        async def hang(*_args: object) -> list[CatalogItem]:
            await asyncio.sleep(10)
            return []

        src = make_source(name="frenchstream")
        src.get_catalog_page = AsyncMock(side_effect=hang)
        uc = CatalogUseCase(sources=make_registry([src]), timeout_seconds=0.05)
        assert await uc.list_catalog("movie", "frenchstream") == []


class TestGetMeta:
    async def test_routes_to_owning_source(self, make_source, make_registry) -> None:
        detail = _item("xalaflix:series:88", "series")
        xal = make_source(name="xalaflix")
        xal.get_details = AsyncMock(return_value=detail)
        uc = CatalogUseCase(sources=make_registry([xal]), timeout_seconds=1.0)

        assert await uc.get_meta("xalaflix:series:88") is detail
        xal.get_details.assert_awaited_once_with("xalaflix:series:88")

    async def test_external_id(self, make_source, make_registry) -> None:
        src = make_source()
        uc = CatalogUseCase(sources=make_registry([src]), timeout_seconds=1.0)
        assert await uc.get_meta("tt1375666") is None
        src.get_details.assert_not_awaited()

    async def test_unknown_source(self, make_registry) -> None:
        uc = CatalogUseCase(sources=make_registry([]), timeout_seconds=1.0)
        assert await uc.get_meta("ghost:movie:1") is None
