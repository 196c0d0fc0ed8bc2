"""Unit tests for the purstream.me plugin."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

import httpx
import pytest
import respx

from filmrelay.domain.exceptions import AdapterFailure

_PLUGIN_PATH = Path(__file__).resolve().parents[3] / "plugins" / "purstream.py"

_API = "https://api.purstream.me/api/v1"


@pytest.fixture()
def purstream_mod():
    """Import purstream plugin module."""
    spec = importlib.util.spec_from_file_location("purstream", _PLUGIN_PATH)
    mod = importlib.util.module_from_spec(spec)
    sys.modules["purstream"] = mod
    spec.loader.exec_module(mod)
    yield mod
    sys.modules.pop("purstream", None)


@pytest.fixture()
async def plugin(purstream_mod):
    p = purstream_mod.PurstreamPlugin()
    yield p
    await p.cleanup()


def _envelope(items: object) -> dict:
    return {"type": "success", "data": {"items": items}}


# ---------------------------------------------------------------------------
# JSON fixtures
# ---------------------------------------------------------------------------

SEARCH_RESPONSE = _envelope(
    {
        "movies": {
            "items": [
                {
                    "id": 3830,
                    "title": "Inception",
                    "type": "movie",
                    "release_date": "2010-07-16",
                    "large_poster_path": "https://img/inception.jpg",
                    "wallpaper_poster_path": "https://img/inception-bg.jpg",
                },
                {
                    "id": 77,
                    "title": "Dark",
                    "type": "tv",
                    "release_date": "2017-12-01",
                    "large_poster_path": "https://img/dark.jpg",
                },
                {"title": "No id"},
            ]
        }
    }
)

CATALOG_RESPONSE = _envelope(
    {
        "data": [
            {"id": 1, "title": "Film A", "release_date": "2020-01-01"},
            {"id": 2, "title": "Film B", "release_date": None},
        ]
    }
)

SHEET_SERIES = _envelope(
    {
        "title": "Dark",
        "overview": "Time travel in Winden.",
        "releaseDate": "2017-12-01",
        "seasons": 2,
        "posters": {"large": "https://img/dark-l.jpg", "wallpaper": "https://img/dark-w.jpg"},
        "categories": [{"name": "Drame"}, {"name": "Science-Fiction"}, {}],
    }
)

SEASON_1 = _envelope(
    {
        "episodes": [
            {"episode": 2, "name": "Mensonges", "airDate": "2017-12-01"},
            {"episode": 1, "name": "Secrets", "airDate": "2017-12-01"},
        ]
    }
)

SEASON_2 = _envelope({"episodes": [{"episode": "1", "formattedName": "S2E1"}, {"episode": "x"}]})

STREAM_RESPONSE = _envelope(
    {
        "sources": [
            {"stream_url": "https://cdn.purstream/a.mp4", "source_name": "VF", "format": "mp4"},
            {"stream_url": "https://cdn.purstream/b.m3u8", "source_name": "VOSTFR", "format": "hls"},
            {"source_name": "broken"},
        ]
    }
)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_year(self, purstream_mod) -> None:
        assert purstream_mod._year("2010-07-16") == "2010"
        assert purstream_mod._year(None) == ""
        assert purstream_mod._year("soon") == ""

    def test_unwrap_requires_success(self, purstream_mod) -> None:
        assert purstream_mod._unwrap({"type": "error", "data": {}}) is None
        assert purstream_mod._unwrap(_envelope({"a": {"b": 1}}), "a", "b") == 1
        assert purstream_mod._unwrap(_envelope({"a": 1}), "a", "b") is None


class TestPluginAttributes:
    def test_name(self, purstream_mod) -> None:
        assert purstream_mod.plugin.name == "purstream"
        assert purstream_mod.plugin.has_catalog is True

    def test_api_url(self, purstream_mod) -> None:
        assert purstream_mod.plugin.api_url == _API


class TestSearch:
    @respx.mock
    async def test_search(self, plugin) -> None:
        route = respx.get(f"{_API}/search-bar/search/Inception").respond(
            200, json=SEARCH_RESPONSE
        )

        items = await plugin.search_by_title("Inception")

        assert [i.id for i in items] == ["purstream:movie:3830", "purstream:series:77"]
        assert items[0].name == "Inception"
        assert items[0].release_year == "2010"
        assert items[0].background == "https://img/inception-bg.jpg"
        assert items[1].type == "series"
        sent = route.calls[0].request.headers
        assert sent["origin"] == "https://purstream.me"
        assert sent["accept"] == "application/json"

    @respx.mock
    async def test_query_is_path_encoded(self, plugin) -> None:
        route = respx.get(f"{_API}/search-bar/search/Am%C3%A9lie%20Poulain").respond(
            200, json=_envelope({"movies": {"items": []}})
        )
        assert await plugin.search_by_title("Amélie Poulain") == []
        assert route.called

    async def test_empty_query(self, plugin) -> None:
        assert await plugin.search_by_title("") == []

    @respx.mock
    async def test_unexpected_payload(self, plugin) -> None:
        respx.get(f"{_API}/search-bar/search/x").respond(200, json={"type": "error"})
        assert await plugin.search_by_title("x") == []

    @respx.mock
    async def test_http_error(self, plugin) -> None:
        respx.get(f"{_API}/search-bar/search/x").respond(502)
        assert await plugin.search_by_title("x") == []


class TestCatalog:
    @respx.mock
    async def test_series_page(self, plugin) -> None:
        route = respx.get(f"{_API}/catalog/movies").respond(200, json=CATALOG_RESPONSE)

        items = await plugin.get_catalog_page("series", 3)

        assert [i.id for i in items] == ["purstream:series:1", "purstream:series:2"]
        params = route.calls[0].request.url.params
        assert params["page"] == "3"
        assert params["types"] == "tv"
        assert params["perPage"] == "20"
        assert params["sortBy"] == "best-rated"

    @respx.mock
    async def test_movie_page_reads_items_data(self, plugin) -> None:
        respx.get(f"{_API}/catalog/movies").respond(
            200, json=_envelope({"data": [{"id": 1, "title": "A"}]})
        )

        items = await plugin.get_catalog_page("movie", 1)

        assert [i.id for i in items] == ["purstream:movie:1"]
        assert items[0].name == "A"

    @respx.mock
    async def test_unexpected_payload(self, plugin) -> None:
        respx.get(f"{_API}/catalog/movies").respond(
            200, json=_envelope({"items": {"data": [{"id": 1}]}})
        )
        assert await plugin.get_catalog_page("movie", 1) == []


class TestDetails:
    @respx.mock
    async def test_series_with_seasons(self, plugin) -> None:
        respx.get(f"{_API}/media/77/sheet").respond(200, json=SHEET_SERIES)
        respx.get(f"{_API}/media/77/season/1").respond(200, json=SEASON_1)
        respx.get(f"{_API}/media/77/season/2").respond(200, json=SEASON_2)

        item = await plugin.get_details("purstream:series:77")

        assert item is not None
        assert item.name == "Dark"
        assert item.release_year == "2017"
        assert item.genres == ("Drame", "Science-Fiction")
        assert item.background == "https://img/dark-w.jpg"
        assert [(e.season, e.episode) for e in item.episodes] == [(1, 1), (1, 2), (2, 1)]
        assert item.episodes[0].id == "purstream:episode:77:1:1"
        assert item.episodes[0].title == "Secrets"
        assert item.episodes[0].released == "2017-12-01"
        assert item.episodes[2].title == "S2E1"

    @respx.mock
    async def test_movie_skips_seasons(self, plugin) -> None:
        respx.get(f"{_API}/media/3830/sheet").respond(
            200, json=_envelope({"title": "Inception", "seasons": 0})
        )
        item = await plugin.get_details("purstream:movie:3830")
        assert item is not None
        assert item.type == "movie"
        assert item.episodes == ()

    @respx.mock
    async def test_missing_sheet(self, plugin) -> None:
        respx.get(f"{_API}/media/1/sheet").respond(404)
        assert await plugin.get_details("purstream:movie:1") is None

    async def test_foreign_id(self, plugin) -> None:
        with pytest.raises(AdapterFailure):
            await plugin.get_details("xalaflix:movie:1")


class TestResolveEpisode:
    @respx.mock
    async def test_fetches_only_requested_season(self, plugin) -> None:
        route = respx.get(f"{_API}/media/77/season/1").respond(200, json=SEASON_1)
        assert await plugin.resolve_episode("purstream:series:77", 1, 2) == (
            "purstream:episode:77:1:2"
        )
        assert route.call_count == 1

    @respx.mock
    async def test_tolerance(self, plugin) -> None:
        respx.get(f"{_API}/media/77/season/1").respond(200, json=SEASON_1)
        assert await plugin.resolve_episode("purstream:series:77", 1, 3) == (
            "purstream:episode:77:1:2"
        )
        assert await plugin.resolve_episode("purstream:series:77", 1, 5) is None


class TestStreams:
    @respx.mock
    async def test_movie_streams_need_proxy(self, plugin) -> None:
        respx.get(f"{_API}/stream/3830").respond(200, json=STREAM_RESPONSE)

        streams = await plugin.get_streams("purstream:movie:3830")

        assert [s.url for s in streams] == [
            "https://cdn.purstream/a.mp4",
            "https://cdn.purstream/b.m3u8",
        ]
        assert streams[0].label == "[purstream] VF (mp4)"
        assert all(not s.is_directly_playable for s in streams)
        assert streams[0].binge_group == "purstream-3830"

    @respx.mock
    async def test_episode_streams(self, plugin) -> None:
        route = respx.get(f"{_API}/stream/77/episode").respond(200, json=STREAM_RESPONSE)

        streams = await plugin.get_streams("purstream:episode:77:1:2")

        assert len(streams) == 2
        params = route.calls[0].request.url.params
        assert params["season"] == "1"
        assert params["episode"] == "2"

    @respx.mock
    async def test_network_error(self, plugin) -> None:
        respx.get(f"{_API}/stream/1").mock(side_effect=httpx.ConnectError("down"))
        assert await plugin.get_streams("purstream:movie:1") == []
