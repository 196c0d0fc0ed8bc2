"""purstream.me Python plugin for filmrelay.

Talks to the site's JSON API (api.purstream.me/api/v1):
- GET /catalog/movies?types=movie|tv for browsing (20 per page)
- GET /search-bar/search/{query} for title search
- GET /media/{id}/sheet for details, /media/{id}/season/{n} per season
- GET /stream/{id} and /stream/{id}/episode?season=&episode= for sources

Every response is wrapped as ``{"type": "success", "data": {"items": ...}}``.
Stream URLs only play with the site's Origin/Referer, so every candidate
is marked as needing the proxy.

Id payloads:
- ``purstream:movie:<mediaId>`` / ``purstream:series:<mediaId>``
- ``purstream:episode:<mediaId>:<season>:<episode>``
"""

from __future__ import annotations

import asyncio
from urllib.parse import quote

from filmrelay.domain.entities.catalog import (
    CATALOG_PAGE_SIZE,
    CatalogItem,
    ContentType,
    EpisodeEntry,
    StreamCandidate,
)
from filmrelay.infrastructure.plugins.httpx_base import (
    HttpxPluginBase,
    match_episode,
)

# ---------------------------------------------------------------------------
# Configurable settings
# ---------------------------------------------------------------------------
_DOMAIN = "api.purstream.me"
_API_PATH = "/api/v1"
_SITE_URL = "https://purstream.me"

_API_TYPES: dict[str, str] = {"movie": "movie", "series": "tv"}


def _year(date: str | None) -> str:
    """First four characters of an ISO-ish date, if they are a year."""
    if date and len(date) >= 4 and date[:4].isdigit():
        return date[:4]
    return ""


def _unwrap(data: object, *path: str) -> object | None:
    """Walk ``data["data"]["items"][*path]`` of a success envelope."""
    if not isinstance(data, dict) or data.get("type") != "success":
        return None
    node = (data.get("data") or {}).get("items")
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


class PurstreamPlugin(HttpxPluginBase):
    """Python plugin for purstream.me using httpx (JSON API)."""

    name = "purstream"
    has_catalog = True
    _domain = _DOMAIN
    _accept = "application/json"

    def __init__(self) -> None:
        super().__init__()
        self.api_url = f"{self.base_url}{_API_PATH}"

    def _extra_headers(self) -> dict[str, str]:
        return {"Origin": _SITE_URL, "Referer": f"{_SITE_URL}/"}

    def _to_item(self, raw: dict, content_type: ContentType) -> CatalogItem:
        return CatalogItem(
            id=self._mint_id(content_type, raw.get("id")),
            type=content_type,
            name=raw.get("title") or "",
            poster=raw.get("large_poster_path") or "",
            background=(
                raw.get("wallpaper_poster_path") or raw.get("small_poster_path") or ""
            ),
            release_year=_year(raw.get("release_date")),
        )

    async def search_by_title(self, query: str) -> list[CatalogItem]:
        if not query:
            return []

        data = await self._fetch_json(
            f"{self.api_url}/search-bar/search/{quote(query, safe='')}",
            context="search",
        )
        raw_items = _unwrap(data, "movies", "items")
        if not isinstance(raw_items, list):
            self._log.warning("purstream_unexpected_payload", context="search")
            return []

        items = [
            self._to_item(raw, "series" if raw.get("type") == "tv" else "movie")
            for raw in raw_items
            if isinstance(raw, dict) and raw.get("id")
        ]
        self._log.info("purstream_search", query=query, count=len(items))
        return items

    async def get_catalog_page(
        self, content_type: ContentType, page: int = 1
    ) -> list[CatalogItem]:
        url = (
            f"{self.api_url}/catalog/movies?page={page}&sortBy=best-rated"
            f"&types={_API_TYPES[content_type]}&categoriesIds=*&franchisesIds=*"
            f"&perPage={CATALOG_PAGE_SIZE}"
        )
        raw_items = _unwrap(await self._fetch_json(url, context="catalog"), "data")
        if not isinstance(raw_items, list):
            self._log.warning("purstream_unexpected_payload", context="catalog")
            return []
        return [
            self._to_item(raw, content_type)
            for raw in raw_items
            if isinstance(raw, dict) and raw.get("id")
        ]

    async def _fetch_season(self, media_id: str, season: int) -> list[EpisodeEntry]:
        data = await self._fetch_json(
            f"{self.api_url}/media/{media_id}/season/{season}",
            context="season",
        )
        raw_eps = _unwrap(data, "episodes")
        if not isinstance(raw_eps, list):
            return []

        entries: list[EpisodeEntry] = []
        for ep in raw_eps:
            if not isinstance(ep, dict):
                continue
            try:
                number = int(ep.get("episode"))
            except (TypeError, ValueError):
                continue
            entries.append(
                EpisodeEntry(
                    id=self._mint_id("episode", media_id, season, number),
                    season=season,
                    episode=number,
                    title=(
                        ep.get("name")
                        or ep.get("formattedName")
                        or f"S{season}E{number}"
                    ),
                    released=ep.get("airDate") or "",
                    thumbnail=ep.get("poster") or "",
                    overview=ep.get("overview") or "",
                )
            )
        return entries

    async def get_details(self, item_id: str) -> CatalogItem | None:
        cid = self._parse_id(item_id)
        media_id = cid.payload[0]
        content_type: ContentType = "series" if cid.kind == "series" else "movie"

        sheet = _unwrap(
            await self._fetch_json(
                f"{self.api_url}/media/{media_id}/sheet", context="detail"
            )
        )
        if not isinstance(sheet, dict):
            self._log.warning("purstream_unexpected_payload", context="detail")
            return None

        episodes: list[EpisodeEntry] = []
        season_count = sheet.get("seasons")
        if content_type == "series" and isinstance(season_count, int) and season_count > 0:
            seasons = await asyncio.gather(
                *(
                    self._fetch_season(media_id, n)
                    for n in range(1, season_count + 1)
                )
            )
            episodes = sorted(
                (ep for season in seasons for ep in season),
                key=lambda e: (e.season, e.episode),
            )

        posters = sheet.get("posters") or {}
        return CatalogItem(
            id=item_id,
            type=content_type,
            name=sheet.get("title") or "",
            poster=posters.get("large") or "",
            background=posters.get("wallpaper") or posters.get("small") or "",
            description=sheet.get("overview") or "",
            release_year=_year(sheet.get("releaseDate")),
            genres=tuple(
                c["name"]
                for c in (sheet.get("categories") or [])
                if isinstance(c, dict) and c.get("name")
            ),
            episodes=tuple(episodes),
        )

    async def resolve_episode(
        self, series_id: str, season: int, episode: int
    ) -> str | None:
        """Look the episode up in its season only, not the whole series."""
        media_id = self._parse_id(series_id).payload[0]
        entry = match_episode(
            await self._fetch_season(media_id, season),
            season,
            episode,
            tolerance=self.episode_tolerance,
        )
        if entry is None:
            self._log.info(
                "purstream_episode_not_found",
                series_id=series_id,
                season=season,
                episode=episode,
            )
            return None
        return entry.id

    async def get_streams(self, resolved_id: str) -> list[StreamCandidate]:
        cid = self._parse_id(resolved_id)
        media_id = cid.payload[0]
        if cid.kind == "episode" and len(cid.payload) >= 3:
            season, episode = cid.payload[1], cid.payload[2]
            url = (
                f"{self.api_url}/stream/{media_id}/episode"
                f"?season={season}&episode={episode}"
            )
        else:
            url = f"{self.api_url}/stream/{media_id}"

        sources = _unwrap(await self._fetch_json(url, context="stream"), "sources")
        if not isinstance(sources, list):
            self._log.warning("purstream_unexpected_payload", context="stream")
            return []

        streams = [
            StreamCandidate(
                url=src["stream_url"],
                label=(
                    f"[{self.name}] {src.get('source_name') or 'Source'}"
                    f" ({src.get('format') or 'mp4'})"
                ),
                is_directly_playable=False,
                binge_group=f"{self.name}-{media_id}",
            )
            for src in sources
            if isinstance(src, dict) and src.get("stream_url")
        ]
        self._log.info("purstream_streams", id=resolved_id, count=len(streams))
        return streams


plugin = PurstreamPlugin()
