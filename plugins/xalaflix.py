"""xalaflix.men Python plugin for filmrelay.

Scrapes xalaflix.men (French streaming site) HTML:
- /movies[/page/N] and /shows[/page/N] listings of ``.single-video`` cards
- /search_elastic?s={query} search fragments (anchors to /movies/ or /shows/)
- /movies/watch/video/{id} and /shows/details/show/{id} detail pages
- season pages linked from a show page (``a[href*="/seasons/"]``)

Player pages embed either a ``video#player`` (direct file, needs the
site's Referer, so it goes through the proxy) or a hoster iframe.

Id payloads are the numeric site ids taken from the last URL segment:
``xalaflix:movie:<id>``, ``xalaflix:series:<id>``, ``xalaflix:episode:<id>``.
"""

from __future__ import annotations

import asyncio
import re
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag

from filmrelay.domain.entities.catalog import (
    CatalogItem,
    ContentType,
    EpisodeEntry,
    StreamCandidate,
)
from filmrelay.infrastructure.common.html_selectors import (
    absolute_url,
    collapse_ws,
    extract_all_texts,
    extract_attr,
    extract_css_url,
    extract_text,
    select_items,
)
from filmrelay.infrastructure.plugins.httpx_base import HttpxPluginBase

# ---------------------------------------------------------------------------
# Configurable settings
# ---------------------------------------------------------------------------
_DOMAIN = "xalaflix.men"
_MAX_SEASONS = 5

_LISTING_PATHS: dict[str, str] = {"movie": "movies", "series": "shows"}

_TOP_BADGE_RE = re.compile(r"^TOP\s+\d+\s+", re.IGNORECASE)
_EPISODE_NUM_RE = re.compile(r"(?:Episode|Ep)\s*(\d+)", re.IGNORECASE)
_SEASON_NUM_RE = re.compile(r"Saison\s+(\d+)", re.IGNORECASE)
_YEAR_RE = re.compile(r"\b(19|20)\d{2}\b")


def _last_segment(href: str) -> str:
    segments = [s for s in href.split("?", 1)[0].split("/") if s]
    return segments[-1] if segments else ""


def _clean_title(raw: str) -> str:
    """Collapse whitespace and strip the "TOP N" ranking badge."""
    return _TOP_BADGE_RE.sub("", collapse_ws(raw)).strip()


def _type_from_link(href: str) -> ContentType | None:
    if "/shows/" in href:
        return "series"
    if "/movies/" in href:
        return "movie"
    return None


class XalaflixPlugin(HttpxPluginBase):
    """Python plugin for xalaflix.men using httpx + BeautifulSoup."""

    name = "xalaflix"
    has_catalog = True
    _domain = _DOMAIN

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _card_to_item(self, card: Tag, content_type: ContentType) -> CatalogItem | None:
        link = extract_attr(card, "a", "href")
        poster = extract_attr(card, "img", "src")
        site_id = _last_segment(link)
        if not link or not poster or not site_id:
            return None
        name = _clean_title(
            extract_text(card, ".entry-title", "h3", "span") or extract_text(card, "")
        )
        return CatalogItem(
            id=self._mint_id(content_type, site_id),
            type=content_type,
            name=name,
            poster=absolute_url(self.base_url, poster),
        )

    def _parse_search(self, soup: BeautifulSoup) -> list[CatalogItem]:
        items: list[CatalogItem] = []
        seen: set[str] = set()
        for anchor in soup.select("a[href]"):
            href = str(anchor["href"])
            content_type = _type_from_link(href)
            poster = extract_attr(anchor, "img", "src")
            site_id = _last_segment(href)
            if content_type is None or not poster or not site_id:
                continue
            item_id = self._mint_id(content_type, site_id)
            if item_id in seen:
                continue
            seen.add(item_id)
            items.append(
                CatalogItem(
                    id=item_id,
                    type=content_type,
                    name=_clean_title(anchor.get_text(" ")),
                    poster=absolute_url(self.base_url, poster),
                )
            )
        return items

    def _parse_season(self, soup: BeautifulSoup) -> list[EpisodeEntry]:
        season_match = _SEASON_NUM_RE.search(extract_text(soup, "h1"))
        season = int(season_match.group(1)) if season_match else 1

        entries: list[EpisodeEntry] = []
        for index, card in enumerate(select_items(soup, ".single-video"), start=1):
            link = extract_attr(card, "a", "href")
            ep_id = _last_segment(link)
            if not ep_id:
                continue
            title = extract_text(card, ".entry-title") or extract_attr(card, "a", "title")
            num_match = _EPISODE_NUM_RE.search(title)
            entries.append(
                EpisodeEntry(
                    id=self._mint_id("episode", ep_id),
                    season=season,
                    episode=int(num_match.group(1)) if num_match else index,
                    title=title,
                    thumbnail=absolute_url(
                        self.base_url, extract_attr(card, "img", "src")
                    ),
                )
            )
        return entries

    # ------------------------------------------------------------------
    # SourceAdapterPort
    # ------------------------------------------------------------------

    async def search_by_title(self, query: str) -> list[CatalogItem]:
        if not query:
            return []
        soup = await self._fetch_html(
            f"{self.base_url}/search_elastic?s={quote(query)}",
            context="search",
        )
        if soup is None:
            return []
        items = self._parse_search(soup)
        self._log.info("xalaflix_search", query=query, count=len(items))
        return items

    async def get_catalog_page(
        self, content_type: ContentType, page: int = 1
    ) -> list[CatalogItem]:
        path = _LISTING_PATHS[content_type]
        url = f"{self.base_url}/{path}"
        if page > 1:
            url = f"{url}/page/{page}"

        soup = await self._fetch_html(url, context="catalog")
        if soup is None:
            return []
        items = [self._card_to_item(card, content_type) for card in soup.select(".single-video")]
        return [item for item in items if item is not None]

    async def _fetch_season(self, season_url: str) -> list[EpisodeEntry]:
        soup = await self._fetch_html(
            absolute_url(self.base_url, season_url), context="season"
        )
        if soup is None:
            return []
        return self._parse_season(soup)

    async def get_details(self, item_id: str) -> CatalogItem | None:
        cid = self._parse_id(item_id)
        site_id = cid.payload[0]
        content_type: ContentType = "series" if cid.kind == "series" else "movie"
        if content_type == "series":
            url = f"{self.base_url}/shows/details/show/{site_id}"
        else:
            url = f"{self.base_url}/movies/watch/video/{site_id}"

        soup = await self._fetch_html(url, context="detail")
        if soup is None:
            return None

        background = extract_css_url(extract_attr(soup, ".vfx-item-ptb-top", "style"))
        if not background:
            background = extract_attr(soup, ".video-background img", "src")
        year_match = _YEAR_RE.search(extract_text(soup, ".date-video"))

        episodes: list[EpisodeEntry] = []
        if content_type == "series":
            season_links = list(
                dict.fromkeys(
                    str(a["href"]) for a in soup.select('a[href*="/seasons/"]')
                )
            )[:_MAX_SEASONS]
            seasons = await asyncio.gather(
                *(self._fetch_season(link) for link in season_links)
            )
            episodes = sorted(
                (ep for season in seasons for ep in season),
                key=lambda e: (e.season, e.episode),
            )

        return CatalogItem(
            id=item_id,
            type=content_type,
            name=extract_text(soup, "h1"),
            poster=absolute_url(self.base_url, extract_attr(soup, ".video-img img", "src")),
            background=absolute_url(self.base_url, background),
            description=extract_text(soup, "#tab1", ".video-description"),
            release_year=year_match.group(0) if year_match else "",
            genres=tuple(extract_all_texts(soup, 'a[href*="genre_id"]')),
            episodes=tuple(episodes),
        )

    async def get_streams(self, resolved_id: str) -> list[StreamCandidate]:
        cid = self._parse_id(resolved_id)
        site_id = cid.payload[0]
        if cid.kind == "movie":
            url = f"{self.base_url}/movies/watch/video/{site_id}"
        else:
            url = f"{self.base_url}/shows/details/video/{site_id}"

        soup = await self._fetch_html(url, context="stream")
        if soup is None:
            return []

        video_src = extract_attr(soup, "video#player source", "src") or extract_attr(
            soup, "video#player", "src"
        )
        if video_src:
            return [
                StreamCandidate(
                    url=absolute_url(self.base_url, video_src),
                    label=f"[{self.name}] 1080p",
                    is_directly_playable=False,
                    binge_group=f"{self.name}-{site_id}",
                )
            ]

        iframe_src = extract_attr(soup, "iframe", "src")
        if iframe_src:
            return [
                StreamCandidate(
                    url=absolute_url(self.base_url, iframe_src),
                    label=f"[{self.name}] Embed",
                )
            ]

        self._log.info("xalaflix_no_player", id=resolved_id)
        return []


plugin = XalaflixPlugin()
