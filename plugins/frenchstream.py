"""French-Stream (fs02.lol) Python plugin for filmrelay.

Scrapes a DataLife Engine site:
- /?search={query} result page with ``.short`` cards
- /films/page/N and /s-tv/page/N listings (same card markup)
- detail pages addressed by their relative path (``films/123-slug.html``)

Players are hoster embeds (``#video-iframe`` plus ``.player-option`` /
``.fsctab`` tabs carrying ``data-url``) and play without the proxy.
The site does not separate seasons; the episode list of a show page is
reported as season 1.

Id payloads keep the relative page path verbatim:
``frenchstream:movie:<path>``, ``frenchstream:series:<path>`` and
``frenchstream:episode:<episode>:<path>``.
"""

from __future__ import annotations

import re
from urllib.parse import quote, urlparse

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
    extract_text,
    select_items,
)
from filmrelay.infrastructure.plugins.httpx_base import HttpxPluginBase

# ---------------------------------------------------------------------------
# Configurable settings
# ---------------------------------------------------------------------------
_DOMAIN = "fs02.lol"

_LISTING_PATHS: dict[str, str] = {"movie": "films", "series": "s-tv"}

_YEAR_IN_TITLE_RE = re.compile(r"\((\d{4})\)")
_NUMBER_RE = re.compile(r"(\d+)")


def _relative_path(href: str) -> str:
    """Site-relative path of a link, without the leading slash."""
    return urlparse(href).path.lstrip("/")


def _type_from_path(path: str) -> ContentType:
    return "series" if "s-tv/" in path else "movie"


class FrenchStreamPlugin(HttpxPluginBase):
    """Python plugin for French-Stream using httpx + BeautifulSoup."""

    name = "frenchstream"
    has_catalog = True
    _domain = _DOMAIN

    def _parse_cards(
        self, soup: BeautifulSoup, content_type: ContentType | None = None
    ) -> list[CatalogItem]:
        items: list[CatalogItem] = []
        for card in select_items(soup, ".short"):
            link = extract_attr(card, ".short-poster", "href", "a")
            poster = extract_attr(card, ".short-poster img", "src", "img")
            title = extract_text(card, ".short-title")
            path = _relative_path(link)
            if not path or not poster or not title:
                continue
            item_type = content_type or _type_from_path(path)
            items.append(
                CatalogItem(
                    id=self._mint_id(item_type, path),
                    type=item_type,
                    name=title,
                    poster=absolute_url(self.base_url, poster),
                )
            )
        return items

    def _parse_episodes(self, soup: BeautifulSoup, path: str) -> list[EpisodeEntry]:
        entries: dict[int, EpisodeEntry] = {}
        for index, el in enumerate(soup.select(".ep-title"), start=1):
            title = collapse_ws(el.get_text(" "))
            num_match = _NUMBER_RE.search(title)
            number = int(num_match.group(1)) if num_match else index
            entries.setdefault(
                number,
                EpisodeEntry(
                    id=self._mint_id("episode", number, path),
                    season=1,
                    episode=number,
                    title=title,
                ),
            )
        return sorted(entries.values(), key=lambda e: e.episode)

    def _collect_players(self, scope: BeautifulSoup | Tag) -> list[tuple[str, str]]:
        """(name, url) pairs of the players inside *scope*, first one wins."""
        players: list[tuple[str, str]] = []
        seen: set[str] = set()

        iframe = extract_attr(scope, "#video-iframe", "src")
        if iframe:
            players.append(("Player 1", iframe))
            seen.add(iframe)

        for option in scope.select(".player-option, .fsctab"):
            url = str(option.get("data-url") or option.get("data-src") or "")
            if not url or url in seen:
                continue
            seen.add(url)
            players.append((collapse_ws(option.get_text(" ")) or "Player", url))
        return players

    # ------------------------------------------------------------------
    # SourceAdapterPort
    # ------------------------------------------------------------------

    async def search_by_title(self, query: str) -> list[CatalogItem]:
        if not query:
            return []
        soup = await self._fetch_html(
            f"{self.base_url}/?search={quote(query)}", context="search"
        )
        if soup is None:
            return []
        items = self._parse_cards(soup)
        self._log.info("frenchstream_search", query=query, count=len(items))
        return items

    async def get_catalog_page(
        self, content_type: ContentType, page: int = 1
    ) -> list[CatalogItem]:
        url = f"{self.base_url}/{_LISTING_PATHS[content_type]}/"
        if page > 1:
            url = f"{url}page/{page}/"
        soup = await self._fetch_html(url, context="catalog")
        if soup is None:
            return []
        return self._parse_cards(soup, content_type)

    async def get_details(self, item_id: str) -> CatalogItem | None:
        cid = self._parse_id(item_id)
        path = cid.tail
        content_type: ContentType = "series" if cid.kind == "series" else "movie"

        soup = await self._fetch_html(f"{self.base_url}/{path}", context="detail")
        if soup is None:
            return None

        heading = extract_text(soup, "h1")
        year_match = _YEAR_IN_TITLE_RE.search(heading)
        poster = extract_attr(soup, ".dvd-container img", "src", ".short-poster img")

        return CatalogItem(
            id=item_id,
            type=content_type,
            name=_YEAR_IN_TITLE_RE.sub("", heading).strip(),
            poster=absolute_url(self.base_url, poster),
            description=extract_text(soup, ".short-story-description", ".full-text"),
            release_year=year_match.group(1) if year_match else "",
            genres=tuple(extract_all_texts(soup, 'a[href*="/xfsearch/genre"]')),
            episodes=(
                tuple(self._parse_episodes(soup, path))
                if content_type == "series"
                else ()
            ),
        )

    async def get_streams(self, resolved_id: str) -> list[StreamCandidate]:
        cid = self._parse_id(resolved_id)
        episode: str | None = None
        if cid.kind == "episode":
            if len(cid.payload) < 2:
                self._log.warning("frenchstream_bad_episode_id", id=resolved_id)
                return []
            episode, path = cid.payload[0], ":".join(cid.payload[1:])
        else:
            path = cid.tail

        soup = await self._fetch_html(f"{self.base_url}/{path}", context="stream")
        if soup is None:
            return []

        scope: BeautifulSoup | Tag = soup
        if episode is not None:
            # Episode player blocks, when present; otherwise the page players.
            block = soup.select_one(f"#episode{episode}, #ep{episode}")
            if block is not None:
                scope = block

        streams = [
            StreamCandidate(
                url=absolute_url(self.base_url, url),
                label=f"[{self.name}] {player_name}",
            )
            for player_name, url in self._collect_players(scope)
        ]
        self._log.info("frenchstream_streams", id=resolved_id, count=len(streams))
        return streams


plugin = FrenchStreamPlugin()
