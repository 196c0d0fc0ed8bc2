"""Shared base class for httpx-based source plugins.

Eliminates the boilerplate every source repeats: client lifecycle with
browser-like headers, cleanup, safe fetch/parse,
composite-id minting and tolerant episode lookup.

This base class lives in the *infrastructure* layer because it depends
on ``httpx`` and ``structlog``.  The *domain* layer only knows
``SourceAdapterPort``; plugins that inherit from ``HttpxPluginBase``
structurally satisfy that Protocol.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

import httpx
import structlog
from bs4 import BeautifulSoup

from filmrelay.domain.entities.catalog import (
    CatalogItem,
    CompositeId,
    ContentType,
    EpisodeEntry,
    IdKind,
    StreamCandidate,
)
from filmrelay.domain.exceptions import AdapterFailure, InvalidCompositeId
from filmrelay.infrastructure.common.html_selectors import parse_html

from .constants import (
    DEFAULT_ACCEPT_HTML,
    DEFAULT_ACCEPT_LANGUAGE,
    DEFAULT_CLIENT_TIMEOUT,
    DEFAULT_EPISODE_TOLERANCE,
    DEFAULT_USER_AGENT,
)


def match_episode(
    entries: Iterable[EpisodeEntry],
    season: int,
    episode: int,
    tolerance: int = DEFAULT_EPISODE_TOLERANCE,
) -> EpisodeEntry | None:
    """Find *episode* of *season*, accepting a neighbour within *tolerance*.

    Sources number episodes inconsistently (specials, merged double
    episodes), so an exact hit wins and otherwise the first entry of the
    same season within ±tolerance is taken.
    """
    in_season = [e for e in entries if e.season == season]
    for entry in in_season:
        if entry.episode == episode:
            return entry
    for entry in in_season:
        if abs(entry.episode - episode) <= tolerance:
            return entry
    return None


class HttpxPluginBase:
    """Shared base for httpx-based source plugins.

    Subclasses **must** set:
    - ``name`` (the source tag, first segment of every composite id)
    - ``_domain`` (the host every relative URL is built on)

    Subclasses **must** override:
    - ``search_by_title()``, ``get_details()`` and ``get_streams()``

    Subclasses **may** override:
    - ``get_catalog_page()`` (defaults to no catalog)
    - ``resolve_episode()`` (defaults to a lookup in ``get_details()``)
    - ``_accept``, ``_timeout``, ``_user_agent``, ``_extra_headers()``
    """

    # --- Must be set by subclass ---
    name: str = ""

    # --- Overridable defaults ---
    has_catalog: bool = False
    episode_tolerance: int = DEFAULT_EPISODE_TOLERANCE

    _domain: str = ""
    _timeout: float = DEFAULT_CLIENT_TIMEOUT
    _user_agent: str = DEFAULT_USER_AGENT
    _accept: str = DEFAULT_ACCEPT_HTML

    def __init__(self) -> None:
        self._client: httpx.AsyncClient | None = None
        self.base_url: str = f"https://{self._domain}" if self._domain else ""
        self._log = structlog.get_logger(self.name or __name__)

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    def _extra_headers(self) -> dict[str, str]:
        """Headers added on top of the browser defaults."""
        return {"Referer": self.base_url}

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Create httpx client if not already running."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers={
                    "User-Agent": self._user_agent,
                    "Accept": self._accept,
                    "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
                    **self._extra_headers(),
                },
            )
        return self._client

    async def cleanup(self) -> None:
        """Close httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------

    async def _safe_fetch(
        self,
        url: str,
        *,
        context: str = "",
    ) -> httpx.Response | None:
        """GET *url* with structured error logging.

        Returns ``None`` on failure instead of raising.
        """
        client = await self._ensure_client()
        try:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp
        except httpx.TimeoutException:
            self._log.warning(
                f"{self.name}_timeout",
                url=url,
                context=context,
            )
        except httpx.HTTPStatusError as exc:
            self._log.warning(
                f"{self.name}_http_error",
                url=url,
                status=exc.response.status_code,
                context=context,
            )
        except httpx.HTTPError as exc:
            self._log.warning(
                f"{self.name}_fetch_error",
                url=url,
                error=str(exc),
                context=context,
            )
        return None

    def _safe_parse_json(
        self,
        response: httpx.Response,
        context: str = "",
    ) -> dict | list | None:
        """Parse JSON response with structured error logging."""
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            self._log.warning(
                f"{self.name}_invalid_json",
                url=str(response.url),
                context=context,
            )
            return None

    async def _fetch_json(self, url: str, *, context: str = "") -> dict | list | None:
        resp = await self._safe_fetch(url, context=context)
        if resp is None:
            return None
        return self._safe_parse_json(resp, context=context)

    async def _fetch_html(self, url: str, *, context: str = "") -> BeautifulSoup | None:
        resp = await self._safe_fetch(url, context=context)
        if resp is None:
            return None
        return parse_html(resp.text)

    # ------------------------------------------------------------------
    # Composite ids
    # ------------------------------------------------------------------

    def _mint_id(self, kind: IdKind, *payload: object) -> str:
        return str(CompositeId.build(self.name, kind, *payload))

    def _parse_id(self, item_id: str) -> CompositeId:
        """Parse an id minted by this source.

        Raises ``AdapterFailure`` for malformed ids or ids of other sources.
        """
        try:
            cid = CompositeId.parse(item_id)
        except InvalidCompositeId as exc:
            raise AdapterFailure(self.name, f"malformed id {item_id!r}") from exc
        if cid.source != self.name:
            raise AdapterFailure(self.name, f"foreign id {item_id!r}")
        return cid

    # ------------------------------------------------------------------
    # SourceAdapterPort
    # ------------------------------------------------------------------

    async def search_by_title(self, query: str) -> list[CatalogItem]:
        """Search the site and return normalised items.

        Subclasses **must** override this method.
        """
        raise NotImplementedError(
            f"{type(self).__name__}.search_by_title() not implemented"
        )

    async def get_catalog_page(
        self, content_type: ContentType, page: int = 1
    ) -> list[CatalogItem]:
        return []

    async def get_details(self, item_id: str) -> CatalogItem | None:
        raise NotImplementedError(
            f"{type(self).__name__}.get_details() not implemented"
        )

    async def resolve_episode(
        self, series_id: str, season: int, episode: int
    ) -> str | None:
        """Locate an episode through the series' episode index."""
        details = await self.get_details(series_id)
        if details is None:
            return None
        entry = match_episode(
            details.episodes, season, episode, tolerance=self.episode_tolerance
        )
        if entry is None:
            self._log.info(
                f"{self.name}_episode_not_found",
                series_id=series_id,
                season=season,
                episode=episode,
            )
            return None
        if entry.episode != episode:
            self._log.info(
                f"{self.name}_episode_fuzzy_match",
                requested=episode,
                found=entry.episode,
            )
        return entry.id

    async def get_streams(self, resolved_id: str) -> list[StreamCandidate]:
        raise NotImplementedError(
            f"{type(self).__name__}.get_streams() not implemented"
        )
