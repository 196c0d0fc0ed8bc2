"""Cinemeta client (async, httpx).

Resolves IMDb ids to the canonical title, release year and slug that the
stream resolution cascade searches for.
"""

from __future__ import annotations

import re
from typing import Any

import httpx
import structlog

from filmrelay.domain.entities.catalog import ContentType, TitleInfo

log = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://v3-cinemeta.strem.io"

_YEAR_RE = re.compile(r"\d{4}")


def _first_year(release_info: Any) -> str:
    """Leading year of ``"2010"``, ``"2008–2013"`` or ``"2019-"``."""
    if release_info is None:
        return ""
    m = _YEAR_RE.search(str(release_info))
    return m.group(0) if m else ""


class CinemetaClient:
    """Async Cinemeta client using httpx.

    Implements ``MetadataClientPort`` from domain.ports.metadata.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    async def _get(self, path: str) -> dict[str, Any] | None:
        """GET request with error handling. Returns parsed JSON or None."""
        url = f"{self._base_url}{path}"
        try:
            resp = await self._http.get(url)
            if resp.status_code == 404:
                log.debug("cinemeta_resource_not_found", path=path)
                return None
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError:
            log.warning("cinemeta_http_error", path=path, exc_info=True)
            return None
        except httpx.HTTPError:
            log.warning("cinemeta_network_error", path=path, exc_info=True)
            return None
        except ValueError:
            log.warning("cinemeta_invalid_json", path=path)
            return None
        return data if isinstance(data, dict) else None

    async def get_title_info(
        self, content_type: ContentType, external_id: str
    ) -> TitleInfo | None:
        data = await self._get(f"/meta/{content_type}/{external_id}.json")
        meta = (data or {}).get("meta")
        if not isinstance(meta, dict):
            return None

        name = str(meta.get("name") or "").strip()
        if not name:
            log.info("cinemeta_no_name", external_id=external_id)
            return None

        return TitleInfo(
            title=name,
            year=_first_year(meta.get("releaseInfo") or meta.get("year")),
            slug=str(meta.get("slug") or ""),
        )
