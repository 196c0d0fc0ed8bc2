"""Stremio addon API endpoints (manifest, catalog, meta, stream, proxy)."""

from __future__ import annotations

from typing import Any, cast
from urllib.parse import parse_qs

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.background import BackgroundTask

from filmrelay import __version__
from filmrelay.domain.entities.catalog import (
    CatalogItem,
    ContentType,
    EpisodeEntry,
    StreamCandidate,
    StreamRequest,
)
from filmrelay.domain.exceptions import UpstreamStreamError
from filmrelay.infrastructure.stremio.stream_proxy import (
    identity_headers,
    is_proxyable_url,
    open_upstream,
)
from filmrelay.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["stremio"])

_ADDON_ID = "org.filmrelay.addon"

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
}

_CONTENT_TYPES: tuple[ContentType, ...] = ("movie", "series")

_CATALOG_LABELS = {"movie": "Films", "series": "Séries"}


def _json(content: dict[str, Any]) -> JSONResponse:
    return JSONResponse(content=content, headers=_CORS_HEADERS)


def _content_type(raw: str) -> ContentType | None:
    if raw not in _CONTENT_TYPES:
        return None
    return cast(ContentType, raw)


def _catalog_id(source: str, content_type: ContentType) -> str:
    suffix = "movies" if content_type == "movie" else "series"
    return f"{source}_{suffix}"


def _build_manifest(state: AppState) -> dict[str, Any]:
    """Build the Stremio addon manifest from the loaded sources."""
    sources = state.plugins.ordered()
    catalogs = [
        {
            "type": content_type,
            "id": _catalog_id(source.name, content_type),
            "name": f"{source.name.capitalize()} {_CATALOG_LABELS[content_type]}",
            "extra": [
                {"name": "search", "isRequired": False},
                {"name": "skip", "isRequired": False},
            ],
        }
        for source in sources
        if getattr(source, "has_catalog", False)
        for content_type in _CONTENT_TYPES
    ]
    return {
        "id": _ADDON_ID,
        "version": __version__,
        "name": "filmrelay",
        "description": "Streams aggregated from French streaming sources",
        "types": list(_CONTENT_TYPES),
        "catalogs": catalogs,
        "resources": ["catalog", "meta", "stream"],
        "idPrefixes": ["tt", *(source.name for source in sources)],
        "behaviorHints": {
            "adult": False,
            "configurable": False,
        },
    }


def _parse_extra(extra: str | None) -> tuple[str | None, int]:
    """Split a ``search=...&skip=...`` path fragment."""
    if not extra:
        return None, 0
    values = parse_qs(extra)
    search = (values.get("search") or [""])[0].strip() or None
    try:
        skip = int((values.get("skip") or ["0"])[0])
    except ValueError:
        skip = 0
    return search, skip


def _source_from_catalog_id(catalog_id: str) -> str:
    source, _, _ = catalog_id.rpartition("_")
    return source


def _render_preview(item: CatalogItem) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "id": item.id,
        "type": item.type,
        "name": item.name,
        "poster": item.poster,
    }
    if item.release_year:
        meta["releaseInfo"] = item.release_year
    return meta


def _render_video(entry: EpisodeEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "title": entry.title or f"Episode {entry.episode}",
        "season": entry.season,
        "episode": entry.episode,
        "released": entry.released,
        "thumbnail": entry.thumbnail,
        "overview": entry.overview,
    }


def _render_meta(item: CatalogItem) -> dict[str, Any]:
    meta = _render_preview(item)
    meta.update(
        {
            "background": item.background or item.poster,
            "description": item.description,
            "genres": list(item.genres),
        }
    )
    if item.type == "series":
        meta["videos"] = [_render_video(e) for e in item.episodes]
    return meta


def _render_stream(candidate: StreamCandidate) -> dict[str, Any]:
    hints: dict[str, Any] = {"notWebReady": False}
    if candidate.binge_group:
        hints["bingeGroup"] = candidate.binge_group
    return {
        "url": candidate.url,
        "title": candidate.label,
        "behaviorHints": hints,
    }


@router.get("/manifest.json")
async def stremio_manifest(request: Request) -> JSONResponse:
    """Serve the Stremio addon manifest."""
    state = cast(AppState, request.app.state)
    return _json(_build_manifest(state))


async def _catalog(
    state: AppState, content_type: str, catalog_id: str, extra: str | None
) -> JSONResponse:
    ct = _content_type(content_type)
    if ct is None:
        return _json({"metas": []})

    search, skip = _parse_extra(extra)
    items = await state.catalog_uc.list_catalog(
        ct,
        _source_from_catalog_id(catalog_id),
        skip=skip,
        search=search,
    )
    return _json({"metas": [_render_preview(i) for i in items]})


@router.get("/catalog/{content_type}/{catalog_id}.json")
async def stremio_catalog(
    request: Request,
    content_type: str,
    catalog_id: str,
) -> JSONResponse:
    """Serve the first page of a source catalog."""
    state = cast(AppState, request.app.state)
    return await _catalog(state, content_type, catalog_id, None)


@router.get("/catalog/{content_type}/{catalog_id}/{extra:path}.json")
async def stremio_catalog_extra(
    request: Request,
    content_type: str,
    catalog_id: str,
    extra: str,
) -> JSONResponse:
    """Serve a paginated catalog page or catalog search results."""
    state = cast(AppState, request.app.state)
    return await _catalog(state, content_type, catalog_id, extra)


@router.get("/meta/{content_type}/{item_id:path}.json")
async def stremio_meta(
    request: Request,
    content_type: str,
    item_id: str,
) -> JSONResponse:
    """Serve details for a composite id; IMDb ids are left to other addons."""
    state = cast(AppState, request.app.state)
    if _content_type(content_type) is None:
        return _json({"meta": {}})

    item = await state.catalog_uc.get_meta(item_id)
    if item is None:
        return _json({"meta": {}})
    return _json({"meta": _render_meta(item)})


@router.get("/stream/{content_type}/{stream_id:path}.json")
async def stremio_stream(
    request: Request,
    content_type: str,
    stream_id: str,
) -> JSONResponse:
    """Resolve streams for a movie, an episode or a source-minted id."""
    state = cast(AppState, request.app.state)

    ct = _content_type(content_type)
    parsed = StreamRequest.parse(ct, stream_id) if ct is not None else None
    if parsed is None:
        log.info("stremio_stream_invalid_id", content_type=content_type, id=stream_id)
        return _json({"streams": []})

    candidates = await state.stream_uc.execute(parsed)
    log.info(
        "stremio_stream_response",
        id=stream_id,
        content_type=ct,
        streams_returned=len(candidates),
    )
    return _json({"streams": [_render_stream(c) for c in candidates]})


@router.get("/proxy")
async def stream_proxy(request: Request, url: str | None = None) -> Response:
    """Relay an upstream video with the source's identity headers.

    Status, range headers and body are passed through unchanged so that
    players can seek.
    """
    state = cast(AppState, request.app.state)
    if not url or not is_proxyable_url(url):
        return Response(
            content="Missing url parameter",
            status_code=400,
            headers=_CORS_HEADERS,
        )

    proxy = state.config.proxy
    try:
        upstream = await open_upstream(
            state.http_client,
            url,
            headers=identity_headers(proxy.user_agent, proxy.referer, proxy.origin),
            range_header=request.headers.get("range"),
            timeout=proxy.timeout_seconds,
            chunk_size=proxy.chunk_size,
        )
    except UpstreamStreamError as exc:
        return Response(
            content="Proxy error",
            status_code=exc.status_code,
            headers=_CORS_HEADERS,
        )

    return StreamingResponse(
        upstream.body,
        status_code=upstream.status_code,
        headers={**upstream.headers, **_CORS_HEADERS},
        background=BackgroundTask(upstream.aclose),
    )
