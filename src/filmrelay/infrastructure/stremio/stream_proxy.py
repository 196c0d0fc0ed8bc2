"""Pass-through stream proxy helpers.

Some sources hand out video URLs that only play when the request carries
the site's ``Referer``/``Origin`` and a browser ``User-Agent``.  Players
cannot add those headers, so streams from such sources are rewritten to
point at the addon's ``/proxy`` endpoint, which re-issues the request
server-side (forwarding the player's ``Range`` header) and relays status,
a fixed set of headers and the body.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from urllib.parse import quote, urlparse

import httpx
import structlog

from filmrelay.domain.exceptions import UpstreamStreamError

log = structlog.get_logger(__name__)

# Response headers copied from upstream to the client.
RELAYED_HEADERS: tuple[str, ...] = (
    "content-type",
    "content-length",
    "content-range",
    "accept-ranges",
    "content-encoding",
)

DEFAULT_CHUNK_SIZE = 65536


def build_proxy_url(public_url: str, upstream_url: str) -> str:
    """Build the proxy link embedded in stream results.

    >>> build_proxy_url("http://127.0.0.1:7000/", "https://cdn.example/v.mp4?t=1")
    'http://127.0.0.1:7000/proxy?url=https%3A%2F%2Fcdn.example%2Fv.mp4%3Ft%3D1'
    """
    return f"{public_url.rstrip('/')}/proxy?url={quote(upstream_url, safe='')}"


def is_proxyable_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def identity_headers(user_agent: str, referer: str, origin: str) -> dict[str, str]:
    """The fixed header set sent upstream on every proxied request."""
    headers = {"User-Agent": user_agent}
    if referer:
        headers["Referer"] = referer
    if origin:
        headers["Origin"] = origin
    return headers


def relay_headers(upstream: httpx.Headers) -> dict[str, str]:
    """Pick the allow-listed headers off an upstream response."""
    return {name: upstream[name] for name in RELAYED_HEADERS if name in upstream}


@dataclass
class UpstreamStream:
    """An open upstream response, ready to be relayed.

    ``body`` yields the raw (still content-encoded) bytes and releases the
    connection when exhausted, cancelled or closed.  ``aclose`` is safe to
    call more than once.
    """

    status_code: int
    headers: dict[str, str]
    body: AsyncIterator[bytes]
    _response: httpx.Response

    async def aclose(self) -> None:
        await self._response.aclose()


async def open_upstream(
    http_client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str],
    range_header: str | None = None,
    timeout: float = 30.0,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> UpstreamStream:
    """Open a streaming GET to *url*.

    Raises ``UpstreamStreamError`` carrying upstream's status for 4xx/5xx
    answers, or 500 when the request failed before any response.
    """
    request_headers = dict(headers)
    if range_header:
        request_headers["Range"] = range_header

    try:
        resp = await http_client.send(
            http_client.build_request(
                "GET",
                url,
                headers=request_headers,
                timeout=timeout,
            ),
            stream=True,
            follow_redirects=True,
        )
    except httpx.HTTPError as exc:
        log.warning("proxy_upstream_request_failed", url=url, error=str(exc))
        raise UpstreamStreamError(f"upstream request failed: {exc}") from exc

    if resp.status_code >= 400:
        await resp.aclose()
        log.warning("proxy_upstream_status", url=url, status=resp.status_code)
        raise UpstreamStreamError(
            f"upstream returned {resp.status_code}",
            status_code=resp.status_code,
        )

    async def _iter() -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.aiter_raw(chunk_size=chunk_size):
                yield chunk
        except httpx.HTTPError as exc:
            # Headers are already on the wire; all we can do is end the body.
            log.warning("proxy_stream_interrupted", url=url, error=str(exc))
        finally:
            await resp.aclose()

    log.debug(
        "proxy_upstream_opened",
        url=url,
        status=resp.status_code,
        range=range_header,
    )
    return UpstreamStream(
        status_code=resp.status_code,
        headers=relay_headers(resp.headers),
        body=_iter(),
        _response=resp,
    )
