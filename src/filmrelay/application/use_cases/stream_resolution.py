"""Cross-source stream resolution use case.

IMDb ID -> metadata title -> per-source search + title match (with
fallback tiers) -> episode resolution -> aggregated stream list.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from functools import partial
from typing import Protocol, TypeVar

import structlog

from filmrelay.domain.entities.catalog import (
    CatalogItem,
    ContentType,
    EpisodeRef,
    MatchQuery,
    StreamCandidate,
    StreamRequest,
    TitleInfo,
    source_of,
)
from filmrelay.domain.exceptions import (
    AdapterFailure,
    MetadataUnavailable,
    PluginNotFoundError,
)
from filmrelay.domain.ports.metadata import MetadataClientPort
from filmrelay.domain.ports.source import SourceAdapterPort
from filmrelay.domain.ports.source_registry import SourceRegistryPort

# ---------------------------------------------------------------------------
# Protocols: what this use case needs from its dependencies.
# Infrastructure components satisfy these via structural subtyping.
# ---------------------------------------------------------------------------


class _ResolutionConfig(Protocol):
    """Configuration values consumed by StreamResolutionUseCase."""

    timeout_seconds: float
    max_concurrent: int
    match_threshold: float
    fallback_max_words: int


# Type aliases for injected pure functions.
_SelectFn = Callable[..., CatalogItem | None]
_SlugTitleFn = Callable[[str], str]
_ProxyUrlFn = Callable[[str, str], str]

T = TypeVar("T")

log = structlog.get_logger(__name__)


async def guarded_call(
    source: str,
    operation: str,
    call: Awaitable[T],
    *,
    timeout: float,
) -> T | None:
    """Await one source call; failures and timeouts become ``None``.

    This is the source boundary: nothing a source raises gets past it.
    """
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except TimeoutError:
        log.warning(
            "source_call_timeout",
            source=source,
            operation=operation,
            timeout=timeout,
        )
    except AdapterFailure as exc:
        log.warning(
            "source_call_failed",
            source=source,
            operation=operation,
            error=str(exc),
        )
    except Exception:
        log.warning(
            "source_call_error",
            source=source,
            operation=operation,
            exc_info=True,
        )
    return None


# ---------------------------------------------------------------------------
# Stage helpers (pure)
# ---------------------------------------------------------------------------


def title_variants(info: TitleInfo, slug_title_fn: _SlugTitleFn) -> list[str]:
    """Titles to search, in order: the primary title, then the slug title.

    Variants equal (case-insensitively) to an earlier one are dropped.
    """
    candidates = [info.title]
    if info.slug:
        candidates.append(slug_title_fn(info.slug))

    variants: list[str] = []
    seen: set[str] = set()
    for title in candidates:
        key = title.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        variants.append(title.strip())
    return variants


def fallback_query(title: str, max_words: int) -> str | None:
    """First word of *title* when it has at most *max_words* words."""
    words = title.split()
    if not words or len(words) > max_words:
        return None
    return words[0]


@dataclass(frozen=True)
class SourceMatch:
    """The item one source holds for the requested title."""

    source: SourceAdapterPort
    item: CatalogItem


@dataclass(frozen=True)
class _Resolution:
    """Per-request state shared by the matching stages."""

    request: StreamRequest
    query: MatchQuery
    variants: tuple[str, ...]
    sources: tuple[SourceAdapterPort, ...]


class StreamResolutionUseCase:
    """Resolve an external id into streams aggregated across sources.

    Flow:
        1. Acquire title/year/slug from the metadata client.
        2. Enumerate title variants (primary, slug-derived).
        3. Primary cascade: per variant, search every source concurrently
           and match against the canonical title, then the variant.  The
           first variant with any match ends the cascade.
        4. Simplified fallback: search the first word of a short title.
        5. Resolve the requested episode on every matched source.
        6. Fetch and concatenate streams in source priority order.

    Composite ids (from the source catalogs) skip straight to step 6 on
    their owning source.  Every returned candidate that needs header
    injection is rewritten to a proxy link under *public_url*.
    """

    def __init__(
        self,
        *,
        metadata: MetadataClientPort,
        sources: SourceRegistryPort,
        config: _ResolutionConfig,
        select_fn: _SelectFn,
        slug_title_fn: _SlugTitleFn,
        proxy_url_fn: _ProxyUrlFn,
        public_url: str,
    ) -> None:
        self._metadata = metadata
        self._sources = sources
        self._select_fn = select_fn
        self._slug_title_fn = slug_title_fn
        self._proxy_url_fn = proxy_url_fn
        self._public_url = public_url
        self._timeout = config.timeout_seconds
        self._max_concurrent = config.max_concurrent
        self._threshold = config.match_threshold
        self._fallback_max_words = config.fallback_max_words
        self._match_stages: tuple[
            Callable[[_Resolution], Awaitable[list[SourceMatch]]], ...
        ] = (self._primary_cascade, self._simplified_fallback)

    async def execute(self, request: StreamRequest) -> list[StreamCandidate]:
        """Resolve streams for a parsed stream request.

        Returns:
            Streams in source priority order.  Empty when the title is
            unknown, no source matched or no source returned streams.
        """
        if not request.is_external:
            return await self.streams_for_id(request.raw_id)

        try:
            info = await self._acquire_title(request)
        except MetadataUnavailable:
            log.warning("stream_title_not_found", external_id=request.external_id)
            return []

        sources = tuple(self._sources.ordered())
        if not sources:
            log.warning("stream_no_sources")
            return []

        resolution = _Resolution(
            request=request,
            query=MatchQuery(
                title=info.title,
                content_type=request.content_type,
                year=info.year,
            ),
            variants=tuple(title_variants(info, self._slug_title_fn)),
            sources=sources,
        )
        log.info(
            "stream_resolution_start",
            external_id=request.external_id,
            title=info.title,
            year=info.year,
            variants=list(resolution.variants),
            source_count=len(sources),
        )

        matches: list[SourceMatch] = []
        for stage in self._match_stages:
            matches = await stage(resolution)
            if matches:
                break

        if not matches:
            log.info(
                "stream_no_match",
                external_id=request.external_id,
                title=info.title,
            )
            return []

        targets = await self._resolve_targets(matches, request)
        streams = await self._aggregate(targets)

        log.info(
            "stream_resolution_complete",
            external_id=request.external_id,
            matched=[m.source.name for m in matches],
            stream_count=len(streams),
        )
        return streams

    async def streams_for_id(self, raw_id: str) -> list[StreamCandidate]:
        """Streams for a composite id, asked of its owning source only."""
        try:
            source = self._sources.get(source_of(raw_id))
        except PluginNotFoundError:
            log.info("stream_unknown_source", id=raw_id)
            return []
        streams = await self._call(source, "get_streams", source.get_streams(raw_id))
        return self._finalize(streams or [])

    # ------------------------------------------------------------------
    # Stage 1: title acquisition
    # ------------------------------------------------------------------

    async def _acquire_title(self, request: StreamRequest) -> TitleInfo:
        try:
            info = await asyncio.wait_for(
                self._metadata.get_title_info(
                    request.content_type, request.external_id
                ),
                timeout=self._timeout,
            )
        except TimeoutError as exc:
            raise MetadataUnavailable(request.external_id) from exc
        except Exception as exc:
            log.warning(
                "stream_metadata_error",
                external_id=request.external_id,
                exc_info=True,
            )
            raise MetadataUnavailable(request.external_id) from exc
        if info is None or not info.title.strip():
            raise MetadataUnavailable(request.external_id)
        return info

    # ------------------------------------------------------------------
    # Stages 3 + 4: matching
    # ------------------------------------------------------------------

    async def _primary_cascade(self, res: _Resolution) -> list[SourceMatch]:
        for variant in res.variants:
            targets = [res.query.title]
            if variant.lower() != res.query.title.lower():
                targets.append(variant)
            matches = await self._search_and_match(
                res.sources, variant, targets, res.query.content_type
            )
            if matches:
                log.info(
                    "stream_variant_matched",
                    variant=variant,
                    sources=[m.source.name for m in matches],
                )
                return matches
        return []

    async def _simplified_fallback(self, res: _Resolution) -> list[SourceMatch]:
        query = fallback_query(res.query.title, self._fallback_max_words)
        if query is None:
            log.debug("stream_fallback_skipped", title=res.query.title)
            return []
        log.info("stream_fallback_search", title=res.query.title, query=query)
        return await self._search_and_match(
            res.sources, query, [res.query.title], res.query.content_type
        )

    async def _search_and_match(
        self,
        sources: Sequence[SourceAdapterPort],
        query: str,
        targets: Sequence[str],
        content_type: ContentType,
    ) -> list[SourceMatch]:
        """Search every source for *query*; keep the sources that matched.

        Per source, the first target title that selects an item wins.
        """
        results = await self._fan_out(
            "search_by_title",
            [(s, partial(s.search_by_title, query)) for s in sources],
        )

        matches: list[SourceMatch] = []
        for source, items in zip(sources, results, strict=True):
            if not items:
                continue
            for target in targets:
                item = self._select_fn(
                    items, target, content_type, threshold=self._threshold
                )
                if item is not None:
                    matches.append(SourceMatch(source=source, item=item))
                    break
        return matches

    # ------------------------------------------------------------------
    # Stages 5 + 6: episodes and streams
    # ------------------------------------------------------------------

    async def _resolve_targets(
        self,
        matches: Sequence[SourceMatch],
        request: StreamRequest,
    ) -> list[tuple[SourceAdapterPort, str]]:
        """(source, id) pairs to fetch streams for, in match order."""
        if request.season is None or request.episode is None:
            return [(m.source, m.item.id) for m in matches]

        refs = [
            EpisodeRef(
                series_id=m.item.id,
                season=request.season,
                episode=request.episode,
            )
            for m in matches
        ]
        resolved = await self._fan_out(
            "resolve_episode",
            [
                (
                    m.source,
                    partial(
                        m.source.resolve_episode,
                        ref.series_id,
                        ref.season,
                        ref.episode,
                    ),
                )
                for m, ref in zip(matches, refs, strict=True)
            ],
        )

        targets: list[tuple[SourceAdapterPort, str]] = []
        for match, ref, episode_id in zip(matches, refs, resolved, strict=True):
            if not episode_id:
                log.info(
                    "stream_episode_unresolved",
                    source=match.source.name,
                    series_id=ref.series_id,
                    season=ref.season,
                    episode=ref.episode,
                )
                continue
            ref = replace(ref, episode_id=episode_id)
            targets.append((match.source, ref.episode_id))
        return targets

    async def _aggregate(
        self, targets: Sequence[tuple[SourceAdapterPort, str]]
    ) -> list[StreamCandidate]:
        results = await self._fan_out(
            "get_streams",
            [
                (source, partial(source.get_streams, target_id))
                for source, target_id in targets
            ],
        )
        streams: list[StreamCandidate] = []
        for candidates in results:
            streams.extend(candidates or [])
        return self._finalize(streams)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _call(
        self, source: SourceAdapterPort, operation: str, call: Awaitable[T]
    ) -> T | None:
        return await guarded_call(
            source.name, operation, call, timeout=self._timeout
        )

    async def _fan_out(
        self,
        operation: str,
        jobs: Sequence[tuple[SourceAdapterPort, Callable[[], Awaitable[T]]]],
    ) -> list[T | None]:
        """Run one call per source concurrently; results keep job order."""
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _one(
            source: SourceAdapterPort, call: Callable[[], Awaitable[T]]
        ) -> T | None:
            async with semaphore:
                return await self._call(source, operation, call())

        return list(await asyncio.gather(*(_one(s, c) for s, c in jobs)))

    def _finalize(self, streams: Iterable[StreamCandidate]) -> list[StreamCandidate]:
        """Point candidates that need header injection at the proxy."""
        return [
            s
            if s.is_directly_playable
            else replace(s, url=self._proxy_url_fn(self._public_url, s.url))
            for s in streams
        ]
