"""Catalog browsing and meta detail use case.

Source catalogs are addressed by source name; items and metas carry the
composite ids that route later meta/stream calls back to the same source.
"""

from __future__ import annotations

import structlog

from filmrelay.domain.entities.catalog import (
    CatalogItem,
    ContentType,
    is_external_id,
    page_from_skip,
    source_of,
)
from filmrelay.domain.exceptions import PluginNotFoundError
from filmrelay.domain.ports.source import SourceAdapterPort
from filmrelay.domain.ports.source_registry import SourceRegistryPort

from .stream_resolution import guarded_call

log = structlog.get_logger(__name__)


class CatalogUseCase:
    """List source catalogs and fetch item details."""

    def __init__(
        self,
        *,
        sources: SourceRegistryPort,
        timeout_seconds: float,
    ) -> None:
        self._sources = sources
        self._timeout = timeout_seconds

    def _source(self, name: str) -> SourceAdapterPort | None:
        try:
            return self._sources.get(name)
        except PluginNotFoundError:
            log.info("catalog_unknown_source", source=name)
            return None

    async def list_catalog(
        self,
        content_type: ContentType,
        source_name: str,
        *,
        skip: int = 0,
        search: str | None = None,
    ) -> list[CatalogItem]:
        """One page of *source_name*'s catalog, or its search results.

        Search results of the other content type are dropped.
        """
        source = self._source(source_name)
        if source is None:
            return []

        if search:
            items = await guarded_call(
                source.name,
                "search_by_title",
                source.search_by_title(search),
                timeout=self._timeout,
            )
            return [i for i in items or [] if i.type == content_type]

        page = page_from_skip(skip)
        items = await guarded_call(
            source.name,
            "get_catalog_page",
            source.get_catalog_page(content_type, page),
            timeout=self._timeout,
        )
        log.debug(
            "catalog_page",
            source=source.name,
            type=content_type,
            page=page,
            count=len(items or []),
        )
        return items or []

    async def get_meta(self, item_id: str) -> CatalogItem | None:
        """Details of a composite id; external ids have none here."""
        if is_external_id(item_id):
            return None
        source = self._source(source_of(item_id))
        if source is None:
            return None
        return await guarded_call(
            source.name,
            "get_details",
            source.get_details(item_id),
            timeout=self._timeout,
        )
