"""Port for content sources (one adapter per upstream site)."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from filmrelay.domain.entities.catalog import (
    CatalogItem,
    ContentType,
    StreamCandidate,
)


@runtime_checkable
class SourceAdapterPort(Protocol):
    """Async interface every source plugin satisfies structurally.

    Ids passed in are composite ids previously minted by the *same*
    adapter.  Search and stream methods are best-effort and return empty
    lists on upstream errors instead of raising.
    """

    name: str

    async def search_by_title(self, query: str) -> list[CatalogItem]:
        """Free-text search; ``[]`` on any upstream error."""
        ...

    async def get_catalog_page(
        self, content_type: ContentType, page: int = 1
    ) -> list[CatalogItem]:
        """Browse the catalog (1-indexed pages of 20 items)."""
        ...

    async def get_details(self, item_id: str) -> CatalogItem | None:
        """Full item, with the episode index for series."""
        ...

    async def resolve_episode(
        self, series_id: str, season: int, episode: int
    ) -> str | None:
        """Locate an episode and return its composite id, or None."""
        ...

    async def get_streams(self, resolved_id: str) -> list[StreamCandidate]:
        """Playable streams for a movie or resolved episode id."""
        ...
