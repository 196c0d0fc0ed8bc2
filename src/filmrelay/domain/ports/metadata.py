"""Port for external-id → title lookups."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from filmrelay.domain.entities.catalog import ContentType, TitleInfo


@runtime_checkable
class MetadataClientPort(Protocol):
    """Async interface for the metadata collaborator (e.g. Cinemeta)."""

    async def get_title_info(
        self, content_type: ContentType, external_id: str
    ) -> TitleInfo | None:
        """Resolve title, year and slug for an external id.

        Returns None if the lookup failed or produced no usable name.
        """
        ...
