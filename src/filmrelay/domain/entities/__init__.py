from .catalog import (
    CATALOG_PAGE_SIZE,
    EXTERNAL_ID_PREFIX,
    CatalogItem,
    CompositeId,
    ContentType,
    EpisodeEntry,
    EpisodeRef,
    IdKind,
    MatchQuery,
    StreamCandidate,
    StreamRequest,
    TitleInfo,
    is_external_id,
    page_from_skip,
    source_of,
)

__all__ = [
    "CATALOG_PAGE_SIZE",
    "EXTERNAL_ID_PREFIX",
    "CatalogItem",
    "CompositeId",
    "ContentType",
    "EpisodeEntry",
    "EpisodeRef",
    "IdKind",
    "MatchQuery",
    "StreamCandidate",
    "StreamRequest",
    "TitleInfo",
    "is_external_id",
    "page_from_skip",
    "source_of",
]
