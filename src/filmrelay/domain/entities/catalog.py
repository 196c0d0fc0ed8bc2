"""Domain entities for cross-source catalog resolution.

Pure value objects: no framework dependencies, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from filmrelay.domain.exceptions import InvalidCompositeId

ContentType = Literal["movie", "series"]

# Second segment of a composite id.  "episode" only appears on ids that
# adapters mint for resolved episodes.
IdKind = Literal["movie", "series", "episode"]

_ID_KINDS: frozenset[str] = frozenset({"movie", "series", "episode"})

# External catalog ids (IMDb) carry this fixed prefix.
EXTERNAL_ID_PREFIX = "tt"

# Catalog pages hold this many items; addon pagination skips in these steps.
CATALOG_PAGE_SIZE = 20


def page_from_skip(skip: int) -> int:
    """Convert a zero-based skip cursor to a 1-indexed catalog page."""
    return max(skip, 0) // CATALOG_PAGE_SIZE + 1


@dataclass(frozen=True)
class CompositeId:
    """Opaque id that threads a source tag through catalog → meta → stream.

    Serialised as ``<source>:<kind>:<payload...>``.  Only the owning
    adapter interprets *payload*; everything else forwards the whole id.

    >>> str(CompositeId.parse("purstream:episode:3830:1:2"))
    'purstream:episode:3830:1:2'
    """

    source: str
    kind: IdKind
    payload: tuple[str, ...]

    @classmethod
    def build(cls, source: str, kind: IdKind, *payload: object) -> CompositeId:
        return cls(source=source, kind=kind, payload=tuple(str(p) for p in payload))

    @classmethod
    def parse(cls, raw: str) -> CompositeId:
        """Parse a composite id, raising ``InvalidCompositeId`` on bad input."""
        parts = raw.split(":")
        if len(parts) < 3 or not parts[0] or not parts[2]:
            raise InvalidCompositeId(raw)
        if parts[1] not in _ID_KINDS:
            raise InvalidCompositeId(raw)
        return cls(source=parts[0], kind=parts[1], payload=tuple(parts[2:]))  # type: ignore[arg-type]

    @property
    def tail(self) -> str:
        """Payload re-joined as a single string (for path-like payloads)."""
        return ":".join(self.payload)

    def __str__(self) -> str:
        return ":".join((self.source, self.kind, *self.payload))


def source_of(raw_id: str) -> str:
    """Return the owning source tag of a composite id string."""
    return raw_id.split(":", 1)[0]


def is_external_id(raw_id: str) -> bool:
    return raw_id.startswith(EXTERNAL_ID_PREFIX)


@dataclass(frozen=True)
class EpisodeEntry:
    """One row of a series' episode index as reported by a source."""

    id: str  # composite episode id
    season: int
    episode: int
    title: str = ""
    released: str = ""
    thumbnail: str = ""
    overview: str = ""


@dataclass(frozen=True)
class CatalogItem:
    """Normalized catalog entry produced by a source adapter."""

    id: str  # composite id, see CompositeId
    type: ContentType
    name: str  # source-native display title (not normalized)
    poster: str = ""
    background: str = ""
    description: str = ""
    release_year: str = ""
    genres: tuple[str, ...] = ()
    episodes: tuple[EpisodeEntry, ...] = ()


@dataclass(frozen=True)
class EpisodeRef:
    """A requested episode of a matched series and, once found, its id."""

    series_id: str
    season: int
    episode: int
    episode_id: str | None = None

    def __post_init__(self) -> None:
        if self.season < 1 or self.episode < 1:
            raise ValueError("season and episode must be positive")


@dataclass(frozen=True)
class StreamCandidate:
    """A playable result.

    ``is_directly_playable`` is False when the URL only plays through the
    streaming proxy (header injection, range relay).
    """

    url: str
    label: str  # e.g. "[purstream] VF 1080p (mp4)"
    is_directly_playable: bool = True
    binge_group: str = ""


@dataclass(frozen=True)
class MatchQuery:
    """Target of a match: title + content type + optional year."""

    title: str
    content_type: ContentType
    year: str = ""


@dataclass(frozen=True)
class TitleInfo:
    """Result of resolving an external id via the metadata collaborator."""

    title: str
    year: str = ""
    slug: str = ""


@dataclass(frozen=True)
class StreamRequest:
    """Parsed stream request.

    Created from URL path: ``tt1375666`` (movie),
    ``tt0944947:1:5`` (series, season 1, episode 5) or a composite id
    minted by one of the sources.
    """

    raw_id: str
    content_type: ContentType
    season: int | None = None
    episode: int | None = None

    @property
    def is_external(self) -> bool:
        return is_external_id(self.raw_id)

    @property
    def external_id(self) -> str:
        return self.raw_id.split(":", 1)[0]

    @classmethod
    def parse(cls, content_type: ContentType, raw_id: str) -> StreamRequest | None:
        """Parse ``tt...[:season:episode]`` or a composite id; None if invalid."""
        if not is_external_id(raw_id):
            try:
                CompositeId.parse(raw_id)
            except InvalidCompositeId:
                return None
            return cls(raw_id=raw_id, content_type=content_type)

        parts = raw_id.split(":")
        if len(parts) == 3:
            try:
                season, episode = int(parts[1]), int(parts[2])
            except ValueError:
                return None
            if season < 1 or episode < 1:
                return None
            return cls(
                raw_id=parts[0],
                content_type=content_type,
                season=season,
                episode=episode,
            )
        if len(parts) != 1:
            return None
        return cls(raw_id=raw_id, content_type=content_type)
