"""Domain exceptions."""

from __future__ import annotations


class FilmrelayError(Exception):
    """Base class for all filmrelay errors."""


class AdapterFailure(FilmrelayError):
    """A single source failed (network, parse, unexpected payload shape).

    Never propagates past the source boundary; callers see an empty result.
    """

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class MetadataUnavailable(FilmrelayError):
    """External id could not be resolved to a title. Terminal for a request."""

    def __init__(self, external_id: str) -> None:
        super().__init__(f"no metadata for {external_id}")
        self.external_id = external_id


class UpstreamStreamError(FilmrelayError):
    """The proxied upstream answered with an error or failed before headers."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidCompositeId(FilmrelayError, ValueError):
    """Raised when a string is not a ``source:kind:payload`` composite id."""


class PluginError(FilmrelayError):
    """Base class for all plugin-related errors."""


class PluginLoadError(PluginError):
    """Raised when a source plugin fails to import or does not match the protocol."""


class PluginNotFoundError(PluginError):
    """Raised when a source name is not known to the registry."""


class DuplicatePluginError(PluginError):
    """Raised when two plugin files resolve to the same source name."""
