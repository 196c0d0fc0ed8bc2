"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from filmrelay.infrastructure.plugins.constants import DEFAULT_USER_AGENT

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class SourcesConfig(BaseModel):
    """Cross-source resolution settings (YAML section: sources.*)."""

    priority: list[str] = Field(
        default_factory=lambda: ["purstream", "xalaflix", "frenchstream"],
        description="Source order for matching and stream aggregation.",
    )
    timeout_seconds: float = Field(
        default=15.0,
        description="Per-call timeout for every source operation.",
    )
    max_concurrent: int = Field(
        default=5,
        description="Max parallel source calls within one fan-out.",
    )
    match_threshold: float = Field(
        default=0.7,
        description="Minimum title similarity for a non-containing match.",
    )
    fallback_max_words: int = Field(
        default=3,
        description="Titles with at most this many words get the first-word fallback.",
    )
    episode_tolerance: int = Field(
        default=1,
        description="Accept an episode numbered up to ±N from the request.",
    )

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("sources.timeout_seconds must be > 0")
        return v

    @field_validator("max_concurrent")
    @classmethod
    def _validate_max_concurrent(cls, v: int) -> int:
        if v < 1:
            raise ValueError("sources.max_concurrent must be >= 1")
        return v

    @field_validator("match_threshold")
    @classmethod
    def _validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("sources.match_threshold must be within [0, 1]")
        return v

    @field_validator("fallback_max_words", "episode_tolerance")
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must be >= 0")
        return v


class ProxyConfig(BaseModel):
    """Stream proxy settings (YAML section: proxy.*)."""

    timeout_seconds: float = Field(
        default=30.0,
        description="Upstream timeout for proxied stream requests.",
    )
    chunk_size: int = Field(
        default=65_536,
        description="Body relay chunk size in bytes.",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="Browser User-Agent sent upstream.",
    )
    referer: str = Field(
        default="https://xalaflix.io/",
        description="Referer sent upstream.",
    )
    origin: str = Field(
        default="https://xalaflix.io",
        description="Origin sent upstream.",
    )

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("proxy.timeout_seconds must be > 0")
        return v

    @field_validator("chunk_size")
    @classmethod
    def _validate_chunk_size(cls, v: int) -> int:
        if v < 1024:
            raise ValueError("proxy.chunk_size must be >= 1024")
        return v


class MetadataConfig(BaseModel):
    """Metadata collaborator settings (YAML section: metadata.*)."""

    base_url: str = Field(
        default="https://v3-cinemeta.strem.io",
        description="Cinemeta base URL.",
    )


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (server/plugins/http/logging/sources/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="filmrelay", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Base URL players reach the addon on (YAML section: server.public_url)
    public_url: str = Field(
        default="http://127.0.0.1:7000",
        validation_alias=AliasChoices(
            "public_url",
            AliasPath("server", "public_url"),
        ),
        description="Base URL embedded in proxy stream links.",
    )

    # Plugins (YAML section: plugins.plugin_dir)
    plugin_dir: Path = Field(
        default=Path("./plugins"),
        validation_alias=AliasChoices(
            "plugin_dir",
            AliasPath("plugins", "plugin_dir"),
        ),
        description="Directory containing source plugins.",
    )

    # Shared HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Timeout in seconds for the shared HTTP client.",
    )
    http_user_agent: str = Field(
        default="filmrelay/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for metadata requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)

    @field_validator("plugin_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("public_url")
    @classmethod
    def _validate_public_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("public_url must be an http(s) URL")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "server": {"public_url": self.public_url},
            "plugins": {"plugin_dir": str(self.plugin_dir)},
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "sources": self.sources.model_dump(),
            "proxy": self.proxy.model_dump(),
            "metadata": self.metadata.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read FILMRELAY_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - FILMRELAY_PUBLIC_URL (or ADDON_HOST)
    - FILMRELAY_PLUGIN_DIR
    - FILMRELAY_LOG_LEVEL
    - FILMRELAY_SOURCES_TIMEOUT_SECONDS
    - FILMRELAY_SOURCES_PRIORITY='["xalaflix", "purstream"]'
    - FILMRELAY_PROXY_REFERER
    """

    model_config = SettingsConfigDict(
        env_prefix="FILMRELAY_",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    public_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FILMRELAY_PUBLIC_URL", "ADDON_HOST"),
    )
    plugin_dir: Optional[Path] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    sources_priority: Optional[list[str]] = None
    sources_timeout_seconds: Optional[float] = None
    sources_max_concurrent: Optional[int] = None
    sources_match_threshold: Optional[float] = None
    sources_fallback_max_words: Optional[int] = None
    sources_episode_tolerance: Optional[int] = None

    proxy_timeout_seconds: Optional[float] = None
    proxy_chunk_size: Optional[int] = None
    proxy_user_agent: Optional[str] = None
    proxy_referer: Optional[str] = None
    proxy_origin: Optional[str] = None

    metadata_base_url: Optional[str] = None

    @field_validator("plugin_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
