"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from filmrelay.application.use_cases.catalog import CatalogUseCase
from filmrelay.application.use_cases.stream_resolution import StreamResolutionUseCase
from filmrelay.infrastructure.config.schema import AppConfig
from filmrelay.infrastructure.metadata.cinemeta import CinemetaClient
from filmrelay.infrastructure.plugins import PluginRegistry
from filmrelay.infrastructure.stremio.stream_proxy import build_proxy_url
from filmrelay.infrastructure.stremio.title_matcher import (
    select_best,
    title_from_slug,
)
from filmrelay.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def _apply_source_settings(plugins: PluginRegistry, config: AppConfig) -> None:
    """Push config values the sources read at call time."""
    for name in plugins.list_names():
        plugin = plugins.get(name)
        if hasattr(plugin, "episode_tolerance"):
            plugin.episode_tolerance = config.sources.episode_tolerance


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. HTTP Client (metadata lookups + stream proxy)
        2. Source registry (plugins keep their own clients)
        3. Metadata client (uses HTTP client)
        4. Use cases (use registry + metadata client)
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Shared HTTP client
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=True,
    )
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    # 2) Sources
    state.plugins = PluginRegistry(
        config.plugin_dir,
        priority=config.sources.priority,
    )
    state.plugins.load_all()
    _apply_source_settings(state.plugins, config)
    log.info(
        "sources_loaded",
        sources=[p.name for p in state.plugins.ordered()],
    )

    # 3) Metadata
    state.metadata_client = CinemetaClient(
        http_client=state.http_client,
        base_url=config.metadata.base_url,
    )

    # 4) Use cases
    state.stream_uc = StreamResolutionUseCase(
        metadata=state.metadata_client,
        sources=state.plugins,
        config=config.sources,
        select_fn=select_best,
        slug_title_fn=title_from_slug,
        proxy_url_fn=build_proxy_url,
        public_url=config.public_url,
    )
    state.catalog_uc = CatalogUseCase(
        sources=state.plugins,
        timeout_seconds=config.sources.timeout_seconds,
    )
    log.info("app_startup_complete", public_url=config.public_url)

    try:
        yield
    finally:
        await state.plugins.cleanup_all()
        log.info("sources_cleaned_up")

        await state.http_client.aclose()
        log.info("http_client_closed")

        log.info("app_shutdown_complete")
