"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from filmrelay.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from filmrelay.application.use_cases.catalog import CatalogUseCase
    from filmrelay.application.use_cases.stream_resolution import (
        StreamResolutionUseCase,
    )
    from filmrelay.domain.ports import MetadataClientPort
    from filmrelay.infrastructure.plugins import PluginRegistry


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure (shared by metadata lookups and the stream proxy)
    http_client: httpx.AsyncClient

    # Domain Ports
    plugins: PluginRegistry
    metadata_client: MetadataClientPort

    # Application Services
    stream_uc: StreamResolutionUseCase
    catalog_uc: CatalogUseCase
