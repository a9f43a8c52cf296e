"""Shared state container for the catalog API and CLI."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from .db import create_engine_from_settings, init_database
from .providers import ProviderAdapter, default_adapters
from .services.query import QueryService, movie_query_config, show_query_config
from .services.transfer import CatalogTransfer
from .settings import CatalogSettings
from .stores.catalog_store import CatalogStore
from .stores.job_log_store import JobLogStore
from .stores.job_store import JobStore
from .stores.provider_store import ProviderStore


@dataclass(slots=True)
class AppState:
    """Wires stores and services around a single database engine."""

    settings: CatalogSettings
    engine: Engine
    catalog_store: CatalogStore
    provider_store: ProviderStore
    job_store: JobStore
    job_log_store: JobLogStore
    shows: QueryService
    movies: QueryService
    transfer: CatalogTransfer
    adapters: dict[str, ProviderAdapter]

    def __init__(self, settings: CatalogSettings) -> None:
        self.settings = settings
        self.engine = create_engine_from_settings(settings)
        init_database(self.engine, settings)
        self.catalog_store = CatalogStore(self.engine)
        self.provider_store = ProviderStore(self.engine)
        self.job_store = JobStore(self.engine)
        self.job_log_store = JobLogStore(self.engine)
        self.shows = QueryService(self.catalog_store, show_query_config(settings.page_size))
        self.movies = QueryService(self.catalog_store, movie_query_config(settings.page_size))
        self.transfer = CatalogTransfer(self.catalog_store, settings.export_path)
        self.adapters = default_adapters(timeout=settings.provider_timeout)
