"""Runtime configuration for the catalog service."""
from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.paths import default_export_path


class CatalogSettings(BaseSettings):
    """Environment-aware settings for the catalog API, CLI and worker."""

    database_url: str = Field(
        default="sqlite:///./data/catalog.db",
        description="Connection URL for the catalog database.",
    )
    database_echo: bool = Field(
        default=False, description="Enable SQL echo for debugging queries."
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection URL for the Redis-backed job queue.",
    )
    redis_queue_name: str = Field(
        default="marquee-ingest",
        description="RQ queue name used for ingestion jobs.",
    )
    queue_worker_name: str = Field(
        default="catalog-worker",
        description="Identifier used when reporting job worker executions.",
    )
    page_size: int = Field(
        default=50, ge=1, description="Number of catalog entries returned per page."
    )
    scrape_workers: int = Field(
        default=2,
        ge=0,
        description="Concurrent provider workers per ingestion run; 0 disables ingestion.",
    )
    provider_timeout: float = Field(
        default=30.0, gt=0, description="Per-request timeout applied by HTTP provider adapters."
    )
    export_path: str = Field(
        default_factory=default_export_path,
        description="Directory where catalog exports are written.",
    )
    default_providers: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Provider configurations seeded into an empty database.",
    )

    model_config = SettingsConfigDict(
        env_prefix="MARQUEE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
