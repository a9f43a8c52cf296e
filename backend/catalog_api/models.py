"""Database models for the catalog service."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel


class CatalogEntryRecord(SQLModel, table=True):
    """Persisted catalog entry.

    The full entry lives in ``document``; the fields reads filter and sort on
    are copied into their own columns. ``version`` increases on every write.
    """

    __tablename__ = "catalog_entries"

    id: str = Field(primary_key=True, index=True)
    imdb_id: str = Field(unique=True, index=True)
    tvdb_id: str | None = Field(default=None, index=True)
    kind: str = Field(index=True)
    title: str = Field(default="", index=True)
    title_words: str = Field(default=" ")
    genre_tags: str = Field(default="|")
    year: int = Field(default=0, index=True)
    num_seasons: int = Field(default=0, index=True)
    latest_episode: int = Field(default=0, index=True)
    rating_votes: int = Field(default=0, index=True)
    rating_percentage: int = Field(default=0)
    rating_watching: int = Field(default=0)
    has_torrents: bool = Field(default=False, index=True)
    version: int = Field(default=1)
    document: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class ProviderConfigRecord(SQLModel, table=True):
    """Persisted provider configuration keyed by provider name."""

    __tablename__ = "provider_configs"

    name: str = Field(primary_key=True)
    kind: str = Field(index=True)
    adapter: str = Field(default="json-feed")
    endpoint: str
    params: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    enabled: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class JobRecord(SQLModel, table=True):
    """One background ingestion run."""

    __tablename__ = "catalog_jobs"

    id: str = Field(primary_key=True, index=True)
    type: str = Field(index=True)
    status: str = Field(default="queued", index=True)
    worker_id: str | None = Field(default=None, index=True)
    payload: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    report: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    started_at: datetime | None = Field(default=None, index=True)
    finished_at: datetime | None = Field(default=None, index=True)
    error_message: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class JobLogRecord(SQLModel, table=True):
    """Structured log event associated with an ingestion job."""

    __tablename__ = "catalog_job_logs"

    id: int | None = Field(default=None, primary_key=True)
    job_id: str = Field(index=True)
    level: str = Field(default="info", index=True)
    message: str
    context: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
