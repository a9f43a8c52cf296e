"""Pydantic models shared by the catalog services and exposed by the API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


ContentKind = Literal["show", "movie"]
JobStatus = Literal["queued", "running", "completed", "failed"]
LogLevel = Literal["debug", "info", "warning", "error"]


class QueueHealthStatus(BaseModel):
    """Represents Redis queue connectivity status."""

    status: Literal["ok", "error"] = Field(default="ok")
    detail: str | None = Field(
        default=None, description="Optional diagnostic message when the queue is unavailable."
    )


class HealthStatus(BaseModel):
    """Service health payload."""

    status: Literal["ok"] = Field(default="ok")
    version: str = Field(default="0.1.0", description="Semantic version of the API service.")
    queue: QueueHealthStatus = Field(
        default_factory=QueueHealthStatus,
        description="Health information for the background job queue.",
    )
    entries: dict[str, int] = Field(
        default_factory=dict, description="Stored entries per collection."
    )


class Rating(BaseModel):
    """Aggregated audience rating for a catalog entry."""

    votes: int = Field(default=0, ge=0)
    percentage: int = Field(default=0, ge=0, le=100)
    watching: int = Field(default=0, ge=0, description="Concurrent viewer gauge.")


class TorrentVariant(BaseModel):
    """One distributable instance of a title."""

    link: str = Field(..., description="Magnet URI or direct .torrent URL.")
    seeds: int = Field(default=0, ge=0)
    peers: int = Field(default=0, ge=0)
    name: str = Field(..., description="Display name derived from the link.")
    quality: str | None = Field(default=None, description="Quality label such as 720p.")
    provider: str | None = Field(default=None, description="Provider that reported the variant.")


class CatalogEntry(BaseModel):
    """Canonical merged record for one show or movie."""

    id: str | None = Field(default=None, description="Internal identifier assigned by the store.")
    kind: ContentKind
    imdb_id: str
    tvdb_id: str | None = None
    title: str = ""
    year: int | None = None
    slug: str = ""
    genres: list[str] = Field(default_factory=list)
    images: dict[str, str] = Field(default_factory=dict)
    rating: Rating = Field(default_factory=Rating)
    num_seasons: int = Field(default=0, description="Number of seasons, shows only.")
    episodes: dict[str, list[TorrentVariant]] = Field(
        default_factory=dict,
        description="Show variants keyed by S01E01 coordinates.",
    )
    torrents: dict[str, TorrentVariant] = Field(
        default_factory=dict,
        description="Movie variants keyed by language:quality coordinates.",
    )
    latest_episode: int = Field(
        default=0, description="Timestamp of the most recent episode, used for ordering."
    )
    rating_sources: dict[str, Rating] = Field(
        default_factory=dict,
        description="Per-provider rating signals the aggregate rating is computed from.",
    )

    def document(self) -> dict[str, Any]:
        """Return the JSON-compatible document persisted by the store."""

        return self.model_dump(mode="json")


class RawVariant(BaseModel):
    """Variant as reported by a provider, before link resolution."""

    link: Any
    seeds: int = Field(default=0, ge=0)
    peers: int = Field(default=0, ge=0)
    quality: str | None = None
    language: str = "en"
    season: int | None = Field(default=None, ge=0)
    episode: int | None = Field(default=None, ge=0)


class RawRecord(BaseModel):
    """Candidate record yielded by a provider adapter."""

    provider: str
    kind: ContentKind
    imdb_id: str | None = None
    tvdb_id: str | None = None
    title: str = ""
    year: int | None = None
    slug: str = ""
    genres: list[str] = Field(default_factory=list)
    images: dict[str, str] = Field(default_factory=dict)
    rating: Rating | None = None
    num_seasons: int = 0
    latest_episode: int = 0
    variants: list[RawVariant] = Field(default_factory=list)


class ProviderConfigModel(BaseModel):
    """Configuration for one external provider."""

    name: str = Field(..., min_length=1, description="Unique provider name.")
    kind: ContentKind = Field(..., description="Content kind the provider scrapes.")
    adapter: str = Field(default="json-feed", description="Registered adapter identifier.")
    endpoint: str = Field(..., description="Endpoint or URL template queried by the adapter.")
    params: dict[str, Any] = Field(
        default_factory=dict, description="Template parameters forwarded to the adapter."
    )
    enabled: bool = Field(default=True)


class ProviderReport(BaseModel):
    """Outcome of scraping a single provider."""

    name: str
    records: int = Field(default=0, description="Records produced by the adapter.")
    merged: int = Field(default=0, description="Records merged into the catalog.")
    skipped: int = Field(default=0, description="Records rejected during reconciliation.")
    error: str | None = Field(default=None, description="Adapter failure message, if any.")


class IngestionReport(BaseModel):
    """Completion signal returned by an orchestrator run."""

    workers: int
    providers: list[ProviderReport] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime

    @property
    def merged(self) -> int:
        return sum(report.merged for report in self.providers)

    @property
    def failed(self) -> list[str]:
        return [report.name for report in self.providers if report.error]


class IngestRequest(BaseModel):
    """Payload used to enqueue an ingestion job."""

    providers: list[str] | None = Field(
        default=None, description="Restrict the run to these provider names."
    )
    workers: int | None = Field(
        default=None, ge=0, description="Override the configured worker count."
    )


class JobModel(BaseModel):
    """Background ingestion run as exposed by ``/jobs``."""

    id: str
    type: str
    status: JobStatus
    worker_id: str | None = Field(default=None, description="Worker that executed the run.")
    payload: dict[str, Any] | None = Field(
        default=None, description="Ingest request the run was enqueued with."
    )
    report: dict[str, Any] | None = Field(
        default=None,
        description="Summary of the ingestion report once the run completes.",
    )
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error_message: str | None = None
    duration_seconds: float | None = None


class JobLogModel(BaseModel):
    """Event recorded while an ingestion run executes."""

    id: int
    job_id: str
    level: LogLevel = "info"
    message: str
    context: dict[str, Any] | None = None
    created_at: datetime
