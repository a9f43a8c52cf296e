"""Redis-backed job queue integration for ingestion runs."""
from __future__ import annotations

from typing import Any

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue

try:  # pragma: no cover - optional dependency for test environments
    import fakeredis
except ModuleNotFoundError:  # pragma: no cover - runtime path without fakeredis
    fakeredis = None  # type: ignore[assignment]

from ..schemas import JobModel
from ..settings import CatalogSettings
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import INGEST_JOB, JobStore
from .tasks import execute_ingestion_job


class JobQueueError(RuntimeError):
    """Raised when the queue cannot accept a job."""


class JobQueueService:
    """Encapsulates the Redis queue connection and enqueue workflow."""

    def __init__(self, settings: CatalogSettings) -> None:
        self._settings = settings
        self._connection = self._create_connection(settings)
        self._queue = Queue(settings.redis_queue_name, connection=self._connection)

    @staticmethod
    def _create_connection(settings: CatalogSettings) -> Redis:
        """Instantiate a Redis connection, supporting fakeredis for tests."""

        url = settings.redis_url
        if url.startswith("fakeredis://"):
            if fakeredis is None:  # pragma: no cover - safety branch
                raise JobQueueError("fakeredis is required for fakeredis:// URLs")
            return fakeredis.FakeRedis()  # type: ignore[return-value]
        return Redis.from_url(url)

    @property
    def queue(self) -> Queue:
        return self._queue

    @property
    def connection(self) -> Redis:
        return self._connection

    def ping(self) -> bool:
        """Check whether the queue backend is reachable."""

        try:
            return bool(self._connection.ping())
        except RedisError:
            return False

    def enqueue_ingestion(
        self,
        job_store: JobStore,
        log_store: JobLogStore,
        payload: dict[str, Any] | None = None,
    ) -> JobModel:
        """Persist an ingestion job and enqueue it for a worker."""

        job = job_store.create(payload)
        log_store.log(job.id, "info", f"Job {INGEST_JOB} enqueued", **({"payload": payload} if payload else {}))

        try:
            self._queue.enqueue(
                execute_ingestion_job,
                job_id=job.id,
                kwargs={
                    "job_id": job.id,
                    "payload": payload,
                    "settings": self._settings.model_dump(),
                    "worker_name": self._settings.queue_worker_name,
                },
            )
        except RedisError as exc:  # pragma: no cover - failure path
            log_store.log(job.id, "error", "Failed to enqueue job", error=str(exc))
            job_store.fail(job.id, "queue_unavailable")
            raise JobQueueError("Unable to enqueue job") from exc

        return job
