"""Ingestion job endpoints."""
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from ..dependencies import get_job_log_store, get_job_queue, get_job_store
from ..schemas import IngestRequest, JobLogModel, JobModel, LogLevel
from ..services.queue import JobQueueError, JobQueueService
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStore

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("/ingest", response_model=JobModel, status_code=201)
def enqueue_ingestion(
    request: IngestRequest | None = Body(default=None),
    store: JobStore = Depends(get_job_store),
    log_store: JobLogStore = Depends(get_job_log_store),
    queue: JobQueueService = Depends(get_job_queue),
) -> JobModel:
    """Enqueue a provider ingestion run for a background worker."""

    payload = request.model_dump(exclude_none=True) if request else None
    try:
        return queue.enqueue_ingestion(store, log_store, payload or None)
    except JobQueueError as exc:  # pragma: no cover - queue failures
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@router.get("", response_model=list[JobModel])
def list_jobs(
    limit: int = Query(default=50, ge=1, le=100),
    statuses: Annotated[
        list[str] | None,
        Query(
            alias="status",
            description=(
                "Filter results to one or more job statuses. Repeat the query parameter "
                "to include multiple statuses."
            ),
        ),
    ] = None,
    store: JobStore = Depends(get_job_store),
) -> list[JobModel]:
    """Return the most recent jobs up to the requested limit."""

    return store.recent(limit=limit, statuses=statuses)


@router.get("/{job_id}", response_model=JobModel)
def get_job(job_id: str, store: JobStore = Depends(get_job_store)) -> JobModel:
    """Return metadata for a single job, raising if missing."""

    job = store.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.get("/{job_id}/logs", response_model=list[JobLogModel])
def list_job_logs(
    job_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    level: LogLevel | None = Query(default=None, description="Only return events of this level."),
    store: JobStore = Depends(get_job_store),
    log_store: JobLogStore = Depends(get_job_log_store),
) -> list[JobLogModel]:
    """Return log events associated with a job."""

    if store.get(job_id) is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return log_store.entries(job_id, limit=limit, level=level)
