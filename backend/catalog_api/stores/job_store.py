"""Lifecycle records for background ingestion runs."""
from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any
from uuid import uuid4

from sqlmodel import Session, select

from ..errors import NotFoundError
from ..models import JobRecord
from ..schemas import IngestionReport, JobModel, JobStatus

INGEST_JOB = "ingest"


class JobStore:
    """Tracks each ingestion run from queued to completed or failed.

    A completed run keeps a summary of its :class:`IngestionReport` so callers
    can see what was merged without reading the job log.
    """

    def __init__(self, engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def create(self, payload: dict[str, Any] | None = None) -> JobModel:
        record = JobRecord(id=uuid4().hex, type=INGEST_JOB, payload=payload)
        with self._lock, Session(self._engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_model(record)

    def recent(self, *, limit: int = 50, statuses: list[str] | None = None) -> list[JobModel]:
        """Newest runs first, optionally limited to some statuses."""

        statement = select(JobRecord).order_by(JobRecord.created_at.desc(), JobRecord.id)
        wanted = {status.lower() for status in statuses or [] if status}
        if wanted:
            statement = statement.where(JobRecord.status.in_(sorted(wanted)))
        with Session(self._engine) as session:
            return [_to_model(record) for record in session.exec(statement.limit(limit))]

    def get(self, job_id: str) -> JobModel | None:
        with Session(self._engine) as session:
            record = session.get(JobRecord, job_id)
            return _to_model(record) if record else None

    def start(self, job_id: str, *, worker_id: str | None = None) -> JobModel:
        return self._transition(job_id, "running", started_at=datetime.utcnow(), worker_id=worker_id)

    def finish(self, job_id: str, report: IngestionReport) -> JobModel:
        summary = {
            "workers": report.workers,
            "merged": report.merged,
            "failed": report.failed,
            "providers": [provider.model_dump() for provider in report.providers],
        }
        return self._transition(job_id, "completed", finished_at=datetime.utcnow(), report=summary)

    def fail(self, job_id: str, error: str) -> JobModel:
        return self._transition(job_id, "failed", finished_at=datetime.utcnow(), error_message=error)

    def _transition(self, job_id: str, status: JobStatus, **changes: Any) -> JobModel:
        with self._lock, Session(self._engine) as session:
            record = session.get(JobRecord, job_id)
            if record is None:
                raise NotFoundError(f"Job {job_id} not found")
            record.status = status
            for field, value in changes.items():
                if value is not None:
                    setattr(record, field, value)
            record.updated_at = datetime.utcnow()
            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_model(record)


def _to_model(record: JobRecord) -> JobModel:
    duration = None
    if record.started_at and record.finished_at:
        duration = (record.finished_at - record.started_at).total_seconds()
    return JobModel.model_validate(record, from_attributes=True).model_copy(
        update={"duration_seconds": duration}
    )
