"""Persisted event log for ingestion runs."""
from __future__ import annotations

from typing import Any

from sqlmodel import Session, select

from ..models import JobLogRecord
from ..schemas import JobLogModel


class JobLogStore:
    """Append-only events emitted while an ingestion job runs."""

    def __init__(self, engine) -> None:
        self._engine = engine

    def log(self, job_id: str, level: str, message: str, **context: Any) -> JobLogModel:
        record = JobLogRecord(job_id=job_id, level=level, message=message, context=context or None)
        with Session(self._engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return JobLogModel.model_validate(record, from_attributes=True)

    def entries(self, job_id: str, *, limit: int = 100, level: str | None = None) -> list[JobLogModel]:
        """Events for ``job_id`` in the order they were written."""

        statement = select(JobLogRecord).where(JobLogRecord.job_id == job_id)
        if level:
            statement = statement.where(JobLogRecord.level == level)
        statement = statement.order_by(JobLogRecord.id).limit(limit)
        with Session(self._engine) as session:
            return [
                JobLogModel.model_validate(record, from_attributes=True)
                for record in session.exec(statement)
            ]
