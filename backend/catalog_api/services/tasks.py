"""RQ task entrypoints executed by background workers."""
from __future__ import annotations

from typing import Any

from rq import get_current_job

from ..db import create_engine_from_settings
from ..providers import default_adapters
from ..settings import CatalogSettings
from ..stores.catalog_store import CatalogStore
from ..stores.job_log_store import JobLogStore
from ..stores.job_store import JobStore
from ..stores.provider_store import ProviderStore
from .orchestrator import run_ingestion


def execute_ingestion_job(
    *,
    job_id: str,
    payload: dict[str, Any] | None,
    settings: dict[str, Any],
    worker_name: str,
) -> dict[str, Any]:
    """Background worker entrypoint for ingestion jobs."""

    resolved_settings = CatalogSettings.model_validate(settings)
    engine = create_engine_from_settings(resolved_settings)
    job_store = JobStore(engine)
    log_store = JobLogStore(engine)

    current_job = get_current_job()
    worker_id = worker_name
    if current_job and getattr(current_job, "worker_name", None):  # pragma: no cover - runtime path
        worker_id = current_job.worker_name  # type: ignore[assignment]

    job_store.start(job_id, worker_id=worker_id)
    log_store.log(job_id, "info", "Job started")

    payload = payload or {}
    workers = payload.get("workers")
    if workers is None:
        workers = resolved_settings.scrape_workers

    try:
        report = run_ingestion(
            CatalogStore(engine),
            ProviderStore(engine),
            default_adapters(timeout=resolved_settings.provider_timeout),
            workers,
            provider_names=payload.get("providers"),
            on_event=lambda level, message, context: log_store.log(job_id, level, message, **context),
        )
        job_store.finish(job_id, report)
        log_store.log(
            job_id,
            "info",
            "Job completed",
            merged=report.merged,
            failed=report.failed,
        )
        return report.model_dump(mode="json")
    except Exception as exc:
        job_store.fail(job_id, str(exc))
        log_store.log(job_id, "error", "Job failed", error=str(exc))
        raise
    finally:
        engine.dispose()
