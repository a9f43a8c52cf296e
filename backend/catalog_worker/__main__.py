"""Entry point for running the catalog ingestion RQ worker."""
from __future__ import annotations

import logging
import os

from rq import SimpleWorker, Worker

from backend.catalog_api.services.queue import JobQueueService
from backend.catalog_api.settings import CatalogSettings


def main() -> None:
    """Start an RQ worker connected to the configured ingestion queue."""

    settings = CatalogSettings()
    queue_service = JobQueueService(settings)

    # Windows has no fork
    worker_class = SimpleWorker if os.name == "nt" else Worker
    worker = worker_class(
        [queue_service.queue],
        connection=queue_service.connection,
        name=settings.queue_worker_name,
    )

    logging.basicConfig(level=logging.INFO)
    worker.work(with_scheduler=False)


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    main()
