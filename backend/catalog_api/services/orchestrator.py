"""Concurrent provider ingestion feeding the merge engine."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from ..errors import ProviderFailure, WriteConflictError
from ..providers import ProviderAdapter, get_adapter
from ..schemas import IngestionReport, ProviderConfigModel, ProviderReport, RawRecord
from ..stores.catalog_store import CatalogStore
from ..stores.provider_store import ProviderStore
from .merge import entry_from_raw, merge_entries, resolve_key

logger = logging.getLogger(__name__)

EventHook = Callable[[str, str, dict[str, Any]], None]


class ProviderOrchestrator:
    """Run provider adapters on a bounded worker pool.

    Each worker takes one enabled provider at a time and consumes its whole
    record stream, merging every record into the catalog store. Runs hold no
    state of their own and may overlap: the store folds concurrent writes for
    the same title through :func:`merge_entries`, which converges regardless of
    arrival order.
    """

    def __init__(
        self,
        store: CatalogStore,
        adapters: Mapping[str, ProviderAdapter],
        *,
        on_event: EventHook | None = None,
    ) -> None:
        self._store = store
        self._adapters = adapters
        self._on_event = on_event

    def run(self, configs: Iterable[ProviderConfigModel], worker_count: int) -> IngestionReport:
        """Scrape every enabled provider with at most ``worker_count`` workers."""

        if worker_count < 0:
            raise ValueError("worker_count must be zero or positive")

        started_at = datetime.utcnow()
        if worker_count == 0:
            logger.info("Ingestion disabled: worker count is 0")
            return IngestionReport(workers=0, started_at=started_at, finished_at=datetime.utcnow())

        enabled = [config for config in configs if config.enabled]
        reports: list[ProviderReport] = []
        if enabled:
            with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="provider") as pool:
                reports = list(pool.map(self._scrape_provider, enabled))

        report = IngestionReport(
            workers=worker_count,
            providers=reports,
            started_at=started_at,
            finished_at=datetime.utcnow(),
        )
        logger.info(
            "Ingestion finished: %d providers, %d records merged, %d failed",
            len(reports),
            report.merged,
            len(report.failed),
        )
        return report

    def _scrape_provider(self, config: ProviderConfigModel) -> ProviderReport:
        report = ProviderReport(name=config.name)
        self._emit("info", f"Scraping provider {config.name}", provider=config.name)
        try:
            records = iter(get_adapter(self._adapters, config.adapter).scrape(config))
        except Exception as exc:
            return self._fail(report, exc)

        while True:
            # Only adapter errors are contained here; store errors propagate.
            try:
                candidate = next(records)
            except StopIteration:
                break
            except Exception as exc:
                return self._fail(report, exc)

            report.records += 1
            if self._ingest(candidate):
                report.merged += 1
            else:
                report.skipped += 1

        self._emit(
            "info",
            f"Provider {config.name} finished",
            provider=config.name,
            records=report.records,
            merged=report.merged,
            skipped=report.skipped,
        )
        return report

    def _ingest(self, candidate: RawRecord) -> bool:
        key = resolve_key(candidate, self._store.find_by_tvdb)
        if key is None:
            logger.warning(
                "Skipping %s record %r: no usable imdb_id or known tvdb_id",
                candidate.provider,
                candidate.title,
            )
            return False
        try:
            entry = entry_from_raw(candidate, key)
        except (ValidationError, ValueError) as exc:
            logger.warning("Skipping %s record %s: %s", candidate.provider, key, exc)
            return False
        try:
            self._store.upsert(key, entry, merge=merge_entries)
        except (ValueError, WriteConflictError) as exc:
            logger.warning("Skipping %s record %s: %s", candidate.provider, key, exc)
            return False
        return True

    def _fail(self, report: ProviderReport, exc: Exception) -> ProviderReport:
        failure = ProviderFailure(report.name, str(exc) or exc.__class__.__name__)
        logger.error("%s", failure)
        report.error = str(failure)
        self._emit("error", str(failure), provider=report.name, records=report.records)
        return report

    def _emit(self, level: str, message: str, **context: Any) -> None:
        if self._on_event is not None:
            self._on_event(level, message, context)


def run_ingestion(
    catalog_store: CatalogStore,
    provider_store: ProviderStore,
    adapters: Mapping[str, ProviderAdapter],
    worker_count: int,
    *,
    provider_names: list[str] | None = None,
    on_event: EventHook | None = None,
) -> IngestionReport:
    """Scrape the stored provider configurations into the catalog."""

    configs = provider_store.list(enabled_only=True)
    if provider_names:
        wanted = set(provider_names)
        configs = [config for config in configs if config.name in wanted]
    orchestrator = ProviderOrchestrator(catalog_store, adapters, on_event=on_event)
    return orchestrator.run(configs, worker_count)
