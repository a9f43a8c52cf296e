"""Tests for concurrent provider ingestion."""
from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Iterator

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.db import create_engine_from_settings, init_database  # noqa: E402
from backend.catalog_api.schemas import ProviderConfigModel, Rating, RawRecord, RawVariant  # noqa: E402
from backend.catalog_api.services.merge import fold  # noqa: E402
from backend.catalog_api.services.orchestrator import ProviderOrchestrator, run_ingestion  # noqa: E402
from backend.catalog_api.settings import CatalogSettings  # noqa: E402
from backend.catalog_api.stores.catalog_store import CatalogStore  # noqa: E402
from backend.catalog_api.stores.provider_store import ProviderStore  # noqa: E402


def magnet(seed: int) -> str:
    return f"magnet:?xt=urn:btih:{seed:040x}"


class StaticAdapter:
    """Adapter yielding pre-built records per provider name."""

    def __init__(self, records: dict[str, list[RawRecord]]) -> None:
        self.records = records
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def scrape(self, config: ProviderConfigModel) -> Iterator[RawRecord]:
        with self._lock:
            self.calls.append(config.name)
        yield from self.records.get(config.name, [])


class FailingAdapter:
    """Adapter that yields one record and then fails."""

    def __init__(self, record: RawRecord) -> None:
        self.record = record

    def scrape(self, config: ProviderConfigModel) -> Iterator[RawRecord]:
        yield self.record
        raise RuntimeError("feed went away")


class BrokenAdapter:
    def scrape(self, config: ProviderConfigModel) -> Iterator[RawRecord]:
        raise ConnectionError("unreachable")


@pytest.fixture()
def engine(tmp_path: Path):
    settings = CatalogSettings(database_url=f"sqlite:///{tmp_path / 'catalog.db'}")
    engine = create_engine_from_settings(settings)
    init_database(engine, settings)
    yield engine
    engine.dispose()


@pytest.fixture()
def store(engine) -> CatalogStore:
    return CatalogStore(engine)


def config(name: str, adapter: str = "static", kind: str = "show", enabled: bool = True) -> ProviderConfigModel:
    return ProviderConfigModel(
        name=name,
        kind=kind,
        adapter=adapter,
        endpoint=f"https://{name}.example/{{page}}",
        enabled=enabled,
    )


def show(provider: str, imdb_id: str, title: str, **fields) -> RawRecord:
    return RawRecord(provider=provider, kind="show", imdb_id=imdb_id, title=title, **fields)


def overlapping_records() -> dict[str, list[RawRecord]]:
    return {
        "alpha": [
            show(
                "alpha",
                "tt0000001",
                "Lost",
                genres=["Drama"],
                rating=Rating(votes=50, percentage=80),
                variants=[RawVariant(link=magnet(1), seeds=4, season=1, episode=1)],
            ),
            show("alpha", "tt0000002", "Fringe", num_seasons=5, genres=["Sci-Fi"]),
        ],
        "beta": [
            show(
                "beta",
                "tt0000001",
                "Lost (2004)",
                tvdb_id="73739",
                genres=["Mystery"],
                rating=Rating(votes=70, percentage=60),
                variants=[
                    RawVariant(link=magnet(1), seeds=9, season=1, episode=1),
                    RawVariant(link=magnet(2), seeds=1, season=6, episode=17),
                ],
            ),
        ],
        "gamma": [
            show("gamma", None, "Lost", tvdb_id="73739", latest_episode=99),
            show("gamma", "tt0000003", "Dark", num_seasons=3),
        ],
    }


def test_zero_workers_performs_no_work(store: CatalogStore) -> None:
    adapter = StaticAdapter(overlapping_records())
    orchestrator = ProviderOrchestrator(store, {"static": adapter})

    report = orchestrator.run([config("alpha"), config("beta")], worker_count=0)

    assert report.workers == 0
    assert report.providers == []
    assert adapter.calls == []
    assert store.count("show") == 0


def test_negative_worker_count_is_rejected(store: CatalogStore) -> None:
    with pytest.raises(ValueError):
        ProviderOrchestrator(store, {}).run([config("alpha")], worker_count=-1)


def test_run_merges_every_provider(store: CatalogStore) -> None:
    records = overlapping_records()
    records["gamma"] = records["gamma"][1:]
    adapter = StaticAdapter(records)
    orchestrator = ProviderOrchestrator(store, {"static": adapter})

    report = orchestrator.run(
        [config("alpha"), config("beta"), config("gamma"), config("delta", enabled=False)],
        worker_count=2,
    )

    assert sorted(adapter.calls) == ["alpha", "beta", "gamma"]
    assert report.merged == 4
    assert report.failed == []

    lost = store.get("tt0000001")
    assert lost.title == "Lost (2004)"
    assert lost.genres == ["drama", "mystery"]
    assert lost.num_seasons == 6
    assert [variant.seeds for variant in lost.episodes["S01E01"]] == [9]
    assert lost.rating == Rating(votes=70, percentage=60)
    assert store.get("tt0000002").genres == ["science-fiction"]
    assert store.count("show") == 3


def test_record_keyed_by_tvdb_id_joins_existing_entry(store: CatalogStore) -> None:
    records = overlapping_records()
    orchestrator = ProviderOrchestrator(store, {"static": StaticAdapter(records)})

    orchestrator.run([config("beta")], worker_count=1)
    report = orchestrator.run([config("gamma")], worker_count=1)

    assert report.providers[0].merged == 2
    assert store.get("tt0000001").latest_episode == 99


def test_record_without_any_key_is_skipped(store: CatalogStore) -> None:
    adapter = StaticAdapter({"gamma": [show("gamma", None, "Nameless", tvdb_id="1")]})

    report = ProviderOrchestrator(store, {"static": adapter}).run([config("gamma")], worker_count=1)

    assert report.providers[0].records == 1
    assert report.providers[0].skipped == 1
    assert store.count("show") == 0


def test_provider_failure_is_isolated(store: CatalogStore) -> None:
    events: list[tuple[str, str, dict]] = []
    adapters = {
        "static": StaticAdapter(overlapping_records()),
        "failing": FailingAdapter(show("flaky", "tt0000009", "Partial")),
        "broken": BrokenAdapter(),
    }
    orchestrator = ProviderOrchestrator(
        store, adapters, on_event=lambda level, message, context: events.append((level, message, context))
    )

    report = orchestrator.run(
        [
            config("flaky", adapter="failing"),
            config("offline", adapter="broken"),
            config("alpha"),
            config("missing", adapter="does-not-exist"),
        ],
        worker_count=3,
    )

    assert sorted(report.failed) == ["flaky", "missing", "offline"]
    assert store.get("tt0000009") is not None
    assert store.get("tt0000001") is not None
    by_name = {provider.name: provider for provider in report.providers}
    assert by_name["flaky"].merged == 1
    assert "feed went away" in by_name["flaky"].error
    assert by_name["alpha"].error is None
    assert sum(1 for level, _, _ in events if level == "error") == 3


def test_kind_conflict_skips_only_that_record(store: CatalogStore) -> None:
    adapter = StaticAdapter(
        {
            "alpha": [show("alpha", "tt0000001", "Lost")],
            "films": [
                RawRecord(provider="films", kind="movie", imdb_id="tt0000001", title="Lost"),
                RawRecord(provider="films", kind="movie", imdb_id="tt0000050", title="Heat"),
            ],
        }
    )
    orchestrator = ProviderOrchestrator(store, {"static": adapter})
    orchestrator.run([config("alpha")], worker_count=1)

    report = orchestrator.run([config("films", kind="movie")], worker_count=1)

    assert report.providers[0].skipped == 1
    assert report.providers[0].merged == 1
    assert store.get("tt0000001").kind == "show"


def test_concurrent_runs_converge(store: CatalogStore, engine) -> None:
    records = overlapping_records()
    records["gamma"][0] = records["gamma"][0].model_copy(update={"imdb_id": "tt0000001"})
    configs = [config("alpha"), config("beta"), config("gamma")]

    reference_store = CatalogStore(engine)
    expected = fold(
        [records["alpha"][0], records["beta"][0], records["gamma"][0]],
        "tt0000001",
    )

    errors: list[BaseException] = []
    barrier = threading.Barrier(2)

    def run() -> None:
        # Each run owns its store, as separate jobs and CLI invocations do.
        orchestrator = ProviderOrchestrator(CatalogStore(engine), {"static": StaticAdapter(records)})
        barrier.wait()
        try:
            orchestrator.run(configs, worker_count=3)
        except BaseException as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=run) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    lost = reference_store.get("tt0000001")
    assert lost.model_copy(update={"id": None}) == expected
    assert store.count("show") == 3


def test_run_ingestion_uses_stored_provider_configs(engine, store: CatalogStore) -> None:
    providers = ProviderStore(engine)
    providers.save(config("alpha"))
    providers.save(config("beta"))
    providers.save(config("gamma", enabled=False))
    adapter = StaticAdapter(overlapping_records())

    report = run_ingestion(store, providers, {"static": adapter}, 2, provider_names=["alpha"])

    assert adapter.calls == ["alpha"]
    assert [provider.name for provider in report.providers] == ["alpha"]
    assert store.count("show") == 2
