"""Tests for catalog export and import."""
from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.db import create_engine_from_settings, init_database  # noqa: E402
from backend.catalog_api.errors import ImportUnavailable  # noqa: E402
from backend.catalog_api.schemas import CatalogEntry, Rating, TorrentVariant  # noqa: E402
from backend.catalog_api.services.transfer import CatalogTransfer, read_entries  # noqa: E402
from backend.catalog_api.settings import CatalogSettings  # noqa: E402
from backend.catalog_api.stores.catalog_store import CatalogStore  # noqa: E402


def make_store(path: Path) -> CatalogStore:
    settings = CatalogSettings(database_url=f"sqlite:///{path}")
    engine = create_engine_from_settings(settings)
    init_database(engine, settings)
    return CatalogStore(engine)


@pytest.fixture()
def store(tmp_path: Path) -> CatalogStore:
    return make_store(tmp_path / "catalog.db")


def never_called(existing: CatalogEntry, entry: CatalogEntry) -> bool:
    raise AssertionError("confirmation should not be requested")


def seed(store: CatalogStore) -> None:
    store.upsert(
        "tt0000001",
        CatalogEntry(
            kind="movie",
            imdb_id="tt0000001",
            title="Heat",
            year=1995,
            genres=["crime"],
            rating=Rating(votes=10, percentage=88),
            torrents={"en:1080p": TorrentVariant(link="https://dl.example/heat.torrent", name="heat", seeds=3)},
        ),
    )
    store.upsert("tt0000002", CatalogEntry(kind="movie", imdb_id="tt0000002", title="Ronin"))
    store.upsert("tt0000003", CatalogEntry(kind="show", imdb_id="tt0000003", title="Lost", num_seasons=6))


def test_export_then_import_round_trips(store: CatalogStore, tmp_path: Path) -> None:
    seed(store)
    exported = CatalogTransfer(store, tmp_path / "exports").export_all("movie")

    assert exported == (tmp_path / "exports" / "movies.json").resolve()
    payload = json.loads(exported.read_text(encoding="utf-8"))
    assert sorted(item["imdb_id"] for item in payload) == ["tt0000001", "tt0000002"]
    assert all("id" not in item for item in payload)

    target = make_store(tmp_path / "copy.db")
    outcome = CatalogTransfer(target, tmp_path / "exports").import_all(exported, never_called)

    assert outcome == f"Imported 2 entries from {exported}"
    for imdb_id in ("tt0000001", "tt0000002"):
        original = store.get(imdb_id).model_copy(update={"id": None})
        assert target.get(imdb_id).model_copy(update={"id": None}) == original
    assert target.count("show") == 0


def test_declined_collision_leaves_store_unchanged(store: CatalogStore, tmp_path: Path) -> None:
    seed(store)
    source = tmp_path / "import.json"
    source.write_text(
        json.dumps([{"kind": "movie", "imdb_id": "tt0000001", "title": "Heat (Director's Cut)"}]),
        encoding="utf-8",
    )
    prompts: list[tuple[str, str]] = []

    def decline(existing: CatalogEntry, entry: CatalogEntry) -> bool:
        prompts.append((existing.title, entry.title))
        return False

    outcome = CatalogTransfer(store, tmp_path).import_all(source, decline)

    assert outcome is None
    assert prompts == [("Heat", "Heat (Director's Cut)")]
    assert store.get("tt0000001").title == "Heat"


def test_confirmed_collision_replaces_entry(store: CatalogStore, tmp_path: Path) -> None:
    seed(store)
    original_id = store.get("tt0000001").id
    source = tmp_path / "import.json"
    source.write_text(
        json.dumps([{"kind": "movie", "imdb_id": "1", "title": "Heat (Director's Cut)"}]),
        encoding="utf-8",
    )

    outcome = CatalogTransfer(store, tmp_path).import_all(source, lambda existing, entry: True)

    assert outcome == f"Imported 1 entries from {source}"
    replaced = store.get("tt0000001")
    assert replaced.title == "Heat (Director's Cut)"
    assert replaced.id == original_id
    assert replaced.torrents == {}


def test_collision_with_other_kind_is_skipped(store: CatalogStore, tmp_path: Path) -> None:
    seed(store)
    source = tmp_path / "import.json"
    source.write_text(
        json.dumps(
            [
                {"kind": "movie", "imdb_id": "tt0000003", "title": "Lost"},
                {"kind": "movie", "imdb_id": "tt0000050", "title": "Collateral"},
            ]
        ),
        encoding="utf-8",
    )

    outcome = CatalogTransfer(store, tmp_path).import_all(source, never_called)

    assert outcome == f"Imported 1 entries from {source}"
    assert store.get("tt0000003").kind == "show"
    assert store.get("tt0000003").num_seasons == 6


def test_prompt_failure_cancels_import_without_writes(store: CatalogStore, tmp_path: Path) -> None:
    seed(store)
    source = tmp_path / "import.json"
    source.write_text(
        json.dumps(
            [
                {"kind": "movie", "imdb_id": "tt0000050", "title": "Collateral"},
                {"kind": "movie", "imdb_id": "tt0000001", "title": "Heat 2"},
            ]
        ),
        encoding="utf-8",
    )

    def broken(existing: CatalogEntry, entry: CatalogEntry) -> bool:
        raise EOFError("stdin closed")

    outcome = CatalogTransfer(store, tmp_path).import_all(source, broken)

    assert outcome is None
    assert store.get("tt0000050") is None
    assert store.get("tt0000001").title == "Heat"


@pytest.mark.parametrize("content", [None, "{not json", '{"kind": "movie"}'])
def test_unavailable_source_resolves_to_none(store: CatalogStore, tmp_path: Path, content: str | None) -> None:
    source = tmp_path / "import.json"
    if content is not None:
        source.write_text(content, encoding="utf-8")

    assert CatalogTransfer(store, tmp_path).import_all(source, never_called) is None
    with pytest.raises(ImportUnavailable):
        read_entries(source)


def test_invalid_records_are_skipped(tmp_path: Path) -> None:
    source = tmp_path / "import.json"
    source.write_text(
        json.dumps(
            [
                {"kind": "movie", "imdb_id": "tt0000001"},
                {"kind": "album", "imdb_id": "tt0000002"},
                {"kind": "movie", "imdb_id": "not-an-id"},
                "junk",
            ]
        ),
        encoding="utf-8",
    )

    assert [entry.imdb_id for entry in read_entries(source)] == ["tt0000001"]
