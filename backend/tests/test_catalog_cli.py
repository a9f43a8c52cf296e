"""Tests for the Typer-based catalog CLI."""
from __future__ import annotations

import importlib
import json
import sys
from pathlib import Path
from typing import Iterator

import pytest
from typer.testing import CliRunner

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.catalog_api.schemas import CatalogEntry, ProviderConfigModel, RawRecord  # noqa: E402
from backend.catalog_api.settings import CatalogSettings  # noqa: E402
from backend.catalog_api.state import AppState  # noqa: E402
from backend.catalog_cli.app import app as cli_app  # noqa: E402

cli_app_module = importlib.import_module("backend.catalog_cli.app")

MAGNET = "magnet:?xt=urn:btih:9228628504cc40efa57bf38e85c9e3bd2c572b5b&dn=archlinux-2017.10.01-x86_64.iso"


class FeedStub:
    def scrape(self, config: ProviderConfigModel) -> Iterator[RawRecord]:
        yield RawRecord(provider=config.name, kind="movie", imdb_id="tt0113277", title="Heat")


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppState:
    """Point the CLI at an isolated database and stub provider adapter."""

    settings = CatalogSettings(
        database_url=f"sqlite:///{tmp_path / 'catalog.db'}",
        export_path=str(tmp_path / "exports"),
    )
    app_state = AppState(settings)
    app_state.adapters = {"json-feed": FeedStub()}
    monkeypatch.setattr(cli_app_module, "load_state", lambda: app_state)
    return app_state


def test_cli_resolve_outputs_variant(runner: CliRunner) -> None:
    result = runner.invoke(cli_app, ["resolve", MAGNET, "movie"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["name"] == "archlinux-2017.10.01-x86_64.iso"
    assert payload["seeds"] == 0


def test_cli_resolve_rejects_invalid_link(runner: CliRunner) -> None:
    result = runner.invoke(cli_app, ["resolve", "not-a-link", "movie"])

    assert result.exit_code == 1
    assert "Unrecognised link scheme" in result.output


def test_cli_content_movie_adds_torrent(runner: CliRunner, state: AppState) -> None:
    result = runner.invoke(
        cli_app,
        ["content", "movie", "--imdb-id", "113277", "--link", MAGNET, "--quality", "1080p"],
    )

    assert result.exit_code == 0, result.output
    entry = state.catalog_store.get("tt0113277")
    assert list(entry.torrents) == ["en:1080p"]
    assert entry.torrents["en:1080p"].provider == "manual"


def test_cli_content_show_prompts_for_missing_values(runner: CliRunner, state: AppState) -> None:
    result = runner.invoke(
        cli_app,
        ["content", "show"],
        input=f"tt0944947\n{MAGNET}\n1\n2\n720p\n",
    )

    assert result.exit_code == 0, result.output
    entry = state.catalog_store.get("tt0944947")
    assert list(entry.episodes) == ["S01E02"]
    assert entry.num_seasons == 1


def test_cli_content_rejects_invalid_input(runner: CliRunner, state: AppState) -> None:
    bad_link = runner.invoke(
        cli_app,
        ["content", "movie", "--imdb-id", "tt0113277", "--link", "nope", "--quality", "720p"],
    )
    bad_id = runner.invoke(
        cli_app,
        ["content", "movie", "--imdb-id", "heat", "--link", MAGNET, "--quality", "720p"],
    )

    assert bad_link.exit_code == 1
    assert bad_id.exit_code == 1
    assert state.catalog_store.count("movie") == 0


def test_cli_providers_add_and_list(runner: CliRunner, state: AppState) -> None:
    added = runner.invoke(
        cli_app,
        [
            "providers",
            "add",
            "films",
            "--kind",
            "movies",
            "--endpoint",
            "https://films.example/{page}",
            "--param",
            "pages=3",
            "--param",
            "lang=en",
        ],
    )

    assert added.exit_code == 0, added.output
    assert state.provider_store.get("films").params == {"pages": 3, "lang": "en"}

    listed = runner.invoke(cli_app, ["providers", "list"])
    assert [item["name"] for item in json.loads(listed.output)] == ["films"]

    invalid = runner.invoke(cli_app, ["providers", "add", "x", "--kind", "movie", "--endpoint", "e", "--param", "oops"])
    assert invalid.exit_code == 1


def test_cli_ingest_runs_inline(runner: CliRunner, state: AppState) -> None:
    state.provider_store.save(ProviderConfigModel(name="films", kind="movie", endpoint="https://x/{page}"))

    disabled = runner.invoke(cli_app, ["ingest", "--workers", "0"])
    assert disabled.exit_code == 0, disabled.output
    assert state.catalog_store.count("movie") == 0

    result = runner.invoke(cli_app, ["ingest", "--workers", "2"])
    assert result.exit_code == 0, result.output
    report = json.loads(result.output)
    assert report["providers"][0]["merged"] == 1
    assert state.catalog_store.get("tt0113277").title == "Heat"


def test_cli_export_and_import(runner: CliRunner, state: AppState, tmp_path: Path) -> None:
    state.catalog_store.upsert("tt0113277", CatalogEntry(kind="movie", imdb_id="tt0113277", title="Heat"))

    exported = runner.invoke(cli_app, ["export", "movies"])
    assert exported.exit_code == 0, exported.output
    export_file = Path(exported.output.strip())
    assert export_file.name == "movies.json"

    state.catalog_store.replace(CatalogEntry(kind="movie", imdb_id="tt0113277", title="Heat (edited)"))

    declined = runner.invoke(cli_app, ["import", str(export_file)], input="n\n")
    assert "Nothing imported" in declined.output
    assert state.catalog_store.get("tt0113277").title == "Heat (edited)"

    aborted = runner.invoke(cli_app, ["import", str(export_file)], input="")
    assert "Nothing imported" in aborted.output

    accepted = runner.invoke(cli_app, ["import", str(export_file)], input="y\n")
    assert "Imported 1 entries" in accepted.output
    assert state.catalog_store.get("tt0113277").title == "Heat"

    missing = runner.invoke(cli_app, ["import", str(tmp_path / "missing.json"), "--yes"])
    assert missing.exit_code == 0
    assert "Nothing imported" in missing.output


def test_cli_export_rejects_unknown_kind(runner: CliRunner, state: AppState) -> None:
    result = runner.invoke(cli_app, ["export", "albums"])

    assert result.exit_code == 1
