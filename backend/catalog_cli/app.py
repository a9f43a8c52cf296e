"""Command line interface for the Marquee catalog."""
from __future__ import annotations

import json
from typing import List, Literal, Optional

import typer

from backend.catalog_api.errors import CatalogError, InvalidLinkError
from backend.catalog_api.schemas import CatalogEntry, ProviderConfigModel
from backend.catalog_api.services.curation import add_movie_torrent, add_show_torrent
from backend.catalog_api.services.orchestrator import run_ingestion
from backend.catalog_api.services.torrent_resolver import resolve
from backend.catalog_api.settings import CatalogSettings
from backend.catalog_api.state import AppState

app = typer.Typer(help="Ingest, curate and transfer Marquee catalog content.")
content_app = typer.Typer(help="Attach torrents to catalog entries by hand.")
app.add_typer(content_app, name="content")
providers_app = typer.Typer(help="Manage provider configurations.")
app.add_typer(providers_app, name="providers")

KIND_ALIASES = {"show": "show", "shows": "show", "movie": "movie", "movies": "movie"}


def load_state() -> AppState:
    """Build application state from the environment-backed settings."""

    return AppState(CatalogSettings())


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _kind(value: str) -> Literal["show", "movie"]:
    kind = KIND_ALIASES.get(value.strip().lower())
    if kind is None:
        typer.echo(f"Unknown content kind: {value}", err=True)
        raise typer.Exit(code=1)
    return kind  # type: ignore[return-value]


@app.command()
def ingest(
    workers: Optional[int] = typer.Option(
        None, min=0, help="Concurrent provider workers; 0 disables ingestion."
    ),
    providers: Optional[List[str]] = typer.Option(
        None,
        "--provider",
        help="Restrict the run to a provider. Repeat to include several.",
    ),
) -> None:
    """Scrape every enabled provider into the catalog and print the report."""

    state = load_state()
    worker_count = state.settings.scrape_workers if workers is None else workers
    report = run_ingestion(
        state.catalog_store,
        state.provider_store,
        state.adapters,
        worker_count,
        provider_names=providers,
    )
    _echo_json(report.model_dump(mode="json"))
    if report.failed:
        raise typer.Exit(code=1)


@app.command("export")
def export_collection(
    kind: str = typer.Argument(..., help="Collection to export: show or movie."),
) -> None:
    """Write a collection to the configured export directory."""

    state = load_state()
    target = state.transfer.export_all(_kind(kind))
    typer.echo(str(target))


@app.command("import")
def import_collection(
    path: str = typer.Argument(..., help="Export file to load."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Replace colliding entries without asking."),
) -> None:
    """Load entries from an export file, confirming each replacement."""

    def confirm(existing: CatalogEntry, entry: CatalogEntry) -> bool:
        if yes:
            return True
        return typer.confirm(f"Replace {existing.imdb_id} ({existing.title or 'untitled'})?")

    state = load_state()
    outcome = state.transfer.import_all(path, confirm)
    typer.echo(outcome or "Nothing imported")


@app.command("resolve")
def resolve_link(
    link: str = typer.Argument(..., help="Magnet URI or .torrent URL."),
    kind: str = typer.Argument(..., help="Content kind: show or movie."),
) -> None:
    """Resolve a distribution link into a torrent variant."""

    try:
        variant = resolve(link, KIND_ALIASES.get(kind.strip().lower(), kind))
    except InvalidLinkError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    _echo_json(variant.model_dump(mode="json"))


@content_app.command("movie")
def content_movie(
    imdb_id: str = typer.Option(..., prompt="IMDb id", help="IMDb id of the movie."),
    link: str = typer.Option(..., prompt="Torrent link", help="Magnet URI or .torrent URL."),
    quality: str = typer.Option(..., prompt=True, help="Quality label such as 720p."),
    language: str = typer.Option("en", help="Audio language code."),
) -> None:
    """Attach a torrent to a movie, creating the entry when needed."""

    try:
        entry = add_movie_torrent(
            load_state().catalog_store, imdb_id, link, quality=quality, language=language
        )
    except CatalogError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    _echo_json(entry.model_dump(mode="json", exclude={"rating_sources"}))


@content_app.command("show")
def content_show(
    imdb_id: str = typer.Option(..., prompt="IMDb id", help="IMDb id of the show."),
    link: str = typer.Option(..., prompt="Torrent link", help="Magnet URI or .torrent URL."),
    season: int = typer.Option(..., prompt=True, min=0, help="Season number."),
    episode: int = typer.Option(..., prompt=True, min=0, help="Episode number."),
    quality: str = typer.Option(..., prompt=True, help="Quality label such as 720p."),
) -> None:
    """Attach a torrent to one episode of a show."""

    try:
        entry = add_show_torrent(
            load_state().catalog_store,
            imdb_id,
            link,
            quality=quality,
            season=season,
            episode=episode,
        )
    except CatalogError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    _echo_json(entry.model_dump(mode="json", exclude={"rating_sources"}))


@providers_app.command("list")
def list_providers(
    enabled_only: bool = typer.Option(False, "--enabled-only", help="Hide disabled providers."),
) -> None:
    """Print the configured providers."""

    configs = load_state().provider_store.list(enabled_only=enabled_only)
    _echo_json([config.model_dump(mode="json") for config in configs])


@providers_app.command("add")
def add_provider(
    name: str = typer.Argument(..., help="Unique provider name."),
    kind: str = typer.Option(..., help="Content kind the provider scrapes."),
    endpoint: str = typer.Option(..., help="Endpoint or URL template."),
    adapter: str = typer.Option("json-feed", help="Adapter identifier."),
    params: Optional[List[str]] = typer.Option(
        None,
        "--param",
        help="Template parameter as KEY=VALUE. Repeat for several.",
    ),
    enabled: bool = typer.Option(True, "--enabled/--disabled", show_default=True),
) -> None:
    """Create or replace a provider configuration."""

    parsed: dict[str, object] = {}
    for item in params or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            typer.echo(f"Invalid parameter {item!r}; expected KEY=VALUE", err=True)
            raise typer.Exit(code=1)
        try:
            parsed[key] = json.loads(value)
        except json.JSONDecodeError:
            parsed[key] = value

    config = ProviderConfigModel(
        name=name,
        kind=_kind(kind),
        adapter=adapter,
        endpoint=endpoint,
        params=parsed,
        enabled=enabled,
    )
    saved = load_state().provider_store.save(config)
    _echo_json(saved.model_dump(mode="json"))


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
) -> None:
    """Run the catalog API with Uvicorn."""

    import uvicorn

    from backend.catalog_api.app import create_app

    uvicorn.run(create_app(), host=host, port=port)
