"""Manual addition of torrents to catalog entries."""
from __future__ import annotations

from ..errors import InvalidQueryError
from ..schemas import CatalogEntry, RawRecord, RawVariant
from ..stores.catalog_store import CatalogStore
from .merge import entry_from_raw, merge_entries, normalize_imdb_id
from .torrent_resolver import resolve

MANUAL_PROVIDER = "manual"


def add_movie_torrent(
    store: CatalogStore,
    imdb_id: str,
    link: str,
    *,
    quality: str,
    language: str = "en",
) -> CatalogEntry:
    """Attach a torrent to a movie, creating the entry if needed."""

    variant = resolve(link, "movie")
    return _curate(
        store,
        imdb_id,
        "movie",
        RawVariant(link=variant.link, quality=quality, language=language),
    )


def add_show_torrent(
    store: CatalogStore,
    imdb_id: str,
    link: str,
    *,
    quality: str,
    season: int,
    episode: int,
) -> CatalogEntry:
    """Attach a torrent to one episode of a show, creating the entry if needed."""

    variant = resolve(link, "show")
    return _curate(
        store,
        imdb_id,
        "show",
        RawVariant(link=variant.link, quality=quality, season=season, episode=episode),
    )


def _curate(store: CatalogStore, imdb_id: str, kind: str, variant: RawVariant) -> CatalogEntry:
    key = normalize_imdb_id(imdb_id)
    if key is None:
        raise InvalidQueryError(f"Invalid IMDb id: {imdb_id!r}")
    candidate = RawRecord(provider=MANUAL_PROVIDER, kind=kind, imdb_id=key, variants=[variant])
    return store.upsert(key, entry_from_raw(candidate, key), merge=merge_entries)
