"""Reconciliation of provider records into canonical catalog entries.

Every field is combined with a rule that is commutative, associative and
idempotent, so folding the same set of candidates in any order, any number of
times, yields the same entry:

* genres are unioned, ``num_seasons`` and ``latest_episode`` take the maximum;
* text fields keep the longest non-empty value, ties broken alphabetically;
* variants are keyed by link and the strongest observation of a link wins;
* ratings are kept per provider and aggregated on every merge.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Iterable

from ..errors import InvalidLinkError
from ..schemas import CatalogEntry, Rating, RawRecord, RawVariant, TorrentVariant
from .torrent_resolver import resolve

logger = logging.getLogger(__name__)

SCIENCE_FICTION = "science-fiction"

_IMDB_RE = re.compile(r"^(?:tt)?0*(\d+)$", re.IGNORECASE)
_SCI_FI_RE = re.compile(r"sci(?:ence)?[\s_-]*fi(?:ction)?", re.IGNORECASE)

# Signals contributed by entries without per-provider ratings.
_ANONYMOUS_SOURCE = ""


def normalize_imdb_id(value: object) -> str | None:
    """Return ``value`` as ``tt`` followed by at least seven digits, or ``None``."""

    if not isinstance(value, str):
        return None
    match = _IMDB_RE.match(value.strip())
    if not match or int(match.group(1)) == 0:
        return None
    return f"tt{int(match.group(1)):07d}"


def canonical_genre(value: str) -> str:
    """Lower-case a genre tag, folding sci-fi spellings into one tag."""

    value = value.strip()
    if _SCI_FI_RE.fullmatch(value):
        return SCIENCE_FICTION
    return value.lower()


def episode_coordinate(season: int, episode: int) -> str:
    return f"S{season:02d}E{episode:02d}"


def movie_coordinate(language: str, quality: str | None) -> str:
    return f"{(language or 'en').lower()}:{quality or 'unknown'}"


def resolve_key(
    candidate: RawRecord, find_by_tvdb: Callable[[str], CatalogEntry | None]
) -> str | None:
    """Return the catalog key for ``candidate``.

    The normalised ``imdb_id`` is the primary key. Candidates whose
    ``imdb_id`` is missing or unparsable fall back to the entry already
    stored under the same ``tvdb_id``.
    """

    key = normalize_imdb_id(candidate.imdb_id)
    if key is not None:
        return key
    if candidate.tvdb_id:
        existing = find_by_tvdb(str(candidate.tvdb_id))
        if existing is not None:
            return existing.imdb_id
    return None


def aggregate_rating(sources: dict[str, Rating]) -> Rating:
    """Pick the rating with the most votes, averaging ties."""

    if not sources:
        return Rating()
    top = max(rating.votes for rating in sources.values())
    tied = [rating for rating in sources.values() if rating.votes == top]
    return Rating(
        votes=top,
        percentage=round(sum(rating.percentage for rating in tied) / len(tied)),
        watching=round(sum(rating.watching for rating in tied) / len(tied)),
    )


def entry_from_raw(candidate: RawRecord, key: str) -> CatalogEntry:
    """Build a single-candidate catalog entry, dropping unresolvable variants."""

    episodes: dict[str, list[TorrentVariant]] = {}
    torrents: dict[str, TorrentVariant] = {}
    num_seasons = candidate.num_seasons
    for raw_variant in candidate.variants:
        variant = _resolve_variant(candidate, raw_variant)
        if variant is None:
            continue
        if candidate.kind == "show":
            coordinate = episode_coordinate(raw_variant.season, raw_variant.episode)
            episodes[coordinate] = _merge_variant_lists(episodes.get(coordinate, []), [variant])
            num_seasons = max(num_seasons, raw_variant.season)
        else:
            coordinate = movie_coordinate(raw_variant.language, raw_variant.quality)
            torrents[coordinate] = _strongest(torrents.get(coordinate), variant)

    sources = {candidate.provider: candidate.rating} if candidate.rating else {}
    return CatalogEntry(
        kind=candidate.kind,
        imdb_id=key,
        tvdb_id=str(candidate.tvdb_id) if candidate.tvdb_id else None,
        title=candidate.title.strip(),
        year=candidate.year or None,
        slug=candidate.slug.strip(),
        genres=sorted({canonical_genre(genre) for genre in candidate.genres if genre.strip()}),
        images={role: url for role, url in candidate.images.items() if url},
        rating=aggregate_rating(sources),
        num_seasons=num_seasons if candidate.kind == "show" else 0,
        episodes=episodes,
        torrents=torrents,
        latest_episode=candidate.latest_episode,
        rating_sources=sources,
    )


def merge_entries(left: CatalogEntry, right: CatalogEntry) -> CatalogEntry:
    """Combine two entries for the same title into one."""

    if left.kind != right.kind:
        raise ValueError(
            f"Cannot merge {left.kind} and {right.kind} entries for {left.imdb_id}"
        )

    sources = _merge_sources(_rating_sources(left), _rating_sources(right))
    episodes = {
        coordinate: _merge_variant_lists(left.episodes.get(coordinate, []), right.episodes.get(coordinate, []))
        for coordinate in sorted(set(left.episodes) | set(right.episodes))
    }
    torrents = {
        coordinate: _strongest(left.torrents.get(coordinate), right.torrents.get(coordinate))
        for coordinate in sorted(set(left.torrents) | set(right.torrents))
    }
    images = {
        role: _pick_text([left.images.get(role, ""), right.images.get(role, "")])
        for role in sorted(set(left.images) | set(right.images))
    }
    years = [year for year in (left.year, right.year) if year]

    return CatalogEntry(
        id=_pick_text([left.id or "", right.id or ""]) or None,
        kind=left.kind,
        imdb_id=left.imdb_id,
        tvdb_id=_pick_text([left.tvdb_id or "", right.tvdb_id or ""]) or None,
        title=_pick_text([left.title, right.title]),
        year=min(years) if years else None,
        slug=_pick_text([left.slug, right.slug]),
        genres=sorted(set(left.genres) | set(right.genres)),
        images=images,
        rating=aggregate_rating(sources),
        num_seasons=max(left.num_seasons, right.num_seasons),
        episodes=episodes,
        torrents=torrents,
        latest_episode=max(left.latest_episode, right.latest_episode),
        rating_sources=sources,
    )


def reconcile(existing: CatalogEntry | None, candidate: RawRecord, key: str | None = None) -> CatalogEntry:
    """Fold ``candidate`` into ``existing`` (or start a new entry)."""

    key = key or (existing.imdb_id if existing else normalize_imdb_id(candidate.imdb_id))
    if key is None:
        raise ValueError(f"Record from {candidate.provider} has no usable imdb_id")
    entry = entry_from_raw(candidate, key)
    if existing is None:
        return entry
    return merge_entries(existing, entry)


def fold(candidates: Iterable[RawRecord], key: str) -> CatalogEntry | None:
    """Reconcile a sequence of candidates for one key."""

    entry: CatalogEntry | None = None
    for candidate in candidates:
        entry = reconcile(entry, candidate, key)
    return entry


def _resolve_variant(candidate: RawRecord, raw_variant: RawVariant) -> TorrentVariant | None:
    if candidate.kind == "show" and (raw_variant.season is None or raw_variant.episode is None):
        logger.warning(
            "Dropping %s variant without season/episode for %s", candidate.provider, candidate.title
        )
        return None
    try:
        resolved = resolve(raw_variant.link, candidate.kind)
    except InvalidLinkError as exc:
        logger.warning("Dropping %s variant for %s: %s", candidate.provider, candidate.title, exc)
        return None
    return resolved.model_copy(
        update={
            "seeds": raw_variant.seeds or resolved.seeds,
            "peers": raw_variant.peers or resolved.peers,
            "quality": raw_variant.quality,
            "provider": candidate.provider,
        }
    )


def _variant_rank(variant: TorrentVariant) -> tuple:
    return (variant.seeds, variant.peers, variant.name, variant.quality or "", variant.provider or "", variant.link)


def _strongest(*variants: TorrentVariant | None) -> TorrentVariant:
    return max((variant for variant in variants if variant is not None), key=_variant_rank)


def _merge_variant_lists(
    left: Iterable[TorrentVariant], right: Iterable[TorrentVariant]
) -> list[TorrentVariant]:
    by_link: dict[str, TorrentVariant] = {}
    for variant in [*left, *right]:
        by_link[variant.link] = _strongest(by_link.get(variant.link), variant)
    return [by_link[link] for link in sorted(by_link)]


def _rating_sources(entry: CatalogEntry) -> dict[str, Rating]:
    if entry.rating_sources:
        return dict(entry.rating_sources)
    if entry.rating != Rating():
        return {_ANONYMOUS_SOURCE: entry.rating}
    return {}


def _merge_sources(left: dict[str, Rating], right: dict[str, Rating]) -> dict[str, Rating]:
    merged: dict[str, Rating] = {}
    for name in sorted(set(left) | set(right)):
        candidates = [rating for rating in (left.get(name), right.get(name)) if rating is not None]
        merged[name] = max(candidates, key=lambda r: (r.votes, r.percentage, r.watching))
    return merged


def _pick_text(values: Iterable[str]) -> str:
    present = [value for value in values if value]
    if not present:
        return ""
    return min(present, key=lambda value: (-len(value), value))
