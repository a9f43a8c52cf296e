"""Read pipeline construction for catalog listing endpoints."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

from ..errors import InvalidQueryError
from ..pipeline import (
    ASCENDING,
    DESCENDING,
    Contains,
    Document,
    GreaterThan,
    HasWords,
    Limit,
    Match,
    NotEmpty,
    Project,
    Sample,
    Skip,
    Sort,
    Stage,
)
from ..schemas import ContentKind
from ..stores.catalog_store import CatalogStore
from .merge import canonical_genre

ALL_PAGES = "all"

SHOW_FIELDS = (
    "id",
    "imdb_id",
    "tvdb_id",
    "title",
    "year",
    "slug",
    "genres",
    "images",
    "rating",
    "num_seasons",
)
MOVIE_FIELDS = (
    "id",
    "imdb_id",
    "title",
    "year",
    "slug",
    "genres",
    "images",
    "rating",
    "torrents",
)

# Checked in order; a later match overrides an earlier one.
SORT_FIELDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("name", ("title",)),
    ("rating", ("rating.percentage", "rating.votes")),
    ("trending", ("rating.watching",)),
    ("updated", ("latest_episode",)),
    ("year", ("year",)),
)
DEFAULT_SORT = ("rating.votes", "rating.percentage", "rating.watching")

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True, slots=True)
class QueryConfig:
    """Constants a :class:`QueryService` builds its pipelines from."""

    kind: ContentKind
    collection: str
    page_size: int
    match: Match
    projection: Project
    detail_projection: Project
    random_projection: Project


def show_query_config(page_size: int) -> QueryConfig:
    return QueryConfig(
        kind="show",
        collection="shows",
        page_size=page_size,
        match=Match((GreaterThan("num_seasons", 0),)),
        projection=Project(SHOW_FIELDS),
        detail_projection=Project(("latest_episode", "rating_sources"), exclude=True),
        random_projection=Project(("rating_sources",), exclude=True),
    )


def movie_query_config(page_size: int) -> QueryConfig:
    return QueryConfig(
        kind="movie",
        collection="movies",
        page_size=page_size,
        match=Match((NotEmpty("torrents"),)),
        projection=Project(MOVIE_FIELDS),
        detail_projection=Project(("latest_episode", "rating_sources"), exclude=True),
        random_projection=Project(("rating_sources",), exclude=True),
    )


class QueryService:
    """Execute catalog read operations against the store."""

    def __init__(self, store: CatalogStore, config: QueryConfig) -> None:
        self._store = store
        self._config = config

    @property
    def config(self) -> QueryConfig:
        return self._config

    def list_pages(self) -> list[str]:
        """Return one identifier per page of catalog-visible entries."""

        count = self._store.count(self._config.kind, self._config.match)
        pages = math.ceil(count / self._config.page_size)
        return [f"{self._config.collection}/{page}" for page in range(1, pages + 1)]

    def get_page(
        self,
        page: int | str,
        *,
        keywords: str | None = None,
        genre: str | None = None,
        sort: str | None = None,
        order: int | str | None = None,
    ) -> list[Document]:
        """Return one page of entries, or every entry for the ``all`` page.

        The ``all`` page lists every catalog-visible entry by title, descending,
        and does not apply ``keywords`` or ``genre``.
        """

        if isinstance(page, str) and page.strip().lower() == ALL_PAGES:
            return self._store.run_pipeline(
                self._config.kind,
                [
                    self._config.match,
                    self._config.projection,
                    Sort((("title", DESCENDING),)),
                ],
            )

        index = _parse_page(page)
        direction = _parse_order(order)
        stages: list[Stage] = [
            self.build_match(keywords=keywords, genre=genre),
            build_sort(sort, direction),
            Skip((index - 1) * self._config.page_size),
            Limit(self._config.page_size),
            self._config.projection,
        ]
        return self._store.run_pipeline(self._config.kind, stages)

    def get_one(self, entry_id: str) -> Document | None:
        """Return a single entry of this kind by internal id or imdb id, or ``None``."""

        return self._store.find_one(entry_id, self._config.detail_projection, kind=self._config.kind)

    def get_random(self) -> Document | None:
        """Return one entry drawn uniformly from every stored entry of this kind.

        Unlike the other reads this samples the whole collection, including
        entries hidden from listings.
        """

        docs = self._store.run_pipeline(
            self._config.kind,
            [Sample(1), self._config.random_projection],
        )
        return docs[0] if docs else None

    def build_match(self, *, keywords: str | None = None, genre: str | None = None) -> Match:
        match = self._config.match
        words = keyword_tokens(keywords)
        if words:
            match = match.extend(HasWords("title", words))
        if genre and genre.strip().lower() != ALL_PAGES:
            match = match.extend(Contains("genres", canonical_genre(genre)))
        return match


def keyword_tokens(keywords: str | None) -> tuple[str, ...]:
    """Split a search string into sanitised lower-case words."""

    if not keywords:
        return ()
    tokens = (_NON_ALNUM_RE.sub("", token).lower() for token in keywords.split())
    return tuple(token for token in tokens if token)


def build_sort(sort: str | None, direction: int = DESCENDING) -> Sort:
    fields = DEFAULT_SORT
    if sort:
        lowered = sort.lower()
        for name, candidate in SORT_FIELDS:
            if name in lowered:
                fields = candidate
    return Sort(tuple((field, direction) for field in fields))


def _parse_page(page: Any) -> int:
    try:
        index = int(page)
    except (TypeError, ValueError) as exc:
        raise InvalidQueryError(f"Invalid page: {page!r}") from exc
    if index < 1:
        raise InvalidQueryError(f"Page must be 1 or greater, got {index}")
    return index


def _parse_order(order: Any) -> int:
    if order is None or order == "":
        return DESCENDING
    try:
        direction = int(order)
    except (TypeError, ValueError) as exc:
        raise InvalidQueryError(f"Invalid order: {order!r}") from exc
    if direction not in (ASCENDING, DESCENDING):
        raise InvalidQueryError(f"Order must be 1 or -1, got {direction}")
    return direction
