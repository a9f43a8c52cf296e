"""Ordered read pipeline stages compiled into SQL over catalog entries.

A pipeline is a list of stages applied in sequence to the entries of one
kind: ``Match`` filters, ``Sort`` orders, ``Skip``/``Limit`` paginate and
``Sample`` draws random entries. These stages become one ``SELECT`` against
``catalog_entries``; ``Project`` reshapes the documents that statement returns.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Sequence, Union

from sqlalchemy import and_, func, true
from sqlalchemy.orm import aliased
from sqlmodel import select

from .models import CatalogEntryRecord

Document = dict[str, Any]

ASCENDING = 1
DESCENDING = -1

_WORD_RE = re.compile(r"[a-z0-9_]+")

# Document paths and the columns that hold them.
COLUMNS = {
    "title": "title",
    "year": "year",
    "num_seasons": "num_seasons",
    "latest_episode": "latest_episode",
    "rating.votes": "rating_votes",
    "rating.percentage": "rating_percentage",
    "rating.watching": "rating_watching",
}
TAG_COLUMNS = {"genres": "genre_tags"}
WORD_COLUMNS = {"title": "title_words"}
FLAG_COLUMNS = {"torrents": "has_torrents"}


def word_index(text: str) -> str:
    """Encode the distinct lower-case words of ``text`` as `` a b c ``."""

    words = sorted(set(_WORD_RE.findall(text.lower())))
    return f" {' '.join(words)} "


def tag_index(values: Iterable[str]) -> str:
    """Encode tags as ``|a|b|`` so one tag is matched by ``|tag|``."""

    return "|" + "".join(f"{value}|" for value in sorted(set(values)))


def _column(entity, columns: dict[str, str], path: str):
    try:
        return getattr(entity, columns[path])
    except KeyError as exc:
        raise ValueError(f"Field {path!r} cannot be queried") from exc


@dataclass(frozen=True, slots=True)
class GreaterThan:
    path: str
    value: Any

    def clause(self, entity):
        return _column(entity, COLUMNS, self.path) > self.value


@dataclass(frozen=True, slots=True)
class Contains:
    """Matches entries whose tag list holds ``value``."""

    path: str
    value: str

    def clause(self, entity):
        return _column(entity, TAG_COLUMNS, self.path).contains(tag_index([self.value]), autoescape=True)


@dataclass(frozen=True, slots=True)
class NotEmpty:
    path: str

    def clause(self, entity):
        return _column(entity, FLAG_COLUMNS, self.path).is_(True)


@dataclass(frozen=True, slots=True)
class HasWords:
    """Matches when every word appears as a whole word in the field, ignoring case."""

    path: str
    words: tuple[str, ...]

    def clause(self, entity):
        column = _column(entity, WORD_COLUMNS, self.path)
        return and_(true(), *(column.contains(f" {word.lower()} ", autoescape=True) for word in self.words))


Condition = Union[GreaterThan, Contains, NotEmpty, HasWords]


@dataclass(frozen=True, slots=True)
class Match:
    conditions: tuple[Condition, ...] = ()

    def clause(self, entity):
        return and_(true(), *(condition.clause(entity) for condition in self.conditions))

    def extend(self, *conditions: Condition) -> "Match":
        return Match(self.conditions + tuple(conditions))


@dataclass(frozen=True, slots=True)
class Project:
    """Keep only ``fields`` or, with ``exclude`` set, drop them."""

    fields: tuple[str, ...]
    exclude: bool = False

    def apply(self, document: Document) -> Document:
        if self.exclude:
            return {key: value for key, value in document.items() if key not in self.fields}
        return {key: document[key] for key in self.fields if key in document}


@dataclass(frozen=True, slots=True)
class Sort:
    keys: tuple[tuple[str, int], ...]


@dataclass(frozen=True, slots=True)
class Skip:
    count: int


@dataclass(frozen=True, slots=True)
class Limit:
    count: int


@dataclass(frozen=True, slots=True)
class Sample:
    size: int


Stage = Union[Match, Project, Sort, Skip, Limit, Sample]


def _order_by(entity, keys: Sequence[tuple[str, int]]) -> list:
    # Insertion order breaks ties, whatever the direction of the keys.
    clauses = []
    for path, direction in keys:
        column = _column(entity, COLUMNS, path)
        clauses.append(column.desc() if direction == DESCENDING else column.asc())
    return [*clauses, entity.created_at.asc(), entity.id.asc()]


def compile_pipeline(kind: str, stages: Sequence[Stage]):
    """Build the ``SELECT`` for ``stages`` over entries of ``kind``.

    Returns the statement and the projections to apply to its rows. A stage
    that follows a window (``Skip``, ``Limit`` or ``Sample``) is applied to
    that window as a subquery.
    """

    entity = CatalogEntryRecord
    ordering: tuple[tuple[str, int], ...] = ()
    statement = select(entity).where(entity.kind == kind).order_by(*_order_by(entity, ordering))
    skipped = limited = False
    projections: list[Project] = []

    for stage in stages:
        if isinstance(stage, Project):
            projections.append(stage)
            continue
        if limited or (skipped and not isinstance(stage, Limit)):
            entity = aliased(CatalogEntryRecord, statement.subquery())
            statement = select(entity).order_by(*_order_by(entity, ordering))
            skipped = limited = False

        if isinstance(stage, Match):
            statement = statement.where(stage.clause(entity))
        elif isinstance(stage, Sort):
            ordering = tuple(stage.keys) + ordering
            statement = statement.order_by(None).order_by(*_order_by(entity, ordering))
        elif isinstance(stage, Skip):
            statement = statement.offset(max(stage.count, 0))
            skipped = True
        elif isinstance(stage, Limit):
            statement = statement.limit(max(stage.count, 0))
            limited = True
        elif isinstance(stage, Sample):
            statement = statement.order_by(None).order_by(func.random()).limit(max(stage.size, 0))
            ordering = ()
            limited = True
        else:
            raise TypeError(f"Unsupported pipeline stage: {stage!r}")
    return statement, projections


def count_clause(kind: str, match: Match | None = None):
    """Return the ``WHERE`` clause counting entries of ``kind`` that satisfy ``match``."""

    clause = CatalogEntryRecord.kind == kind
    if match is not None:
        clause = and_(clause, match.clause(CatalogEntryRecord))
    return clause
