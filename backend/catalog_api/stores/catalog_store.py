"""Database-backed store for catalog entries."""
from __future__ import annotations

import logging
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Sequence
from uuid import uuid4

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..errors import WriteConflictError
from ..models import CatalogEntryRecord
from ..pipeline import Document, Match, Project, Stage, compile_pipeline, count_clause, tag_index, word_index
from ..schemas import CatalogEntry, ContentKind

logger = logging.getLogger(__name__)

MergeFn = Callable[[CatalogEntry, CatalogEntry], CatalogEntry]

MAX_WRITE_ATTEMPTS = 20


class CatalogStore:
    """Keyed collection of catalog entries with a pipeline read primitive.

    Entries are keyed by ``imdb_id``; each row also carries an internal id
    assigned on first insert. :meth:`upsert` writes with a version check, so
    a read-merge-write that raced another writer (in this process or any
    other sharing the database) is retried against the fresh row.
    """

    def __init__(self, engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def upsert(self, key: str, entry: CatalogEntry, *, merge: MergeFn | None = None) -> CatalogEntry:
        """Insert ``entry`` under ``key`` or fold it into the existing entry."""

        for _ in range(MAX_WRITE_ATTEMPTS):
            stored = self._try_upsert(key, entry, merge)
            if stored is not None:
                return stored
            logger.debug("Entry %s changed during write; retrying", key)
        raise WriteConflictError(f"Entry {key} kept changing during write")

    def _try_upsert(self, key: str, entry: CatalogEntry, merge: MergeFn | None) -> CatalogEntry | None:
        with self._lock, Session(self._engine) as session:
            record = session.exec(
                select(CatalogEntryRecord).where(CatalogEntryRecord.imdb_id == key)
            ).one_or_none()
            if record is None:
                stored = entry.model_copy(update={"id": uuid4().hex, "imdb_id": key})
                session.add(CatalogEntryRecord(id=stored.id, imdb_id=key, **_columns(stored)))
                try:
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    return None
                return stored

            if merge is not None:
                entry = merge(_to_entry(record), entry)
            stored = entry.model_copy(update={"id": record.id, "imdb_id": key})
            result = session.execute(
                update(CatalogEntryRecord)
                .where(
                    CatalogEntryRecord.id == record.id,
                    CatalogEntryRecord.version == record.version,
                )
                .values(version=record.version + 1, updated_at=datetime.utcnow(), **_columns(stored))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                return None
            session.commit()
            return stored

    def insert(self, entry: CatalogEntry) -> CatalogEntry:
        """Store a new entry, refusing to overwrite an existing ``imdb_id``."""

        with self._lock, Session(self._engine) as session:
            stored = entry.model_copy(update={"id": uuid4().hex})
            session.add(CatalogEntryRecord(id=stored.id, imdb_id=stored.imdb_id, **_columns(stored)))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ValueError(f"Entry {entry.imdb_id} already exists") from exc
            return stored

    def replace(self, entry: CatalogEntry) -> CatalogEntry:
        """Overwrite the entry stored under ``entry.imdb_id``."""

        return self.upsert(entry.imdb_id, entry)

    def get(self, key: str) -> CatalogEntry | None:
        """Return the entry with the given internal id or ``imdb_id``."""

        with Session(self._engine) as session:
            record = _lookup(session, key)
            return _to_entry(record) if record else None

    def find_one(
        self, key: str, projection: Project | None = None, *, kind: ContentKind | None = None
    ) -> Document | None:
        """Return the projected document for an internal id or ``imdb_id``."""

        with Session(self._engine) as session:
            record = _lookup(session, key, kind)
            if record is None:
                return None
            document = _to_document(record)
        return projection.apply(document) if projection else document

    def find_by_tvdb(self, tvdb_id: str) -> CatalogEntry | None:
        """Return the entry carrying ``tvdb_id`` when one exists."""

        with Session(self._engine) as session:
            record = session.exec(
                select(CatalogEntryRecord)
                .where(CatalogEntryRecord.tvdb_id == tvdb_id)
                .order_by(CatalogEntryRecord.created_at, CatalogEntryRecord.id)
            ).first()
            return _to_entry(record) if record else None

    def count(self, kind: ContentKind, match: Match | None = None) -> int:
        """Count entries of ``kind`` satisfying ``match``."""

        with Session(self._engine) as session:
            return session.exec(
                select(func.count()).select_from(CatalogEntryRecord).where(count_clause(kind, match))
            ).one()

    def run_pipeline(self, kind: ContentKind, stages: Sequence[Stage]) -> list[Document]:
        """Execute ``stages`` in order against the entries of ``kind``."""

        statement, projections = compile_pipeline(kind, stages)
        with Session(self._engine) as session:
            documents = [_to_document(record) for record in session.exec(statement).all()]
        for projection in projections:
            documents = [projection.apply(document) for document in documents]
        return documents

    def all(self, kind: ContentKind) -> list[CatalogEntry]:
        """Return every stored entry of ``kind``."""

        with Session(self._engine) as session:
            records = session.exec(
                select(CatalogEntryRecord)
                .where(CatalogEntryRecord.kind == kind)
                .order_by(CatalogEntryRecord.created_at, CatalogEntryRecord.id)
            ).all()
            return [_to_entry(record) for record in records]


def _lookup(session: Session, key: str, kind: ContentKind | None = None) -> CatalogEntryRecord | None:
    statement = select(CatalogEntryRecord).where(
        or_(CatalogEntryRecord.id == key, CatalogEntryRecord.imdb_id == key)
    )
    if kind is not None:
        statement = statement.where(CatalogEntryRecord.kind == kind)
    return session.exec(statement).first()


def _columns(entry: CatalogEntry) -> dict[str, Any]:
    """Column values persisted for ``entry`` besides its keys."""

    return {
        "tvdb_id": entry.tvdb_id,
        "kind": entry.kind,
        "title": entry.title,
        "title_words": word_index(entry.title),
        "genre_tags": tag_index(entry.genres),
        "year": entry.year or 0,
        "num_seasons": entry.num_seasons,
        "latest_episode": entry.latest_episode,
        "rating_votes": entry.rating.votes,
        "rating_percentage": entry.rating.percentage,
        "rating_watching": entry.rating.watching,
        "has_torrents": bool(entry.torrents),
        "document": entry.document(),
    }


def _to_document(record: CatalogEntryRecord) -> Document:
    document = dict(record.document)
    document["id"] = record.id
    return document


def _to_entry(record: CatalogEntryRecord) -> CatalogEntry:
    """Convert a database record into the catalog entry model."""

    return CatalogEntry.model_validate(_to_document(record))
