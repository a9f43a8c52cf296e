"""Bulk export and import of catalog entries."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from ..errors import ConfirmationFailure, ImportUnavailable
from ..schemas import CatalogEntry, ContentKind
from ..stores.catalog_store import CatalogStore
from ..utils.paths import ensure_directory
from .merge import normalize_imdb_id

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[CatalogEntry, CatalogEntry], bool]

COLLECTION_FILES = {"show": "shows.json", "movie": "movies.json"}


class CatalogTransfer:
    """Dump catalog collections to JSON files and load them back."""

    def __init__(self, store: CatalogStore, export_path: str | Path) -> None:
        self._store = store
        self._export_path = export_path

    def export_all(self, kind: ContentKind) -> Path:
        """Write every entry of ``kind`` to ``<export_path>/<collection>.json``."""

        directory = ensure_directory(self._export_path)
        target = directory / COLLECTION_FILES[kind]
        payload = [entry.model_dump(mode="json", exclude={"id"}) for entry in self._store.all(kind)]
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(target)
        logger.info("Exported %d %s entries to %s", len(payload), kind, target)
        return target

    def import_all(self, path: str | Path, confirm: ConfirmFn) -> str | None:
        """Load entries from ``path``, asking ``confirm`` before replacing any.

        ``confirm`` receives the stored entry and the imported one. Returns a
        summary message when entries were written and ``None`` when the file is
        unavailable, every collision was declined, or the prompt failed. A
        failing prompt aborts the whole import before anything is written.
        """

        try:
            entries = read_entries(path)
        except ImportUnavailable as exc:
            logger.error("%s", exc)
            return None

        fresh: dict[str, CatalogEntry] = {}
        confirmed: list[CatalogEntry] = []
        try:
            for entry in entries:
                existing = self._store.get(entry.imdb_id)
                if existing is None:
                    fresh[entry.imdb_id] = entry
                elif existing.kind != entry.kind:
                    logger.warning(
                        "Skipping %s from %s: stored as a %s, imported as a %s",
                        entry.imdb_id,
                        path,
                        existing.kind,
                        entry.kind,
                    )
                elif _confirm(confirm, existing, entry):
                    confirmed.append(entry)
        except ConfirmationFailure as exc:
            logger.warning("Import of %s cancelled: %s", path, exc)
            return None

        for entry in fresh.values():
            self._store.insert(entry)
        for entry in confirmed:
            self._store.replace(entry)
        written = len(fresh) + len(confirmed)
        if not written:
            return None
        return f"Imported {written} entries from {path}"


def read_entries(path: str | Path) -> list[CatalogEntry]:
    """Parse an export file, skipping records that are not valid entries."""

    source = Path(path)
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ImportUnavailable(f"Cannot read import file {source}: {exc}") from exc
    if not isinstance(payload, list):
        raise ImportUnavailable(f"Import file {source} does not contain a list of entries")

    entries: list[CatalogEntry] = []
    for index, item in enumerate(payload):
        try:
            entry = CatalogEntry.model_validate(item)
        except ValidationError as exc:
            logger.warning("Skipping record %d of %s: %s", index, source, exc.errors()[0]["msg"])
            continue
        key = normalize_imdb_id(entry.imdb_id)
        if key is None:
            logger.warning("Skipping record %d of %s: invalid imdb_id %r", index, source, entry.imdb_id)
            continue
        entries.append(entry.model_copy(update={"id": None, "imdb_id": key}))
    return entries


def _confirm(confirm: ConfirmFn, existing: CatalogEntry, entry: CatalogEntry) -> bool:
    try:
        return bool(confirm(existing, entry))
    except Exception as exc:
        raise ConfirmationFailure(str(exc) or exc.__class__.__name__) from exc
