"""Database-backed provider configuration store."""
from __future__ import annotations

from datetime import datetime
from threading import Lock

from sqlmodel import Session, select

from ..models import ProviderConfigRecord
from ..schemas import ProviderConfigModel


class ProviderStore:
    """Thread-safe interface over persisted provider configurations."""

    def __init__(self, engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def list(self, *, enabled_only: bool = False) -> list[ProviderConfigModel]:
        """Return provider configurations ordered by name."""

        statement = select(ProviderConfigRecord)
        if enabled_only:
            statement = statement.where(ProviderConfigRecord.enabled == True)  # noqa: E712
        statement = statement.order_by(ProviderConfigRecord.name)
        with Session(self._engine) as session:
            return [_to_model(record) for record in session.exec(statement)]

    def get(self, name: str) -> ProviderConfigModel | None:
        """Fetch a single provider configuration by name."""

        with Session(self._engine) as session:
            record = session.get(ProviderConfigRecord, name)
            return _to_model(record) if record else None

    def save(self, config: ProviderConfigModel) -> ProviderConfigModel:
        """Create or update the configuration stored under ``config.name``."""

        with self._lock, Session(self._engine) as session:
            record = session.get(ProviderConfigRecord, config.name)
            if record is None:
                record = ProviderConfigRecord(**config.model_dump())
            else:
                for key, value in config.model_dump(exclude={"name"}).items():
                    setattr(record, key, value)
                record.updated_at = datetime.utcnow()
            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_model(record)

    def delete(self, name: str) -> bool:
        """Remove a provider configuration, returning whether it existed."""

        with self._lock, Session(self._engine) as session:
            record = session.get(ProviderConfigRecord, name)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True


def _to_model(record: ProviderConfigRecord) -> ProviderConfigModel:
    return ProviderConfigModel(
        name=record.name,
        kind=record.kind,
        adapter=record.adapter,
        endpoint=record.endpoint,
        params=dict(record.params or {}),
        enabled=record.enabled,
    )
