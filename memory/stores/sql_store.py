"""SQLite SQLAlchemy store wrapper."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session, sessionmaker

from memory.schemas import Base, MemoryEntryRecord
from memory.types import MemoryEntry, MemorySnapshot

logger = logging.getLogger("ate.memory.sql")

_TIERS = ("short_term", "long_term")


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class SQLStore:
    """Provides SQLAlchemy session management and memory snapshot persistence."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(f"sqlite+pysqlite:///{self.db_path}", future=True)
        self._session_factory = sessionmaker(bind=self.engine, future=True)

    def create_all(self) -> None:
        """Create all schema tables if missing."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager that commits on success and rolls back on error."""
        sess = self._session_factory()
        try:
            yield sess
            sess.commit()
        except Exception:
            sess.rollback()
            raise
        finally:
            sess.close()

    def save_snapshot(self, snapshot: MemorySnapshot) -> int:
        """Replace stored entries with the snapshot contents. Returns rows written."""
        rows = [
            self._to_record(entry, tier)
            for tier in _TIERS
            for entry in getattr(snapshot, tier)
        ]
        with self.session() as sess:
            sess.execute(delete(MemoryEntryRecord))
            sess.add_all(rows)
        logger.info("Saved %d memory entries to %s", len(rows), self.db_path)
        return len(rows)

    def load_snapshot(self) -> MemorySnapshot:
        snapshot = MemorySnapshot()
        with self.session() as sess:
            for record in sess.scalars(select(MemoryEntryRecord)):
                entry = self._to_entry(record)
                if record.tier == "long_term":
                    snapshot.long_term.append(entry)
                else:
                    snapshot.short_term.append(entry)
        return snapshot

    @staticmethod
    def _to_record(entry: MemoryEntry, tier: str) -> MemoryEntryRecord:
        return MemoryEntryRecord(
            id=entry.id,
            tier=tier,
            content=entry.content,
            embedding=list(entry.embedding) if entry.embedding is not None else None,
            timestamp=entry.timestamp,
            kind=entry.kind.value,
            importance=entry.importance,
            access_count=entry.access_count,
            last_accessed=entry.last_accessed,
            metadata_json=dict(entry.metadata),
            associations=list(entry.associations),
        )

    @staticmethod
    def _to_entry(record: MemoryEntryRecord) -> MemoryEntry:
        return MemoryEntry(
            id=record.id,
            content=record.content,
            embedding=record.embedding,
            timestamp=_aware(record.timestamp),
            kind=record.kind,
            importance=record.importance,
            access_count=record.access_count,
            last_accessed=_aware(record.last_accessed),
            metadata=record.metadata_json or {},
            associations=record.associations or [],
        )
