"""SQLite snapshot persistence tests."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from memory.memory_store import MemoryStore
from memory.stores.sql_store import SQLStore
from memory.types import MemoryEntry, MemoryKind, MemorySnapshot


def build_sql(tmp_path: Path) -> SQLStore:
    store = SQLStore(db_path=tmp_path / "nested" / "memory.db")
    store.create_all()
    return store


def test_snapshot_survives_save_and_load(tmp_path: Path) -> None:
    sql = build_sql(tmp_path)
    stamp = datetime(2025, 5, 4, 12, 30, tzinfo=UTC)
    snapshot = MemorySnapshot(
        short_term=[
            MemoryEntry(
                id="s1",
                content="draft release notes",
                embedding=[0.6, 0.8],
                timestamp=stamp,
                last_accessed=stamp,
                kind=MemoryKind.PROCEDURAL,
                importance=0.4,
                access_count=3,
                metadata={"task_id": "t1"},
                associations=["l1"],
            )
        ],
        long_term=[MemoryEntry(id="l1", content="release cadence is biweekly", importance=0.9)],
    )

    written = sql.save_snapshot(snapshot)
    loaded = sql.load_snapshot()

    assert written == 2
    assert [e.id for e in loaded.short_term] == ["s1"]
    assert [e.id for e in loaded.long_term] == ["l1"]
    restored = loaded.short_term[0]
    assert restored.kind is MemoryKind.PROCEDURAL
    assert restored.embedding == [0.6, 0.8]
    assert restored.metadata == {"task_id": "t1"}
    assert restored.associations == ["l1"]
    assert restored.timestamp == stamp
    assert restored.timestamp.tzinfo is not None


def test_save_replaces_previous_rows(tmp_path: Path) -> None:
    sql = build_sql(tmp_path)
    sql.save_snapshot(MemorySnapshot(short_term=[MemoryEntry(id="old", content="stale")]))
    sql.save_snapshot(MemorySnapshot(long_term=[MemoryEntry(id="new", content="fresh")]))

    loaded = sql.load_snapshot()

    assert loaded.short_term == []
    assert [e.id for e in loaded.long_term] == ["new"]


def test_memory_store_round_trip_through_database(tmp_path: Path) -> None:
    sql = build_sql(tmp_path)
    original = MemoryStore()
    kept = original.store("critical step 1: on-call rotation starts monday")
    original.consolidate()
    sql.save_snapshot(original.export_snapshot())

    restored = MemoryStore()
    restored.import_snapshot(sql.load_snapshot())

    assert restored.tier_of(kept.id) == "long_term"
    hits = restored.search("critical step 1: on-call rotation starts monday")
    assert hits and hits[0].entry.id == kept.id
