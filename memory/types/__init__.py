"""Typed memory payload models."""

from memory.types.entry import (
    ConsolidationResult,
    MemoryEntry,
    MemoryKind,
    MemorySnapshot,
    SearchResult,
    utc_now,
)

__all__ = [
    "ConsolidationResult",
    "MemoryEntry",
    "MemoryKind",
    "MemorySnapshot",
    "SearchResult",
    "utc_now",
]
