"""Memory entry models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


class MemoryKind(str, Enum):
    """Kind of knowledge a memory entry carries."""

    EPISODIC = "episodic"
    SEMANTIC = "semantic"
    PROCEDURAL = "procedural"


class MemoryEntry(BaseModel):
    """A single remembered item."""

    id: str
    content: str
    embedding: list[float] | None = None
    timestamp: datetime = Field(default_factory=utc_now)
    kind: MemoryKind = MemoryKind.EPISODIC
    importance: float = Field(default=0.5, ge=0.0, le=1.0)
    access_count: int = Field(default=0, ge=0)
    last_accessed: datetime = Field(default_factory=utc_now)
    metadata: dict[str, Any] = Field(default_factory=dict)
    associations: list[str] = Field(default_factory=list)


class SearchResult(BaseModel):
    """Ranked search hit."""

    entry: MemoryEntry
    similarity: float
    relevance: float


class ConsolidationResult(BaseModel):
    """Counts produced by one consolidation pass."""

    consolidated: int = 0
    pruned: int = 0
    compressed: int = 0


class MemorySnapshot(BaseModel):
    """Plain copy of both persistent tiers."""

    short_term: list[MemoryEntry] = Field(default_factory=list)
    long_term: list[MemoryEntry] = Field(default_factory=list)
