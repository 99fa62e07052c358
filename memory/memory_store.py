"""Tiered in-process memory: short-term, long-term and working memory."""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any

from core.settings import MemoryConfig
from memory.consolidation.compressor import Compressor
from memory.consolidation.consolidator import Consolidator
from memory.consolidation.forgetting import ForgettingPolicy
from memory.scoring import (
    frequency_boost,
    hours_between,
    initial_importance,
    recency_decay,
    relevance_score,
)
from memory.similarity import Embedder, HashingEmbedder, cosine_similarity
from memory.types import (
    ConsolidationResult,
    MemoryEntry,
    MemoryKind,
    MemorySnapshot,
    SearchResult,
    utc_now,
)

logger = logging.getLogger("ate.memory")


def _memory_id() -> str:
    return f"mem_{uuid.uuid4().hex}"


class MemoryStore:
    """Stores, ranks, decays and compresses memories.

    Every public method takes the store lock, so the background consolidator
    and concurrent agents can share one instance. Callers always receive
    copies; the store's own entries never leak out.
    """

    def __init__(
        self,
        config: MemoryConfig | None = None,
        embedder: Embedder | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config or MemoryConfig()
        self.embedder = embedder or HashingEmbedder(self.config.embedding_dimension)
        self.clock = clock
        self.forgetting = ForgettingPolicy(
            decay_rate=self.config.decay_rate,
            consolidation_threshold=self.config.consolidation_threshold,
            prune_importance=self.config.prune_importance,
            prune_access_count=self.config.prune_access_count,
        )
        self.compressor = Compressor(
            merge_similarity=self.config.merge_similarity,
            fraction=self.config.compression_fraction,
            content_limit=self.config.merged_content_limit,
        )
        self._short_term: dict[str, MemoryEntry] = {}
        self._long_term: dict[str, MemoryEntry] = {}
        self._working: deque[MemoryEntry] = deque(maxlen=self.config.working_memory_size)
        self._lock = threading.RLock()
        self._last_consolidated: datetime | None = None
        self._consolidator: Consolidator | None = None

    # ── Store / search / retrieve ────────────────────────────────────

    def store(
        self,
        content: str,
        kind: MemoryKind | str = MemoryKind.EPISODIC,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryEntry:
        """Embed and insert a new short-term memory."""
        embedding = self.embedder(content)
        now = self.clock()
        with self._lock:
            entry = MemoryEntry(
                id=_memory_id(),
                content=content,
                embedding=embedding,
                timestamp=now,
                kind=MemoryKind(kind),
                importance=initial_importance(content),
                access_count=0,
                last_accessed=now,
                metadata=dict(metadata or {}),
            )
            if self.config.association_limit:
                similar = self._rank(embedding, self.config.association_limit, now)
                entry.associations = [hit.entry.id for hit in similar]
            self._short_term[entry.id] = entry
            evicted = self._enforce_short_term_limit()
            if evicted:
                logger.debug("Evicted %d short-term memories over capacity", len(evicted))
            return entry.model_copy(deep=True)

    def search(self, query: str, limit: int = 5) -> list[SearchResult]:
        """Rank stored memories against a query by relevance."""
        embedding = self.embedder(query)
        with self._lock:
            hits = self._rank(embedding, limit, self.clock())
            return [hit.model_copy(deep=True) for hit in hits]

    def retrieve(self, entry_id: str) -> MemoryEntry | None:
        """Fetch one entry, recording the access."""
        with self._lock:
            entry = self._short_term.get(entry_id) or self._long_term.get(entry_id)
            if entry is None:
                return None
            entry.access_count += 1
            entry.last_accessed = self.clock()
            entry.importance = min(1.0, entry.importance + self.config.access_importance_boost)
            return entry.model_copy(deep=True)

    def _rank(self, embedding: list[float], limit: int, now: datetime) -> list[SearchResult]:
        results: list[SearchResult] = []
        for entry in (*self._short_term.values(), *self._long_term.values()):
            if not entry.embedding:
                continue
            similarity = cosine_similarity(embedding, entry.embedding)
            if similarity < self.config.similarity_threshold:
                continue
            relevance = relevance_score(
                similarity=similarity,
                importance=entry.importance,
                recency=recency_decay(entry.last_accessed, now),
                frequency=frequency_boost(entry.access_count),
            )
            results.append(SearchResult(entry=entry, similarity=similarity, relevance=relevance))
        results.sort(key=lambda hit: hit.relevance, reverse=True)
        return results[: max(0, limit)]

    def _enforce_short_term_limit(self) -> list[str]:
        overflow = len(self._short_term) - self.config.max_short_term_size
        if overflow <= 0:
            return []
        victims = sorted(
            self._short_term.values(), key=lambda e: (e.importance, e.timestamp)
        )[:overflow]
        for victim in victims:
            del self._short_term[victim.id]
        return [victim.id for victim in victims]

    # ── Working memory ───────────────────────────────────────────────

    def add_to_working_memory(self, entry: MemoryEntry) -> None:
        """Push an entry to the front of working memory, dropping the oldest when full."""
        with self._lock:
            self._working.appendleft(entry.model_copy(deep=True))

    def working_memory(self) -> list[MemoryEntry]:
        with self._lock:
            return [entry.model_copy(deep=True) for entry in self._working]

    def get_working_context(self) -> str:
        """Working memory rendered as prompt-ready lines, newest first."""
        with self._lock:
            return "\n".join(f"[{e.kind.value}] {e.content}" for e in self._working)

    # ── Consolidation ────────────────────────────────────────────────

    def consolidate(self) -> ConsolidationResult:
        """Decay short-term importance, promote, prune, and compress long-term memory."""
        with self._lock:
            now = self.clock()
            result = ConsolidationResult()
            for entry_id, entry in list(self._short_term.items()):
                since = entry.timestamp
                if self._last_consolidated is not None and self._last_consolidated > since:
                    since = self._last_consolidated
                self.forgetting.decay(entry, hours_between(since, now))
                if self.forgetting.should_promote(entry):
                    self._long_term[entry_id] = self._short_term.pop(entry_id)
                    result.consolidated += 1
                elif self.forgetting.should_prune(entry):
                    del self._short_term[entry_id]
                    result.pruned += 1
            self._last_consolidated = now

            trigger = self.config.max_long_term_size * self.config.compression_trigger_ratio
            if len(self._long_term) > trigger:
                result.compressed = self.compressor.compress(self._long_term, now)

            logger.info(
                "Consolidated %d, pruned %d, compressed %d memories",
                result.consolidated,
                result.pruned,
                result.compressed,
            )
            return result

    def start_consolidation(self, interval_seconds: float | None = None) -> Consolidator:
        """Start the periodic background consolidation cycle."""
        with self._lock:
            if self._consolidator is None:
                self._consolidator = Consolidator(
                    memory_store=self,
                    interval_seconds=interval_seconds or self.config.consolidation_interval_seconds,
                )
            self._consolidator.start()
            return self._consolidator

    def stop_consolidation(self) -> None:
        consolidator = self._consolidator
        if consolidator is not None:
            consolidator.stop()

    # ── Persistence hooks ────────────────────────────────────────────

    def export_snapshot(self) -> MemorySnapshot:
        """Copy both persistent tiers."""
        with self._lock:
            return MemorySnapshot(
                short_term=[e.model_copy(deep=True) for e in self._short_term.values()],
                long_term=[e.model_copy(deep=True) for e in self._long_term.values()],
            )

    def import_snapshot(self, snapshot: MemorySnapshot | dict[str, Any]) -> None:
        """Restore entries from a snapshot; long-term wins when an id appears in both tiers."""
        if not isinstance(snapshot, MemorySnapshot):
            snapshot = MemorySnapshot.model_validate(snapshot)
        with self._lock:
            for entry in snapshot.short_term:
                if entry.id not in self._long_term:
                    self._short_term[entry.id] = entry.model_copy(deep=True)
            for entry in snapshot.long_term:
                self._short_term.pop(entry.id, None)
                self._long_term[entry.id] = entry.model_copy(deep=True)
            self._enforce_short_term_limit()

    # ── Introspection / lifecycle ────────────────────────────────────

    def tier_of(self, entry_id: str) -> str | None:
        with self._lock:
            if entry_id in self._short_term:
                return "short_term"
            if entry_id in self._long_term:
                return "long_term"
            return None

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "short_term_count": len(self._short_term),
                "long_term_count": len(self._long_term),
                "working_memory_count": len(self._working),
                "total_memories": len(self._short_term) + len(self._long_term),
            }

    def close(self) -> None:
        """Stop background consolidation and clear every collection."""
        self.stop_consolidation()
        with self._lock:
            self._short_term.clear()
            self._long_term.clear()
            self._working.clear()
            self._last_consolidated = None
