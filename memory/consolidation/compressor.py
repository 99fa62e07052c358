"""Long-term memory compression by merging near-duplicate entries."""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Callable
from datetime import datetime

from memory.similarity import cosine_similarity
from memory.types import MemoryEntry

logger = logging.getLogger("ate.memory.compressor")


def _merged_id() -> str:
    return f"mem_merged_{uuid.uuid4().hex}"


class Compressor:
    """Merges clusters of similar low-importance entries into one synthetic entry."""

    def __init__(
        self,
        merge_similarity: float = 0.9,
        fraction: float = 0.1,
        content_limit: int = 500,
        id_factory: Callable[[], str] = _merged_id,
    ) -> None:
        self.merge_similarity = merge_similarity
        self.fraction = fraction
        self.content_limit = content_limit
        self.id_factory = id_factory

    def select_candidates(self, entries: list[MemoryEntry]) -> list[MemoryEntry]:
        """Lowest-importance share of the given entries."""
        count = math.floor(len(entries) * self.fraction)
        return sorted(entries, key=lambda e: e.importance)[:count]

    def _similar(self, a: MemoryEntry, b: MemoryEntry) -> bool:
        if not a.embedding or not b.embedding:
            return False
        return cosine_similarity(a.embedding, b.embedding) > self.merge_similarity

    def cluster(self, candidates: list[MemoryEntry]) -> list[list[MemoryEntry]]:
        """Greedy clusters whose members are pairwise similar; singletons are dropped."""
        groups: list[list[MemoryEntry]] = []
        processed: set[str] = set()
        for seed in candidates:
            if seed.id in processed:
                continue
            group = [seed]
            for other in candidates:
                if other.id in processed or other.id == seed.id:
                    continue
                if all(self._similar(member, other) for member in group):
                    group.append(other)
            if len(group) > 1:
                groups.append(group)
                processed.update(member.id for member in group)
        return groups

    def merge(self, group: list[MemoryEntry], now: datetime) -> MemoryEntry:
        """Build the synthetic entry replacing a cluster."""
        joined = " | ".join(member.content for member in group)
        associations: list[str] = []
        for member in group:
            for assoc in member.associations:
                if assoc not in associations:
                    associations.append(assoc)
        first = group[0]
        return MemoryEntry(
            id=self.id_factory(),
            content=f"[Merged {len(group)} memories] {joined[: self.content_limit]}",
            embedding=list(first.embedding) if first.embedding else None,
            timestamp=now,
            kind=first.kind,
            importance=max(member.importance for member in group),
            access_count=sum(member.access_count for member in group),
            last_accessed=now,
            metadata={
                "merged": True,
                "source_count": len(group),
                "source_ids": [member.id for member in group],
            },
            associations=associations,
        )

    def compress(self, long_term: dict[str, MemoryEntry], now: datetime) -> int:
        """Merge clusters inside ``long_term`` in place and return the number of entries removed."""
        groups = self.cluster(self.select_candidates(list(long_term.values())))
        removed = 0
        for group in groups:
            merged = self.merge(group, now)
            for member in group:
                long_term.pop(member.id, None)
            long_term[merged.id] = merged
            removed += len(group) - 1
        if groups:
            logger.info("Compressed %d long-term memories into %d merged entries", removed + len(groups), len(groups))
        return removed
