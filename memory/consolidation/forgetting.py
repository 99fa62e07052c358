"""Importance decay, promotion and pruning rules."""

from __future__ import annotations

from memory.scoring import decayed_importance
from memory.types import MemoryEntry


class ForgettingPolicy:
    """Decides what happens to a short-term entry during consolidation."""

    def __init__(
        self,
        decay_rate: float = 0.01,
        consolidation_threshold: float = 0.7,
        prune_importance: float = 0.1,
        prune_access_count: int = 2,
    ) -> None:
        self.decay_rate = decay_rate
        self.consolidation_threshold = consolidation_threshold
        self.prune_importance = prune_importance
        self.prune_access_count = prune_access_count

    def decay(self, entry: MemoryEntry, elapsed_hours: float) -> float:
        """Apply exponential decay to the entry in place and return the new importance."""
        entry.importance = decayed_importance(entry.importance, self.decay_rate, elapsed_hours)
        return entry.importance

    def should_promote(self, entry: MemoryEntry) -> bool:
        return entry.importance >= self.consolidation_threshold

    def should_prune(self, entry: MemoryEntry) -> bool:
        return (
            entry.importance < self.prune_importance
            and entry.access_count < self.prune_access_count
        )
