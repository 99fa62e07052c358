"""Scoring helpers for memory importance and retrieval."""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime

_URGENCY_RE = re.compile(r"\b(important|critical|urgent|must|required)\b", re.IGNORECASE)
_STRUCTURE_RE = re.compile(r"\b(step|phase|stage)\b|\b\d+\.", re.IGNORECASE)
_TECHNICAL_RE = re.compile(r"\b(function|class|interface|def|const|let|var)\b")

BASE_IMPORTANCE = 0.5


def initial_importance(content: str) -> float:
    """Importance of freshly stored content from lexical cues."""
    importance = BASE_IMPORTANCE
    if _URGENCY_RE.search(content):
        importance += 0.2
    if _STRUCTURE_RE.search(content):
        importance += 0.1
    if _TECHNICAL_RE.search(content):
        importance += 0.15
    return min(1.0, importance)


def hours_between(earlier: datetime, later: datetime) -> float:
    """Non-negative hours elapsed between two timestamps."""
    if earlier.tzinfo is None:
        earlier = earlier.replace(tzinfo=UTC)
    if later.tzinfo is None:
        later = later.replace(tzinfo=UTC)
    return max(0.0, (later - earlier).total_seconds() / 3600.0)


def recency_decay(last_accessed: datetime, now: datetime) -> float:
    """Map time since last access to (0, 1] with a one-day time constant."""
    return math.exp(-hours_between(last_accessed, now) / 24.0)


def frequency_boost(access_count: int) -> float:
    """Saturating boost for frequently accessed entries."""
    return min(1.0, access_count / 10.0)


def relevance_score(
    similarity: float,
    importance: float,
    recency: float,
    frequency: float,
) -> float:
    """Weighted retrieval score."""
    return 0.6 * similarity + 0.2 * importance + 0.1 * recency + 0.1 * frequency


def decayed_importance(importance: float, decay_rate: float, elapsed_hours: float) -> float:
    """Exponential importance decay over elapsed hours."""
    return importance * math.exp(-decay_rate * elapsed_hours)
