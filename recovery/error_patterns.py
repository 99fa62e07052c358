"""Error classification table mapping failure text to correction strategies."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StrategyType(str, Enum):
    """Kind of recovery the engine recommends."""

    RETRY = "retry"
    ALTERNATIVE = "alternative"
    DECOMPOSE = "decompose"
    ESCALATE = "escalate"
    SKIP = "skip"

    @property
    def retryable(self) -> bool:
        return self not in (StrategyType.ESCALATE, StrategyType.SKIP)


class CorrectionStrategy(BaseModel):
    """Recommended recovery action with its tuning parameters."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: StrategyType
    parameters: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @property
    def backoff_ms(self) -> float:
        return float(self.parameters.get("backoff_ms", 0) or 0)

    @property
    def exponential(self) -> bool:
        return bool(self.parameters.get("exponential", False))


class ErrorPattern:
    """A case-insensitive regex with the strategy it recommends."""

    def __init__(self, pattern: str | re.Pattern[str], category: str, strategy: CorrectionStrategy) -> None:
        self.regex = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
        self.category = category
        self.strategy = strategy
        self.occurrences = 0

    def matches(self, error: str) -> bool:
        return self.regex.search(error) is not None

    def __repr__(self) -> str:
        return f"ErrorPattern({self.category!r}, {self.regex.pattern!r})"


def default_error_patterns() -> list[ErrorPattern]:
    """Fresh copies of the built-in patterns, in match order."""
    return [
        ErrorPattern(
            r"timeout|timed out",
            "timeout",
            CorrectionStrategy(
                name="Retry with backoff",
                type=StrategyType.RETRY,
                parameters={"max_retries": 3, "backoff_ms": 1000},
                confidence=0.8,
            ),
        ),
        ErrorPattern(
            r"rate limit|429|too many requests",
            "rate_limit",
            CorrectionStrategy(
                name="Exponential backoff",
                type=StrategyType.RETRY,
                parameters={"max_retries": 5, "backoff_ms": 2000, "exponential": True},
                confidence=0.9,
            ),
        ),
        ErrorPattern(
            r"not found|404|missing",
            "not_found",
            CorrectionStrategy(
                name="Alternative approach",
                type=StrategyType.ALTERNATIVE,
                parameters={"search_alternatives": True},
                confidence=0.7,
            ),
        ),
        ErrorPattern(
            r"permission|forbidden|403|unauthorized|401",
            "auth",
            CorrectionStrategy(
                name="Escalate to user",
                type=StrategyType.ESCALATE,
                parameters={"reason": "Authentication required"},
                confidence=0.95,
            ),
        ),
        ErrorPattern(
            r"complex|too large|split",
            "complexity",
            CorrectionStrategy(
                name="Decompose task",
                type=StrategyType.DECOMPOSE,
                parameters={"max_subtasks": 5},
                confidence=0.75,
            ),
        ),
    ]


FALLBACK_STRATEGY = CorrectionStrategy(
    name="Generic retry",
    type=StrategyType.RETRY,
    parameters={"max_retries": 2, "backoff_ms": 500},
    confidence=0.5,
)


def classify(error: str, patterns: list[ErrorPattern]) -> tuple[CorrectionStrategy, str | None]:
    """First matching pattern wins; its occurrence counter is bumped."""
    for pattern in patterns:
        if pattern.matches(error):
            pattern.occurrences += 1
            return pattern.strategy, pattern.category
    return FALLBACK_STRATEGY, None
