"""Self-correction: classify task failures and track per-task recovery history."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from core.settings import CorrectionConfig
from memory.types import utc_now
from recovery.circuit_breaker import BreakerStatus, CircuitBreaker, CircuitBreakerState
from recovery.error_patterns import (
    CorrectionStrategy,
    ErrorPattern,
    StrategyType,
    classify,
    default_error_patterns,
)

logger = logging.getLogger("ate.recovery")


class CircuitOpenError(RuntimeError):
    """Raised when work is attempted on a task whose breaker is open."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Circuit breaker open for task {task_id}")
        self.task_id = task_id


class CorrectionAttempt(BaseModel):
    """One recorded recovery decision for a task."""

    id: str = Field(default_factory=lambda: f"attempt_{uuid.uuid4().hex[:12]}")
    task_id: str
    error: str
    strategy: CorrectionStrategy
    success: bool = False
    timestamp: datetime = Field(default_factory=utc_now)
    learnings: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class CorrectionResult:
    strategy: CorrectionStrategy
    should_retry: bool


_BREAKER_OPEN = CorrectionStrategy(
    name="Circuit breaker open",
    type=StrategyType.SKIP,
    parameters={"reason": "Too many failures"},
    confidence=1.0,
)


class CorrectionEngine:
    """Recommends recovery strategies and owns one circuit breaker per task.

    Shared between concurrent pursuits; every per-task mutation happens under
    a single lock and callers only get copies back.
    """

    def __init__(
        self,
        config: CorrectionConfig | None = None,
        custom_patterns: list[ErrorPattern] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CorrectionConfig()
        self.clock = clock
        self._patterns = default_error_patterns() + list(custom_patterns or [])
        self._attempts: dict[str, list[CorrectionAttempt]] = defaultdict(list)
        self._breakers: dict[str, CircuitBreaker] = {}
        self._learnings: dict[str, list[str]] = defaultdict(list)
        self._lock = threading.Lock()

    def _breaker(self, task_id: str) -> CircuitBreaker:
        breaker = self._breakers.get(task_id)
        if breaker is None:
            breaker = CircuitBreaker(
                threshold=self.config.circuit_breaker_threshold,
                cooldown_seconds=self.config.circuit_breaker_cooldown_seconds,
                success_threshold=self.config.half_open_success_threshold,
                clock=self.clock,
                name=task_id,
            )
            self._breakers[task_id] = breaker
        return breaker

    def correct(
        self, task_id: str, error: str, context: dict[str, Any] | None = None
    ) -> CorrectionResult:
        """Decide how to recover from ``error`` on ``task_id``."""
        with self._lock:
            if self._breaker(task_id).is_open:
                logger.info("Task %s skipped: circuit breaker open", task_id)
                return CorrectionResult(strategy=_BREAKER_OPEN, should_retry=False)

            history = self._attempts[task_id]
            if len(history) >= self.config.max_attempts_per_task:
                self._breaker(task_id).record_failure()
                logger.warning("Task %s exhausted %d correction attempts", task_id, len(history))
                return CorrectionResult(
                    strategy=CorrectionStrategy(
                        name="Max attempts reached",
                        type=StrategyType.ESCALATE,
                        parameters={"attempts": len(history)},
                        confidence=1.0,
                    ),
                    should_retry=False,
                )

            strategy, category = classify(error, self._patterns)
            history.append(CorrectionAttempt(task_id=task_id, error=error, strategy=strategy))
            logger.debug(
                "Task %s error classified as %s -> %s (context keys: %s)",
                task_id,
                category or "unknown",
                strategy.name,
                sorted((context or {}).keys()),
            )
            return CorrectionResult(strategy=strategy, should_retry=strategy.type.retryable)

    def record_success(self, task_id: str) -> None:
        """Count a success toward closing the breaker and mark the last attempt successful."""
        with self._lock:
            self._breaker(task_id).record_success()
            history = self._attempts.get(task_id)
            if history:
                history[-1].success = True

    def record_failure(self, task_id: str) -> None:
        with self._lock:
            self._breaker(task_id).record_failure()

    def breaker_state(self, task_id: str) -> CircuitBreakerState:
        with self._lock:
            return self._breaker(task_id).snapshot()

    def guard(self, task_id: str) -> None:
        """Raise ``CircuitOpenError`` if the task's breaker is open."""
        with self._lock:
            if self._breaker(task_id).is_open:
                raise CircuitOpenError(task_id)

    def attempts(self, task_id: str) -> list[CorrectionAttempt]:
        with self._lock:
            return [a.model_copy(deep=True) for a in self._attempts.get(task_id, [])]

    def add_learning(self, task_id: str, learning: str) -> None:
        with self._lock:
            self._learnings[task_id].append(learning)
            history = self._attempts.get(task_id)
            if history:
                history[-1].learnings.append(learning)

    def get_learnings(self, task_id: str | None = None) -> list[str]:
        with self._lock:
            if task_id is not None:
                return list(self._learnings.get(task_id, []))
            return [item for items in self._learnings.values() for item in items]

    def error_pattern_stats(self) -> list[dict[str, Any]]:
        with self._lock:
            return [{"category": p.category, "occurrences": p.occurrences} for p in self._patterns]

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            all_attempts = [a for items in self._attempts.values() for a in items]
            successful = sum(1 for a in all_attempts if a.success)
            statuses = [b.status for b in self._breakers.values()]
            return {
                "total_attempts": len(all_attempts),
                "successful_attempts": successful,
                "success_rate": successful / len(all_attempts) if all_attempts else 0.0,
                "circuit_breakers": {
                    "open": statuses.count(BreakerStatus.OPEN),
                    "half_open": statuses.count(BreakerStatus.HALF_OPEN),
                    "closed": statuses.count(BreakerStatus.CLOSED),
                },
                "error_patterns": [
                    {"category": p.category, "occurrences": p.occurrences} for p in self._patterns
                ],
                "total_learnings": sum(len(items) for items in self._learnings.values()),
            }

    def reset(self) -> None:
        """Forget all attempts, breakers, learnings and pattern counters."""
        with self._lock:
            self._attempts.clear()
            self._breakers.clear()
            self._learnings.clear()
            for pattern in self._patterns:
                pattern.occurrences = 0
