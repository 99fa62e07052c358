"""Per-key circuit breaker with lazy cooldown evaluation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from memory.types import utc_now

logger = logging.getLogger("ate.recovery.breaker")


class BreakerStatus(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass
class CircuitBreakerState:
    """Snapshot of one breaker."""

    status: BreakerStatus = BreakerStatus.CLOSED
    failures: int = 0
    last_failure: datetime | None = None
    success_count: int = 0
    opened_at: float | None = None


class CircuitBreaker:
    """Opens after ``threshold`` failures, half-opens after ``cooldown_seconds``,
    and closes again after ``success_threshold`` successes while half-open.

    The open → half-open flip is checked whenever the breaker is observed,
    using the injected monotonic clock, so no timer thread is involved.
    Not thread-safe on its own; the owning engine serializes access.
    """

    def __init__(
        self,
        threshold: int = 5,
        cooldown_seconds: float = 60.0,
        success_threshold: int = 3,
        clock: Callable[[], float] = time.monotonic,
        name: str = "",
    ) -> None:
        self.threshold = threshold
        self.cooldown_seconds = cooldown_seconds
        self.success_threshold = success_threshold
        self.clock = clock
        self.name = name
        self._state = CircuitBreakerState()

    @property
    def status(self) -> BreakerStatus:
        self._refresh()
        return self._state.status

    @property
    def is_open(self) -> bool:
        return self.status is BreakerStatus.OPEN

    def snapshot(self) -> CircuitBreakerState:
        self._refresh()
        return replace(self._state)

    def record_failure(self) -> None:
        self._refresh()
        state = self._state
        state.failures += 1
        state.last_failure = utc_now()
        if state.status is BreakerStatus.OPEN:
            # The cooldown runs from the moment the breaker opened.
            return
        if state.status is BreakerStatus.HALF_OPEN or state.failures >= self.threshold:
            logger.warning("Circuit breaker %s opened after %d failures", self.name, state.failures)
            state.status = BreakerStatus.OPEN
            state.opened_at = self.clock()
            state.success_count = 0

    def record_success(self) -> None:
        self._refresh()
        state = self._state
        if state.status is not BreakerStatus.HALF_OPEN:
            return
        state.success_count += 1
        if state.success_count >= self.success_threshold:
            state.status = BreakerStatus.CLOSED
            state.failures = 0
            state.success_count = 0
            state.opened_at = None
            logger.info("Circuit breaker %s closed", self.name)

    def _refresh(self) -> None:
        state = self._state
        if state.status is not BreakerStatus.OPEN or state.opened_at is None:
            return
        if self.clock() - state.opened_at >= self.cooldown_seconds:
            state.status = BreakerStatus.HALF_OPEN
            state.success_count = 0
            logger.info("Circuit breaker %s half-open", self.name)
