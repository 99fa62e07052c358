"""Circuit breaker state machine tests."""

from __future__ import annotations

from recovery.circuit_breaker import BreakerStatus, CircuitBreaker


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 100.0

    def __call__(self) -> float:
        return self.value


def build_breaker() -> tuple[CircuitBreaker, FakeMonotonic]:
    clock = FakeMonotonic()
    return CircuitBreaker(threshold=5, cooldown_seconds=60.0, success_threshold=3, clock=clock, name="t"), clock


def test_opens_after_threshold_failures() -> None:
    breaker, _ = build_breaker()
    for _ in range(4):
        breaker.record_failure()
    assert breaker.status is BreakerStatus.CLOSED

    breaker.record_failure()

    state = breaker.snapshot()
    assert state.status is BreakerStatus.OPEN
    assert state.failures == 5
    assert state.last_failure is not None


def test_half_opens_after_cooldown_then_closes_after_three_successes() -> None:
    breaker, clock = build_breaker()
    for _ in range(5):
        breaker.record_failure()

    clock.value += 59.0
    assert breaker.status is BreakerStatus.OPEN
    clock.value += 1.0
    assert breaker.status is BreakerStatus.HALF_OPEN

    breaker.record_success()
    breaker.record_success()
    assert breaker.status is BreakerStatus.HALF_OPEN
    breaker.record_success()

    state = breaker.snapshot()
    assert state.status is BreakerStatus.CLOSED
    assert state.failures == 0


def test_failure_while_half_open_reopens() -> None:
    breaker, clock = build_breaker()
    for _ in range(5):
        breaker.record_failure()
    clock.value += 60.0
    assert breaker.status is BreakerStatus.HALF_OPEN

    breaker.record_success()
    breaker.record_failure()

    assert breaker.status is BreakerStatus.OPEN
    clock.value += 60.0
    assert breaker.snapshot().success_count == 0


def test_failures_while_open_do_not_extend_cooldown() -> None:
    breaker, clock = build_breaker()
    start = clock.value
    for _ in range(5):
        breaker.record_failure()

    clock.value = start + 50.0
    breaker.record_failure()
    assert breaker.status is BreakerStatus.OPEN
    assert breaker.snapshot().failures == 6

    clock.value = start + 61.0
    assert breaker.status is BreakerStatus.HALF_OPEN


def test_success_while_closed_or_open_changes_nothing() -> None:
    breaker, _ = build_breaker()
    breaker.record_failure()
    breaker.record_success()
    assert breaker.snapshot().failures == 1

    for _ in range(4):
        breaker.record_failure()
    breaker.record_success()
    assert breaker.status is BreakerStatus.OPEN


def test_snapshot_is_a_copy() -> None:
    breaker, _ = build_breaker()
    snapshot = breaker.snapshot()
    snapshot.failures = 99
    assert breaker.snapshot().failures == 0
