"""Self-correction engine tests."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from core.settings import CorrectionConfig
from recovery.circuit_breaker import BreakerStatus
from recovery.correction_engine import CircuitOpenError, CorrectionEngine
from recovery.error_patterns import CorrectionStrategy, ErrorPattern, StrategyType


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


def build_engine(**overrides: object) -> tuple[CorrectionEngine, FakeMonotonic]:
    clock = FakeMonotonic()
    return CorrectionEngine(config=CorrectionConfig(**overrides), clock=clock), clock


@pytest.mark.parametrize(
    ("error", "name", "kind", "should_retry"),
    [
        ("Request timed out after 30s", "Retry with backoff", StrategyType.RETRY, True),
        ("HTTP 429 Too Many Requests", "Exponential backoff", StrategyType.RETRY, True),
        ("Page not found", "Alternative approach", StrategyType.ALTERNATIVE, True),
        ("403 Forbidden", "Escalate to user", StrategyType.ESCALATE, False),
        ("Payload too large to process", "Decompose task", StrategyType.DECOMPOSE, True),
        ("something odd happened", "Generic retry", StrategyType.RETRY, True),
    ],
)
def test_errors_are_classified_by_first_matching_pattern(
    error: str, name: str, kind: StrategyType, should_retry: bool
) -> None:
    engine, _ = build_engine()

    result = engine.correct("task-1", error)

    assert result.strategy.name == name
    assert result.strategy.type is kind
    assert result.should_retry is should_retry


def test_rate_limit_strategy_carries_backoff_parameters() -> None:
    engine, _ = build_engine()
    strategy = engine.correct("t", "rate limit exceeded").strategy

    assert strategy.parameters == {"max_retries": 5, "backoff_ms": 2000, "exponential": True}
    assert strategy.backoff_ms == 2000
    assert strategy.exponential
    assert strategy.confidence == pytest.approx(0.9)


def test_attempts_are_recorded_unsuccessful() -> None:
    engine, _ = build_engine()
    engine.correct("t", "timeout", {"attempt": 1})
    engine.correct("t", "missing file")

    attempts = engine.attempts("t")
    assert [a.error for a in attempts] == ["timeout", "missing file"]
    assert not any(a.success for a in attempts)
    assert attempts[0].task_id == "t"


def test_exhausted_attempts_escalate_and_count_as_breaker_failures() -> None:
    engine, _ = build_engine()
    for _ in range(5):
        assert engine.correct("t", "timeout").should_retry

    sixth = engine.correct("t", "timeout")
    seventh = engine.correct("t", "timeout")

    for result in (sixth, seventh):
        assert result.should_retry is False
        assert result.strategy.type is StrategyType.ESCALATE
        assert result.strategy.name == "Max attempts reached"
    assert sixth.strategy.parameters == {"attempts": 5}
    assert len(engine.attempts("t")) == 5
    assert engine.breaker_state("t").failures == 2


def test_open_breaker_skips_without_analysis() -> None:
    engine, _ = build_engine()
    for _ in range(5):
        engine.record_failure("t")

    result = engine.correct("t", "timeout")

    assert result.strategy.type is StrategyType.SKIP
    assert result.strategy.name == "Circuit breaker open"
    assert result.should_retry is False
    assert engine.attempts("t") == []
    with pytest.raises(CircuitOpenError):
        engine.guard("t")


def test_breaker_recovers_after_cooldown_and_successes() -> None:
    engine, clock = build_engine(circuit_breaker_cooldown_seconds=60)
    for _ in range(5):
        engine.record_failure("t")
    clock.value = 61.0
    assert engine.breaker_state("t").status is BreakerStatus.HALF_OPEN
    engine.guard("t")

    for _ in range(3):
        engine.record_success("t")

    state = engine.breaker_state("t")
    assert state.status is BreakerStatus.CLOSED
    assert state.failures == 0


def test_record_success_marks_latest_attempt() -> None:
    engine, _ = build_engine()
    engine.correct("t", "timeout")
    engine.correct("t", "timeout")
    engine.record_success("t")

    attempts = engine.attempts("t")
    assert [a.success for a in attempts] == [False, True]
    stats = engine.get_stats()
    assert stats["total_attempts"] == 2
    assert stats["successful_attempts"] == 1
    assert stats["success_rate"] == pytest.approx(0.5)
    assert stats["circuit_breakers"]["closed"] == 1


def test_custom_patterns_are_checked_after_defaults() -> None:
    disk = ErrorPattern(
        r"disk full",
        "storage",
        CorrectionStrategy(name="Free space", type=StrategyType.SKIP, confidence=0.6),
    )
    engine = CorrectionEngine(custom_patterns=[disk])

    assert engine.correct("a", "Disk full on /var").strategy.name == "Free space"
    assert engine.correct("b", "timeout: disk full").strategy.name == "Retry with backoff"
    assert engine.correct("c", "Disk full on /var").should_retry is False

    stats = {row["category"]: row["occurrences"] for row in engine.error_pattern_stats()}
    assert stats["storage"] == 2
    assert stats["timeout"] == 1


def test_learnings_and_reset() -> None:
    engine, _ = build_engine()
    engine.correct("t", "timeout")
    engine.add_learning("t", "increase client timeout")
    engine.add_learning("u", "use mirror")

    assert engine.get_learnings("t") == ["increase client timeout"]
    assert sorted(engine.get_learnings()) == ["increase client timeout", "use mirror"]
    assert engine.attempts("t")[0].learnings == ["increase client timeout"]

    engine.reset()

    assert engine.get_learnings() == []
    assert engine.attempts("t") == []
    assert all(row["occurrences"] == 0 for row in engine.error_pattern_stats())


def test_concurrent_corrections_never_exceed_attempt_cap() -> None:
    engine, _ = build_engine()
    start = threading.Barrier(10)

    def call(_: int) -> bool:
        start.wait()
        return engine.correct("shared", "timeout").should_retry

    with ThreadPoolExecutor(max_workers=10) as pool:
        outcomes = list(pool.map(call, range(10)))

    assert outcomes.count(True) == 5
    assert len(engine.attempts("shared")) == 5
    assert engine.breaker_state("shared").failures == 5
