"""Retry helper tests."""

from __future__ import annotations

import asyncio

import pytest

from recovery.retry import backoff_delay, retry_call, with_retry


class Flaky:
    def __init__(self, failures: int, error: type[Exception] = RuntimeError) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return "ok"


def run_with_recorded_sleeps(operation: Flaky, **kwargs: object) -> tuple[object, list[float]]:
    delays: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    async def main() -> object:
        return await with_retry(operation, sleep=fake_sleep, **kwargs)

    return asyncio.run(main()), delays


def test_succeeds_after_transient_failures_with_exponential_delays() -> None:
    op = Flaky(failures=2)
    result, delays = run_with_recorded_sleeps(op, max_retries=3, base_delay=1.0)

    assert result == "ok"
    assert op.calls == 3
    assert delays == [1.0, 2.0]


def test_constant_delay_when_not_exponential() -> None:
    op = Flaky(failures=3)
    _, delays = run_with_recorded_sleeps(op, max_retries=3, base_delay=0.5, exponential=False)

    assert delays == [0.5, 0.5, 0.5]


def test_last_error_surfaces_when_retries_exhausted() -> None:
    op = Flaky(failures=10)
    with pytest.raises(RuntimeError, match="failure 3"):
        run_with_recorded_sleeps(op, max_retries=2)
    assert op.calls == 3


def test_observer_called_before_each_wait() -> None:
    seen: list[tuple[int, str, float]] = []
    op = Flaky(failures=2)

    run_with_recorded_sleeps(
        op,
        max_retries=2,
        base_delay=2.0,
        on_retry=lambda attempt, error, delay: seen.append((attempt, str(error), delay)),
    )

    assert seen == [(1, "failure 1", 2.0), (2, "failure 2", 4.0)]


def test_errors_outside_retry_on_propagate_immediately() -> None:
    op = Flaky(failures=1, error=KeyError)
    with pytest.raises(KeyError):
        run_with_recorded_sleeps(op, retry_on=(ValueError,))
    assert op.calls == 1


def test_retry_call_is_the_blocking_twin() -> None:
    calls = {"n": 0}
    delays: list[float] = []

    def operation() -> int:
        calls["n"] += 1
        if calls["n"] < 3:
            raise ConnectionError("reset")
        return 42

    assert retry_call(operation, max_retries=3, base_delay=0.1, sleep=delays.append) == 42
    assert delays == pytest.approx([0.1, 0.2])


def test_backoff_delay() -> None:
    assert backoff_delay(1.5, 0) == 1.5
    assert backoff_delay(1.5, 3) == 12.0
    assert backoff_delay(1.5, 3, exponential=False) == 1.5
