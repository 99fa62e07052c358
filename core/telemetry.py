"""Metrics sink interface and in-process collectors."""

from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger("ate.telemetry")


class MetricsSink(Protocol):
    """Fire-and-forget metrics collaborator."""

    def increment(self, name: str, value: float = 1, tags: dict[str, str] | None = None) -> None: ...

    def histogram(self, name: str, value: float, tags: dict[str, str] | None = None) -> None: ...

    def start_span(self, operation: str, parent_id: str | None = None) -> str: ...

    def end_span(self, span_id: str, status: str = "ok") -> None: ...


class NullMetrics:
    """Discards everything."""

    def increment(self, name: str, value: float = 1, tags: dict[str, str] | None = None) -> None:
        return None

    def histogram(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        return None

    def start_span(self, operation: str, parent_id: str | None = None) -> str:
        return ""

    def end_span(self, span_id: str, status: str = "ok") -> None:
        return None


@dataclass
class Span:
    span_id: str
    operation: str
    started: float
    parent_id: str | None = None
    ended: float | None = None
    status: str = "ok"
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float | None:
        if self.ended is None:
            return None
        return (self.ended - self.started) * 1000.0


class InMemoryMetrics:
    """Thread-safe collector that keeps counters, histogram samples and spans."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.counters: dict[str, float] = defaultdict(float)
        self._histograms: dict[str, list[float]] = defaultdict(list)
        self._active: dict[str, Span] = {}
        self.completed_spans: list[Span] = []

    def increment(self, name: str, value: float = 1, tags: dict[str, str] | None = None) -> None:
        with self._lock:
            self.counters[name] += value

    def histogram(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        with self._lock:
            self._histograms[name].append(float(value))

    def start_span(self, operation: str, parent_id: str | None = None) -> str:
        span = Span(
            span_id=uuid.uuid4().hex[:16],
            operation=operation,
            started=time.perf_counter(),
            parent_id=parent_id,
        )
        with self._lock:
            self._active[span.span_id] = span
        return span.span_id

    def end_span(self, span_id: str, status: str = "ok") -> None:
        with self._lock:
            span = self._active.pop(span_id, None)
            if span is None:
                return
            span.ended = time.perf_counter()
            span.status = status
            self.completed_spans.append(span)

    def histogram_stats(self, name: str) -> dict[str, float] | None:
        """min/max/avg and p50/p95/p99 of recorded samples, or None when empty."""
        with self._lock:
            values = sorted(self._histograms.get(name, []))
        if not values:
            return None

        def pick(p: float) -> float:
            return values[min(len(values) - 1, math.floor(len(values) * p))]

        return {
            "count": float(len(values)),
            "min": values[0],
            "max": values[-1],
            "avg": sum(values) / len(values),
            "p50": pick(0.5),
            "p95": pick(0.95),
            "p99": pick(0.99),
        }

    def spans(self, operation: str | None = None) -> list[Span]:
        with self._lock:
            return [s for s in self.completed_spans if operation is None or s.operation == operation]

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            names = list(self._histograms)
            counters = dict(self.counters)
        return {
            "counters": counters,
            "histograms": {name: self.histogram_stats(name) for name in names},
        }


class GuardedMetrics:
    """Wraps a sink so that collector failures are logged, never raised."""

    def __init__(self, sink: MetricsSink) -> None:
        self.sink = sink

    def _call(self, method: str, *args: Any) -> Any:
        try:
            return getattr(self.sink, method)(*args)
        except Exception:
            logger.exception("Metrics sink %s failed", method)
            return None

    def increment(self, name: str, value: float = 1, tags: dict[str, str] | None = None) -> None:
        self._call("increment", name, value, tags)

    def histogram(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self._call("histogram", name, value, tags)

    def start_span(self, operation: str, parent_id: str | None = None) -> str:
        return self._call("start_span", operation, parent_id) or ""

    def end_span(self, span_id: str, status: str = "ok") -> None:
        self._call("end_span", span_id, status)


@contextmanager
def span(metrics: MetricsSink, operation: str, parent_id: str | None = None) -> Iterator[str]:
    """Open a span for the block; it ends with status "error" if the block raises."""
    span_id = metrics.start_span(operation, parent_id)
    try:
        yield span_id
    except BaseException:
        metrics.end_span(span_id, "error")
        raise
    metrics.end_span(span_id, "ok")
