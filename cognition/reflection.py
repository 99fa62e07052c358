"""Post-run reflection over a finished pursuit."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from cognition.reasoner import Thought
from planner.execution_plan import Task

logger = logging.getLogger("ate.cognition.reflection")


@dataclass(frozen=True)
class ReflectionReport:
    """Aggregate outcome figures for one run."""

    total_tasks: int
    completed: int
    failed: int
    success_rate: float
    average_confidence: float
    failed_descriptions: list[str] = field(default_factory=list)

    def summary(self) -> str:
        text = (
            f"Completed {self.completed}/{self.total_tasks} tasks "
            f"({self.success_rate * 100:.1f}% success, avg confidence {self.average_confidence:.2f})"
        )
        if self.failed_descriptions:
            text += "; failed: " + "; ".join(self.failed_descriptions)
        return text


def reflect(
    total_tasks: int,
    completed: Sequence[Task],
    failed: Sequence[Task],
    thoughts: Sequence[Thought],
) -> ReflectionReport:
    """Compute success metrics; never changes task outcomes."""
    confidences = [thought.confidence for thought in thoughts]
    report = ReflectionReport(
        total_tasks=total_tasks,
        completed=len(completed),
        failed=len(failed),
        success_rate=len(completed) / (total_tasks or 1),
        average_confidence=sum(confidences) / len(confidences) if confidences else 0.0,
        failed_descriptions=[task.description for task in failed],
    )
    logger.info("Reflection: %s", report.summary())
    return report
