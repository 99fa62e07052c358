"""Per-pursuit agent state."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from cognition.reasoner import Thought
from cognition.reflection import ReflectionReport
from planner.execution_plan import ExecutionPlan, Goal, Task


class AgentStatus(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    REFLECTING = "reflecting"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (AgentStatus.COMPLETED, AgentStatus.FAILED)


@dataclass
class AgentState:
    """Mutable state owned by a single ``pursue`` call."""

    status: AgentStatus = AgentStatus.IDLE
    goal: Goal | None = None
    plan: ExecutionPlan | None = None
    current_task: Task | None = None
    thoughts: list[Thought] = field(default_factory=list)
    completed_tasks: list[Task] = field(default_factory=list)
    failed_tasks: list[Task] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    iterations: int = 0
    error: str | None = None
    reflection: ReflectionReport | None = None

    def copy(self) -> AgentState:
        return copy.deepcopy(self)

    @property
    def finished_ids(self) -> set[str]:
        return {t.id for t in self.completed_tasks} | {t.id for t in self.failed_tasks}

    def pending_tasks(self) -> list[Task]:
        """Plan tasks not yet completed or failed, in plan order."""
        if self.plan is None:
            return []
        finished = self.finished_ids
        return [task for task in self.plan.tasks if task.id not in finished]

    @property
    def duration_seconds(self) -> float | None:
        if self.start_time is None or self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()
