"""Goal, task and execution plan models."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def new_goal_id() -> str:
    return f"goal_{uuid.uuid4().hex[:12]}"


def new_task_id() -> str:
    return f"task_{uuid.uuid4().hex}"


class GoalPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    EXTREME = "extreme"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Goal(BaseModel):
    """High-level objective handed to an agent. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_goal_id)
    description: str = Field(min_length=1)
    constraints: list[str] = Field(default_factory=list)
    priority: GoalPriority = GoalPriority.MEDIUM
    deadline: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Task(BaseModel):
    """One actionable step of a plan. Only the agent loop changes ``status``."""

    id: str = Field(default_factory=new_task_id)
    description: str
    status: TaskStatus = TaskStatus.PENDING
    dependencies: list[str] = Field(default_factory=list)
    priority: int = Field(default=1, ge=1, le=10)
    estimated_minutes: float = Field(default=5.0, ge=0.0)
    tool: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ExecutionPlan(BaseModel):
    """Ordered tasks for exactly one goal."""

    goal_id: str
    tasks: list[Task] = Field(default_factory=list)
    estimated_minutes: float = 0.0
    complexity: Complexity = Complexity.MODERATE
    risk_level: RiskLevel = RiskLevel.MEDIUM

    def task(self, task_id: str) -> Task | None:
        for item in self.tasks:
            if item.id == task_id:
                return item
        return None
