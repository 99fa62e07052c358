"""Task planner and dependency graph tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from core.settings import AgentConfig
from llm.base_llm import BaseLLM, CompletionError
from llm.providers.mock_provider import MockProvider
from memory.memory_store import MemoryStore
from planner.dependency_graph import DependencyGraph
from planner.execution_plan import Complexity, Goal, GoalPriority, RiskLevel, Task, TaskStatus
from planner.task_planner import PlanningError, PlanParseError, PlanRequestError, TaskPlanner


class FakeLLM(BaseLLM):
    def __init__(self, response: str = "", error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[list[dict[str, str]], dict[str, Any]]] = []

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        self.calls.append((messages, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def decompose(llm: BaseLLM, goal: Goal, **planner_kwargs: Any) -> Any:
    planner = TaskPlanner(llm=llm, **planner_kwargs)
    return asyncio.run(planner.decompose(goal, AgentConfig(llm_model="test/model")))


GOAL = Goal(description="Publish the release", constraints=["no downtime", "before friday"], priority=GoalPriority.HIGH)


def test_request_carries_goal_and_sampling_settings() -> None:
    llm = FakeLLM(json.dumps({"tasks": [{"description": "tag the build"}]}))

    decompose(llm, GOAL)

    messages, kwargs = llm.calls[0]
    assert kwargs == {"model": "test/model", "temperature": 0.3, "max_tokens": 4000}
    assert messages[0]["role"] == "system"
    assert "valid JSON" in messages[0]["content"]
    user = messages[1]["content"]
    assert "Goal: Publish the release" in user
    assert "Constraints: no downtime, before friday" in user
    assert "Priority: high" in user


def test_fenced_plan_is_normalized() -> None:
    payload = {
        "tasks": [
            {"id": "build", "description": "Build artifacts", "priority": 15, "estimatedMinutes": 12},
            {"description": "Run smoke tests", "priority": 0, "dependencies": ["build"]},
            {"description": "Announce", "dependencies": [2, "ghost"], "tool": "notify"},
        ],
        "complexity": "complex",
        "riskLevel": "high",
    }
    llm = FakeLLM("Here you go:\n```json\n" + json.dumps(payload) + "\n```")

    plan = decompose(llm, GOAL)

    assert plan.goal_id == GOAL.id
    assert plan.complexity is Complexity.COMPLEX
    assert plan.risk_level is RiskLevel.HIGH
    build, smoke, announce = plan.tasks
    assert len({build.id, smoke.id, announce.id}) == 3
    assert all(t.id.startswith("task_") for t in plan.tasks)
    assert all(t.status is TaskStatus.PENDING for t in plan.tasks)
    assert build.priority == 10
    assert smoke.priority == 1
    assert announce.priority == 3
    assert build.estimated_minutes == 12
    assert smoke.estimated_minutes == 5
    assert smoke.dependencies == [build.id]
    assert announce.dependencies == [smoke.id]
    assert announce.tool == "notify"
    assert plan.estimated_minutes == pytest.approx(22)


def test_missing_classifications_use_defaults() -> None:
    plan = decompose(FakeLLM('{"tasks": [{"description": "only step"}], "complexity": "galactic"}'), GOAL)

    assert plan.complexity is Complexity.MODERATE
    assert plan.risk_level is RiskLevel.MEDIUM
    assert plan.tasks[0].priority == 1


@pytest.mark.parametrize(
    "response",
    [
        "I could not do that",
        '{"steps": []}',
        '{"tasks": "first, second"}',
        '{"tasks": [{"priority": 2}]}',
        '{"tasks": [{"description": "   "}]}',
        "[1, 2, 3]",
        '{"tasks": [{"description": "run", "tool": 5}]}',
        '{"tasks": [{"description": "run", "priority": NaN}]}',
        '{"tasks": [{"description": "run", "priority": 1e999}]}',
        '{"tasks": [{"description": "run", "estimatedMinutes": NaN}]}',
    ],
)
def test_malformed_plans_raise_parse_error(response: str) -> None:
    with pytest.raises(PlanParseError):
        decompose(FakeLLM(response), GOAL)


def test_completion_failure_raises_request_error() -> None:
    llm = FakeLLM(error=CompletionError("LLM API error: 502"))

    with pytest.raises(PlanRequestError) as excinfo:
        decompose(llm, GOAL)

    assert isinstance(excinfo.value, PlanningError)
    assert "502" in str(excinfo.value)


def test_memory_context_is_injected_when_relevant() -> None:
    memory = MemoryStore()
    memory.store("Publish the release")
    llm = FakeLLM('{"tasks": [{"description": "go"}]}')

    decompose(llm, GOAL, memory=memory)

    messages, _ = llm.calls[0]
    assert messages[0]["role"] == "system"
    assert messages[0]["content"].startswith("Relevant memories:")
    assert "Publish the release" in messages[0]["content"]
    assert len(messages) == 3


def test_mock_provider_produces_a_parseable_plan() -> None:
    goal = Goal(description="write the docs and run the tests, then publish; notify the team")

    plan = decompose(MockProvider(), goal)

    assert [t.description for t in plan.tasks] == [
        "write the docs",
        "run the tests",
        "then publish",
        "notify the team",
    ]
    assert plan.risk_level is RiskLevel.LOW


def test_dependency_graph_ready_and_blocked() -> None:
    a = Task(id="a", description="a")
    b = Task(id="b", description="b", dependencies=["a"])
    c = Task(id="c", description="c", dependencies=["b", "unknown"])
    graph = DependencyGraph.from_tasks([c, a, b])

    assert graph.edges == [("b", "c"), ("a", "b")]
    assert graph.ready(completed=set(), failed=set()) == ["a"]
    assert graph.ready(completed={"a"}, failed=set()) == ["b"]
    assert graph.ready(completed={"a", "b"}, failed=set()) == ["c"]
    assert graph.blocked_by_failure("c", failed={"b"})
    assert not graph.blocked_by_failure("b", failed=set())
