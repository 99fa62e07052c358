"""Goal-to-plan decomposition through a single completion call."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from typing import Any

from pydantic import ValidationError

from core.settings import AgentConfig
from llm.base_llm import BaseLLM, CompletionRequest
from llm.prompt_engine.memory_injection import inject_memory
from planner.execution_plan import (
    Complexity,
    ExecutionPlan,
    Goal,
    RiskLevel,
    Task,
    new_task_id,
)

logger = logging.getLogger("ate.planner")

_SYSTEM_PROMPT = "You are an expert AI task planner. Always respond with valid JSON."

_USER_PROMPT = """\
Goal: {description}
Constraints: {constraints}
Priority: {priority}

Decompose this goal into specific, actionable tasks.
Respond with JSON: {{
  "tasks": [{{"id": "1", "description": "...", "priority": 1-10, "estimatedMinutes": N, "dependencies": [], "tool": null}}],
  "complexity": "simple|moderate|complex|extreme",
  "riskLevel": "low|medium|high"
}}
Dependencies refer to other tasks by their "id" or by 1-based position."""

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)

_DEFAULT_ESTIMATE_MINUTES = 5.0


class PlanningError(RuntimeError):
    """No usable plan could be produced for a goal."""


class PlanRequestError(PlanningError):
    """The completion call itself failed."""


class PlanParseError(PlanningError):
    """The completion text is not a plan of the expected shape."""


class TaskPlanner:
    """Decompose goals into execution plans using an LLM.

    Args:
        llm: Completion capability. Called once per ``decompose``; the
            blocking call runs in a worker thread.
        memory: Optional memory store searched for context relevant to the
            goal, which is injected as an extra system message.
        memory_hits: Number of memories to inject.
    """

    def __init__(self, llm: BaseLLM, memory: Any | None = None, memory_hits: int = 3) -> None:
        self.llm = llm
        self.memory = memory
        self.memory_hits = memory_hits

    async def decompose(self, goal: Goal, config: AgentConfig | None = None) -> ExecutionPlan:
        """Build an execution plan for ``goal``. Raises ``PlanningError`` subclasses."""
        config = config or AgentConfig()
        logger.info("Planning: %s", goal.description)
        request = CompletionRequest(
            messages=self._messages(goal),
            model=config.llm_model,
            temperature=config.planning_temperature,
            max_tokens=config.planning_max_tokens,
        )
        try:
            response = await asyncio.to_thread(self.llm.complete, request)
        except Exception as exc:
            logger.error("Planning request failed: %s", exc)
            raise PlanRequestError(f"Failed to request execution plan: {exc}") from exc

        plan = self.parse_plan(response, goal.id)
        logger.info("Created plan with %d tasks (%s, risk %s)", len(plan.tasks), plan.complexity.value, plan.risk_level.value)
        return plan

    def _messages(self, goal: Goal) -> list[dict[str, str]]:
        user = _USER_PROMPT.format(
            description=goal.description,
            constraints=", ".join(goal.constraints) or "none",
            priority=goal.priority.value,
        )
        messages = [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": user},
        ]
        if self.memory is None:
            return messages
        hits = self.memory.search(goal.description, limit=self.memory_hits)
        return inject_memory(messages, hits, max_items=self.memory_hits)

    @staticmethod
    def _extract_json(text: str) -> str:
        match = _FENCE_RE.search(text)
        return (match.group(1) if match else text).strip()

    def parse_plan(self, text: str, goal_id: str) -> ExecutionPlan:
        """Normalize completion text into an ``ExecutionPlan``."""
        try:
            payload = json.loads(self._extract_json(text or ""))
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse plan: %s", exc)
            raise PlanParseError("Failed to generate execution plan: response is not JSON") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("tasks"), list):
            raise PlanParseError("Failed to generate execution plan: missing 'tasks' list")
        raw_tasks: list[Any] = payload["tasks"]
        for index, item in enumerate(raw_tasks, start=1):
            if not isinstance(item, dict):
                raise PlanParseError(f"Task {index} is not an object")
            description = item.get("description")
            if not isinstance(description, str) or not description.strip():
                raise PlanParseError(f"Task {index} has no description")
            tool = item.get("tool")
            if tool is not None and not isinstance(tool, str):
                raise PlanParseError(f"Task {index} has a non-string tool")
            for key in ("priority", "estimatedMinutes", "estimated_minutes"):
                value = item.get(key)
                if isinstance(value, float) and not math.isfinite(value):
                    raise PlanParseError(f"Task {index} has a non-finite {key}")

        ids = [new_task_id() for _ in raw_tasks]
        # Explicit "id" keys win over 1-based positions.
        refs = {str(position): task_id for position, task_id in enumerate(ids, start=1)}
        for index, item in enumerate(raw_tasks):
            if item.get("id") is not None:
                refs[str(item["id"])] = ids[index]

        try:
            tasks = [
                Task(
                    id=ids[index],
                    description=item["description"].strip(),
                    dependencies=self._dependencies(item, refs, ids[index]),
                    priority=self._priority(item.get("priority"), index + 1),
                    estimated_minutes=self._minutes(item),
                    tool=item.get("tool") or None,
                    metadata={"source_ref": item["id"]} if item.get("id") is not None else {},
                )
                for index, item in enumerate(raw_tasks)
            ]

            estimate = payload.get("estimatedMinutes", payload.get("estimated_minutes"))
            if not self._is_number(estimate) or estimate < 0:
                estimate = sum(task.estimated_minutes for task in tasks)

            return ExecutionPlan(
                goal_id=goal_id,
                tasks=tasks,
                estimated_minutes=float(estimate),
                complexity=self._enum(Complexity, payload.get("complexity"), Complexity.MODERATE),
                risk_level=self._enum(RiskLevel, payload.get("riskLevel", payload.get("risk_level")), RiskLevel.MEDIUM),
            )
        except (ValidationError, ValueError, OverflowError) as exc:
            logger.error("Plan failed validation: %s", exc)
            raise PlanParseError(f"Failed to generate execution plan: {exc}") from exc

    @staticmethod
    def _is_number(value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

    @staticmethod
    def _dependencies(item: dict[str, Any], refs: dict[str, str], own_id: str) -> list[str]:
        raw = item.get("dependencies") or []
        if not isinstance(raw, list):
            raw = [raw]
        resolved: list[str] = []
        for ref in raw:
            target = refs.get(str(ref))
            if target is None:
                logger.warning("Dropping unknown dependency reference %r", ref)
                continue
            if target != own_id and target not in resolved:
                resolved.append(target)
        return resolved

    @staticmethod
    def _priority(value: Any, default: int) -> int:
        if not TaskPlanner._is_number(value):
            value = default
        return max(1, min(10, int(value)))

    @staticmethod
    def _minutes(item: dict[str, Any]) -> float:
        value = item.get("estimatedMinutes", item.get("estimated_minutes"))
        if not TaskPlanner._is_number(value) or value <= 0:
            return _DEFAULT_ESTIMATE_MINUTES
        return float(value)

    @staticmethod
    def _enum(enum_cls: Any, value: Any, default: Any) -> Any:
        try:
            return enum_cls(str(value).lower()) if value is not None else default
        except ValueError:
            logger.warning("Unknown %s %r; using %s", enum_cls.__name__, value, default.value)
            return default
