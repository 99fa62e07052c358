"""Autonomous agent: plan a goal, execute its tasks, recover from failures."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from cognition.reasoner import BaseReasoner, LLMReasoner, PlaceholderReasoner, Thought
from cognition.reflection import reflect
from core.event_bus import EventBus
from core.settings import AgentConfig
from core.state import AgentState, AgentStatus
from core.telemetry import GuardedMetrics, MetricsSink, NullMetrics
from executor.tool_runner import ToolRunner
from memory.memory_store import MemoryStore
from memory.types import MemoryKind, utc_now
from planner.dependency_graph import DependencyGraph
from planner.execution_plan import Goal, Task, TaskStatus
from planner.task_planner import PlanningError, TaskPlanner
from recovery.correction_engine import CircuitOpenError, CorrectionEngine
from recovery.error_patterns import CorrectionStrategy, StrategyType
from tools.base_tool import BaseTool, ToolContext, ToolResult
from tools.tool_registry import ToolRegistry

logger = logging.getLogger("ate.agent")


class PursuitCancelled(Exception):
    """The caller's cancel event was set while a pursuit was running."""


class Agent:
    """Runs one goal at a time through planning, execution and reflection.

    The state machine is ``idle → planning → executing → (reflecting) →
    completed | failed``. Each ``pursue`` call owns a fresh ``AgentState``;
    the memory store and correction engine may be shared with other agents.

    Args:
        planner: Produces the execution plan for a goal.
        config: Loop limits, pacing and feature switches.
        correction: Consulted whenever a task fails. Without one, a failed
            task is final.
        memory: Optional store for task outcomes and reflections.
        tools: Registry looked up by the action each thought names.
        reasoner: Produces one thought per task attempt.
        event_bus: Receives lifecycle events.
        metrics: Fire-and-forget metrics sink.
    """

    def __init__(
        self,
        planner: TaskPlanner,
        config: AgentConfig | None = None,
        correction: CorrectionEngine | None = None,
        memory: MemoryStore | None = None,
        tools: ToolRegistry | None = None,
        reasoner: BaseReasoner | None = None,
        event_bus: EventBus | None = None,
        metrics: MetricsSink | None = None,
        tool_timeout_seconds: float | None = None,
    ) -> None:
        self.config = config or AgentConfig()
        self.planner = planner
        self.correction = correction
        self.memory = memory
        self.tools = tools or ToolRegistry()
        self.reasoner = reasoner or self._default_reasoner()
        self.event_bus = event_bus or EventBus()
        self.metrics: MetricsSink = GuardedMetrics(metrics) if metrics is not None else NullMetrics()
        self.tool_runner = ToolRunner(metrics=self.metrics, timeout_seconds=tool_timeout_seconds)
        self._state = AgentState()

    def _default_reasoner(self) -> BaseReasoner:
        if self.config.reasoner == "llm":
            return LLMReasoner(
                self.planner.llm,
                model=self.config.llm_model,
                confidence_threshold=self.config.confidence_threshold,
            )
        return PlaceholderReasoner()

    def register_tool(self, tool: BaseTool) -> None:
        self.tools.register(tool)

    # ── Main entry point ─────────────────────────────────────────────

    async def pursue(self, goal: Goal, cancel_event: asyncio.Event | None = None) -> AgentState:
        """Pursue ``goal`` to a terminal state.

        Planning errors mark the state failed and propagate. Timeouts,
        cancel events and unexpected errors are returned as a failed state
        with ``error`` set. Task cancellation marks the state failed and
        propagates.
        """
        state = AgentState(status=AgentStatus.PLANNING, goal=goal, start_time=utc_now())
        self._state = state
        span_id = self.metrics.start_span("agent.pursue")
        span_status = "ok"
        logger.info("Pursuing goal: %s", goal.description)

        try:
            if self.config.timeout_seconds is not None:
                await asyncio.wait_for(self._run(state, goal, cancel_event), timeout=self.config.timeout_seconds)
            else:
                await self._run(state, goal, cancel_event)
        except PlanningError as exc:
            span_status = "error"
            state.status = AgentStatus.FAILED
            state.error = str(exc)
            logger.error("Planning failed for goal %s: %s", goal.id, exc)
            raise
        except asyncio.TimeoutError:
            span_status = "error"
            state.status = AgentStatus.FAILED
            state.error = f"Pursuit timed out after {self.config.timeout_seconds}s"
            logger.error(state.error)
        except PursuitCancelled:
            span_status = "error"
            state.status = AgentStatus.FAILED
            state.error = "Pursuit cancelled"
            logger.warning("Pursuit of goal %s cancelled", goal.id)
        except asyncio.CancelledError:
            span_status = "error"
            state.status = AgentStatus.FAILED
            state.error = "Pursuit cancelled"
            raise
        except Exception as exc:
            span_status = "error"
            state.status = AgentStatus.FAILED
            state.error = str(exc) or exc.__class__.__name__
            logger.exception("Agent error while pursuing goal %s", goal.id)
        finally:
            state.current_task = None
            state.end_time = utc_now()
            self.metrics.end_span(span_id, span_status)
            self.event_bus.emit(
                "pursuit_finished",
                {
                    "goal_id": goal.id,
                    "status": state.status.value,
                    "completed": len(state.completed_tasks),
                    "failed": len(state.failed_tasks),
                    "error": state.error,
                },
            )
        return state

    async def _run(self, state: AgentState, goal: Goal, cancel_event: asyncio.Event | None) -> None:
        self.event_bus.emit("plan_started", {"goal_id": goal.id, "goal": goal.description})
        plan = await self.planner.decompose(goal, self.config)
        state.plan = plan
        state.status = AgentStatus.EXECUTING
        logger.info("Created plan with %d tasks", len(plan.tasks))
        self.event_bus.emit(
            "plan_completed",
            {"goal_id": goal.id, "tasks": [t.description for t in plan.tasks], "complexity": plan.complexity.value},
        )

        graph = DependencyGraph.from_tasks(plan.tasks) if self.config.respect_dependencies else None
        retries: dict[str, int] = {}
        strategies: dict[str, CorrectionStrategy] = {}

        while state.iterations < self.config.max_iterations:
            self._check_cancel(cancel_event)
            task = self._next_task(state, graph)
            if task is None:
                logger.info("All tasks finished")
                break
            state.iterations += 1
            state.current_task = task
            await self._run_task(state, task, retries, strategies, cancel_event)
            await self._pause(self.config.iteration_pause_seconds, cancel_event)

        state.current_task = None
        leftover = state.pending_tasks()
        if leftover:
            logger.warning(
                "Iteration limit (%d) reached with %d tasks unfinished",
                self.config.max_iterations,
                len(leftover),
            )

        if self.config.enable_reflection:
            state.status = AgentStatus.REFLECTING
            self._reflect(state)

        state.status = AgentStatus.COMPLETED if not state.failed_tasks else AgentStatus.FAILED
        logger.info(
            "Goal %s finished %s (%d completed, %d failed)",
            goal.id,
            state.status.value,
            len(state.completed_tasks),
            len(state.failed_tasks),
        )

    # ── Task selection ───────────────────────────────────────────────

    def _next_task(self, state: AgentState, graph: DependencyGraph | None) -> Task | None:
        if graph is None:
            pending = state.pending_tasks()
            return pending[0] if pending else None

        failed = {t.id for t in state.failed_tasks}
        for task in state.pending_tasks():
            if graph.blocked_by_failure(task.id, failed):
                self._fail(state, task, "Dependency failed")
                failed.add(task.id)

        completed = {t.id for t in state.completed_tasks}
        ready = graph.ready(completed, failed)
        if ready:
            return state.plan.task(ready[0]) if state.plan else None

        for task in state.pending_tasks():
            self._fail(state, task, "Unresolvable dependencies")
        return None

    # ── One task attempt ─────────────────────────────────────────────

    async def _run_task(
        self,
        state: AgentState,
        task: Task,
        retries: dict[str, int],
        strategies: dict[str, CorrectionStrategy],
        cancel_event: asyncio.Event | None,
    ) -> None:
        task.status = TaskStatus.IN_PROGRESS
        attempt = retries.get(task.id, 0) + 1
        self.event_bus.emit("task_started", {"task_id": task.id, "description": task.description, "attempt": attempt})

        if self.correction is not None:
            try:
                self.correction.guard(task.id)
            except CircuitOpenError as exc:
                self._fail(state, task, str(exc))
                return

        thought = await self.reasoner.reason(task, self._reasoning_context())
        state.thoughts.append(thought)
        result = await self._act(state, task, thought, attempt, strategies.get(task.id))

        if result.success:
            if task.id in retries and self.correction is not None:
                self.correction.record_success(task.id)
            task.status = TaskStatus.COMPLETED
            state.completed_tasks.append(task)
            self.metrics.increment("agent.tasks.completed")
            logger.info("Task completed: %s", task.description)
            self.event_bus.emit("task_completed", {"task_id": task.id, "attempt": attempt, "data": result.data})
            self._remember(state, task, "completed")
            return

        error = result.error or "Unknown error"
        if self.correction is not None and self.config.enable_self_correction:
            decision = self.correction.correct(
                task.id,
                error,
                {"goal_id": state.goal.id if state.goal else None, "attempt": attempt, "action": thought.action},
            )
            strategy = decision.strategy
            self.event_bus.emit(
                "correction_applied",
                {
                    "task_id": task.id,
                    "error": error,
                    "strategy": strategy.name,
                    "type": strategy.type.value,
                    "should_retry": decision.should_retry,
                },
            )
            used = retries.get(task.id, 0)
            if decision.should_retry and used < self.config.max_retries:
                retries[task.id] = used + 1
                strategies[task.id] = strategy
                task.status = TaskStatus.PENDING
                delay = self._backoff_seconds(strategy, used)
                logger.info(
                    "Retrying task %s (%d/%d) via %s in %.2fs: %s",
                    task.id,
                    used + 1,
                    self.config.max_retries,
                    strategy.name,
                    delay,
                    error,
                )
                await self._pause(delay, cancel_event)
                return
            if strategy.type is not StrategyType.SKIP:
                self.correction.record_failure(task.id)

        self._fail(state, task, error)

    async def _act(
        self,
        state: AgentState,
        task: Task,
        thought: Thought,
        attempt: int,
        strategy: CorrectionStrategy | None,
    ) -> ToolResult:
        tool = self.tools.get(thought.action)
        if tool is None:
            return ToolResult(success=True, data={"message": "Task executed via default handler"})
        context = ToolContext(
            task=task.model_copy(deep=True),
            goal=state.goal,
            attempt=attempt,
            strategy=strategy,
            working_memory=self.memory.get_working_context() if self.memory is not None else "",
            params=dict(task.metadata.get("params", {})),
        )
        return await self.tool_runner.run(tool, context)

    def _fail(self, state: AgentState, task: Task, error: str) -> None:
        task.status = TaskStatus.FAILED
        task.metadata["error"] = error
        state.failed_tasks.append(task)
        self.metrics.increment("agent.tasks.failed")
        logger.error("Task failed: %s (%s)", task.description, error)
        self.event_bus.emit("task_failed", {"task_id": task.id, "error": error})
        self._remember(state, task, "failed", error)

    def _backoff_seconds(self, strategy: CorrectionStrategy, retries_used: int) -> float:
        delay = strategy.backoff_ms / 1000.0 * self.config.retry_backoff_scale
        if strategy.exponential:
            delay *= 2**retries_used
        return delay

    # ── Memory and reflection ────────────────────────────────────────

    def _reasoning_context(self) -> dict[str, Any]:
        return {
            "tools": self.tools.names(),
            "working_memory": self.memory.get_working_context() if self.memory is not None else "",
        }

    def _remember(self, state: AgentState, task: Task, outcome: str, error: str | None = None) -> None:
        if self.memory is None or not self.config.remember_outcomes:
            return
        content = f"Task {outcome}: {task.description}"
        if error:
            content += f" (error: {error})"
        entry = self.memory.store(
            content,
            kind=MemoryKind.EPISODIC,
            metadata={
                "task_id": task.id,
                "goal_id": state.goal.id if state.goal else None,
                "outcome": outcome,
            },
        )
        self.memory.add_to_working_memory(entry)

    def _reflect(self, state: AgentState) -> None:
        total = len(state.plan.tasks) if state.plan else 0
        report = reflect(total, state.completed_tasks, state.failed_tasks, state.thoughts)
        state.reflection = report
        self.event_bus.emit(
            "reflection_completed",
            {"success_rate": report.success_rate, "average_confidence": report.average_confidence},
        )
        if self.memory is not None and self.config.remember_outcomes and state.goal is not None:
            self.memory.store(
                f"Reflection on goal '{state.goal.description}': {report.summary()}",
                kind=MemoryKind.SEMANTIC,
                metadata={"goal_id": state.goal.id, "reflection": True},
            )

    # ── Pacing and cancellation ──────────────────────────────────────

    @staticmethod
    def _check_cancel(cancel_event: asyncio.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise PursuitCancelled()

    async def _pause(self, seconds: float, cancel_event: asyncio.Event | None) -> None:
        """Sleep for ``seconds``, waking early if the cancel event is set."""
        self._check_cancel(cancel_event)
        if seconds <= 0:
            return
        if cancel_event is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise PursuitCancelled()

    # ── Introspection ────────────────────────────────────────────────

    def get_state(self) -> AgentState:
        """Copy of the most recent pursuit's state."""
        return self._state.copy()

    def get_metrics(self) -> dict[str, float]:
        state = self._state
        total = len(state.plan.tasks) if state.plan else 0
        return {
            "total_tasks": total,
            "completed_tasks": len(state.completed_tasks),
            "failed_tasks": len(state.failed_tasks),
            "success_rate": len(state.completed_tasks) / (total or 1),
            "total_thoughts": len(state.thoughts),
            "iterations": state.iterations,
        }
