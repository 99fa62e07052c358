"""Typer command handlers."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer

from core.orchestrator import Orchestrator, RuntimeBundle
from core.state import AgentState
from memory.types import MemoryKind
from planner.execution_plan import Goal, GoalPriority
from planner.task_planner import PlanningError, PlanRequestError
from recovery.retry import with_retry

logger = logging.getLogger("ate.cli")


def _runtime(root: Path | None = None) -> RuntimeBundle:
    bundle = Orchestrator(root=root).build()
    return bundle


def run_goal(
    goal: str,
    priority: str = "medium",
    constraints: list[str] | None = None,
    planning_retries: int = 2,
) -> None:
    """Plan and pursue one goal, retrying transient planning request failures."""
    bundle = _runtime()
    try:
        agent = bundle.new_agent()
        target = Goal(description=goal, constraints=constraints or [], priority=GoalPriority(priority))

        def _on_retry(attempt: int, error: BaseException, delay: float) -> None:
            typer.echo(f"Planning failed ({error}); retry {attempt} in {delay:.1f}s", err=True)

        try:
            state: AgentState = asyncio.run(
                with_retry(
                    lambda: agent.pursue(target),
                    max_retries=planning_retries,
                    on_retry=_on_retry,
                    retry_on=(PlanRequestError,),
                )
            )
        except PlanningError as exc:
            typer.echo(f"Planning failed: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    finally:
        bundle.close()

    typer.echo(f"Goal: {goal}")
    typer.echo(f"Status: {state.status.value}")
    for task in state.completed_tasks:
        typer.echo(f"  [done]   {task.description}")
    for task in state.failed_tasks:
        typer.echo(f"  [failed] {task.description} ({task.metadata.get('error', '')})")
    typer.echo(f"Iterations: {state.iterations}")
    if state.reflection is not None:
        typer.echo(f"Reflection: {state.reflection.summary()}")
    if state.error:
        typer.echo(f"Error: {state.error}")


def memory_add(text: str, kind: str = "episodic") -> None:
    """Store a memory entry."""
    bundle = _runtime()
    try:
        entry = bundle.memory.store(text, kind=MemoryKind(kind), metadata={"source": "cli"})
    finally:
        bundle.close()
    typer.echo(f"Stored {entry.kind.value} memory {entry.id} (importance={entry.importance:.2f})")


def memory_search(query: str, limit: int = 5) -> None:
    """Search memory and print ranked hits."""
    bundle = _runtime()
    try:
        hits = bundle.memory.search(query, limit=limit)
    finally:
        bundle.close()
    if not hits:
        typer.echo("No matching memories.")
        return
    for hit in hits:
        typer.echo(
            f"{hit.relevance:.3f} (sim={hit.similarity:.3f}) [{hit.entry.kind.value}] {hit.entry.content}"
        )


def memory_consolidate() -> None:
    """Run one consolidation pass."""
    bundle = _runtime()
    try:
        result = bundle.memory.consolidate()
    finally:
        bundle.close()
    typer.echo(json.dumps(result.model_dump(), indent=2))


def memory_stats() -> None:
    """Show memory tier counts."""
    bundle = _runtime()
    try:
        stats = bundle.memory.get_stats()
    finally:
        bundle.close()
    typer.echo(json.dumps(stats, indent=2))


def config_show() -> None:
    """Show effective runtime config."""
    bundle = _runtime()
    try:
        typer.echo(json.dumps(_json_safe(bundle.config), indent=2))
    finally:
        bundle.close()


def tools_list() -> None:
    """List tools and enabled flags."""
    bundle = _runtime()
    try:
        for tool in bundle.tool_registry.list_tools():
            typer.echo(f"{tool.name}: {'enabled' if tool.enabled else 'disabled'} - {tool.description}")
    finally:
        bundle.close()


def _json_safe(payload: object) -> object:
    """Convert datetimes to strings for JSON output."""
    if isinstance(payload, dict):
        return {k: _json_safe(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return [_json_safe(v) for v in payload]
    if hasattr(payload, "isoformat"):
        return payload.isoformat()
    return payload
