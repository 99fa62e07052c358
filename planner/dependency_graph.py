"""Task dependency graph used when the agent enforces dependency ordering."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from planner.execution_plan import Task


@dataclass
class DependencyGraph:
    """Represents dependencies among tasks, preserving plan order."""

    nodes: list[str] = field(default_factory=list)
    edges: list[tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task]) -> DependencyGraph:
        """Edges run dependency → dependent; references to unknown tasks are ignored."""
        tasks = list(tasks)
        known = {task.id for task in tasks}
        graph = cls(nodes=[task.id for task in tasks])
        for task in tasks:
            for dep in task.dependencies:
                if dep in known and dep != task.id:
                    graph.edges.append((dep, task.id))
        return graph

    def dependencies_of(self, task_id: str) -> list[str]:
        return [src for src, dst in self.edges if dst == task_id]

    def ready(self, completed: set[str], failed: set[str]) -> list[str]:
        """Unfinished tasks whose dependencies have all completed, in plan order."""
        return [
            node
            for node in self.nodes
            if node not in completed
            and node not in failed
            and all(dep in completed for dep in self.dependencies_of(node))
        ]

    def blocked_by_failure(self, task_id: str, failed: set[str]) -> bool:
        return any(dep in failed for dep in self.dependencies_of(task_id))
