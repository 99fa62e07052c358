"""Base tool interface and execution context."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from planner.execution_plan import Goal, Task
from recovery.error_patterns import CorrectionStrategy


class ToolExecutionError(RuntimeError):
    """A tool could not complete its work."""


@dataclass
class ToolParameter:
    """One entry of a tool's declared parameter schema."""

    type: str
    description: str
    required: bool = False


@dataclass
class ToolContext:
    """What a tool receives when it runs on behalf of a task."""

    task: Task
    goal: Goal | None = None
    attempt: int = 1
    strategy: CorrectionStrategy | None = None
    working_memory: str = ""
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    success: bool
    data: Any = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class BaseTool(ABC):
    """Named async capability with a declared parameter schema."""

    def __init__(
        self,
        name: str,
        description: str = "",
        parameters: dict[str, ToolParameter] | None = None,
        enabled: bool = True,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self.name = name
        self.description = description
        self.parameters = parameters or {}
        self.enabled = enabled
        self.settings = settings or {}

    @abstractmethod
    async def execute(self, context: ToolContext) -> Any:
        """Do the work; raise on failure. The return value becomes ``ToolResult.data``."""

    def schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                key: {"type": p.type, "description": p.description, "required": p.required}
                for key, p in self.parameters.items()
            },
        }


class FunctionTool(BaseTool):
    """Adapts a plain sync or async callable taking a ``ToolContext``."""

    def __init__(
        self,
        name: str,
        func: Callable[[ToolContext], Any],
        description: str = "",
        parameters: dict[str, ToolParameter] | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(name, description or (func.__doc__ or "").strip(), parameters, enabled)
        self.func = func

    async def execute(self, context: ToolContext) -> Any:
        result = self.func(context)
        if inspect.isawaitable(result):
            result = await result
        return result
