"""Tools that let tasks write to and read from the shared memory store."""

from __future__ import annotations

from typing import Any

from memory.memory_store import MemoryStore
from memory.types import MemoryKind
from tools.base_tool import BaseTool, ToolContext, ToolExecutionError, ToolParameter


class RememberTool(BaseTool):
    """Stores the task description (or a ``content`` param) as a semantic memory."""

    def __init__(self, memory: MemoryStore, name: str = "remember", **kwargs: Any) -> None:
        super().__init__(
            name,
            description="Store a fact in long-lived memory.",
            parameters={
                "content": ToolParameter("string", "Text to remember; defaults to the task description."),
                "kind": ToolParameter("string", "episodic, semantic or procedural."),
            },
            **kwargs,
        )
        self.memory = memory

    async def execute(self, context: ToolContext) -> Any:
        content = str(context.params.get("content") or context.task.description).strip()
        if not content:
            raise ToolExecutionError("Nothing to remember")
        kind = context.params.get("kind", self.settings.get("kind", MemoryKind.SEMANTIC.value))
        entry = self.memory.store(content, kind=kind, metadata={"task_id": context.task.id, "source": "tool"})
        return {"memory_id": entry.id, "importance": entry.importance}


class RecallTool(BaseTool):
    """Searches memory for the task description (or a ``query`` param)."""

    def __init__(self, memory: MemoryStore, name: str = "recall", **kwargs: Any) -> None:
        super().__init__(
            name,
            description="Search memory for relevant entries.",
            parameters={
                "query": ToolParameter("string", "Search text; defaults to the task description."),
                "limit": ToolParameter("integer", "Maximum hits."),
            },
            **kwargs,
        )
        self.memory = memory

    async def execute(self, context: ToolContext) -> Any:
        query = str(context.params.get("query") or context.task.description)
        limit = int(context.params.get("limit", self.settings.get("limit", 5)))
        hits = self.memory.search(query, limit=limit)
        if not hits and self.settings.get("fail_on_empty", False):
            raise ToolExecutionError(f"No memories found for {query!r}")
        return [
            {"id": hit.entry.id, "content": hit.entry.content, "relevance": round(hit.relevance, 4)}
            for hit in hits
        ]
