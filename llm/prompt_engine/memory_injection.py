"""Memory injection helper for prompt augmentation."""

from __future__ import annotations

from memory.types import SearchResult


def format_memories(results: list[SearchResult], max_items: int = 5) -> str:
    """Render search hits as bullet lines, best first."""
    lines = []
    for hit in results[:max_items]:
        entry = hit.entry
        lines.append(f"- [{entry.kind.value}] {entry.content} (relevance={hit.relevance:.2f})")
    return "\n".join(lines)


def inject_memory(
    messages: list[dict[str, str]],
    retrieved_memories: list[SearchResult],
    max_items: int = 5,
) -> list[dict[str, str]]:
    """Inject condensed memory context as a leading system message."""
    if not retrieved_memories:
        return messages
    memory_block = "Relevant memories:\n" + format_memories(retrieved_memories, max_items)
    return [{"role": "system", "content": memory_block}, *messages]
