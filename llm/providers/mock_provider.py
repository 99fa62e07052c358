"""Deterministic local fallback LLM provider for offline usage."""

from __future__ import annotations

import json
import re
from collections import Counter
from typing import Any

from llm.base_llm import BaseLLM

_GOAL_LINE = re.compile(r"^Goal:\s*(.+)$", re.MULTILINE)
_TASK_LINE = re.compile(r"^Task:\s*(.+)$", re.MULTILINE)


class MockProvider(BaseLLM):
    """Rule-based local responder when external LLM backends are unavailable."""

    max_tasks = 5

    @staticmethod
    def _tokenize(text: str) -> list[str]:
        return [token for token in re.split(r"[^a-zA-Z0-9]+", text.lower()) if token]

    @staticmethod
    def _summarize_tokens(tokens: list[str], max_items: int = 8) -> str:
        if not tokens:
            return "no salient terms detected"
        top = Counter(tokens).most_common(max_items)
        return ", ".join(term for term, _ in top)

    def _decompose(self, prompt: str) -> str:
        match = _GOAL_LINE.search(prompt)
        goal = (match.group(1) if match else prompt).strip()
        parts = [p.strip() for p in re.split(r"\band\b|,|;", goal, flags=re.IGNORECASE) if p.strip()]
        if not parts:
            parts = [goal or "Clarify the goal"]
        parts = parts[: self.max_tasks]
        tasks: list[dict[str, Any]] = [
            {
                "id": str(idx),
                "description": part,
                "priority": idx,
                "estimatedMinutes": 5,
                "dependencies": [],
            }
            for idx, part in enumerate(parts, start=1)
        ]
        complexity = "simple" if len(tasks) <= 2 else "moderate"
        return json.dumps({"tasks": tasks, "complexity": complexity, "riskLevel": "low"})

    def _think(self, prompt: str) -> str:
        match = _TASK_LINE.search(prompt)
        task = (match.group(1) if match else prompt).strip()
        return json.dumps(
            {
                "reasoning": f"Analyzing task: {task}",
                "action": "execute",
                "expectedOutcome": "Task completion",
                "confidence": 0.8,
            }
        )

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        """Generate deterministic text from conversational messages."""
        _ = kwargs
        if not messages:
            return "No input received."
        user_messages = [m["content"] for m in messages if m.get("role") == "user"]
        prompt = user_messages[-1] if user_messages else messages[-1]["content"]

        lowered = prompt.lower()
        if "decompose" in lowered:
            return self._decompose(prompt)
        if "choose the next action" in lowered:
            return self._think(prompt)

        salient = self._summarize_tokens(self._tokenize(prompt))
        return f"Local fallback response. Salient terms: {salient}."
