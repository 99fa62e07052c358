"""Reasoning step: pick the next action for a task."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from llm.base_llm import BaseLLM, CompletionRequest
from memory.types import utc_now
from planner.execution_plan import Task

logger = logging.getLogger("ate.cognition")

DEFAULT_ACTION = "execute"


class Thought(BaseModel):
    """One reasoning/action record. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"thought_{uuid.uuid4().hex[:12]}")
    timestamp: datetime = Field(default_factory=utc_now)
    task_id: str
    reasoning: str
    action: str
    expected_outcome: str = "Task completion"
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class BaseReasoner(ABC):
    """Produces a Thought for the task about to run."""

    @abstractmethod
    async def reason(self, task: Task, context: dict[str, Any] | None = None) -> Thought:
        """Return the thought for ``task``."""


class PlaceholderReasoner(BaseReasoner):
    """Fixed-confidence reasoning: the task's tool hint, else the default action."""

    def __init__(self, confidence: float = 0.8, default_action: str = DEFAULT_ACTION) -> None:
        self.confidence = confidence
        self.default_action = default_action

    async def reason(self, task: Task, context: dict[str, Any] | None = None) -> Thought:
        _ = context
        return Thought(
            task_id=task.id,
            reasoning=f"Analyzing task: {task.description}",
            action=task.tool or self.default_action,
            expected_outcome="Task completion",
            confidence=self.confidence,
        )


_THOUGHT_PROMPT = """\
Task: {description}
Available tools: {tools}
Working memory:
{working}

Choose the next action for this task.
Respond with JSON: {{"reasoning": "...", "action": "<tool name or execute>", "expectedOutcome": "...", "confidence": 0-1}}"""

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


class LLMReasoner(BaseReasoner):
    """Asks the LLM for the next action, falling back to the placeholder on any failure.

    A parsed thought whose confidence is below ``confidence_threshold`` is
    discarded in favour of the fallback.
    """

    def __init__(
        self,
        llm: BaseLLM,
        model: str | None = None,
        fallback: BaseReasoner | None = None,
        temperature: float = 0.2,
        max_tokens: int = 500,
        confidence_threshold: float = 0.0,
    ) -> None:
        self.llm = llm
        self.model = model
        self.fallback = fallback or PlaceholderReasoner()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.confidence_threshold = confidence_threshold

    async def reason(self, task: Task, context: dict[str, Any] | None = None) -> Thought:
        context = context or {}
        prompt = _THOUGHT_PROMPT.format(
            description=task.description,
            tools=", ".join(context.get("tools", [])) or "none",
            working=context.get("working_memory") or "(empty)",
        )
        request = CompletionRequest(
            messages=[
                {"role": "system", "content": "You are a careful task executor. Always respond with valid JSON."},
                {"role": "user", "content": prompt},
            ],
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        try:
            text = await asyncio.to_thread(self.llm.complete, request)
            thought = self._parse(text, task)
        except Exception as exc:
            logger.warning("LLM reasoning failed for task %s (%s); using placeholder", task.id, exc)
            return await self.fallback.reason(task, context)
        if thought.confidence < self.confidence_threshold:
            logger.info(
                "LLM confidence %.2f below %.2f for task %s; using placeholder",
                thought.confidence,
                self.confidence_threshold,
                task.id,
            )
            return await self.fallback.reason(task, context)
        return thought

    @staticmethod
    def _parse(text: str, task: Task) -> Thought:
        match = _JSON_OBJECT_RE.search(text or "")
        if match is None:
            raise ValueError("no JSON object in reasoning response")
        payload = json.loads(match.group(0))
        try:
            return Thought(
                task_id=task.id,
                reasoning=str(payload.get("reasoning") or f"Analyzing task: {task.description}"),
                action=str(payload.get("action") or task.tool or DEFAULT_ACTION),
                expected_outcome=str(payload.get("expectedOutcome") or payload.get("expected_outcome") or "Task completion"),
                confidence=float(payload.get("confidence", 0.5)),
            )
        except ValidationError as exc:
            raise ValueError(f"invalid thought: {exc}") from exc
