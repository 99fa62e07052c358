"""Base LLM interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class CompletionError(RuntimeError):
    """The provider could not produce a completion."""


@dataclass
class CompletionRequest:
    """Model, ordered role/content messages and sampling limits."""

    messages: list[dict[str, str]]
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)


class BaseLLM(ABC):
    """Abstract LLM provider interface."""

    @abstractmethod
    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        """Return assistant response text for a message list.

        Raises ``CompletionError`` when the backend reports a failure.
        """

    def complete(self, request: CompletionRequest) -> str:
        """Run a structured completion request through ``chat``."""
        kwargs: dict[str, Any] = dict(request.extra)
        if request.model is not None:
            kwargs["model"] = request.model
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            kwargs["max_tokens"] = request.max_tokens
        return self.chat(request.messages, **kwargs)
