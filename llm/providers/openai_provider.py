"""OpenAI-compatible chat provider (OpenAI itself or OpenRouter)."""

from __future__ import annotations

import logging
import os
from typing import Any

import openai
from openai import OpenAI

from llm.base_llm import BaseLLM, CompletionError
from recovery.retry import retry_call

logger = logging.getLogger("ate.llm.openai")

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

_TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAIProvider(BaseLLM):
    """Chat completions through the openai SDK.

    ``base_url`` points the client at any OpenAI-compatible endpoint, which is
    how the OpenRouter provider is served. Transient transport errors are
    retried with exponential backoff; everything else becomes
    ``CompletionError``.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key_env: str = "OPENAI_API_KEY",
        base_url: str | None = None,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        client: Any | None = None,
    ) -> None:
        self.model = model
        self.api_key_env = api_key_env
        self.base_url = base_url
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = os.getenv(self.api_key_env)
            if not api_key:
                raise CompletionError(
                    f"{self.api_key_env} not set. Use the mock provider or configure credentials."
                )
            # The SDK retries on its own by default; retries are handled here instead.
            self._client = OpenAI(api_key=api_key, base_url=self.base_url, max_retries=0)
        return self._client

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        client = self._get_client()
        params: dict[str, Any] = {"model": kwargs.pop("model", None) or self.model, "messages": messages}
        for key in ("temperature", "max_tokens"):
            if kwargs.get(key) is not None:
                params[key] = kwargs.pop(key)
        params.update(kwargs)

        try:
            response = retry_call(
                lambda: client.chat.completions.create(**params),
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                retry_on=_TRANSIENT_ERRORS,
            )
        except openai.APIStatusError as exc:
            raise CompletionError(f"LLM API error: {exc.status_code}") from exc
        except openai.OpenAIError as exc:
            raise CompletionError(f"LLM request failed: {exc}") from exc

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
