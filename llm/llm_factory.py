"""LLM provider factory."""

from __future__ import annotations

import logging
from typing import Any

from llm.base_llm import BaseLLM
from llm.providers.mock_provider import MockProvider
from llm.providers.openai_provider import OPENROUTER_BASE_URL, OpenAIProvider

logger = logging.getLogger("ate.llm")


def build_llm(config: dict[str, Any]) -> BaseLLM:
    """Build an LLM provider from configuration, defaulting safely to mock."""
    models_cfg = config.get("models", {}).get("llm", {})
    active = models_cfg.get("active_provider", "mock")
    providers = models_cfg.get("providers", {})
    active_cfg = providers.get(active, {})
    provider_type = active_cfg.get("type", active)

    if provider_type == "openai":
        return OpenAIProvider(
            model=active_cfg.get("model", "gpt-4o-mini"),
            api_key_env=active_cfg.get("api_key_env", "OPENAI_API_KEY"),
            base_url=active_cfg.get("base_url"),
            max_retries=int(active_cfg.get("max_retries", 3)),
        )
    if provider_type == "openrouter":
        return OpenAIProvider(
            model=active_cfg.get("model", "anthropic/claude-3.5-sonnet"),
            api_key_env=active_cfg.get("api_key_env", "OPENROUTER_API_KEY"),
            base_url=active_cfg.get("base_url", OPENROUTER_BASE_URL),
            max_retries=int(active_cfg.get("max_retries", 3)),
        )
    if provider_type != "mock":
        logger.warning("Unknown LLM provider %r; using mock provider", provider_type)
    return MockProvider()
