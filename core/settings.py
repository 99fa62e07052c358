"""Typed runtime settings built from merged YAML configuration."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class AgentConfig(BaseModel):
    """Knobs for one agent pursuit."""

    max_iterations: int = Field(default=50, ge=1)
    max_retries: int = Field(default=3, ge=0)
    confidence_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    timeout_seconds: float | None = Field(default=300.0, gt=0)
    enable_reflection: bool = True
    enable_self_correction: bool = True
    respect_dependencies: bool = False
    iteration_pause_seconds: float = Field(default=0.1, ge=0.0)
    retry_backoff_scale: float = Field(default=1.0, ge=0.0)
    remember_outcomes: bool = True
    reasoner: Literal["placeholder", "llm"] = "placeholder"
    llm_model: str = "anthropic/claude-3.5-sonnet"
    planning_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    planning_max_tokens: int = Field(default=4000, ge=1)


class MemoryConfig(BaseModel):
    """Sizes, thresholds and rates of the tiered memory store."""

    max_short_term_size: int = Field(default=100, ge=1)
    max_long_term_size: int = Field(default=10000, ge=1)
    consolidation_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    decay_rate: float = Field(default=0.01, ge=0.0)
    embedding_dimension: int = Field(default=384, ge=1)
    similarity_threshold: float = Field(default=0.75, ge=-1.0, le=1.0)
    association_limit: int = Field(default=3, ge=0)
    working_memory_size: int = Field(default=10, ge=1)
    prune_importance: float = Field(default=0.1, ge=0.0, le=1.0)
    prune_access_count: int = Field(default=2, ge=0)
    access_importance_boost: float = Field(default=0.05, ge=0.0, le=1.0)
    compression_trigger_ratio: float = Field(default=0.9, gt=0.0)
    compression_fraction: float = Field(default=0.1, gt=0.0, le=1.0)
    merge_similarity: float = Field(default=0.9, ge=-1.0, le=1.0)
    merged_content_limit: int = Field(default=500, ge=1)
    consolidation_interval_seconds: float = Field(default=300.0, gt=0)


class CorrectionConfig(BaseModel):
    """Self-correction limits and circuit breaker tuning."""

    max_attempts_per_task: int = Field(default=5, ge=1)
    circuit_breaker_threshold: int = Field(default=5, ge=1)
    circuit_breaker_cooldown_seconds: float = Field(default=60.0, ge=0.0)
    half_open_success_threshold: int = Field(default=3, ge=1)


class PathsConfig(BaseModel):
    """Filesystem locations relative to the runtime root."""

    db_path: str | None = "workspace/memory.db"


class Settings(BaseModel):
    """Complete effective configuration."""

    agent: AgentConfig = Field(default_factory=AgentConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    correction: CorrectionConfig = Field(default_factory=CorrectionConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    models: dict[str, Any] = Field(default_factory=dict)
    tools: dict[str, Any] = Field(default_factory=dict)
    start_consolidation: bool = False
