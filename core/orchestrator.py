"""Top-level application orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.agent import Agent
from core.event_bus import EventBus
from core.policy_runtime import load_effective_config, resolve_db_path
from core.settings import Settings
from core.telemetry import InMemoryMetrics
from llm.base_llm import BaseLLM
from llm.llm_factory import build_llm
from memory.memory_store import MemoryStore
from memory.stores.sql_store import SQLStore
from planner.task_planner import TaskPlanner
from recovery.correction_engine import CorrectionEngine
from tools.tool_registry import ToolRegistry, build_default_registry

logger = logging.getLogger("ate.orchestrator")


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    settings: Settings
    memory: MemoryStore
    llm: BaseLLM
    planner: TaskPlanner
    correction: CorrectionEngine
    tool_registry: ToolRegistry
    event_bus: EventBus
    metrics: InMemoryMetrics
    sql_store: SQLStore | None = None

    def new_agent(self) -> Agent:
        """Agent sharing this bundle's memory, correction engine and tools."""
        return Agent(
            planner=self.planner,
            config=self.settings.agent,
            correction=self.correction,
            memory=self.memory,
            tools=self.tool_registry,
            event_bus=self.event_bus,
            metrics=self.metrics,
        )

    def close(self) -> None:
        """Persist memory and stop background consolidation."""
        self.memory.stop_consolidation()
        if self.sql_store is not None:
            self.sql_store.save_snapshot(self.memory.export_snapshot())
        self.memory.close()


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None, overrides: dict[str, Any] | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()
        self.overrides = overrides

    def build(self, llm: BaseLLM | None = None) -> RuntimeBundle:
        config = load_effective_config(self.root, self.overrides)
        settings = Settings.model_validate(config)

        memory = MemoryStore(config=settings.memory)
        sql_store: SQLStore | None = None
        db_path = resolve_db_path(self.root, settings)
        if db_path is not None:
            sql_store = SQLStore(db_path)
            sql_store.create_all()
            memory.import_snapshot(sql_store.load_snapshot())
            logger.info("Loaded memory snapshot from %s", db_path)
        if settings.start_consolidation:
            memory.start_consolidation()

        llm = llm or build_llm(config=config)
        tool_registry = build_default_registry(config=config, memory=memory)

        return RuntimeBundle(
            config=config,
            settings=settings,
            memory=memory,
            llm=llm,
            planner=TaskPlanner(llm=llm, memory=memory),
            correction=CorrectionEngine(config=settings.correction),
            tool_registry=tool_registry,
            event_bus=EventBus(),
            metrics=InMemoryMetrics(),
            sql_store=sql_store,
        )
