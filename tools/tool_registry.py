"""Tool registry and default tool wiring."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from memory.memory_store import MemoryStore
from tools.base_tool import BaseTool
from tools.memory_tools import RecallTool, RememberTool

logger = logging.getLogger("ate.tools")


@dataclass
class RegisteredTool:
    """Metadata for tool listing output."""

    name: str
    enabled: bool
    description: str = ""


class ToolRegistry:
    """Simple in-memory tool registry keyed by tool name."""

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}
        self._lock = threading.Lock()

    def register(self, tool: BaseTool) -> None:
        with self._lock:
            if tool.name in self._tools:
                logger.warning("Replacing registered tool %s", tool.name)
            self._tools[tool.name] = tool
        logger.info("Registered tool: %s", tool.name)

    def unregister(self, name: str) -> BaseTool | None:
        with self._lock:
            return self._tools.pop(name, None)

    def get(self, name: str) -> BaseTool | None:
        """Enabled tool by name, or None."""
        with self._lock:
            tool = self._tools.get(name)
        if tool and tool.enabled:
            return tool
        return None

    def names(self) -> list[str]:
        with self._lock:
            return sorted(name for name, tool in self._tools.items() if tool.enabled)

    def list_tools(self) -> list[RegisteredTool]:
        with self._lock:
            items = sorted(self._tools.items())
        return [
            RegisteredTool(name=name, enabled=tool.enabled, description=tool.description)
            for name, tool in items
        ]


def _tool_enabled(config: dict[str, Any], tool_name: str, default: bool) -> bool:
    tools_cfg = config.get("tools", {})
    tool_cfg = tools_cfg.get(tool_name, {})
    if not isinstance(tool_cfg, dict):
        return default
    return bool(tool_cfg.get("enabled", default))


def _tool_settings(config: dict[str, Any], tool_name: str) -> dict[str, Any]:
    tools_cfg = config.get("tools", {})
    tool_cfg = tools_cfg.get(tool_name, {})
    if not isinstance(tool_cfg, dict):
        return {}
    return dict(tool_cfg)


def build_default_registry(*, config: dict[str, Any], memory: MemoryStore | None = None) -> ToolRegistry:
    """Build the default tool registry from the ``tools.yaml`` mapping."""
    registry = ToolRegistry()
    if memory is None:
        return registry
    for name, tool_cls in (("remember", RememberTool), ("recall", RecallTool)):
        registry.register(
            tool_cls(
                memory,
                name=name,
                enabled=_tool_enabled(config, name, True),
                settings=_tool_settings(config, name),
            )
        )
    return registry
