"""Tool boundary: runs a tool and turns any failure into a failed result."""

from __future__ import annotations

import asyncio
import logging
import time

from core.telemetry import MetricsSink, NullMetrics
from tools.base_tool import BaseTool, ToolContext, ToolResult

logger = logging.getLogger("ate.executor")


class ToolRunner:
    """Executes tools with an optional per-call timeout and timing metrics.

    Tool exceptions never escape ``run``; they come back as
    ``ToolResult(success=False, error=...)``. Task cancellation still
    propagates.
    """

    def __init__(self, metrics: MetricsSink | None = None, timeout_seconds: float | None = None) -> None:
        self.metrics = metrics or NullMetrics()
        self.timeout_seconds = timeout_seconds

    async def run(self, tool: BaseTool, context: ToolContext) -> ToolResult:
        tags = {"tool": tool.name}
        span_id = self.metrics.start_span(f"tool.{tool.name}")
        started = time.perf_counter()
        status = "ok"
        try:
            if not tool.enabled:
                status = "error"
                return ToolResult(success=False, error=f"Tool '{tool.name}' disabled.")
            if self.timeout_seconds is not None:
                data = await asyncio.wait_for(tool.execute(context), timeout=self.timeout_seconds)
            else:
                data = await tool.execute(context)
            return ToolResult(success=True, data=data, metadata={"tool": tool.name})
        except asyncio.CancelledError:
            status = "error"
            raise
        except asyncio.TimeoutError as exc:
            status = "error"
            logger.warning("Tool %s timed out", tool.name)
            return ToolResult(
                success=False,
                error=str(exc) or f"Tool '{tool.name}' timed out after {self.timeout_seconds}s",
                metadata={"tool": tool.name},
            )
        except Exception as exc:
            status = "error"
            logger.warning("Tool %s failed: %s", tool.name, exc)
            return ToolResult(
                success=False,
                error=str(exc) or exc.__class__.__name__,
                metadata={"tool": tool.name, "exception": exc.__class__.__name__},
            )
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            self.metrics.histogram("tool.execution_ms", elapsed_ms, {**tags, "status": status})
            self.metrics.end_span(span_id, status)
