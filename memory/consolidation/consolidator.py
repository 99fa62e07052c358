"""Background consolidation cycle for a memory store."""

from __future__ import annotations

import logging
import threading
from typing import Any

logger = logging.getLogger("ate.memory.consolidator")


class Consolidator:
    """Runs ``memory_store.consolidate()`` periodically on a daemon thread.

    The thread waits on a stop event between passes, so ``stop()`` returns
    promptly even with long intervals.
    """

    def __init__(self, memory_store: Any, interval_seconds: float = 300.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("Consolidation interval must be positive.")
        self.memory_store = memory_store
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.passes = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the cycle; a second call while running is a no-op."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="memory-consolidator", daemon=True
        )
        self._thread.start()
        logger.info("Memory consolidation cycle started (every %.1fs)", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the cycle to stop and wait for the thread to exit."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def run_once(self) -> Any:
        result = self.memory_store.consolidate()
        self.passes += 1
        logger.debug("Consolidation pass %d: %s", self.passes, result)
        return result

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Memory consolidation pass failed")
