from __future__ import annotations

import logging

from vitals_lab.core.clock import MonotonicClock, PerfCounterClock
from vitals_lab.core.errors import ConfigurationError

logger = logging.getLogger("vitals.blocking")


class BlockingTaskSimulator:
    """Busy-waits on the calling thread to model a long synchronous task.

    There is no suspension or cancellation point: while ``run`` spins, the event loop
    that called it cannot process timers, callbacks or any other pending work.
    """

    def __init__(self, clock: MonotonicClock | None = None) -> None:
        self._clock = clock or PerfCounterClock()

    def run(self, duration_ms: int) -> float:
        if isinstance(duration_ms, bool) or not isinstance(duration_ms, int):
            raise ConfigurationError(f"duration_ms must be an integer, got {duration_ms!r}")
        if duration_ms < 0:
            raise ConfigurationError(f"duration_ms must be non-negative, got {duration_ms}")

        start = self._clock.now_ms()
        elapsed = 0.0
        while elapsed < duration_ms:
            elapsed = self._clock.now_ms() - start

        logger.info("[Blocking] Held the execution context for %.1fms (requested %dms)", elapsed, duration_ms)
        return elapsed
