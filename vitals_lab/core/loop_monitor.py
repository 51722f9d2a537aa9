from __future__ import annotations

import asyncio
import logging
from collections import deque

logger = logging.getLogger("vitals.loop_monitor")


def _percentile(values: deque[float], fraction: float) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = min(len(ordered) - 1, max(0, round((len(ordered) - 1) * fraction)))
    return ordered[rank]


class LoopLagMonitor:
    """Measures how late a periodic sleep wakes up on the running event loop.

    A synchronous block on the loop shows up here as one large lag sample.
    """

    def __init__(self, interval_ms: int = 50, max_samples: int = 200) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._interval_ms = interval_ms
        self._samples: deque[float] = deque(maxlen=max_samples)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def samples(self) -> tuple[float, ...]:
        return tuple(self._samples)

    @property
    def max_lag_ms(self) -> float:
        return max(self._samples, default=0.0)

    @property
    def p95_lag_ms(self) -> float:
        return _percentile(self._samples, 0.95)

    def start(self) -> None:
        if self.running:
            return
        self._samples.clear()
        self._task = asyncio.create_task(self._monitor())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    def snapshot(self) -> dict[str, float | int | bool]:
        return {
            "running": self.running,
            "interval_ms": self._interval_ms,
            "sample_count": len(self._samples),
            "max_lag_ms": round(self.max_lag_ms, 3),
            "p95_lag_ms": round(self.p95_lag_ms, 3),
        }

    def _record(self, lag_ms: float) -> None:
        self._samples.append(lag_ms)
        # A stall worth reporting spans several missed wakeups.
        if lag_ms > self._interval_ms * 4:
            logger.info("[LoopMonitor] Event loop stalled for %.1fms", lag_ms)

    async def _monitor(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._interval_ms / 1000.0
        while True:
            expected = loop.time() + interval
            await asyncio.sleep(interval)
            self._record(max(0.0, (loop.time() - expected) * 1000.0))
