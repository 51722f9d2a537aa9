from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol


class MonotonicClock(Protocol):
    def now_ms(self) -> float: ...


class PerfCounterClock:
    """Wall-clock elapsed time from ``time.perf_counter``; never moves backward."""

    def now_ms(self) -> float:
        return time.perf_counter() * 1000.0


@dataclass
class ManualClock:
    """Clock that advances by ``step_ms`` on every read.

    Busy-wait loops driven by it terminate after a predictable number of polls.
    """

    current_ms: float = 0.0
    step_ms: float = 1.0
    reads: int = 0

    def now_ms(self) -> float:
        value = self.current_ms
        self.current_ms += self.step_ms
        self.reads += 1
        return value

    def advance(self, delta_ms: float) -> None:
        if delta_ms < 0:
            raise ValueError("ManualClock cannot move backward")
        self.current_ms += delta_ms
