from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from vitals_lab.core.clock import MonotonicClock, PerfCounterClock


@dataclass(frozen=True)
class TimelineEvent:
    seq: int
    phase: str
    elapsed_ms: float
    ts: str
    metadata: dict[str, Any] = field(default_factory=dict)


class PageTimeline:
    """Bounded log of lifecycle events for one controller, relative to its last reset."""

    def __init__(self, clock: MonotonicClock | None = None, max_events: int = 256) -> None:
        self._clock = clock or PerfCounterClock()
        self._max_events = max_events
        self._start_ms = self._clock.now_ms()
        self._events: list[TimelineEvent] = []
        self._seq = 0

    def reset(self) -> None:
        self._start_ms = self._clock.now_ms()
        self._events = []

    def event(self, phase: str, metadata: dict[str, Any] | None = None) -> TimelineEvent:
        self._seq += 1
        record = TimelineEvent(
            seq=self._seq,
            phase=phase,
            elapsed_ms=round(self._clock.now_ms() - self._start_ms, 3),
            ts=datetime.now(tz=timezone.utc).isoformat(),
            metadata=metadata or {},
        )
        self._events.append(record)
        if len(self._events) > self._max_events:
            self._events = self._events[-self._max_events :]
        return record

    @property
    def events(self) -> tuple[TimelineEvent, ...]:
        return tuple(self._events)

    def phases(self) -> list[str]:
        return [event.phase for event in self._events]

    def snapshot(self) -> list[dict[str, Any]]:
        return [
            {
                "seq": event.seq,
                "phase": event.phase,
                "elapsed_ms": event.elapsed_ms,
                "ts": event.ts,
                "metadata": event.metadata,
            }
            for event in self._events
        ]
