from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator

from vitals_lab.core.errors import ConfigurationError
from vitals_lab.core.scenario import ScenarioDefinition, StageDescriptor

logger = logging.getLogger("vitals.scheduler")

StageSink = Callable[[str, frozenset[str]], None]


class HandleState(str, Enum):
    ARMED = "armed"
    FIRING = "firing"
    DISPOSED = "disposed"


class SchedulerHandle:
    """One run of a scenario: owns its pending timers and the set of revealed stages.

    All methods must be called on the loop the handle was armed on.
    """

    def __init__(
        self,
        scenario: ScenarioDefinition,
        sink: StageSink,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._scenario = scenario
        self._sink = sink
        self._loop = loop
        self._ordered: tuple[StageDescriptor, ...] = scenario.ordered()
        self._cursor = 0
        self._timers: dict[int, asyncio.Handle] = {}
        self._revealed: set[str] = set()
        self._fired: list[str] = []
        self._state = HandleState.ARMED
        self._started_at = loop.time()

    @property
    def scenario(self) -> ScenarioDefinition:
        return self._scenario

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def is_disposed(self) -> bool:
        return self._state is HandleState.DISPOSED

    @property
    def started_at(self) -> float:
        return self._started_at

    @property
    def revealed(self) -> frozenset[str]:
        return frozenset(self._revealed)

    @property
    def fired_order(self) -> tuple[str, ...]:
        return tuple(self._fired)

    @property
    def pending(self) -> int:
        return len(self._timers)

    def _arm(self) -> None:
        for position, stage in enumerate(self._ordered):
            when = self._started_at + stage.delay_ms / 1000.0
            self._timers[position] = self._loop.call_at(when, self._on_due, position)
        logger.debug("[Scheduler] Armed %s with %d stage(s)", self._scenario.name, len(self._ordered))

    def _on_due(self, position: int) -> None:
        if self._state is HandleState.DISPOSED:
            return
        # Every stage ordered before this one is due too; drain them first so ties
        # never depend on the loop's timer ordering.
        try:
            while self._cursor <= position:
                if self._state is HandleState.DISPOSED:
                    return
                index = self._cursor
                self._cursor += 1
                timer = self._timers.pop(index, None)
                if timer is not None:
                    timer.cancel()
                self._fire(self._ordered[index])
        finally:
            if self._state is not HandleState.DISPOSED and self._cursor <= position:
                # The sink raised mid-drain; resume on the next loop iteration.
                self._timers[position] = self._loop.call_soon(self._on_due, position)

    def _fire(self, stage: StageDescriptor) -> None:
        self._revealed.add(stage.id)
        self._fired.append(stage.id)
        self._state = HandleState.FIRING
        elapsed_ms = (self._loop.time() - self._started_at) * 1000.0
        logger.debug(
            "[Scheduler] %s: stage '%s' fired at %.1fms (scheduled %dms)",
            self._scenario.name,
            stage.id,
            elapsed_ms,
            stage.delay_ms,
        )
        try:
            self._sink(stage.id, frozenset(self._revealed))
        finally:
            if self._state is HandleState.FIRING:
                self._state = HandleState.ARMED

    def dispose(self) -> None:
        if self._state is HandleState.DISPOSED:
            return
        self._state = HandleState.DISPOSED
        cancelled = len(self._timers)
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        logger.debug(
            "[Scheduler] Disposed %s: %d fired, %d cancelled",
            self._scenario.name,
            len(self._fired),
            cancelled,
        )

    def __enter__(self) -> "SchedulerHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


class ScenarioScheduler:
    """Fires a scenario's stages on the event loop, in delay order, at most once each."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def start(self, scenario: ScenarioDefinition, sink: StageSink) -> SchedulerHandle:
        """Validate and arm ``scenario``; returns before any stage fires, even at delay 0."""
        if not isinstance(scenario, ScenarioDefinition):
            raise ConfigurationError(f"Expected a ScenarioDefinition, got {type(scenario).__name__}")
        if not callable(sink):
            raise ConfigurationError("Stage sink must be callable")
        scenario.validate()

        loop = self._loop or asyncio.get_running_loop()
        handle = SchedulerHandle(scenario=scenario, sink=sink, loop=loop)
        handle._arm()
        return handle

    def dispose(self, handle: SchedulerHandle) -> None:
        handle.dispose()

    @contextmanager
    def session(self, scenario: ScenarioDefinition, sink: StageSink) -> Iterator[SchedulerHandle]:
        """Scoped run: the handle is disposed on every exit path."""
        handle = self.start(scenario, sink)
        try:
            yield handle
        finally:
            handle.dispose()
