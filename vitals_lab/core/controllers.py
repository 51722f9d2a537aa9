from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator

from vitals_lab.core.blocking import BlockingTaskSimulator
from vitals_lab.core.clock import MonotonicClock
from vitals_lab.core.errors import ConfigurationError
from vitals_lab.core.pages import CLS_SCENARIO, INP_SCENARIO, LCP_SCENARIO, PageId, PageScenario
from vitals_lab.core.scheduler import ScenarioScheduler, SchedulerHandle
from vitals_lab.core.timeline import PageTimeline

logger = logging.getLogger("vitals.controller")

PROCESSING_MESSAGE = "Processing... Please wait."
DEFAULT_BLOCK_MS = 1_000


class RenderPhase(str, Enum):
    BLOCKED = "blocked"
    READY = "ready"


class SlotStatus(str, Enum):
    HIDDEN = "hidden"
    PLACEHOLDER = "placeholder"
    REVEALED = "revealed"


class RenderGate:
    """Blocked -> Ready, exactly once per run, driven by a single stage."""

    def __init__(self, stage_id: str | None) -> None:
        self._stage_id = stage_id
        self._phase = RenderPhase.READY if stage_id is None else RenderPhase.BLOCKED

    @property
    def stage_id(self) -> str | None:
        return self._stage_id

    @property
    def phase(self) -> RenderPhase:
        return self._phase

    def reset(self) -> None:
        self._phase = RenderPhase.READY if self._stage_id is None else RenderPhase.BLOCKED

    def observe(self, stage_id: str) -> bool:
        if self._phase is RenderPhase.BLOCKED and stage_id == self._stage_id:
            self._phase = RenderPhase.READY
            return True
        return False


@dataclass(frozen=True)
class SlotState:
    stage_id: str
    tag: str | None
    status: SlotStatus


@dataclass(frozen=True)
class InteractionState:
    processing: bool
    click_count: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"processing": self.processing, "click_count": self.click_count, "message": self.message}


@dataclass(frozen=True)
class PageSnapshot:
    page: PageId
    active: bool
    phase: RenderPhase
    revealed: tuple[str, ...]
    pending: int
    slots: tuple[SlotState, ...] = ()
    interaction: InteractionState | None = None
    timeline: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page.value,
            "active": self.active,
            "phase": self.phase.value,
            "revealed": list(self.revealed),
            "pending": self.pending,
            "slots": [
                {"stage_id": slot.stage_id, "tag": slot.tag, "status": slot.status.value}
                for slot in self.slots
            ],
            "interaction": self.interaction.to_dict() if self.interaction else None,
            "timeline": list(self.timeline),
        }


SnapshotListener = Callable[[PageSnapshot], None]


class PageController:
    """Runs one page's scenario and publishes what the view should show.

    The controller owns exactly one scheduler handle at a time; re-activation disposes
    the previous run before arming a new one.
    """

    page_id: PageId
    placeholder_tags: frozenset[str] = frozenset()

    def __init__(
        self,
        setup: PageScenario,
        scheduler: ScenarioScheduler | None = None,
        clock: MonotonicClock | None = None,
    ) -> None:
        setup.validate()
        self._setup = setup
        self._scheduler = scheduler or ScenarioScheduler()
        self._gate = RenderGate(setup.render_gate)
        self._timeline = PageTimeline(clock=clock)
        self._handle: SchedulerHandle | None = None
        self._listeners: list[SnapshotListener] = []

    @property
    def setup(self) -> PageScenario:
        return self._setup

    @property
    def handle(self) -> SchedulerHandle | None:
        return self._handle

    @property
    def is_active(self) -> bool:
        return self._handle is not None and not self._handle.is_disposed

    @property
    def phase(self) -> RenderPhase:
        return self._gate.phase

    @property
    def revealed(self) -> frozenset[str]:
        if self._handle is None:
            return frozenset()
        return self._handle.revealed

    @property
    def timeline(self) -> PageTimeline:
        return self._timeline

    def is_revealed(self, stage_id: str) -> bool:
        return stage_id in self.revealed

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def activate(self) -> SchedulerHandle:
        if self._handle is not None and not self._handle.is_disposed:
            logger.info("[Controller] %s re-activated; disposing previous run", self.page_id.value)
            self._handle.dispose()
        self._handle = None
        self._gate.reset()
        self._timeline.reset()
        self._on_activate()

        handle = self._scheduler.start(self._setup.scenario, self._on_stage)
        self._handle = handle
        self._timeline.event(
            "activated",
            {"scenario": self._setup.scenario.name, "stages": len(self._setup.scenario)},
        )
        logger.info("[Controller] %s activated with %s", self.page_id.value, self._setup.scenario.name)
        self._publish()
        return handle

    def deactivate(self) -> None:
        if self._handle is None or self._handle.is_disposed:
            return
        pending = self._handle.pending
        self._handle.dispose()
        self._timeline.event("deactivated", {"cancelled": pending})
        logger.info("[Controller] %s deactivated (%d stage(s) cancelled)", self.page_id.value, pending)
        self._publish()

    @contextmanager
    def active(self) -> Iterator["PageController"]:
        """Scoped activation: ``deactivate`` runs on every exit path."""
        self.activate()
        try:
            yield self
        finally:
            self.deactivate()

    def slots(self) -> tuple[SlotState, ...]:
        revealed = self.revealed
        states: list[SlotState] = []
        for stage in self._setup.scenario.stages:
            if stage.id == self._gate.stage_id:
                continue
            if stage.id in revealed:
                status = SlotStatus.REVEALED
            elif stage.tag in self.placeholder_tags:
                status = SlotStatus.PLACEHOLDER
            else:
                status = SlotStatus.HIDDEN
            states.append(SlotState(stage_id=stage.id, tag=stage.tag, status=status))
        return tuple(states)

    def snapshot(self) -> PageSnapshot:
        handle = self._handle
        return PageSnapshot(
            page=self.page_id,
            active=self.is_active,
            phase=self._gate.phase,
            revealed=handle.fired_order if handle else (),
            pending=handle.pending if handle else 0,
            slots=self.slots(),
            interaction=self._interaction_state(),
            timeline=tuple(self._timeline.snapshot()),
        )

    def _on_activate(self) -> None:
        return None

    def _interaction_state(self) -> InteractionState | None:
        return None

    def _on_stage(self, stage_id: str, revealed: frozenset[str]) -> None:
        stage = self._setup.scenario.get(stage_id)
        self._timeline.event(
            "stage_revealed",
            {"stage_id": stage_id, "tag": stage.tag if stage else None, "revealed": len(revealed)},
        )
        if self._gate.observe(stage_id):
            self._timeline.event("render_ready", {"stage_id": stage_id})
            logger.info("[Controller] %s render unblocked by '%s'", self.page_id.value, stage_id)
        self._publish()

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)


class LcpController(PageController):
    page_id = PageId.LCP

    def __init__(
        self,
        setup: PageScenario | None = None,
        scheduler: ScenarioScheduler | None = None,
        clock: MonotonicClock | None = None,
    ) -> None:
        super().__init__(setup or LCP_SCENARIO, scheduler=scheduler, clock=clock)


class ClsController(PageController):
    # Late images sit behind fixed-height placeholders that do not match their final size.
    placeholder_tags = frozenset({"image"})

    page_id = PageId.CLS

    def __init__(
        self,
        setup: PageScenario | None = None,
        scheduler: ScenarioScheduler | None = None,
        clock: MonotonicClock | None = None,
    ) -> None:
        super().__init__(setup or CLS_SCENARIO, scheduler=scheduler, clock=clock)


class InteractionController(PageController):
    """Click handler that blocks the loop before the next paint can happen."""

    page_id = PageId.INP

    def __init__(
        self,
        setup: PageScenario | None = None,
        scheduler: ScenarioScheduler | None = None,
        simulator: BlockingTaskSimulator | None = None,
        block_ms: int = DEFAULT_BLOCK_MS,
        clock: MonotonicClock | None = None,
    ) -> None:
        if isinstance(block_ms, bool) or not isinstance(block_ms, int) or block_ms < 0:
            raise ConfigurationError(f"block_ms must be a non-negative integer, got {block_ms!r}")
        super().__init__(setup or INP_SCENARIO, scheduler=scheduler, clock=clock)
        self._simulator = simulator or BlockingTaskSimulator(clock=clock)
        self._block_ms = block_ms
        self._processing = False
        self._click_count = 0
        self._message = ""

    @property
    def block_ms(self) -> int:
        return self._block_ms

    @property
    def interaction(self) -> InteractionState:
        return InteractionState(
            processing=self._processing,
            click_count=self._click_count,
            message=self._message,
        )

    def interact(self) -> InteractionState:
        """Handle one click synchronously; nothing else on the loop runs until it returns."""
        if not self.is_active:
            raise RuntimeError("INP page is not active")
        if self._processing:
            logger.warning("[Controller] inp click ignored while processing")
            return self.interaction

        previous_message = self._message
        self._processing = True
        self._message = PROCESSING_MESSAGE
        self._timeline.event("interaction_started", {"click_count": self._click_count})
        self._publish()

        try:
            elapsed_ms = self._simulator.run(self._block_ms)
        except Exception:
            self._processing = False
            self._message = previous_message
            self._timeline.event("interaction_failed", {"click_count": self._click_count})
            self._publish()
            raise

        self._processing = False
        self._click_count += 1
        self._message = f"Operation complete! Clicked {self._click_count} times."
        self._timeline.event(
            "interaction_completed",
            {"click_count": self._click_count, "blocked_ms": round(elapsed_ms, 3)},
        )
        logger.info("[Controller] inp click #%d handled after %.1fms", self._click_count, elapsed_ms)
        self._publish()
        return self.interaction

    def _on_activate(self) -> None:
        self._processing = False
        self._click_count = 0
        self._message = ""

    def _interaction_state(self) -> InteractionState | None:
        return self.interaction
