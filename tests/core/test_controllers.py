import asyncio
import time

import pytest

from vitals_lab.core.clock import ManualClock
from vitals_lab.core.controllers import (
    PROCESSING_MESSAGE,
    ClsController,
    InteractionController,
    LcpController,
    PageSnapshot,
    RenderGate,
    RenderPhase,
    SlotStatus,
)
from vitals_lab.core.errors import ConfigurationError
from vitals_lab.core.pages import PageId, PageScenario
from vitals_lab.core.scenario import ScenarioDefinition, StageDescriptor


def _setup(page: PageId, *stages: tuple[str, int, str | None], gate: str | None = None) -> PageScenario:
    return PageScenario(
        page=page,
        scenario=ScenarioDefinition(
            name=f"{page.value}-test",
            stages=tuple(StageDescriptor(stage_id, delay, tag) for stage_id, delay, tag in stages),
        ),
        render_gate=gate,
    )


def test_render_gate_moves_to_ready_once() -> None:
    gate = RenderGate("unblock")
    assert gate.phase == RenderPhase.BLOCKED

    assert gate.observe("other") is False
    assert gate.observe("unblock") is True
    assert gate.observe("unblock") is False
    assert gate.phase == RenderPhase.READY


def test_controller_without_gate_starts_ready() -> None:
    controller = ClsController(_setup(PageId.CLS, ("ad", 10, "ad")))
    assert controller.phase == RenderPhase.READY


def test_gate_must_name_a_scenario_stage() -> None:
    with pytest.raises(ConfigurationError):
        LcpController(_setup(PageId.LCP, ("a", 10, None), gate="missing"))


def test_invalid_scenario_is_rejected_at_construction() -> None:
    with pytest.raises(ConfigurationError):
        ClsController(_setup(PageId.CLS, ("a", 10, None), ("a", 20, None)))


@pytest.mark.asyncio
async def test_lcp_default_scenario_unblocks_render_and_reveals_content() -> None:
    controller = LcpController()
    with controller.active():
        assert controller.phase == RenderPhase.BLOCKED
        assert controller.revealed == frozenset()

        await asyncio.sleep(0.6)

        assert controller.phase == RenderPhase.READY
        assert controller.snapshot().revealed == (
            "render-unblocked",
            "secondary-content",
            "low-priority-image",
        )
    assert controller.is_active is False


@pytest.mark.asyncio
async def test_cls_slots_show_placeholders_until_images_arrive() -> None:
    controller = ClsController(
        _setup(PageId.CLS, ("ad-top", 5, "ad"), ("image-1", 5, "image"), ("image-2", 200, "image"))
    )
    controller.activate()
    before = {slot.stage_id: slot.status for slot in controller.slots()}
    await asyncio.sleep(0.05)
    after = {slot.stage_id: slot.status for slot in controller.slots()}
    controller.deactivate()

    assert before == {
        "ad-top": SlotStatus.HIDDEN,
        "image-1": SlotStatus.PLACEHOLDER,
        "image-2": SlotStatus.PLACEHOLDER,
    }
    assert after == {
        "ad-top": SlotStatus.REVEALED,
        "image-1": SlotStatus.REVEALED,
        "image-2": SlotStatus.PLACEHOLDER,
    }


@pytest.mark.asyncio
async def test_deactivate_cancels_pending_stages_and_freezes_revealed() -> None:
    controller = ClsController(_setup(PageId.CLS, ("early", 5, "ad"), ("late", 80, "ad")))
    controller.activate()
    await asyncio.sleep(0.03)
    controller.deactivate()
    await asyncio.sleep(0.1)

    assert controller.revealed == frozenset({"early"})
    assert controller.handle is not None and controller.handle.pending == 0
    assert controller.timeline.phases() == ["activated", "stage_revealed", "deactivated"]


@pytest.mark.asyncio
async def test_reactivation_disposes_previous_run_and_resets_state() -> None:
    controller = LcpController(_setup(PageId.LCP, ("unblock", 5, None), ("late", 60, None), gate="unblock"))
    first = controller.activate()
    await asyncio.sleep(0.02)
    assert controller.phase == RenderPhase.READY

    second = controller.activate()

    assert first.is_disposed is True
    assert second is not first
    assert controller.revealed == frozenset()
    assert controller.phase == RenderPhase.BLOCKED

    await asyncio.sleep(0.1)
    assert first.revealed == frozenset({"unblock"})
    assert controller.revealed == frozenset({"unblock", "late"})
    controller.deactivate()


@pytest.mark.asyncio
async def test_scoped_activation_deactivates_on_error() -> None:
    controller = ClsController(_setup(PageId.CLS, ("ad", 20, "ad")))

    with pytest.raises(KeyError):
        with controller.active():
            raise KeyError("host torn down")

    await asyncio.sleep(0.05)
    assert controller.is_active is False
    assert controller.revealed == frozenset()


@pytest.mark.asyncio
async def test_listeners_receive_snapshots_and_can_unsubscribe() -> None:
    controller = ClsController(_setup(PageId.CLS, ("a", 5, "ad"), ("b", 30, "ad")))
    seen: list[PageSnapshot] = []
    unsubscribe = controller.subscribe(seen.append)

    controller.activate()
    await asyncio.sleep(0.015)
    unsubscribe()
    await asyncio.sleep(0.04)
    controller.deactivate()

    assert [snapshot.revealed for snapshot in seen] == [(), ("a",)]
    assert seen[0].active is True


@pytest.mark.asyncio
async def test_inp_interaction_publishes_processing_then_completion() -> None:
    controller = InteractionController()
    observed: list[tuple[bool, int, str]] = []
    unsubscribe = controller.subscribe(
        lambda snapshot: observed.append(
            (snapshot.interaction.processing, snapshot.interaction.click_count, snapshot.interaction.message)
        )
    )

    with controller.active():
        observed.clear()
        started = time.perf_counter()
        result = controller.interact()
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        unsubscribe()

    assert elapsed_ms >= 1000
    assert observed == [
        (True, 0, PROCESSING_MESSAGE),
        (False, 1, "Operation complete! Clicked 1 times."),
    ]
    assert result.processing is False
    assert result.click_count == 1
    assert not any(processing and count == 1 for processing, count, _ in observed)


@pytest.mark.asyncio
async def test_inp_paint_never_sees_processing_state() -> None:
    controller = InteractionController(block_ms=50)
    painted: list[bool] = []

    with controller.active():
        loop = asyncio.get_running_loop()
        # Next paint opportunity is already queued when the click arrives.
        loop.call_soon(lambda: painted.append(controller.interaction.processing))
        controller.interact()
        await asyncio.sleep(0)

    assert painted == [False]


@pytest.mark.asyncio
async def test_inp_click_counter_and_reset_on_activation() -> None:
    clock = ManualClock(step_ms=5.0)
    controller = InteractionController(block_ms=20, clock=clock)

    controller.activate()
    controller.interact()
    second = controller.interact()
    assert second.click_count == 2
    assert second.message == "Operation complete! Clicked 2 times."

    controller.activate()
    assert controller.interaction.click_count == 0
    assert controller.interaction.message == ""
    controller.deactivate()


def test_inp_interact_requires_active_page() -> None:
    controller = InteractionController(block_ms=0)
    with pytest.raises(RuntimeError):
        controller.interact()


def test_inp_rejects_negative_block_duration() -> None:
    with pytest.raises(ConfigurationError):
        InteractionController(block_ms=-1)


@pytest.mark.asyncio
async def test_inp_reentrant_click_is_ignored_while_processing() -> None:
    controller = InteractionController(block_ms=0)
    nested: list[int] = []

    def listener(snapshot: PageSnapshot) -> None:
        if snapshot.interaction and snapshot.interaction.processing:
            nested.append(controller.interact().click_count)

    controller.subscribe(listener)
    with controller.active():
        result = controller.interact()

    assert nested == [0]
    assert result.click_count == 1


class FailingSimulator:
    def run(self, duration_ms: int) -> float:
        raise RuntimeError("task crashed")


@pytest.mark.asyncio
async def test_inp_failed_task_restores_message_and_publishes() -> None:
    controller = InteractionController(simulator=FailingSimulator(), block_ms=10)  # type: ignore[arg-type]
    observed: list[tuple[bool, int, str]] = []

    with controller.active():
        controller.subscribe(
            lambda snapshot: observed.append(
                (snapshot.interaction.processing, snapshot.interaction.click_count, snapshot.interaction.message)
            )
        )
        with pytest.raises(RuntimeError):
            controller.interact()
        state = controller.interaction

    assert state.processing is False
    assert state.click_count == 0
    assert state.message == ""
    assert observed[:2] == [(True, 0, PROCESSING_MESSAGE), (False, 0, "")]
    assert "interaction_failed" in controller.timeline.phases()
