import asyncio
import time

import pytest

from vitals_lab.core.blocking import BlockingTaskSimulator
from vitals_lab.core.clock import ManualClock
from vitals_lab.core.errors import ConfigurationError


@pytest.mark.parametrize("duration_ms", [0, 1, 1000])
def test_run_never_undershoots(duration_ms: int) -> None:
    elapsed = BlockingTaskSimulator().run(duration_ms)
    assert elapsed >= duration_ms


def test_run_polls_the_injected_clock_until_duration() -> None:
    clock = ManualClock(step_ms=10.0)
    elapsed = BlockingTaskSimulator(clock=clock).run(35)

    assert elapsed == 40.0
    assert clock.reads == 5


def test_run_zero_returns_without_spinning() -> None:
    clock = ManualClock(step_ms=5.0)
    assert BlockingTaskSimulator(clock=clock).run(0) == 0.0
    assert clock.reads == 1


@pytest.mark.parametrize("duration_ms", [-1, 1.5, True, "10"])
def test_invalid_duration_is_rejected_without_busy_waiting(duration_ms: object) -> None:
    clock = ManualClock()
    with pytest.raises(ConfigurationError):
        BlockingTaskSimulator(clock=clock).run(duration_ms)  # type: ignore[arg-type]
    assert clock.reads == 0


@pytest.mark.asyncio
async def test_run_starves_due_timers_on_the_loop() -> None:
    loop = asyncio.get_running_loop()
    fired_at: list[float] = []
    loop.call_later(0.01, lambda: fired_at.append(time.perf_counter()))

    start = time.perf_counter()
    BlockingTaskSimulator().run(150)
    finished = time.perf_counter()
    await asyncio.sleep(0.02)

    assert fired_at
    assert fired_at[0] >= finished
    assert (fired_at[0] - start) * 1000.0 >= 150
