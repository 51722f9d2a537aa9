"""
Example usage of the web vitals lab.

Runs each demonstration page in turn and prints what a view would draw as the
scripted stages fire, then shows the event loop being starved by an INP click.
"""

import asyncio
import logging

from vitals_lab.core import (
    ClsController,
    InteractionController,
    LcpController,
    LoopLagMonitor,
    PageSnapshot,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def print_snapshot(snapshot: PageSnapshot) -> None:
    print(f"  [{snapshot.page.value}] phase={snapshot.phase.value} revealed={list(snapshot.revealed)}")


async def example_lcp():
    print("\n" + "="*60)
    print("Example 1: Render-blocking delay before the LCP content")
    print("="*60)

    controller = LcpController()
    controller.subscribe(print_snapshot)
    with controller.active():
        await asyncio.sleep(0.7)


async def example_cls():
    print("\n" + "="*60)
    print("Example 2: Late content shifting the layout")
    print("="*60)

    controller = ClsController()
    controller.subscribe(print_snapshot)
    with controller.active():
        await asyncio.sleep(8.2)

    for slot in controller.slots():
        print(f"  {slot.stage_id:<18} {slot.tag or '-':<18} {slot.status.value}")


async def example_inp():
    print("\n" + "="*60)
    print("Example 3: Long synchronous task on click")
    print("="*60)

    monitor = LoopLagMonitor(interval_ms=20)
    monitor.start()
    controller = InteractionController()
    with controller.active():
        await asyncio.sleep(0.1)
        result = controller.interact()
        await asyncio.sleep(0.1)
    await monitor.stop()

    print(f"  Result: {result.to_dict()}")
    print(f"  Worst event loop stall: {monitor.max_lag_ms:.0f}ms")


async def main():
    await example_lcp()
    await example_cls()
    await example_inp()


if __name__ == "__main__":
    asyncio.run(main())
