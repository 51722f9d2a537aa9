"""Web vitals lab MCP server.

Lets an MCP client activate one demonstration page at a time, trigger the INP
interaction and read back what the view should show.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from vitals_lab.core import (
    PAGE_CATALOG,
    ClsController,
    InteractionController,
    LabConfig,
    LcpController,
    LoopLagMonitor,
    PageController,
    PageId,
    load_scenarios,
)

logger = logging.getLogger("vitals.server")


class LabHost:
    """Keeps at most one page controller active, like a single-page app showing one route."""

    def __init__(self, config: LabConfig | None = None) -> None:
        self._config = config or LabConfig()
        scenarios = load_scenarios(self._config)
        self._controllers: dict[PageId, PageController] = {
            PageId.LCP: LcpController(scenarios[PageId.LCP]),
            PageId.CLS: ClsController(scenarios[PageId.CLS]),
            PageId.INP: InteractionController(scenarios[PageId.INP], block_ms=self._config.inp_block_ms),
        }
        self._current: PageId | None = None
        self._monitor = LoopLagMonitor(interval_ms=self._config.lag_interval_ms)

    @property
    def current(self) -> PageId | None:
        return self._current

    def controller(self, page: PageId) -> PageController:
        return self._controllers[page]

    def list_pages(self) -> list[dict[str, Any]]:
        return [
            {**PAGE_CATALOG[page].to_dict(), "active": page == self._current}
            for page in PageId
        ]

    def activate(self, page: PageId) -> dict[str, Any]:
        if self._current is not None:
            self._controllers[self._current].deactivate()
        controller = self._controllers[page]
        controller.activate()
        self._current = page
        self._monitor.start()
        return controller.snapshot().to_dict()

    def deactivate(self) -> dict[str, Any]:
        if self._current is None:
            return {"active": None}
        page = self._current
        self._controllers[page].deactivate()
        self._current = None
        return {"deactivated": page.value}

    def state(self) -> dict[str, Any]:
        if self._current is None:
            return {"active": None}
        return self._controllers[self._current].snapshot().to_dict()

    def interact(self) -> dict[str, Any]:
        controller = self._controllers[PageId.INP]
        if self._current is not PageId.INP or not isinstance(controller, InteractionController):
            raise RuntimeError("Activate the inp page before interacting")
        return controller.interact().to_dict()

    def loop_lag(self) -> dict[str, Any]:
        return self._monitor.snapshot()

    async def close(self) -> None:
        self.deactivate()
        await self._monitor.stop()


_host: LabHost | None = None


def get_host() -> LabHost:
    global _host
    if _host is None:
        _host = LabHost(LabConfig.from_env())
    return _host


async def cleanup_host() -> None:
    global _host
    if _host is not None:
        await _host.close()
        _host = None


server = Server("web-vitals-lab")


@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="list_pages",
            description="List the LCP, CLS and INP demonstration pages.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="activate_page",
            description="Activate a page, deactivating the current one, and start its scenario.",
            inputSchema={
                "type": "object",
                "properties": {
                    "page": {"type": "string", "enum": [page.value for page in PageId]},
                },
                "required": ["page"],
            },
        ),
        Tool(
            name="deactivate_page",
            description="Deactivate the current page and cancel its pending stages.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="get_page_state",
            description="Get revealed stages, render phase and interaction state of the active page.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="interact",
            description="Click the INP page button; blocks the event loop for the configured duration.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="get_loop_lag",
            description="Get event loop lag samples showing how long the loop was starved.",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    host = get_host()

    try:
        if name == "list_pages":
            return [TextContent(type="text", text=json.dumps(host.list_pages(), indent=2))]

        if name == "activate_page":
            snapshot = host.activate(PageId(arguments["page"]))
            return [TextContent(type="text", text=json.dumps(snapshot, indent=2))]

        if name == "deactivate_page":
            return [TextContent(type="text", text=json.dumps(host.deactivate(), indent=2))]

        if name == "get_page_state":
            return [TextContent(type="text", text=json.dumps(host.state(), indent=2))]

        if name == "interact":
            return [TextContent(type="text", text=json.dumps(host.interact(), indent=2))]

        if name == "get_loop_lag":
            return [TextContent(type="text", text=json.dumps(host.loop_lag(), indent=2))]

        return [TextContent(type="text", text=json.dumps({"error": f"Unknown tool: {name}"}))]

    except Exception as exc:
        logger.exception("[Server] Tool failure: %s", exc)
        return [TextContent(type="text", text=json.dumps({"error": str(exc), "tool": name}))]


async def main() -> None:
    config = LabConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logger.info("[Server] Starting web vitals lab MCP server...")
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await cleanup_host()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
