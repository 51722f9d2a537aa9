"""Scenario scheduling, blocking simulation and page controllers."""

from vitals_lab.core.blocking import BlockingTaskSimulator
from vitals_lab.core.clock import ManualClock, MonotonicClock, PerfCounterClock
from vitals_lab.core.config import LabConfig, load_scenarios
from vitals_lab.core.controllers import (
    ClsController,
    InteractionController,
    InteractionState,
    LcpController,
    PageController,
    PageSnapshot,
    RenderGate,
    RenderPhase,
    SlotStatus,
)
from vitals_lab.core.errors import ConfigurationError
from vitals_lab.core.loop_monitor import LoopLagMonitor
from vitals_lab.core.pages import DEFAULT_SCENARIOS, PAGE_CATALOG, PageId, PageInfo, PageScenario
from vitals_lab.core.scenario import ScenarioDefinition, StageDescriptor
from vitals_lab.core.scheduler import HandleState, ScenarioScheduler, SchedulerHandle
from vitals_lab.core.timeline import PageTimeline

__all__ = [
    "BlockingTaskSimulator",
    "ClsController",
    "ConfigurationError",
    "DEFAULT_SCENARIOS",
    "HandleState",
    "InteractionController",
    "InteractionState",
    "LabConfig",
    "LcpController",
    "LoopLagMonitor",
    "ManualClock",
    "MonotonicClock",
    "PAGE_CATALOG",
    "PageController",
    "PageId",
    "PageInfo",
    "PageScenario",
    "PageSnapshot",
    "PageTimeline",
    "PerfCounterClock",
    "RenderGate",
    "RenderPhase",
    "ScenarioDefinition",
    "ScenarioScheduler",
    "SchedulerHandle",
    "SlotStatus",
    "StageDescriptor",
    "load_scenarios",
]
