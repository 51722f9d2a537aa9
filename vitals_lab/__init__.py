"""Web vitals lab: scripted reproductions of LCP, CLS and INP pathologies."""

from vitals_lab.core import (
    BlockingTaskSimulator,
    ClsController,
    ConfigurationError,
    InteractionController,
    LcpController,
    ScenarioDefinition,
    ScenarioScheduler,
    StageDescriptor,
)

__all__ = [
    "BlockingTaskSimulator",
    "ClsController",
    "ConfigurationError",
    "InteractionController",
    "LcpController",
    "ScenarioDefinition",
    "ScenarioScheduler",
    "StageDescriptor",
]
