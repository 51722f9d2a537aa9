from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from vitals_lab.core.errors import ConfigurationError
from vitals_lab.core.pages import DEFAULT_SCENARIOS, PageId, PageScenario

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class LabConfig:
    log_level: str = "INFO"
    inp_block_ms: int = 1_000
    lag_interval_ms: int = 50
    scenario_file: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "LabConfig":
        env = os.environ if environ is None else environ
        log_level = env.get("VITALS_LAB_LOG_LEVEL", "INFO").upper()
        if log_level not in _LOG_LEVELS:
            raise ConfigurationError(f"VITALS_LAB_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}")
        return cls(
            log_level=log_level,
            inp_block_ms=_int_setting(env, "VITALS_LAB_INP_BLOCK_MS", 1_000, minimum=0),
            lag_interval_ms=_int_setting(env, "VITALS_LAB_LAG_INTERVAL_MS", 50, minimum=1),
            scenario_file=env.get("VITALS_LAB_SCENARIO_FILE") or None,
        )


def _int_setting(env: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_scenarios(config: LabConfig) -> dict[PageId, PageScenario]:
    """Default page scenarios, with any page overridden by the configured JSON file."""
    scenarios = dict(DEFAULT_SCENARIOS)
    if not config.scenario_file:
        return scenarios

    path = Path(config.scenario_file)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Scenario file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Scenario file {path} is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Scenario file {path} must contain an object keyed by page id")

    for key, entry in payload.items():
        try:
            page = PageId(key)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown page id '{key}' in {path}") from exc
        scenarios[page] = PageScenario.from_dict(page, entry)
    return scenarios
