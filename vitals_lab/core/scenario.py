from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from vitals_lab.core.errors import ConfigurationError


@dataclass(frozen=True)
class StageDescriptor:
    id: str
    delay_ms: int
    tag: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "delay_ms": self.delay_ms}
        if self.tag is not None:
            payload["tag"] = self.tag
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "StageDescriptor":
        if not isinstance(payload, dict):
            raise ConfigurationError(f"Stage entry must be an object, got {type(payload).__name__}")
        if "id" not in payload or "delay_ms" not in payload:
            raise ConfigurationError(f"Stage entry requires 'id' and 'delay_ms': {payload!r}")
        return cls(id=payload["id"], delay_ms=payload["delay_ms"], tag=payload.get("tag"))


@dataclass(frozen=True)
class ScenarioDefinition:
    """Ordered, immutable list of timed reveal stages for one page."""

    name: str
    stages: tuple[StageDescriptor, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable but store a tuple so the definition stays immutable.
        if not isinstance(self.stages, tuple):
            object.__setattr__(self, "stages", tuple(self.stages))

    def __len__(self) -> int:
        return len(self.stages)

    @property
    def stage_ids(self) -> tuple[str, ...]:
        return tuple(stage.id for stage in self.stages)

    def validate(self) -> None:
        seen: set[str] = set()
        for index, stage in enumerate(self.stages):
            if not isinstance(stage, StageDescriptor):
                raise ConfigurationError(f"{self.name}: stage #{index} is not a StageDescriptor")
            if not isinstance(stage.id, str) or not stage.id:
                raise ConfigurationError(f"{self.name}: stage #{index} has an empty or non-string id")
            if stage.id in seen:
                raise ConfigurationError(f"{self.name}: duplicate stage id '{stage.id}'")
            seen.add(stage.id)
            if isinstance(stage.delay_ms, bool) or not isinstance(stage.delay_ms, int):
                raise ConfigurationError(
                    f"{self.name}: stage '{stage.id}' delay_ms must be an integer, got {stage.delay_ms!r}"
                )
            if stage.delay_ms < 0:
                raise ConfigurationError(
                    f"{self.name}: stage '{stage.id}' has negative delay_ms={stage.delay_ms}"
                )

    def ordered(self) -> tuple[StageDescriptor, ...]:
        """Stages in fire order: by delay, ties kept in declaration order."""
        indexed = sorted(enumerate(self.stages), key=lambda item: (item[1].delay_ms, item[0]))
        return tuple(stage for _, stage in indexed)

    def get(self, stage_id: str) -> StageDescriptor | None:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "stages": [stage.to_dict() for stage in self.stages],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ScenarioDefinition":
        if not isinstance(payload, dict):
            raise ConfigurationError("Scenario payload must be an object")
        raw_stages = payload.get("stages", [])
        if not isinstance(raw_stages, list):
            raise ConfigurationError("Scenario 'stages' must be a list")
        scenario = cls(
            name=str(payload.get("name", "scenario")),
            stages=tuple(StageDescriptor.from_dict(item) for item in raw_stages),
        )
        scenario.validate()
        return scenario
