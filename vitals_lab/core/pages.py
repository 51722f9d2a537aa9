from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from vitals_lab.core.errors import ConfigurationError
from vitals_lab.core.scenario import ScenarioDefinition, StageDescriptor


class PageId(str, Enum):
    LCP = "lcp"
    CLS = "cls"
    INP = "inp"


@dataclass(frozen=True)
class PageInfo:
    page: PageId
    title: str
    summary: str
    how_to_observe: str
    fragment: str

    def to_dict(self) -> dict[str, str]:
        return {
            "page": self.page.value,
            "title": self.title,
            "summary": self.summary,
            "how_to_observe": self.how_to_observe,
            "fragment": self.fragment,
        }


@dataclass(frozen=True)
class PageScenario:
    """Stage list for one page plus the stage, if any, that lifts its render block."""

    page: PageId
    scenario: ScenarioDefinition
    render_gate: str | None = None

    def validate(self) -> None:
        self.scenario.validate()
        if self.render_gate is not None and self.scenario.get(self.render_gate) is None:
            raise ConfigurationError(
                f"{self.page.value}: render gate '{self.render_gate}' is not a stage of {self.scenario.name}"
            )

    def to_dict(self) -> dict[str, Any]:
        payload = self.scenario.to_dict()
        payload["render_gate"] = self.render_gate
        return payload

    @classmethod
    def from_dict(cls, page: PageId, payload: dict[str, Any]) -> "PageScenario":
        if not isinstance(payload, dict):
            raise ConfigurationError(f"{page.value}: scenario override must be an object")
        entry = cls(
            page=page,
            scenario=ScenarioDefinition.from_dict({"name": f"{page.value}-custom", **payload}),
            render_gate=payload.get("render_gate"),
        )
        entry.validate()
        return entry


PAGE_CATALOG: dict[PageId, PageInfo] = {
    PageId.LCP: PageInfo(
        page=PageId.LCP,
        title="Understanding Slow Site Speed & LCP",
        summary=(
            "A render-blocking resource holds the whole page on a loading screen, the critical "
            "hero image is wrongly lazy-loaded, and secondary content only appears once the "
            "block clears."
        ),
        how_to_observe=(
            "Record a page load in the Performance panel and find the LCP marker. In the Network "
            "panel, note when the lazily loaded hero image is requested and the low fetch "
            "priority of the non-critical image."
        ),
        fragment="#/lcp",
    ),
    PageId.CLS: PageInfo(
        page=PageId.CLS,
        title="Observing Cumulative Layout Shift (CLS)",
        summary=(
            "Ads, images without reserved dimensions and injected banners arrive after the first "
            "paint and push existing content around."
        ),
        how_to_observe=(
            "Enable Layout Shift Regions in the Rendering panel, reload, and watch content jump "
            "as each late element is inserted."
        ),
        fragment="#/cls",
    ),
    PageId.INP: PageInfo(
        page=PageId.INP,
        title="Interaction to Next Paint (INP) Issue",
        summary=(
            "Clicking the button runs a long synchronous task, so the processing state is never "
            "painted and the next frame only appears once the task ends."
        ),
        how_to_observe=(
            "Record a session in the Performance panel, click the button, and look for the long "
            "task and the long input delay in the Interactions track."
        ),
        fragment="#/inp",
    ),
}


LCP_SCENARIO = PageScenario(
    page=PageId.LCP,
    scenario=ScenarioDefinition(
        name="lcp-default",
        stages=(
            StageDescriptor("render-unblocked", 500, "render-blocking"),
            StageDescriptor("secondary-content", 500, "script"),
            StageDescriptor("low-priority-image", 500, "image"),
        ),
    ),
    render_gate="render-unblocked",
)

CLS_SCENARIO = PageScenario(
    page=PageId.CLS,
    scenario=ScenarioDefinition(
        name="cls-default",
        stages=(
            StageDescriptor("ad-top", 1500, "ad"),
            StageDescriptor("delayed-image-1", 2500, "image"),
            StageDescriptor("ad-middle", 4000, "ad"),
            StageDescriptor("delayed-image-2", 5500, "image"),
            StageDescriptor("dynamic-content", 7000, "injected-content"),
            StageDescriptor("ad-bottom", 8000, "ad"),
        ),
    ),
)

INP_SCENARIO = PageScenario(
    page=PageId.INP,
    scenario=ScenarioDefinition(name="inp-default", stages=()),
)

DEFAULT_SCENARIOS: dict[PageId, PageScenario] = {
    PageId.LCP: LCP_SCENARIO,
    PageId.CLS: CLS_SCENARIO,
    PageId.INP: INP_SCENARIO,
}
