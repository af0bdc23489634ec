from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

SCENARIO_FIELDS: tuple[str, ...] = (
    "plan_id",
    "addons",
    "disable_vas",
    "block_premium_sms",
    "enable_roaming_block",
)


@dataclass(frozen=True)
class Scenario:
    """A hypothetical change to a subscriber's plan, add-ons or blocks.

    ``None``/``False`` fields mean "keep current".
    """

    plan_id: int | None = None
    addons: tuple[int, ...] | None = None
    disable_vas: bool = False
    block_premium_sms: bool = False
    enable_roaming_block: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Scenario:
        addons = data.get("addons")
        return cls(
            plan_id=data.get("plan_id"),
            addons=tuple(addons) if addons is not None else None,
            disable_vas=bool(data.get("disable_vas", False)),
            block_premium_sms=bool(data.get("block_premium_sms", False)),
            enable_roaming_block=bool(data.get("enable_roaming_block", False)),
        )

    @property
    def has_addons(self) -> bool:
        return bool(self.addons)

    @property
    def is_empty(self) -> bool:
        return (
            self.plan_id is None
            and self.addons is None
            and not self.disable_vas
            and not self.block_premium_sms
            and not self.enable_roaming_block
        )


@dataclass(frozen=True)
class OverageCalculation:
    data_overage_gb: Decimal = Decimal("0")
    voice_overage_min: Decimal = Decimal("0")
    sms_overage_count: Decimal = Decimal("0")
    data_overage: Decimal = Decimal("0")
    voice_overage: Decimal = Decimal("0")
    sms_overage: Decimal = Decimal("0")
    effective_quotas: dict[str, Decimal] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return self.data_overage + self.voice_overage + self.sms_overage


@dataclass(frozen=True)
class WhatIfResult:
    current_total: Decimal
    new_total: Decimal
    saving: Decimal
    saving_percent: Decimal
    details: list[str]
    breakdown: dict[str, Decimal]
    recommendations: list[str]
    risk_factors: list[str]
    scenario_summary: str = ""
    effective_date: date | None = None
    usage_analysis: OverageCalculation | None = None


@dataclass
class ScenarioOutcome:
    id: int
    name: str
    total: Decimal
    saving: Decimal
    rank: int = 0
    saving_percent: Decimal | None = None
    details: list[str] = field(default_factory=list)
    scenario_type: str | None = None
    feasibility: str | None = None
    risk_level: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ScenarioComparison:
    current_total: Decimal
    scenarios: list[ScenarioOutcome]
    best_scenario: ScenarioOutcome | None
    comparison_summary: str
    analysis_date: str
