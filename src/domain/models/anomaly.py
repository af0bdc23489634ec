from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


class Severity(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AnomalyType(str, enum.Enum):
    STATISTICAL = "statistical"
    PERCENTAGE_INCREASE = "percentage_increase"
    NEW_ITEM = "new_item"
    ROAMING_NEW = "roaming_new"
    ROAMING_EXCESSIVE = "roaming_excessive"
    USAGE_SPIKE = "usage_spike"


SEVERITY_POINTS: dict[Severity, int] = {
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


@dataclass(frozen=True)
class AnomalyRecord:
    type: AnomalyType
    category: str
    severity: Severity
    current_amount: Decimal = Decimal("0")
    historical_average: Decimal = Decimal("0")
    delta: str = ""
    reason: str = ""
    suggested_action: str = ""
    first_occurrence: bool = False
    z_score: float | None = None
    amount_delta: Decimal = Decimal("0")
    usage_details: dict[str, Any] | None = None


@dataclass(frozen=True)
class AnomalyReport:
    anomalies: list[AnomalyRecord]
    risk_score: int
    analysis_period: str
    comparison_months: int
    threshold_used: float
    insufficient_history: bool = False

    @property
    def total_anomalies(self) -> int:
        return len(self.anomalies)


@dataclass(frozen=True)
class AnomalyHistoryEntry:
    period: str
    anomaly_count: int = 0
    risk_score: int = 0
    major_anomalies: list[AnomalyRecord] = field(default_factory=list)
    summary: str = ""
    has_data: bool = True


@dataclass(frozen=True)
class DetailedAnalysis:
    report: AnomalyReport
    detailed_insights: list[dict[str, Any]] | None
    actionable_recommendations: list[dict[str, Any]] | None
    trend_analysis: dict[str, Any]
    cost_impact_analysis: dict[str, Any]
    prevention_strategies: list[dict[str, str]]
    risk_assessment: dict[str, Any]
