from domain.models.anomaly import (
    AnomalyHistoryEntry,
    AnomalyRecord,
    AnomalyReport,
    AnomalyType,
    DetailedAnalysis,
    Severity,
)
from domain.models.billing import (
    ANOMALY_CATEGORY_KEYS,
    NEW_ITEM_CATEGORIES,
    Bill,
    BillCategory,
    BillItem,
    UsageDailyRecord,
)
from domain.models.catalog import AddOnPack, LineType, Plan, Subscriber
from domain.models.what_if import (
    OverageCalculation,
    Scenario,
    ScenarioComparison,
    ScenarioOutcome,
    WhatIfResult,
)

__all__ = [
    "ANOMALY_CATEGORY_KEYS",
    "NEW_ITEM_CATEGORIES",
    "AddOnPack",
    "AnomalyHistoryEntry",
    "AnomalyRecord",
    "AnomalyReport",
    "AnomalyType",
    "Bill",
    "BillCategory",
    "BillItem",
    "DetailedAnalysis",
    "LineType",
    "OverageCalculation",
    "Plan",
    "Scenario",
    "ScenarioComparison",
    "ScenarioOutcome",
    "Severity",
    "Subscriber",
    "UsageDailyRecord",
    "WhatIfResult",
]
