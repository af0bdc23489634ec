"""Derived views over a list of anomalies.

Pure helpers used by :class:`AnomalyDetectionService` to build the
detailed analysis: per-category insights, recommendations, trend
summaries, cost impact and risk sub-assessments.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from domain.models.anomaly import (
    AnomalyHistoryEntry,
    AnomalyRecord,
    Severity,
)
from domain.models.billing import to_money

IMPLEMENTATION_STEPS: dict[str, list[str]] = {
    "premium_sms": [
        "Call customer support",
        "Request a premium SMS block",
        "Wait for the confirmation SMS",
    ],
    "data": [
        "Open the data usage settings",
        "Set a daily limit",
        "Enable usage alerts",
    ],
    "roaming": [
        "Compare roaming packages",
        "Pick the package that fits the trip",
        "Activate it before travelling",
    ],
}
DEFAULT_IMPLEMENTATION_STEPS = ["Call customer support", "Review the available options"]

PREVENTION_STRATEGIES: dict[str, tuple[str, str]] = {
    "data": (
        "Set up data usage alerts",
        "Enable data limits in the device settings",
    ),
    "premium_sms": (
        "Activate the premium SMS block",
        "Ask the operator to block premium services",
    ),
    "roaming": (
        "Buy roaming packages in advance",
        "Activate a roaming package before travelling",
    ),
}
DEFAULT_PREVENTION = ("Track usage regularly", "Review the monthly usage report")

NO_DATA_SUMMARY = "No data found"


# ---------------------------------------------------------------------------
# Grouping helpers
# ---------------------------------------------------------------------------


def group_by_category(anomalies: Sequence[AnomalyRecord]) -> dict[str, list[AnomalyRecord]]:
    groups: dict[str, list[AnomalyRecord]] = {}
    for anomaly in anomalies:
        groups.setdefault(anomaly.category, []).append(anomaly)
    return groups


def severity_distribution(anomalies: Sequence[AnomalyRecord]) -> dict[str, int]:
    distribution = {s.value: 0 for s in Severity}
    for anomaly in anomalies:
        distribution[anomaly.severity.value] += 1
    return distribution


def _abs_delta_total(anomalies: Sequence[AnomalyRecord]) -> Decimal:
    return sum((abs(a.amount_delta) for a in anomalies), Decimal("0"))


def period_summary(anomalies: Sequence[AnomalyRecord]) -> str:
    if not anomalies:
        return "No anomalies detected"
    high = sum(1 for a in anomalies if a.severity is Severity.HIGH)
    if high:
        return f"{high} high-risk anomalies detected"
    return f"{len(anomalies)} anomalies detected"


# ---------------------------------------------------------------------------
# Insights and recommendations
# ---------------------------------------------------------------------------


def category_insights(anomalies: Sequence[AnomalyRecord]) -> list[dict[str, Any]]:
    insights: list[dict[str, Any]] = []
    for category, group in group_by_category(anomalies).items():
        insights.append(
            {
                "category": category,
                "insight_type": "category_analysis",
                "message": f"{len(group)} anomalies detected in category {category}",
                "details": {
                    "total_deviation": to_money(_abs_delta_total(group)),
                    "anomaly_count": len(group),
                    "severity_distribution": severity_distribution(group),
                },
            }
        )
    return insights


def trend_insight(trends: dict[str, Any]) -> dict[str, Any] | None:
    if "risk_trend" not in trends:
        return None
    return {
        "insight_type": "trend_analysis",
        "message": f"Risk is {trends['risk_trend']} compared with the previous period",
        "details": {
            "anomaly_count_trend": trends["anomaly_count_trend"],
            "patterns": trends["patterns"],
        },
    }


def actionable_recommendations(anomalies: Sequence[AnomalyRecord]) -> list[dict[str, Any]]:
    recommendations: list[dict[str, Any]] = []
    for anomaly in anomalies:
        if anomaly.severity is not Severity.HIGH:
            continue
        recommendations.append(
            {
                "priority": "high",
                "category": anomaly.category,
                "action": anomaly.suggested_action,
                "expected_impact": to_money(abs(anomaly.amount_delta)),
                "implementation": IMPLEMENTATION_STEPS.get(
                    anomaly.category, DEFAULT_IMPLEMENTATION_STEPS
                ),
                "timeline": "This month",
            }
        )

    if len(anomalies) > 3:
        recommendations.append(
            {
                "priority": "medium",
                "category": "general",
                "action": "Review all active services",
                "expected_impact": "Overall cost optimisation",
                "implementation": ["Call customer support", "Compare plan options"],
                "timeline": "2-4 weeks",
            }
        )
    return recommendations


def prevention_strategies(anomalies: Sequence[AnomalyRecord]) -> list[dict[str, str]]:
    strategies: list[dict[str, str]] = []
    for category in group_by_category(anomalies):
        strategy, implementation = PREVENTION_STRATEGIES.get(category, DEFAULT_PREVENTION)
        strategies.append(
            {"category": category, "strategy": strategy, "implementation": implementation}
        )
    return strategies


# ---------------------------------------------------------------------------
# Cost impact
# ---------------------------------------------------------------------------


def cost_impact(anomalies: Sequence[AnomalyRecord]) -> dict[str, Any]:
    increase = sum((a.amount_delta for a in anomalies if a.amount_delta > 0), Decimal("0"))
    decrease = sum((-a.amount_delta for a in anomalies if a.amount_delta < 0), Decimal("0"))

    categories: dict[str, dict[str, Any]] = {}
    for category, group in group_by_category(anomalies).items():
        categories[category] = {
            "count": len(group),
            "total_impact": to_money(_abs_delta_total(group)),
        }

    return {
        "total_impact": to_money(_abs_delta_total(anomalies)),
        "cost_increase": to_money(increase),
        "cost_decrease": to_money(decrease),
        "net_impact": to_money(increase - decrease),
        "impact_categories": categories,
    }


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


def calculate_trend(values: Sequence[float]) -> str:
    """Direction of the most recent value (``values[0]``) versus the one before."""
    if len(values) < 2:
        return "insufficient_data"
    recent, previous = values[0], values[1]
    if recent == previous:
        return "stable"
    if recent >= previous * 1.1:
        return "increasing"
    if recent <= previous * 0.9:
        return "decreasing"
    return "stable"


def identify_patterns(history: Sequence[AnomalyHistoryEntry]) -> list[str]:
    patterns: list[str] = []
    if not history:
        return patterns

    high_risk_periods = sum(1 for h in history if h.risk_score > 6)
    if high_risk_periods > len(history) * 0.5:
        patterns.append("Persistently high risk")

    # history is newest first
    chronological = [h.risk_score for h in reversed(history)]
    rising = all(b >= a for a, b in zip(chronological, chronological[1:]))
    if rising and chronological[-1] > chronological[0]:
        patterns.append("Rising risk trend")
    return patterns


def predict_next_period(history: Sequence[AnomalyHistoryEntry]) -> dict[str, str]:
    average = sum(h.risk_score for h in history) / len(history)
    recent = history[0].risk_score
    if recent > average * 1.2:
        return {"risk_level": "high", "confidence": "medium"}
    if recent < average * 0.8:
        return {"risk_level": "low", "confidence": "medium"}
    return {"risk_level": "medium", "confidence": "low"}


def analyze_trends(history: Sequence[AnomalyHistoryEntry]) -> dict[str, Any]:
    """Summarise risk movement over periods that carry data (newest first)."""
    with_data = [h for h in history if h.has_data]
    if len(with_data) < 2:
        return {"message": "Not enough data for trend analysis"}

    return {
        "risk_trend": calculate_trend([h.risk_score for h in with_data]),
        "anomaly_count_trend": calculate_trend([h.anomaly_count for h in with_data]),
        "patterns": identify_patterns(with_data),
        "prediction": predict_next_period(with_data),
    }


# ---------------------------------------------------------------------------
# Risk sub-assessments
# ---------------------------------------------------------------------------


def financial_risk(anomalies: Sequence[AnomalyRecord]) -> dict[str, Any]:
    high = [a for a in anomalies if a.severity is Severity.HIGH]
    potential = _abs_delta_total(high)
    if potential > 100:
        level = "high"
    elif potential > 50:
        level = "medium"
    else:
        level = "low"
    return {
        "level": level,
        "potential_monthly_cost": to_money(potential),
        "risk_factors": [a.category for a in high],
    }


def usage_pattern_risk(anomalies: Sequence[AnomalyRecord]) -> dict[str, Any]:
    new_usages = sum(1 for a in anomalies if a.first_occurrence)
    recurring = len(anomalies) - new_usages

    if new_usages > 2:
        new_usage_risk = "high"
    elif new_usages > 0:
        new_usage_risk = "medium"
    else:
        new_usage_risk = "low"

    if recurring > 3:
        recurring_risk = "high"
    elif recurring > 1:
        recurring_risk = "medium"
    else:
        recurring_risk = "low"

    insights: list[str] = []
    categories = {a.category for a in anomalies}
    if {"premium_sms", "vas"} <= categories:
        insights.append("Tendency towards premium services")

    return {
        "new_usage_risk": new_usage_risk,
        "recurring_pattern_risk": recurring_risk,
        "pattern_insights": insights,
    }


def trend_risk(trends: dict[str, Any]) -> dict[str, Any]:
    if "message" in trends:
        return {"level": "unknown", "reason": trends["message"]}

    direction = trends["risk_trend"]
    level = {"increasing": "high", "stable": "medium"}.get(direction, "low")
    return {
        "level": level,
        "trend_direction": direction,
        "prediction": trends["prediction"],
    }
