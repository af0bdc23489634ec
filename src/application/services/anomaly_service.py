"""Bill anomaly detection service.

Compares a subscriber's bill against a trailing window of earlier bills
and their daily usage, and condenses the findings into a bounded risk
score. Four independent checks run in a fixed order:

1. per-category statistics (z-score first, percentage change second),
2. charge categories that never appeared before,
3. new or excessive roaming,
4. single-day data usage spikes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal

from application.services import anomaly_insights as insights
from application.services.ports import BillRepository, UsageRepository
from domain.exceptions.billing_exceptions import (
    BillNotFoundError,
    InsufficientHistoryError,
    InvalidPeriodError,
    InvalidThresholdError,
)
from domain.models.anomaly import (
    SEVERITY_POINTS,
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
    UsageDailyRecord,
    to_money,
)
from domain.services import statistics
from domain.services.billing_period import DEFAULT_MAX_AGE_MONTHS, BillingPeriod

logger = logging.getLogger(__name__)

MIN_THRESHOLD = 0.0
MAX_THRESHOLD = 5.0

# Rough per-MB price used to put a number on roaming findings.
ESTIMATED_ROAMING_RATE_PER_MB = Decimal("0.5")

NEW_ITEM_HIGH_AMOUNT = Decimal("50")
CRITICAL_CATEGORIES = frozenset({"premium_sms", "roaming"})
MAX_RISK_SCORE = 10

SUGGESTED_ACTIONS: dict[str, str] = {
    "premium_sms": "Consider blocking premium SMS",
    "vas": "Review your VAS subscriptions",
    "roaming": "Review roaming packages",
    "data": "Review your data usage habits",
    "voice": "Review voice add-on options",
    "sms": "Consider adding an SMS bundle",
}
DEFAULT_SUGGESTED_ACTION = "Detailed review recommended"


def suggested_action(category: str, *, new_charge: bool = False) -> str:
    if new_charge:
        return f"Contact support about the new {category} charge"
    return SUGGESTED_ACTIONS.get(category, DEFAULT_SUGGESTED_ACTION)


def severity_by_z_score(z_score: float) -> Severity:
    z = abs(z_score)
    if z >= 3:
        return Severity.HIGH
    if z >= 2:
        return Severity.MEDIUM
    return Severity.LOW


def severity_by_percentage(percentage: float) -> Severity:
    if percentage >= 200:
        return Severity.HIGH
    if percentage >= 100:
        return Severity.MEDIUM
    return Severity.LOW


def calculate_risk_score(anomalies: Sequence[AnomalyRecord], total_amount: Decimal) -> int:
    """Aggregate anomalies into a 0-10 score.

    Severity contributes 3/2/1 points, first occurrences and critical
    categories one extra point each. Large bills add up to three points.
    """
    if not anomalies:
        return 0

    score = 0
    for anomaly in anomalies:
        score += SEVERITY_POINTS[anomaly.severity]
        if anomaly.first_occurrence:
            score += 1
        if anomaly.category in CRITICAL_CATEGORIES:
            score += 1

    if total_amount > 500:
        score += 1
    if total_amount > 1000:
        score += 2

    return max(0, min(MAX_RISK_SCORE, score))


class AnomalyDetectionService:
    """Detects unusual charges on a subscriber's bill."""

    def __init__(
        self,
        bill_repo: BillRepository,
        usage_repo: UsageRepository,
        *,
        clock: Callable[[], date] = date.today,
        default_threshold: float = 0.8,
        history_threshold: float = 0.7,
        z_score_threshold: float = 2.0,
        minimum_history_months: int = 3,
        max_period_age_months: int = DEFAULT_MAX_AGE_MONTHS,
        roaming_excessive_mb: float = 1000.0,
        usage_spike_multiplier: float = 3.0,
    ) -> None:
        self._bill_repo = bill_repo
        self._usage_repo = usage_repo
        self._clock = clock
        self.default_threshold = default_threshold
        self.history_threshold = history_threshold
        self.z_score_threshold = z_score_threshold
        self.minimum_history_months = minimum_history_months
        self.max_period_age_months = max_period_age_months
        self.roaming_excessive_mb = roaming_excessive_mb
        self.usage_spike_multiplier = usage_spike_multiplier

    # -- public API -------------------------------------------------------

    async def detect_anomalies(
        self,
        user_id: int,
        period: str,
        threshold: float | None = None,
    ) -> AnomalyReport:
        """Run all anomaly checks for one bill.

        Raises :class:`InvalidPeriodError`, :class:`InvalidThresholdError`
        or :class:`BillNotFoundError`. Never mutates the records it reads.
        """
        if threshold is None:
            threshold = self.default_threshold
        self._validate_threshold(threshold)
        target = self._parse_period(period)

        current_bill = await self._bill_repo.get_bill(user_id, str(target))
        if current_bill is None:
            raise BillNotFoundError(user_id=user_id, period=str(target))

        historical_bills = await self._historical_bills(user_id, target)
        insufficient = len(historical_bills) < self.minimum_history_months
        if insufficient:
            warning = InsufficientHistoryError(
                user_id=user_id,
                available=len(historical_bills),
                required=self.minimum_history_months,
            )
            logger.warning("%s; continuing with available history", warning.detail)

        current_usage, previous_usage = await self._usage_pair(user_id, target)

        anomalies = [
            *self.detect_category_anomalies(current_bill, historical_bills, threshold),
            *self.detect_new_item_anomalies(current_bill, historical_bills),
            *self.detect_roaming_anomalies(current_usage, previous_usage),
            *self.detect_usage_spikes(current_usage),
        ]
        risk_score = calculate_risk_score(anomalies, current_bill.total_amount)

        logger.info(
            "Detected %d anomalies for user %s in %s (risk %d)",
            len(anomalies),
            user_id,
            target,
            risk_score,
        )
        return AnomalyReport(
            anomalies=anomalies,
            risk_score=risk_score,
            analysis_period=str(target),
            comparison_months=len(historical_bills),
            threshold_used=threshold,
            insufficient_history=insufficient,
        )

    async def get_detailed_analysis(
        self,
        user_id: int,
        period: str,
        *,
        include_explanations: bool = True,
        include_recommendations: bool = True,
    ) -> DetailedAnalysis:
        report = await self.detect_anomalies(user_id, period)
        target = self._parse_period(report.analysis_period)
        history = await self._history(user_id, target, months=3)
        trends = insights.analyze_trends(history)

        detailed_insights = None
        if include_explanations:
            detailed_insights = insights.category_insights(report.anomalies)
            trend_entry = insights.trend_insight(trends)
            if trend_entry is not None:
                detailed_insights.append(trend_entry)

        recommendations = None
        if include_recommendations:
            recommendations = insights.actionable_recommendations(report.anomalies)

        return DetailedAnalysis(
            report=report,
            detailed_insights=detailed_insights,
            actionable_recommendations=recommendations,
            trend_analysis=trends,
            cost_impact_analysis=insights.cost_impact(report.anomalies),
            prevention_strategies=insights.prevention_strategies(report.anomalies),
            risk_assessment={
                "overall_risk": report.risk_score,
                "financial_risk": insights.financial_risk(report.anomalies),
                "usage_pattern_risk": insights.usage_pattern_risk(report.anomalies),
                "trend_risk": insights.trend_risk(trends),
            },
        )

    async def get_anomaly_history(self, user_id: int, months: int = 6) -> list[AnomalyHistoryEntry]:
        """Anomaly summaries for the *months* most recent periods, newest first."""
        if not 1 <= months <= self.max_period_age_months:
            raise ValueError(f"months must be between 1 and {self.max_period_age_months}")
        current = BillingPeriod.containing(self._clock())
        return await self._history(user_id, current, months)

    # -- checks -----------------------------------------------------------

    def detect_category_anomalies(
        self,
        current_bill: Bill,
        historical_bills: Sequence[Bill],
        threshold: float,
    ) -> list[AnomalyRecord]:
        anomalies: list[AnomalyRecord] = []
        if not historical_bills:
            return anomalies

        currency = current_bill.currency
        for key in ANOMALY_CATEGORY_KEYS:
            try:
                current_amount = current_bill.category_total(key)
                historical = [float(b.category_total(key)) for b in historical_bills]
                stats = statistics.compare(float(current_amount), historical)
            except (ArithmeticError, ValueError) as exc:
                logger.warning("Category %s could not be analysed: %s", key, exc)
                continue

            average = to_money(stats.mean)
            pct = stats.percentage_change

            if abs(stats.z_score) > self.z_score_threshold:
                anomalies.append(
                    AnomalyRecord(
                        type=AnomalyType.STATISTICAL,
                        category=key,
                        severity=severity_by_z_score(stats.z_score),
                        current_amount=current_amount,
                        historical_average=average,
                        delta=f"{'+' if pct > 0 else ''}{pct:.0f}%",
                        reason=(
                            f"Average over the last {len(historical)} months was "
                            f"{stats.mean:.2f} {currency}, this month is "
                            f"{current_amount:.2f} {currency}"
                        ),
                        suggested_action=suggested_action(key),
                        z_score=round(stats.z_score, 2),
                        amount_delta=current_amount - average,
                    )
                )
            elif pct > threshold * 100:
                anomalies.append(
                    AnomalyRecord(
                        type=AnomalyType.PERCENTAGE_INCREASE,
                        category=key,
                        severity=severity_by_percentage(pct),
                        current_amount=current_amount,
                        historical_average=average,
                        delta=f"+{pct:.0f}%",
                        reason=(
                            f"Previous average was {stats.mean:.2f} {currency}, "
                            f"this month is {current_amount:.2f} {currency}"
                        ),
                        suggested_action=suggested_action(key),
                        amount_delta=current_amount - average,
                    )
                )
        return anomalies

    def detect_new_item_anomalies(
        self,
        current_bill: Bill,
        historical_bills: Sequence[Bill],
    ) -> list[AnomalyRecord]:
        anomalies: list[AnomalyRecord] = []
        for category in NEW_ITEM_CATEGORIES:
            current_amount = current_bill.category_total(category)
            if current_amount <= 0:
                continue
            if any(b.category_total(category) > 0 for b in historical_bills):
                continue

            anomalies.append(
                AnomalyRecord(
                    type=AnomalyType.NEW_ITEM,
                    category=category.value,
                    severity=(
                        Severity.HIGH if current_amount > NEW_ITEM_HIGH_AMOUNT else Severity.MEDIUM
                    ),
                    current_amount=current_amount,
                    historical_average=Decimal("0"),
                    delta="NEW",
                    reason="Charge category seen for the first time",
                    suggested_action=suggested_action(category.value, new_charge=True),
                    first_occurrence=True,
                    amount_delta=current_amount,
                )
            )
        return anomalies

    def detect_roaming_anomalies(
        self,
        current_usage: Sequence[UsageDailyRecord],
        previous_usage: Sequence[UsageDailyRecord],
    ) -> list[AnomalyRecord]:
        anomalies: list[AnomalyRecord] = []
        current_mb = sum(d.roaming_mb for d in current_usage)
        previous_mb = sum(d.roaming_mb for d in previous_usage)
        roaming_days = sum(1 for d in current_usage if d.roaming_mb > 0)
        estimated_cost = to_money(Decimal(str(current_mb)) * ESTIMATED_ROAMING_RATE_PER_MB)

        if current_mb > 0 and previous_mb == 0:
            anomalies.append(
                AnomalyRecord(
                    type=AnomalyType.ROAMING_NEW,
                    category="roaming",
                    severity=Severity.HIGH,
                    current_amount=estimated_cost,
                    delta="NEW ROAMING",
                    reason="Usage abroad detected",
                    suggested_action=suggested_action("roaming"),
                    first_occurrence=True,
                    amount_delta=estimated_cost,
                    usage_details={"roaming_mb": current_mb, "roaming_days": roaming_days},
                )
            )

        if current_mb > self.roaming_excessive_mb:
            anomalies.append(
                AnomalyRecord(
                    type=AnomalyType.ROAMING_EXCESSIVE,
                    category="roaming",
                    severity=Severity.HIGH,
                    current_amount=estimated_cost,
                    delta=f"{current_mb:g}MB",
                    reason=f"Heavy data usage abroad: {current_mb:g}MB",
                    suggested_action="Review roaming packages before the next trip",
                    amount_delta=estimated_cost,
                    usage_details={"roaming_mb": current_mb, "roaming_days": roaming_days},
                )
            )
        return anomalies

    def detect_usage_spikes(self, daily_usage: Sequence[UsageDailyRecord]) -> list[AnomalyRecord]:
        if not daily_usage:
            return []

        average = statistics.mean([d.mb_used for d in daily_usage])
        limit = average * self.usage_spike_multiplier
        spikes = [d for d in daily_usage if d.mb_used > limit]
        if not spikes:
            return []

        peak = spikes[0]
        for day in spikes[1:]:
            if day.mb_used > peak.mb_used:
                peak = day

        return [
            AnomalyRecord(
                type=AnomalyType.USAGE_SPIKE,
                category="data",
                severity=Severity.MEDIUM,
                delta=f"{peak.mb_used:g}MB",
                reason=(
                    f"Data usage on {peak.usage_date.isoformat()} was over "
                    f"{self.usage_spike_multiplier:g}x the daily average"
                ),
                suggested_action=suggested_action("data"),
                usage_details={
                    "max_usage_mb": peak.mb_used,
                    "average_mb": round(average),
                    "spike_date": peak.usage_date.isoformat(),
                },
            )
        ]

    # -- helpers ----------------------------------------------------------

    def _validate_threshold(self, threshold: float) -> None:
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise InvalidThresholdError(threshold)
        if not MIN_THRESHOLD <= threshold <= MAX_THRESHOLD:
            raise InvalidThresholdError(threshold)

    def _parse_period(self, period: str) -> BillingPeriod:
        return BillingPeriod.parse(period, self._clock(), self.max_period_age_months)

    async def _historical_bills(self, user_id: int, target: BillingPeriod) -> list[Bill]:
        """Bills strictly before *target*, newest first, within the lookback window."""
        bills = await self._bill_repo.get_historical_bills(
            user_id, str(target), self.minimum_history_months
        )
        earliest = target.shift(-self.minimum_history_months)
        window = [
            b
            for b in bills
            if earliest <= BillingPeriod.containing(b.period_start) < target
        ]
        return sorted(window, key=lambda b: b.period_start, reverse=True)

    async def _usage_pair(
        self, user_id: int, target: BillingPeriod
    ) -> tuple[list[UsageDailyRecord], list[UsageDailyRecord]]:
        """Fetch the target and previous month's usage concurrently.

        A failed fetch degrades to an empty month instead of aborting.
        """
        previous = target.previous()
        results = await asyncio.gather(
            self._usage_repo.get_daily_usage(user_id, target.start, target.end),
            self._usage_repo.get_daily_usage(user_id, previous.start, previous.end),
            return_exceptions=True,
        )

        resolved: list[list[UsageDailyRecord]] = []
        for month, result in zip((target, previous), results):
            if isinstance(result, Exception):
                logger.warning(
                    "Daily usage for user %s in %s unavailable: %s", user_id, month, result
                )
                resolved.append([])
            elif isinstance(result, BaseException):
                raise result
            else:
                resolved.append(sorted(result, key=lambda d: d.usage_date))
        return resolved[0], resolved[1]

    async def _history(
        self, user_id: int, latest: BillingPeriod, months: int
    ) -> list[AnomalyHistoryEntry]:
        periods = [latest.shift(-i) for i in range(months)]
        return list(
            await asyncio.gather(*(self._history_entry(user_id, p) for p in periods))
        )

    async def _history_entry(self, user_id: int, period: BillingPeriod) -> AnomalyHistoryEntry:
        try:
            report = await self.detect_anomalies(user_id, str(period), self.history_threshold)
        except (BillNotFoundError, InvalidPeriodError):
            return AnomalyHistoryEntry(
                period=str(period),
                summary=insights.NO_DATA_SUMMARY,
                has_data=False,
            )

        return AnomalyHistoryEntry(
            period=str(period),
            anomaly_count=report.total_anomalies,
            risk_score=report.risk_score,
            major_anomalies=[a for a in report.anomalies if a.severity is Severity.HIGH],
            summary=insights.period_summary(report.anomalies),
        )
