"""What-if bill simulation service.

Rebuilds a bill total from its components under a hypothetical
scenario (plan swap, extra add-ons, VAS / premium SMS / roaming blocks)
and reports the difference against the bill actually issued.

Overage is not re-derived from daily usage. The quantities already
billed as overage on the current bill are treated as consumption on top
of any plan's quota and re-priced with the effective plan's rates. This
is a known approximation kept for compatibility with issued estimates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal

from application.services.ports import BillRepository, CatalogRepository, SubscriberRepository
from domain.exceptions.billing_exceptions import (
    AddOnNotFoundError,
    BillNotFoundError,
    InvalidScenarioError,
    PlanNotFoundError,
    UserNotFoundError,
)
from domain.models.billing import TENTHS, Bill, BillCategory, to_money
from domain.models.catalog import AddOnPack, Plan
from domain.models.what_if import (
    OverageCalculation,
    Scenario,
    ScenarioComparison,
    ScenarioOutcome,
    WhatIfResult,
)
from domain.services.billing_period import DEFAULT_MAX_AGE_MONTHS, BillingPeriod

logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE = Decimal("0.20")
ERRORED_RANK = 999
COMPARISON_DETAIL_LINES = 3


# ---------------------------------------------------------------------------
# Scenario classification
# ---------------------------------------------------------------------------


def scenario_type(scenario: Scenario) -> str:
    if scenario.plan_id is not None and scenario.addons is not None:
        return "comprehensive"
    if scenario.plan_id is not None:
        return "plan_change"
    if scenario.addons is not None:
        return "addon_only"
    if scenario.disable_vas or scenario.block_premium_sms:
        return "cost_reduction"
    return "optimization"


def assess_feasibility(scenario: Scenario) -> str:
    if scenario.plan_id is not None:
        return "conditional"
    if scenario.addons is not None and len(scenario.addons) > 3:
        return "conditional"
    return "high"


def assess_risk_level(scenario: Scenario) -> str:
    score = 0.0
    if scenario.plan_id is not None:
        score += 1
    if scenario.disable_vas:
        score += 0.5
    if scenario.enable_roaming_block:
        score += 2
    if score >= 2.5:
        return "high"
    if score >= 1.5:
        return "medium"
    return "low"


def scenario_name(scenario: Scenario) -> str:
    parts: list[str] = []
    if scenario.plan_id is not None:
        parts.append("Plan Change")
    if scenario.has_addons:
        parts.append(f"{len(scenario.addons or ())} Add-ons")
    if scenario.disable_vas:
        parts.append("VAS Cancellation")
    if scenario.block_premium_sms:
        parts.append("Premium SMS Block")
    if scenario.enable_roaming_block:
        parts.append("Roaming Block")
    return " + ".join(parts) if parts else "Custom Scenario"


def scenario_summary(scenario: Scenario) -> str:
    actions: list[str] = []
    if scenario.plan_id is not None:
        actions.append("a plan change")
    if scenario.addons is not None:
        actions.append(f"{len(scenario.addons)} add-on(s)")
    if scenario.disable_vas:
        actions.append("VAS cancellation")
    if scenario.block_premium_sms:
        actions.append("premium SMS blocking")
    if scenario.enable_roaming_block:
        actions.append("roaming blocking")
    if not actions:
        return "This scenario keeps all current services."
    return f"This scenario includes {', '.join(actions)}."


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------


@dataclass
class _BillRebuild:
    """Running state while a scenario bill is recomputed."""

    currency: str
    total: Decimal = Decimal("0")
    details: list[str] = field(default_factory=list)
    breakdown: dict[str, Decimal] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)

    def charge(self, key: str, amount: Decimal, detail: str | None = None) -> None:
        self.total += amount
        self.breakdown[key] = amount
        if detail:
            self.details.append(detail)

    def money(self, amount: Decimal) -> str:
        return f"{to_money(amount)} {self.currency}"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class WhatIfService:
    """Simulates alternative plan and add-on choices for a bill."""

    def __init__(
        self,
        bill_repo: BillRepository,
        subscriber_repo: SubscriberRepository,
        catalog_repo: CatalogRepository,
        *,
        clock: Callable[[], date] = date.today,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
        max_period_age_months: int = DEFAULT_MAX_AGE_MONTHS,
        max_scenarios: int = 5,
        max_addons: int = 5,
    ) -> None:
        self._bill_repo = bill_repo
        self._subscriber_repo = subscriber_repo
        self._catalog_repo = catalog_repo
        self._clock = clock
        self.tax_rate = tax_rate
        self.max_period_age_months = max_period_age_months
        self.max_scenarios = max_scenarios
        self.max_addons = max_addons

    # -- public API -------------------------------------------------------

    async def calculate_what_if(
        self,
        user_id: int,
        period: str,
        scenario: Scenario,
    ) -> WhatIfResult:
        """Recompute the bill for *period* under *scenario*.

        Raises :class:`BillNotFoundError`, :class:`UserNotFoundError` or
        :class:`PlanNotFoundError`. Absent scenario fields keep the current
        setup, so an empty scenario reproduces the current costs.
        """
        if scenario.addons is not None and len(scenario.addons) > self.max_addons:
            raise InvalidScenarioError(
                f"at most {self.max_addons} add-ons allowed, got {len(scenario.addons)}"
            )
        target = self._parse_period(period)
        bill, user = await asyncio.gather(
            self._bill_repo.get_bill(user_id, str(target)),
            self._subscriber_repo.get_user(user_id),
        )
        if bill is None:
            raise BillNotFoundError(user_id=user_id, period=str(target))
        if user is None:
            raise UserNotFoundError(user_id)
        current_plan = await self._active_plan(user.current_plan_id)

        rebuild, usage = await self._simulate(bill, current_plan, scenario)

        new_total = to_money(rebuild.total)
        saving = to_money(bill.total_amount - new_total)
        if bill.total_amount:
            saving_percent = (saving / bill.total_amount * 100).quantize(
                TENTHS, rounding=ROUND_HALF_UP
            )
        else:
            saving_percent = Decimal("0.0")

        logger.info(
            "What-if for user %s in %s: %s -> %s (saving %s)",
            user_id,
            target,
            bill.total_amount,
            new_total,
            saving,
        )
        return WhatIfResult(
            current_total=bill.total_amount,
            new_total=new_total,
            saving=saving,
            saving_percent=saving_percent,
            details=rebuild.details,
            breakdown=rebuild.breakdown,
            recommendations=rebuild.recommendations,
            risk_factors=rebuild.risk_factors,
            scenario_summary=scenario_summary(scenario),
            effective_date=BillingPeriod.containing(self._clock()).next().start,
            usage_analysis=usage,
        )

    async def compare_scenarios(
        self,
        user_id: int,
        period: str,
        scenarios: Sequence[Scenario],
    ) -> ScenarioComparison:
        """Simulate each scenario independently and rank them by saving."""
        if not 1 <= len(scenarios) <= self.max_scenarios:
            raise InvalidScenarioError(
                f"between 1 and {self.max_scenarios} scenarios required, got {len(scenarios)}"
            )

        target = self._parse_period(period)
        bill = await self._bill_repo.get_bill(user_id, str(target))
        if bill is None:
            raise BillNotFoundError(user_id=user_id, period=str(target))

        outcomes = list(
            await asyncio.gather(
                *(
                    self._outcome(index, user_id, str(target), scenario, bill)
                    for index, scenario in enumerate(scenarios, start=1)
                )
            )
        )

        ranked = sorted((o for o in outcomes if o.error is None), key=lambda o: o.saving, reverse=True)
        for rank, outcome in enumerate(ranked, start=1):
            outcome.rank = rank

        return ScenarioComparison(
            current_total=bill.total_amount,
            scenarios=outcomes,
            best_scenario=ranked[0] if ranked else None,
            comparison_summary=self._comparison_summary(ranked, bill.currency),
            analysis_date=datetime.now(UTC).isoformat(),
        )

    # -- simulation -------------------------------------------------------

    async def _simulate(
        self,
        bill: Bill,
        current_plan: Plan,
        scenario: Scenario,
    ) -> tuple[_BillRebuild, OverageCalculation]:
        rebuild = _BillRebuild(currency=bill.currency)

        # 1. Plan base fee
        effective_plan = current_plan
        if scenario.plan_id is not None and scenario.plan_id != current_plan.plan_id:
            effective_plan = await self._active_plan(scenario.plan_id)
            rebuild.charge(
                "plan",
                effective_plan.monthly_price,
                f"Plan change: {effective_plan.plan_name} -> "
                f"{rebuild.money(effective_plan.monthly_price)}",
            )
        else:
            rebuild.charge(
                "plan",
                current_plan.monthly_price,
                f"Current plan: {current_plan.plan_name} -> "
                f"{rebuild.money(current_plan.monthly_price)}",
            )

        # 2. Add-ons
        extra_gb = extra_min = extra_sms = Decimal("0")
        if scenario.has_addons:
            addon_cost = Decimal("0")
            for addon in await self._resolve_add_ons(scenario.addons or ()):
                if not addon.is_compatible_with(effective_plan.plan_id):
                    rebuild.risk_factors.append(
                        f"{addon.name} may not be compatible with {effective_plan.plan_name}"
                    )
                extra_gb += addon.extra_gb
                extra_min += addon.extra_min
                extra_sms += addon.extra_sms
                addon_cost += addon.price
                rebuild.details.append(f"Add-on: {addon.name} -> +{rebuild.money(addon.price)}")
            rebuild.charge("addons", addon_cost)

        # 3-4. Effective quotas and overage
        usage = self.calculate_overage(
            bill,
            effective_plan,
            quota_gb=effective_plan.quota_gb + extra_gb,
            quota_min=effective_plan.quota_min + extra_min,
            quota_sms=effective_plan.quota_sms + extra_sms,
        )
        if usage.data_overage > 0:
            rebuild.charge(
                "data_overage",
                usage.data_overage,
                f"Data overage: {usage.data_overage_gb}GB x {effective_plan.overage_gb} = "
                f"{rebuild.money(usage.data_overage)}",
            )
        if usage.voice_overage > 0:
            rebuild.charge(
                "voice_overage",
                usage.voice_overage,
                f"Voice overage: {usage.voice_overage_min}min x {effective_plan.overage_min} = "
                f"{rebuild.money(usage.voice_overage)}",
            )
        if usage.sms_overage > 0:
            rebuild.charge(
                "sms_overage",
                usage.sms_overage,
                f"SMS overage: {usage.sms_overage_count} x {effective_plan.overage_sms} = "
                f"{rebuild.money(usage.sms_overage)}",
            )

        # 5. VAS
        vas_cost = bill.category_total(BillCategory.VAS)
        if scenario.disable_vas:
            rebuild.details.append(f"VAS cancellation -> -{rebuild.money(vas_cost)} saving")
            rebuild.recommendations.append(
                "VAS cancellation has to be requested through customer support"
            )
        else:
            rebuild.charge(
                "vas",
                vas_cost,
                f"VAS carried forward -> +{rebuild.money(vas_cost)}" if vas_cost > 0 else None,
            )

        # 6. Premium SMS
        premium_cost = bill.category_total(BillCategory.PREMIUM_SMS)
        if scenario.block_premium_sms:
            rebuild.details.append(f"Premium SMS block -> -{rebuild.money(premium_cost)} saving")
            rebuild.recommendations.append("The premium SMS block can be activated free of charge")
        else:
            rebuild.charge(
                "premium_sms",
                premium_cost,
                f"Premium SMS carried forward -> +{rebuild.money(premium_cost)}"
                if premium_cost > 0
                else None,
            )

        # 7. Roaming
        roaming_cost = bill.category_total(BillCategory.ROAMING)
        if scenario.enable_roaming_block:
            if roaming_cost > 0:
                rebuild.details.append(f"Roaming block -> -{rebuild.money(roaming_cost)} saving")
                rebuild.recommendations.append("The roaming block can be lifted before travelling")
        else:
            rebuild.charge(
                "roaming",
                roaming_cost,
                f"Roaming carried forward -> +{rebuild.money(roaming_cost)}"
                if roaming_cost > 0
                else None,
            )

        # 8. One-off charges and discounts are never affected by a scenario
        one_off = bill.category_total(BillCategory.ONE_OFF)
        discount = abs(bill.category_total(BillCategory.DISCOUNT))
        rebuild.total += one_off - discount
        if one_off > 0:
            rebuild.breakdown["one_off"] = one_off
            rebuild.details.append(f"One-off charges -> +{rebuild.money(one_off)}")
        if discount > 0:
            rebuild.breakdown["discount"] = -discount
            rebuild.details.append(f"Discounts -> -{rebuild.money(discount)}")

        # 9. Tax on everything above
        taxes = to_money(rebuild.total * self.tax_rate)
        rebuild.charge(
            "taxes",
            taxes,
            f"Taxes ({self.tax_rate * 100:g}% VAT) -> +{rebuild.money(taxes)}",
        )

        # 10. Recommendations
        self._add_recommendations(scenario, usage, rebuild.recommendations)
        return rebuild, usage

    @staticmethod
    def calculate_overage(
        bill: Bill,
        plan: Plan,
        *,
        quota_gb: Decimal,
        quota_min: Decimal,
        quota_sms: Decimal,
    ) -> OverageCalculation:
        """Re-price the bill's realised overage against new quotas."""
        observed_gb = bill.overage_quantity("data_overage")
        observed_min = bill.overage_quantity("voice_overage")
        observed_sms = bill.overage_quantity("sms_overage")

        total_gb = quota_gb + observed_gb
        total_min = quota_min + observed_min
        total_sms = quota_sms + observed_sms

        data_gb = max(Decimal("0"), total_gb - quota_gb)
        voice_min = max(Decimal("0"), total_min - quota_min)
        sms_count = max(Decimal("0"), total_sms - quota_sms)

        return OverageCalculation(
            data_overage_gb=data_gb,
            voice_overage_min=voice_min,
            sms_overage_count=sms_count,
            data_overage=to_money(data_gb * plan.overage_gb),
            voice_overage=to_money(voice_min * plan.overage_min),
            sms_overage=to_money(sms_count * plan.overage_sms),
            effective_quotas={"gb": quota_gb, "minutes": quota_min, "sms": quota_sms},
        )

    @staticmethod
    def _add_recommendations(
        scenario: Scenario,
        usage: OverageCalculation,
        recommendations: list[str],
    ) -> None:
        if usage.data_overage == 0 and usage.voice_overage == 0:
            recommendations.append("All data and voice overage charges are eliminated")
        if scenario.plan_id is not None:
            recommendations.append("A plan change takes effect from the next billing period")
        if scenario.has_addons:
            recommendations.append("Add-ons can be activated immediately")
        if usage.data_overage > 0:
            recommendations.append(
                "Data overage remains; consider a plan with a larger data quota"
            )

    # -- helpers ----------------------------------------------------------

    def _parse_period(self, period: str) -> BillingPeriod:
        return BillingPeriod.parse(period, self._clock(), self.max_period_age_months)

    async def _active_plan(self, plan_id: int) -> Plan:
        plan = await self._catalog_repo.get_plan(plan_id)
        if plan is None or not plan.is_active:
            raise PlanNotFoundError(plan_id)
        return plan

    async def _resolve_add_ons(self, addon_ids: Sequence[int]) -> list[AddOnPack]:
        """Resolve add-ons concurrently, skipping any that cannot be found."""
        results = await asyncio.gather(
            *(self._catalog_repo.get_add_on(addon_id) for addon_id in addon_ids),
            return_exceptions=True,
        )

        resolved: list[AddOnPack] = []
        for addon_id, result in zip(addon_ids, results):
            if isinstance(result, Exception):
                logger.warning("Add-on %s lookup failed: %s", addon_id, result)
            elif isinstance(result, BaseException):
                raise result
            elif result is None or not result.is_active:
                logger.warning("%s; skipping", AddOnNotFoundError(addon_id).detail)
            else:
                resolved.append(result)
        return resolved

    async def _outcome(
        self,
        index: int,
        user_id: int,
        period: str,
        scenario: Scenario,
        bill: Bill,
    ) -> ScenarioOutcome:
        try:
            result = await self.calculate_what_if(user_id, period, scenario)
        except Exception as exc:
            logger.warning("Scenario %d for user %s failed: %s", index, user_id, exc)
            return ScenarioOutcome(
                id=index,
                name=f"Scenario {index}",
                total=bill.total_amount,
                saving=Decimal("0"),
                rank=ERRORED_RANK,
                error=str(exc),
            )

        return ScenarioOutcome(
            id=index,
            name=scenario_name(scenario),
            total=result.new_total,
            saving=result.saving,
            saving_percent=result.saving_percent,
            details=result.details[:COMPARISON_DETAIL_LINES],
            scenario_type=scenario_type(scenario),
            feasibility=assess_feasibility(scenario),
            risk_level=assess_risk_level(scenario),
        )

    @staticmethod
    def _comparison_summary(ranked: Sequence[ScenarioOutcome], currency: str) -> str:
        if not ranked:
            return "No scenario could be calculated"
        best = ranked[0].saving
        worst = ranked[-1].saving
        return (
            f"The best scenario saves {to_money(best)} {currency}. "
            f"Scenarios differ by {to_money(best - worst)} {currency}."
        )
