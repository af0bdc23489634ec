"""Unit tests for WhatIfService: bill recomputation and scenario ranking."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from application.services.what_if_service import (
    WhatIfService,
    assess_feasibility,
    assess_risk_level,
    scenario_name,
    scenario_type,
)
from domain.exceptions.billing_exceptions import (
    BillNotFoundError,
    InvalidScenarioError,
    PlanNotFoundError,
    UserNotFoundError,
)
from domain.models.billing import BillCategory
from domain.models.what_if import Scenario
from factories import clock, make_bill, make_item

USER = 1001
PERIOD = "2026-10"


@pytest.fixture
def full_bill(bill_repo):
    """Plan fee, 3GB overage, VAS and premium SMS: 175.00 + 35.00 tax."""
    return bill_repo.save(
        make_bill(
            PERIOD,
            make_item(BillCategory.DATA, "79.90", subtype="monthly_fee"),
            make_item(
                BillCategory.DATA, "25.50", subtype="data_overage", quantity="3", unit_price="8.50"
            ),
            make_item(BillCategory.VAS, "9.90"),
            make_item(BillCategory.PREMIUM_SMS, "59.70"),
        )
    )


@pytest.fixture
def plain_bill(bill_repo):
    return bill_repo.save(
        make_bill(PERIOD, make_item(BillCategory.DATA, "79.90", subtype="monthly_fee"))
    )


# ---------------------------------------------------------------------------
# calculate_what_if
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestCalculateWhatIf:
    async def test_empty_scenario_reproduces_current_bill(self, what_if_service, full_bill):
        result = await what_if_service.calculate_what_if(USER, PERIOD, Scenario())

        assert full_bill.total_amount == Decimal("210.00")
        assert result.new_total == Decimal("210.00")
        assert result.saving == Decimal("0.00")
        assert result.saving_percent == Decimal("0.0")
        assert result.breakdown["plan"] == Decimal("79.90")
        assert result.breakdown["data_overage"] == Decimal("25.50")
        assert result.breakdown["vas"] == Decimal("9.90")
        assert result.breakdown["premium_sms"] == Decimal("59.70")
        assert result.breakdown["taxes"] == Decimal("35.00")
        assert result.scenario_summary == "This scenario keeps all current services."

    async def test_cheaper_plan_without_overage(self, what_if_service, plain_bill):
        result = await what_if_service.calculate_what_if(USER, PERIOD, Scenario(plan_id=4))

        assert result.new_total == Decimal("49.90") * Decimal("1.2")
        assert result.current_total == Decimal("95.88")
        assert result.saving == Decimal("36.00")
        assert result.saving_percent == Decimal("37.5")
        assert result.details[0].startswith("Plan change: Lite 5GB")
        assert "All data and voice overage charges are eliminated" in result.recommendations

    async def test_plan_change_reprices_overage(self, what_if_service, full_bill):
        result = await what_if_service.calculate_what_if(USER, PERIOD, Scenario(plan_id=2))

        # 3GB charged at the new plan's 7.50/GB
        assert result.breakdown["data_overage"] == Decimal("22.50")
        assert result.usage_analysis.data_overage_gb == Decimal("3")
        assert result.usage_analysis.effective_quotas["gb"] == Decimal("20")
        assert result.new_total == Decimal("230.40")
        assert result.saving == Decimal("-20.40")

    async def test_blocks_remove_charges(self, what_if_service, full_bill):
        result = await what_if_service.calculate_what_if(
            USER, PERIOD, Scenario(disable_vas=True, block_premium_sms=True)
        )

        assert "vas" not in result.breakdown
        assert "premium_sms" not in result.breakdown
        assert result.new_total == Decimal("126.48")
        assert result.saving == Decimal("83.52")
        assert result.saving_percent == Decimal("39.8")
        assert any("VAS cancellation" in d for d in result.details)
        assert any("premium SMS block" in r for r in result.recommendations)

    async def test_roaming_block(self, what_if_service, bill_repo):
        bill_repo.save(
            make_bill(
                PERIOD,
                make_item(BillCategory.DATA, "79.90", subtype="monthly_fee"),
                make_item(BillCategory.ROAMING, "40.00"),
            )
        )

        kept = await what_if_service.calculate_what_if(USER, PERIOD, Scenario())
        blocked = await what_if_service.calculate_what_if(
            USER, PERIOD, Scenario(enable_roaming_block=True)
        )

        assert kept.breakdown["roaming"] == Decimal("40.00")
        assert blocked.saving == Decimal("48.00")

    async def test_one_off_and_discount_carry_over(self, what_if_service, bill_repo):
        bill_repo.save(
            make_bill(
                PERIOD,
                make_item(BillCategory.DATA, "79.90", subtype="monthly_fee"),
                make_item(BillCategory.ONE_OFF, "15.00"),
                make_item(BillCategory.DISCOUNT, "-10.00"),
            )
        )

        result = await what_if_service.calculate_what_if(USER, PERIOD, Scenario())

        assert result.breakdown["one_off"] == Decimal("15.00")
        assert result.breakdown["discount"] == Decimal("-10.00")
        assert result.saving == Decimal("0.00")

    async def test_addons(self, what_if_service, plain_bill):
        result = await what_if_service.calculate_what_if(
            USER, PERIOD, Scenario(addons=(101, 102))
        )

        assert result.breakdown["addons"] == Decimal("49.80")
        assert result.usage_analysis.effective_quotas["gb"] == Decimal("15")
        assert result.usage_analysis.effective_quotas["minutes"] == Decimal("1000")
        assert result.risk_factors == []
        assert "Add-ons can be activated immediately" in result.recommendations

    async def test_incompatible_addon_is_a_risk_factor(self, what_if_service, plain_bill):
        result = await what_if_service.calculate_what_if(
            USER, PERIOD, Scenario(plan_id=2, addons=(102,))
        )

        assert len(result.risk_factors) == 1
        assert "Voice 500" in result.risk_factors[0]

    async def test_missing_addons_are_skipped(self, what_if_service, plain_bill):
        result = await what_if_service.calculate_what_if(
            USER, PERIOD, Scenario(addons=(999, 103, 101))
        )

        assert result.breakdown["addons"] == Decimal("29.90")
        assert sum(1 for d in result.details if d.startswith("Add-on")) == 1

    async def test_same_plan_is_not_a_change(self, what_if_service, plain_bill):
        result = await what_if_service.calculate_what_if(USER, PERIOD, Scenario(plan_id=1))
        assert result.saving == Decimal("0.00")
        assert not any(d.startswith("Plan change") for d in result.details)

    async def test_idempotent(self, what_if_service, full_bill):
        scenario = Scenario(plan_id=2, addons=(101,), block_premium_sms=True)
        first = await what_if_service.calculate_what_if(USER, PERIOD, scenario)
        second = await what_if_service.calculate_what_if(USER, PERIOD, scenario)
        assert first == second

    async def test_effective_date_is_next_month(self, what_if_service, plain_bill):
        result = await what_if_service.calculate_what_if(USER, PERIOD, Scenario())
        assert result.effective_date == date(2026, 11, 1)

    async def test_configurable_tax(self, bill_repo, subscriber_repo, catalog_repo, plain_bill):
        service = WhatIfService(
            bill_repo, subscriber_repo, catalog_repo, clock=clock, tax_rate=Decimal("0.18")
        )
        result = await service.calculate_what_if(USER, PERIOD, Scenario())
        assert result.breakdown["taxes"] == Decimal("14.38")

    async def test_carried_forward_costs_are_itemised(self, what_if_service, full_bill):
        result = await what_if_service.calculate_what_if(USER, PERIOD, Scenario())

        assert "VAS carried forward -> +9.90 TRY" in result.details
        assert "Premium SMS carried forward -> +59.70 TRY" in result.details
        assert not any(d.startswith("Roaming") for d in result.details)

    async def test_addon_limit(self, bill_repo, subscriber_repo, catalog_repo, plain_bill):
        service = WhatIfService(
            bill_repo, subscriber_repo, catalog_repo, clock=clock, max_addons=1
        )
        with pytest.raises(InvalidScenarioError):
            await service.calculate_what_if(USER, PERIOD, Scenario(addons=(101, 102)))

    async def test_unknown_plan(self, what_if_service, plain_bill):
        with pytest.raises(PlanNotFoundError) as exc_info:
            await what_if_service.calculate_what_if(USER, PERIOD, Scenario(plan_id=77))
        assert exc_info.value.plan_id == 77

    async def test_inactive_plan(self, what_if_service, plain_bill):
        with pytest.raises(PlanNotFoundError):
            await what_if_service.calculate_what_if(USER, PERIOD, Scenario(plan_id=3))

    async def test_bill_not_found(self, what_if_service):
        with pytest.raises(BillNotFoundError):
            await what_if_service.calculate_what_if(USER, PERIOD, Scenario())

    async def test_user_not_found(self, what_if_service, bill_repo):
        bill_repo.save(make_bill(PERIOD, make_item(BillCategory.DATA, "10"), user_id=2002))
        with pytest.raises(UserNotFoundError):
            await what_if_service.calculate_what_if(2002, PERIOD, Scenario())


# ---------------------------------------------------------------------------
# compare_scenarios
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestCompareScenarios:
    async def test_ranks_by_saving(self, what_if_service, full_bill):
        comparison = await what_if_service.compare_scenarios(
            USER,
            PERIOD,
            [
                Scenario(disable_vas=True),
                Scenario(plan_id=3),
                Scenario(block_premium_sms=True),
            ],
        )

        by_id = {s.id: s for s in comparison.scenarios}
        assert by_id[3].rank == 1
        assert by_id[3].saving == Decimal("71.64")
        assert by_id[1].rank == 2
        assert by_id[1].saving == Decimal("11.88")
        assert by_id[2].rank == 999
        assert "3" in by_id[2].error
        assert comparison.best_scenario is by_id[3]
        assert comparison.current_total == Decimal("210.00")
        assert "71.64" in comparison.comparison_summary

    async def test_outcome_metadata(self, what_if_service, full_bill):
        comparison = await what_if_service.compare_scenarios(
            USER, PERIOD, [Scenario(plan_id=2, addons=(101,))]
        )

        outcome = comparison.scenarios[0]
        assert outcome.name == "Plan Change + 1 Add-ons"
        assert outcome.scenario_type == "comprehensive"
        assert outcome.feasibility == "conditional"
        assert outcome.risk_level == "low"
        assert len(outcome.details) <= 3

    async def test_all_failed(self, what_if_service, full_bill):
        comparison = await what_if_service.compare_scenarios(USER, PERIOD, [Scenario(plan_id=3)])
        assert comparison.best_scenario is None
        assert comparison.comparison_summary == "No scenario could be calculated"

    async def test_bill_must_exist(self, what_if_service):
        with pytest.raises(BillNotFoundError):
            await what_if_service.compare_scenarios(USER, PERIOD, [Scenario()])

    @pytest.mark.parametrize("count", [0, 6])
    async def test_scenario_count(self, what_if_service, full_bill, count):
        with pytest.raises(InvalidScenarioError):
            await what_if_service.compare_scenarios(USER, PERIOD, [Scenario()] * count)


# ---------------------------------------------------------------------------
# Classification helpers
# ---------------------------------------------------------------------------


class TestClassification:
    @pytest.mark.parametrize(
        ("scenario", "expected"),
        [
            (Scenario(plan_id=2, addons=()), "comprehensive"),
            (Scenario(plan_id=2), "plan_change"),
            (Scenario(addons=(101,)), "addon_only"),
            (Scenario(disable_vas=True), "cost_reduction"),
            (Scenario(block_premium_sms=True), "cost_reduction"),
            (Scenario(enable_roaming_block=True), "optimization"),
        ],
    )
    def test_scenario_type(self, scenario, expected):
        assert scenario_type(scenario) == expected

    def test_feasibility(self):
        assert assess_feasibility(Scenario(plan_id=2)) == "conditional"
        assert assess_feasibility(Scenario(addons=(1, 2, 3, 4))) == "conditional"
        assert assess_feasibility(Scenario(addons=(1, 2, 3))) == "high"

    def test_risk_level(self):
        assert assess_risk_level(Scenario(plan_id=2, enable_roaming_block=True)) == "high"
        assert assess_risk_level(Scenario(plan_id=2, disable_vas=True)) == "medium"
        assert assess_risk_level(Scenario(disable_vas=True)) == "low"

    def test_name(self):
        assert scenario_name(Scenario()) == "Custom Scenario"
        assert (
            scenario_name(Scenario(disable_vas=True, enable_roaming_block=True))
            == "VAS Cancellation + Roaming Block"
        )
