"""Demo catalog, subscriber and bill data for local runs and load tests.

Loaded into the in-memory adapters when ``APP_SEED_DEMO_DATA`` is set.
Bills cover the four months up to the current one; the latest month
carries a data overage and a premium SMS charge so the anomaly and
what-if endpoints have something to report.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from domain.models.billing import Bill, BillCategory, BillItem, UsageDailyRecord, to_money
from domain.models.catalog import AddOnPack, Plan, Subscriber
from domain.services.billing_period import BillingPeriod
from infrastructure.adapters import (
    InMemoryBillRepository,
    InMemoryCatalogRepository,
    InMemorySubscriberRepository,
    InMemoryUsageRepository,
)

logger = logging.getLogger(__name__)

DEMO_USER_ID = 1001

DEMO_PLANS = (
    Plan(
        plan_id=1,
        plan_name="Basic 10GB",
        quota_gb=Decimal("10"),
        quota_min=Decimal("500"),
        quota_sms=Decimal("250"),
        monthly_price=Decimal("79.90"),
        overage_gb=Decimal("8.50"),
        overage_min=Decimal("0.45"),
        overage_sms=Decimal("0.25"),
    ),
    Plan(
        plan_id=2,
        plan_name="Smart 20GB",
        quota_gb=Decimal("20"),
        quota_min=Decimal("1000"),
        quota_sms=Decimal("500"),
        monthly_price=Decimal("119.90"),
        overage_gb=Decimal("7.50"),
        overage_min=Decimal("0.40"),
        overage_sms=Decimal("0.20"),
    ),
    Plan(
        plan_id=3,
        plan_name="Unlimited 50GB",
        quota_gb=Decimal("50"),
        quota_min=Decimal("3000"),
        quota_sms=Decimal("1000"),
        monthly_price=Decimal("189.90"),
        overage_gb=Decimal("5.00"),
        overage_min=Decimal("0.30"),
        overage_sms=Decimal("0.15"),
    ),
)

DEMO_ADD_ONS = (
    AddOnPack(addon_id=101, name="Extra 5GB", extra_gb=Decimal("5"), price=Decimal("29.90")),
    AddOnPack(
        addon_id=102,
        name="Voice 500",
        type="voice",
        extra_min=Decimal("500"),
        price=Decimal("19.90"),
        compatible_plans=(1, 2),
    ),
    AddOnPack(
        addon_id=103,
        name="Social 10GB",
        extra_gb=Decimal("10"),
        price=Decimal("39.90"),
        compatible_plans=(2, 3),
    ),
)


def _bill(period: BillingPeriod, items: list[BillItem], tax_rate: Decimal) -> Bill:
    subtotal = sum((i.amount for i in items), Decimal("0"))
    taxes = to_money(subtotal * tax_rate)
    return Bill(
        bill_id=f"B-{DEMO_USER_ID}-{period}",
        user_id=DEMO_USER_ID,
        period_start=period.start,
        period_end=period.end,
        subtotal=subtotal,
        taxes=taxes,
        total_amount=to_money(subtotal + taxes),
        items=tuple(items),
    )


def demo_bills(today: date, tax_rate: Decimal = Decimal("0.20")) -> list[Bill]:
    current = BillingPeriod.containing(today)
    fee = BillItem(
        category=BillCategory.DATA,
        subtype="monthly_fee",
        description="Basic 10GB monthly fee",
        amount=Decimal("79.90"),
        unit_price=Decimal("79.90"),
        quantity=Decimal("1"),
    )
    vas = BillItem(
        category=BillCategory.VAS,
        subtype="music",
        description="Music streaming",
        amount=Decimal("9.90"),
        unit_price=Decimal("9.90"),
        quantity=Decimal("1"),
    )

    bills = [_bill(current.shift(-offset), [fee, vas], tax_rate) for offset in (3, 2, 1)]
    bills.append(
        _bill(
            current,
            [
                fee,
                vas,
                BillItem(
                    category=BillCategory.DATA,
                    subtype="data_overage",
                    description="Data overage",
                    amount=Decimal("25.50"),
                    unit_price=Decimal("8.50"),
                    quantity=Decimal("3"),
                ),
                BillItem(
                    category=BillCategory.PREMIUM_SMS,
                    subtype="premium_sms",
                    description="Premium SMS 3838",
                    amount=Decimal("59.70"),
                    unit_price=Decimal("19.90"),
                    quantity=Decimal("3"),
                ),
            ],
            tax_rate,
        )
    )
    return bills


def demo_usage(today: date) -> list[UsageDailyRecord]:
    current = BillingPeriod.containing(today)
    records = []
    for day in range(1, today.day + 1):
        records.append(
            UsageDailyRecord(
                user_id=DEMO_USER_ID,
                usage_date=date(current.year, current.month, day),
                mb_used=2400.0 if day == 1 else 400.0,
                minutes_used=12.0,
                sms_used=3,
            )
        )
    return records


def seed_demo_data(
    bill_repo: InMemoryBillRepository,
    usage_repo: InMemoryUsageRepository,
    subscriber_repo: InMemorySubscriberRepository,
    catalog_repo: InMemoryCatalogRepository,
    *,
    today: date,
    tax_rate: Decimal = Decimal("0.20"),
) -> None:
    for plan in DEMO_PLANS:
        catalog_repo.save_plan(plan)
    for add_on in DEMO_ADD_ONS:
        catalog_repo.save_add_on(add_on)
    subscriber_repo.save(
        Subscriber(
            user_id=DEMO_USER_ID,
            name="Demo Subscriber",
            msisdn="905551112233",
            current_plan_id=1,
            active_vas=("music",),
        )
    )
    bill_repo.save_many(demo_bills(today, tax_rate))
    usage_repo.save_many(demo_usage(today))
    logger.info("Seeded demo data for user %s", DEMO_USER_ID)
