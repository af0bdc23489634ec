"""Adapter implementations bridging infrastructure to application-layer ports.

Provides async in-memory repositories for bills, daily usage,
subscribers and the plan / add-on catalog. They satisfy the protocols in
:mod:`application.services.ports` and back the default container.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from domain.models.billing import Bill, UsageDailyRecord
from domain.models.catalog import AddOnPack, Plan, Subscriber
from domain.services.billing_period import BillingPeriod

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# In-memory repository adapters (swap for real DB repos in production)
# ---------------------------------------------------------------------------

class InMemoryBillRepository:
    """In-memory bill store keyed by bill id."""

    def __init__(self) -> None:
        self._bills: dict[str, Bill] = {}

    def save(self, bill: Bill) -> Bill:
        self._bills[bill.bill_id] = bill
        return bill

    def save_many(self, bills: list[Bill]) -> list[Bill]:
        for bill in bills:
            self.save(bill)
        return bills

    async def get_bill(self, user_id: int, period: str) -> Optional[Bill]:
        for bill in self._bills.values():
            if bill.user_id == user_id and str(BillingPeriod.containing(bill.period_start)) == period:
                return bill
        return None

    async def get_historical_bills(
        self, user_id: int, before_period: str, min_months: int
    ) -> list[Bill]:
        """Up to *min_months* most recent bills strictly before *before_period*."""
        earlier = [
            b
            for b in self._bills.values()
            if b.user_id == user_id
            and str(BillingPeriod.containing(b.period_start)) < before_period
        ]
        earlier.sort(key=lambda b: b.period_start, reverse=True)
        return earlier[:min_months]

    async def get_bill_by_id(self, bill_id: str) -> Optional[Bill]:
        return self._bills.get(bill_id)

    async def list_bills(self, user_id: int, limit: Optional[int] = None) -> list[Bill]:
        """A user's bills, newest first."""
        bills = sorted(
            (b for b in self._bills.values() if b.user_id == user_id),
            key=lambda b: b.period_start,
            reverse=True,
        )
        return bills if limit is None else bills[:limit]


class InMemoryUsageRepository:
    """In-memory daily usage store."""

    def __init__(self) -> None:
        self._records: list[UsageDailyRecord] = []

    def save(self, record: UsageDailyRecord) -> UsageDailyRecord:
        self._records.append(record)
        return record

    def save_many(self, records: list[UsageDailyRecord]) -> list[UsageDailyRecord]:
        self._records.extend(records)
        return records

    async def get_daily_usage(
        self, user_id: int, period_start: date, period_end: date
    ) -> list[UsageDailyRecord]:
        return sorted(
            (
                r
                for r in self._records
                if r.user_id == user_id and period_start <= r.usage_date <= period_end
            ),
            key=lambda r: r.usage_date,
        )


class InMemorySubscriberRepository:
    """In-memory subscriber store."""

    def __init__(self) -> None:
        self._store: dict[int, Subscriber] = {}

    def save(self, subscriber: Subscriber) -> Subscriber:
        self._store[subscriber.user_id] = subscriber
        return subscriber

    async def get_user(self, user_id: int) -> Optional[Subscriber]:
        return self._store.get(user_id)


class InMemoryCatalogRepository:
    """In-memory plan and add-on catalog.

    Lookups only return active entries; retired plans and packs behave as
    missing.
    """

    def __init__(self) -> None:
        self._plans: dict[int, Plan] = {}
        self._add_ons: dict[int, AddOnPack] = {}

    def save_plan(self, plan: Plan) -> Plan:
        self._plans[plan.plan_id] = plan
        return plan

    def save_add_on(self, add_on: AddOnPack) -> AddOnPack:
        self._add_ons[add_on.addon_id] = add_on
        return add_on

    async def get_plan(self, plan_id: int) -> Optional[Plan]:
        plan = self._plans.get(plan_id)
        if plan is None or not plan.is_active:
            return None
        return plan

    async def get_add_on(self, addon_id: int) -> Optional[AddOnPack]:
        add_on = self._add_ons.get(addon_id)
        if add_on is None or not add_on.is_active:
            return None
        return add_on
