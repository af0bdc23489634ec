"""Storage ports consumed by the billing-assistant engines.

The engines never reach a database directly; they await these
interfaces, which the infrastructure layer implements.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from domain.models.billing import Bill, UsageDailyRecord
from domain.models.catalog import AddOnPack, Plan, Subscriber


class BillRepository(Protocol):
    """Port: read access to issued bills."""

    async def get_bill(self, user_id: int, period: str) -> Bill | None: ...

    async def get_historical_bills(
        self,
        user_id: int,
        before_period: str,
        min_months: int,
    ) -> list[Bill]: ...

    async def get_bill_by_id(self, bill_id: str) -> Bill | None: ...

    async def list_bills(self, user_id: int, limit: int | None = None) -> list[Bill]: ...


class UsageRepository(Protocol):
    """Port: daily usage records."""

    async def get_daily_usage(
        self,
        user_id: int,
        period_start: date,
        period_end: date,
    ) -> list[UsageDailyRecord]: ...


class SubscriberRepository(Protocol):
    """Port: subscriber profiles."""

    async def get_user(self, user_id: int) -> Subscriber | None: ...


class CatalogRepository(Protocol):
    """Port: plan and add-on catalog."""

    async def get_plan(self, plan_id: int) -> Plan | None: ...

    async def get_add_on(self, addon_id: int) -> AddOnPack | None: ...
