"""Bill lookup service.

Read path over :class:`BillRepository` used by the bill endpoints. Adds
the category breakdown and usage counters the assistant UI renders next
to a bill, the month-over-month bill history and the list of periods a
subscriber has bills for.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from application.services.ports import BillRepository
from domain.exceptions.billing_exceptions import BillNotFoundError
from domain.models.billing import TENTHS, Bill, BillCategory
from domain.services.billing_period import DEFAULT_MAX_AGE_MONTHS, BillingPeriod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillUsageStats:
    """Quantities read off the bill items (not off daily usage)."""

    overage_gb: Decimal = Decimal("0")
    overage_minutes: Decimal = Decimal("0")
    overage_sms: Decimal = Decimal("0")
    roaming_mb: Decimal = Decimal("0")
    premium_sms_count: Decimal = Decimal("0")
    vas_count: int = 0


@dataclass(frozen=True)
class BillView:
    """A bill together with its per-category totals and shares."""

    bill: Bill
    category_breakdown: dict[str, dict[str, Any]] = field(default_factory=dict)
    usage_stats: BillUsageStats = field(default_factory=BillUsageStats)


@dataclass(frozen=True)
class BillHistoryEntry:
    period: str
    bill_id: str
    total_amount: Decimal
    change_percent: Decimal


@dataclass(frozen=True)
class BillPeriod:
    period: str
    bill_id: str
    period_start: date
    period_end: date
    total_amount: Decimal


def usage_stats(bill: Bill) -> BillUsageStats:
    overage_gb = overage_minutes = overage_sms = Decimal("0")
    roaming_mb = premium_sms_count = Decimal("0")
    vas_count = 0
    for item in bill.items:
        if item.category is BillCategory.DATA and item.subtype == "data_overage":
            overage_gb += item.quantity
        elif item.category is BillCategory.VOICE and item.subtype == "voice_overage":
            overage_minutes += item.quantity
        elif item.category is BillCategory.SMS and item.subtype == "sms_overage":
            overage_sms += item.quantity
        elif item.category is BillCategory.ROAMING:
            roaming_mb += item.quantity
        elif item.category is BillCategory.PREMIUM_SMS:
            premium_sms_count += item.quantity
        elif item.category is BillCategory.VAS:
            vas_count += 1
    return BillUsageStats(
        overage_gb=overage_gb,
        overage_minutes=overage_minutes,
        overage_sms=overage_sms,
        roaming_mb=roaming_mb,
        premium_sms_count=premium_sms_count,
        vas_count=vas_count,
    )


def change_percent(current: Decimal, previous: Decimal) -> Decimal:
    """Relative change against the previous bill, one decimal place."""
    if not previous:
        return Decimal("0.0")
    return ((current - previous) / previous * 100).quantize(TENTHS, rounding=ROUND_HALF_UP)


def _view(bill: Bill) -> BillView:
    return BillView(
        bill=bill,
        category_breakdown=bill.category_breakdown(),
        usage_stats=usage_stats(bill),
    )


class BillService:
    def __init__(
        self,
        bill_repo: BillRepository,
        *,
        clock: Callable[[], date] = date.today,
        max_period_age_months: int = DEFAULT_MAX_AGE_MONTHS,
    ) -> None:
        self._bill_repo = bill_repo
        self._clock = clock
        self.max_period_age_months = max_period_age_months

    async def get_bill(self, user_id: int, period: str) -> BillView:
        """Return the bill a user received for *period* (``YYYY-MM``)."""
        target = BillingPeriod.parse(period, self._clock(), self.max_period_age_months)
        bill = await self._bill_repo.get_bill(user_id, str(target))
        if bill is None:
            raise BillNotFoundError(user_id=user_id, period=str(target))
        logger.debug("Loaded bill %s for user %s", bill.bill_id, user_id)
        return _view(bill)

    async def get_bill_by_id(self, bill_id: str) -> BillView:
        bill = await self._bill_repo.get_bill_by_id(bill_id)
        if bill is None:
            raise BillNotFoundError(bill_id=bill_id)
        return _view(bill)

    async def get_bill_history(self, user_id: int, months: int = 6) -> list[BillHistoryEntry]:
        """The *months* most recent bills, newest first, each compared with
        the bill before it. The oldest entry reports no change."""
        if not 1 <= months <= self.max_period_age_months:
            raise ValueError(f"months must be between 1 and {self.max_period_age_months}")
        bills = await self._bill_repo.list_bills(user_id, months)
        history = []
        for index, bill in enumerate(bills):
            previous = bills[index + 1] if index + 1 < len(bills) else None
            history.append(
                BillHistoryEntry(
                    period=str(BillingPeriod.containing(bill.period_start)),
                    bill_id=bill.bill_id,
                    total_amount=bill.total_amount,
                    change_percent=(
                        change_percent(bill.total_amount, previous.total_amount)
                        if previous is not None
                        else Decimal("0.0")
                    ),
                )
            )
        return history

    async def get_available_periods(self, user_id: int) -> list[BillPeriod]:
        """Every period the user has a bill for, newest first."""
        return [
            BillPeriod(
                period=str(BillingPeriod.containing(bill.period_start)),
                bill_id=bill.bill_id,
                period_start=bill.period_start,
                period_end=bill.period_end,
                total_amount=bill.total_amount,
            )
            for bill in await self._bill_repo.list_bills(user_id)
        ]
