"""Tests for infrastructure.adapters."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from domain.models.billing import BillCategory
from domain.models.catalog import AddOnPack, Plan
from factories import make_bill, make_item, make_usage


@pytest.mark.asyncio
class TestInMemoryBillRepository:
    async def test_get_bill_by_period(self, bill_repo):
        bill = bill_repo.save(make_bill("2026-09", make_item(BillCategory.DATA, "10")))
        assert await bill_repo.get_bill(1001, "2026-09") == bill
        assert await bill_repo.get_bill(1001, "2026-08") is None
        assert await bill_repo.get_bill(2002, "2026-09") is None

    async def test_historical_bills_newest_first_and_limited(self, bill_repo):
        for period in ("2026-05", "2026-06", "2026-07", "2026-08", "2026-09"):
            bill_repo.save(make_bill(period))
        bill_repo.save(make_bill("2026-06", user_id=2002))

        bills = await bill_repo.get_historical_bills(1001, "2026-09", 3)

        assert [b.bill_id for b in bills] == ["B-1001-2026-08", "B-1001-2026-07", "B-1001-2026-06"]

    async def test_get_bill_by_id(self, bill_repo):
        bill_repo.save(make_bill("2026-09"))
        assert (await bill_repo.get_bill_by_id("B-1001-2026-09")).user_id == 1001
        assert await bill_repo.get_bill_by_id("nope") is None


@pytest.mark.asyncio
class TestInMemoryUsageRepository:
    async def test_range_is_inclusive_and_sorted(self, usage_repo):
        usage_repo.save_many(
            [
                make_usage(date(2026, 10, 31)),
                make_usage(date(2026, 10, 1)),
                make_usage(date(2026, 11, 1)),
                make_usage(date(2026, 9, 30)),
            ]
        )

        records = await usage_repo.get_daily_usage(1001, date(2026, 10, 1), date(2026, 10, 31))

        assert [r.usage_date.day for r in records] == [1, 31]


@pytest.mark.asyncio
class TestInMemoryCatalogRepository:
    async def test_inactive_plan_is_missing(self, catalog_repo):
        assert await catalog_repo.get_plan(3) is None
        assert (await catalog_repo.get_plan(1)).plan_name == "Basic 10GB"

    async def test_inactive_add_on_is_missing(self, catalog_repo):
        assert await catalog_repo.get_add_on(103) is None
        assert (await catalog_repo.get_add_on(101)).price == Decimal("29.90")

    async def test_save_overwrites(self, catalog_repo):
        catalog_repo.save_plan(Plan(plan_id=1, plan_name="Renamed"))
        catalog_repo.save_add_on(AddOnPack(addon_id=101, name="Renamed pack"))
        assert (await catalog_repo.get_plan(1)).plan_name == "Renamed"
        assert (await catalog_repo.get_add_on(101)).name == "Renamed pack"


@pytest.mark.asyncio
class TestInMemorySubscriberRepository:
    async def test_lookup(self, subscriber_repo):
        assert (await subscriber_repo.get_user(1001)).current_plan_id == 1
        assert await subscriber_repo.get_user(9) is None


@pytest.mark.asyncio
class TestListBills:
    async def test_newest_first_for_one_user(self, bill_repo):
        for period in ("2026-07", "2026-09", "2026-08"):
            bill_repo.save(make_bill(period))
        bill_repo.save(make_bill("2026-10", user_id=2002))

        bills = await bill_repo.list_bills(1001)

        assert [b.bill_id for b in bills] == ["B-1001-2026-09", "B-1001-2026-08", "B-1001-2026-07"]

    async def test_limit(self, bill_repo):
        for period in ("2026-07", "2026-08", "2026-09"):
            bill_repo.save(make_bill(period))

        assert len(await bill_repo.list_bills(1001, limit=2)) == 2
