"""Shared fixtures for unit tests."""

from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Ensure src is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from application.services.anomaly_service import AnomalyDetectionService
from application.services.bill_service import BillService
from application.services.what_if_service import WhatIfService
from domain.models.catalog import AddOnPack, Plan, Subscriber
from infrastructure.adapters import (
    InMemoryBillRepository,
    InMemoryCatalogRepository,
    InMemorySubscriberRepository,
    InMemoryUsageRepository,
)

from factories import USER_ID, clock

# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


@pytest.fixture
def bill_repo() -> InMemoryBillRepository:
    return InMemoryBillRepository()


@pytest.fixture
def usage_repo() -> InMemoryUsageRepository:
    return InMemoryUsageRepository()


@pytest.fixture
def subscriber_repo() -> InMemorySubscriberRepository:
    repo = InMemorySubscriberRepository()
    repo.save(Subscriber(user_id=USER_ID, name="Test Subscriber", current_plan_id=1))
    return repo


@pytest.fixture
def catalog_repo() -> InMemoryCatalogRepository:
    repo = InMemoryCatalogRepository()
    repo.save_plan(
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
        )
    )
    repo.save_plan(
        Plan(
            plan_id=2,
            plan_name="Smart 20GB",
            quota_gb=Decimal("20"),
            quota_min=Decimal("1000"),
            quota_sms=Decimal("500"),
            monthly_price=Decimal("99.90"),
            overage_gb=Decimal("7.50"),
            overage_min=Decimal("0.40"),
            overage_sms=Decimal("0.20"),
        )
    )
    repo.save_plan(
        Plan(plan_id=3, plan_name="Retired", monthly_price=Decimal("10"), is_active=False)
    )
    repo.save_plan(
        Plan(plan_id=4, plan_name="Lite 5GB", quota_gb=Decimal("5"), monthly_price=Decimal("49.90"))
    )
    repo.save_add_on(
        AddOnPack(addon_id=101, name="Extra 5GB", extra_gb=Decimal("5"), price=Decimal("29.90"))
    )
    repo.save_add_on(
        AddOnPack(
            addon_id=102,
            name="Voice 500",
            type="voice",
            extra_min=Decimal("500"),
            price=Decimal("19.90"),
            compatible_plans=(1,),
        )
    )
    repo.save_add_on(
        AddOnPack(addon_id=103, name="Old pack", price=Decimal("5"), is_active=False)
    )
    return repo


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture
def anomaly_service(bill_repo, usage_repo) -> AnomalyDetectionService:
    return AnomalyDetectionService(bill_repo, usage_repo, clock=clock)


@pytest.fixture
def what_if_service(bill_repo, subscriber_repo, catalog_repo) -> WhatIfService:
    return WhatIfService(bill_repo, subscriber_repo, catalog_repo, clock=clock)


@pytest.fixture
def bill_service(bill_repo) -> BillService:
    return BillService(bill_repo, clock=clock)
