"""Dependency injection container for the Telecom Billing Assistant.

Wires together all infrastructure adapters and application services,
exposing factory functions suitable for FastAPI's ``Depends()`` system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from application.services.anomaly_service import AnomalyDetectionService
from application.services.bill_service import BillService
from application.services.what_if_service import WhatIfService
from infrastructure.adapters import (
    InMemoryBillRepository,
    InMemoryCatalogRepository,
    InMemorySubscriberRepository,
    InMemoryUsageRepository,
)
from infrastructure.seed import seed_demo_data
from infrastructure.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Central DI container that owns all service instances."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._settings = settings or get_settings()
        self.clock = clock

        # Infrastructure adapters
        self.bill_repo = InMemoryBillRepository()
        self.usage_repo = InMemoryUsageRepository()
        self.subscriber_repo = InMemorySubscriberRepository()
        self.catalog_repo = InMemoryCatalogRepository()

        # Application services
        self.anomaly_service = AnomalyDetectionService(
            bill_repo=self.bill_repo,
            usage_repo=self.usage_repo,
            clock=clock,
            default_threshold=self._settings.anomaly_default_threshold,
            history_threshold=self._settings.anomaly_history_threshold,
            z_score_threshold=self._settings.z_score_threshold,
            minimum_history_months=self._settings.minimum_history_months,
            max_period_age_months=self._settings.max_period_age_months,
            roaming_excessive_mb=self._settings.roaming_excessive_mb,
            usage_spike_multiplier=self._settings.usage_spike_multiplier,
        )

        self.what_if_service = WhatIfService(
            bill_repo=self.bill_repo,
            subscriber_repo=self.subscriber_repo,
            catalog_repo=self.catalog_repo,
            clock=clock,
            tax_rate=self._settings.tax_rate,
            max_period_age_months=self._settings.max_period_age_months,
            max_scenarios=self._settings.max_scenarios,
            max_addons=self._settings.max_addons,
        )

        self.bill_service = BillService(
            bill_repo=self.bill_repo,
            clock=clock,
            max_period_age_months=self._settings.max_period_age_months,
        )

        if self._settings.seed_demo_data:
            seed_demo_data(
                self.bill_repo,
                self.usage_repo,
                self.subscriber_repo,
                self.catalog_repo,
                today=clock(),
                tax_rate=self._settings.tax_rate,
            )

        logger.info("ServiceContainer initialized")

    @property
    def settings(self) -> AppSettings:
        return self._settings


# Module-level singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Return the global container singleton."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install a pre-built container (for testing)."""
    global _container
    _container = container


def reset_container() -> None:
    """Reset the global container (for testing)."""
    global _container
    _container = None


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------


def get_anomaly_service() -> AnomalyDetectionService:
    return get_container().anomaly_service


def get_what_if_service() -> WhatIfService:
    return get_container().what_if_service


def get_bill_service() -> BillService:
    return get_container().bill_service
