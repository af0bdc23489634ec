"""Application settings loaded from environment variables via Pydantic."""

from __future__ import annotations

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """Central configuration for the Telecom Billing Assistant."""

    model_config = {"env_prefix": "APP_", "case_sensitive": False}

    # Anomaly detection
    anomaly_default_threshold: float = Field(default=0.8, ge=0, le=5)
    anomaly_history_threshold: float = Field(default=0.7, ge=0, le=5)
    z_score_threshold: float = 2.0
    minimum_history_months: int = Field(default=3, ge=1)
    max_period_age_months: int = Field(default=24, ge=1)
    roaming_excessive_mb: float = 1000.0
    usage_spike_multiplier: float = 3.0

    # What-if simulation
    tax_rate: Decimal = Decimal("0.20")
    max_scenarios: int = 5
    max_addons: int = 5

    # Demo catalog and bills for local runs
    seed_demo_data: bool = False

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "*"


def get_settings() -> AppSettings:
    """Return the application settings singleton."""
    return AppSettings()
