"""
Pydantic v2 request/response schemas for the Telecom Billing Assistant API.

Request models validate identifiers, periods and scenario shape before
the engines run; error responses follow RFC 9457 Problem Details.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from domain.models.anomaly import AnomalyType, Severity
from domain.models.billing import BillCategory
from infrastructure.container import get_container

PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

# ---------------------------------------------------------------------------
# Base / shared
# ---------------------------------------------------------------------------


class _ApiModel(BaseModel):
    """Base model: snake_case fields, readable from domain dataclasses."""

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        json_schema_extra={"$schema": "https://json-schema.org/draft/2020-12/schema"},
    )


class _PeriodRequest(_ApiModel):
    user_id: int = Field(..., gt=0, description="Subscriber identifier.", examples=[1001])
    period: str = Field(
        ...,
        pattern=PERIOD_PATTERN,
        description="Billing period as YYYY-MM.",
        examples=["2026-10"],
    )


# ---------------------------------------------------------------------------
# RFC 9457 Problem Details error response
# ---------------------------------------------------------------------------


class ErrorResponse(_ApiModel):
    """Error response following RFC 9457 Problem Details for HTTP APIs.

    See https://www.rfc-editor.org/rfc/rfc9457
    """

    type: str = Field(
        default="about:blank",
        description="A URI reference that identifies the problem type.",
        examples=["https://api.billing-assistant.example/problems/bill-not-found"],
    )
    title: str = Field(..., examples=["Bill Not Found"])
    status: int = Field(..., examples=[404])
    detail: str = Field(..., examples=["Bill not found for user 1001 in period 2026-10"])
    kind: str | None = Field(
        default=None,
        description="Machine-readable error kind.",
        examples=["BILL_NOT_FOUND"],
    )
    instance: str | None = Field(default=None, examples=["/api/v1/anomalies"])
    errors: list[dict[str, Any]] | None = Field(
        default=None,
        description="Validation error details (when status is 422).",
    )


# ---------------------------------------------------------------------------
# Anomaly schemas
# ---------------------------------------------------------------------------


class AnomalyRequest(_PeriodRequest):
    """Request body for anomaly detection."""

    threshold: float | None = Field(
        default=None,
        ge=0,
        le=5,
        description="Relative increase that counts as anomalous (0.8 = +80%).",
        examples=[0.8],
    )


class DetailedAnomalyRequest(_PeriodRequest):
    include_explanations: bool = True
    include_recommendations: bool = True


class AnomalyItem(_ApiModel):
    type: AnomalyType
    category: str = Field(..., examples=["premium_sms"])
    severity: Severity
    current_amount: Decimal
    historical_average: Decimal
    delta: str = Field(..., examples=["+150%"])
    reason: str
    suggested_action: str
    first_occurrence: bool = False
    z_score: float | None = None
    amount_delta: Decimal
    usage_details: dict[str, Any] | None = None


class AnomalyReportResponse(_ApiModel):
    user_id: int
    analysis_period: str
    anomalies: list[AnomalyItem]
    risk_score: int = Field(..., ge=0, le=10)
    total_anomalies: int
    comparison_months: int
    threshold_used: float
    insufficient_history: bool = False


class DetailedAnalysisResponse(AnomalyReportResponse):
    detailed_insights: list[dict[str, Any]] | None = None
    actionable_recommendations: list[dict[str, Any]] | None = None
    trend_analysis: dict[str, Any]
    cost_impact_analysis: dict[str, Any]
    prevention_strategies: list[dict[str, str]]
    risk_assessment: dict[str, Any]


class AnomalyHistoryItem(_ApiModel):
    period: str
    anomaly_count: int
    risk_score: int
    major_anomalies: list[AnomalyItem]
    summary: str
    has_data: bool


class AnomalyHistoryResponse(_ApiModel):
    user_id: int
    months: int
    history: list[AnomalyHistoryItem]


# ---------------------------------------------------------------------------
# What-if schemas
# ---------------------------------------------------------------------------


class ScenarioSchema(_ApiModel):
    """A hypothetical change; omitted fields keep the current setup."""

    plan_id: int | None = Field(default=None, gt=0, examples=[2])
    addons: list[int] | None = Field(default=None, examples=[[101]])
    disable_vas: bool | None = None
    block_premium_sms: bool | None = None
    enable_roaming_block: bool | None = None

    @field_validator("addons")
    @classmethod
    def _limit_addons(cls, value: list[int] | None) -> list[int] | None:
        limit = get_container().settings.max_addons
        if value is not None and len(value) > limit:
            raise ValueError(f"At most {limit} add-ons per scenario.")
        return value

    @model_validator(mode="after")
    def _require_one_field(self) -> ScenarioSchema:
        if not self.to_domain_dict():
            raise ValueError("A scenario must set at least one field.")
        return self

    def to_domain_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class WhatIfRequest(_PeriodRequest):
    scenario: ScenarioSchema


class CompareScenariosRequest(_PeriodRequest):
    scenarios: list[ScenarioSchema] = Field(..., min_length=1)

    @field_validator("scenarios")
    @classmethod
    def _limit_scenarios(cls, value: list[ScenarioSchema]) -> list[ScenarioSchema]:
        limit = get_container().settings.max_scenarios
        if len(value) > limit:
            raise ValueError(f"At most {limit} scenarios can be compared.")
        return value


class UsageAnalysis(_ApiModel):
    data_overage_gb: Decimal
    voice_overage_min: Decimal
    sms_overage_count: Decimal
    data_overage: Decimal
    voice_overage: Decimal
    sms_overage: Decimal
    effective_quotas: dict[str, Decimal]


class WhatIfResponse(_ApiModel):
    user_id: int
    period: str
    current_total: Decimal
    new_total: Decimal
    saving: Decimal
    saving_percent: Decimal
    details: list[str]
    breakdown: dict[str, Decimal]
    recommendations: list[str]
    risk_factors: list[str]
    scenario_summary: str
    effective_date: date | None = None
    usage_analysis: UsageAnalysis | None = None


class ScenarioOutcomeSchema(_ApiModel):
    id: int
    name: str
    total: Decimal
    saving: Decimal
    rank: int
    saving_percent: Decimal | None = None
    details: list[str] = Field(default_factory=list)
    scenario_type: str | None = None
    feasibility: str | None = None
    risk_level: str | None = None
    error: str | None = None


class ScenarioComparisonResponse(_ApiModel):
    user_id: int
    period: str
    current_total: Decimal
    scenarios: list[ScenarioOutcomeSchema]
    best_scenario: ScenarioOutcomeSchema | None = None
    comparison_summary: str
    analysis_date: str


# ---------------------------------------------------------------------------
# Bill schemas
# ---------------------------------------------------------------------------


class BillItemSchema(_ApiModel):
    category: BillCategory
    subtype: str
    description: str
    amount: Decimal
    unit_price: Decimal
    quantity: Decimal
    tax_rate: Decimal


class BillUsageStatsSchema(_ApiModel):
    overage_gb: Decimal
    overage_minutes: Decimal
    overage_sms: Decimal
    roaming_mb: Decimal
    premium_sms_count: Decimal
    vas_count: int


class BillResponse(_ApiModel):
    bill_id: str = Field(..., examples=["B-1001-2026-10"])
    user_id: int
    period_start: date
    period_end: date
    subtotal: Decimal
    taxes: Decimal
    total_amount: Decimal
    currency: str = Field(default="TRY")
    items: list[BillItemSchema]
    category_breakdown: dict[str, dict[str, Any]]
    usage_stats: BillUsageStatsSchema


class BillHistoryItem(_ApiModel):
    period: str
    bill_id: str
    total_amount: Decimal
    change_percent: Decimal


class BillHistoryResponse(_ApiModel):
    user_id: int
    months: int
    history: list[BillHistoryItem]


class BillPeriodItem(_ApiModel):
    period: str
    bill_id: str
    period_start: date
    period_end: date
    total_amount: Decimal


class BillPeriodsResponse(_ApiModel):
    user_id: int
    periods: list[BillPeriodItem]
