"""What-if simulation API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from application.services.what_if_service import WhatIfService
from domain.models.what_if import Scenario, ScenarioOutcome
from infrastructure.container import get_what_if_service
from infrastructure.observability.metrics import record_simulation

from .schemas import (
    CompareScenariosRequest,
    ErrorResponse,
    ScenarioComparisonResponse,
    ScenarioOutcomeSchema,
    UsageAnalysis,
    WhatIfRequest,
    WhatIfResponse,
)

router = APIRouter(prefix="/what-if", tags=["What-If Simulation"])

_ERRORS = {
    400: {"description": "Invalid period or scenario.", "model": ErrorResponse},
    404: {"description": "Bill, user or plan not found.", "model": ErrorResponse},
}


def _outcome_schema(outcome: ScenarioOutcome) -> ScenarioOutcomeSchema:
    return ScenarioOutcomeSchema.model_validate(outcome)


@router.post(
    "",
    response_model=WhatIfResponse,
    summary="Simulate a scenario",
    responses=_ERRORS,
)
async def calculate_what_if(
    body: WhatIfRequest,
    service: WhatIfService = Depends(get_what_if_service),
) -> WhatIfResponse:
    scenario = Scenario.from_dict(body.scenario.to_domain_dict())
    result = await service.calculate_what_if(body.user_id, body.period, scenario)
    record_simulation("saving" if result.saving > 0 else "no_saving")

    return WhatIfResponse(
        user_id=body.user_id,
        period=body.period,
        current_total=result.current_total,
        new_total=result.new_total,
        saving=result.saving,
        saving_percent=result.saving_percent,
        details=result.details,
        breakdown=result.breakdown,
        recommendations=result.recommendations,
        risk_factors=result.risk_factors,
        scenario_summary=result.scenario_summary,
        effective_date=result.effective_date,
        usage_analysis=(
            UsageAnalysis.model_validate(result.usage_analysis)
            if result.usage_analysis is not None
            else None
        ),
    )


@router.post(
    "/compare",
    response_model=ScenarioComparisonResponse,
    summary="Compare scenarios",
    description="Simulates up to five scenarios and ranks them by saving.",
    responses=_ERRORS,
)
async def compare_scenarios(
    body: CompareScenariosRequest,
    service: WhatIfService = Depends(get_what_if_service),
) -> ScenarioComparisonResponse:
    scenarios = [Scenario.from_dict(s.to_domain_dict()) for s in body.scenarios]
    comparison = await service.compare_scenarios(body.user_id, body.period, scenarios)

    failed = sum(1 for s in comparison.scenarios if s.error is not None)
    if failed:
        record_simulation("error", failed)
    if len(comparison.scenarios) > failed:
        record_simulation("compared", len(comparison.scenarios) - failed)

    return ScenarioComparisonResponse(
        user_id=body.user_id,
        period=body.period,
        current_total=comparison.current_total,
        scenarios=[_outcome_schema(s) for s in comparison.scenarios],
        best_scenario=(
            _outcome_schema(comparison.best_scenario)
            if comparison.best_scenario is not None
            else None
        ),
        comparison_summary=comparison.comparison_summary,
        analysis_date=comparison.analysis_date,
    )
