"""Bill anomaly detection API endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from application.services.anomaly_service import AnomalyDetectionService
from domain.models.anomaly import AnomalyHistoryEntry, AnomalyReport
from infrastructure.container import get_anomaly_service
from infrastructure.observability.metrics import record_anomalies

from .schemas import (
    AnomalyHistoryItem,
    AnomalyHistoryResponse,
    AnomalyItem,
    AnomalyReportResponse,
    AnomalyRequest,
    DetailedAnalysisResponse,
    DetailedAnomalyRequest,
    ErrorResponse,
)

router = APIRouter(prefix="/anomalies", tags=["Anomaly Detection"])

UserID = Annotated[int, Path(gt=0, description="Subscriber identifier.")]

_ERRORS = {
    400: {"description": "Invalid period or threshold.", "model": ErrorResponse},
    404: {"description": "Bill not found.", "model": ErrorResponse},
}


def _report_fields(user_id: int, report: AnomalyReport) -> dict:
    return {
        "user_id": user_id,
        "analysis_period": report.analysis_period,
        "anomalies": [AnomalyItem.model_validate(a) for a in report.anomalies],
        "risk_score": report.risk_score,
        "total_anomalies": report.total_anomalies,
        "comparison_months": report.comparison_months,
        "threshold_used": report.threshold_used,
        "insufficient_history": report.insufficient_history,
    }


def _history_item(entry: AnomalyHistoryEntry) -> AnomalyHistoryItem:
    return AnomalyHistoryItem(
        period=entry.period,
        anomaly_count=entry.anomaly_count,
        risk_score=entry.risk_score,
        major_anomalies=[AnomalyItem.model_validate(a) for a in entry.major_anomalies],
        summary=entry.summary,
        has_data=entry.has_data,
    )


@router.post(
    "",
    response_model=AnomalyReportResponse,
    summary="Detect bill anomalies",
    responses=_ERRORS,
)
async def detect_anomalies(
    body: AnomalyRequest,
    service: AnomalyDetectionService = Depends(get_anomaly_service),
) -> AnomalyReportResponse:
    report = await service.detect_anomalies(body.user_id, body.period, body.threshold)
    record_anomalies(report.anomalies, report.risk_score)
    return AnomalyReportResponse(**_report_fields(body.user_id, report))


@router.post(
    "/detailed",
    response_model=DetailedAnalysisResponse,
    summary="Detailed anomaly analysis",
    description=(
        "Anomaly report enriched with per-category insights, recommendations, "
        "trend analysis, cost impact and a risk assessment."
    ),
    responses=_ERRORS,
)
async def detailed_analysis(
    body: DetailedAnomalyRequest,
    service: AnomalyDetectionService = Depends(get_anomaly_service),
) -> DetailedAnalysisResponse:
    analysis = await service.get_detailed_analysis(
        body.user_id,
        body.period,
        include_explanations=body.include_explanations,
        include_recommendations=body.include_recommendations,
    )
    record_anomalies(analysis.report.anomalies, analysis.report.risk_score)
    return DetailedAnalysisResponse(
        **_report_fields(body.user_id, analysis.report),
        detailed_insights=analysis.detailed_insights,
        actionable_recommendations=analysis.actionable_recommendations,
        trend_analysis=analysis.trend_analysis,
        cost_impact_analysis=analysis.cost_impact_analysis,
        prevention_strategies=analysis.prevention_strategies,
        risk_assessment=analysis.risk_assessment,
    )


@router.get(
    "/history/{user_id}",
    response_model=AnomalyHistoryResponse,
    summary="Anomaly history",
    description="One summary per month, newest first. Months without a bill report has_data=false.",
)
async def anomaly_history(
    user_id: UserID,
    months: int = Query(6, ge=1, le=24, description="Number of months to include."),
    service: AnomalyDetectionService = Depends(get_anomaly_service),
) -> AnomalyHistoryResponse:
    history = await service.get_anomaly_history(user_id, months)
    return AnomalyHistoryResponse(
        user_id=user_id,
        months=months,
        history=[_history_item(entry) for entry in history],
    )
