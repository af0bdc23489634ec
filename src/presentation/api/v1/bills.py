"""Bill lookup API endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from application.services.bill_service import BillService, BillView
from infrastructure.container import get_bill_service

from .schemas import (
    PERIOD_PATTERN,
    BillHistoryItem,
    BillHistoryResponse,
    BillItemSchema,
    BillPeriodItem,
    BillPeriodsResponse,
    BillResponse,
    BillUsageStatsSchema,
    ErrorResponse,
)

router = APIRouter(tags=["Bills"])

UserID = Annotated[int, Path(gt=0, description="Subscriber identifier.")]
Period = Annotated[str, Path(pattern=PERIOD_PATTERN, description="Billing period as YYYY-MM.")]


def _bill_response(view: BillView) -> BillResponse:
    bill = view.bill
    return BillResponse(
        bill_id=bill.bill_id,
        user_id=bill.user_id,
        period_start=bill.period_start,
        period_end=bill.period_end,
        subtotal=bill.subtotal,
        taxes=bill.taxes,
        total_amount=bill.total_amount,
        currency=bill.currency,
        items=[BillItemSchema.model_validate(item) for item in bill.items],
        category_breakdown=view.category_breakdown,
        usage_stats=BillUsageStatsSchema.model_validate(view.usage_stats),
    )


@router.get(
    "/users/{user_id}/bills/{period}",
    response_model=BillResponse,
    summary="Get a user's bill for a period",
    responses={
        400: {"description": "Invalid period.", "model": ErrorResponse},
        404: {"description": "Bill not found.", "model": ErrorResponse},
    },
)
async def get_user_bill(
    user_id: UserID,
    period: Period,
    service: BillService = Depends(get_bill_service),
) -> BillResponse:
    return _bill_response(await service.get_bill(user_id, period))


@router.get(
    "/bills/{bill_id}",
    response_model=BillResponse,
    summary="Get a bill by id",
    responses={404: {"description": "Bill not found.", "model": ErrorResponse}},
)
async def get_bill(
    bill_id: str,
    service: BillService = Depends(get_bill_service),
) -> BillResponse:
    return _bill_response(await service.get_bill_by_id(bill_id))


@router.get(
    "/users/{user_id}/bills",
    response_model=BillHistoryResponse,
    summary="Bill history",
    description="The most recent bills, newest first, with the change against the previous bill.",
)
async def get_bill_history(
    user_id: UserID,
    months: int = Query(6, ge=1, le=24, description="Number of bills to include."),
    service: BillService = Depends(get_bill_service),
) -> BillHistoryResponse:
    history = await service.get_bill_history(user_id, months)
    return BillHistoryResponse(
        user_id=user_id,
        months=months,
        history=[BillHistoryItem.model_validate(entry) for entry in history],
    )


@router.get(
    "/users/{user_id}/periods",
    response_model=BillPeriodsResponse,
    summary="Billed periods",
    description="Every period the user has a bill for, newest first.",
)
async def get_available_periods(
    user_id: UserID,
    service: BillService = Depends(get_bill_service),
) -> BillPeriodsResponse:
    periods = await service.get_available_periods(user_id)
    return BillPeriodsResponse(
        user_id=user_id,
        periods=[BillPeriodItem.model_validate(p) for p in periods],
    )
