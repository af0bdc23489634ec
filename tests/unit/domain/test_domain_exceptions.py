"""Tests for src/domain/exceptions/billing_exceptions.py"""

import pytest

from domain.exceptions.billing_exceptions import (
    PROBLEM_BASE,
    AddOnNotFoundError,
    BillNotFoundError,
    DomainError,
    ErrorKind,
    InsufficientHistoryError,
    InvalidPeriodError,
    InvalidScenarioError,
    InvalidThresholdError,
    PlanNotFoundError,
    UserNotFoundError,
)


class TestDomainError:
    def test_default_attributes(self):
        exc = DomainError("something went wrong")
        assert exc.detail == "something went wrong"
        assert exc.title == "Domain Error"
        assert exc.status_code == 400
        assert exc.error_type == "about:blank"
        assert exc.kind is None

    def test_custom_attributes(self):
        exc = DomainError(
            "custom",
            title="Custom",
            status_code=422,
            error_type="urn:custom",
        )
        assert exc.title == "Custom"
        assert exc.status_code == 422
        assert exc.error_type == "urn:custom"


@pytest.mark.parametrize(
    ("exc", "kind", "status"),
    [
        (InvalidPeriodError("2026-13", "bad"), ErrorKind.INVALID_PERIOD, 400),
        (InvalidThresholdError(7), ErrorKind.INVALID_THRESHOLD, 400),
        (InvalidScenarioError("empty"), ErrorKind.INVALID_SCENARIO, 400),
        (BillNotFoundError(1001, "2026-10"), ErrorKind.BILL_NOT_FOUND, 404),
        (UserNotFoundError(1001), ErrorKind.USER_NOT_FOUND, 404),
        (PlanNotFoundError(9), ErrorKind.PLAN_NOT_FOUND, 404),
        (AddOnNotFoundError(101), ErrorKind.ADDON_NOT_FOUND, 404),
        (InsufficientHistoryError(1001, 1, 3), ErrorKind.INSUFFICIENT_HISTORY, 422),
    ],
)
def test_kind_and_status(exc, kind, status):
    assert isinstance(exc, DomainError)
    assert exc.kind is kind
    assert exc.status_code == status
    assert exc.error_type.startswith(PROBLEM_BASE)


class TestIdentifiers:
    def test_bill_not_found_by_period(self):
        exc = BillNotFoundError(user_id=1001, period="2026-10")
        assert exc.user_id == 1001
        assert exc.period == "2026-10"
        assert "1001" in exc.detail and "2026-10" in exc.detail

    def test_bill_not_found_by_id(self):
        exc = BillNotFoundError(bill_id="B-1")
        assert exc.bill_id == "B-1"
        assert exc.detail == "Bill not found: B-1"

    def test_plan_not_found(self):
        assert PlanNotFoundError(7).plan_id == 7

    def test_insufficient_history(self):
        exc = InsufficientHistoryError(user_id=1001, available=1, required=3)
        assert (exc.available, exc.required) == (1, 3)

    def test_invalid_threshold_keeps_value(self):
        assert InvalidThresholdError(5.5).threshold == 5.5
