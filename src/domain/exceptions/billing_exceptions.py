from __future__ import annotations

import enum

PROBLEM_BASE = "https://api.billing-assistant.example/problems"


class ErrorKind(str, enum.Enum):
    INVALID_PERIOD = "INVALID_PERIOD"
    INVALID_THRESHOLD = "INVALID_THRESHOLD"
    INVALID_SCENARIO = "INVALID_SCENARIO"
    BILL_NOT_FOUND = "BILL_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    ADDON_NOT_FOUND = "ADDON_NOT_FOUND"
    INSUFFICIENT_HISTORY = "INSUFFICIENT_HISTORY"


class DomainError(Exception):
    """Base class for all domain-layer exceptions.

    Carries HTTP-mapping metadata so the presentation layer can produce
    RFC 9457 Problem Details without knowing exception internals, and an
    :class:`ErrorKind` tag callers can switch on.
    """

    kind: ErrorKind | None = None

    def __init__(
        self,
        detail: str = "",
        *,
        title: str = "Domain Error",
        status_code: int = 400,
        error_type: str = "about:blank",
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.title = title
        self.status_code = status_code
        self.error_type = error_type


class InvalidPeriodError(DomainError):
    kind = ErrorKind.INVALID_PERIOD

    def __init__(self, period: str = "", reason: str = "") -> None:
        self.period = period
        self.reason = reason
        super().__init__(
            detail=f"Invalid billing period '{period}': {reason}",
            title="Invalid Period",
            status_code=400,
            error_type=f"{PROBLEM_BASE}/invalid-period",
        )


class InvalidThresholdError(DomainError):
    kind = ErrorKind.INVALID_THRESHOLD

    def __init__(self, threshold: float = 0.0) -> None:
        self.threshold = threshold
        super().__init__(
            detail=f"Threshold must be between 0 and 5, got {threshold}",
            title="Invalid Threshold",
            status_code=400,
            error_type=f"{PROBLEM_BASE}/invalid-threshold",
        )


class InvalidScenarioError(DomainError):
    kind = ErrorKind.INVALID_SCENARIO

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        super().__init__(
            detail=f"Invalid scenario: {reason}",
            title="Invalid Scenario",
            status_code=400,
            error_type=f"{PROBLEM_BASE}/invalid-scenario",
        )


class BillNotFoundError(DomainError):
    kind = ErrorKind.BILL_NOT_FOUND

    def __init__(self, user_id: int | None = None, period: str = "", bill_id: str = "") -> None:
        self.user_id = user_id
        self.period = period
        self.bill_id = bill_id
        if bill_id:
            detail = f"Bill not found: {bill_id}"
        else:
            detail = f"Bill not found for user {user_id} in period {period}"
        super().__init__(
            detail=detail,
            title="Bill Not Found",
            status_code=404,
            error_type=f"{PROBLEM_BASE}/bill-not-found",
        )


class UserNotFoundError(DomainError):
    kind = ErrorKind.USER_NOT_FOUND

    def __init__(self, user_id: int | None = None) -> None:
        self.user_id = user_id
        super().__init__(
            detail=f"User not found: {user_id}",
            title="User Not Found",
            status_code=404,
            error_type=f"{PROBLEM_BASE}/user-not-found",
        )


class PlanNotFoundError(DomainError):
    kind = ErrorKind.PLAN_NOT_FOUND

    def __init__(self, plan_id: int | None = None) -> None:
        self.plan_id = plan_id
        super().__init__(
            detail=f"Active plan not found: {plan_id}",
            title="Plan Not Found",
            status_code=404,
            error_type=f"{PROBLEM_BASE}/plan-not-found",
        )


class AddOnNotFoundError(DomainError):
    kind = ErrorKind.ADDON_NOT_FOUND

    def __init__(self, addon_id: int | None = None) -> None:
        self.addon_id = addon_id
        super().__init__(
            detail=f"Active add-on not found: {addon_id}",
            title="Add-on Not Found",
            status_code=404,
            error_type=f"{PROBLEM_BASE}/addon-not-found",
        )


class InsufficientHistoryError(DomainError):
    kind = ErrorKind.INSUFFICIENT_HISTORY

    def __init__(self, user_id: int | None = None, available: int = 0, required: int = 0) -> None:
        self.user_id = user_id
        self.available = available
        self.required = required
        super().__init__(
            detail=(
                f"Only {available} of {required} historical months available "
                f"for user {user_id}"
            ),
            title="Insufficient History",
            status_code=422,
            error_type=f"{PROBLEM_BASE}/insufficient-history",
        )
