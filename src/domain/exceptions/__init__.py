from domain.exceptions.billing_exceptions import (
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

__all__ = [
    "AddOnNotFoundError",
    "BillNotFoundError",
    "DomainError",
    "ErrorKind",
    "InsufficientHistoryError",
    "InvalidPeriodError",
    "InvalidScenarioError",
    "InvalidThresholdError",
    "PlanNotFoundError",
    "UserNotFoundError",
]
