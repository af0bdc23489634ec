from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENTS = Decimal("0.01")
TENTHS = Decimal("0.1")


def to_money(value: Decimal | float | int) -> Decimal:
    """Round a monetary value half-up to cents."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class BillCategory(str, enum.Enum):
    DATA = "data"
    VOICE = "voice"
    SMS = "sms"
    ROAMING = "roaming"
    PREMIUM_SMS = "premium_sms"
    VAS = "vas"
    ONE_OFF = "one_off"
    DISCOUNT = "discount"
    TAX = "tax"


# Keys compared month over month. Non-enum keys match BillItem.subtype.
ANOMALY_CATEGORY_KEYS: tuple[str, ...] = (
    "data",
    "voice",
    "sms",
    "premium_sms",
    "vas",
    "roaming",
    "monthly_fee",
    "data_overage",
    "voice_overage",
    "plan",
    "one_off",
    "discount",
)

NEW_ITEM_CATEGORIES: tuple[BillCategory, ...] = (
    BillCategory.DATA,
    BillCategory.VOICE,
    BillCategory.SMS,
    BillCategory.PREMIUM_SMS,
    BillCategory.VAS,
    BillCategory.ROAMING,
)

_CATEGORY_VALUES = frozenset(c.value for c in BillCategory)


@dataclass(frozen=True)
class BillItem:
    category: BillCategory = BillCategory.DATA
    subtype: str = ""
    description: str = ""
    amount: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")
    quantity: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0.2")

    def matches(self, key: str) -> bool:
        if key in _CATEGORY_VALUES:
            return self.category.value == key
        return self.subtype == key


@dataclass(frozen=True)
class Bill:
    bill_id: str = ""
    user_id: int = 0
    period_start: date = field(default_factory=date.today)
    period_end: date = field(default_factory=date.today)
    total_amount: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    taxes: Decimal = Decimal("0")
    currency: str = "TRY"
    items: tuple[BillItem, ...] = ()

    def category_total(self, key: BillCategory | str) -> Decimal:
        """Sum of item amounts for a category (or subtype key)."""
        key = key.value if isinstance(key, BillCategory) else key
        return sum((i.amount for i in self.items if i.matches(key)), Decimal("0"))

    def overage_quantity(self, subtype: str) -> Decimal:
        return sum(
            (i.quantity for i in self.items if i.subtype == subtype),
            Decimal("0"),
        )

    def category_breakdown(self) -> dict[str, dict[str, Any]]:
        breakdown: dict[str, dict[str, Any]] = {}
        for item in self.items:
            entry = breakdown.setdefault(
                item.category.value,
                {"total": Decimal("0"), "items": [], "percentage": Decimal("0")},
            )
            entry["total"] += item.amount
            entry["items"].append(
                {
                    "description": item.description,
                    "amount": item.amount,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                }
            )

        for entry in breakdown.values():
            if self.total_amount:
                share = entry["total"] / self.total_amount * 100
                entry["percentage"] = share.quantize(TENTHS, rounding=ROUND_HALF_UP)
        return breakdown


@dataclass(frozen=True)
class UsageDailyRecord:
    user_id: int = 0
    usage_date: date = field(default_factory=date.today)
    mb_used: float = 0.0
    minutes_used: float = 0.0
    sms_used: int = 0
    roaming_mb: float = 0.0
