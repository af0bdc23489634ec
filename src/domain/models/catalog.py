from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal


class LineType(str, enum.Enum):
    POSTPAID = "postpaid"
    PREPAID = "prepaid"


@dataclass(frozen=True)
class Plan:
    plan_id: int = 0
    plan_name: str = ""
    type: LineType = LineType.POSTPAID
    quota_gb: Decimal = Decimal("0")
    quota_min: Decimal = Decimal("0")
    quota_sms: Decimal = Decimal("0")
    monthly_price: Decimal = Decimal("0")
    overage_gb: Decimal = Decimal("0")
    overage_min: Decimal = Decimal("0")
    overage_sms: Decimal = Decimal("0")
    is_active: bool = True


@dataclass(frozen=True)
class AddOnPack:
    addon_id: int = 0
    name: str = ""
    type: str = "data"
    extra_gb: Decimal = Decimal("0")
    extra_min: Decimal = Decimal("0")
    extra_sms: Decimal = Decimal("0")
    price: Decimal = Decimal("0")
    compatible_plans: tuple[int, ...] = ()
    is_active: bool = True

    def is_compatible_with(self, plan_id: int) -> bool:
        # an empty list means the pack fits every plan
        return not self.compatible_plans or plan_id in self.compatible_plans


@dataclass(frozen=True)
class Subscriber:
    user_id: int = 0
    name: str = ""
    msisdn: str = ""
    current_plan_id: int = 0
    type: LineType = LineType.POSTPAID
    active_vas: tuple[str, ...] = field(default_factory=tuple)
    active_addons: tuple[int, ...] = field(default_factory=tuple)
