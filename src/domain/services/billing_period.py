from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date

from domain.exceptions.billing_exceptions import InvalidPeriodError

_PERIOD_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

DEFAULT_MAX_AGE_MONTHS = 24


@dataclass(frozen=True, order=True)
class BillingPeriod:
    """A calendar month identified as ``YYYY-MM``."""

    year: int
    month: int

    @classmethod
    def parse(
        cls,
        text: str,
        today: date | None = None,
        max_age_months: int = DEFAULT_MAX_AGE_MONTHS,
    ) -> BillingPeriod:
        """Parse and range-check a period string.

        The month must not lie after the month of *today* and must not be
        more than *max_age_months* before it.
        """
        if not isinstance(text, str):
            raise InvalidPeriodError(str(text), "expected a YYYY-MM string")
        match = _PERIOD_RE.match(text)
        if match is None:
            raise InvalidPeriodError(text, "expected YYYY-MM format")

        period = cls(int(match.group(1)), int(match.group(2)))
        current = cls.containing(today or date.today())
        if period > current:
            raise InvalidPeriodError(text, "period is in the future")
        if current.index - period.index > max_age_months:
            raise InvalidPeriodError(
                text, f"period is older than {max_age_months} months"
            )
        return period

    @classmethod
    def containing(cls, day: date) -> BillingPeriod:
        return cls(day.year, day.month)

    @property
    def index(self) -> int:
        return self.year * 12 + (self.month - 1)

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last_day)

    def shift(self, months: int) -> BillingPeriod:
        index = self.index + months
        return BillingPeriod(index // 12, index % 12 + 1)

    def previous(self) -> BillingPeriod:
        return self.shift(-1)

    def next(self) -> BillingPeriod:
        return self.shift(1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"
