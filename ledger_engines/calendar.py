"""
Calendar arithmetic on plain dates and year-month keys.

Month addition clamps to the last valid day of the target month, so
``add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)``; dates never roll
over into the following month.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date


def end_of_month(d: date) -> date:
    return date(d.year, d.month, calendar.monthrange(d.year, d.month)[1])


def start_of_month(d: date) -> date:
    return date(d.year, d.month, 1)


def add_months(d: date, months: int) -> date:
    """Add (or subtract) calendar months, clamping the day."""
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


@dataclass(frozen=True, order=True)
class MonthKey:
    """A calendar month, ordered chronologically."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month out of range: {self.month}")

    @classmethod
    def of(cls, d: date) -> MonthKey:
        return cls(d.year, d.month)

    @classmethod
    def parse(cls, text: str) -> MonthKey:
        """Parse ``YYYY-MM``."""
        year, _, month = text.partition("-")
        return cls(int(year), int(month))

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return end_of_month(self.first_day)

    def plus(self, months: int) -> MonthKey:
        return MonthKey.of(add_months(self.first_day, months))

    def months_until(self, other: MonthKey) -> int:
        return (other.year - self.year) * 12 + (other.month - self.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def month_range(start: MonthKey, end: MonthKey) -> Iterator[MonthKey]:
    """Yield every month from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current = current.plus(1)
