"""
Module: ledger_engines.classifier
Responsibility:
    Classify a due date relative to "today" as overdue, due today or
    upcoming, with the signed day offset.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Purity: "today" is always passed in; no clock access.
    - Both values are reduced to calendar dates from their own
      year/month/day components.  No timezone conversion and no timestamp
      subtraction, so an entry due on the same calendar day is "due today"
      at any time of day and any UTC offset.

Failure modes:
    - MalformedDateError from ``parse_calendar_date`` on unreadable input.

Usage:
    from ledger_engines.classifier import classify_due

    result = classify_due(date(2025, 1, 10), date(2025, 1, 7))
    result.offset_days  # 3
    result.message      # "Overdue by 3 days"
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from ledger_kernel.domain.normalize import parse_calendar_date

__all__ = [
    "DueClassification",
    "DueStatus",
    "classify_due",
    "parse_calendar_date",
]


class DueStatus(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class DueClassification:
    """
    Temporal status of a due date.

    Guarantees:
        - ``offset_days > 0`` iff ``label`` is OVERDUE, ``== 0`` iff DUE_TODAY.
    """

    offset_days: int
    label: DueStatus
    message: str

    @property
    def is_overdue(self) -> bool:
        return self.label == DueStatus.OVERDUE

    @property
    def days_until_due(self) -> int:
        return max(0, -self.offset_days)


def _calendar_date(value: date | datetime) -> date:
    # datetime is a subclass of date; take its own components either way
    return date(value.year, value.month, value.day)


def classify_due(today: date | datetime, due_date: date | datetime) -> DueClassification:
    """Classify ``due_date`` against ``today``."""
    offset = (_calendar_date(today) - _calendar_date(due_date)).days
    if offset > 0:
        unit = "day" if offset == 1 else "days"
        return DueClassification(offset, DueStatus.OVERDUE, f"Overdue by {offset} {unit}")
    if offset == 0:
        return DueClassification(0, DueStatus.DUE_TODAY, "Due today")
    return DueClassification(offset, DueStatus.UPCOMING, "")
