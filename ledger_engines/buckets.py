"""
Module: ledger_engines.buckets
Responsibility:
    Select the ledger entries that fall inside an operator-chosen time
    window ("overdue", "next 7 days", "current month" ...).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Each window is evaluated independently against ``today``; windows
      overlap by design (``current_month`` includes overdue entries).
    - Input order is preserved and an entry appears at most once per window.
    - Entries without a due date are excluded from every window.
    - Month offsets clamp to the last valid day of the target month.

Failure modes:
    - ValueError on an unknown window name.

Usage:
    from ledger_engines.buckets import BucketWindow, filter_window, get_buckets

    overdue = filter_window(entries, today, BucketWindow.OVERDUE)
    all_windows = get_buckets(entries, today)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta
from enum import Enum

from ledger_engines.calendar import add_months, end_of_month, start_of_month
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.entries import LedgerEntry
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.buckets")


class BucketWindow(str, Enum):
    """Named time windows relative to today."""

    OVERDUE = "overdue"
    NEXT_7_DAYS = "next_7_days"
    CURRENT_MONTH = "current_month"
    NEXT_MONTH = "next_month"
    PLUS_2_MONTHS = "plus_2_months"
    PLUS_6_MONTHS = "plus_6_months"
    PLUS_12_MONTHS = "plus_12_months"
    THROUGH_YEAR_END = "through_year_end"
    TRAILING_12_MONTHS = "trailing_12_months"

    @classmethod
    def parse(cls, value: str | BucketWindow) -> BucketWindow:
        if isinstance(value, BucketWindow):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown bucket window: {value!r}") from None


def _after_today_until(today: date, last: date) -> Callable[[date], bool]:
    return lambda due: today < due <= last


def window_predicate(window: str | BucketWindow, today: date) -> Callable[[date], bool]:
    """Return the due-date predicate of ``window`` for ``today``."""
    window = BucketWindow.parse(window)
    if window == BucketWindow.OVERDUE:
        return lambda due: due <= today
    if window == BucketWindow.NEXT_7_DAYS:
        return _after_today_until(today, today + timedelta(days=7))
    if window == BucketWindow.CURRENT_MONTH:
        last = end_of_month(today)
        return lambda due: due <= last
    if window == BucketWindow.NEXT_MONTH:
        first = start_of_month(add_months(start_of_month(today), 1))
        last = end_of_month(first)
        return lambda due: first <= due <= last
    if window == BucketWindow.PLUS_2_MONTHS:
        return _after_today_until(today, add_months(today, 2))
    if window == BucketWindow.PLUS_6_MONTHS:
        return _after_today_until(today, add_months(today, 6))
    if window == BucketWindow.PLUS_12_MONTHS:
        return _after_today_until(today, add_months(today, 12))
    if window == BucketWindow.THROUGH_YEAR_END:
        return _after_today_until(today, date(today.year, 12, 31))
    # TRAILING_12_MONTHS
    first = start_of_month(add_months(start_of_month(today), -12))
    last = end_of_month(today)
    return lambda due: first <= due <= last


def _as_date(today: date | datetime) -> date:
    return date(today.year, today.month, today.day)


def filter_window(
    entries: Iterable[LedgerEntry],
    today: date | datetime,
    window: str | BucketWindow,
) -> list[LedgerEntry]:
    """Entries whose due date falls in ``window``, in input order."""
    predicate = window_predicate(window, _as_date(today))
    selected: list[LedgerEntry] = []
    seen: set[str] = set()
    for entry in entries:
        if entry.due_date is None or entry.id in seen:
            continue
        if predicate(entry.due_date):
            seen.add(entry.id)
            selected.append(entry)
    return selected


@traced_engine("buckets", "1.0", fingerprint_fields=("today",))
def get_buckets(
    entries: Iterable[LedgerEntry],
    today: date | datetime,
) -> dict[str, list[LedgerEntry]]:
    """Evaluate every window independently: ``{window_name: [entry]}``."""
    entries = list(entries)
    buckets = {
        window.value: filter_window(entries, today, window)
        for window in BucketWindow
    }
    undated = sum(1 for e in entries if e.due_date is None)
    if undated:
        logger.info("undated_entries_excluded", extra={"count": undated})
    return buckets
