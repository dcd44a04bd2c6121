"""
Tests for due-date classification and calendar helpers.

Covers:
- Calendar-day comparison regardless of time of day or offset
- Labels and messages
- Month arithmetic with day clamping
"""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from ledger_engines.calendar import MonthKey, add_months, end_of_month, month_range
from ledger_engines.classifier import DueStatus, classify_due


class TestClassifyDue:

    def test_overdue(self):
        result = classify_due(date(2025, 1, 15), date(2025, 1, 12))
        assert result.offset_days == 3
        assert result.label == DueStatus.OVERDUE
        assert result.message == "Overdue by 3 days"
        assert result.is_overdue

    def test_overdue_singular(self):
        assert classify_due(date(2025, 1, 15), date(2025, 1, 14)).message == "Overdue by 1 day"

    def test_due_today(self):
        result = classify_due(date(2025, 1, 15), date(2025, 1, 15))
        assert result.offset_days == 0
        assert result.label == DueStatus.DUE_TODAY
        assert result.message == "Due today"

    def test_upcoming(self):
        result = classify_due(date(2025, 1, 15), date(2025, 1, 25))
        assert result.offset_days == -10
        assert result.label == DueStatus.UPCOMING
        assert result.days_until_due == 10
        assert result.message == ""

    def test_same_day_across_offsets_is_due_today(self):
        """A late-evening timestamp west of UTC is still the same calendar day."""
        today = datetime(2025, 1, 15, 0, 1, tzinfo=UTC)
        due = datetime(2025, 1, 15, 23, 59, tzinfo=timezone(timedelta(hours=-3)))
        assert classify_due(today, due).offset_days == 0

    def test_time_of_day_ignored(self):
        result = classify_due(datetime(2025, 1, 15, 23, 59), datetime(2025, 1, 14, 0, 0))
        assert result.offset_days == 1


class TestCalendar:

    @pytest.mark.parametrize(
        "start, months, expected",
        [
            (date(2025, 1, 31), 1, date(2025, 2, 28)),
            (date(2024, 1, 31), 1, date(2024, 2, 29)),
            (date(2025, 3, 31), -1, date(2025, 2, 28)),
            (date(2025, 11, 15), 3, date(2026, 2, 15)),
            (date(2025, 8, 31), 6, date(2026, 2, 28)),
        ],
    )
    def test_add_months_clamps(self, start, months, expected):
        assert add_months(start, months) == expected

    def test_end_of_month(self):
        assert end_of_month(date(2024, 2, 10)) == date(2024, 2, 29)

    def test_month_key_parse_and_str(self):
        key = MonthKey.parse("2025-03")
        assert key == MonthKey(2025, 3)
        assert str(key) == "2025-03"
        assert key.last_day == date(2025, 3, 31)

    def test_month_key_invalid(self):
        with pytest.raises(ValueError):
            MonthKey(2025, 13)

    def test_month_range_crosses_year(self):
        months = list(month_range(MonthKey(2024, 11), MonthKey(2025, 2)))
        assert [str(m) for m in months] == ["2024-11", "2024-12", "2025-01", "2025-02"]
        assert MonthKey(2024, 11).months_until(MonthKey(2025, 2)) == 3
