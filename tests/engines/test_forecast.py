"""
Tests for the forecast projector.

Covers:
- Ascending accumulation of pending net onto the start balance
- Realized amounts never move the running balance
- Display order is a pure reversal
- Unprojectable aggregates are excluded, not propagated
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_engines.aggregator import FlowAggregate, FlowTotals, MonthlyAggregate, aggregate_by_month
from ledger_engines.calendar import MonthKey
from ledger_engines.forecast import (
    ForecastProjector,
    ForecastSituation,
    for_display,
    project_forecast,
)
from ledger_kernel.domain.entries import EntryStatus
from ledger_kernel.exceptions import InvalidAmountError


class TestProjection:

    def test_january_example(self, make_entry):
        """Expense 100 and revenue 300 pending in January on top of 1000."""
        entries = [
            make_entry("a", "despesa", "100", date(2025, 1, 5)),
            make_entry("b", "receita", "300", date(2025, 1, 20)),
        ]
        [row] = project_forecast(start_balance=Decimal("1000"), aggregates=aggregate_by_month(entries))

        assert row.key == MonthKey(2025, 1)
        assert row.aggregate.pending_out == Decimal("100")
        assert row.aggregate.pending_in == Decimal("300")
        assert row.running_balance == Decimal("1200")

    def test_sorts_ascending_before_accumulating(self, make_entry):
        entries = [
            make_entry("mar", "revenue", "30", date(2025, 3, 1)),
            make_entry("jan", "expense", "10", date(2025, 1, 1)),
            make_entry("feb", "revenue", "20", date(2025, 2, 1)),
        ]
        rows = project_forecast(start_balance=Decimal("0"), aggregates=aggregate_by_month(entries))
        assert [str(r.key) for r in rows] == ["2025-01", "2025-02", "2025-03"]
        assert [r.running_balance for r in rows] == [Decimal("-10"), Decimal("10"), Decimal("40")]

    def test_realized_does_not_move_balance(self, make_entry):
        entries = [
            make_entry("a", "revenue", "500", date(2025, 1, 3), EntryStatus.CONFIRMED),
            make_entry("b", "expense", "50", date(2025, 1, 4)),
        ]
        [row] = project_forecast(start_balance=Decimal("100"), aggregates=aggregate_by_month(entries))
        assert row.running_balance == Decimal("50")
        assert row.net == Decimal("450")

    def test_display_reversal_keeps_balances(self, make_entry):
        entries = [
            make_entry("a", "revenue", "1", date(2025, 1, 1)),
            make_entry("b", "revenue", "2", date(2025, 2, 1)),
        ]
        rows = project_forecast(start_balance=Decimal("0"), aggregates=aggregate_by_month(entries))
        shown = for_display(rows)
        assert [r.key for r in shown] == [MonthKey(2025, 2), MonthKey(2025, 1)]
        assert {r.key: r.running_balance for r in shown} == {
            r.key: r.running_balance for r in rows
        }

    def test_deterministic(self, make_entry):
        aggregates = aggregate_by_month(
            [make_entry(str(i), "revenue", str(i + 1), date(2025, 1 + i % 12, 1)) for i in range(24)]
        )
        first = [r.running_balance for r in project_forecast(start_balance=Decimal("7"), aggregates=aggregates)]
        second = [r.running_balance for r in project_forecast(start_balance=Decimal("7"), aggregates=aggregates)]
        assert first == second


class TestExclusion:

    def test_non_month_and_non_finite_aggregates_excluded(self, captured_logs):
        good = MonthlyAggregate(key=MonthKey(2025, 1), pending=FlowTotals(revenue=Decimal("5")))
        bad_key = FlowAggregate(key="cc1", pending=FlowTotals(revenue=Decimal("9")))
        nan = MonthlyAggregate(key=MonthKey(2025, 2), pending=FlowTotals(expense=Decimal("NaN")))

        rows = ForecastProjector().project(Decimal("10"), [good, bad_key, nan])

        assert [r.running_balance for r in rows] == [Decimal("15")]
        excluded = [r for r in captured_logs() if r["message"] == "aggregate_excluded"]
        assert len(excluded) == 2

    @pytest.mark.parametrize("start", [Decimal("NaN"), 10.0, None])
    def test_invalid_start_balance(self, start):
        with pytest.raises(InvalidAmountError):
            ForecastProjector().project(start, [])


class TestSituation:

    def test_situation_relative_to_today(self):
        rows = ForecastProjector().project(
            Decimal("0"),
            [MonthlyAggregate(key=MonthKey(2025, m)) for m in (1, 2, 3)],
        )
        today = date(2025, 2, 10)
        assert [r.situation_as_of(today) for r in rows] == [
            ForecastSituation.REALIZED,
            ForecastSituation.CURRENT_MONTH,
            ForecastSituation.FUTURE,
        ]
