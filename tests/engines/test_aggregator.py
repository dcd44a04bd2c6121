"""
Tests for the flow aggregator.

Covers:
- The four independent buckets and net
- Skipped / reversed entries contribute zero
- Grouping by month, cost center and custom key
- Report summaries: expense breakdown, group totals, list totals
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_engines.aggregator import (
    GroupBy,
    MonthlyAggregate,
    aggregate,
    aggregate_by_month,
    expense_breakdown,
    group_totals,
    list_totals,
    selection_net,
)
from ledger_engines.calendar import MonthKey
from ledger_kernel.domain.entries import EntryStatus


class TestBuckets:

    def test_four_independent_buckets(self, make_entry):
        entries = [
            make_entry("a", "expense", "100", date(2025, 1, 5)),
            make_entry("b", "revenue", "300", date(2025, 1, 20)),
            make_entry("c", "withdrawal", "40", date(2025, 1, 7), EntryStatus.CONFIRMED),
            make_entry("d", "contribution", "25", date(2025, 1, 8), EntryStatus.CONFIRMED),
        ]
        [jan] = aggregate_by_month(entries)

        assert isinstance(jan, MonthlyAggregate)
        assert (jan.year, jan.month) == (2025, 1)
        assert jan.pending_in == Decimal("300")
        assert jan.pending_out == Decimal("100")
        assert jan.realized_in == Decimal("25")
        assert jan.realized_out == Decimal("40")
        assert jan.pending_net == Decimal("200")
        assert jan.net == Decimal("185")
        assert jan.entry_count == 4

    def test_skipped_and_reversed_contribute_zero(self, make_entry):
        entries = [
            make_entry("a", "expense", "100", date(2025, 1, 5), EntryStatus.SKIPPED),
            make_entry("b", "revenue", "50", date(2025, 1, 6), EntryStatus.REVERSED),
        ]
        [jan] = aggregate_by_month(entries)
        assert jan.net == Decimal("0")
        assert jan.entry_count == 2

    def test_realized_percentages(self, make_entry):
        entries = [
            make_entry("a", "expense", "30", date(2025, 1, 5), EntryStatus.CONFIRMED),
            make_entry("b", "expense", "60", date(2025, 1, 6)),
        ]
        [jan] = aggregate_by_month(entries)
        assert jan.pct_expense_realized == Decimal("33.33")
        assert jan.pct_withdrawal_realized == Decimal("0")


class TestGrouping:

    def test_months_in_first_seen_order(self, make_entry):
        entries = [
            make_entry("a", due_date=date(2025, 3, 1)),
            make_entry("b", due_date=date(2025, 1, 1)),
            make_entry("c", due_date=date(2025, 3, 9)),
        ]
        assert [a.key for a in aggregate_by_month(entries)] == [
            MonthKey(2025, 3),
            MonthKey(2025, 1),
        ]

    def test_undated_excluded_from_months(self, make_entry, captured_logs):
        entries = [make_entry("a", due_date=None), make_entry("b")]
        assert sum(a.entry_count for a in aggregate_by_month(entries)) == 1
        assert any(r["message"] == "undated_entries_excluded" for r in captured_logs())

    def test_group_by_cost_center_keeps_none(self, make_entry):
        entries = [
            make_entry("a", cost_center_id="cc1"),
            make_entry("b"),
            make_entry("c", cost_center_id="cc1"),
        ]
        groups = {a.key: a.entry_count for a in aggregate(entries, group_by=GroupBy.COST_CENTER)}
        assert groups == {"cc1": 2, None: 1}

    def test_custom_key_function(self, make_entry):
        entries = [make_entry("a", "revenue"), make_entry("b", "expense")]
        groups = aggregate(entries, group_by=lambda e: e.is_inflow)
        assert {g.key for g in groups} == {True, False}

    def test_unknown_group_by(self, make_entry):
        with pytest.raises(ValueError, match="Unknown group_by"):
            aggregate([make_entry("a")], group_by="weekday")

    def test_conservation(self, make_entry):
        entries = [
            make_entry("a", "expense", "10.10", date(2025, 1, 1)),
            make_entry("b", "revenue", "99.99", date(2025, 2, 1), EntryStatus.CONFIRMED),
            make_entry("c", "withdrawal", "5", date(2025, 2, 3), EntryStatus.SKIPPED),
            make_entry("d", "contribution", "7", date(2025, 4, 3)),
        ]
        expected = sum(
            (e.signed_amount for e in entries if e.status != EntryStatus.SKIPPED),
            Decimal("0"),
        )
        assert sum((g.net for g in aggregate_by_month(entries)), Decimal("0")) == expected


class TestReportSummaries:

    def test_expense_breakdown_sorted_with_percentages(self, make_entry):
        entries = [
            make_entry("a", "expense", "75", commitment_group_id="rent"),
            make_entry("b", "expense", "25", commitment_group_id="food"),
            make_entry("c", "revenue", "500", commitment_group_id="sales"),
        ]
        shares = expense_breakdown(
            aggregate(entries, group_by=GroupBy.COMMITMENT_GROUP),
            {"rent": "Rent", "food": "Food"},
        )
        assert [(s.label, s.value, s.percentage) for s in shares] == [
            ("Rent", Decimal("75"), 75),
            ("Food", Decimal("25"), 25),
        ]

    def test_expense_breakdown_ignores_withdrawals(self, make_entry):
        entries = [
            make_entry("a", "expense", "60", commitment_group_id="rent"),
            make_entry("b", "withdrawal", "40", commitment_group_id="rent"),
            make_entry("c", "withdrawal", "300", commitment_group_id="owner"),
            make_entry("d", "expense", "20", status=EntryStatus.CONFIRMED, commitment_group_id="food"),
        ]
        shares = expense_breakdown(aggregate(entries, group_by=GroupBy.COMMITMENT_GROUP))
        assert [(s.key, s.value, s.percentage) for s in shares] == [
            ("rent", Decimal("60"), 75),
            ("food", Decimal("20"), 25),
        ]

    def test_group_totals_merge_by_label(self, make_entry):
        entries = [
            make_entry("a", "revenue", "100", commitment_group_id="g1"),
            make_entry("b", "expense", "30", commitment_group_id="g2"),
            make_entry("c", "expense", "20"),
        ]
        totals = group_totals(
            entries,
            GroupBy.COMMITMENT_GROUP,
            labels={"g1": "operations", "g2": "Operations"},
            unassigned_label="(none)",
        )
        assert [(t.label, t.income, t.expense, t.total) for t in totals] == [
            ("(none)", Decimal("0"), Decimal("20"), Decimal("-20")),
            ("operations", Decimal("100"), Decimal("0"), Decimal("100")),
            ("Operations", Decimal("0"), Decimal("30"), Decimal("-30")),
        ]

    def test_list_totals_count_every_listed_entry(self, make_entry):
        entries = [
            make_entry("a", "revenue", "100"),
            make_entry("b", "expense", "30"),
            make_entry("c", "expense", "999", status=EntryStatus.SKIPPED),
        ]
        totals = list_totals(entries)
        assert totals.inflow == Decimal("100")
        assert totals.outflow == Decimal("30")
        assert totals.net == Decimal("70")
        assert totals.count == 3

    def test_selection_net(self, make_entry):
        entries = [make_entry("a", "revenue", "10"), make_entry("b", "expense", "4")]
        assert selection_net(entries) == Decimal("6")
