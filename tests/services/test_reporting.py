"""
Tests for snapshots and report views.

Covers:
- Snapshot loading, caching and invalidation by reconciliation
- Superseded loads are cancelled
- Summary (pending window, totals, forecast)
- Pivot with shared cost centers resolved
- Group report and monthly chart
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from ledger_config.schema import LedgerSettings
from ledger_engines.aggregator import GroupBy
from ledger_engines.buckets import BucketWindow
from ledger_engines.calendar import MonthKey
from ledger_engines.classifier import DueStatus
from ledger_engines.filters import EntryQuery, OperationPreset
from ledger_kernel.domain.entries import (
    Account,
    CostCenter,
    CostCenterSplit,
    EntryStatus,
)
from ledger_kernel.services.sql_store import SqlLedgerStore
from ledger_kernel.store import EntryFilter
from ledger_services.reporting import LedgerReportService, SnapshotLoader


@pytest.fixture
async def ledger(store, make_entry):
    """Accounts, cost centers, splits and a mix of entries around 2025-01-15."""
    await store.add_reference(
        Account(id="acc-1", name="Checking", opening_balance=Decimal("1000")),
        Account(id="acc-old", name="Closed", active=False, opening_balance=Decimal("5000")),
        CostCenter("shared", "Shared", shared=True),
        CostCenter("ops", "Operations"),
        CostCenter("sales", "Sales"),
        CostCenterSplit("s1", "ops", Decimal("1")),
        CostCenterSplit("s1", "sales", Decimal("3")),
    )
    await store.add_entries([
        make_entry("late", "expense", "100", date(2025, 1, 5), cost_center_id="ops",
                   commitment_group_id="g-rent", description="Rent"),
        make_entry("pay", "revenue", "300", date(2025, 1, 20), cost_center_id="sales",
                   commitment_group_id="g-sales", description="Invoice 42"),
        make_entry("util", "expense", "80", date(2025, 2, 10), cost_center_id="shared",
                   schedule_id="s1", description="Utilities"),
        make_entry("old", "revenue", "50", date(2024, 12, 3), EntryStatus.CONFIRMED,
                   account_id="acc-1", settlement_date=date(2024, 12, 3)),
        make_entry("skip", "expense", "999", date(2025, 1, 9), EntryStatus.SKIPPED),
    ])
    return store


class TestSnapshotLoader:

    async def test_snapshot_contents(self, ledger, snapshot_loader):
        snapshot = await snapshot_loader.load()

        assert [e.id for e in snapshot.entries] == ["old", "late", "skip", "pay", "util"]
        assert snapshot.start_balance == Decimal("1000")
        assert snapshot.as_of == date(2025, 1, 15)
        assert [s.cost_center_id for s in snapshot.splits["s1"]] == ["ops", "sales"]
        assert snapshot.cost_center_labels["ops"] == "Operations"

    async def test_cached_until_invalidated(self, ledger, snapshot_loader):
        first = await snapshot_loader.load()
        assert await snapshot_loader.load() is first

        snapshot_loader.invalidate()
        assert await snapshot_loader.load() is not first

    async def test_reconciliation_invalidates_cache(self, ledger, snapshot_loader, state_machine):
        state_machine.add_listener(snapshot_loader.invalidate)
        before = await snapshot_loader.load()

        await state_machine.skip("late")

        after = await snapshot_loader.load()
        assert after is not before
        assert {e.id: e.status for e in after.entries}["late"] == EntryStatus.SKIPPED

    async def test_report_service_listener(self, ledger, report_service, state_machine):
        state_machine.add_listener(report_service.invalidation_listener)
        before = await report_service.snapshot()
        await state_machine.unskip("skip")
        after = await report_service.snapshot()
        assert {e.id: e.status for e in after.entries}["skip"] == EntryStatus.PENDING
        assert before is not after

    async def test_different_filter_reloads(self, ledger, snapshot_loader):
        everything = await snapshot_loader.load()
        pending = await snapshot_loader.load(EntryFilter.of(statuses=[EntryStatus.PENDING]))
        assert pending is not everything
        assert {e.status for e in pending.entries} == {EntryStatus.PENDING}

    async def test_superseded_load_cancelled(self, ledger, session_factory, deterministic_clock):
        class GatedStore(SqlLedgerStore):
            def __init__(self, factory):
                super().__init__(factory)
                self.entered = asyncio.Event()
                self.gate = asyncio.Event()
                self.calls = 0

            async def list_entries(self, entry_filter=None):
                self.calls += 1
                if self.calls == 1:
                    self.entered.set()
                    await self.gate.wait()
                return await super().list_entries(entry_filter)

        gated = GatedStore(session_factory)
        loader = SnapshotLoader(gated, clock=deterministic_clock)

        stale = asyncio.create_task(loader.load())
        await gated.entered.wait()

        fresh = await loader.load(EntryFilter.of(statuses=[EntryStatus.PENDING]))

        with pytest.raises(asyncio.CancelledError):
            await stale
        assert {e.status for e in fresh.entries} == {EntryStatus.PENDING}
        assert loader.cached is fresh


class TestSummary:

    async def test_current_month_pending(self, ledger, report_service):
        snapshot = await report_service.snapshot()
        summary = report_service.summary(snapshot, BucketWindow.CURRENT_MONTH)

        assert [i.entry.id for i in summary.items] == ["late", "pay"]
        assert summary.items[0].classification.label == DueStatus.OVERDUE
        assert summary.items[0].classification.message == "Overdue by 10 days"
        assert summary.totals.inflow == Decimal("300")
        assert summary.totals.outflow == Decimal("100")
        assert summary.totals.count == 2

    async def test_forecast_newest_first(self, ledger, report_service):
        snapshot = await report_service.snapshot()
        summary = report_service.summary(snapshot, "next_month")

        assert [str(r.key) for r in summary.forecast] == ["2025-02", "2025-01", "2024-12"]
        balances = {str(r.key): r.running_balance for r in summary.forecast}
        assert balances["2024-12"] == Decimal("1000")
        assert balances["2025-01"] == Decimal("1200")
        assert balances["2025-02"] == Decimal("1120")
        assert [i.entry.id for i in summary.items] == ["util"]


class TestPivotReport:

    async def test_shared_split_equally_by_default(self, ledger, report_service):
        snapshot = await report_service.snapshot()
        matrix = report_service.pivot(snapshot, MonthKey(2025, 1), MonthKey(2025, 2))

        assert matrix.cell("Operations", MonthKey(2025, 2)) == Decimal("-40")
        assert matrix.cell("Sales", MonthKey(2025, 2)) == Decimal("-40")
        assert matrix.row("Shared") is None
        assert matrix.grand_total == Decimal("120")

    async def test_weighted_mode_from_settings(self, ledger, snapshot_loader, deterministic_clock):
        service = LedgerReportService(
            snapshot_loader,
            settings=LedgerSettings(split_mode="weighted"),
            clock=deterministic_clock,
        )
        snapshot = await service.snapshot()
        matrix = service.pivot(snapshot, MonthKey(2025, 2), MonthKey(2025, 2))
        assert matrix.cell("Operations", MonthKey(2025, 2)) == Decimal("-20")
        assert matrix.cell("Sales", MonthKey(2025, 2)) == Decimal("-60")

    async def test_pivot_cap_from_settings(self, ledger, snapshot_loader, deterministic_clock):
        service = LedgerReportService(
            snapshot_loader,
            settings=LedgerSettings(pivot_max_months=2),
            clock=deterministic_clock,
        )
        snapshot = await service.snapshot()
        matrix = service.pivot(snapshot, MonthKey(2025, 1), MonthKey(2025, 12))
        assert matrix.truncated
        assert len(matrix.months) == 2


class TestGroupReport:

    async def test_group_by_commitment_group(self, ledger, report_service):
        snapshot = await report_service.snapshot()
        lines = report_service.group_report(
            snapshot, date(2025, 1, 1), date(2025, 1, 31),
            labels={"g-rent": "Rent", "g-sales": "Sales"},
        )
        assert [(l.label, l.income, l.expense) for l in lines] == [
            ("Rent", Decimal("0"), Decimal("100")),
            ("Sales", Decimal("300"), Decimal("0")),
            ("Unassigned", Decimal("0"), Decimal("0")),
        ]

    async def test_group_by_cost_center_with_query(self, ledger, report_service):
        snapshot = await report_service.snapshot()
        lines = report_service.group_report(
            snapshot, date(2025, 1, 1), date(2025, 3, 31),
            query=EntryQuery(preset=OperationPreset.EXPENSES),
            group_by=GroupBy.COST_CENTER,
        )
        assert {l.label: l.expense for l in lines} == {
            "Operations": Decimal("140.00"),
            "Sales": Decimal("40.00"),
            "Unassigned": Decimal("0"),
        }

    async def test_inverted_range(self, ledger, report_service):
        snapshot = await report_service.snapshot()
        with pytest.raises(ValueError):
            report_service.group_report(snapshot, date(2025, 2, 1), date(2025, 1, 1))


class TestMonthlyChart:

    async def test_trailing_months_zero_filled(self, ledger, report_service):
        snapshot = await report_service.snapshot()
        points = report_service.monthly_chart(snapshot)

        assert len(points) == 12
        assert points[0].month == MonthKey(2024, 2)
        assert points[-1].month == MonthKey(2025, 1)
        by_month = {str(p.month): p for p in points}
        assert by_month["2024-12"].inflow == Decimal("50")
        assert by_month["2025-01"].inflow == Decimal("300")
        assert by_month["2025-01"].outflow == Decimal("100")
        assert by_month["2025-01"].profit == Decimal("200")
        assert by_month["2024-06"].profit == Decimal("0")

    async def test_expenses_by_group(self, ledger, report_service):
        snapshot = await report_service.snapshot()
        shares = report_service.expenses_by_group(snapshot, labels={"g-rent": "Rent"})
        assert [(s.label, s.percentage) for s in shares] == [("Rent", 100)]

    async def test_expenses_by_group_covers_chart_months(self, ledger, store, make_entry, report_service):
        await store.add_entries([
            make_entry("feb", "expense", "40", date(2024, 2, 3), EntryStatus.CONFIRMED,
                       commitment_group_id="g-tax"),
            make_entry("jan", "expense", "700", date(2024, 1, 20), EntryStatus.CONFIRMED,
                       commitment_group_id="g-old"),
        ])
        snapshot = await report_service.snapshot()

        months = [p.month for p in report_service.monthly_chart(snapshot)]
        shares = report_service.expenses_by_group(snapshot)

        assert months[0] == MonthKey(2024, 2)
        assert [(s.key, s.value) for s in shares] == [
            ("g-rent", Decimal("100")),
            ("g-tax", Decimal("40")),
        ]
