"""
Ledger reporting -- request-scoped snapshots and the views built on them.

Contract:
    Every report runs over one immutable ``LedgerSnapshot`` captured by the
    ``SnapshotLoader``; no transition can interleave a projection.  Engines
    do the arithmetic; this module only wires store, settings and clock to
    them.

Architecture: ledger_services.  Imports from ledger_kernel and
    ledger_engines.  Settings and clock arrive by constructor injection.

Concurrency:
    ``SnapshotLoader.load()`` cancels a superseded in-flight load, so an
    abandoned request never races a newer one; the superseded awaiter
    receives ``asyncio.CancelledError``.  The cached snapshot is dropped as
    soon as a reconciliation listener calls ``invalidate()``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from ledger_config.schema import LedgerSettings
from ledger_engines.aggregator import (
    ExpenseShare,
    GroupBy,
    GroupTotal,
    ListTotals,
    aggregate,
    aggregate_by_month,
    expense_breakdown,
    group_totals,
    list_totals,
)
from ledger_engines.buckets import BucketWindow, filter_window
from ledger_engines.calendar import MonthKey, month_range
from ledger_engines.classifier import DueClassification, classify_due
from ledger_engines.filters import EntryQuery
from ledger_engines.forecast import ForecastProjector, ForecastRow
from ledger_engines.pivot import PivotMatrix, build_pivot
from ledger_engines.splits import SplitMode, resolve_splits
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entries import (
    CostCenter,
    CostCenterSplit,
    EntryStatus,
    LedgerEntry,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.store import EntryFilter, LedgerStore

logger = get_logger("services.reporting")


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Immutable, request-scoped view of the ledger.

    Guarantees:
        - Captured once; never refreshed in place.
    """

    entries: tuple[LedgerEntry, ...]
    cost_centers: tuple[CostCenter, ...]
    splits: Mapping[str, tuple[CostCenterSplit, ...]]
    start_balance: Decimal
    as_of: date
    entry_filter: EntryFilter = field(default_factory=EntryFilter)

    @property
    def cost_center_labels(self) -> dict[str, str]:
        return {c.id: c.description for c in self.cost_centers}


class SnapshotLoader:
    """
    Loads ``LedgerSnapshot``s from the store, one in flight at a time.

    Args:
        store: Ledger persistence.
        clock: Source of the snapshot's as-of date.
        organization_id: Scope of the start balance.
    """

    def __init__(
        self,
        store: LedgerStore,
        clock: Clock | None = None,
        organization_id: str | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._organization_id = organization_id
        self._inflight: asyncio.Task[LedgerSnapshot] | None = None
        self._cached: LedgerSnapshot | None = None
        self._generation = 0

    @property
    def cached(self) -> LedgerSnapshot | None:
        return self._cached

    def invalidate(self, *_: Any) -> None:
        """Drop the cached snapshot.  Usable as an invalidation listener."""
        self._generation += 1
        self._cached = None
        logger.debug("snapshot_invalidated", extra={"generation": self._generation})

    async def load(self, entry_filter: EntryFilter | None = None) -> LedgerSnapshot:
        entry_filter = entry_filter or EntryFilter()
        if self._cached is not None and self._cached.entry_filter == entry_filter:
            return self._cached

        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
            logger.info("snapshot_load_superseded")

        generation = self._generation
        task = asyncio.create_task(self._fetch(entry_filter))
        self._inflight = task
        try:
            snapshot = await task
        finally:
            if self._inflight is task:
                self._inflight = None

        if generation == self._generation:
            self._cached = snapshot
        return snapshot

    async def _fetch(self, entry_filter: EntryFilter) -> LedgerSnapshot:
        entries = await self._store.list_entries(entry_filter)
        cost_centers = await self._store.list_cost_centers()
        shared = {c.id for c in cost_centers if c.shared}

        splits: dict[str, tuple[CostCenterSplit, ...]] = {}
        for entry in entries:
            schedule_id = entry.schedule_id
            if entry.cost_center_id in shared and schedule_id and schedule_id not in splits:
                splits[schedule_id] = tuple(
                    await self._store.list_cost_center_splits(schedule_id)
                )

        start_balance = await self._store.current_balance(
            entry_filter.organization_id or self._organization_id
        )
        snapshot = LedgerSnapshot(
            entries=tuple(entries),
            cost_centers=tuple(cost_centers),
            splits=splits,
            start_balance=start_balance,
            as_of=self._clock.today(),
            entry_filter=entry_filter,
        )
        logger.info(
            "snapshot_loaded",
            extra={
                "entry_count": len(snapshot.entries),
                "split_schedules": len(splits),
                "start_balance": start_balance,
            },
        )
        return snapshot


# ---------------------------------------------------------------------------
# Report views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SummaryItem:
    entry: LedgerEntry
    classification: DueClassification


@dataclass(frozen=True)
class LedgerSummary:
    """Pending list for a window, its totals and the forecast, newest first."""

    window: BucketWindow
    items: tuple[SummaryItem, ...]
    totals: ListTotals
    forecast: tuple[ForecastRow, ...]
    start_balance: Decimal


@dataclass(frozen=True)
class ChartPoint:
    month: MonthKey
    inflow: Decimal
    outflow: Decimal

    @property
    def profit(self) -> Decimal:
        return self.inflow - self.outflow


class LedgerReportService:
    """
    Report views over ledger snapshots.

    Args:
        loader: Snapshot source (also the invalidation target).
        settings: Currency places, split mode, pivot cap and labels.
        clock: Source of "today".
    """

    def __init__(
        self,
        loader: SnapshotLoader,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        self._loader = loader
        self._settings = settings or LedgerSettings()
        self._clock = clock or SystemClock()
        self._projector = ForecastProjector()

    @property
    def invalidation_listener(self):
        return self._loader.invalidate

    async def snapshot(self, entry_filter: EntryFilter | None = None) -> LedgerSnapshot:
        return await self._loader.load(entry_filter)

    def _resolved(
        self, snapshot: LedgerSnapshot, entries: Iterable[LedgerEntry] | None = None
    ) -> list[LedgerEntry]:
        return resolve_splits(
            snapshot.entries if entries is None else entries,
            snapshot.splits,
            snapshot.cost_centers,
            places=self._settings.currency_places,
            mode=SplitMode(self._settings.split_mode),
        )

    def summary(
        self,
        snapshot: LedgerSnapshot,
        window: BucketWindow | str = BucketWindow.CURRENT_MONTH,
    ) -> LedgerSummary:
        window = BucketWindow.parse(window)
        today = self._clock.today()
        pending = [e for e in snapshot.entries if e.status == EntryStatus.PENDING]
        in_window = filter_window(pending, today, window)
        items = tuple(
            SummaryItem(entry=e, classification=classify_due(today, e.due_date))
            for e in in_window
        )

        rows = self._projector.project(
            snapshot.start_balance, aggregate_by_month(snapshot.entries)
        )
        first_shown = MonthKey.of(today).plus(-self._settings.forecast_history_months)
        shown = [r for r in rows if r.key >= first_shown]

        return LedgerSummary(
            window=window,
            items=items,
            totals=list_totals(in_window),
            forecast=tuple(self._projector.for_display(shown)),
            start_balance=snapshot.start_balance,
        )

    def pivot(
        self,
        snapshot: LedgerSnapshot,
        start: MonthKey | date,
        end: MonthKey | date,
    ) -> PivotMatrix:
        return build_pivot(
            self._resolved(snapshot),
            start=start,
            end=end,
            labels=snapshot.cost_center_labels,
            max_months=self._settings.pivot_max_months,
            unassigned_label=self._settings.unassigned_cost_center_label,
        )

    def group_report(
        self,
        snapshot: LedgerSnapshot,
        start: date,
        end: date,
        query: EntryQuery | None = None,
        group_by: GroupBy = GroupBy.COMMITMENT_GROUP,
        labels: Mapping[Any, str] | None = None,
    ) -> list[GroupTotal]:
        """Synthetic report: per group income, expense and total, by label."""
        if start > end:
            raise ValueError(f"Report start {start} is after end {end}")
        entries = EntryQuery(due_from=start, due_to=end).apply(snapshot.entries)
        if query is not None:
            entries = query.apply(entries)
        if group_by == GroupBy.COST_CENTER:
            entries = self._resolved(snapshot, entries)
            labels = labels or snapshot.cost_center_labels
        return group_totals(
            entries,
            group_by,
            labels=dict(labels or {}),
            unassigned_label=self._settings.unassigned_cost_center_label,
        )

    def expenses_by_group(
        self,
        snapshot: LedgerSnapshot,
        group_by: GroupBy = GroupBy.COMMITMENT_GROUP,
        labels: Mapping[Any, str] | None = None,
    ) -> list[ExpenseShare]:
        """Dashboard breakdown of expenses per group over the chart's months."""
        first, current = self._chart_months()
        entries = [
            e
            for e in snapshot.entries
            if e.due_date is not None and first <= MonthKey.of(e.due_date) <= current
        ]
        if group_by == GroupBy.COST_CENTER:
            entries = self._resolved(snapshot, entries)
            labels = labels or snapshot.cost_center_labels
        return expense_breakdown(aggregate(entries, group_by), dict(labels or {}))

    def _chart_months(self) -> tuple[MonthKey, MonthKey]:
        current = MonthKey.of(self._clock.today())
        return current.plus(-(self._settings.forecast_history_months - 1)), current

    def monthly_chart(self, snapshot: LedgerSnapshot) -> list[ChartPoint]:
        """Inflow, outflow and profit per month, ending with the current month."""
        first, current = self._chart_months()
        by_month = {
            agg.key: agg
            for agg in aggregate_by_month(
                e for e in snapshot.entries if e.status != EntryStatus.SKIPPED
            )
        }
        points: list[ChartPoint] = []
        for month in month_range(first, current):
            agg = by_month.get(month)
            if agg is None:
                points.append(ChartPoint(month, Decimal("0"), Decimal("0")))
            else:
                points.append(ChartPoint(month, agg.total_in, agg.total_out))
        return points
