"""
Module: ledger_engines.aggregator
Responsibility:
    Group ledger entries by a key (month, cost center, commitment group,
    account, client or any callable) and total each group into four
    independent buckets: pending in/out and realized in/out, with the
    per-operation breakdown kept alongside.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Realized means confirmed, pending means pending; skipped and reversed
      entries contribute zero.
    - All four buckets are non-negative; sign is applied only in ``net``.
    - Conservation: the sum of group nets equals the sum of the signed
      contributions of the grouped entries.
    - Groups are returned in first-seen key order.
    - Decimal-only arithmetic.

Failure modes:
    - ValueError on an unknown ``GroupBy`` name.
    - Entries without a due date are excluded from month grouping (logged),
      never raised.

Usage:
    from ledger_engines.aggregator import GroupBy, aggregate, aggregate_by_month

    by_center = aggregate(entries, GroupBy.COST_CENTER)
    months = aggregate_by_month(entries)
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from ledger_engines.calendar import MonthKey
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.entries import LedgerEntry, Operation
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.aggregator")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_PCT_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class FlowTotals:
    """
    Per-operation totals for one side (pending or realized) of a group.

    Guarantees:
        - Every field is a non-negative Decimal.
    """

    expense: Decimal = _ZERO
    revenue: Decimal = _ZERO
    contribution: Decimal = _ZERO
    withdrawal: Decimal = _ZERO

    @property
    def inflow(self) -> Decimal:
        return self.revenue + self.contribution

    @property
    def outflow(self) -> Decimal:
        return self.expense + self.withdrawal

    @property
    def net(self) -> Decimal:
        return self.inflow - self.outflow

    def amount_for(self, operation: Operation) -> Decimal:
        return getattr(self, operation.value)

    def plus(self, operation: Operation, amount: Decimal) -> FlowTotals:
        values = {op.value: self.amount_for(op) for op in Operation}
        values[operation.value] += amount
        return FlowTotals(**values)


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return _ZERO
    return (part / whole * _HUNDRED).quantize(_PCT_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FlowAggregate:
    """
    Totals of one group.

    Contract:
        ``key`` is whatever the grouping function returned for the group's
        entries.  ``pending`` and ``realized`` hold the per-operation sums.
    """

    key: Any
    pending: FlowTotals = field(default_factory=FlowTotals)
    realized: FlowTotals = field(default_factory=FlowTotals)
    entry_count: int = 0

    @property
    def pending_in(self) -> Decimal:
        return self.pending.inflow

    @property
    def pending_out(self) -> Decimal:
        return self.pending.outflow

    @property
    def realized_in(self) -> Decimal:
        return self.realized.inflow

    @property
    def realized_out(self) -> Decimal:
        return self.realized.outflow

    @property
    def pending_net(self) -> Decimal:
        return self.pending_in - self.pending_out

    @property
    def total_in(self) -> Decimal:
        return self.pending_in + self.realized_in

    @property
    def total_out(self) -> Decimal:
        return self.pending_out + self.realized_out

    @property
    def net(self) -> Decimal:
        return self.total_in - self.total_out

    @property
    def pct_expense_realized(self) -> Decimal:
        """Share of the group's expenses already realized, in percent."""
        return _percent(self.realized.expense, self.pending.expense + self.realized.expense)

    @property
    def pct_withdrawal_realized(self) -> Decimal:
        return _percent(
            self.realized.withdrawal, self.pending.withdrawal + self.realized.withdrawal
        )

    def including(self, entry: LedgerEntry) -> FlowAggregate:
        """Return a copy with ``entry`` added to the matching side."""
        pending, realized = self.pending, self.realized
        if entry.is_pending:
            pending = pending.plus(entry.operation, entry.amount)
        elif entry.is_realized:
            realized = realized.plus(entry.operation, entry.amount)
        return type(self)(
            key=self.key,
            pending=pending,
            realized=realized,
            entry_count=self.entry_count + 1,
        )


@dataclass(frozen=True)
class MonthlyAggregate(FlowAggregate):
    """A ``FlowAggregate`` keyed by ``MonthKey``."""

    @property
    def year(self) -> int:
        return self.key.year

    @property
    def month(self) -> int:
        return self.key.month


class GroupBy(str, Enum):
    MONTH = "month"
    COST_CENTER = "cost_center"
    COMMITMENT_GROUP = "commitment_group"
    ACCOUNT = "account"
    CLIENT = "client"


def _month_key(entry: LedgerEntry) -> MonthKey | None:
    return MonthKey.of(entry.due_date) if entry.due_date is not None else None


_KEY_FUNCTIONS: dict[GroupBy, Callable[[LedgerEntry], Hashable]] = {
    GroupBy.MONTH: _month_key,
    GroupBy.COST_CENTER: lambda e: e.cost_center_id,
    GroupBy.COMMITMENT_GROUP: lambda e: e.commitment_group_id,
    GroupBy.ACCOUNT: lambda e: e.account_id,
    GroupBy.CLIENT: lambda e: e.client_id,
}


def key_function(group_by: GroupBy | str | Callable[[LedgerEntry], Hashable]) -> Callable[[LedgerEntry], Hashable]:
    if callable(group_by) and not isinstance(group_by, (str, GroupBy)):
        return group_by
    try:
        return _KEY_FUNCTIONS[GroupBy(group_by)]
    except ValueError:
        raise ValueError(f"Unknown group_by: {group_by!r}") from None


def _group(
    entries: Iterable[LedgerEntry],
    key_fn: Callable[[LedgerEntry], Hashable],
    factory: type[FlowAggregate],
    skip_none_keys: bool,
) -> list[FlowAggregate]:
    groups: dict[Hashable, FlowAggregate] = {}
    excluded = 0
    for entry in entries:
        key = key_fn(entry)
        if key is None and skip_none_keys:
            excluded += 1
            continue
        current = groups.get(key)
        if current is None:
            current = factory(key=key)
        groups[key] = current.including(entry)
    if excluded:
        logger.warning("undated_entries_excluded", extra={"count": excluded})
    return list(groups.values())


@traced_engine("aggregator", "1.0", fingerprint_fields=("group_by",))
def aggregate(
    entries: Iterable[LedgerEntry],
    group_by: GroupBy | str | Callable[[LedgerEntry], Hashable] = GroupBy.MONTH,
) -> list[FlowAggregate]:
    """
    One aggregate per distinct key, in first-seen order.

    Grouping by month yields ``MonthlyAggregate`` rows and drops undated
    entries; other groupings keep entries with a ``None`` key under ``None``.
    """
    key_fn = key_function(group_by)
    by_month = key_fn is _month_key
    return _group(
        entries,
        key_fn,
        MonthlyAggregate if by_month else FlowAggregate,
        skip_none_keys=by_month,
    )


def aggregate_by_month(entries: Iterable[LedgerEntry]) -> list[MonthlyAggregate]:
    return aggregate(entries, group_by=GroupBy.MONTH)


# ---------------------------------------------------------------------------
# Report-level summaries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExpenseShare:
    key: Any
    label: str
    value: Decimal
    percentage: int


def expense_breakdown(
    aggregates: Sequence[FlowAggregate],
    labels: dict[Any, str] | None = None,
) -> list[ExpenseShare]:
    """
    Expenses per group with their integer share of the total, largest first.

    Only the ``expense`` operation counts, pending and realized alike;
    withdrawals are capital movements, not expenses.  Groups without
    expenses are dropped.
    """
    labels = labels or {}
    rows = [(a.key, a.pending.expense + a.realized.expense) for a in aggregates]
    rows = [(key, value) for key, value in rows if value > 0]
    total = sum((value for _, value in rows), _ZERO)
    shares = [
        ExpenseShare(
            key=key,
            label=labels.get(key, str(key) if key is not None else ""),
            value=value,
            percentage=int((value / total * _HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
        )
        for key, value in rows
    ]
    shares.sort(key=lambda s: s.value, reverse=True)
    return shares


@dataclass(frozen=True)
class GroupTotal:
    """Synthetic report line: income, expense and their difference."""

    label: str
    income: Decimal
    expense: Decimal

    @property
    def total(self) -> Decimal:
        return self.income - self.expense


def group_totals(
    entries: Iterable[LedgerEntry],
    group_by: GroupBy | str | Callable[[LedgerEntry], Hashable],
    labels: dict[Any, str] | None = None,
    unassigned_label: str = "Unassigned",
) -> list[GroupTotal]:
    """Per group label: income and expense over contributing entries, sorted by label."""
    labels = labels or {}
    merged: dict[str, GroupTotal] = {}
    for agg in _group(entries, key_function(group_by), FlowAggregate, skip_none_keys=False):
        if agg.key is None:
            label = unassigned_label
        else:
            label = labels.get(agg.key, str(agg.key))
        previous = merged.get(label)
        income, expense = agg.total_in, agg.total_out
        if previous is not None:
            income += previous.income
            expense += previous.expense
        merged[label] = GroupTotal(label=label, income=income, expense=expense)
    return sorted(merged.values(), key=lambda g: g.label.casefold())


@dataclass(frozen=True)
class ListTotals:
    inflow: Decimal
    outflow: Decimal
    count: int

    @property
    def net(self) -> Decimal:
        return self.inflow - self.outflow


def list_totals(entries: Iterable[LedgerEntry]) -> ListTotals:
    """Inflow and outflow of contributing entries; count covers every listed entry."""
    inflow = outflow = _ZERO
    count = 0
    for entry in entries:
        count += 1
        if not entry.contributes:
            continue
        if entry.is_inflow:
            inflow += entry.amount
        else:
            outflow += entry.amount
    return ListTotals(inflow=inflow, outflow=outflow, count=count)


def selection_net(entries: Iterable[LedgerEntry]) -> Decimal:
    """Net signed amount of a user selection."""
    return sum((e.contributing_amount for e in entries), _ZERO)
