"""
Module: ledger_engines.pivot
Responsibility:
    Build the cost-center x month matrix of net signed amounts used by the
    cost-center report.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The column set is fixed by the requested month range; months with no
      entries are zero.
    - Rows are one per distinct cost-center label, sorted by label.
    - Cell values are contributing signed amounts; skipped and reversed
      entries contribute zero.  Entries outside the range are ignored.
    - Row totals equal the sum of their cells; column totals and the grand
      total are consistent with the rows.

Failure modes:
    - ValueError when ``start > end``.
    - A range longer than ``max_months`` is truncated to ``max_months``
      with a warning, never raised.

Usage:
    from ledger_engines.pivot import build_pivot

    matrix = build_pivot(resolved, MonthKey(2025, 1), MonthKey(2025, 12), labels)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_engines.calendar import MonthKey, month_range
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.entries import LedgerEntry
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.pivot")

DEFAULT_MAX_MONTHS = 36
DEFAULT_UNASSIGNED_LABEL = "Unassigned"

_ZERO = Decimal("0")


@dataclass(frozen=True)
class PivotRow:
    label: str
    cells: tuple[Decimal, ...]

    @property
    def total(self) -> Decimal:
        return sum(self.cells, _ZERO)


@dataclass(frozen=True)
class PivotMatrix:
    """
    Cost-center by month matrix.

    Guarantees:
        - ``len(row.cells) == len(months)`` for every row.
        - ``truncated`` is True when the requested range exceeded the cap.
    """

    months: tuple[MonthKey, ...]
    rows: tuple[PivotRow, ...]
    truncated: bool = False

    @property
    def column_totals(self) -> tuple[Decimal, ...]:
        return tuple(
            sum((row.cells[i] for row in self.rows), _ZERO)
            for i in range(len(self.months))
        )

    @property
    def grand_total(self) -> Decimal:
        return sum((row.total for row in self.rows), _ZERO)

    def row(self, label: str) -> PivotRow | None:
        for candidate in self.rows:
            if candidate.label == label:
                return candidate
        return None

    def cell(self, label: str, month: MonthKey) -> Decimal:
        row = self.row(label)
        if row is None or month not in self.months:
            return _ZERO
        return row.cells[self.months.index(month)]


def _month(value: MonthKey | date) -> MonthKey:
    return value if isinstance(value, MonthKey) else MonthKey.of(value)


@traced_engine("pivot", "1.0", fingerprint_fields=("start", "end", "max_months"))
def build_pivot(
    entries: Iterable[LedgerEntry],
    start: MonthKey | date,
    end: MonthKey | date,
    labels: Mapping[str, str] | None = None,
    max_months: int = DEFAULT_MAX_MONTHS,
    unassigned_label: str = DEFAULT_UNASSIGNED_LABEL,
) -> PivotMatrix:
    """
    Build the matrix for ``[start, end]`` inclusive.

    Args:
        entries: Entries with shared cost centers already resolved.
        labels: cost_center_id -> display label.  Unknown ids use the id.
    """
    first, last = _month(start), _month(end)
    if first > last:
        raise ValueError(f"Pivot start {first} is after end {last}")

    truncated = False
    if first.months_until(last) + 1 > max_months:
        requested_last = last
        last = first.plus(max_months - 1)
        truncated = True
        logger.warning(
            "pivot_range_truncated",
            extra={
                "start": str(first),
                "requested_end": str(requested_last),
                "end": str(last),
                "max_months": max_months,
            },
        )

    months = tuple(month_range(first, last))
    index = {m: i for i, m in enumerate(months)}
    labels = labels or {}

    grid: dict[str, list[Decimal]] = {}
    for entry in entries:
        if entry.due_date is None:
            continue
        column = index.get(MonthKey.of(entry.due_date))
        if column is None:
            continue
        if entry.cost_center_id is None:
            label = unassigned_label
        else:
            label = labels.get(entry.cost_center_id, entry.cost_center_id)
        cells = grid.setdefault(label, [_ZERO] * len(months))
        cells[column] += entry.contributing_amount

    rows = tuple(
        PivotRow(label=label, cells=tuple(grid[label]))
        for label in sorted(grid, key=str.casefold)
    )
    return PivotMatrix(months=months, rows=rows, truncated=truncated)
