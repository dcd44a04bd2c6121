"""
Module: ledger_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    ledger_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel domain types, exceptions and logging.
    MUST NOT import ledger_services, ledger_config or SQLAlchemy.

Invariants enforced:
    - Purity: engines never read the clock.  "today" is always a parameter.
    - Decimal-only arithmetic for all amounts.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from ledger_engines import (
        aggregate_by_month, build_pivot, get_buckets, project_forecast,
        resolve_splits,
    )
"""

from ledger_engines.aggregator import (
    ExpenseShare,
    FlowAggregate,
    FlowTotals,
    GroupBy,
    GroupTotal,
    ListTotals,
    MonthlyAggregate,
    aggregate,
    aggregate_by_month,
    expense_breakdown,
    group_totals,
    list_totals,
    selection_net,
)
from ledger_engines.buckets import BucketWindow, filter_window, get_buckets
from ledger_engines.calendar import MonthKey, add_months, end_of_month, month_range
from ledger_engines.classifier import (
    DueClassification,
    DueStatus,
    classify_due,
    parse_calendar_date,
)
from ledger_engines.filters import EntryQuery, OperationPreset
from ledger_engines.forecast import (
    ForecastProjector,
    ForecastRow,
    ForecastSituation,
    for_display,
    project_forecast,
)
from ledger_engines.pivot import PivotMatrix, PivotRow, build_pivot
from ledger_engines.splits import (
    CostCenterSplitResolver,
    SplitMode,
    divide_amount,
    resolve_splits,
)
from ledger_engines.tracer import traced_engine

__all__ = [
    "BucketWindow",
    "CostCenterSplitResolver",
    "DueClassification",
    "DueStatus",
    "EntryQuery",
    "ExpenseShare",
    "FlowAggregate",
    "FlowTotals",
    "ForecastProjector",
    "ForecastRow",
    "ForecastSituation",
    "GroupBy",
    "GroupTotal",
    "ListTotals",
    "MonthKey",
    "MonthlyAggregate",
    "OperationPreset",
    "PivotMatrix",
    "PivotRow",
    "SplitMode",
    "add_months",
    "aggregate",
    "aggregate_by_month",
    "build_pivot",
    "classify_due",
    "divide_amount",
    "end_of_month",
    "expense_breakdown",
    "filter_window",
    "for_display",
    "get_buckets",
    "group_totals",
    "list_totals",
    "month_range",
    "parse_calendar_date",
    "project_forecast",
    "resolve_splits",
    "selection_net",
    "traced_engine",
]
