"""
Pure domain layer.

This module contains immutable domain objects and the reconciliation
workflow table with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (except SystemClock)
"""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.entries import (
    Account,
    CostCenter,
    CostCenterSplit,
    EntryStatus,
    Installment,
    LedgerEntry,
    Operation,
    Schedule,
    ScheduleKind,
    SchedulePeriod,
    ScheduleStatus,
    ScheduleUpdate,
    parse_installment,
    replace_installment,
)
from ledger_kernel.domain.normalize import normalize_record, parse_calendar_date
from ledger_kernel.domain.workflow import (
    RECONCILIATION_WORKFLOW,
    Transition,
    Workflow,
)

__all__ = [
    "Account",
    "Clock",
    "CostCenter",
    "CostCenterSplit",
    "DeterministicClock",
    "EntryStatus",
    "Installment",
    "LedgerEntry",
    "Operation",
    "RECONCILIATION_WORKFLOW",
    "Schedule",
    "ScheduleKind",
    "SchedulePeriod",
    "ScheduleStatus",
    "ScheduleUpdate",
    "SystemClock",
    "Transition",
    "Workflow",
    "normalize_record",
    "parse_calendar_date",
    "parse_installment",
    "replace_installment",
]
