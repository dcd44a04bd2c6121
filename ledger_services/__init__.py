"""
ledger_services -- Package init and public API.

Responsibility:
    Stateful orchestration over the pure engines (ledger_engines/) and the
    kernel store contract.  This is the only layer that awaits the store,
    reads the clock for "today" and notifies invalidation listeners.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction (checked by tests/architecture/test_layer_boundary.py):
        ledger_services/ -> ledger_engines/  (allowed)
        ledger_services/ -> ledger_kernel/   (allowed)
        ledger_engines/  -> ledger_services/ (FORBIDDEN)
        ledger_kernel/   -> ledger_services/ (FORBIDDEN)
"""

from ledger_services.reconciliation import (
    BulkConfirmResult,
    BulkFailure,
    BulkStatus,
    ReconciliationStateMachine,
    TransitionResult,
)
from ledger_services.reporting import (
    ChartPoint,
    LedgerReportService,
    LedgerSnapshot,
    LedgerSummary,
    SnapshotLoader,
    SummaryItem,
)
from ledger_services.schedule_rollover import compute_rollover, next_due_date

__all__ = [
    "BulkConfirmResult",
    "BulkFailure",
    "BulkStatus",
    "ChartPoint",
    "LedgerReportService",
    "LedgerSnapshot",
    "LedgerSummary",
    "ReconciliationStateMachine",
    "SnapshotLoader",
    "SummaryItem",
    "TransitionResult",
    "compute_rollover",
    "next_due_date",
]
