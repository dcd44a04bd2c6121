"""ORM models for the ledger kernel."""

from ledger_kernel.models.cost_center import CostCenterModel, CostCenterSplitModel
from ledger_kernel.models.entry import LedgerEntryModel, RealizedRecordModel
from ledger_kernel.models.schedule import AccountModel, ScheduleModel

__all__ = [
    "AccountModel",
    "CostCenterModel",
    "CostCenterSplitModel",
    "LedgerEntryModel",
    "RealizedRecordModel",
    "ScheduleModel",
]
