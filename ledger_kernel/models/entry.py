"""
Module: ledger_kernel.models.entry
Responsibility: ORM persistence for ledger entries and the realized records
    that back confirmed entries.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ (for DTO conversion) only.

Invariants enforced:
    - At most one realized record per entry (UNIQUE entry_id).
    - A realized record keeps the scheduled amount the entry carried before
      confirmation, so a reversal restores it exactly.
    - Amounts are stored unsigned; operation carries the direction.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.entries import EntryStatus, LedgerEntry, Operation


class LedgerEntryModel(TrackedBase):
    """
    A scheduled or realized cash movement.

    Contract:
        ``status`` and ``operation`` hold the canonical enum values.
        ``to_dto()`` yields the immutable domain ``LedgerEntry``.
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        Index("idx_ledger_entry_org_due", "organization_id", "due_date"),
        Index("idx_ledger_entry_status", "status"),
        Index("idx_ledger_entry_schedule", "schedule_id"),
    )

    operation: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    due_date: Mapped[date | None] = mapped_column(nullable=True)
    settlement_date: Mapped[date | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EntryStatus.PENDING.value
    )

    account_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    commitment_group_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    commitment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cost_center_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    schedule_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    organization_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    def to_dto(self) -> LedgerEntry:
        return LedgerEntry(
            id=self.id,
            operation=Operation(self.operation),
            amount=Decimal(self.amount),
            due_date=self.due_date,
            settlement_date=self.settlement_date,
            status=EntryStatus(self.status),
            account_id=self.account_id,
            client_id=self.client_id,
            commitment_group_id=self.commitment_group_id,
            commitment_id=self.commitment_id,
            cost_center_id=self.cost_center_id,
            schedule_id=self.schedule_id,
            organization_id=self.organization_id,
            description=self.description or "",
        )

    @classmethod
    def from_dto(cls, entry: LedgerEntry) -> "LedgerEntryModel":
        return cls(
            id=entry.id,
            operation=entry.operation.value,
            amount=entry.amount,
            due_date=entry.due_date,
            settlement_date=entry.settlement_date,
            status=entry.status.value,
            account_id=entry.account_id,
            client_id=entry.client_id,
            commitment_group_id=entry.commitment_group_id,
            commitment_id=entry.commitment_id,
            cost_center_id=entry.cost_center_id,
            schedule_id=entry.schedule_id,
            organization_id=entry.organization_id,
            description=entry.description,
        )

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.id} {self.operation} {self.amount} {self.status}>"


class RealizedRecordModel(TrackedBase):
    """
    The realization of a confirmed entry.

    Created by confirm, deleted by reverse, in the same transaction as the
    entry's status change.
    """

    __tablename__ = "realized_records"

    entry_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("ledger_entries.id"),
        nullable=False,
        unique=True,
    )
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    settlement_date: Mapped[date] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    scheduled_amount: Mapped[Decimal] = mapped_column(nullable=False)
    organization_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
