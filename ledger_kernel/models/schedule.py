"""
Module: ledger_kernel.models.schedule
Responsibility: ORM persistence for recurring schedules and cash accounts.
Architecture position: Kernel > Models.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.entries import (
    Account,
    Schedule,
    ScheduleKind,
    SchedulePeriod,
    ScheduleStatus,
)


class ScheduleModel(TrackedBase):
    """A recurring template; advanced by rollover, reactivated by reversal."""

    __tablename__ = "schedules"

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    period: Mapped[str] = mapped_column(String(20), nullable=False)
    next_due_date: Mapped[date | None] = mapped_column(nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ScheduleStatus.ACTIVE.value
    )
    organization_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def to_dto(self) -> Schedule:
        return Schedule(
            id=self.id,
            kind=ScheduleKind(self.kind),
            period=SchedulePeriod(self.period),
            next_due_date=self.next_due_date,
            description=self.description or "",
            status=ScheduleStatus(self.status),
            organization_id=self.organization_id,
        )


class AccountModel(TrackedBase):
    __tablename__ = "accounts"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    opening_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    organization_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def to_dto(self) -> Account:
        return Account(
            id=self.id,
            name=self.name,
            active=bool(self.active),
            opening_balance=Decimal(self.opening_balance),
            organization_id=self.organization_id,
        )
