"""
Module: ledger_kernel.models.cost_center
Responsibility: ORM persistence for cost centers and the split rows that
    distribute a shared cost center across concrete ones, per schedule.
Architecture position: Kernel > Models.
"""

from decimal import Decimal

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.entries import CostCenter, CostCenterSplit


class CostCenterModel(TrackedBase):
    __tablename__ = "cost_centers"

    description: Mapped[str] = mapped_column(String(255), nullable=False)
    shared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    organization_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def to_dto(self) -> CostCenter:
        return CostCenter(id=self.id, description=self.description, shared=bool(self.shared))


class CostCenterSplitModel(TrackedBase):
    """One target of a shared distribution.  Unique per (schedule, center)."""

    __tablename__ = "cost_center_splits"

    __table_args__ = (
        UniqueConstraint(
            "schedule_id", "cost_center_id", name="uq_cost_center_split_target"
        ),
    )

    schedule_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    cost_center_id: Mapped[str] = mapped_column(String(64), nullable=False)
    weight: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("1"))

    def to_dto(self) -> CostCenterSplit:
        return CostCenterSplit(
            schedule_id=self.schedule_id,
            cost_center_id=self.cost_center_id,
            weight=Decimal(self.weight),
        )
