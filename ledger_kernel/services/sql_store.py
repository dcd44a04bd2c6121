"""
SqlLedgerStore -- SQLAlchemy 2.0 async implementation of ``LedgerStore``.

Responsibility:
    Persists ledger entries, realized records and reference data, and
    applies reconciliation transitions atomically.

Architecture position:
    Kernel > Services -- imperative shell over the ORM models.

Invariants enforced:
    - Each mutation runs in exactly one transaction (``session.begin()``);
      a raised error rolls everything back.
    - The entry status is re-read inside the transaction and checked against
      ``RECONCILIATION_WORKFLOW`` before any write.
    - confirm creates the realized record and stamps status, settlement date,
      account and realized amount together; reverse removes the record,
      restores the scheduled amount, clears the settlement date and
      reactivates a concluded schedule together.

Failure modes:
    - EntryNotFoundError, MissingReferenceError, InvalidTransitionError,
      InvalidAmountError (see ``ledger_kernel.store``).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger_kernel.domain.entries import (
    Account,
    CostCenter,
    CostCenterSplit,
    LedgerEntry,
    Operation,
    Schedule,
    ScheduleStatus,
    ScheduleUpdate,
)
from ledger_kernel.domain.normalize import normalize_record
from ledger_kernel.domain.workflow import RECONCILIATION_WORKFLOW, require_editable
from ledger_kernel.exceptions import (
    EntryNotFoundError,
    InvalidAmountError,
    MissingReferenceError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models import (
    AccountModel,
    CostCenterModel,
    CostCenterSplitModel,
    LedgerEntryModel,
    RealizedRecordModel,
    ScheduleModel,
)
from ledger_kernel.store import EntryFilter, LedgerStore

logger = get_logger("kernel.sql_store")


def _require_positive(amount: Decimal) -> None:
    if not isinstance(amount, Decimal):
        raise InvalidAmountError(amount, "must be a Decimal")
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(amount)


class SqlLedgerStore(LedgerStore):
    """
    Async SQL ledger store.

    Args:
        session_factory: ``async_sessionmaker`` bound to the ledger database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # =========================================================================
    # Loading (upstream creation, outside the reconciliation workflow)
    # =========================================================================

    async def add_entries(self, entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
        entries = list(entries)
        models = [LedgerEntryModel.from_dto(e) for e in entries]
        async with self._session_factory() as session:
            async with session.begin():
                session.add_all(models)
        logger.info("entries_added", extra={"count": len(models)})
        return entries

    async def import_records(self, records: Iterable[Mapping[str, Any]]) -> list[LedgerEntry]:
        """Normalize loosely-typed upstream records and store them."""
        return await self.add_entries(normalize_record(r) for r in records)

    async def add_reference(self, *items: Account | CostCenter | CostCenterSplit | Schedule) -> None:
        """Store reference data (accounts, cost centers, splits, schedules)."""
        models: list[Any] = []
        for item in items:
            if isinstance(item, Account):
                models.append(AccountModel(
                    id=item.id,
                    name=item.name,
                    active=item.active,
                    opening_balance=item.opening_balance,
                    organization_id=item.organization_id,
                ))
            elif isinstance(item, CostCenter):
                models.append(CostCenterModel(
                    id=item.id, description=item.description, shared=item.shared,
                ))
            elif isinstance(item, CostCenterSplit):
                models.append(CostCenterSplitModel(
                    schedule_id=item.schedule_id,
                    cost_center_id=item.cost_center_id,
                    weight=item.weight,
                ))
            elif isinstance(item, Schedule):
                models.append(ScheduleModel(
                    id=item.id,
                    kind=item.kind.value,
                    period=item.period.value,
                    next_due_date=item.next_due_date,
                    description=item.description,
                    status=item.status.value,
                    organization_id=item.organization_id,
                ))
            else:
                raise TypeError(f"Unsupported reference item: {type(item).__name__}")
        async with self._session_factory() as session:
            async with session.begin():
                session.add_all(models)

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_entries(self, entry_filter: EntryFilter | None = None) -> list[LedgerEntry]:
        f = entry_filter or EntryFilter()
        stmt = select(LedgerEntryModel)
        if f.statuses is not None:
            stmt = stmt.where(LedgerEntryModel.status.in_([s.value for s in f.statuses]))
        if f.operations is not None:
            stmt = stmt.where(LedgerEntryModel.operation.in_([o.value for o in f.operations]))
        if f.due_from is not None:
            stmt = stmt.where(LedgerEntryModel.due_date >= f.due_from)
        if f.due_to is not None:
            stmt = stmt.where(LedgerEntryModel.due_date <= f.due_to)
        if f.organization_id is not None:
            stmt = stmt.where(LedgerEntryModel.organization_id == f.organization_id)
        if f.account_id is not None:
            stmt = stmt.where(LedgerEntryModel.account_id == f.account_id)
        if f.commitment_group_id is not None:
            stmt = stmt.where(LedgerEntryModel.commitment_group_id == f.commitment_group_id)
        if f.cost_center_id is not None:
            stmt = stmt.where(LedgerEntryModel.cost_center_id == f.cost_center_id)
        stmt = stmt.order_by(LedgerEntryModel.due_date, LedgerEntryModel.id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [m.to_dto() for m in result.scalars()]

    async def get_entry(self, entry_id: str) -> LedgerEntry:
        async with self._session_factory() as session:
            model = await session.get(LedgerEntryModel, entry_id)
            if model is None:
                raise EntryNotFoundError(entry_id)
            return model.to_dto()

    async def list_cost_center_splits(self, schedule_id: str) -> list[CostCenterSplit]:
        stmt = (
            select(CostCenterSplitModel)
            .where(CostCenterSplitModel.schedule_id == schedule_id)
            .order_by(CostCenterSplitModel.cost_center_id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [m.to_dto() for m in result.scalars()]

    async def list_cost_centers(self) -> list[CostCenter]:
        stmt = select(CostCenterModel).order_by(CostCenterModel.description)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [m.to_dto() for m in result.scalars()]

    async def list_accounts(self, organization_id: str | None = None) -> list[Account]:
        stmt = select(AccountModel).order_by(AccountModel.name)
        if organization_id is not None:
            stmt = stmt.where(AccountModel.organization_id == organization_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [m.to_dto() for m in result.scalars()]

    async def get_schedule(self, schedule_id: str) -> Schedule:
        async with self._session_factory() as session:
            model = await session.get(ScheduleModel, schedule_id)
            if model is None:
                raise MissingReferenceError("schedule", schedule_id)
            return model.to_dto()

    async def current_balance(self, organization_id: str | None = None) -> Decimal:
        accounts = [a for a in await self.list_accounts(organization_id) if a.active]
        active_ids = [a.id for a in accounts]
        balance = sum((a.opening_balance for a in accounts), Decimal("0"))
        if not active_ids:
            return balance

        stmt = (
            select(RealizedRecordModel.amount, LedgerEntryModel.operation)
            .join(LedgerEntryModel, LedgerEntryModel.id == RealizedRecordModel.entry_id)
            .where(RealizedRecordModel.account_id.in_(active_ids))
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        for amount, operation in rows:
            balance += Decimal(amount) * Operation(operation).sign
        return balance

    # =========================================================================
    # Transitions
    # =========================================================================

    async def _require_entry(self, session: AsyncSession, entry_id: str) -> LedgerEntryModel:
        model = await session.get(LedgerEntryModel, entry_id, with_for_update=True)
        if model is None:
            raise EntryNotFoundError(entry_id)
        return model

    async def confirm(
        self,
        entry_id: str,
        account_id: str,
        settlement_date: date,
        amount: Decimal | None = None,
    ) -> LedgerEntry:
        if amount is not None:
            _require_positive(amount)
        if not account_id:
            raise MissingReferenceError("account", account_id)

        async with self._session_factory() as session:
            async with session.begin():
                model = await self._require_entry(session, entry_id)
                transition = RECONCILIATION_WORKFLOW.require(entry_id, model.status, "confirm")

                account = await session.get(AccountModel, account_id)
                if account is None:
                    raise MissingReferenceError("account", account_id)

                scheduled = Decimal(model.amount)
                realized = amount if amount is not None else scheduled
                session.add(RealizedRecordModel(
                    entry_id=model.id,
                    account_id=account_id,
                    settlement_date=settlement_date,
                    amount=realized,
                    scheduled_amount=scheduled,
                    organization_id=model.organization_id,
                ))
                model.status = transition.to_state
                model.settlement_date = settlement_date
                model.account_id = account_id
                model.amount = realized
                entry = model.to_dto()
            return entry

    async def reverse(self, entry_id: str) -> LedgerEntry:
        async with self._session_factory() as session:
            async with session.begin():
                model = await self._require_entry(session, entry_id)
                transition = RECONCILIATION_WORKFLOW.require(entry_id, model.status, "reverse")

                result = await session.execute(
                    select(RealizedRecordModel).where(RealizedRecordModel.entry_id == entry_id)
                )
                realized = result.scalar_one_or_none()
                if realized is not None:
                    model.amount = realized.scheduled_amount
                    await session.delete(realized)
                else:
                    logger.warning("realized_record_missing", extra={"entry_id": entry_id})

                model.status = transition.to_state
                model.settlement_date = None

                if model.schedule_id is not None:
                    schedule = await session.get(ScheduleModel, model.schedule_id)
                    if schedule is not None and schedule.status == ScheduleStatus.CONCLUDED.value:
                        schedule.status = ScheduleStatus.ACTIVE.value
                        logger.info(
                            "schedule_reactivated",
                            extra={"schedule_id": schedule.id, "entry_id": entry_id},
                        )
                entry = model.to_dto()
            return entry

    async def _set_status(self, entry_id: str, action: str) -> LedgerEntry:
        async with self._session_factory() as session:
            async with session.begin():
                model = await self._require_entry(session, entry_id)
                transition = RECONCILIATION_WORKFLOW.require(entry_id, model.status, action)
                model.status = transition.to_state
                entry = model.to_dto()
            return entry

    async def skip(self, entry_id: str) -> LedgerEntry:
        return await self._set_status(entry_id, "skip")

    async def unskip(self, entry_id: str) -> LedgerEntry:
        return await self._set_status(entry_id, "unskip")

    async def reopen(self, entry_id: str) -> LedgerEntry:
        return await self._set_status(entry_id, "reopen")

    # =========================================================================
    # Edits
    # =========================================================================

    async def delete_entry(self, entry_id: str) -> LedgerEntry:
        async with self._session_factory() as session:
            async with session.begin():
                model = await self._require_entry(session, entry_id)
                require_editable(entry_id, model.status, "delete")
                entry = model.to_dto()
                await session.delete(model)
            return entry

    async def update_amount(self, entry_id: str, amount: Decimal) -> LedgerEntry:
        _require_positive(amount)
        async with self._session_factory() as session:
            async with session.begin():
                model = await self._require_entry(session, entry_id)
                require_editable(entry_id, model.status, "update_amount")
                model.amount = amount
                entry = model.to_dto()
            return entry

    async def update_due_date(self, entry_id: str, due_date: date) -> LedgerEntry:
        async with self._session_factory() as session:
            async with session.begin():
                model = await self._require_entry(session, entry_id)
                require_editable(entry_id, model.status, "update_due_date")
                model.due_date = due_date
                entry = model.to_dto()
            return entry

    async def update_schedule(self, schedule_id: str, update: ScheduleUpdate) -> Schedule:
        async with self._session_factory() as session:
            async with session.begin():
                model = await session.get(ScheduleModel, schedule_id, with_for_update=True)
                if model is None:
                    raise MissingReferenceError("schedule", schedule_id)
                if update.next_due_date is not None:
                    model.next_due_date = update.next_due_date
                if update.description is not None:
                    model.description = update.description
                if update.status is not None:
                    model.status = update.status.value
                schedule = model.to_dto()
            return schedule

