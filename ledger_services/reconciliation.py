"""
ReconciliationStateMachine -- pending / confirmed / reversed / skipped.

Contract:
    Every operation is a coroutine that goes through the ``LedgerStore``.
    The legal transitions are read from ``RECONCILIATION_WORKFLOW``; the
    machine checks them up front and the store re-checks them atomically.

Architecture: ledger_services.  Imports from ledger_kernel and
    ledger_services.schedule_rollover.

Invariants enforced:
    - confirm only from pending, with an account and a positive amount.
    - reverse only from confirmed; the entry returns to pending with no
      settlement date.  Reversing a pending entry raises and leaves it
      unchanged.
    - skip only from pending; unskip only from skipped.
    - delete only from pending; amount / due date edits only from pending
      or skipped.
    - After every successful transition the invalidation listeners are
      notified, so no stale snapshot is reused.
    - Bulk confirm isolates every entry: one failure never blocks the
      others.
    - Schedule rollover runs after confirm and skip.  A rollover failure
      does not undo the transition; it is logged and reported on the
      result.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entries import EntryStatus, LedgerEntry, ScheduleUpdate
from ledger_kernel.domain.workflow import RECONCILIATION_WORKFLOW, require_editable
from ledger_kernel.exceptions import (
    InvalidAmountError,
    LedgerKernelError,
    MissingReferenceError,
    PartialBatchFailure,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.store import LedgerStore
from ledger_services.schedule_rollover import ROLLOVER_ACTIONS, compute_rollover

logger = get_logger("services.reconciliation")

InvalidationListener = Callable[["TransitionResult"], Any]


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of one successful transition or edit."""

    action: str
    entry_id: str
    from_status: EntryStatus
    to_status: EntryStatus | None  # None after delete
    entry: LedgerEntry
    occurred_at: datetime
    schedule_update: ScheduleUpdate | None = None
    rollover_error: str | None = None

    @property
    def rolled_over(self) -> bool:
        return self.schedule_update is not None and not self.schedule_update.is_empty


class BulkStatus(str, Enum):
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"
    FAILED = "failed"


@dataclass(frozen=True)
class BulkFailure:
    entry_id: str
    error_code: str
    error_message: str


@dataclass(frozen=True)
class BulkConfirmResult:
    """
    Per-entry outcome of ``bulk_confirm``.

    ``summary()`` renders "N succeeded, M failed".
    """

    succeeded: tuple[TransitionResult, ...]
    failures: tuple[BulkFailure, ...]
    correlation_id: str | None = None

    @property
    def succeeded_ids(self) -> tuple[str, ...]:
        return tuple(r.entry_id for r in self.succeeded)

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def status(self) -> BulkStatus:
        if not self.failures:
            return BulkStatus.COMPLETED
        if self.succeeded:
            return BulkStatus.PARTIALLY_COMPLETED
        return BulkStatus.FAILED

    def summary(self) -> str:
        return f"{self.succeeded_count} succeeded, {self.failed_count} failed"


def _positive(amount: Decimal) -> None:
    if not isinstance(amount, Decimal) or not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(amount)


class ReconciliationStateMachine:
    """
    Drives ledger entries through the reconciliation workflow.

    Args:
        store: Ledger persistence.
        clock: Source of "today" for default settlement dates.
        listeners: Invalidation callbacks, sync or async, called with the
            ``TransitionResult`` after each successful transition.
    """

    def __init__(
        self,
        store: LedgerStore,
        clock: Clock | None = None,
        listeners: Iterable[InvalidationListener] = (),
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._listeners: list[InvalidationListener] = list(listeners)

    def add_listener(self, listener: InvalidationListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: InvalidationListener) -> None:
        self._listeners.remove(listener)

    # =========================================================================
    # Transitions
    # =========================================================================

    async def confirm(
        self,
        entry_id: str,
        account_id: str | None,
        settlement_date: date | None = None,
        amount: Decimal | None = None,
    ) -> TransitionResult:
        if not account_id:
            raise MissingReferenceError("account", account_id)
        if amount is not None:
            _positive(amount)
        settlement_date = settlement_date or self._clock.today()

        with LogContext.bind(entry_id=entry_id):
            before = await self._store.get_entry(entry_id)
            RECONCILIATION_WORKFLOW.require(entry_id, before.status.value, "confirm")
            after = await self._store.confirm(entry_id, account_id, settlement_date, amount)
            logger.info(
                "entry_confirmed",
                extra={
                    "account_id": account_id,
                    "settlement_date": settlement_date,
                    "amount": after.amount,
                },
            )
            return await self._finish("confirm", before, after)

    async def reverse(self, entry_id: str) -> TransitionResult:
        with LogContext.bind(entry_id=entry_id):
            before = await self._store.get_entry(entry_id)
            RECONCILIATION_WORKFLOW.require(entry_id, before.status.value, "reverse")
            after = await self._store.reverse(entry_id)
            logger.info("entry_reversed", extra={"restored_amount": after.amount})
            return await self._finish("reverse", before, after)

    async def skip(self, entry_id: str) -> TransitionResult:
        with LogContext.bind(entry_id=entry_id):
            before = await self._store.get_entry(entry_id)
            RECONCILIATION_WORKFLOW.require(entry_id, before.status.value, "skip")
            after = await self._store.skip(entry_id)
            logger.info("entry_skipped")
            return await self._finish("skip", before, after)

    async def unskip(self, entry_id: str) -> TransitionResult:
        with LogContext.bind(entry_id=entry_id):
            before = await self._store.get_entry(entry_id)
            RECONCILIATION_WORKFLOW.require(entry_id, before.status.value, "unskip")
            after = await self._store.unskip(entry_id)
            logger.info("entry_unskipped")
            return await self._finish("unskip", before, after)

    async def reopen(self, entry_id: str) -> TransitionResult:
        with LogContext.bind(entry_id=entry_id):
            before = await self._store.get_entry(entry_id)
            RECONCILIATION_WORKFLOW.require(entry_id, before.status.value, "reopen")
            after = await self._store.reopen(entry_id)
            logger.info("entry_reopened")
            return await self._finish("reopen", before, after)

    # =========================================================================
    # Edits
    # =========================================================================

    async def delete(self, entry_id: str) -> TransitionResult:
        with LogContext.bind(entry_id=entry_id):
            before = await self._store.get_entry(entry_id)
            require_editable(entry_id, before.status, "delete")
            removed = await self._store.delete_entry(entry_id)
            logger.info("entry_deleted")
            return await self._finish("delete", before, removed, deleted=True)

    async def update_amount(self, entry_id: str, amount: Decimal) -> TransitionResult:
        _positive(amount)
        with LogContext.bind(entry_id=entry_id):
            before = await self._store.get_entry(entry_id)
            require_editable(entry_id, before.status, "update_amount")
            after = await self._store.update_amount(entry_id, amount)
            logger.info(
                "entry_amount_updated",
                extra={"old_amount": before.amount, "new_amount": after.amount},
            )
            return await self._finish("update_amount", before, after)

    async def update_due_date(self, entry_id: str, due_date: date) -> TransitionResult:
        with LogContext.bind(entry_id=entry_id):
            before = await self._store.get_entry(entry_id)
            require_editable(entry_id, before.status, "update_due_date")
            after = await self._store.update_due_date(entry_id, due_date)
            logger.info(
                "entry_due_date_updated",
                extra={"old_due_date": before.due_date, "new_due_date": after.due_date},
            )
            return await self._finish("update_due_date", before, after)

    # =========================================================================
    # Bulk
    # =========================================================================

    async def bulk_confirm(
        self,
        entry_ids: Iterable[str],
        settlement_date: date | None,
        account_id: str | None,
        *,
        raise_on_failure: bool = False,
    ) -> BulkConfirmResult:
        """
        Confirm every entry independently with a shared date and account.

        Raises:
            PartialBatchFailure: Only when ``raise_on_failure`` is set and at
                least one entry failed; carries the full result.
        """
        correlation_id = str(uuid4())
        succeeded: list[TransitionResult] = []
        failures: list[BulkFailure] = []
        ids = list(dict.fromkeys(entry_ids))

        with LogContext.bind(correlation_id=correlation_id):
            logger.info("bulk_confirm_started", extra={"total_items": len(ids)})
            for entry_id in ids:
                try:
                    succeeded.append(
                        await self.confirm(entry_id, account_id, settlement_date)
                    )
                except LedgerKernelError as exc:
                    failures.append(BulkFailure(entry_id, exc.code, str(exc)))
                    logger.warning(
                        "bulk_confirm_item_failed",
                        extra={"failed_entry_id": entry_id, "error_code": exc.code},
                    )
                except Exception as exc:
                    failures.append(BulkFailure(entry_id, "UNHANDLED_EXCEPTION", str(exc)))
                    logger.exception(
                        "bulk_confirm_item_failed",
                        extra={"failed_entry_id": entry_id, "error_code": "UNHANDLED_EXCEPTION"},
                    )

            result = BulkConfirmResult(
                succeeded=tuple(succeeded),
                failures=tuple(failures),
                correlation_id=correlation_id,
            )
            logger.info(
                "bulk_confirm_completed",
                extra={
                    "status": result.status.value,
                    "succeeded": result.succeeded_count,
                    "failed": result.failed_count,
                },
            )

        if raise_on_failure and failures:
            raise PartialBatchFailure(result)
        return result

    # =========================================================================
    # Internal
    # =========================================================================

    async def _finish(
        self,
        action: str,
        before: LedgerEntry,
        after: LedgerEntry,
        deleted: bool = False,
    ) -> TransitionResult:
        schedule_update: ScheduleUpdate | None = None
        rollover_error: str | None = None
        if action in ROLLOVER_ACTIONS and after.schedule_id is not None:
            schedule_update, rollover_error = await self._rollover(action, before)

        result = TransitionResult(
            action=action,
            entry_id=after.id,
            from_status=before.status,
            to_status=None if deleted else after.status,
            entry=after,
            occurred_at=self._clock.now(),
            schedule_update=schedule_update,
            rollover_error=rollover_error,
        )
        await self._notify(result)
        return result

    async def _rollover(
        self, action: str, entry: LedgerEntry
    ) -> tuple[ScheduleUpdate | None, str | None]:
        try:
            schedule = await self._store.get_schedule(entry.schedule_id)
            update = compute_rollover(schedule, entry, action)
            if not update.is_empty:
                await self._store.update_schedule(schedule.id, update)
                logger.info(
                    "schedule_rolled_over",
                    extra={
                        "schedule_id": schedule.id,
                        "next_due_date": update.next_due_date,
                        "schedule_status": update.status,
                    },
                )
            return update, None
        except Exception as exc:
            logger.error(
                "schedule_rollover_failed",
                extra={"schedule_id": entry.schedule_id, "action": action},
                exc_info=True,
            )
            return None, str(exc)

    async def _notify(self, result: TransitionResult) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(
                    "invalidation_listener_failed",
                    extra={"action": result.action},
                )
