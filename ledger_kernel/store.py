"""
LedgerStore -- the asynchronous persistence contract of the ledger core.

Responsibility:
    Declares everything the engines and the reconciliation state machine
    need from persistence, as ``async`` request/response calls.  The core
    never depends on a concrete backend; ``SqlLedgerStore`` is one
    implementation.

Architecture position:
    Kernel -- contract only.  Imports from domain/ and exceptions only.

Invariants enforced:
    - Every mutation is atomic: it returns the updated ``LedgerEntry`` or
      raises a typed error, never leaving partial state.
    - Mutations re-check the entry status inside their transaction and raise
      ``InvalidTransitionError`` when the action is not legal.

Failure modes:
    - EntryNotFoundError for an unknown entry id.
    - MissingReferenceError for an unknown account or schedule id.
    - InvalidTransitionError for an action illegal from the current status.
    - InvalidAmountError for a non-positive amount.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_kernel.domain.entries import (
    CostCenter,
    CostCenterSplit,
    EntryStatus,
    LedgerEntry,
    Operation,
    Schedule,
    ScheduleUpdate,
)


@dataclass(frozen=True)
class EntryFilter:
    """
    Selection criteria for ``LedgerStore.list_entries``.

    ``None`` means "no restriction".  The due date range is inclusive on
    both ends; entries without a due date never match a ranged filter.
    """

    statuses: frozenset[EntryStatus] | None = None
    due_from: date | None = None
    due_to: date | None = None
    organization_id: str | None = None
    account_id: str | None = None
    commitment_group_id: str | None = None
    cost_center_id: str | None = None
    operations: frozenset[Operation] | None = None

    @classmethod
    def of(
        cls,
        *,
        statuses: Iterable[EntryStatus] | None = None,
        operations: Iterable[Operation] | None = None,
        **kwargs,
    ) -> EntryFilter:
        return cls(
            statuses=frozenset(statuses) if statuses is not None else None,
            operations=frozenset(operations) if operations is not None else None,
            **kwargs,
        )

    def matches(self, entry: LedgerEntry) -> bool:
        if self.statuses is not None and entry.status not in self.statuses:
            return False
        if self.operations is not None and entry.operation not in self.operations:
            return False
        if self.due_from is not None or self.due_to is not None:
            if entry.due_date is None:
                return False
            if self.due_from is not None and entry.due_date < self.due_from:
                return False
            if self.due_to is not None and entry.due_date > self.due_to:
                return False
        for attr in (
            "organization_id",
            "account_id",
            "commitment_group_id",
            "cost_center_id",
        ):
            wanted = getattr(self, attr)
            if wanted is not None and getattr(entry, attr) != wanted:
                return False
        return True


class LedgerStore(ABC):
    """
    Abstract asynchronous ledger persistence.

    Contract:
        All methods are coroutines.  Mutations return the entry as persisted
        after the change.

    Non-goals:
        Does not create entries from schedules; entries arrive from upstream.
    """

    # Reads

    @abstractmethod
    async def list_entries(self, entry_filter: EntryFilter | None = None) -> list[LedgerEntry]:
        ...

    @abstractmethod
    async def get_entry(self, entry_id: str) -> LedgerEntry:
        """Raises ``EntryNotFoundError`` when absent."""
        ...

    @abstractmethod
    async def list_cost_center_splits(self, schedule_id: str) -> list[CostCenterSplit]:
        ...

    @abstractmethod
    async def list_cost_centers(self) -> list[CostCenter]:
        ...

    @abstractmethod
    async def get_schedule(self, schedule_id: str) -> Schedule:
        """Raises ``MissingReferenceError`` when absent."""
        ...

    @abstractmethod
    async def current_balance(self, organization_id: str | None = None) -> Decimal:
        """Opening balances of active accounts plus their realized net flows."""
        ...

    # Transitions

    @abstractmethod
    async def confirm(
        self,
        entry_id: str,
        account_id: str,
        settlement_date: date,
        amount: Decimal | None = None,
    ) -> LedgerEntry:
        ...

    @abstractmethod
    async def reverse(self, entry_id: str) -> LedgerEntry:
        ...

    @abstractmethod
    async def skip(self, entry_id: str) -> LedgerEntry:
        ...

    @abstractmethod
    async def unskip(self, entry_id: str) -> LedgerEntry:
        ...

    @abstractmethod
    async def reopen(self, entry_id: str) -> LedgerEntry:
        """Return an entry left in the transient reversed state to pending."""
        ...

    # Edits

    @abstractmethod
    async def delete_entry(self, entry_id: str) -> LedgerEntry:
        """Delete a pending entry; returns it as it was before deletion."""
        ...

    @abstractmethod
    async def update_amount(self, entry_id: str, amount: Decimal) -> LedgerEntry:
        ...

    @abstractmethod
    async def update_due_date(self, entry_id: str, due_date: date) -> LedgerEntry:
        ...

    @abstractmethod
    async def update_schedule(self, schedule_id: str, update: ScheduleUpdate) -> Schedule:
        ...
