"""
Module: ledger_engines.filters
Responsibility:
    List-view selection of ledger entries: reference filters, operation
    presets, case-insensitive text search and due date range, with the
    result deduplicated by entry id.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import Enum

from ledger_kernel.domain.entries import LedgerEntry, Operation


class OperationPreset(str, Enum):
    ALL = "all"
    REVENUES = "revenues"
    EXPENSES = "expenses"
    CONTRIBUTIONS_AND_WITHDRAWALS = "contributions_and_withdrawals"
    OUTFLOWS = "outflows"
    INFLOWS = "inflows"
    CONTRIBUTIONS = "contributions"
    WITHDRAWALS = "withdrawals"


_PRESET_OPERATIONS: dict[OperationPreset, frozenset[Operation]] = {
    OperationPreset.ALL: frozenset(Operation),
    OperationPreset.REVENUES: frozenset({Operation.REVENUE}),
    OperationPreset.EXPENSES: frozenset({Operation.EXPENSE}),
    OperationPreset.CONTRIBUTIONS_AND_WITHDRAWALS: frozenset(
        {Operation.CONTRIBUTION, Operation.WITHDRAWAL}
    ),
    OperationPreset.OUTFLOWS: frozenset({Operation.EXPENSE, Operation.WITHDRAWAL}),
    OperationPreset.INFLOWS: frozenset({Operation.REVENUE, Operation.CONTRIBUTION}),
    OperationPreset.CONTRIBUTIONS: frozenset({Operation.CONTRIBUTION}),
    OperationPreset.WITHDRAWALS: frozenset({Operation.WITHDRAWAL}),
}


def preset_operations(preset: OperationPreset | str) -> frozenset[Operation]:
    return _PRESET_OPERATIONS[OperationPreset(preset)]


@dataclass(frozen=True)
class EntryQuery:
    """
    In-memory selection over an already loaded entry list.

    Every criterion left at its default matches everything.  The date range
    is inclusive and excludes undated entries when either bound is set.
    """

    account_id: str | None = None
    client_id: str | None = None
    commitment_group_id: str | None = None
    commitment_id: str | None = None
    cost_center_id: str | None = None
    preset: OperationPreset = OperationPreset.ALL
    search: str = ""
    due_from: date | None = None
    due_to: date | None = None

    def _matches_search(self, entry: LedgerEntry, needle: str) -> bool:
        haystacks = (
            entry.description,
            str(entry.amount),
            f"{entry.amount:.2f}",
        )
        return any(needle in h.casefold() for h in haystacks)

    def matches(self, entry: LedgerEntry) -> bool:
        for attr in (
            "account_id",
            "client_id",
            "commitment_group_id",
            "commitment_id",
            "cost_center_id",
        ):
            wanted = getattr(self, attr)
            if wanted is not None and getattr(entry, attr) != wanted:
                return False
        if entry.operation not in preset_operations(self.preset):
            return False
        if self.due_from is not None or self.due_to is not None:
            if entry.due_date is None:
                return False
            if self.due_from is not None and entry.due_date < self.due_from:
                return False
            if self.due_to is not None and entry.due_date > self.due_to:
                return False
        needle = self.search.strip().casefold()
        if needle and not self._matches_search(entry, needle):
            return False
        return True

    def apply(self, entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
        """Matching entries in input order, first occurrence of each id only."""
        seen: set[str] = set()
        selected: list[LedgerEntry] = []
        for entry in entries:
            if entry.id in seen:
                continue
            seen.add(entry.id)
            if self.matches(entry):
                selected.append(entry)
        return selected


def dedupe(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    return EntryQuery().apply(entries)
