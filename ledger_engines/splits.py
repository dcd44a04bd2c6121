"""
Module: ledger_engines.splits
Responsibility:
    Resolve entries booked against a *shared* cost center into child entries
    against the concrete centers listed in the schedule's split rows.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Split conservation: the children of a parent sum exactly to the
      parent's amount.  Every child but the last is rounded down to the
      configured places; the last child absorbs the remainder, so no child
      is ever negative.
    - Children copy every field of the parent except id, amount,
      cost_center_id and split_of.  Child ids are ``"{parent.id}:{i}"``.
    - Non-shared entries, entries without a cost center and shared entries
      with no split rows pass through unchanged.
    - Deterministic: split rows are applied in the order given.

Failure modes:
    - MissingReferenceError when an entry or a split row references an
      unknown cost center.
    - SplitTargetError when a split row targets a shared cost center.
    - ValueError on zero total weight in WEIGHTED mode.
    - SplitWeightError is raised earlier, when a split row with a negative
      weight is built, so a negative child can never be produced.

Usage:
    from ledger_engines.splits import resolve_splits

    resolved = resolve_splits(entries, splits_by_schedule, cost_centers)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import ROUND_DOWN, Decimal
from enum import Enum

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.entries import CostCenter, CostCenterSplit, LedgerEntry
from ledger_kernel.exceptions import MissingReferenceError, SplitTargetError
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.splits")


class SplitMode(str, Enum):
    """How a shared amount is divided among split targets."""

    EQUAL = "equal"  # amount / N, weights ignored
    WEIGHTED = "weighted"  # proportional to split weights


def divide_amount(
    amount: Decimal,
    weights: Sequence[Decimal],
    places: int = 2,
) -> list[Decimal]:
    """
    Divide ``amount`` in proportion to ``weights``.

    Every share but the last is rounded down to ``places``; the last share
    takes the remainder so the shares sum exactly to ``amount``.

    Raises:
        ValueError: If ``weights`` is empty, holds a negative weight or sums
            to zero.
    """
    if not weights:
        raise ValueError("Cannot divide an amount among zero targets")
    if any(weight < 0 for weight in weights):
        raise ValueError(f"Split weights must not be negative: {list(weights)}")
    total_weight = sum(weights, Decimal("0"))
    if total_weight <= 0:
        raise ValueError("Total split weight must be positive")

    quantum = Decimal(10) ** -places
    shares: list[Decimal] = []
    allocated = Decimal("0")
    for weight in weights[:-1]:
        share = (amount * weight / total_weight).quantize(quantum, rounding=ROUND_DOWN)
        shares.append(share)
        allocated += share
    shares.append(amount - allocated)
    return shares


class CostCenterSplitResolver:
    """
    Expands shared cost-center entries into per-center children.

    Contract:
        Pure; the cost-center directory and split rows are passed in.
    Guarantees:
        - Output order follows input order; children of a parent are
          contiguous and ordered as their split rows.
    """

    def __init__(self, places: int = 2, mode: SplitMode = SplitMode.EQUAL):
        self._places = places
        self._mode = SplitMode(mode)

    def _weights(self, rows: Sequence[CostCenterSplit]) -> list[Decimal]:
        if self._mode == SplitMode.WEIGHTED:
            return [row.weight for row in rows]
        return [Decimal("1")] * len(rows)

    def _check_targets(
        self,
        schedule_id: str,
        rows: Sequence[CostCenterSplit],
        centers: Mapping[str, CostCenter],
    ) -> None:
        for row in rows:
            target = centers.get(row.cost_center_id)
            if target is None:
                raise MissingReferenceError("cost_center", row.cost_center_id)
            if target.shared:
                raise SplitTargetError(schedule_id, row.cost_center_id)

    def split_entry(
        self,
        entry: LedgerEntry,
        rows: Sequence[CostCenterSplit],
        centers: Mapping[str, CostCenter],
    ) -> list[LedgerEntry]:
        self._check_targets(entry.schedule_id or "", rows, centers)
        amounts = divide_amount(entry.amount, self._weights(rows), self._places)
        return [
            entry.with_changes(
                id=f"{entry.id}:{i}",
                amount=amount,
                cost_center_id=row.cost_center_id,
                split_of=entry.id,
            )
            for i, (row, amount) in enumerate(zip(rows, amounts))
        ]

    def resolve(
        self,
        entries: Iterable[LedgerEntry],
        splits_by_schedule: Mapping[str, Sequence[CostCenterSplit]],
        cost_centers: Mapping[str, CostCenter] | Iterable[CostCenter],
    ) -> list[LedgerEntry]:
        centers = (
            dict(cost_centers)
            if isinstance(cost_centers, Mapping)
            else {c.id: c for c in cost_centers}
        )
        resolved: list[LedgerEntry] = []
        split_count = 0
        for entry in entries:
            if entry.cost_center_id is None:
                resolved.append(entry)
                continue
            center = centers.get(entry.cost_center_id)
            if center is None:
                raise MissingReferenceError("cost_center", entry.cost_center_id)
            if not center.shared:
                resolved.append(entry)
                continue

            rows = splits_by_schedule.get(entry.schedule_id) if entry.schedule_id else None
            if not rows:
                logger.debug(
                    "shared_entry_without_splits",
                    extra={"entry_id": entry.id, "schedule_id": entry.schedule_id},
                )
                resolved.append(entry)
                continue

            resolved.extend(self.split_entry(entry, rows, centers))
            split_count += 1

        if split_count:
            logger.info(
                "shared_entries_split",
                extra={"parents": split_count, "mode": self._mode.value},
            )
        return resolved


@traced_engine("splits", "1.0", fingerprint_fields=("places", "mode"))
def resolve_splits(
    entries: Iterable[LedgerEntry],
    splits_by_schedule: Mapping[str, Sequence[CostCenterSplit]],
    cost_centers: Mapping[str, CostCenter] | Iterable[CostCenter],
    places: int = 2,
    mode: SplitMode = SplitMode.EQUAL,
) -> list[LedgerEntry]:
    return CostCenterSplitResolver(places=places, mode=mode).resolve(
        entries, splits_by_schedule, cost_centers
    )
