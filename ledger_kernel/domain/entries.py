"""
Entries -- Immutable ledger domain objects.

Responsibility:
    Defines the atomic unit of the cash-flow ledger (``LedgerEntry``) and the
    reference data the engines consult: cost centers and their split rows,
    recurring schedules, and accounts.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines, services and the SQL store.

Invariants enforced:
    - Amounts are Decimal, finite and never negative.  The sign of a flow is
      derived from its ``Operation``, never stored.  Zero is a valid stored
      amount: rounding a tiny shared amount down can leave a split child at
      zero.  User edits (confirm amount, update_amount) require a positive
      amount and are checked where they are made.
    - Split weights are finite and non-negative.
    - Skipped and reversed entries contribute zero to every total while
      remaining retained in the ledger.
    - Installment markers are parsed best-effort; a malformed marker falls
      back to ``(1, 1)`` and never raises.

Failure modes:
    - InvalidAmountError on construction with a negative, non-finite or
      non-Decimal amount.
    - SplitWeightError on a split row with a negative, non-finite or
      non-Decimal weight.
    - ValueError from ``Operation.parse`` / ``EntryStatus.from_code`` on
      unknown values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_kernel.exceptions import InvalidAmountError, SplitWeightError


class Operation(str, Enum):
    """Kind of cash movement."""

    EXPENSE = "expense"
    REVENUE = "revenue"
    CONTRIBUTION = "contribution"  # capital in
    WITHDRAWAL = "withdrawal"  # capital out

    @property
    def is_inflow(self) -> bool:
        return self in (Operation.REVENUE, Operation.CONTRIBUTION)

    @property
    def sign(self) -> Decimal:
        return Decimal("1") if self.is_inflow else Decimal("-1")

    @classmethod
    def parse(cls, value: str | Operation) -> Operation:
        """
        Parse an operation name.

        Accepts the canonical names and the legacy Portuguese labels
        (``despesa``, ``receita``, ``aporte``, ``retirada``), case-insensitive.

        Raises:
            ValueError: If the value names no known operation.
        """
        if isinstance(value, Operation):
            return value
        key = str(value).strip().lower()
        try:
            return _OPERATION_ALIASES[key]
        except KeyError:
            raise ValueError(f"Unknown operation: {value!r}") from None


_OPERATION_ALIASES: dict[str, Operation] = {
    **{op.value: op for op in Operation},
    "despesa": Operation.EXPENSE,
    "receita": Operation.REVENUE,
    "aporte": Operation.CONTRIBUTION,
    "retirada": Operation.WITHDRAWAL,
}


class EntryStatus(str, Enum):
    """Reconciliation status of a ledger entry."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERSED = "reversed"
    SKIPPED = "skipped"

    @classmethod
    def from_code(cls, code: int | str) -> EntryStatus:
        """Map the numeric legacy ``situacao`` code to a status."""
        try:
            return _STATUS_CODES[int(code)]
        except (KeyError, ValueError, TypeError):
            raise ValueError(f"Unknown status code: {code!r}") from None


_STATUS_CODES: dict[int, EntryStatus] = {
    1: EntryStatus.PENDING,
    2: EntryStatus.CONFIRMED,
    3: EntryStatus.REVERSED,
    4: EntryStatus.SKIPPED,
}

# Statuses whose amounts count toward totals.
CONTRIBUTING_STATUSES = frozenset({EntryStatus.PENDING, EntryStatus.CONFIRMED})


# ---------------------------------------------------------------------------
# Installments
# ---------------------------------------------------------------------------

_INSTALLMENT_RE = re.compile(r"\((\d+)/(\d+)\)")


@dataclass(frozen=True, order=True)
class Installment:
    """Position of an entry inside an installment plan, e.g. ``(3/12)``."""

    n: int = 1
    total: int = 1

    @property
    def is_last(self) -> bool:
        return self.n >= self.total

    def next(self) -> Installment:
        return Installment(min(self.n + 1, self.total), self.total)

    def marker(self) -> str:
        return f"({self.n}/{self.total})"

    def __str__(self) -> str:
        return self.marker()


def parse_installment(text: str | None) -> Installment:
    """Best-effort parse of an ``(n/total)`` marker; defaults to ``(1, 1)``."""
    if not text:
        return Installment()
    match = _INSTALLMENT_RE.search(text)
    if match is None:
        return Installment()
    n, total = int(match.group(1)), int(match.group(2))
    if n < 1 or total < 1 or n > total:
        return Installment()
    return Installment(n, total)


def replace_installment(text: str, installment: Installment) -> str:
    """Rewrite the first ``(n/total)`` marker of ``text``; append if absent."""
    if _INSTALLMENT_RE.search(text or ""):
        return _INSTALLMENT_RE.sub(installment.marker(), text, count=1)
    if not text:
        return installment.marker()
    return f"{text} {installment.marker()}"


def _check_amount(amount: Decimal) -> None:
    if not isinstance(amount, Decimal):
        raise InvalidAmountError(amount, "must be a Decimal")
    if not amount.is_finite():
        raise InvalidAmountError(amount, "must be finite")
    if amount < 0:
        raise InvalidAmountError(amount, "must not be negative")


# ---------------------------------------------------------------------------
# Ledger entry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerEntry:
    """
    A single scheduled or realized cash movement.

    Contract:
        Frozen.  ``amount`` is the unsigned magnitude; direction comes from
        ``operation``.  ``due_date`` is ``None`` when the upstream value was
        missing or unparseable; such entries are excluded from every
        date-based view but still listed.

    Guarantees:
        - ``signed_amount`` is positive for inflows and negative for outflows.
        - ``contributing_amount`` is zero for skipped and reversed entries.
        - ``installment`` defaults to the marker parsed from ``description``.

    Non-goals:
        Does not enforce status transitions; see the reconciliation workflow.
    """

    id: str
    operation: Operation
    amount: Decimal
    due_date: date | None = None
    settlement_date: date | None = None
    status: EntryStatus = EntryStatus.PENDING
    account_id: str | None = None
    client_id: str | None = None
    commitment_group_id: str | None = None
    commitment_id: str | None = None
    cost_center_id: str | None = None
    schedule_id: str | None = None
    organization_id: str | None = None
    description: str = ""
    installment: Installment | None = None
    split_of: str | None = None

    def __post_init__(self) -> None:
        _check_amount(self.amount)
        if self.installment is None:
            object.__setattr__(
                self, "installment", parse_installment(self.description)
            )

    @property
    def is_inflow(self) -> bool:
        return self.operation.is_inflow

    @property
    def is_pending(self) -> bool:
        return self.status == EntryStatus.PENDING

    @property
    def is_realized(self) -> bool:
        return self.status == EntryStatus.CONFIRMED

    @property
    def contributes(self) -> bool:
        return self.status in CONTRIBUTING_STATUSES

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.operation.sign

    @property
    def contributing_amount(self) -> Decimal:
        """Signed amount if the entry counts toward totals, else zero."""
        if not self.contributes:
            return Decimal("0")
        return self.signed_amount

    def with_changes(self, **changes) -> LedgerEntry:
        return replace(self, **changes)


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CostCenter:
    """A cost center.  ``shared`` centers are distributed via split rows."""

    id: str
    description: str
    shared: bool = False


@dataclass(frozen=True)
class CostCenterSplit:
    """One target of a shared cost-center distribution for a schedule."""

    schedule_id: str
    cost_center_id: str
    weight: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        weight = self.weight
        if not isinstance(weight, Decimal) or not weight.is_finite() or weight < 0:
            raise SplitWeightError(self.schedule_id, self.cost_center_id, weight)


class ScheduleKind(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"  # installment plan


class SchedulePeriod(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    ONCE = "once"


class ScheduleStatus(str, Enum):
    ACTIVE = "active"
    CONCLUDED = "concluded"


@dataclass(frozen=True)
class Schedule:
    """
    A recurring template that generated ledger entries upstream.

    Only read and advanced by rollover; never materialized into entries here.
    """

    id: str
    kind: ScheduleKind
    period: SchedulePeriod
    next_due_date: date | None = None
    description: str = ""
    status: ScheduleStatus = ScheduleStatus.ACTIVE
    organization_id: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ScheduleStatus.ACTIVE


@dataclass(frozen=True)
class ScheduleUpdate:
    """Partial update of a schedule; ``None`` fields are left untouched."""

    next_due_date: date | None = None
    description: str | None = None
    status: ScheduleStatus | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.next_due_date is None
            and self.description is None
            and self.status is None
        )

    def apply(self, schedule: Schedule) -> Schedule:
        changes = {
            k: v
            for k, v in (
                ("next_due_date", self.next_due_date),
                ("description", self.description),
                ("status", self.status),
            )
            if v is not None
        }
        return replace(schedule, **changes)


@dataclass(frozen=True)
class Account:
    """A cash account; its opening balance seeds the forecast start balance."""

    id: str
    name: str
    active: bool = True
    opening_balance: Decimal = field(default_factory=lambda: Decimal("0"))
    organization_id: str | None = None
