"""
Canonical workflow types (``ledger_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the reconciliation state machine.  The legal
transitions of a ledger entry are declared once, as data, in
``RECONCILIATION_WORKFLOW``; the service layer looks actions up here instead
of scattering status checks.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ledger_kernel.domain.entries import EntryStatus
from ledger_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""

    from_state: str
    to_state: str
    action: str
    # True when the transition creates or removes a realized record
    settles: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for an entry lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``.
    """

    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Initial state {self.initial_state} not in workflow {self.name}"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Transition {t.action} references unknown state in {self.name}"
                )

    def actions_from(self, state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == state)

    def find(self, from_state: str, action: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def require(self, entry_id: str, from_state: str, action: str) -> Transition:
        """Return the transition or raise ``InvalidTransitionError``."""
        transition = self.find(from_state, action)
        if transition is None:
            raise InvalidTransitionError(entry_id, from_state, action)
        return transition


_PENDING = EntryStatus.PENDING.value
_CONFIRMED = EntryStatus.CONFIRMED.value
_REVERSED = EntryStatus.REVERSED.value
_SKIPPED = EntryStatus.SKIPPED.value

RECONCILIATION_WORKFLOW = Workflow(
    name="ledger_entry_reconciliation",
    description="Pending / confirmed / reversed / skipped lifecycle of a ledger entry",
    initial_state=_PENDING,
    states=(_PENDING, _CONFIRMED, _REVERSED, _SKIPPED),
    transitions=(
        Transition(_PENDING, _CONFIRMED, "confirm", settles=True),
        # Reversal passes through "reversed" inside the store transaction and
        # lands in pending; the net effect is confirmed -> pending.
        Transition(_CONFIRMED, _PENDING, "reverse", settles=True),
        Transition(_PENDING, _SKIPPED, "skip"),
        Transition(_SKIPPED, _PENDING, "unskip"),
        Transition(_REVERSED, _PENDING, "reopen"),
    ),
)

# Edits that do not change status, keyed by the states that permit them.
EDITABLE_STATES: dict[str, frozenset[str]] = {
    "delete": frozenset({_PENDING}),
    "update_amount": frozenset({_PENDING, _SKIPPED}),
    "update_due_date": frozenset({_PENDING, _SKIPPED}),
}


def require_editable(entry_id: str, status: EntryStatus | str, action: str) -> None:
    """Raise ``InvalidTransitionError`` if ``action`` is not allowed in ``status``."""
    state = status.value if isinstance(status, EntryStatus) else str(status)
    if state not in EDITABLE_STATES[action]:
        raise InvalidTransitionError(entry_id, state, action)
