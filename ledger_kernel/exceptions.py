"""
Typed exception hierarchy for the ledger kernel.

Every error is a typed class with a machine-readable ``code`` class
attribute and structured attributes, so callers catch by type and render
by data instead of parsing messages:

    try:
        await machine.reverse(entry_id)
    except InvalidTransitionError as e:
        notify(f"{e.entry_id} is {e.from_status}, cannot {e.action}")

Hierarchy:

    LedgerKernelError (base)
    |
    +-- TransitionError
    |   +-- InvalidTransitionError
    |   +-- PartialBatchFailure
    |
    +-- ReferenceLookupError
    |   +-- MissingReferenceError
    |       +-- EntryNotFoundError
    |
    +-- DataError
    |   +-- MalformedDateError
    |   +-- InvalidAmountError
    |
    +-- SplitError
    |   +-- SplitTargetError
    |   +-- SplitWeightError
    |
    +-- ConfigurationError

Code            | Raised when
----------------|----------------------------------------------------------
INVALID_TRANSITION     | action not legal from the entry's current status
PARTIAL_BATCH_FAILURE  | bulk confirm finished with at least one failure
MISSING_REFERENCE      | dangling account / cost center / schedule id
ENTRY_NOT_FOUND        | ledger entry id does not exist in the store
MALFORMED_DATE         | due date cannot be parsed (recovered by exclusion)
INVALID_AMOUNT         | amount is not a positive finite decimal
SPLIT_TARGET_INVALID   | split row targets a shared cost center
SPLIT_WEIGHT_INVALID   | split row weight is negative or not a finite decimal
CONFIGURATION_ERROR    | settings file holds an invalid value

Malformed dates are raised by the parsing helpers only; engines catch them
and exclude the entry, so they never abort an aggregation or projection.
"""

from __future__ import annotations

from typing import Any


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Transition errors


class TransitionError(LedgerKernelError):
    """Base exception for state machine errors."""

    code: str = "TRANSITION_ERROR"


class InvalidTransitionError(TransitionError):
    """Action is not legal from the entry's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entry_id: str, from_status: str, action: str):
        self.entry_id = entry_id
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Cannot {action} entry {entry_id}: status is {from_status}"
        )


class PartialBatchFailure(TransitionError):
    """
    Bulk operation finished with at least one failed entry.

    Carries the complete per-entry result so callers can still render
    "N succeeded, M failed".
    """

    code: str = "PARTIAL_BATCH_FAILURE"

    def __init__(self, result: Any):
        self.result = result
        self.failures = tuple(result.failures)
        self.succeeded_count = result.succeeded_count
        self.failed_count = result.failed_count
        super().__init__(
            f"Batch finished with {self.failed_count} failure(s) "
            f"and {self.succeeded_count} success(es)"
        )


# Reference errors


class ReferenceLookupError(LedgerKernelError):
    """Base exception for foreign reference errors."""

    code: str = "REFERENCE_ERROR"


class MissingReferenceError(ReferenceLookupError):
    """A foreign id does not resolve (account, cost center, schedule...)."""

    code: str = "MISSING_REFERENCE"

    def __init__(self, kind: str, reference_id: str | None):
        self.kind = kind
        self.reference_id = reference_id
        super().__init__(f"Missing {kind} reference: {reference_id}")


class EntryNotFoundError(MissingReferenceError):
    """Ledger entry with given id was not found."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__("ledger_entry", entry_id)


# Data errors


class DataError(LedgerKernelError):
    """Base exception for malformed ledger data."""

    code: str = "DATA_ERROR"


class MalformedDateError(DataError):
    """A due date value cannot be read as a calendar date."""

    code: str = "MALFORMED_DATE"

    def __init__(self, value: Any):
        self.value = repr(value)
        super().__init__(f"Malformed date: {value!r}")


class InvalidAmountError(DataError):
    """Amount is not a positive, finite decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: Any, reason: str = "must be a positive decimal"):
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid amount {value!r}: {reason}")


# Split errors


class SplitError(LedgerKernelError):
    """Base exception for cost-center split errors."""

    code: str = "SPLIT_ERROR"


class SplitTargetError(SplitError):
    """A split row targets a shared cost center."""

    code: str = "SPLIT_TARGET_INVALID"

    def __init__(self, schedule_id: str, cost_center_id: str):
        self.schedule_id = schedule_id
        self.cost_center_id = cost_center_id
        super().__init__(
            f"Split for schedule {schedule_id} targets shared cost center "
            f"{cost_center_id}"
        )


class SplitWeightError(SplitError):
    """A split row carries a negative or non-finite weight."""

    code: str = "SPLIT_WEIGHT_INVALID"

    def __init__(self, schedule_id: str, cost_center_id: str, weight: Any):
        self.schedule_id = schedule_id
        self.cost_center_id = cost_center_id
        self.weight = weight
        super().__init__(
            f"Split for schedule {schedule_id} on cost center {cost_center_id} "
            f"has invalid weight {weight!r}"
        )


# Configuration errors


class ConfigurationError(LedgerKernelError):
    """A settings value is missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid setting {key}: {reason}")
