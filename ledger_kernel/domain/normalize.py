"""
Normalization of loosely-typed ledger records at the store boundary.

Upstream records arrive with Portuguese or English keys, amounts in one
column or split by direction (``valor_entrada`` / ``valor_saida``), numeric
status codes and dates as strings or date objects.  ``normalize_record``
discriminates on the operation once, here, so no engine ever has to guess
which amount column applies.

Dates are read as calendar dates: the ``YYYY-MM-DD`` part is used exactly as
written, with no timezone conversion.  A due date that cannot be read is
logged and stored as ``None``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from ledger_kernel.domain.entries import EntryStatus, LedgerEntry, Operation
from ledger_kernel.exceptions import MalformedDateError
from ledger_kernel.logging_config import get_logger

logger = get_logger("kernel.normalize")

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:$|[T ])")

# canonical key -> accepted upstream aliases, in precedence order
_FOREIGN_KEYS: dict[str, tuple[str, ...]] = {
    "account_id": ("account_id", "conta_id"),
    "client_id": ("client_id", "cliente_id"),
    "commitment_group_id": ("commitment_group_id", "grupo_compromisso_id"),
    "commitment_id": ("commitment_id", "compromisso_id"),
    "cost_center_id": ("cost_center_id", "centro_custo_id"),
    "schedule_id": ("schedule_id", "agendamento_id"),
    "organization_id": ("organization_id", "organizacao_id"),
}


def parse_calendar_date(value: Any) -> date:
    """
    Read a value as a calendar date.

    Accepts ``date``, ``datetime`` (its own year/month/day, aware or naive)
    and ISO-8601 strings (the date part of a datetime string is used as
    written).

    Raises:
        MalformedDateError: For anything else.
    """
    if isinstance(value, datetime):
        return date(value.year, value.month, value.day)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        match = _ISO_DATE_RE.match(value.strip())
        if match:
            try:
                return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            except ValueError:
                pass
    raise MalformedDateError(value)


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _to_decimal(value: Any, field_name: str) -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got {value!r}")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"{field_name} is not a number: {value!r}") from None
    else:
        raise ValueError(f"{field_name} must be numeric, got {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"{field_name} must be finite, got {value!r}")
    return result


def _optional_date(entry_id: str, field_name: str, value: Any) -> date | None:
    if value is None:
        return None
    try:
        return parse_calendar_date(value)
    except MalformedDateError:
        logger.warning(
            "malformed_date_excluded",
            extra={"entry_id": entry_id, "field": field_name, "raw_value": repr(value)},
        )
        return None


def _status(raw: Mapping[str, Any]) -> EntryStatus:
    status = raw.get("status")
    if isinstance(status, EntryStatus):
        return status
    if status is not None:
        return EntryStatus(str(status).strip().lower())
    code = raw.get("situacao")
    if code is not None:
        return EntryStatus.from_code(code)
    return EntryStatus.PENDING


def normalize_record(raw: Mapping[str, Any]) -> LedgerEntry:
    """
    Build a ``LedgerEntry`` from a loosely-typed upstream record.

    Raises:
        ValueError: On a missing id, unknown operation or status, or a
            missing / non-finite amount.
    """
    entry_id = raw.get("id")
    if entry_id is None or entry_id == "":
        raise ValueError("Record has no id")
    entry_id = str(entry_id)

    op_value = _pick(raw, "operation", "operacao")
    if op_value is None:
        raise ValueError(f"Record {entry_id} has no operation")
    operation = Operation.parse(op_value)

    amount_value = _pick(raw, "amount", "valor")
    if amount_value is None:
        directional = "valor_entrada" if operation.is_inflow else "valor_saida"
        amount_value = _pick(raw, directional)
    if amount_value is None:
        raise ValueError(f"Record {entry_id} has no amount")
    amount = abs(_to_decimal(amount_value, "amount"))

    foreign = {}
    for canonical, aliases in _FOREIGN_KEYS.items():
        value = _pick(raw, *aliases)
        foreign[canonical] = str(value) if value is not None else None

    description = _pick(raw, "description", "historico") or ""

    return LedgerEntry(
        id=entry_id,
        operation=operation,
        amount=amount,
        due_date=_optional_date(
            entry_id, "due_date", _pick(raw, "due_date", "data_vencimento")
        ),
        settlement_date=_optional_date(
            entry_id,
            "settlement_date",
            _pick(raw, "settlement_date", "data_pagamento"),
        ),
        status=_status(raw),
        description=str(description),
        **foreign,
    )
