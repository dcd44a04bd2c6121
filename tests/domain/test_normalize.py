"""
Tests for upstream record normalization.

Covers:
- Calendar date parsing (date, datetime, ISO strings, garbage)
- Field aliases and directional amounts
- Malformed dates excluded with a log line, never raised
"""

from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from ledger_kernel.domain.entries import EntryStatus, Operation
from ledger_kernel.domain.normalize import normalize_record, parse_calendar_date
from ledger_kernel.exceptions import MalformedDateError


class TestParseCalendarDate:

    def test_date_passthrough(self):
        assert parse_calendar_date(date(2025, 3, 4)) == date(2025, 3, 4)

    def test_datetime_uses_its_own_calendar_day(self):
        late = datetime(2025, 3, 4, 23, 30, tzinfo=timezone(timedelta(hours=-3)))
        assert parse_calendar_date(late) == date(2025, 3, 4)
        assert parse_calendar_date(datetime(2025, 3, 4, 0, 5, tzinfo=UTC)) == date(2025, 3, 4)

    @pytest.mark.parametrize(
        "text", ["2025-03-04", "2025-03-04T23:59:59-03:00", "2025-03-04 00:00:00", " 2025-03-04 "]
    )
    def test_iso_strings(self, text):
        assert parse_calendar_date(text) == date(2025, 3, 4)

    @pytest.mark.parametrize("value", ["04/03/2025", "2025-02-30", "tomorrow", 20250304, None])
    def test_malformed(self, value):
        with pytest.raises(MalformedDateError) as exc_info:
            parse_calendar_date(value)
        assert exc_info.value.code == "MALFORMED_DATE"


class TestNormalizeRecord:

    def test_legacy_record(self):
        entry = normalize_record({
            "id": 7,
            "operacao": "despesa",
            "valor": "150.25",
            "data_vencimento": "2025-01-20",
            "situacao": 2,
            "data_pagamento": "2025-01-19T10:00:00",
            "conta_id": 3,
            "centro_custo_id": "cc-1",
            "agendamento_id": "s-1",
            "historico": "Internet (2/12)",
        })

        assert entry.id == "7"
        assert entry.operation == Operation.EXPENSE
        assert entry.amount == Decimal("150.25")
        assert entry.due_date == date(2025, 1, 20)
        assert entry.settlement_date == date(2025, 1, 19)
        assert entry.status == EntryStatus.CONFIRMED
        assert entry.account_id == "3"
        assert entry.cost_center_id == "cc-1"
        assert entry.schedule_id == "s-1"
        assert entry.installment.n == 2

    def test_directional_amount_columns(self):
        revenue = normalize_record(
            {"id": "r", "operation": "revenue", "valor_entrada": 80, "valor_saida": 0}
        )
        expense = normalize_record(
            {"id": "x", "operation": "expense", "valor_entrada": 0, "valor_saida": "-35"}
        )
        assert revenue.amount == Decimal("80")
        assert expense.amount == Decimal("35")

    def test_status_defaults_to_pending(self):
        entry = normalize_record({"id": "a", "operation": "revenue", "amount": 1})
        assert entry.status == EntryStatus.PENDING
        assert entry.due_date is None

    def test_malformed_due_date_excluded_and_logged(self, captured_logs):
        entry = normalize_record(
            {"id": "a", "operation": "expense", "amount": 1, "due_date": "31/01/2025"}
        )
        assert entry.due_date is None
        logs = captured_logs()
        assert any(
            r["message"] == "malformed_date_excluded" and r["entry_id"] == "a"
            for r in logs
        )

    @pytest.mark.parametrize(
        "record, message",
        [
            ({"operation": "expense", "amount": 1}, "no id"),
            ({"id": "a", "amount": 1}, "no operation"),
            ({"id": "a", "operation": "expense"}, "no amount"),
            ({"id": "a", "operation": "expense", "amount": "NaN"}, "finite"),
            ({"id": "a", "operation": "expense", "amount": "abc"}, "not a number"),
        ],
    )
    def test_invalid_records(self, record, message):
        with pytest.raises(ValueError, match=message):
            normalize_record(record)
