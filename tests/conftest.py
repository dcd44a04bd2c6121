"""
Pytest fixtures for the ledger test suite.

Provides:
- An in-memory aiosqlite database per test (fresh tables, no cleanup needed)
- ``SqlLedgerStore`` and reconciliation / reporting service fixtures
- Deterministic clock and entry factories
- Structured log capture
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from ledger_config.schema import LedgerSettings
from ledger_kernel.db.engine import build_engine, build_session_factory, create_tables
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.entries import Account, EntryStatus, LedgerEntry, Operation
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.sql_store import SqlLedgerStore
from ledger_services.reconciliation import ReconciliationStateMachine
from ledger_services.reporting import LedgerReportService, SnapshotLoader

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Wednesday, mid-month.
TODAY = date(2025, 1, 15)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "entry_confirmed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
async def engine():
    """A private in-memory database with all ledger tables created."""
    db_engine = build_engine(TEST_DATABASE_URL)
    await create_tables(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory) -> SqlLedgerStore:
    return SqlLedgerStore(session_factory)


# =============================================================================
# Clock and data fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock pinned to ``TODAY``."""
    return DeterministicClock(TODAY)


@pytest.fixture
def make_entry():
    """
    Factory for ``LedgerEntry`` objects with sensible defaults.

    Usage::

        e = make_entry("e1", "expense", "100", date(2025, 1, 10))
    """

    def _make(
        entry_id: str,
        operation: Operation | str = Operation.EXPENSE,
        amount: Decimal | str | int = "100",
        due_date: date | None = TODAY,
        status: EntryStatus = EntryStatus.PENDING,
        **fields,
    ) -> LedgerEntry:
        return LedgerEntry(
            id=entry_id,
            operation=Operation.parse(operation),
            amount=Decimal(str(amount)),
            due_date=due_date,
            status=status,
            **fields,
        )

    return _make


@pytest.fixture
async def checking_account(store) -> Account:
    """An active account with a 1000.00 opening balance."""
    account = Account(id="acc-1", name="Checking", opening_balance=Decimal("1000.00"))
    await store.add_reference(account)
    return account


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def state_machine(store, deterministic_clock) -> ReconciliationStateMachine:
    return ReconciliationStateMachine(store, clock=deterministic_clock)


@pytest.fixture
def settings() -> LedgerSettings:
    return LedgerSettings()


@pytest.fixture
def snapshot_loader(store, deterministic_clock) -> SnapshotLoader:
    return SnapshotLoader(store, clock=deterministic_clock)


@pytest.fixture
def report_service(snapshot_loader, settings, deterministic_clock) -> LedgerReportService:
    return LedgerReportService(snapshot_loader, settings=settings, clock=deterministic_clock)
