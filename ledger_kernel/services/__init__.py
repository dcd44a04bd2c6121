"""Kernel services - concrete persistence for the ledger store contract."""

from ledger_kernel.services.sql_store import SqlLedgerStore

__all__ = ["SqlLedgerStore"]
