"""
Ledger Kernel - cash-flow ledger core

Domain types, typed errors, structured logging and the ledger store
contract shared by the engines and services:
- Discriminated ledger entries (expense, revenue, contribution, withdrawal)
- Request-scoped snapshots, never global state
- Atomic confirm / reverse / skip through the store
"""

__version__ = "0.1.0"
