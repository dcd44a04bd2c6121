"""Database layer - async engine and declarative base classes."""

from ledger_kernel.db.base import Base, TrackedBase, new_id
from ledger_kernel.db.engine import (
    create_tables,
    dispose_engine,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "new_id",
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
]
