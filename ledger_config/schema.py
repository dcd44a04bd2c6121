"""
Configuration schema (``ledger_config.schema``).

Frozen dataclasses produced by ``ledger_config.loader``.  Nothing here reads
files; the loader validates values before constructing these objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite+aiosqlite:///:memory:"
    echo: bool = False


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerSettings:
    """
    Runtime settings of the ledger engine.

    Contract: frozen; ``checksum`` identifies the merged source values.
    """

    currency: str = "BRL"
    currency_places: int = 2
    pivot_max_months: int = 36
    split_mode: str = "equal"
    unassigned_cost_center_label: str = "Unassigned"
    forecast_history_months: int = 12
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
