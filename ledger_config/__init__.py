"""
Ledger configuration (``ledger_config``).

``get_active_settings()`` is the single runtime entry point: it loads the
packaged ``defaults.yaml``, overlays an optional settings file, validates
the result and emits a ``LEDGER_SETTINGS_TRACE`` log record carrying the
settings checksum.
"""

from __future__ import annotations

from pathlib import Path

from ledger_config.loader import load_yaml_file, merge_settings, parse_settings
from ledger_config.schema import DatabaseSettings, LedgerSettings, LoggingSettings
from ledger_kernel.logging_config import get_logger

__all__ = [
    "DatabaseSettings",
    "LedgerSettings",
    "LoggingSettings",
    "get_active_settings",
]

_logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_settings(config_path: Path | str | None = None) -> LedgerSettings:
    """
    Return the validated settings.

    Args:
        config_path: Optional YAML file merged over the packaged defaults.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ConfigurationError: If a value is invalid or unknown.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    source = str(DEFAULTS_PATH)
    if config_path is not None:
        data = merge_settings(data, load_yaml_file(Path(config_path)))
        source = str(config_path)

    settings = parse_settings(data)
    _logger.info(
        "LEDGER_SETTINGS_TRACE",
        extra={
            "trace_type": "LEDGER_SETTINGS_TRACE",
            "source": source,
            "checksum": settings.checksum,
            "split_mode": settings.split_mode,
            "pivot_max_months": settings.pivot_max_months,
        },
    )
    return settings
