"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads YAML settings files and parses them into the frozen
``ledger_config.schema.LedgerSettings``.  The public runtime entry point is
``ledger_config.get_active_settings()``.

Invariants enforced
-------------------
* Every value is validated before the settings object is built; invalid
  values raise ``ConfigurationError`` naming the offending key.
* ``pivot_max_months`` may lower the pivot's 36-month cap, never raise it.
* Unknown keys are rejected, so a typo never silently falls back to a
  default.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the merged
  values for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid or unknown value  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import DatabaseSettings, LedgerSettings, LoggingSettings
from ledger_engines.pivot import DEFAULT_MAX_MONTHS
from ledger_kernel.exceptions import ConfigurationError

_SPLIT_MODES = ("equal", "weighted")
_SECTIONS = {"database": ("url", "echo"), "logging": ("level",)}
_TOP_LEVEL = (
    "currency",
    "currency_places",
    "pivot_max_months",
    "split_mode",
    "unassigned_cost_center_label",
    "forecast_history_months",
    *_SECTIONS,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def merge_settings(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``override`` on ``base``; nested sections merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _positive_int(data: dict[str, Any], key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(key, f"must be a positive integer, got {value!r}")
    return value


def _non_empty_str(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(key, "must be a non-empty string")
    return value


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """Validate a merged settings dict and build ``LedgerSettings``."""
    unknown = sorted(set(data) - set(_TOP_LEVEL))
    if unknown:
        raise ConfigurationError(unknown[0], "unknown setting")
    missing = [k for k in _TOP_LEVEL if k not in _SECTIONS and k not in data]
    if missing:
        raise ConfigurationError(missing[0], "missing setting")
    for section, keys in _SECTIONS.items():
        value = data.get(section) or {}
        if not isinstance(value, dict):
            raise ConfigurationError(section, "must be a mapping")
        extra = sorted(set(value) - set(keys))
        if extra:
            raise ConfigurationError(f"{section}.{extra[0]}", "unknown setting")

    currency = _non_empty_str(data, "currency").upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ConfigurationError("currency", f"must be a 3-letter code, got {currency!r}")

    places = data["currency_places"]
    if isinstance(places, bool) or not isinstance(places, int) or not 0 <= places <= 9:
        raise ConfigurationError("currency_places", f"must be an integer in 0..9, got {places!r}")

    pivot_months = _positive_int(data, "pivot_max_months")
    if pivot_months > DEFAULT_MAX_MONTHS:
        raise ConfigurationError(
            "pivot_max_months", f"must be at most {DEFAULT_MAX_MONTHS}, got {pivot_months}"
        )

    split_mode = str(data["split_mode"]).lower()
    if split_mode not in _SPLIT_MODES:
        raise ConfigurationError("split_mode", f"must be one of {', '.join(_SPLIT_MODES)}")

    database = data.get("database") or {}
    echo = database.get("echo", False)
    if not isinstance(echo, bool):
        raise ConfigurationError("database.echo", "must be a boolean")

    level = str((data.get("logging") or {}).get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError("logging.level", f"unknown level {level!r}")

    return LedgerSettings(
        currency=currency,
        currency_places=places,
        pivot_max_months=pivot_months,
        split_mode=split_mode,
        unassigned_cost_center_label=_non_empty_str(data, "unassigned_cost_center_label"),
        forecast_history_months=_positive_int(data, "forecast_history_months"),
        database=DatabaseSettings(
            url=_non_empty_str(database, "url") if "url" in database else DatabaseSettings.url,
            echo=echo,
        ),
        logging=LoggingSettings(level=level),
        checksum=compute_checksum(data),
    )
