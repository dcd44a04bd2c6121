"""
Engine tracing.

``@traced_engine`` wraps a pure engine entry point and emits one
``LEDGER_ENGINE_TRACE`` record per call carrying the engine name and
version, a fingerprint of selected keyword arguments and the duration.
Engines stay free of I/O: the decorator only logs.

The fingerprint is the first 16 hex chars of a SHA-256 over a canonical
JSON rendering of the selected fields: enums by value, dates in ISO form,
Decimals as strings, sets sorted, mapping keys sorted.  A field missing
from the call's keyword arguments is fingerprinted as ``null``, so pass the
inputs you want traced by keyword.
"""

from __future__ import annotations

import functools
import hashlib
import json
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_MESSAGE = "LEDGER_ENGINE_TRACE"

F = TypeVar("F", bound=Callable[..., Any])


def _plain(value: Any) -> Any:
    """Reduce ``value`` to JSON-native types with a stable ordering."""
    if isinstance(value, Enum):
        return _plain(value.value)
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, (Decimal, float)):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_plain(v) for v in value), key=repr)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    selected = {name: _plain(kwargs.get(name)) for name in fingerprint_fields}
    canonical = json.dumps(selected, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[F], F]:
    """
    Decorate a pure engine function with trace logging.

    Args:
        engine_name: Engine identifier, e.g. ``"forecast"``.
        engine_version: Engine version, e.g. ``"1.0"``.
        fingerprint_fields: Keyword arguments folded into the fingerprint.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed = time.perf_counter() - started
            logger.info(
                TRACE_MESSAGE,
                extra={
                    "trace_type": TRACE_MESSAGE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": (
                        compute_input_fingerprint(fingerprint_fields, kwargs)
                        if fingerprint_fields
                        else ""
                    ),
                    "duration_ms": round(elapsed * 1000, 3),
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
