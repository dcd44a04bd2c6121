"""
Module: ledger_engines.forecast
Responsibility:
    Project a cumulative forecasted balance month by month from a start
    balance and the monthly aggregates.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Rows are ordered ascending by (year, month) before accumulation; the
      running balance is a single left-to-right pass.
    - Only the pending side moves the running balance.  Realized amounts
      are already part of the start balance.
    - Display order is a reversal of the computed rows, never a
      recomputation.
    - Determinism: identical inputs produce identical balances.

Failure modes:
    - InvalidAmountError for a non-finite start balance.
    - Aggregates that cannot be placed chronologically (no ``MonthKey``)
      or carry non-finite amounts are excluded and logged, never
      propagated into the running total.

Usage:
    from ledger_engines.forecast import ForecastProjector

    projector = ForecastProjector()
    rows = projector.project(Decimal("1000"), aggregate_by_month(entries))
    newest_first = projector.for_display(rows)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_engines.aggregator import FlowAggregate
from ledger_engines.calendar import MonthKey
from ledger_engines.tracer import traced_engine
from ledger_kernel.exceptions import InvalidAmountError
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.forecast")


class ForecastSituation(str, Enum):
    CURRENT_MONTH = "current_month"
    REALIZED = "realized"
    FUTURE = "future"


@dataclass(frozen=True)
class ForecastRow:
    """
    A monthly aggregate with the forecasted balance at its month end.

    Contract:
        Frozen; request-scoped.
    """

    aggregate: FlowAggregate
    running_balance: Decimal

    @property
    def key(self) -> MonthKey:
        return self.aggregate.key

    @property
    def year(self) -> int:
        return self.key.year

    @property
    def month(self) -> int:
        return self.key.month

    @property
    def net(self) -> Decimal:
        return self.aggregate.net

    def situation_as_of(self, today: date) -> ForecastSituation:
        current = MonthKey.of(today)
        if self.key == current:
            return ForecastSituation.CURRENT_MONTH
        if self.key < current:
            return ForecastSituation.REALIZED
        return ForecastSituation.FUTURE


def _is_projectable(agg: FlowAggregate) -> bool:
    if not isinstance(agg.key, MonthKey):
        return False
    return all(
        value.is_finite()
        for value in (agg.pending_in, agg.pending_out, agg.realized_in, agg.realized_out)
    )


class ForecastProjector:
    """
    Running-balance projector.

    Contract:
        Stateless; safe to share.
    Guarantees:
        - ``rows[i].running_balance == start + sum(pending_net of rows[:i+1])``.
    """

    def project(
        self,
        start_balance: Decimal,
        aggregates: Iterable[FlowAggregate],
    ) -> list[ForecastRow]:
        if not isinstance(start_balance, Decimal) or not start_balance.is_finite():
            raise InvalidAmountError(start_balance, "start balance must be a finite Decimal")

        placed: list[FlowAggregate] = []
        for agg in aggregates:
            if _is_projectable(agg):
                placed.append(agg)
            else:
                logger.warning("aggregate_excluded", extra={"key": str(agg.key)})

        placed.sort(key=lambda a: a.key)
        rows: list[ForecastRow] = []
        balance = start_balance
        for agg in placed:
            balance += agg.pending_net
            rows.append(ForecastRow(aggregate=agg, running_balance=balance))

        logger.info(
            "forecast_projected",
            extra={
                "months": len(rows),
                "start_balance": start_balance,
                "end_balance": balance,
            },
        )
        return rows

    def for_display(self, rows: Sequence[ForecastRow]) -> list[ForecastRow]:
        """Newest month first; balances are not recomputed."""
        return list(reversed(rows))


@traced_engine("forecast", "1.0", fingerprint_fields=("start_balance",))
def project_forecast(
    start_balance: Decimal,
    aggregates: Iterable[FlowAggregate],
) -> list[ForecastRow]:
    return ForecastProjector().project(start_balance, aggregates)


def for_display(rows: Sequence[ForecastRow]) -> list[ForecastRow]:
    return ForecastProjector().for_display(rows)
