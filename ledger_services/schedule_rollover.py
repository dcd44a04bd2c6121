"""
Schedule rollover -- how a recurring schedule advances when one of its
entries is confirmed or skipped.

Rules:
    - skip: the schedule's next due date advances by one period from the
      skipped entry's due date.
    - confirm, fixed schedule: same as skip.
    - confirm, variable schedule (installment plan), not the last
      installment: advance, and bump the ``(n/total)`` marker of the
      description to ``(n+1/total)``.
    - confirm, variable schedule, last installment: the schedule concludes.
    - ``once`` schedules never advance.

Month periods clamp to the last valid day of the target month.
"""

from __future__ import annotations

from datetime import date, timedelta

from ledger_engines.calendar import add_months
from ledger_kernel.domain.entries import (
    LedgerEntry,
    Schedule,
    ScheduleKind,
    SchedulePeriod,
    ScheduleStatus,
    ScheduleUpdate,
    replace_installment,
)

_DAY_PERIODS: dict[SchedulePeriod, int] = {
    SchedulePeriod.WEEKLY: 7,
    SchedulePeriod.BIWEEKLY: 15,
}

_MONTH_PERIODS: dict[SchedulePeriod, int] = {
    SchedulePeriod.MONTHLY: 1,
    SchedulePeriod.BIMONTHLY: 2,
    SchedulePeriod.QUARTERLY: 3,
    SchedulePeriod.SEMIANNUAL: 6,
    SchedulePeriod.ANNUAL: 12,
}

ROLLOVER_ACTIONS = frozenset({"confirm", "skip"})


def next_due_date(due: date, period: SchedulePeriod) -> date | None:
    """The due date one period after ``due``; ``None`` for ``once``."""
    if period in _DAY_PERIODS:
        return due + timedelta(days=_DAY_PERIODS[period])
    if period in _MONTH_PERIODS:
        return add_months(due, _MONTH_PERIODS[period])
    return None


def compute_rollover(schedule: Schedule, entry: LedgerEntry, action: str) -> ScheduleUpdate:
    """
    Update to apply to ``schedule`` after ``action`` on ``entry``.

    Returns an empty update when nothing changes (inactive schedule,
    undated entry, ``once`` period, or an action that does not roll over).
    """
    if action not in ROLLOVER_ACTIONS or not schedule.is_active:
        return ScheduleUpdate()

    installment = entry.installment
    if (
        action == "confirm"
        and schedule.kind == ScheduleKind.VARIABLE
        and installment.is_last
    ):
        return ScheduleUpdate(status=ScheduleStatus.CONCLUDED)

    if entry.due_date is None:
        return ScheduleUpdate()
    advanced = next_due_date(entry.due_date, schedule.period)
    if advanced is None:
        return ScheduleUpdate()

    description = None
    if action == "confirm" and schedule.kind == ScheduleKind.VARIABLE:
        description = replace_installment(entry.description, installment.next())
    return ScheduleUpdate(next_due_date=advanced, description=description)
