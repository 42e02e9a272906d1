"""
Next-occurrence calculation for recurring task templates.

Pure functions, no store access. All arithmetic is wall-clock arithmetic in
the timezone of the due date it is given, so the time of day is kept across
DST changes.
"""
from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Optional

from todocore.domain.tasks.models import RecurrenceRule, RecurrenceType


def next_occurrence(rule: Optional[RecurrenceRule], current: Optional[datetime]) -> Optional[datetime]:
    """
    Return the due date following `current` under `rule`, or None when the
    series has ended (or there is nothing to compute from).
    """
    if rule is None or current is None:
        return None

    interval = rule.interval or 1

    if rule.type in (RecurrenceType.DAILY, RecurrenceType.CUSTOM):
        # custom has no algorithm of its own and falls back to daily
        candidate = current + timedelta(days=interval)
    elif rule.type is RecurrenceType.WEEKLY:
        if rule.days_of_week:
            candidate = current + timedelta(days=_days_to_next_weekday(rule, current.weekday()))
        else:
            candidate = current + timedelta(days=7 * interval)
    elif rule.type is RecurrenceType.MONTHLY:
        candidate = _add_months(current, interval, rule.day_of_month)
    else:
        return None

    if rule.end_date is not None and candidate > rule.end_date:
        return None
    return candidate


def _days_to_next_weekday(rule: RecurrenceRule, current_weekday: int) -> int:
    targets = sorted({d.weekday_number for d in rule.days_of_week})
    for target in targets:
        if target > current_weekday:
            return target - current_weekday
    # wrap into next week; a set holding only today's weekday lands a full week out
    return 7 - current_weekday + targets[0]


def _place_day(dt: datetime, year: int, month: int, day: int) -> datetime:
    """Put `dt` on `day` of the given month; days past the month's end roll forward."""
    last = calendar.monthrange(year, month)[1]
    base = dt.replace(year=year, month=month, day=min(day, last))
    return base + timedelta(days=max(0, day - last))


def _add_months(dt: datetime, months: int, day_of_month: Optional[int]) -> datetime:
    """
    Move `dt` forward by calendar months, then force `day_of_month` if given.

    Both steps roll overflow into the following month. Jan 31 + 1 month is
    Mar 3 (non-leap year). With day_of_month=31, Mar 31 first becomes May 1
    and then May 31; with day_of_month=10 it becomes May 10.
    """
    total = dt.month - 1 + months
    moved = _place_day(dt, dt.year + total // 12, total % 12 + 1, dt.day)
    if day_of_month is None:
        return moved
    return _place_day(moved, moved.year, moved.month, day_of_month)
