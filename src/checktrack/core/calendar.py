"""
Business Calendar
=================

Weekday arithmetic used for SLA and escalation day counting.

Business days are Monday to Friday. All functions are pure and accept
either ``date`` or ``datetime`` values; time of day is ignored when counting.
"""

import math
from datetime import date, datetime, timedelta
from typing import TypeVar, Union

DateLike = Union[date, datetime]
D = TypeVar("D", date, datetime)

SECONDS_PER_DAY = 24 * 60 * 60


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def is_business_day(value: DateLike) -> bool:
    """Return True for Monday through Friday."""
    return _as_date(value).weekday() < 5


def business_days_between(start: DateLike, end: DateLike) -> int:
    """
    Count weekdays in the closed interval [start, end].

    Both endpoints are included when they fall on a weekday. When ``end``
    precedes ``start`` the count over [end, start] is returned negated.

    Example:
        Monday -> following Monday = 6
        Friday -> following Monday = 2
    """
    start_day = _as_date(start)
    end_day = _as_date(end)

    if end_day < start_day:
        return -business_days_between(end_day, start_day)

    total_days = (end_day - start_day).days + 1
    full_weeks, remainder = divmod(total_days, 7)

    count = full_weeks * 5
    tail_start = start_day + timedelta(days=full_weeks * 7)
    for offset in range(remainder):
        if is_business_day(tail_start + timedelta(days=offset)):
            count += 1

    return count


def add_business_days(start: D, days: int) -> D:
    """
    Advance ``start`` by ``days`` weekdays, skipping Saturdays and Sundays.

    The time of day of a ``datetime`` is preserved. Non-positive ``days``
    returns ``start`` unchanged.
    """
    result = start
    added = 0

    while added < days:
        result = result + timedelta(days=1)
        if is_business_day(result):
            added += 1

    return result


def calendar_days_between(start: datetime, end: datetime) -> int:
    """Whole calendar days elapsed from start to end (floored)."""
    return math.floor((end - start).total_seconds() / SECONDS_PER_DAY)


def calendar_days_until(now: datetime, target: datetime) -> int:
    """Calendar days left until target (ceiling; negative once passed)."""
    return math.ceil((target - now).total_seconds() / SECONDS_PER_DAY)
