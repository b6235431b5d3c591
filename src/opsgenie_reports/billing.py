"""Billing-period resolution and on-call overlap computation.

On-call is paid for the month in which the on-call week started: a billing
period runs from the first Wednesday of a month at 10:00 UTC to the first
Wednesday of the following month at the same hour. All instants are UTC.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import AbstractSet, Dict, FrozenSet, Iterable, Optional, Tuple

from .models import BillingPeriod, RotationPeriod, as_utc

WEDNESDAY = calendar.WEDNESDAY
DEFAULT_ANCHOR_HOUR = 10


def _next_month(year: int, month: int) -> Tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def first_weekday(
    year: int,
    month: int,
    weekday: int = WEDNESDAY,
    hour: int = DEFAULT_ANCHOR_HOUR,
) -> datetime:
    """Return the first ``weekday`` of a month at ``hour``:00 UTC.

    ``weekday`` uses Python's convention (Monday is 0, Wednesday is 2).
    """
    first = date(year, month, 1)
    day = first + timedelta(days=(weekday - first.weekday()) % 7)
    return datetime.combine(day, time(hour=hour), tzinfo=timezone.utc)


def period_containing(
    reference: date,
    weekday: int = WEDNESDAY,
    hour: int = DEFAULT_ANCHOR_HOUR,
) -> BillingPeriod:
    """Return the billing period anchored in ``reference``'s month.

    ``start`` is the first ``weekday`` of the reference month and ``end`` the
    first ``weekday`` of the following month, both at ``hour``:00 UTC.
    """
    start = first_weekday(reference.year, reference.month, weekday, hour)
    end = first_weekday(*_next_month(reference.year, reference.month), weekday, hour)
    return BillingPeriod(start=start, end=end)


def overlap_hours(period: RotationPeriod, billing: BillingPeriod) -> float:
    """Return the hours shared by a rotation period and a billing period.

    Both are half-open intervals. Disjoint or touching intervals yield 0.0. The
    result is not rounded.
    """
    start = max(as_utc(period.start), as_utc(billing.start))
    end = min(as_utc(period.end), as_utc(billing.end))
    if end <= start:
        return 0.0
    return (end - start).total_seconds() / 3600


def overlaps(
    periods: Iterable[RotationPeriod],
    billing: BillingPeriod,
    allowed_rotation_ids: AbstractSet[str],
) -> Dict[str, float]:
    """Sum on-call hours per user inside ``billing``.

    Only periods of rotations in ``allowed_rotation_ids`` with a user assigned
    contribute. Users whose periods do not intersect the billing period are
    absent from the result.
    """
    hours: Dict[str, float] = defaultdict(float)
    for period in periods:
        if period.user is None or period.rotation_id not in allowed_rotation_ids:
            continue
        shared = overlap_hours(period, billing)
        if shared > 0:
            hours[period.user] += shared
    return dict(hours)


def on_call_at(
    periods: Iterable[RotationPeriod],
    instant: datetime,
    rotation_ids: Optional[AbstractSet[str]] = None,
) -> FrozenSet[str]:
    """Return the users on call at ``instant``.

    An empty set means nobody is assigned at that instant; it is not an error.
    """
    instant = as_utc(instant)
    return frozenset(
        period.user
        for period in periods
        if period.user is not None
        and (rotation_ids is None or period.rotation_id in rotation_ids)
        and as_utc(period.start) <= instant < as_utc(period.end)
    )


def next_on_call(
    periods: Iterable[RotationPeriod],
    user: str,
    after: datetime,
    rotation_id: Optional[str] = None,
) -> Optional[RotationPeriod]:
    """Return the earliest period for ``user`` starting strictly after ``after``."""
    after = as_utc(after)
    candidates = [
        period
        for period in periods
        if period.user == user
        and as_utc(period.start) > after
        and (rotation_id is None or period.rotation_id == rotation_id)
    ]
    return min(candidates, key=lambda period: as_utc(period.start), default=None)


def upcoming_weekdays(
    today: date,
    count: int,
    weekday: int = WEDNESDAY,
    hour: int = 19,
) -> Tuple[datetime, ...]:
    """Return ``count`` weekly instants starting at the next ``weekday`` on or after ``today``."""
    first = today + timedelta(days=(weekday - today.weekday()) % 7)
    return tuple(
        datetime.combine(first + timedelta(weeks=offset), time(hour=hour), tzinfo=timezone.utc)
        for offset in range(count)
    )
