"""Date-range selection for alert reports."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

from .errors import ConfigurationError


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time(), tzinfo=timezone.utc)


def resolve_range(
    today: date,
    last_week: bool = False,
    last_month: bool = False,
    start: Optional[date] = None,
    end: Optional[date] = None,
    days: int = 7,
) -> Tuple[datetime, datetime]:
    """Resolve report selectors into a half-open UTC range ``[start, end)``.

    - ``last_week``: the 7 days before today.
    - ``last_month``: the last full calendar month.
    - ``start``/``end``: explicit dates, ``end`` inclusive; both are required.
    - otherwise: the ``days`` days before today.

    Raises:
        ConfigurationError: If only one explicit bound is given or ``end`` is
            before ``start``.
    """
    if last_week:
        return _midnight(today - timedelta(days=7)), _midnight(today)

    if last_month:
        first_this_month = today.replace(day=1)
        last_month_end = first_this_month - timedelta(days=1)
        return _midnight(last_month_end.replace(day=1)), _midnight(first_this_month)

    if start is not None or end is not None:
        if start is None or end is None:
            raise ConfigurationError("Both --start and --end are required for an explicit date range.")
        if end < start:
            raise ConfigurationError(f"Invalid date range: end {end} is before start {start}.")
        return _midnight(start), _midnight(end + timedelta(days=1))

    return _midnight(today - timedelta(days=days)), _midnight(today)
