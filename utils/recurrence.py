"""
utils/recurrence.py
-------------------
Next-occurrence calculator for recurring charges.

All arithmetic runs on plain calendar dates. Month-based intervals clamp to
the last valid day of the target month instead of rolling over:

    2024-01-31 + monthly  -> 2024-02-29
    2024-02-29 + yearly   -> 2025-02-28
    2023-11-30 + quarterly -> 2024-02-29

Passing ``day`` (the charge's recurrence_day) re-anchors the result to that
day of month, still clamped, so a series billed on the 31st returns to the
31st after a short month.
"""

from datetime import date, datetime, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta

from models.charge import INTERVALS
from models.errors import InvalidArgument

_STEPS = {
    "weekly": relativedelta(weeks=1),
    "biweekly": relativedelta(weeks=2),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "yearly": relativedelta(years=1),
}

_MONTH_BASED = ("monthly", "quarterly", "yearly")


def to_calendar_date(value: date) -> date:
    """Strip any time component; aware datetimes are read in UTC first."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def validate_interval(interval: str) -> str:
    if interval not in INTERVALS:
        raise InvalidArgument(
            f"Invalid recurrence interval {interval!r}; expected one of {', '.join(INTERVALS)}"
        )
    return interval


def validate_day(day: Optional[int]) -> Optional[int]:
    if day is None:
        return None
    if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= 31:
        raise InvalidArgument(f"Invalid recurrence day {day!r}; expected 1-31")
    return day


def next_occurrence(anchor: date, interval: str, day: Optional[int] = None) -> date:
    """
    Compute the due date following ``anchor`` for the given interval.

    Args:
        anchor: Due date the next occurrence is counted from.
        interval: One of 'weekly', 'biweekly', 'monthly', 'quarterly', 'yearly'.
        day: Optional day-of-month anchor for month-based intervals.

    Returns:
        The next due date.

    Raises:
        InvalidArgument: If the interval or day is invalid.
    """
    validate_interval(interval)
    validate_day(day)
    anchor = to_calendar_date(anchor)

    step = _STEPS[interval]
    if day is not None and interval in _MONTH_BASED:
        # relativedelta clamps an absolute day to the month's last day
        step = step + relativedelta(day=day)
    return anchor + step
