"""
Time interval utilities for the study planner.

This module provides pure helpers for converting timestamp pairs to durations
and for comparing datetimes on local calendar-day boundaries.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Union


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """
    Get the elapsed hours between two timestamps.

    Args:
        start: Interval start
        end: Interval end

    Returns:
        Elapsed hours (may be negative if end precedes start), or None if either
        timestamp is missing
    """
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 3600


def day_key(value: Union[datetime, date]) -> str:
    """Get the local calendar day of a datetime as YYYY-MM-DD."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def is_same_day(first: datetime, second: datetime) -> bool:
    """Check whether two datetimes fall on the same calendar day."""
    return first.date() == second.date()


def start_of_day(day: date) -> datetime:
    """Get midnight at the start of the given day."""
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """Get the last representable instant of the given day."""
    return datetime.combine(day, time.max)


def start_of_week(now: datetime) -> datetime:
    """Get midnight of the Sunday that starts the week containing ``now``."""
    # isoweekday: Monday=1 .. Sunday=7
    days_since_sunday = now.isoweekday() % 7
    return start_of_day(now.date() - timedelta(days=days_since_sunday))


def intervals_overlap(
    window_start: datetime,
    window_end: datetime,
    busy_start: datetime,
    busy_end: datetime,
) -> bool:
    """
    Three-way overlap test between a candidate window and a busy interval.

    The window conflicts if its start lies inside the busy interval, if its end
    lies inside it, or if it fully contains the busy interval. Touching
    endpoints do not conflict.

    Args:
        window_start: Candidate window start
        window_end: Candidate window end
        busy_start: Existing interval start
        busy_end: Existing interval end

    Returns:
        True if the window overlaps the busy interval
    """
    return (
        (busy_start <= window_start < busy_end)
        or (busy_start < window_end <= busy_end)
        or (window_start <= busy_start and window_end >= busy_end)
    )


def format_hour_label(hour: int) -> str:
    """Format an hour of day (0-23) as a 12-hour label such as "3PM"."""
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}{suffix}"
