"""
Utility functions for formatting time and display elements.

This module provides consistent formatting for durations, timer readouts,
dates, and percentages.
"""

from datetime import datetime, timedelta
from typing import Optional

from .config import get_config_manager


def format_duration(duration: timedelta, show_seconds: Optional[bool] = None) -> str:
    """
    Format a timedelta as a human-readable duration string.

    Args:
        duration: The timedelta to format
        show_seconds: Whether to show seconds (uses config default if None)

    Returns:
        Formatted duration string (e.g., "2h 30m 15s", "1h 45m")
    """
    if show_seconds is None:
        show_seconds = get_config_manager().show_seconds()

    total_seconds = int(duration.total_seconds())

    if total_seconds < 0:
        return "0s"

    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60

    parts = []

    if hours > 0:
        parts.append(f"{hours}h")

    if minutes > 0 or (hours > 0 and seconds > 0):
        parts.append(f"{minutes}m")

    if show_seconds and (seconds > 0 or not parts):
        parts.append(f"{seconds}s")

    return " ".join(parts) if parts else "0m"


def format_minutes(minutes: float) -> str:
    """Format a minute count as "Xh Ym" or "Ym"."""
    hours = int(minutes // 60)
    mins = int(minutes % 60)

    if hours > 0:
        return f"{hours}h {mins}m"

    return f"{mins}m"


def format_timer(seconds: int) -> str:
    """Format remaining timer seconds as MM:SS."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_datetime(dt: datetime, include_date: bool = True, include_time: bool = True) -> str:
    """
    Format a local datetime for display.

    Args:
        dt: The datetime to format
        include_date: Whether to include the date
        include_time: Whether to include the time

    Returns:
        Formatted datetime string
    """
    config = get_config_manager()
    parts = []

    if include_date:
        parts.append(dt.strftime(config.get_date_format()))

    if include_time:
        parts.append(dt.strftime(config.get_time_format()))

    return " ".join(parts)


def format_date(dt: datetime) -> str:
    """Format just the date portion of a datetime."""
    return format_datetime(dt, include_date=True, include_time=False)


def format_percentage(value: float) -> str:
    """Format a value already expressed in percent (e.g., "75.0%")."""
    return f"{value:.1f}%"


def pluralize(count: int, singular: str, plural: Optional[str] = None) -> str:
    """
    Return singular or plural form based on count.

    Args:
        count: The count
        singular: Singular form
        plural: Plural form (defaults to singular + 's')

    Returns:
        Properly pluralized string
    """
    if plural is None:
        plural = singular + "s"

    return singular if count == 1 else plural
