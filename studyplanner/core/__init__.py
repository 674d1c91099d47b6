"""
Core planning and focus-tracking services.

The session store, slot suggestion engine, goal tracker, Pomodoro timer,
focus accountant and the caller-owned statistics cache.
"""

from .focus import FocusAccountant, FocusInsightsCalculator
from .goals import GoalProgressTracker
from .planner import (
    CategoryNotFoundError,
    GoalNotFoundError,
    PlannerError,
    PlannerStore,
    SessionNotFoundError,
)
from .pomodoro import PomodoroTimer
from .scheduler import SlotSuggestionEngine
from .stats_cache import StatsCache

__all__ = [
    "CategoryNotFoundError",
    "FocusAccountant",
    "FocusInsightsCalculator",
    "GoalNotFoundError",
    "GoalProgressTracker",
    "PlannerError",
    "PlannerStore",
    "PomodoroTimer",
    "SessionNotFoundError",
    "SlotSuggestionEngine",
    "StatsCache",
]
