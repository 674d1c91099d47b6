"""
Caller-owned cache for dashboard statistics.

A StatsCache belongs to whoever renders the dashboard. It computes the
combined planner and timer snapshot once and hands out the cached value until
invalidated explicitly or by a domain event.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from ..db.models import UnifiedStats
from ..events.event_manager import EventManager
from ..events.events import PlannerEvent
from ..integrations.collaborators import TaskProvider
from .planner import PlannerStore
from .pomodoro import PomodoroTimer

logger = logging.getLogger(__name__)


class StatsCache:
    """Lazily computed UnifiedStats with explicit invalidation."""

    def __init__(
        self,
        planner: PlannerStore,
        timer: PomodoroTimer,
        task_provider: Optional[TaskProvider] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.planner = planner
        self.timer = timer
        self.task_provider = task_provider
        self.clock = clock
        self._stats: Optional[UnifiedStats] = None
        self._events: Optional[EventManager] = None
        self._hook_id: Optional[str] = None

    @property
    def is_stale(self) -> bool:
        """True when the next get() will recompute."""
        return self._stats is None

    def get(self) -> UnifiedStats:
        """Get the cached snapshot, computing it on first use."""
        if self._stats is None:
            self._stats = self._compute()
        return self._stats

    def invalidate(self) -> None:
        """Drop the cached snapshot."""
        self._stats = None

    def refresh(self) -> UnifiedStats:
        """Recompute the snapshot now."""
        self.invalidate()
        return self.get()

    def bind(self, events: EventManager) -> None:
        """Invalidate on every event dispatched by the given manager."""
        self.unbind()
        self._events = events
        self._hook_id = events.register_global_hook(self._on_event, name="stats_cache")

    def unbind(self) -> None:
        """Stop listening for events."""
        if self._events is not None and self._hook_id is not None:
            self._events.unregister_hook(self._hook_id)
        self._events = None
        self._hook_id = None

    def _on_event(self, event: PlannerEvent) -> None:
        logger.debug(f"Invalidating stats after {event.event_type.value}")
        self.invalidate()

    def _pending_task_count(self) -> int:
        if self.task_provider is None:
            return 0
        try:
            return len(self.task_provider.get_pending_tasks())
        except Exception as e:
            logger.error(f"Could not count pending tasks: {e}", exc_info=True)
            return 0

    def _compute(self) -> UnifiedStats:
        session_stats = self.planner.get_session_stats()
        try:
            focus_insights = self.timer.insights().get_focus_insights()
            today_minutes = self.timer.accountant.get_today_focus_time()
        except Exception as e:
            logger.error(f"Failed to compute focus insights: {e}", exc_info=True)
            return UnifiedStats(session_stats=session_stats, computed_at=self.clock())

        return UnifiedStats(
            total_hours=session_stats.total_hours,
            current_streak=session_stats.current_streak,
            focus_score=focus_insights.focus_score,
            pending_tasks=self._pending_task_count(),
            session_stats=session_stats,
            focus_insights=focus_insights,
            computed_at=self.clock(),
            extra={
                "tracked_focus_minutes_today": today_minutes,
                "tracked_focus_minutes_total": self.timer.accountant.stats.total_focus_minutes,
            },
        )
