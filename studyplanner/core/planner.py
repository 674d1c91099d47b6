"""
Core study planning functionality.

This module contains the PlannerStore class that owns study sessions,
categories, goals and the active session filter, and derives the statistics
shown on the planner dashboard.
"""

import logging
import math
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Union
from uuid import UUID

from ..db.models import (
    CategoryHours,
    SessionDraft,
    SessionFilter,
    SessionPriority,
    SessionStats,
    StudyCategory,
    StudyGoal,
    StudySession,
    Task,
    TimeSlot,
)
from ..db.repository import PlannerRepository
from ..events.event_manager import EventManager
from ..events.events import EventType
from ..integrations.collaborators import TaskProvider
from ..utils.time_intervals import end_of_day, start_of_day, start_of_week
from .goals import GoalProgressTracker
from .scheduler import SlotSuggestionEngine

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Mathematics", "#4F46E5"),
    ("Science", "#10B981"),
    ("Languages", "#F59E0B"),
    ("Humanities", "#EC4899"),
    ("Computer Science", "#06B6D4"),
]

SUGGESTED_SESSION_MINUTES = 60
POMODORO_MINUTES = 25
SYNC_SESSION_HOUR = 14
SYNC_SESSION_HOURS = 2
SYNC_POMODORO_COUNT = 4

TASK_PRIORITY_MAP = {
    "low": SessionPriority.LOW,
    "medium": SessionPriority.MEDIUM,
    "high": SessionPriority.HIGH,
    "urgent": SessionPriority.HIGH,
}

IdLike = Union[UUID, str]


class PlannerError(Exception):
    """Base exception for study planner operations."""

    pass


class SessionNotFoundError(PlannerError):
    """Raised when a requested study session cannot be found."""

    pass


class CategoryNotFoundError(PlannerError):
    """Raised when a referenced study category does not exist."""

    pass


class GoalNotFoundError(PlannerError):
    """Raised when a requested study goal cannot be found."""

    pass


def _as_uuid(value: IdLike) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as e:
        raise PlannerError(f"Invalid identifier: {value!r}") from e


class PlannerStore:
    """Owns study sessions, categories and goals, and answers dashboard queries."""

    def __init__(
        self,
        repository: Optional[PlannerRepository] = None,
        events: Optional[EventManager] = None,
        task_provider: Optional[TaskProvider] = None,
        engine: Optional[SlotSuggestionEngine] = None,
        upcoming_limit: int = 5,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the store and load any persisted state.

        Args:
            repository: Durable storage; state is memory-only when None
            events: Receives domain events for every mutation
            task_provider: Source of external tasks for suggestions and syncing
            engine: Slot suggestion engine (built from defaults when None)
            upcoming_limit: Default cap for get_upcoming_sessions
            clock: Source of the current local time
        """
        self.repository = repository
        self.events = events
        self.task_provider = task_provider
        self.clock = clock
        self.engine = engine or SlotSuggestionEngine(clock=clock)
        self.upcoming_limit = upcoming_limit
        self.goal_tracker = GoalProgressTracker()

        self._sessions: List[StudySession] = []
        self._categories: List[StudyCategory] = []
        self._goals: List[StudyGoal] = []
        self._filters = SessionFilter()

        self._load()

    def _load(self) -> None:
        if self.repository is not None:
            try:
                self._sessions = self.repository.get_all_sessions()
                self._categories = self.repository.get_all_categories()
                self._goals = self.repository.get_all_goals()
            except Exception as e:
                logger.error(f"Failed to load planner state: {e}", exc_info=True)
                self._sessions, self._categories, self._goals = [], [], []

        if not self._categories:
            for name, color in DEFAULT_CATEGORIES:
                category = StudyCategory(name=name, color=color)
                self._categories.append(category)
                self._persist("save_category", category)
            logger.info("Seeded default study categories")

    def _persist(self, method: str, *args: Any) -> None:
        """Write a change to the repository, logging rather than raising on failure."""
        if self.repository is None:
            return
        try:
            getattr(self.repository, method)(*args)
        except Exception as e:
            logger.error(f"Failed to persist change ({method}): {e}", exc_info=True)

    def _emit(self, event_type: EventType, data: Dict[str, Any]) -> None:
        if self.events is None:
            return
        self.events.emit_event(event_type, data=data)

    # Sessions

    def add_session(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        category_id: IdLike,
        priority: Union[SessionPriority, str] = SessionPriority.MEDIUM,
        description: Optional[str] = None,
        is_completed: bool = False,
        associated_task_ids: Optional[List[str]] = None,
        notes: Optional[str] = None,
        pomodoro_count: int = 0,
        completed_pomodoros: int = 0,
    ) -> UUID:
        """
        Create a study session.

        Elapsed hours are attributed to the open goals of the session's
        category. A session starting today also signals streak activity.
        A session added as completed emits SESSION_COMPLETED, so its
        associated tasks are completed as with complete_session().

        Args:
            title: Session title
            start_time: Session start
            end_time: Session end (must be after start_time)
            category_id: Existing category ID
            priority: low, medium or high
            description: Optional description
            is_completed: Whether the session is already done
            associated_task_ids: External task references
            notes: Free-form notes
            pomodoro_count: Planned pomodoros
            completed_pomodoros: Pomodoros already finished

        Returns:
            UUID of the created session

        Raises:
            CategoryNotFoundError: If the category does not exist
            ValidationError: If the session data is invalid
        """
        category_uuid = _as_uuid(category_id)
        if self.get_category(category_uuid) is None:
            raise CategoryNotFoundError(f"Category {category_uuid} not found")

        session = StudySession(
            title=title,
            description=description.strip() if description else None,
            start_time=start_time,
            end_time=end_time,
            category_id=category_uuid,
            priority=priority,
            is_completed=is_completed,
            completed_at=self.clock() if is_completed else None,
            associated_task_ids=list(associated_task_ids or []),
            notes=notes,
            pomodoro_count=pomodoro_count,
            completed_pomodoros=completed_pomodoros,
        )

        self._sessions.append(session)
        self._persist("save_session", session)
        logger.debug(f"Added session '{session.title}' ({session.id})")
        self._emit(
            EventType.SESSION_ADDED,
            {
                "session_id": str(session.id),
                "title": session.title,
                "category_id": str(session.category_id),
                "start_time": session.start_time.isoformat(),
                "end_time": session.end_time.isoformat(),
            },
        )
        if session.is_completed:
            self._emit_session_completed(session)

        self._attribute_to_goals(session)

        if session.start_time.date() == self.clock().date():
            self._emit(EventType.STREAK_ACTIVITY, {"session_id": str(session.id)})

        return session.id

    def _attribute_to_goals(self, session: StudySession) -> None:
        attribution = self.goal_tracker.attribute(self._goals, session)
        for goal in attribution.updated:
            self._persist("save_goal", goal)
            self._emit(
                EventType.GOAL_PROGRESS,
                {
                    "goal_id": str(goal.id),
                    "session_id": str(session.id),
                    "current_hours": goal.current_hours,
                    "target_hours": goal.target_hours,
                },
            )
        for goal in attribution.completed:
            self._emit_goal_completed(goal)

    def _emit_goal_completed(self, goal: StudyGoal) -> None:
        self._emit(
            EventType.GOAL_COMPLETED,
            {"goal_id": str(goal.id), "title": goal.title, "target_hours": goal.target_hours},
        )

    def _emit_session_completed(self, session: StudySession) -> None:
        self._emit(
            EventType.SESSION_COMPLETED,
            {
                "session_id": str(session.id),
                "title": session.title,
                "associated_task_ids": list(session.associated_task_ids),
            },
        )

    def get_session(self, session_id: IdLike) -> Optional[StudySession]:
        """Get a session by ID."""
        session_uuid = _as_uuid(session_id)
        for session in self._sessions:
            if session.id == session_uuid:
                return session
        return None

    def _require_session(self, session_id: IdLike) -> StudySession:
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def _replace_session(self, updated: StudySession) -> None:
        for i, session in enumerate(self._sessions):
            if session.id == updated.id:
                self._sessions[i] = updated
                return

    def get_all_sessions(self) -> List[StudySession]:
        """Get all sessions in storage order."""
        return list(self._sessions)

    def update_session(self, session_id: IdLike, **fields: Any) -> StudySession:
        """
        Merge field changes into a session.

        Goal hours are not re-attributed. Setting is_completed to True completes
        the session; a completed session cannot be reopened.

        Raises:
            SessionNotFoundError: If the session does not exist
            CategoryNotFoundError: If a new category_id does not exist
            PlannerError: If an unknown field is given
        """
        session = self._require_session(session_id)

        unknown = set(fields) - set(StudySession.model_fields)
        if unknown:
            raise PlannerError(f"Unknown session fields: {', '.join(sorted(unknown))}")

        changes = dict(fields)
        if "id" in changes:
            logger.warning("Ignoring attempt to change a session ID")
            changes.pop("id")

        complete = changes.pop("is_completed", None)
        if complete is False and session.is_completed:
            logger.warning(f"Session '{session.title}' is already completed; ignoring reopen")
        changes.pop("completed_at", None)

        if "category_id" in changes:
            changes["category_id"] = _as_uuid(changes["category_id"])
            if self.get_category(changes["category_id"]) is None:
                raise CategoryNotFoundError(f"Category {changes['category_id']} not found")

        if changes:
            updated = StudySession.model_validate({**session.model_dump(), **changes})
            self._replace_session(updated)
            self._persist("save_session", updated)
            self._emit(
                EventType.SESSION_UPDATED,
                {"session_id": str(updated.id), "fields": sorted(changes)},
            )

        if complete:
            return self.complete_session(session.id)

        return self._require_session(session.id)

    def delete_session(self, session_id: IdLike) -> bool:
        """
        Delete a session. Attributed goal hours are kept.

        Returns:
            True if a session was removed
        """
        session = self.get_session(session_id)
        if session is None:
            return False

        self._sessions = [s for s in self._sessions if s.id != session.id]
        self._persist("delete_session", session.id)
        self._emit(EventType.SESSION_DELETED, {"session_id": str(session.id)})
        return True

    def complete_session(self, session_id: IdLike) -> StudySession:
        """
        Mark a session as completed.

        Associated tasks are completed through the SESSION_COMPLETED event.
        Completing an already completed session changes nothing.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = self._require_session(session_id)
        if session.is_completed:
            logger.debug(f"Session '{session.title}' already completed")
            return session

        completed = session.model_copy(update={"is_completed": True, "completed_at": self.clock()})
        self._replace_session(completed)
        self._persist("save_session", completed)
        logger.info(f"Completed session '{completed.title}'")
        self._emit_session_completed(completed)
        return completed

    # Queries

    def get_sessions(self, start: datetime, end: datetime) -> List[StudySession]:
        """Get sessions whose start lies within [start, end], in storage order."""
        return [
            s
            for s in self._sessions
            if s.start_time is not None and start <= s.start_time <= end
        ]

    def get_sessions_for_today(self) -> List[StudySession]:
        """Get sessions starting on the current day, ordered by start time."""
        today = self.clock().date()
        sessions = self.get_sessions(start_of_day(today), end_of_day(today))
        return sorted(sessions, key=lambda s: s.start_time)

    def get_total_study_hours(self, start: datetime, end: datetime) -> float:
        """Sum the duration of completed sessions in range, skipping malformed ones."""
        try:
            total = 0.0
            for session in self.get_sessions(start, end):
                hours = session.duration_hours
                if session.is_completed and hours is not None and hours > 0:
                    total += hours
            return total
        except Exception as e:
            logger.error(f"Failed to compute study hours: {e}", exc_info=True)
            return 0.0

    def get_category_breakdown(self, start: datetime, end: datetime) -> List[CategoryHours]:
        """Get completed hours per category in range, in first-seen order."""
        try:
            totals: "OrderedDict[UUID, float]" = OrderedDict()
            for session in self.get_sessions(start, end):
                hours = session.duration_hours
                if not session.is_completed or hours is None or hours <= 0:
                    continue
                totals[session.category_id] = totals.get(session.category_id, 0.0) + hours
            return [CategoryHours(category_id=cid, hours=hours) for cid, hours in totals.items()]
        except Exception as e:
            logger.error(f"Failed to compute category breakdown: {e}", exc_info=True)
            return []

    def get_completion_rate(self, start: datetime, end: datetime) -> float:
        """Get the percentage of sessions in range that are completed (0 if none)."""
        try:
            sessions = self.get_sessions(start, end)
            if not sessions:
                return 0.0
            completed = sum(1 for s in sessions if s.is_completed)
            return completed / len(sessions) * 100
        except Exception as e:
            logger.error(f"Failed to compute completion rate: {e}", exc_info=True)
            return 0.0

    def get_current_streak(self) -> int:
        """
        Count consecutive days, ending today, that have a completed session.

        Returns 0 when nothing was completed today.
        """
        try:
            days = {
                s.start_time.date()
                for s in self._sessions
                if s.is_completed and s.start_time is not None
            }
            day = self.clock().date()
            streak = 0
            while day in days:
                streak += 1
                day -= timedelta(days=1)
            return streak
        except Exception as e:
            logger.error(f"Failed to compute streak: {e}", exc_info=True)
            return 0

    def get_upcoming_sessions(self, limit: Optional[int] = None) -> List[StudySession]:
        """Get incomplete sessions starting in the future, soonest first."""
        if limit is None:
            limit = self.upcoming_limit
        try:
            now = self.clock()
            upcoming = [
                s
                for s in self._sessions
                if not s.is_completed and s.start_time is not None and s.start_time > now
            ]
            upcoming.sort(key=lambda s: s.start_time)
            return upcoming[:limit]
        except Exception as e:
            logger.error(f"Failed to get upcoming sessions: {e}", exc_info=True)
            return []

    def get_session_stats(self) -> SessionStats:
        """Summarize the whole session history."""
        try:
            now = self.clock()
            week_start = start_of_week(now)
            total_hours = 0.0
            week_hours = 0.0
            for session in self._sessions:
                hours = session.duration_hours
                if hours is None or hours <= 0:
                    continue
                total_hours += hours
                if week_start <= session.start_time <= now:
                    week_hours += hours

            completed = sum(1 for s in self._sessions if s.is_completed)
            return SessionStats(
                total_hours=round(total_hours, 1),
                this_week_hours=round(week_hours, 1),
                completed_sessions=completed,
                pending_sessions=len(self._sessions) - completed,
                current_streak=self.get_current_streak(),
            )
        except Exception as e:
            logger.error(f"Failed to compute session stats: {e}", exc_info=True)
            return SessionStats()

    # Categories

    def add_category(self, name: str, color: str = "#4F46E5") -> UUID:
        """
        Create a study category.

        Returns:
            UUID of the created category
        """
        category = StudyCategory(name=name, color=color)
        self._categories.append(category)
        self._persist("save_category", category)
        self._emit(
            EventType.CATEGORY_ADDED,
            {"category_id": str(category.id), "name": category.name},
        )
        return category.id

    def get_category(self, category_id: IdLike) -> Optional[StudyCategory]:
        """Get a category by ID."""
        category_uuid = _as_uuid(category_id)
        for category in self._categories:
            if category.id == category_uuid:
                return category
        return None

    def get_categories(self) -> List[StudyCategory]:
        """Get all categories in insertion order."""
        return list(self._categories)

    def update_category(self, category_id: IdLike, **fields: Any) -> StudyCategory:
        """
        Rename or recolor a category.

        Raises:
            CategoryNotFoundError: If the category does not exist
        """
        category = self.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError(f"Category {category_id} not found")

        fields.pop("id", None)
        updated = StudyCategory.model_validate({**category.model_dump(), **fields})
        self._categories = [updated if c.id == updated.id else c for c in self._categories]
        self._persist("save_category", updated)
        return updated

    def delete_category(self, category_id: IdLike) -> bool:
        """
        Delete a category that no session references.

        Returns:
            True if deleted; False if unknown or still referenced
        """
        category = self.get_category(category_id)
        if category is None:
            return False

        referencing = sum(1 for s in self._sessions if s.category_id == category.id)
        if referencing:
            logger.error(
                f"Cannot delete category '{category.name}': "
                f"{referencing} session(s) still use it"
            )
            return False

        self._categories = [c for c in self._categories if c.id != category.id]
        self._persist("delete_category", category.id)
        self._emit(
            EventType.CATEGORY_DELETED,
            {"category_id": str(category.id), "name": category.name},
        )
        return True

    # Goals

    def add_goal(
        self,
        title: str,
        category_id: IdLike,
        target_hours: float,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> UUID:
        """
        Create an hours-based goal for a category.

        Progress starts at zero; only sessions added afterwards count toward it.

        Raises:
            CategoryNotFoundError: If the category does not exist
        """
        category_uuid = _as_uuid(category_id)
        if self.get_category(category_uuid) is None:
            raise CategoryNotFoundError(f"Category {category_uuid} not found")

        today = self.clock().date()
        goal = StudyGoal(
            title=title,
            category_id=category_uuid,
            target_hours=target_hours,
            start_date=start_date or today,
            end_date=end_date or start_date or today,
        )
        self._goals.append(goal)
        self._persist("save_goal", goal)
        return goal.id

    def get_goal(self, goal_id: IdLike) -> Optional[StudyGoal]:
        """Get a goal by ID."""
        goal_uuid = _as_uuid(goal_id)
        for goal in self._goals:
            if goal.id == goal_uuid:
                return goal
        return None

    def get_goals(self) -> List[StudyGoal]:
        """Get all goals in insertion order."""
        return list(self._goals)

    def update_goal(self, goal_id: IdLike, **fields: Any) -> StudyGoal:
        """
        Merge field changes into a goal.

        Raises:
            GoalNotFoundError: If the goal does not exist
        """
        goal = self.get_goal(goal_id)
        if goal is None:
            raise GoalNotFoundError(f"Goal {goal_id} not found")

        updated, newly_completed = self.goal_tracker.apply_update(goal, fields)
        self._goals = [updated if g.id == updated.id else g for g in self._goals]
        self._persist("save_goal", updated)
        if newly_completed:
            self._emit_goal_completed(updated)
        return updated

    def complete_goal(self, goal_id: IdLike) -> StudyGoal:
        """Mark a goal as completed regardless of its hours."""
        return self.update_goal(goal_id, is_completed=True)

    def delete_goal(self, goal_id: IdLike) -> bool:
        """Delete a goal. Returns True if a goal was removed."""
        goal = self.get_goal(goal_id)
        if goal is None:
            return False
        self._goals = [g for g in self._goals if g.id != goal.id]
        self._persist("delete_goal", goal.id)
        return True

    # Filters

    @property
    def active_filters(self) -> SessionFilter:
        """The filter currently applied by filter_sessions."""
        return self._filters

    def update_filters(self, **fields: Any) -> SessionFilter:
        """Merge changes into the active filter."""
        self._filters = SessionFilter.model_validate({**self._filters.model_dump(), **fields})
        return self._filters

    def reset_filters(self) -> SessionFilter:
        """Restore the default filter."""
        self._filters = SessionFilter()
        return self._filters

    def filter_sessions(self, sessions: Optional[List[StudySession]] = None) -> List[StudySession]:
        """Apply the active filter to the given sessions (all sessions by default)."""
        f = self._filters
        candidates = self._sessions if sessions is None else sessions
        result = []
        for session in candidates:
            if f.categories and session.category_id not in f.categories:
                continue
            if session.priority not in f.priorities:
                continue
            if session.is_completed and not f.show_completed:
                continue
            if f.start_date or f.end_date:
                if session.start_time is None:
                    continue
                day = session.start_time.date()
                if f.start_date and day < f.start_date:
                    continue
                if f.end_date and day > f.end_date:
                    continue
            result.append(session)
        return result

    # Integration

    def suggest_study_times(
        self, duration_minutes: int, candidate_dates: Optional[List[date]] = None
    ) -> List[TimeSlot]:
        """Suggest free windows of the given length that avoid every existing session."""
        return self.engine.suggest(duration_minutes, self._sessions, candidate_dates)

    def _pending_tasks(self) -> List[Task]:
        if self.task_provider is None:
            return []
        try:
            return self.task_provider.get_pending_tasks()
        except Exception as e:
            logger.error(f"Could not read pending tasks: {e}", exc_info=True)
            return []

    def get_suggested_sessions(self) -> List[SessionDraft]:
        """
        Propose one session per pending high-priority task.

        The drafts are not stored; pass one to add_session to keep it.
        """
        if not self._categories:
            return []

        category_id = self._categories[0].id
        drafts = []
        for task in self._pending_tasks():
            if task.priority.lower() != "high":
                continue
            slots = self.suggest_study_times(SUGGESTED_SESSION_MINUTES)
            if not slots:
                continue
            drafts.append(
                SessionDraft(
                    title=f"Study for: {task.title}",
                    description=task.description,
                    start_time=slots[0].start_time,
                    end_time=slots[0].end_time,
                    category_id=category_id,
                    priority=SessionPriority.HIGH,
                    associated_task_ids=[task.id],
                    pomodoro_count=math.ceil(SUGGESTED_SESSION_MINUTES / POMODORO_MINUTES),
                )
            )
        return drafts

    def sync_with_tasks(self) -> List[UUID]:
        """
        Schedule a preparation session for every pending task with a due date.

        Each session starts at 14:00 the day before the task is due. Tasks that
        already have a session are skipped.

        Returns:
            IDs of the created sessions
        """
        if not self._categories:
            logger.warning("No categories available; skipping task sync")
            return []

        created = []
        for task in self._pending_tasks():
            if task.due_date is None:
                continue
            if any(task.id in s.associated_task_ids for s in self._sessions):
                continue

            study_day = task.due_date.date() - timedelta(days=1)
            start = datetime.combine(study_day, time(SYNC_SESSION_HOUR))
            created.append(
                self.add_session(
                    title=f"Prepare for: {task.title}",
                    description=task.description or "Study session for upcoming task",
                    start_time=start,
                    end_time=start + timedelta(hours=SYNC_SESSION_HOURS),
                    category_id=self._categories[0].id,
                    priority=TASK_PRIORITY_MAP.get(task.priority.lower(), SessionPriority.MEDIUM),
                    associated_task_ids=[task.id],
                    pomodoro_count=SYNC_POMODORO_COUNT,
                )
            )

        if created:
            logger.info(f"Created {len(created)} session(s) from pending tasks")
        return created

    def link_session_to_pomodoro(self, session_id: IdLike, phase_id: IdLike) -> StudySession:
        """
        Count a finished Pomodoro toward a session.

        The session is completed once its finished pomodoros reach the planned count.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = self._require_session(session_id)
        phase_uuid = _as_uuid(phase_id)

        updated = session.model_copy(
            update={
                "completed_pomodoros": session.completed_pomodoros + 1,
                "pomodoro_phase_ids": [*session.pomodoro_phase_ids, phase_uuid],
            }
        )
        self._replace_session(updated)
        self._persist("save_session", updated)
        self._emit(
            EventType.SESSION_UPDATED,
            {"session_id": str(updated.id), "fields": ["completed_pomodoros", "pomodoro_phase_ids"]},
        )

        if updated.completed_pomodoros >= updated.pomodoro_count:
            return self.complete_session(updated.id)
        return updated
