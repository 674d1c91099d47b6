"""
Collaborator interfaces for the study planner.

The planner reaches the task list and the motivation/achievement subsystem only
through the protocols defined here. ``CollaboratorBridge`` subscribes to the
planner's domain events and forwards them to the collaborators on a
best-effort basis: a collaborator failure is logged and never reaches the
planner's own state transitions.
"""

import logging
from typing import Dict, List, Optional, Protocol

from ..db.models import Task
from ..events.event_manager import EventManager
from ..events.events import EventType, PlannerEvent

logger = logging.getLogger(__name__)


class TaskProvider(Protocol):
    """Access to the external task list."""

    def complete_task(self, task_id: str) -> None:
        """Mark a task as completed."""
        ...

    def get_pending_tasks(self) -> List[Task]:
        """Get tasks that are not completed yet."""
        ...

    def get_task(self, task_id: str) -> Optional[Task]:
        """Get a task by its ID."""
        ...


class MotivationService(Protocol):
    """Access to the external streak and achievement subsystem."""

    def increment_streak(self) -> None:
        """Record study activity for today."""
        ...

    def unlock_achievement(self, achievement_id: str) -> None:
        """Unlock an achievement."""
        ...

    def update_achievement_progress(self, achievement_id: str, percent: float) -> None:
        """Set the progress of an achievement in percent."""
        ...


class InMemoryTaskProvider:
    """Simple task list kept in memory."""

    def __init__(self, tasks: Optional[List[Task]] = None):
        self._tasks: Dict[str, Task] = {task.id: task for task in tasks or []}

    def add_task(self, task: Task) -> None:
        """Add or replace a task."""
        self._tasks[task.id] = task

    def complete_task(self, task_id: str) -> None:
        task = self._tasks.get(task_id)
        if task is None:
            raise KeyError(f"Task {task_id} not found")
        self._tasks[task_id] = task.model_copy(update={"completed": True})

    def get_pending_tasks(self) -> List[Task]:
        return [task for task in self._tasks.values() if not task.completed]

    def get_task(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)


class CollaboratorBridge:
    """Forwards planner events to the task and motivation collaborators."""

    def __init__(
        self,
        events: EventManager,
        task_provider: Optional[TaskProvider] = None,
        motivation: Optional[MotivationService] = None,
        achievement_id: str = "3",
    ):
        """
        Subscribe to the events the collaborators care about.

        Args:
            events: Event manager the planner emits to
            task_provider: Receives task completions for completed sessions
            motivation: Receives streak and achievement signals
            achievement_id: Achievement unlocked when a study goal is completed
        """
        self.task_provider = task_provider
        self.motivation = motivation
        self.achievement_id = achievement_id
        self._hook_ids = [
            events.register_hook(
                EventType.SESSION_COMPLETED, self._on_session_completed, name="bridge_tasks"
            ),
            events.register_hook(
                EventType.GOAL_COMPLETED, self._on_goal_completed, name="bridge_achievements"
            ),
            events.register_hook(
                EventType.STREAK_ACTIVITY, self._on_streak_activity, name="bridge_streak"
            ),
        ]
        self._events = events

    def detach(self) -> None:
        """Stop forwarding events."""
        for hook_id in self._hook_ids:
            self._events.unregister_hook(hook_id)
        self._hook_ids = []

    def _on_session_completed(self, event: PlannerEvent) -> None:
        if self.task_provider is None:
            return
        for task_id in event.task_ids:
            try:
                self.task_provider.complete_task(task_id)
            except Exception as e:
                logger.warning(f"Could not complete associated task {task_id}: {e}")

    def _on_goal_completed(self, event: PlannerEvent) -> None:
        if self.motivation is None:
            return
        try:
            self.motivation.update_achievement_progress(self.achievement_id, 100)
        except Exception as e:
            logger.warning(f"Could not update achievement progress for goal {event.goal_id}: {e}")
        try:
            self.motivation.unlock_achievement(self.achievement_id)
        except Exception as e:
            logger.warning(f"Could not unlock achievement for goal {event.goal_id}: {e}")

    def _on_streak_activity(self, event: PlannerEvent) -> None:
        if self.motivation is None:
            return
        try:
            self.motivation.increment_streak()
        except Exception as e:
            logger.warning(f"Could not update motivation streak: {e}")
