"""
Event definitions for the study planner.

This module defines the domain event types emitted by the planner and the
focus timer, and the event model delivered to subscribers.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events emitted by the planner and timer."""

    # Session events
    SESSION_ADDED = "session_added"
    SESSION_UPDATED = "session_updated"
    SESSION_DELETED = "session_deleted"
    SESSION_COMPLETED = "session_completed"

    # Category events
    CATEGORY_ADDED = "category_added"
    CATEGORY_DELETED = "category_deleted"

    # Goal and motivation events
    GOAL_PROGRESS = "goal_progress"
    GOAL_COMPLETED = "goal_completed"
    STREAK_ACTIVITY = "streak_activity"

    # Timer events
    PHASE_STARTED = "phase_started"
    PHASE_COMPLETED = "phase_completed"
    PHASE_STOPPED = "phase_stopped"


class PlannerEvent(BaseModel):
    """
    Base event class for all planner events.

    Subscribers receive this model; ``data`` carries the event-specific payload
    with identifiers encoded as strings.
    """

    event_type: EventType = Field(..., description="Type of the event")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the event occurred")
    event_id: str = Field(..., description="Unique identifier for this event")
    data: Dict[str, Any] = Field(default_factory=dict, description="Event-specific data payload")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional metadata")

    def to_dict(self) -> Dict[str, Any]:
        """Convert the event to a dictionary for serialization."""
        return self.model_dump(mode="json")

    @property
    def session_id(self) -> Optional[UUID]:
        """Get the session ID from the event data."""
        return self._uuid("session_id")

    @property
    def goal_id(self) -> Optional[UUID]:
        """Get the goal ID from the event data."""
        return self._uuid("goal_id")

    @property
    def task_ids(self) -> List[str]:
        """Get the associated task IDs from the event data."""
        return list(self.data.get("associated_task_ids") or [])

    def _uuid(self, key: str) -> Optional[UUID]:
        value = self.data.get(key)
        if value:
            try:
                return UUID(str(value))
            except (ValueError, TypeError):
                pass
        return None
