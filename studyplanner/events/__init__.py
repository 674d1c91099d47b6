"""Domain events for the study planner."""

from .event_manager import EventManager
from .events import EventType, PlannerEvent

__all__ = ["EventManager", "EventType", "PlannerEvent"]
