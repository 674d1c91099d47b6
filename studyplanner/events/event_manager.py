"""
Event management for the study planner.

The planner store and the focus timer emit domain events here instead of
calling sibling subsystems directly. Dispatch is synchronous and runs hooks
in priority order; a failing hook is logged and never reaches the emitter.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from .events import EventType, PlannerEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[PlannerEvent], Any]


@dataclass
class EventHook:
    """A subscribed callback. Lower priorities run first."""

    callback: EventCallback
    name: str
    priority: int = 100
    event_type: Optional[EventType] = None
    id: str = field(default_factory=lambda: uuid4().hex)

    def matches(self, event: PlannerEvent) -> bool:
        return self.event_type is None or self.event_type == event.event_type


class EventManager:
    """Registry of event hooks for one planner instance."""

    def __init__(self) -> None:
        self._hooks: List[EventHook] = []

    def _add(self, hook: EventHook) -> str:
        self._hooks.append(hook)
        # sort is stable, so equal priorities keep registration order
        self._hooks.sort(key=lambda h: h.priority)
        scope = hook.event_type.value if hook.event_type else "*"
        logger.debug(f"Registered hook '{hook.name}' for '{scope}'")
        return hook.id

    def register_hook(
        self,
        event_type: EventType,
        callback: EventCallback,
        name: Optional[str] = None,
        priority: int = 100,
    ) -> str:
        """
        Subscribe to one event type.

        Args:
            event_type: Event type to listen for
            callback: Called with the PlannerEvent
            name: Name shown by get_registered_hooks()
            priority: Execution order, lower first

        Returns:
            Hook ID for unregister_hook()
        """
        return self._add(
            EventHook(callback, name or f"hook_{uuid4().hex[:8]}", priority, event_type)
        )

    def register_global_hook(
        self,
        callback: EventCallback,
        name: Optional[str] = None,
        priority: int = 100,
    ) -> str:
        """Subscribe to every event type. Returns the hook ID."""
        return self._add(EventHook(callback, name or f"hook_{uuid4().hex[:8]}", priority))

    def unregister_hook(self, hook_id: str) -> bool:
        """Remove a hook. Returns False when the ID is unknown."""
        for hook in self._hooks:
            if hook.id == hook_id:
                self._hooks.remove(hook)
                logger.debug(f"Unregistered hook '{hook.name}'")
                return True

        logger.warning(f"Hook with ID '{hook_id}' not found")
        return False

    def dispatch_event(self, event: PlannerEvent) -> None:
        """Run every matching hook against an event."""
        for hook in [h for h in self._hooks if h.matches(event)]:
            try:
                hook.callback(event)
            except Exception as e:
                logger.error(f"Error executing hook '{hook.name}': {e}", exc_info=True)

    def emit_event(
        self,
        event_type: EventType,
        data: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PlannerEvent:
        """Create an event, dispatch it and return it."""
        event = PlannerEvent(
            event_type=event_type,
            event_id=uuid4().hex,
            data=data or {},
            metadata=metadata or {},
        )
        self.dispatch_event(event)
        return event

    def get_registered_hooks(self) -> Dict[str, List[str]]:
        """Map event type values (``"*"`` for global hooks) to hook names."""
        result: Dict[str, List[str]] = {}
        for hook in self._hooks:
            key = hook.event_type.value if hook.event_type else "*"
            result.setdefault(key, []).append(hook.name)
        return result
