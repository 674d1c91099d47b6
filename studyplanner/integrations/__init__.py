"""
Study planner integrations package.

This package defines the collaborator interfaces and the event bridge that
connects the planner to the task list and motivation subsystems.
"""

from .collaborators import (
    CollaboratorBridge,
    InMemoryTaskProvider,
    MotivationService,
    TaskProvider,
)

__all__ = ["CollaboratorBridge", "InMemoryTaskProvider", "MotivationService", "TaskProvider"]
