"""
Desktop notification service for the study planner.

This module sends phase-change notifications for the focus timer, falling back
to logging when notifications are disabled or no display is available.
"""

import asyncio
import logging
import os
from typing import Optional

from desktop_notifier import DesktopNotifier

from ..db.models import PhaseType
from .config import get_config_manager

logger = logging.getLogger(__name__)

# Global notifier instance
_notifier: Optional[DesktopNotifier] = None

PHASE_LABELS = {
    PhaseType.FOCUS: "Focus",
    PhaseType.SHORT_BREAK: "Short break",
    PhaseType.LONG_BREAK: "Long break",
}


def _get_notifier() -> DesktopNotifier:
    """Get or create the global DesktopNotifier instance."""
    global _notifier
    if _notifier is None:
        _notifier = DesktopNotifier(app_name="Study Planner")
    return _notifier


def _is_headless() -> bool:
    return (
        (not os.environ.get("DISPLAY") and not os.environ.get("WAYLAND_DISPLAY"))
        or os.environ.get("CI") == "true"
        or os.environ.get("STUDYPLANNER_HEADLESS") == "true"
    )


async def notify(title: str, message: str) -> Optional[str]:
    """
    Send a desktop notification asynchronously.

    Args:
        title: The notification title
        message: The notification message

    Returns:
        None if successful, error message string if failed
    """
    config = get_config_manager()

    if not config.are_notifications_enabled():
        if config.should_fallback_to_log():
            logger.info(f"[NOTIFICATION] {title}: {message}")
        return None

    if _is_headless():
        if config.should_fallback_to_log():
            logger.info(f"[NOTIFICATION] {title}: {message} (headless/CI environment)")
        return "Headless or CI environment"

    try:
        notifier = _get_notifier()
        await notifier.send(title=title, message=message, timeout=config.get_notification_timeout())
        logger.debug(f"Notification sent: {title}")
        return None
    except Exception as e:
        error_msg = f"Failed to send notification: {e}"
        logger.error(error_msg)
        if config.should_fallback_to_log():
            logger.info(f"[NOTIFICATION] {title}: {message} (fallback)")
        return error_msg


def notify_sync(title: str, message: str) -> Optional[str]:
    """
    Send a desktop notification from synchronous code.

    Returns:
        None if successful, error message string if failed
    """
    try:
        return asyncio.run(notify(title, message))
    except Exception as e:
        logger.error(f"Failed to run notification: {e}")
        if get_config_manager().should_fallback_to_log():
            logger.info(f"[NOTIFICATION] {title}: {message} (fallback)")
        return str(e)


def notify_phase_complete(
    finished: PhaseType, next_phase: Optional[PhaseType] = None
) -> Optional[str]:
    """
    Announce the end of a timer phase and, if chained, the phase that follows.

    Args:
        finished: The phase that just completed
        next_phase: The automatically started phase, if any

    Returns:
        None if successful, error message string if failed
    """
    message = f"{PHASE_LABELS[finished]} finished."
    if next_phase is not None:
        message += f" {PHASE_LABELS[next_phase]} started."
    return notify_sync("Study Planner", message)
