"""Transient user notifications.

Engine components never talk to a UI directly; hosts pass a callable that
shows a non-blocking notification (``App.notify`` in the TUI).
"""

from typing import Callable

from postdraft.utils.logging import get_logger

logger = get_logger(__name__)

# (message, severity) where severity is "information", "warning" or "error"
Notifier = Callable[[str, str], None]


def log_notifier(message: str, severity: str = "information") -> None:
    """Notifier used when no UI is attached: records the notification in the log."""
    logger.info("notification", message=message, severity=severity)
