"""Centralized error handling for the game loop and persistence."""

import logging
import traceback
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[str, str, Exception], None]


class ErrorHandler:
    """Counts errors by type and rate-limits reports of the same type."""

    def __init__(self, notification_cooldown: int = 300, now: Optional[Callable[[], datetime]] = None):
        self.error_counts: Dict[str, int] = {}
        self.last_notification: Dict[str, datetime] = {}
        self.notification_cooldown = notification_cooldown  # seconds between same error types
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._listeners: List[Listener] = []

    def add_listener(self, listener: Listener):
        """Register a callback for reported errors (e.g. an alerting hook)."""
        self._listeners.append(listener)

    def handle(self, error: Exception, context: str) -> bool:
        """Record an error; returns True when it was reported rather than suppressed."""
        error_type = type(error).__name__
        now = self._now()

        self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1

        should_notify = (
            error_type not in self.last_notification
            or now - self.last_notification[error_type] > timedelta(seconds=self.notification_cooldown)
        )
        if not should_notify:
            logger.debug(f"Suppressed repeated {error_type} during {context}")
            return False

        self.last_notification[error_type] = now
        tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        logger.error(
            f"Error during {context}: {error} "
            f"(seen {self.error_counts[error_type]} time(s) since start)\n{tb}"
        )

        title = f"{context} failed: {error_type}"
        for listener in self._listeners:
            try:
                listener(title, str(error), error)
            except Exception as e:
                logger.error(f"Failed to send error notification: {e}")
        return True
