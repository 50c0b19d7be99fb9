"""Notification system for Ocean Explorer."""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List

logger = logging.getLogger(__name__)

ARTICLE_UNLOCKED = "article"
ACHIEVEMENT_UNLOCKED = "achievement"
LEVEL_UNLOCKED = "level"
OFFLINE_PROGRESS = "offline"


@dataclass
class Notification:
    kind: str
    title: str
    description: str = ""
    subject_id: str = ""


class NotificationManager:
    """Collects game events for whatever presentation layer is attached."""

    def __init__(self, history_size: int = 50):
        self.history: Deque[Notification] = deque(maxlen=history_size)
        self.pending: List[Notification] = []
        self._listeners: List[Callable[[Notification], None]] = []

    def subscribe(self, listener: Callable[[Notification], None]):
        self._listeners.append(listener)

    def notify(self, kind: str, title: str, description: str = "", subject_id: str = ""):
        notification = Notification(kind, title, description, subject_id)
        self.history.append(notification)
        self.pending.append(notification)
        logger.info(f"[{kind}] {title}")

        for listener in self._listeners:
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Notification listener failed for {title}: {e}")

    def consume(self) -> List[Notification]:
        """Return and clear notifications not yet shown."""
        pending = list(self.pending)
        self.pending.clear()
        return pending
