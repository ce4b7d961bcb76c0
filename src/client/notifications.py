"""
User Notifications

Toast-style notices raised by the session (generation failed, allergy
warning, timer finished). The session only sees the Notifier interface;
how a notice reaches the user is up to the implementation.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional


logger = logging.getLogger("Notifications")


class NotificationKind(Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    """A single user-visible notice."""
    kind: NotificationKind
    message: str
    title: Optional[str] = None
    notification_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.notification_id,
            "kind": self.kind.value,
            "title": self.title,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }


class Notifier(ABC):
    """Capability: deliver a notice to the user."""

    @abstractmethod
    def notify(
        self, kind: NotificationKind, message: str, title: Optional[str] = None
    ) -> Notification:
        pass


class ToastQueue(Notifier):
    """
    Keeps the most recent notices until the client drains them.

    Older notices are dropped once the limit is reached.
    """

    def __init__(self, limit: int = 5):
        if limit < 1:
            raise ValueError("Toast limit must be at least 1")
        self._toasts: Deque[Notification] = deque(maxlen=limit)

    def notify(
        self, kind: NotificationKind, message: str, title: Optional[str] = None
    ) -> Notification:
        notification = Notification(kind=NotificationKind(kind), message=message, title=title)
        self._toasts.append(notification)
        return notification

    def pending(self) -> List[Notification]:
        return list(self._toasts)

    def drain(self) -> List[Notification]:
        """Return and clear all pending notices."""
        toasts = list(self._toasts)
        self._toasts.clear()
        return toasts

    def __len__(self) -> int:
        return len(self._toasts)


class LoggingNotifier(Notifier):
    """Writes notices to the log instead of showing them."""

    LEVELS = {
        NotificationKind.SUCCESS: logging.INFO,
        NotificationKind.INFO: logging.INFO,
        NotificationKind.WARNING: logging.WARNING,
        NotificationKind.ERROR: logging.ERROR,
    }

    def notify(
        self, kind: NotificationKind, message: str, title: Optional[str] = None
    ) -> Notification:
        notification = Notification(kind=NotificationKind(kind), message=message, title=title)
        logger.log(self.LEVELS[notification.kind], "%s%s", f"{title}: " if title else "", message)
        return notification
