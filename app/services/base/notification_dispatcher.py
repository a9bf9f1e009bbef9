"""
Notification dispatcher for supervisory alerts.

Delivery is fire-and-forget. Callers wrap ``send`` so that a failed
notification never rolls back an attendance write.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from app.core.events.event_broadcaster import EventBroadcaster
from app.core.logging import get_logger


class NotificationPriority(str, Enum):
    """Notification priority levels."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


@dataclass
class Notification:
    event: str
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event,
            "title": self.title,
            "message": self.message,
            "priority": self.priority.value,
            "data": self.data,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }


class NotificationDispatcher(ABC):
    """Fire-and-forget alerting collaborator."""

    @abstractmethod
    def send(self, notification: Notification, recipients: Iterable[str]) -> int:
        """
        Deliver ``notification`` to each recipient.

        Returns:
            Number of recipients it was handed to
        """


class RealtimeNotificationDispatcher(NotificationDispatcher):
    """
    In-app delivery over the event broadcaster.

    Recipients without an open connection simply miss the notification.
    """

    def __init__(self, broadcaster: EventBroadcaster):
        self.broadcaster = broadcaster
        self._logger = get_logger(self.__class__.__name__)

    def send(self, notification: Notification, recipients: Iterable[str]) -> int:
        recipients = [r for r in dict.fromkeys(recipients) if r]
        payload = notification.to_dict()

        for recipient in recipients:
            self.broadcaster.publish_to_user(recipient, "notification:created", payload)

        self._logger.info(
            f"Notification dispatched: {notification.event} to {len(recipients)} recipient(s)",
            extra={
                "notification_event": notification.event,
                "priority": notification.priority.value,
                "recipient_count": len(recipients),
            },
        )
        return len(recipients)


def unique_recipients(*groups: Iterable[Optional[str]], exclude: Optional[str] = None) -> List[str]:
    """Flatten recipient groups, dropping blanks, duplicates and ``exclude``."""
    seen: List[str] = []
    for group in groups:
        for recipient in group:
            if recipient and recipient != exclude and recipient not in seen:
                seen.append(recipient)
    return seen
