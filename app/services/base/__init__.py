from app.services.base.base_service import BaseService
from app.services.base.identity_verifier import IdentityVerifier, normalize_match_score
from app.services.base.notification_dispatcher import (
    Notification,
    NotificationDispatcher,
    NotificationPriority,
    RealtimeNotificationDispatcher,
    unique_recipients,
)

__all__ = [
    "BaseService",
    "IdentityVerifier",
    "normalize_match_score",
    "Notification",
    "NotificationDispatcher",
    "NotificationPriority",
    "RealtimeNotificationDispatcher",
    "unique_recipients",
]
