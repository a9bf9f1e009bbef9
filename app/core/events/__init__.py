"""
Real-time event fan-out for the attendance integrity service.
"""

from .channels import QueueChannel, SubscriberChannel
from .event_broadcaster import ROUTES, EventBroadcaster, Target, event_room, role_room

__all__ = [
    "EventBroadcaster",
    "ROUTES",
    "Target",
    "event_room",
    "role_room",
    "SubscriberChannel",
    "QueueChannel",
]
