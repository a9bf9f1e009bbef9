"""
Real-time fan-out of domain state changes to connected consoles.

The broadcaster keeps two subscriber indices, by user and by room, behind
one lock. Delivery is best-effort to currently open channels only.
"""
import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .channels import SubscriberChannel

logger = logging.getLogger(__name__)


def event_room(event_id: str) -> str:
    return f"event:{event_id}"


def role_room(role: str) -> str:
    return f"role:{role}"


class Target(str, Enum):
    """Delivery paths a domain event can be routed through."""
    GLOBAL = "global"
    EVENT_ROOM = "event_room"
    USER = "user"
    SUPERVISOR = "supervisor"
    STAFF = "staff"


# Domain event -> delivery paths
ROUTES: Dict[str, Tuple[Target, ...]] = {
    "attendance:checked_in": (Target.GLOBAL, Target.EVENT_ROOM, Target.USER),
    "attendance:checked_out": (Target.GLOBAL, Target.EVENT_ROOM, Target.USER),
    "attendance:absent": (Target.GLOBAL, Target.EVENT_ROOM, Target.USER),
    "attendance:updated": (Target.GLOBAL, Target.EVENT_ROOM, Target.USER),
    "agent:location": (Target.STAFF, Target.EVENT_ROOM),
    "fraud:signal": (Target.STAFF, Target.EVENT_ROOM),
    "fraud:resolved": (Target.STAFF, Target.USER),
    "tracking:alert": (Target.STAFF, Target.EVENT_ROOM, Target.SUPERVISOR),
    "emergency:alert": (Target.GLOBAL, Target.SUPERVISOR, Target.EVENT_ROOM),
    "notification:created": (Target.USER,),
}

STAFF_ROLES = ("admin", "supervisor")


class EventBroadcaster:
    """
    Concurrency-safe subscriber registry with scoped publish operations.

    Every index mutation happens under ``_lock``; pushes happen outside it
    on a snapshot so a slow channel never blocks registration.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._channels: Dict[str, SubscriberChannel] = {}
        self._by_user: Dict[str, Set[str]] = defaultdict(set)
        self._by_room: Dict[str, Set[str]] = defaultdict(set)
        self._rooms_of: Dict[str, Set[str]] = defaultdict(set)

    # ==================== Envelope ====================

    @staticmethod
    def envelope(event: str, data: Any) -> Dict[str, Any]:
        return {
            "type": "sync",
            "event": event,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # ==================== Membership ====================

    def connect(self, channel: SubscriberChannel, rooms: Iterable[str] = ()) -> List[str]:
        """
        Register a channel under its user and the initial room list.

        Returns:
            Rooms the channel was placed in
        """
        joined = [room for room in rooms if room]
        with self._lock:
            self._channels[channel.channel_id] = channel
            self._by_user[channel.user_id].add(channel.channel_id)
            for room in joined:
                self._by_room[room].add(channel.channel_id)
                self._rooms_of[channel.channel_id].add(room)

        logger.info(
            f"Channel connected: user={channel.user_id} rooms={joined}",
            extra={"channel_id": channel.channel_id},
        )
        return joined

    def disconnect(self, channel_id: str) -> None:
        """Remove a channel from every index."""
        with self._lock:
            channel = self._channels.pop(channel_id, None)
            if channel is None:
                return

            user_channels = self._by_user.get(channel.user_id)
            if user_channels is not None:
                user_channels.discard(channel_id)
                if not user_channels:
                    del self._by_user[channel.user_id]

            for room in self._rooms_of.pop(channel_id, set()):
                members = self._by_room.get(room)
                if members is not None:
                    members.discard(channel_id)
                    if not members:
                        del self._by_room[room]

        channel.close()
        logger.info(f"Channel disconnected: user={channel.user_id}", extra={"channel_id": channel_id})

    def join_room(self, channel_id: str, room: str) -> bool:
        with self._lock:
            if channel_id not in self._channels or not room:
                return False
            self._by_room[room].add(channel_id)
            self._rooms_of[channel_id].add(room)
        return True

    def leave_room(self, channel_id: str, room: str) -> bool:
        with self._lock:
            members = self._by_room.get(room)
            if members is None or channel_id not in members:
                return False
            members.discard(channel_id)
            if not members:
                del self._by_room[room]
            self._rooms_of[channel_id].discard(room)
        return True

    def rooms_of(self, channel_id: str) -> Set[str]:
        with self._lock:
            return set(self._rooms_of.get(channel_id, set()))

    # ==================== Delivery ====================

    def _deliver(self, channel_ids: Iterable[str], message: Dict[str, Any]) -> int:
        with self._lock:
            targets = [self._channels[cid] for cid in set(channel_ids) if cid in self._channels]

        delivered = 0
        dead = []
        for channel in targets:
            if channel.push(message):
                delivered += 1
            else:
                dead.append(channel.channel_id)

        for channel_id in dead:
            self.disconnect(channel_id)
        return delivered

    def send_to_channel(self, channel_id: str, message: Dict[str, Any]) -> bool:
        """Deliver a protocol message (welcome, pong...) to one channel."""
        return self._deliver([channel_id], message) == 1

    def publish(self, event: str, data: Any) -> int:
        """Deliver to every open channel."""
        with self._lock:
            channel_ids = list(self._channels)
        return self._deliver(channel_ids, self.envelope(event, data))

    def publish_to_user(self, user_id: str, event: str, data: Any) -> int:
        with self._lock:
            channel_ids = list(self._by_user.get(user_id, ()))
        return self._deliver(channel_ids, self.envelope(event, data))

    def publish_to_room(self, room: str, event: str, data: Any) -> int:
        with self._lock:
            channel_ids = list(self._by_room.get(room, ()))
        return self._deliver(channel_ids, self.envelope(event, data))

    def emit(
        self,
        event: str,
        data: Any,
        user_id: Optional[str] = None,
        event_id: Optional[str] = None,
        supervisor_id: Optional[str] = None,
    ) -> int:
        """
        Route a domain event through every delivery path in ``ROUTES``.

        The union of targets receives one envelope per channel.

        Args:
            event: Domain event name
            data: JSON-serializable payload
            user_id: Subject user for user-direct delivery
            event_id: Event whose room receives the message
            supervisor_id: Direct supervisor of the subject

        Returns:
            Number of channels the envelope was pushed to
        """
        routes = ROUTES.get(event, (Target.GLOBAL,))
        with self._lock:
            if Target.GLOBAL in routes:
                channel_ids: Set[str] = set(self._channels)
            else:
                channel_ids = set()
                if Target.USER in routes and user_id:
                    channel_ids |= self._by_user.get(user_id, set())
                if Target.SUPERVISOR in routes and supervisor_id:
                    channel_ids |= self._by_user.get(supervisor_id, set())
                if Target.EVENT_ROOM in routes and event_id:
                    channel_ids |= self._by_room.get(event_room(event_id), set())
                if Target.STAFF in routes:
                    for role in STAFF_ROLES:
                        channel_ids |= self._by_room.get(role_room(role), set())

        delivered = self._deliver(channel_ids, self.envelope(event, data))
        logger.debug(f"Emitted {event} to {delivered} channel(s)")
        return delivered

    # ==================== Introspection ====================

    def is_user_online(self, user_id: str) -> bool:
        with self._lock:
            return bool(self._by_user.get(user_id))

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "connections": len(self._channels),
                "users": len(self._by_user),
                "rooms": {room: len(members) for room, members in self._by_room.items()},
            }
