# app/api/v1/realtime.py
"""
Realtime channel.

Clients connect with ``userId`` (and optionally ``token`` and a
comma-separated ``rooms`` list) and receive domain events as
``{"type": "sync", ...}`` envelopes. Control messages: ``join_room``,
``leave_room`` and ``ping``.
"""
import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from app.api import deps
from app.core.events import EventBroadcaster, QueueChannel, role_room
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.logging import get_struct_logger
from app.core.security.jwt_handler import JWTManager
from app.models.base.enums import UserRole
from app.services.common.permissions import Principal

router = APIRouter(prefix="/realtime", tags=["realtime"])
logger = get_struct_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _may_join(room: str, principal: Optional[Principal]) -> bool:
    # Role rooms carry staff traffic; membership follows the verified role
    if room.startswith("role:"):
        return principal is not None and room == role_room(principal.role.value)
    return True


def _handle_message(
    broadcaster: EventBroadcaster,
    channel: QueueChannel,
    principal: Optional[Principal],
    raw: str,
) -> Dict[str, Any]:
    try:
        message = json.loads(raw)
    except ValueError:
        return {"type": "error", "message": "Invalid JSON", "timestamp": _now()}
    if not isinstance(message, dict):
        return {"type": "error", "message": "Message must be an object", "timestamp": _now()}

    kind = message.get("type")
    room = message.get("room")
    if kind == "ping":
        return {"type": "pong", "timestamp": _now()}
    if kind == "join_room" and room:
        if not _may_join(room, principal) or not broadcaster.join_room(channel.channel_id, room):
            return {"type": "error", "message": f"Cannot join room {room}", "timestamp": _now()}
        return {"type": "room_joined", "room": room, "timestamp": _now()}
    if kind == "leave_room" and room:
        broadcaster.leave_room(channel.channel_id, room)
        return {"type": "room_left", "room": room, "timestamp": _now()}
    return {"type": "error", "message": f"Unknown message type: {kind}", "timestamp": _now()}


@router.websocket("/ws")
async def realtime_ws(websocket: WebSocket):
    broadcaster: EventBroadcaster = websocket.app.state.broadcaster
    params = websocket.query_params
    token = params.get("token")
    user_id = params.get("userId")

    principal = None
    if token:
        settings = websocket.app.state.settings
        try:
            principal = JWTManager(settings.JWT_SECRET_KEY, settings.JWT_ALGORITHM).principal_from_token(token)
        except AuthenticationError:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        if user_id and user_id != principal.user_id:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        user_id = principal.user_id
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    channel = QueueChannel(user_id, asyncio.get_running_loop())
    requested = [r.strip() for r in (params.get("rooms") or "").split(",") if r.strip()]
    rooms = [r for r in requested if _may_join(r, principal)]
    if principal is not None:
        rooms.append(role_room(principal.role.value))
    rooms = broadcaster.connect(channel, rooms)

    log = logger.bind(user_id=user_id, channel_id=channel.channel_id)
    log.info("realtime_connected", rooms=rooms)
    broadcaster.send_to_channel(
        channel.channel_id,
        {"type": "connected", "userId": user_id, "rooms": rooms, "timestamp": _now()},
    )

    sender = asyncio.create_task(channel.drain_to(websocket.send_json))
    try:
        while True:
            raw = await websocket.receive_text()
            reply = _handle_message(broadcaster, channel, principal, raw)
            broadcaster.send_to_channel(channel.channel_id, reply)
    except WebSocketDisconnect:
        log.info("realtime_disconnected")
    finally:
        broadcaster.disconnect(channel.channel_id)
        try:
            await asyncio.wait_for(sender, timeout=1)
        except Exception as e:
            log.debug("realtime_sender_stopped", error=str(e))


@router.get("/stats")
def realtime_stats(
    request_principal: Principal = Depends(deps.get_current_principal),
    broadcaster: EventBroadcaster = Depends(deps.get_broadcaster),
) -> Dict[str, Any]:
    if not request_principal.has_any_role(UserRole.ADMIN):
        raise AuthorizationError("Only admins can view realtime statistics", action="view_realtime_stats")
    return broadcaster.stats()
