# app/api/deps.py
"""
FastAPI dependencies shared by the v1 routers.

Example usage in a router:
    @router.get("/attendance/{attendance_id}")
    def get_attendance(
        attendance_id: str,
        principal: Principal = Depends(deps.get_current_principal),
        service: AttendanceQueryService = Depends(deps.get_attendance_query_service),
    ):
        ...
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config.settings import Settings, get_settings
from app.core.events.event_broadcaster import EventBroadcaster
from app.core.exceptions import AuthenticationError
from app.core.logging import user_id as user_id_var
from app.core.security.jwt_handler import JWTManager
from app.db.session import get_db
from app.services.attendance import AttendanceQueryService, AttendanceRegistry
from app.services.base.base_service import Clock
from app.services.base.notification_dispatcher import NotificationDispatcher, RealtimeNotificationDispatcher
from app.services.common.permissions import Principal
from app.services.tracking import FraudSignalService, MovementIntegrityMonitor, TrackingService
from app.utils.datetime_utils import utc_now
from app.utils.geo_utils import GeofenceEvaluator

_bearer = HTTPBearer(auto_error=False)


# --- Core -----------------------------------------------------------------------

def get_settings_dep(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_clock() -> Clock:
    return utc_now


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster


def get_jwt_manager(settings: Settings = Depends(get_settings_dep)) -> JWTManager:
    return JWTManager(settings.JWT_SECRET_KEY, settings.JWT_ALGORITHM)


def get_notification_dispatcher(
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> NotificationDispatcher:
    return RealtimeNotificationDispatcher(broadcaster)


def get_geofence(settings: Settings = Depends(get_settings_dep)) -> GeofenceEvaluator:
    return GeofenceEvaluator(settings.DEFAULT_GEOFENCE_RADIUS_M)


# --- Authentication ---------------------------------------------------------------

def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    jwt_manager: JWTManager = Depends(get_jwt_manager),
) -> Principal:
    """
    Resolve the caller from the bearer token.

    Raises:
        AuthenticationError: Missing or invalid token
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    principal = jwt_manager.principal_from_token(credentials.credentials)
    user_id_var.set(principal.user_id)
    return principal


# --- Services ---------------------------------------------------------------------

def get_movement_monitor(
    db: Session = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    geofence: GeofenceEvaluator = Depends(get_geofence),
    settings: Settings = Depends(get_settings_dep),
    clock: Clock = Depends(get_clock),
) -> MovementIntegrityMonitor:
    return MovementIntegrityMonitor(db, broadcaster, dispatcher, geofence, settings, clock)


def get_attendance_registry(
    db: Session = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    monitor: MovementIntegrityMonitor = Depends(get_movement_monitor),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    geofence: GeofenceEvaluator = Depends(get_geofence),
    settings: Settings = Depends(get_settings_dep),
    clock: Clock = Depends(get_clock),
) -> AttendanceRegistry:
    return AttendanceRegistry(
        db,
        broadcaster,
        monitor=monitor,
        notification_dispatcher=dispatcher,
        geofence=geofence,
        settings=settings,
        clock=clock,
    )


def get_attendance_query_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
    clock: Clock = Depends(get_clock),
) -> AttendanceQueryService:
    return AttendanceQueryService(db, settings, clock)


def get_tracking_service(
    db: Session = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    geofence: GeofenceEvaluator = Depends(get_geofence),
    settings: Settings = Depends(get_settings_dep),
    clock: Clock = Depends(get_clock),
) -> TrackingService:
    return TrackingService(db, broadcaster, dispatcher, geofence, settings, clock)


def get_fraud_signal_service(
    db: Session = Depends(get_db),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    settings: Settings = Depends(get_settings_dep),
    clock: Clock = Depends(get_clock),
) -> FraudSignalService:
    return FraudSignalService(db, broadcaster, settings, clock)
