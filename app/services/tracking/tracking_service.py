"""
Tracking read side and emergency alerts.

Location history with movement statistics, live positions per event,
position validation with operator guidance, and emergency fan-out.
"""

import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings
from app.core.events.event_broadcaster import EventBroadcaster
from app.models.base.enums import UserRole
from app.models.tracking.location_sample import LocationSample
from app.repositories.event.event_repository import EventRepository
from app.repositories.tracking.location_sample_repository import LocationSampleRepository
from app.repositories.user.user_repository import UserRepository
from app.schemas.tracking.tracking import (
    EmergencyAlertRequest,
    EmergencyAlertResponse,
    LivePosition,
    LivePositionsResponse,
    LocationHistoryResponse,
    LocationHistoryStats,
    LocationSampleResponse,
    ValidatePositionResponse,
)
from app.services.base.base_service import BaseService, Clock
from app.services.base.notification_dispatcher import (
    Notification,
    NotificationDispatcher,
    NotificationPriority,
    unique_recipients,
)
from app.services.common.permissions import Action, Principal, enforce
from app.utils.datetime_utils import ensure_utc
from app.utils.geo_utils import GeoLocationHelper, GeoPoint, GeofenceEvaluator, validate_coordinates


def summarize_history(samples: List[LocationSample]) -> LocationHistoryStats:
    """
    Movement statistics over a set of samples.

    Distance is summed over consecutive samples in ``recorded_at`` order.
    """
    ordered = sorted(samples, key=lambda s: ensure_utc(s.recorded_at))

    total_distance = 0.0
    for previous, current in zip(ordered, ordered[1:]):
        total_distance += GeoLocationHelper.distance_meters(
            GeoPoint(float(previous.latitude), float(previous.longitude)),
            GeoPoint(float(current.latitude), float(current.longitude)),
        )

    accuracies = [s.accuracy for s in samples if s.accuracy is not None]
    speeds = [s.speed for s in samples if s.speed is not None]

    return LocationHistoryStats(
        total_points=len(samples),
        out_of_zone_count=sum(1 for s in samples if s.is_within_geofence is False),
        avg_accuracy=round(sum(accuracies) / len(accuracies), 1) if accuracies else None,
        max_speed=max(speeds) if speeds else None,
        total_distance_m=int(round(total_distance)),
    )


class TrackingService(BaseService[LocationSampleRepository]):
    """Queries over position history and the emergency alert path."""

    def __init__(
        self,
        db_session: Session,
        broadcaster: EventBroadcaster,
        notification_dispatcher: Optional[NotificationDispatcher] = None,
        geofence: Optional[GeofenceEvaluator] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(LocationSampleRepository(db_session), db_session, settings, clock)
        self.events = EventRepository(db_session)
        self.users = UserRepository(db_session)
        self.broadcaster = broadcaster
        self.notifications = notification_dispatcher
        self.geofence = geofence or GeofenceEvaluator(self.settings.DEFAULT_GEOFENCE_RADIUS_M)

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def location_history(
        self,
        principal: Principal,
        user_id: str,
        event_id: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> LocationHistoryResponse:
        """
        Samples for a user, newest first, with movement statistics.

        Raises:
            AuthorizationError: Agents may only read their own history
        """
        enforce(principal, user_id, Action.VIEW_LOCATION_HISTORY)
        samples = self.repository.history(user_id, event_id=event_id, since=since, limit=limit)

        return LocationHistoryResponse(
            user_id=user_id,
            samples=[LocationSampleResponse.model_validate(s) for s in samples],
            stats=summarize_history(samples),
        )

    def live_positions(self, principal: Principal, event_id: str) -> LivePositionsResponse:
        """Latest position of every agent that reported for an event."""
        enforce(principal, None, Action.VIEW_LIVE_POSITIONS)
        self.events.get_by_id(event_id)

        stale_before = self.now() - timedelta(minutes=self.settings.STALE_LOCATION_MINUTES)
        positions = []
        for sample in self.repository.latest_per_user(event_id):
            user = self.users.find_by_id(sample.user_id)
            recorded_at = ensure_utc(sample.recorded_at)
            positions.append(LivePosition(
                user_id=sample.user_id,
                name=user.full_name if user else None,
                latitude=sample.latitude,
                longitude=sample.longitude,
                accuracy=sample.accuracy,
                battery_level=sample.battery_level,
                recorded_at=recorded_at,
                is_within_geofence=sample.is_within_geofence,
                distance_from_event=sample.distance_from_event,
                is_online=recorded_at > stale_before,
            ))

        return LivePositionsResponse(
            event_id=event_id,
            positions=positions,
            online_count=sum(1 for p in positions if p.is_online),
            out_of_zone_count=sum(1 for p in positions if p.is_within_geofence is False),
        )

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_position(self, event_id: str, latitude: float, longitude: float) -> ValidatePositionResponse:
        """
        Geofence verdict plus the compass direction towards the event.

        Raises:
            ValidationError: Invalid coordinates
            NotFoundError: Unknown event
        """
        point = validate_coordinates(latitude, longitude)
        event = self.events.get_by_id(event_id)
        verdict = self.geofence.evaluate_event(event, point.latitude, point.longitude)

        if not verdict.is_configured:
            return ValidatePositionResponse(
                event_id=event_id,
                configured=False,
                message="No geofence is configured for this event",
            )

        guidance = self.geofence.guidance(point.latitude, point.longitude, event.latitude, event.longitude)
        if verdict.within_radius:
            message = f"Inside the event zone, {verdict.distance_meters}m from the center"
        else:
            remaining = verdict.distance_meters - verdict.radius_meters
            message = f"Outside the event zone: move {remaining}m {guidance['direction']}"

        return ValidatePositionResponse(
            event_id=event_id,
            configured=True,
            is_within_geofence=verdict.within_radius,
            distance_meters=verdict.distance_meters,
            radius_meters=verdict.radius_meters,
            bearing=guidance["bearing"],
            direction=guidance["direction"],
            message=message,
        )

    # -------------------------------------------------------------------------
    # Emergency
    # -------------------------------------------------------------------------

    def raise_emergency(self, principal: Principal, request: EmergencyAlertRequest) -> EmergencyAlertResponse:
        """
        Broadcast an emergency globally, to the direct supervisor and to
        the event room, then notify supervisors and admins.
        """
        enforce(principal, principal.user_id, Action.RAISE_EMERGENCY)
        point = validate_coordinates(request.latitude, request.longitude)

        agent = self.users.get_by_id(principal.user_id)
        event = self.events.get_by_id(request.event_id) if request.event_id else None
        raised_at = self.now()

        payload = {
            "alert_id": str(uuid.uuid4()),
            "user_id": agent.id,
            "agent_name": agent.full_name,
            "event_id": event.id if event else None,
            "event_name": event.name if event else None,
            "latitude": point.latitude,
            "longitude": point.longitude,
            "message": request.message or "Emergency assistance requested",
            "raised_at": raised_at.isoformat(),
        }

        self._logger.critical(
            f"Emergency raised by {agent.id}",
            extra={"operation": "raise_emergency", "user_id": agent.id, "event_id": payload["event_id"]},
        )

        delivered = self._best_effort(
            "broadcast_emergency",
            self.broadcaster.emit,
            "emergency:alert",
            payload,
            user_id=agent.id,
            event_id=payload["event_id"],
            supervisor_id=agent.supervisor_id,
        ) or 0

        notified = 0
        if self.notifications is not None:
            recipients = unique_recipients(
                [agent.supervisor_id, event.supervisor_id if event else None],
                self.users.find_active_ids_by_role(UserRole.ADMIN),
                exclude=agent.id,
            )
            notified = self._best_effort(
                "notify_emergency",
                self.notifications.send,
                Notification(
                    event="emergency:alert",
                    title="Emergency alert",
                    message=f"{agent.full_name}: {payload['message']}",
                    priority=NotificationPriority.URGENT,
                    data=payload,
                ),
                recipients,
            ) or 0

        return EmergencyAlertResponse(
            alert_id=payload["alert_id"],
            delivered_to=delivered,
            notified=notified,
            raised_at=raised_at,
        )
