"""
Movement integrity monitoring.

Assesses every position report against the user's ordered history and the
event geofence, raising fraud signals for teleportation, out-of-zone
presence and client-asserted mock locations. Only mock locations block.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings
from app.core.events.event_broadcaster import EventBroadcaster
from app.core.exceptions import MockLocationRejected, NotFoundError
from app.models.base.enums import FraudAction, FraudKind, FraudSeverity, UserRole
from app.models.event.event import Event
from app.models.tracking.fraud_signal import FraudSignal
from app.models.tracking.location_sample import LocationSample
from app.repositories.event.event_repository import EventRepository
from app.repositories.tracking.fraud_signal_repository import FraudSignalRepository
from app.repositories.tracking.location_sample_repository import LocationSampleRepository
from app.repositories.user.user_repository import UserRepository
from app.schemas.tracking.tracking import (
    FraudSignalResponse,
    IntegrityAlert,
    LocationReportRequest,
    LocationReportResponse,
)
from app.services.base.base_service import BaseService, Clock
from app.services.base.notification_dispatcher import (
    Notification,
    NotificationDispatcher,
    NotificationPriority,
    unique_recipients,
)
from app.services.common.permissions import Principal
from app.utils.datetime_utils import ensure_utc, local_date
from app.utils.geo_utils import GeoLocationHelper, GeoPoint, GeofenceEvaluator, GeofenceVerdict, validate_coordinates


@dataclass
class SpeedCheck:
    """Implied travel between a sample and its predecessor."""
    previous_sample_id: str
    distance_m: float
    elapsed_seconds: float
    speed_kmh: float

    def to_details(self) -> Dict[str, Any]:
        return {
            "previous_sample_id": self.previous_sample_id,
            "distance_m": int(round(self.distance_m)),
            "elapsed_seconds": round(self.elapsed_seconds, 1),
            "speed_kmh": round(self.speed_kmh, 1),
        }


@dataclass
class IntegrityAssessment:
    """Outcome of assessing one position report."""
    verdict: GeofenceVerdict
    alerts: List[IntegrityAlert] = field(default_factory=list)
    signals: List[FraudSignal] = field(default_factory=list)


def implied_speed_kmh(
    previous: LocationSample,
    latitude: float,
    longitude: float,
    recorded_at: datetime,
) -> Optional[SpeedCheck]:
    """
    Speed implied by moving from ``previous`` to the given position.

    Returns:
        SpeedCheck, or None when no positive time has elapsed
    """
    elapsed = (ensure_utc(recorded_at) - ensure_utc(previous.recorded_at)).total_seconds()
    if elapsed <= 0:
        return None

    distance = GeoLocationHelper.distance_meters(
        GeoPoint(float(previous.latitude), float(previous.longitude)),
        GeoPoint(float(latitude), float(longitude)),
    )
    return SpeedCheck(
        previous_sample_id=previous.id,
        distance_m=distance,
        elapsed_seconds=elapsed,
        speed_kmh=distance / elapsed * 3.6,
    )


class MovementIntegrityMonitor(BaseService[LocationSampleRepository]):
    """
    Streaming anomaly detection over position reports.

    Signals are persisted in the caller's transaction; broadcasts and
    supervisor notifications happen after commit and are best-effort.
    """

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
        self.samples = self.repository
        self.signals = FraudSignalRepository(db_session)
        self.events = EventRepository(db_session)
        self.users = UserRepository(db_session)
        self.broadcaster = broadcaster
        self.notifications = notification_dispatcher
        self.geofence = geofence or GeofenceEvaluator(self.settings.DEFAULT_GEOFENCE_RADIUS_M)

    # -------------------------------------------------------------------------
    # Detection
    # -------------------------------------------------------------------------

    def check_speed(
        self,
        user_id: str,
        latitude: float,
        longitude: float,
        recorded_at: datetime,
        accuracy: Optional[float] = None,
    ) -> Optional[SpeedCheck]:
        """
        Compare a sample with the user's preceding sample by ``recorded_at``.

        Samples less accurate than ``MAX_LOCATION_ACCURACY_M`` take no part
        in speed computation, on either side of the comparison.

        Returns:
            SpeedCheck when the implied speed exceeds the teleport ceiling
        """
        max_accuracy = self.settings.MAX_LOCATION_ACCURACY_M
        if accuracy is not None and accuracy > max_accuracy:
            return None

        previous = self.samples.find_predecessor(user_id, recorded_at, max_accuracy=max_accuracy)
        if previous is None:
            return None

        check = implied_speed_kmh(previous, latitude, longitude, recorded_at)
        if check is None or check.speed_kmh <= self.settings.TELEPORT_SPEED_KMH:
            return None
        return check

    def assess(
        self,
        user_id: str,
        event: Optional[Event],
        latitude: float,
        longitude: float,
        recorded_at: datetime,
        accuracy: Optional[float] = None,
        is_mock_location: bool = False,
    ) -> IntegrityAssessment:
        """
        Run every integrity check for one position.

        Args:
            user_id: Subject of the report
            event: Event the report relates to, if any
            latitude: Reported latitude
            longitude: Reported longitude
            recorded_at: Time the sample was received
            accuracy: Reported accuracy radius in meters
            is_mock_location: Client asserts the position is simulated

        Returns:
            IntegrityAssessment with the geofence verdict and advisory alerts

        Raises:
            MockLocationRejected: When ``is_mock_location`` is set
        """
        event_id = event.id if event else None

        if is_mock_location:
            self.reject_mock_location(user_id, event_id, latitude, longitude, accuracy)

        verdict = self.geofence.evaluate_event(event, latitude, longitude)
        assessment = IntegrityAssessment(verdict=verdict)

        speed = self.check_speed(user_id, latitude, longitude, recorded_at, accuracy)
        if speed is not None:
            signal = self._raise_signal(
                user_id,
                event_id,
                FraudKind.GPS_SPOOFING,
                FraudSeverity.CRITICAL,
                {"type": "teleportation", **speed.to_details()},
                latitude,
                longitude,
            )
            self._logger.warning(
                f"Teleportation detected for user {user_id}: {speed.speed_kmh:.0f} km/h",
                extra={"operation": "integrity_check", "user_id": user_id, "signal_id": signal.id},
            )
            assessment.signals.append(signal)
            assessment.alerts.append(IntegrityAlert(
                type="teleportation",
                kind=signal.kind,
                severity=signal.severity,
                message=f"Implied speed of {speed.speed_kmh:.0f} km/h is physically impossible",
                signal_id=signal.id,
                details=signal.details,
            ))

        if verdict.is_outside and event is not None and self._event_active(event, recorded_at):
            signal = self._raise_out_of_zone(user_id, event, verdict, latitude, longitude)
            assessment.signals.append(signal)
            assessment.alerts.append(IntegrityAlert(
                type="out_of_zone",
                kind=signal.kind,
                severity=signal.severity,
                message=f"Agent is {verdict.distance_meters}m from the event "
                        f"(allowed {verdict.radius_meters}m)",
                signal_id=signal.id,
                details=signal.details,
            ))

        return assessment

    def reject_mock_location(
        self,
        user_id: str,
        event_id: Optional[str],
        latitude: float,
        longitude: float,
        accuracy: Optional[float] = None,
    ) -> None:
        """
        Record a critical spoofing signal and reject the report.

        The signal is committed before raising so the rejection leaves
        an audit trail.

        Raises:
            MockLocationRejected: Always
        """
        signal = self._raise_signal(
            user_id,
            event_id,
            FraudKind.GPS_SPOOFING,
            FraudSeverity.CRITICAL,
            {"type": "mock_location", "accuracy": accuracy},
            latitude,
            longitude,
        )
        self.db.commit()

        self._logger.warning(
            f"Mock location rejected for user {user_id}",
            extra={"operation": "integrity_check", "user_id": user_id, "signal_id": signal.id},
        )
        self._best_effort("broadcast_signal", self._broadcast_signal, signal)
        raise MockLocationRejected(signal_id=signal.id)

    # -------------------------------------------------------------------------
    # Location reports
    # -------------------------------------------------------------------------

    def record_location(self, principal: Principal, request: LocationReportRequest) -> LocationReportResponse:
        """
        Process a location report from the calling user.

        Args:
            principal: Reporting user
            request: Location report

        Returns:
            LocationReportResponse with geofence verdict and advisory alerts

        Raises:
            ValidationError: Invalid coordinates
            NotFoundError: Unknown event
            MockLocationRejected: Mock location asserted
        """
        operation = "record_location"
        user_id = principal.user_id
        point = validate_coordinates(request.latitude, request.longitude)
        # Stamped on receipt, never by the device
        recorded_at = self.now()

        event = None
        if request.event_id:
            event = self.events.find_by_id(request.event_id)
            if event is None:
                raise NotFoundError("Event", request.event_id)

        self._logger.info(
            f"Processing location report for user {user_id}",
            extra={"operation": operation, "user_id": user_id, "event_id": request.event_id},
        )

        with self.transaction():
            assessment = self.assess(
                user_id,
                event,
                point.latitude,
                point.longitude,
                recorded_at,
                accuracy=request.accuracy,
                is_mock_location=request.is_mock_location,
            )
            sample = self.append_sample(
                user_id,
                event.id if event else None,
                point.latitude,
                point.longitude,
                recorded_at,
                assessment.verdict,
                accuracy=request.accuracy,
                speed=request.speed,
                heading=request.heading,
                battery_level=request.battery_level,
            )

        self.publish_assessment(user_id, event, sample, assessment)

        return LocationReportResponse(
            sample_id=sample.id,
            is_within_geofence=assessment.verdict.within_radius,
            distance_from_event=assessment.verdict.distance_meters,
            alerts=assessment.alerts,
        )

    def append_sample(
        self,
        user_id: str,
        event_id: Optional[str],
        latitude: float,
        longitude: float,
        recorded_at: datetime,
        verdict: GeofenceVerdict,
        accuracy: Optional[float] = None,
        speed: Optional[float] = None,
        heading: Optional[float] = None,
        battery_level: Optional[int] = None,
        is_mock_location: bool = False,
    ) -> LocationSample:
        """Add a sample to the history; the caller owns the commit."""
        sample = LocationSample(
            user_id=user_id,
            event_id=event_id,
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            speed=speed,
            heading=heading,
            battery_level=battery_level,
            is_mock_location=is_mock_location,
            recorded_at=ensure_utc(recorded_at),
            is_within_geofence=verdict.within_radius,
            distance_from_event=verdict.distance_meters,
        )
        return self.samples.create(sample, commit=False)

    def publish_assessment(
        self,
        user_id: str,
        event: Optional[Event],
        sample: Optional[LocationSample],
        assessment: IntegrityAssessment,
    ) -> None:
        """Fan out the position and any raised signals; never raises."""
        if sample is not None:
            payload = {
                "user_id": user_id,
                "event_id": event.id if event else None,
                "latitude": sample.latitude,
                "longitude": sample.longitude,
                "accuracy": sample.accuracy,
                "battery_level": sample.battery_level,
                "recorded_at": ensure_utc(sample.recorded_at).isoformat(),
                "is_within_geofence": assessment.verdict.within_radius,
                "distance_from_event": assessment.verdict.distance_meters,
                "alerts": [alert.to_payload() for alert in assessment.alerts],
            }
            self._best_effort(
                "broadcast_location",
                self.broadcaster.emit,
                "agent:location",
                payload,
                user_id=user_id,
                event_id=event.id if event else None,
            )

        for signal in assessment.signals:
            self._best_effort("broadcast_signal", self._broadcast_signal, signal)
            if signal.details.get("escalated"):
                self._best_effort("escalate_out_of_zone", self._escalate, signal, event)

    # -------------------------------------------------------------------------
    # Signal bookkeeping
    # -------------------------------------------------------------------------

    def _event_active(self, event: Event, instant: datetime) -> bool:
        return event.runs_on(local_date(instant, self.settings.TIMEZONE))

    def _grade_action(self, user_id: str, severity: FraudSeverity) -> FraudAction:
        since = self.now() - timedelta(hours=self.settings.FRAUD_LOOKBACK_HOURS)
        # Includes the signal being graded, which is already flushed
        recent = self.signals.count_since(user_id, since)
        repeat_limit = self.settings.OUT_OF_ZONE_ALERT_THRESHOLD
        if severity in (FraudSeverity.CRITICAL, FraudSeverity.HIGH) or recent >= repeat_limit:
            return FraudAction.ESCALATED
        if recent >= repeat_limit - 1:
            return FraudAction.WARNED
        return FraudAction.LOGGED

    def _raise_signal(
        self,
        user_id: str,
        event_id: Optional[str],
        kind: FraudKind,
        severity: FraudSeverity,
        details: Dict[str, Any],
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> FraudSignal:
        now = self.now()
        signal = FraudSignal(
            user_id=user_id,
            event_id=event_id,
            kind=kind,
            severity=severity,
            details=details,
            latitude=latitude,
            longitude=longitude,
            created_at=now,
            updated_at=now,
        )
        self.signals.create(signal, commit=False)
        signal.action_taken = self._grade_action(user_id, severity)
        self.db.flush()
        return signal

    def _raise_out_of_zone(
        self,
        user_id: str,
        event: Event,
        verdict: GeofenceVerdict,
        latitude: float,
        longitude: float,
    ) -> FraudSignal:
        details = {
            "type": "out_of_zone",
            "distance_m": verdict.distance_meters,
            "allowed_radius_m": verdict.radius_meters,
        }
        signal = self._raise_signal(
            user_id,
            event.id,
            FraudKind.OUT_OF_ZONE,
            FraudSeverity.MEDIUM,
            details,
            latitude,
            longitude,
        )

        window_start = self.now() - timedelta(minutes=self.settings.OUT_OF_ZONE_WINDOW_MINUTES)
        occurrences = self.signals.count_since(
            user_id,
            window_start,
            kind=FraudKind.OUT_OF_ZONE,
            event_id=event.id,
            unresolved_only=True,
        )
        if occurrences >= self.settings.OUT_OF_ZONE_ALERT_THRESHOLD:
            signal.severity = FraudSeverity.HIGH
            signal.action_taken = FraudAction.ESCALATED
            signal.details = {**details, "escalated": True, "occurrences": occurrences}
            self.db.flush()
            self._logger.warning(
                f"Out-of-zone escalation for user {user_id}: {occurrences} occurrences",
                extra={"operation": "integrity_check", "user_id": user_id, "event_id": event.id},
            )
        return signal

    def _broadcast_signal(self, signal: FraudSignal) -> None:
        self.broadcaster.emit(
            "fraud:signal",
            FraudSignalResponse.model_validate(signal).to_payload(),
            user_id=signal.user_id,
            event_id=signal.event_id,
        )

    def _escalate(self, signal: FraudSignal, event: Optional[Event]) -> None:
        agent = self.users.find_by_id(signal.user_id)
        supervisor_id = agent.supervisor_id if agent else None
        payload = {
            "type": "out_of_zone_repeated",
            "signal": FraudSignalResponse.model_validate(signal).to_payload(),
            "agent_name": agent.full_name if agent else None,
            "event_name": event.name if event else None,
        }
        self.broadcaster.emit(
            "tracking:alert",
            payload,
            user_id=signal.user_id,
            event_id=signal.event_id,
            supervisor_id=supervisor_id,
        )

        if self.notifications is not None:
            recipients = unique_recipients(
                [supervisor_id, event.supervisor_id if event else None],
                self.users.find_active_ids_by_role(UserRole.ADMIN),
            )
            self.notifications.send(
                Notification(
                    event="tracking:out_of_zone_repeated",
                    title="Repeated out-of-zone reports",
                    message=f"{payload['agent_name'] or signal.user_id} reported "
                            f"{signal.details.get('occurrences')} positions outside the event zone",
                    priority=NotificationPriority.HIGH,
                    data=payload,
                ),
                recipients,
            )
