"""
Attendance registry.

Owns the attendance lifecycle: check-in, check-out, absence marking and
manual correction. Every write goes through the duplicate resolver so a
(agent, event, day) key has at most one record no matter who acts.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings
from app.core.events.event_broadcaster import EventBroadcaster
from app.core.exceptions import (
    AuthorizationError,
    ErrorCode,
    InvalidStateError,
    ValidationError,
)
from app.models.attendance.attendance_record import AttendanceRecord
from app.models.base.enums import AttendanceStatus, CheckInMethod, CheckInSource, UserRole
from app.models.event.event import Event
from app.repositories.attendance.attendance_record_repository import AttendanceRecordRepository
from app.repositories.event.event_repository import AssignmentRepository, EventRepository
from app.repositories.user.user_repository import UserRepository
from app.schemas.attendance.attendance_record import (
    AttendanceCorrectionRequest,
    AttendanceResponse,
    CheckInRequest,
    CheckInResponse,
    CheckOutRequest,
    GeofenceResult,
    MarkAbsentRequest,
)
from app.services.attendance.duplicate_resolver import DuplicateResolver, classify_source
from app.services.base.base_service import BaseService, Clock
from app.services.base.identity_verifier import IdentityVerifier, normalize_match_score
from app.services.base.notification_dispatcher import (
    Notification,
    NotificationDispatcher,
    NotificationPriority,
    unique_recipients,
)
from app.services.common.permissions import Action, Principal, enforce
from app.services.tracking.movement_integrity_monitor import IntegrityAssessment, MovementIntegrityMonitor
from app.utils.datetime_utils import ensure_utc, local_date, scheduled_instant
from app.utils.geo_utils import GeofenceEvaluator, validate_coordinates


def worked_hours(check_in: datetime, check_out: datetime) -> float:
    """Hours between two instants, rounded to two decimals."""
    seconds = (ensure_utc(check_out) - ensure_utc(check_in)).total_seconds()
    return round(max(seconds, 0) / 3600, 2)


class AttendanceRegistry(BaseService[AttendanceRecordRepository]):
    """
    Attendance state transitions.

    The primary write commits first. Location samples, broadcasts and
    notifications follow as best-effort side effects.
    """

    def __init__(
        self,
        db_session: Session,
        broadcaster: EventBroadcaster,
        monitor: Optional[MovementIntegrityMonitor] = None,
        notification_dispatcher: Optional[NotificationDispatcher] = None,
        identity_verifier: Optional[IdentityVerifier] = None,
        geofence: Optional[GeofenceEvaluator] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(AttendanceRecordRepository(db_session), db_session, settings, clock)
        self.records = self.repository
        self.events = EventRepository(db_session)
        self.assignments = AssignmentRepository(db_session)
        self.users = UserRepository(db_session)
        self.broadcaster = broadcaster
        self.notifications = notification_dispatcher
        self.identity_verifier = identity_verifier
        self.geofence = geofence or GeofenceEvaluator(self.settings.DEFAULT_GEOFENCE_RADIUS_M)
        # Shares this session so integrity signals commit with the record
        self.monitor = monitor or MovementIntegrityMonitor(
            db_session,
            broadcaster,
            notification_dispatcher=notification_dispatcher,
            geofence=self.geofence,
            settings=self.settings,
            clock=self._clock,
        )
        self.resolver = DuplicateResolver(self.records, self.users)

    # -------------------------------------------------------------------------
    # Check-in
    # -------------------------------------------------------------------------

    def check_in(self, principal: Principal, request: CheckInRequest) -> CheckInResponse:
        """
        Record an agent's arrival at an event.

        Args:
            principal: Caller; may be the agent or staff acting for them
            request: Check-in submission

        Returns:
            CheckInResponse with the record, geofence verdict and advisory alerts

        Raises:
            ValidationError: Missing event, invalid coordinates or event not running today
            AuthorizationError: Caller may not check in this agent, or agent not assigned
            NotFoundError: Unknown event
            ConflictError: Attendance already exists for the day
            MockLocationRejected: Device reported a simulated position
        """
        operation = "check_in"
        if not request.event_id:
            raise ValidationError("eventId is required", field="eventId",
                                  error_code=ErrorCode.MISSING_REQUIRED_FIELD)
        point = validate_coordinates(request.latitude, request.longitude)

        agent_id = request.agent_id or principal.user_id
        enforce(principal, agent_id, Action.CHECK_IN)

        if self.assignments.find_confirmed(agent_id, request.event_id) is None:
            raise AuthorizationError(
                "Agent is not assigned to this event",
                action=Action.CHECK_IN.value,
                error_code=ErrorCode.NOT_ASSIGNED,
                details={"agent_id": agent_id, "event_id": request.event_id},
            )

        event = self.events.get_by_id(request.event_id)
        now = self.now()
        day = local_date(now, self.settings.TIMEZONE)
        if not event.runs_on(day):
            raise ValidationError(
                "Event is not running today",
                field="eventId",
                error_code=ErrorCode.EVENT_NOT_ACTIVE,
                details={"event_id": event.id, "date": day.isoformat()},
            )

        self.resolver.ensure_available(agent_id, event.id, day)

        device = request.device_info
        assessment = self.monitor.assess(
            agent_id,
            event,
            point.latitude,
            point.longitude,
            now,
            accuracy=request.accuracy,
            is_mock_location=bool(device and device.is_mock_location),
        )

        status = AttendanceStatus.LATE if self._is_late(event, day, now) else AttendanceStatus.PRESENT
        score, verified = self._identity(agent_id, request)
        source = classify_source(principal, agent_id)

        record = AttendanceRecord(
            agent_id=agent_id,
            event_id=event.id,
            attendance_date=day,
            status=status,
            check_in_time=now,
            check_in_latitude=point.latitude,
            check_in_longitude=point.longitude,
            check_in_method=request.method,
            check_in_photo=request.photo,
            checked_in_by=principal.user_id,
            check_in_source=source,
            is_within_geofence=assessment.verdict.within_radius,
            distance_from_location=assessment.verdict.distance_meters,
            facial_match_score=score,
            facial_verified=verified,
            device_info=device.model_dump(mode="json") if device else None,
        )
        record = self.resolver.claim(record)

        self._logger.info(
            f"Agent {agent_id} checked in to event {event.id} as {status.value}",
            extra={
                "operation": operation,
                "attendance_id": record.id,
                "source": source.value,
                "within_geofence": assessment.verdict.within_radius,
            },
        )

        self._best_effort("record_check_in_sample", self._record_sample, agent_id, event, record, request, assessment)
        payload = {
            "attendance": AttendanceResponse.model_validate(record).to_payload(),
            "geofence": assessment.verdict.to_dict(),
            "alerts": [alert.to_payload() for alert in assessment.alerts],
        }
        self._best_effort(
            "broadcast_check_in",
            self.broadcaster.emit,
            "attendance:checked_in",
            payload,
            user_id=agent_id,
            event_id=event.id,
        )
        if status == AttendanceStatus.LATE:
            self._best_effort("notify_late_arrival", self._notify_late, principal, event, record)

        return CheckInResponse(
            attendance=AttendanceResponse.model_validate(record),
            geofence=GeofenceResult(**assessment.verdict.to_dict()),
            alerts=payload["alerts"],
            message="Checked in late" if status == AttendanceStatus.LATE else "Checked in successfully",
        )

    def _is_late(self, event: Event, day, now: datetime) -> bool:
        grace = event.late_threshold_minutes
        if grace is None:
            grace = self.settings.LATE_GRACE_MINUTES
        deadline = scheduled_instant(day, event.check_in_time, self.settings.TIMEZONE)
        return now > deadline + timedelta(minutes=grace)

    def _identity(self, agent_id: str, request: CheckInRequest):
        score = normalize_match_score(request.facial_match_score)
        if score is None and request.photo and self.identity_verifier is not None:
            score = normalize_match_score(
                self._best_effort("verify_identity", self.identity_verifier.similarity, agent_id, request.photo)
            )
        verified = bool(request.facial_verified) or (
            score is not None and score >= self.settings.FACIAL_MATCH_THRESHOLD
        )
        return score, verified

    def _record_sample(
        self,
        agent_id: str,
        event: Event,
        record: AttendanceRecord,
        request: CheckInRequest,
        assessment: IntegrityAssessment,
    ) -> None:
        with self.transaction():
            sample = self.monitor.append_sample(
                agent_id,
                event.id,
                record.check_in_latitude,
                record.check_in_longitude,
                record.check_in_time,
                assessment.verdict,
                accuracy=request.accuracy,
            )
        self.monitor.publish_assessment(agent_id, event, sample, assessment)

    def _notify_late(self, principal: Principal, event: Event, record: AttendanceRecord) -> None:
        if self.notifications is None:
            return
        agent = self.users.find_by_id(record.agent_id)
        recipients = unique_recipients(
            [event.supervisor_id, agent.supervisor_id if agent else None],
            self.users.find_active_ids_by_role(UserRole.ADMIN),
            exclude=principal.user_id,
        )
        name = agent.full_name if agent else record.agent_id
        self.notifications.send(
            Notification(
                event="attendance:late",
                title="Late arrival",
                message=f"{name} checked in late to {event.name}",
                priority=NotificationPriority.NORMAL,
                data={"attendance_id": record.id, "agent_id": record.agent_id, "event_id": event.id},
            ),
            recipients,
        )

    # -------------------------------------------------------------------------
    # Check-out
    # -------------------------------------------------------------------------

    def check_out(self, principal: Principal, attendance_id: str, request: CheckOutRequest) -> AttendanceResponse:
        """
        Close an open attendance.

        Raises:
            NotFoundError: Unknown attendance
            AuthorizationError: Caller may not check out this agent
            InvalidStateError: Never checked in, or already checked out
        """
        record = self.records.get_by_id(attendance_id)
        enforce(principal, record.agent_id, Action.CHECK_OUT)
        point = validate_coordinates(request.latitude, request.longitude)

        if record.check_in_time is None:
            raise InvalidStateError("Agent has not checked in", error_code=ErrorCode.NOT_CHECKED_IN)
        if record.check_out_time is not None:
            raise InvalidStateError("Agent has already checked out", error_code=ErrorCode.ALREADY_CHECKED_OUT)

        now = self.now()
        values: Dict[str, Any] = {
            "check_out_time": now,
            "check_out_latitude": point.latitude,
            "check_out_longitude": point.longitude,
            "check_out_method": request.method,
            "check_out_photo": request.photo,
            "total_hours": worked_hours(record.check_in_time, now),
            "updated_at": now,
        }
        if request.notes:
            values["notes"] = request.notes

        event = self.events.find_by_id(record.event_id)
        if event is not None and event.check_out_time is not None:
            scheduled_end = scheduled_instant(record.attendance_date, event.check_out_time, self.settings.TIMEZONE)
            if now < scheduled_end:
                values["status"] = AttendanceStatus.EARLY_DEPARTURE

        with self.transaction():
            if not self.records.mark_checked_out(record.id, values):
                raise InvalidStateError("Agent has already checked out", error_code=ErrorCode.ALREADY_CHECKED_OUT)
        self.db.refresh(record)

        self._logger.info(
            f"Agent {record.agent_id} checked out after {record.total_hours}h",
            extra={"operation": "check_out", "attendance_id": record.id, "status": record.status.value},
        )
        response = AttendanceResponse.model_validate(record)
        self._best_effort(
            "broadcast_check_out",
            self.broadcaster.emit,
            "attendance:checked_out",
            {"attendance": response.to_payload()},
            user_id=record.agent_id,
            event_id=record.event_id,
        )
        return response

    # -------------------------------------------------------------------------
    # Absence
    # -------------------------------------------------------------------------

    def mark_absent(self, principal: Principal, request: MarkAbsentRequest) -> AttendanceResponse:
        """
        Record an agent as absent for a day.

        Raises:
            AuthorizationError: Caller is not staff
            NotFoundError: Unknown event
            ConflictError: A record already exists for the day
        """
        enforce(principal, request.agent_id, Action.MARK_ABSENT)
        event = self.events.get_by_id(request.event_id)
        now = self.now()
        day = request.attendance_date or local_date(now, self.settings.TIMEZONE)

        self.resolver.ensure_available(request.agent_id, event.id, day)

        record = AttendanceRecord(
            agent_id=request.agent_id,
            event_id=event.id,
            attendance_date=day,
            status=AttendanceStatus.ABSENT,
            check_in_method=CheckInMethod.MANUAL,
            check_in_source=classify_source(principal, request.agent_id),
            verified_by=principal.user_id,
            verified_at=now,
            notes=request.notes,
        )
        record = self.resolver.claim(record)

        self._logger.info(
            f"Agent {request.agent_id} marked absent for event {event.id} on {day.isoformat()}",
            extra={"operation": "mark_absent", "attendance_id": record.id, "actor_id": principal.user_id},
        )
        response = AttendanceResponse.model_validate(record)
        self._best_effort(
            "broadcast_absence",
            self.broadcaster.emit,
            "attendance:absent",
            {"attendance": response.to_payload()},
            user_id=record.agent_id,
            event_id=record.event_id,
        )
        self._best_effort("notify_absence", self._notify_absence, principal, event, record)
        return response

    def _notify_absence(self, principal: Principal, event: Event, record: AttendanceRecord) -> None:
        if self.notifications is None:
            return
        agent = self.users.find_by_id(record.agent_id)
        recipients = unique_recipients(
            [record.agent_id, agent.supervisor_id if agent else None, event.supervisor_id],
            self.users.find_active_ids_by_role(UserRole.ADMIN),
            exclude=principal.user_id,
        )
        self.notifications.send(
            Notification(
                event="attendance:absent",
                title="Absence recorded",
                message=f"{agent.full_name if agent else record.agent_id} was marked absent "
                        f"for {event.name} on {record.attendance_date.isoformat()}",
                priority=NotificationPriority.NORMAL,
                data={"attendance_id": record.id, "agent_id": record.agent_id, "event_id": event.id},
            ),
            recipients,
        )

    # -------------------------------------------------------------------------
    # Correction
    # -------------------------------------------------------------------------

    def correct_attendance(
        self,
        principal: Principal,
        attendance_id: str,
        request: AttendanceCorrectionRequest,
    ) -> AttendanceResponse:
        """
        Apply a manual correction by staff.

        Raises:
            NotFoundError: Unknown attendance
            AuthorizationError: Caller is not staff
            ValidationError: Nothing to change, or check-out before check-in
        """
        record = self.records.get_by_id(attendance_id)
        enforce(principal, record.agent_id, Action.CORRECT_ATTENDANCE)

        changes = request.model_dump(exclude_none=True)
        if not changes:
            raise ValidationError(
                "At least one of status, notes, checkInTime or checkOutTime is required",
                error_code=ErrorCode.MISSING_REQUIRED_FIELD,
            )

        check_in = ensure_utc(changes.get("check_in_time", record.check_in_time))
        check_out = ensure_utc(changes.get("check_out_time", record.check_out_time))
        if check_in is not None and check_out is not None and check_out < check_in:
            raise ValidationError("checkOutTime must be after checkInTime", field="checkOutTime")

        before = AttendanceResponse.model_validate(record).to_payload()
        for name, value in changes.items():
            setattr(record, name, ensure_utc(value) if isinstance(value, datetime) else value)
        if check_in is not None and check_out is not None:
            record.total_hours = worked_hours(check_in, check_out)

        now = self.now()
        record.verified_by = principal.user_id
        record.verified_at = now
        record.updated_at = now

        with self.transaction():
            self.records.save(record, commit=False)
        self.db.refresh(record)

        response = AttendanceResponse.model_validate(record)
        self._logger.warning(
            f"Attendance {record.id} corrected by {principal.user_id}",
            extra={
                "operation": "correct_attendance",
                "attendance_id": record.id,
                "before": {k: before.get(k) for k in changes},
                "after": {k: response.to_payload().get(k) for k in changes},
            },
        )
        self._best_effort(
            "broadcast_correction",
            self.broadcaster.emit,
            "attendance:updated",
            {"attendance": response.to_payload(), "corrected_by": principal.user_id},
            user_id=record.agent_id,
            event_id=record.event_id,
        )
        return response
