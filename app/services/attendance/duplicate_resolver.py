"""
Duplicate attendance resolution.

One record per (agent, event, day). A lookup answers the common case and
the table's unique constraint decides races between concurrent actors:
the first committed write wins and every other writer receives a
ConflictError naming the winner.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

from app.core.exceptions import ConflictError, DuplicateEntryError
from app.core.logging import get_logger
from app.models.attendance.attendance_record import AttendanceRecord
from app.models.base.enums import AttendanceStatus, CheckInSource, UserRole
from app.repositories.attendance.attendance_record_repository import AttendanceRecordRepository
from app.repositories.user.user_repository import UserRepository
from app.schemas.attendance.attendance_record import AttendanceResponse
from app.services.common.permissions import Principal

logger = get_logger(__name__)


def classify_source(actor: Principal, agent_id: str) -> CheckInSource:
    """Kind of actor performing an action for ``agent_id``."""
    if actor.user_id == agent_id:
        return CheckInSource.SELF
    if actor.role == UserRole.ADMIN:
        return CheckInSource.ADMIN
    if actor.role == UserRole.SUPERVISOR:
        return CheckInSource.SUPERVISOR
    return CheckInSource.SELF


@dataclass(frozen=True)
class Attribution:
    """Who performed the action recorded on an attendance, as opposed to whom it is for."""

    source: CheckInSource
    actor_id: Optional[str]
    actor_name: Optional[str]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.value,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "message": self.message,
        }


class DuplicateResolver:
    """Enforces the single-record rule across self, supervisor and admin entry points."""

    def __init__(self, records: AttendanceRecordRepository, users: UserRepository):
        self.records = records
        self.users = users

    def find_existing(
        self,
        agent_id: str,
        event_id: str,
        attendance_date: date,
        include_deleted: bool = False,
    ) -> Optional[AttendanceRecord]:
        return self.records.find_for_day(agent_id, event_id, attendance_date, include_deleted)

    def attribution_for(self, record: AttendanceRecord) -> Attribution:
        """
        Describe who produced ``record``.

        Check-ins are attributed to ``checked_in_by``; absence markings to
        the staff member who verified them.
        """
        source = record.check_in_source or CheckInSource.SELF
        actor_id = record.checked_in_by or record.verified_by
        actor = self.users.find_by_id(actor_id) if actor_id else None
        actor_name = actor.full_name if actor else None

        if record.status == AttendanceStatus.ABSENT and record.check_in_time is None:
            role = actor.role.value if actor else "staff"
            message = f"Marked absent by {role} {actor_name or actor_id or ''}".strip()
        elif source == CheckInSource.SELF:
            message = "Check-in performed by self"
        else:
            message = f"Check-in performed by {source.value} {actor_name or actor_id or ''}".strip()

        return Attribution(source, actor_id, actor_name, message)

    def conflict_for(self, record: AttendanceRecord) -> ConflictError:
        attribution = self.attribution_for(record)
        return ConflictError(
            f"Attendance already recorded for this agent, event and day. {attribution.message}",
            existing=AttendanceResponse.model_validate(record).to_payload(),
            attribution=attribution.to_dict(),
        )

    def ensure_available(self, agent_id: str, event_id: str, attendance_date: date) -> None:
        """
        Raise if a record already exists for the key.

        Raises:
            ConflictError: Carrying the existing record and its attribution
        """
        existing = self.find_existing(agent_id, event_id, attendance_date, include_deleted=True)
        if existing is not None:
            logger.warning(
                f"Duplicate attendance attempt for agent {agent_id} at event {event_id}",
                extra={"operation": "ensure_available", "attendance_id": existing.id},
            )
            raise self.conflict_for(existing)

    def claim(self, record: AttendanceRecord) -> AttendanceRecord:
        """
        Commit ``record`` as the single attendance for its key.

        Raises:
            ConflictError: Another writer committed first
        """
        try:
            return self.records.create(record, commit=True)
        except DuplicateEntryError:
            winner = self.find_existing(
                record.agent_id,
                record.event_id,
                record.attendance_date,
                include_deleted=True,
            )
            if winner is None:
                raise
            logger.warning(
                f"Lost attendance race for agent {record.agent_id} at event {record.event_id}",
                extra={"operation": "claim", "attendance_id": winner.id},
            )
            raise self.conflict_for(winner)
