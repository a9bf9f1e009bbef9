"""
Attendance read side: single records, filtered listing, today's status
and statistics. Agents only ever see their own records.
"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings
from app.models.base.enums import AttendanceStatus, UserRole
from app.repositories.attendance.attendance_record_repository import AttendanceRecordRepository
from app.repositories.event.event_repository import EventRepository
from app.schemas.attendance.attendance_record import (
    AttendanceListResponse,
    AttendanceResponse,
    AttendanceStatsResponse,
    TodayStatusResponse,
)
from app.schemas.common.base import PaginationMeta
from app.services.base.base_service import BaseService, Clock
from app.services.common.permissions import Action, Principal, enforce
from app.utils.datetime_utils import local_date


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage; 0 when there is nothing to divide by."""
    if not whole:
        return 0
    return int(round(part / whole * 100))


class AttendanceQueryService(BaseService[AttendanceRecordRepository]):

    def __init__(self, db_session: Session, settings: Optional[Settings] = None, clock: Optional[Clock] = None):
        super().__init__(AttendanceRecordRepository(db_session), db_session, settings, clock)
        self.records = self.repository
        self.events = EventRepository(db_session)

    def _scope_agent(self, principal: Principal, agent_id: Optional[str], action: Action) -> Optional[str]:
        if principal.role == UserRole.AGENT:
            agent_id = principal.user_id
        enforce(principal, agent_id, action)
        return agent_id

    def get_attendance(self, principal: Principal, attendance_id: str) -> AttendanceResponse:
        record = self.records.get_by_id(attendance_id)
        enforce(principal, record.agent_id, Action.VIEW_ATTENDANCE)
        return AttendanceResponse.model_validate(record)

    def list_attendance(
        self,
        principal: Principal,
        agent_id: Optional[str] = None,
        event_id: Optional[str] = None,
        status: Optional[AttendanceStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> AttendanceListResponse:
        """
        Filtered, paginated listing, newest first.

        Agents are restricted to their own records whatever ``agent_id`` says.
        """
        agent_id = self._scope_agent(principal, agent_id, Action.VIEW_ATTENDANCE)
        result = self.records.list_filtered(agent_id, event_id, status, date_from, date_to, page, limit)
        return AttendanceListResponse(
            items=[AttendanceResponse.model_validate(r) for r in result["items"]],
            pagination=PaginationMeta(**result["pagination"]),
        )

    def today_status(self, principal: Principal, event_id: str) -> TodayStatusResponse:
        """The caller's own record for ``event_id`` today, if any."""
        self.events.get_by_id(event_id)
        day = local_date(self.now(), self.settings.TIMEZONE)
        record = self.records.find_for_day(principal.user_id, event_id, day)
        if record is None:
            return TodayStatusResponse(checked_in=False, checked_out=False)
        return TodayStatusResponse(
            checked_in=record.is_checked_in,
            checked_out=record.is_checked_out,
            attendance=AttendanceResponse.model_validate(record),
        )

    def attendance_stats(
        self,
        principal: Principal,
        agent_id: Optional[str] = None,
        event_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> AttendanceStatsResponse:
        agent_id = self._scope_agent(principal, agent_id, Action.VIEW_STATISTICS)
        stats = self.records.aggregate_stats(agent_id, event_id, date_from, date_to)

        by_status = stats["by_status"]
        present = by_status.get(AttendanceStatus.PRESENT.value, 0)
        late = by_status.get(AttendanceStatus.LATE.value, 0)
        total = stats["total"]

        return AttendanceStatsResponse(
            **stats,
            attendance_rate=percentage(present + late, total),
            punctuality_rate=percentage(present, present + late),
            facial_verification_rate=percentage(stats["facial_verified"], total),
        )
