"""
Attendance record repository.

Lookups by the (agent, event, day) key, filtered listing and the
aggregates behind attendance statistics.
"""

from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session

from app.models.attendance.attendance_record import AttendanceRecord
from app.models.base.enums import AttendanceStatus
from app.repositories.base.base_repository import BaseRepository


class AttendanceRecordRepository(BaseRepository[AttendanceRecord]):
    """Repository for attendance records."""

    def __init__(self, session: Session):
        super().__init__(AttendanceRecord, session)

    # ==================== Lookups ====================

    def find_for_day(
        self,
        agent_id: str,
        event_id: str,
        attendance_date: date,
        include_deleted: bool = False,
    ) -> Optional[AttendanceRecord]:
        """
        Find the record for an agent at an event on a given day.

        Args:
            agent_id: Agent the record belongs to
            event_id: Event ID
            attendance_date: Calendar day
            include_deleted: Include tombstoned records

        Returns:
            The record or None
        """
        return self.find_one_by_criteria(
            {
                "agent_id": agent_id,
                "event_id": event_id,
                "attendance_date": attendance_date,
            },
            include_deleted=include_deleted,
        )

    # ==================== Listing ====================

    def _filtered_query(
        self,
        agent_id: Optional[str] = None,
        event_id: Optional[str] = None,
        status: Optional[AttendanceStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Query:
        query = self.db.query(AttendanceRecord).filter(
            AttendanceRecord.is_deleted == False  # noqa: E712
        )
        if agent_id:
            query = query.filter(AttendanceRecord.agent_id == agent_id)
        if event_id:
            query = query.filter(AttendanceRecord.event_id == event_id)
        if status:
            query = query.filter(AttendanceRecord.status == status)
        if date_from:
            query = query.filter(AttendanceRecord.attendance_date >= date_from)
        if date_to:
            query = query.filter(AttendanceRecord.attendance_date <= date_to)
        return query

    def list_filtered(
        self,
        agent_id: Optional[str] = None,
        event_id: Optional[str] = None,
        status: Optional[AttendanceStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """Newest records first, paginated."""
        query = self._filtered_query(agent_id, event_id, status, date_from, date_to)
        query = query.order_by(
            AttendanceRecord.attendance_date.desc(),
            AttendanceRecord.created_at.desc(),
        )
        return self.paginate_query(query, page=page, limit=limit)

    # ==================== Aggregates ====================

    def aggregate_stats(
        self,
        agent_id: Optional[str] = None,
        event_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Counts per status plus geofence and facial-verification totals.

        Returns:
            Dict with ``by_status``, ``total``, ``total_hours``,
            ``within_geofence``, ``outside_geofence`` and ``facial_verified``
        """
        base = self._filtered_query(agent_id, event_id, None, date_from, date_to)

        by_status = {status.value: 0 for status in AttendanceStatus}
        rows = (
            base.with_entities(AttendanceRecord.status, func.count(AttendanceRecord.id))
            .group_by(AttendanceRecord.status)
            .all()
        )
        for status, count in rows:
            by_status[AttendanceStatus(status).value] = count

        totals = base.with_entities(
            func.count(AttendanceRecord.id),
            func.coalesce(func.sum(AttendanceRecord.total_hours), 0),
            func.sum(case((AttendanceRecord.is_within_geofence == True, 1), else_=0)),  # noqa: E712
            func.sum(case((AttendanceRecord.is_within_geofence == False, 1), else_=0)),  # noqa: E712
            func.sum(case((AttendanceRecord.facial_verified == True, 1), else_=0)),  # noqa: E712
        ).one()

        return {
            "by_status": by_status,
            "total": totals[0] or 0,
            "total_hours": round(float(totals[1] or 0), 2),
            "within_geofence": int(totals[2] or 0),
            "outside_geofence": int(totals[3] or 0),
            "facial_verified": int(totals[4] or 0),
        }

    # ==================== Guarded Transitions ====================

    def mark_checked_out(self, record_id: str, values: Dict[str, Any]) -> bool:
        """
        Apply check-out values only if the record has no check-out yet.

        The guard lives in the UPDATE itself so two concurrent check-outs
        cannot both succeed.

        Returns:
            True if this call performed the transition
        """
        updated = (
            self.db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.id == record_id,
                AttendanceRecord.check_in_time.isnot(None),
                AttendanceRecord.check_out_time.is_(None),
            )
            .update(values, synchronize_session=False)
        )
        return updated == 1
