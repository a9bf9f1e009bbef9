"""
Attendance record model.

One row per (agent, event, day). The unique constraint is the durable
guard that decides the winner when several actors check the same agent
in at once.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base.base_model import SoftDeleteModel
from app.models.base.enums import AttendanceStatus, CheckInMethod, CheckInSource

__all__ = ["AttendanceRecord"]


class AttendanceRecord(SoftDeleteModel):
    """
    Attendance of an agent at an event on a calendar day.

    Tracks check-in/check-out instants and positions, the geofence verdict,
    identity verification and who performed the check-in.
    """

    __tablename__ = "attendance_records"

    agent_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attendance_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )
    status: Mapped[AttendanceStatus] = mapped_column(
        Enum(AttendanceStatus, name="attendance_status_enum"),
        nullable=False,
        default=AttendanceStatus.PRESENT,
        index=True,
    )

    # Check-in
    check_in_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    check_in_latitude: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 7, asdecimal=False),
        nullable=True,
    )
    check_in_longitude: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 7, asdecimal=False),
        nullable=True,
    )
    check_in_method: Mapped[CheckInMethod] = mapped_column(
        Enum(CheckInMethod, name="check_in_method_enum"),
        nullable=False,
        default=CheckInMethod.MANUAL,
    )
    check_in_photo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    checked_in_by: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Actor who performed the check-in",
    )
    check_in_source: Mapped[CheckInSource] = mapped_column(
        Enum(CheckInSource, name="check_in_source_enum"),
        nullable=False,
        default=CheckInSource.SELF,
    )

    # Check-out
    check_out_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    check_out_latitude: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 7, asdecimal=False),
        nullable=True,
    )
    check_out_longitude: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 7, asdecimal=False),
        nullable=True,
    )
    check_out_method: Mapped[Optional[CheckInMethod]] = mapped_column(
        Enum(CheckInMethod, name="check_in_method_enum"),
        nullable=True,
    )
    check_out_photo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    total_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Geofence verdict, None when the event has no geofence
    is_within_geofence: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    distance_from_location: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Distance from event center in meters",
    )

    # Identity verification
    facial_match_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    facial_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    device_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Verification / correction
    verified_by: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "agent_id",
            "event_id",
            "attendance_date",
            name="uq_attendance_agent_event_date",
        ),
        Index("ix_attendance_event_date", "event_id", "attendance_date"),
    )

    @property
    def is_checked_in(self) -> bool:
        return self.check_in_time is not None

    @property
    def is_checked_out(self) -> bool:
        return self.check_out_time is not None
