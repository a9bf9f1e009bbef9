"""
Event and assignment models.

Events are time-boxed sites that agents are dispatched to. Both tables
are maintained by the scheduling subsystem and are read-only here.
"""

from datetime import date, time
from typing import Optional

from sqlalchemy import (
    Date,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base.base_model import TimestampModel
from app.models.base.enums import AssignmentStatus, EventStatus

__all__ = ["Event", "Assignment"]


class Event(TimestampModel):
    """
    Scheduled event with an optional circular geofence.

    A missing center means the event has no geofence configured.
    """

    __tablename__ = "events"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus, name="event_status_enum"),
        nullable=False,
        default=EventStatus.SCHEDULED,
        index=True,
    )

    # Schedule
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    check_in_time: Mapped[time] = mapped_column(Time, nullable=False)
    check_out_time: Mapped[time] = mapped_column(Time, nullable=False)
    late_threshold_minutes: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Grace window override in minutes",
    )

    # Geofence
    latitude: Mapped[Optional[float]] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=True)
    geofence_radius: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Geofence radius in meters",
    )

    supervisor_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    def runs_on(self, day: date) -> bool:
        """Whether the event is scheduled on ``day``."""
        end = self.end_date or self.start_date
        return self.start_date <= day <= end


class Assignment(TimestampModel):
    """Links an agent to an event they are scheduled to work."""

    __tablename__ = "assignments"
    __table_args__ = (
        UniqueConstraint("agent_id", "event_id", name="uq_assignment_agent_event"),
    )

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
    status: Mapped[AssignmentStatus] = mapped_column(
        Enum(AssignmentStatus, name="assignment_status_enum"),
        nullable=False,
        default=AssignmentStatus.PENDING,
    )
