"""
Location sample model.

Append-only position history, ordered per user by ``recorded_at`` (the
device timestamp), never by insertion order.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base.base_model import TimestampModel

__all__ = ["LocationSample"]


class LocationSample(TimestampModel):
    """Single position report from an agent device."""

    __tablename__ = "location_samples"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("events.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    latitude: Mapped[float] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=False)
    longitude: Mapped[float] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=False)
    accuracy: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Reported horizontal accuracy in meters",
    )
    speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    heading: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    battery_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_mock_location: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    is_within_geofence: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    distance_from_event: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_location_samples_user_recorded", "user_id", "recorded_at"),
    )
