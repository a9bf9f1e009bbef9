"""
Fraud signal model.

Raised by the movement integrity monitor; only the resolve action
mutates a signal after creation.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base.base_model import TimestampModel
from app.models.base.enums import FraudAction, FraudKind, FraudSeverity

__all__ = ["FraudSignal"]


class FraudSignal(TimestampModel):
    """Integrity anomaly detected over a user's position reports."""

    __tablename__ = "fraud_signals"

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
    kind: Mapped[FraudKind] = mapped_column(
        Enum(FraudKind, name="fraud_kind_enum"),
        nullable=False,
        index=True,
    )
    severity: Mapped[FraudSeverity] = mapped_column(
        Enum(FraudSeverity, name="fraud_severity_enum"),
        nullable=False,
        default=FraudSeverity.MEDIUM,
    )
    action_taken: Mapped[FraudAction] = mapped_column(
        Enum(FraudAction, name="fraud_action_enum"),
        nullable=False,
        default=FraudAction.LOGGED,
    )
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    latitude: Mapped[Optional[float]] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=True)

    resolved_by: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_fraud_signals_user_created", "user_id", "created_at"),
    )

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None
