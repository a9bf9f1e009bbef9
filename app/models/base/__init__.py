"""
Base models package.

Provides base classes and enums for all database models.
"""

from app.models.base.base_model import (
    Base,
    BaseModel,
    TimestampModel,
    SoftDeleteModel,
)

from app.models.base.enums import (
    UserRole,
    AttendanceStatus,
    CheckInMethod,
    CheckInSource,
    AssignmentStatus,
    EventStatus,
    FraudKind,
    FraudSeverity,
    FraudAction,
)

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "SoftDeleteModel",
    "UserRole",
    "AttendanceStatus",
    "CheckInMethod",
    "CheckInSource",
    "AssignmentStatus",
    "EventStatus",
    "FraudKind",
    "FraudSeverity",
    "FraudAction",
]
