"""
Database enums mirroring schema enums.

Provides SQLAlchemy-compatible enum definitions that match
the Pydantic schema enums for consistency.
"""

import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    AGENT = "agent"


class AttendanceStatus(str, enum.Enum):
    """Attendance status for an agent at an event on a given day."""
    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
    EXCUSED = "excused"
    EARLY_DEPARTURE = "early_departure"


class CheckInMethod(str, enum.Enum):
    """How presence was proven at check-in or check-out."""
    FACIAL = "facial"
    QRCODE = "qrcode"
    MANUAL = "manual"


class CheckInSource(str, enum.Enum):
    """Which kind of actor performed the check-in."""
    SELF = "self"
    ADMIN = "admin"
    SUPERVISOR = "supervisor"


class AssignmentStatus(str, enum.Enum):
    """Scheduling state of an agent assignment."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class EventStatus(str, enum.Enum):
    """Lifecycle state of a scheduled event."""
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FraudKind(str, enum.Enum):
    """Kinds of integrity signals raised over position reports."""
    GPS_SPOOFING = "gps_spoofing"
    OUT_OF_ZONE = "out_of_zone"
    MOCK_LOCATION = "mock_location"


class FraudSeverity(str, enum.Enum):
    """Severity grades for integrity signals."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FraudAction(str, enum.Enum):
    """Follow-up grade assigned from a user's recent signal history."""
    LOGGED = "logged"
    WARNED = "warned"
    ESCALATED = "escalated"
