"""
Database models.

Importing this package registers every table on ``Base.metadata``.
"""

from app.models.base import Base
from app.models.user import User
from app.models.event import Assignment, Event
from app.models.attendance import AttendanceRecord
from app.models.tracking import FraudSignal, LocationSample

__all__ = [
    "Base",
    "User",
    "Event",
    "Assignment",
    "AttendanceRecord",
    "LocationSample",
    "FraudSignal",
]
