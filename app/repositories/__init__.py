"""
Repositories package.
"""

from app.repositories.base import BaseRepository
from app.repositories.attendance import AttendanceRecordRepository
from app.repositories.event import AssignmentRepository, EventRepository
from app.repositories.tracking import FraudSignalRepository, LocationSampleRepository
from app.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "AttendanceRecordRepository",
    "AssignmentRepository",
    "EventRepository",
    "FraudSignalRepository",
    "LocationSampleRepository",
    "UserRepository",
]
