"""
Attendance service layer.

Provides business logic for:
- Check-in/out with geofence, lateness and identity evaluation
- Absence marking and manual corrections
- Single-record enforcement across self, supervisor and admin actors
- Listing, today's status and statistics
"""

from app.services.attendance.attendance_query_service import AttendanceQueryService
from app.services.attendance.attendance_registry import AttendanceRegistry, worked_hours
from app.services.attendance.duplicate_resolver import Attribution, DuplicateResolver, classify_source

__all__ = [
    "AttendanceRegistry",
    "AttendanceQueryService",
    "DuplicateResolver",
    "Attribution",
    "classify_source",
    "worked_hours",
]
