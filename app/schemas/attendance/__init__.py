"""
Attendance schemas package.
"""

from app.schemas.attendance.attendance_record import (
    AttendanceCorrectionRequest,
    AttendanceListResponse,
    AttendanceResponse,
    AttendanceStatsResponse,
    CheckInRequest,
    CheckInResponse,
    CheckOutRequest,
    DeviceInfo,
    GeofenceResult,
    MarkAbsentRequest,
    TodayStatusResponse,
)

__all__ = [
    "AttendanceCorrectionRequest",
    "AttendanceListResponse",
    "AttendanceResponse",
    "AttendanceStatsResponse",
    "CheckInRequest",
    "CheckInResponse",
    "CheckOutRequest",
    "DeviceInfo",
    "GeofenceResult",
    "MarkAbsentRequest",
    "TodayStatusResponse",
]
