"""
Attendance request and response schemas.
"""

from datetime import date as Date, datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from app.models.base.enums import AttendanceStatus, CheckInMethod, CheckInSource
from app.schemas.common.base import BaseResponseSchema, BaseSchema, PaginationMeta
from app.utils.datetime_utils import ensure_utc

__all__ = [
    "DeviceInfo",
    "CheckInRequest",
    "CheckOutRequest",
    "MarkAbsentRequest",
    "AttendanceCorrectionRequest",
    "AttendanceResponse",
    "GeofenceResult",
    "CheckInResponse",
    "AttendanceListResponse",
    "TodayStatusResponse",
    "AttendanceStatsResponse",
]


class DeviceInfo(BaseSchema):
    """Client device details sent with check-ins and location reports."""

    platform: Optional[str] = None
    model: Optional[str] = None
    app_version: Optional[str] = Field(None, alias="appVersion")
    is_mock_location: bool = Field(False, alias="isMockLocation")


class CheckInRequest(BaseSchema):
    """
    Check-in submission.

    ``agent_id`` is set only when a supervisor or admin checks in on
    behalf of an agent.
    """

    event_id: str = Field(..., alias="eventId", min_length=1, description="Event being checked into")
    agent_id: Optional[str] = Field(None, alias="agentId", description="Agent override for staff")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    photo: Optional[str] = Field(None, description="Reference to the captured photo")
    method: CheckInMethod = CheckInMethod.FACIAL
    facial_verified: Optional[bool] = Field(None, alias="facialVerified")
    facial_match_score: Optional[float] = Field(None, alias="facialMatchScore", ge=0)
    accuracy: Optional[float] = Field(None, ge=0, description="GPS accuracy in meters")
    device_info: Optional[DeviceInfo] = Field(None, alias="deviceInfo")


class CheckOutRequest(BaseSchema):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    photo: Optional[str] = None
    method: CheckInMethod = CheckInMethod.FACIAL
    notes: Optional[str] = Field(None, max_length=2000)


class MarkAbsentRequest(BaseSchema):
    agent_id: str = Field(..., alias="agentId", min_length=1)
    event_id: str = Field(..., alias="eventId", min_length=1)
    attendance_date: Optional[Date] = Field(None, alias="date", description="Defaults to today")
    notes: Optional[str] = Field(None, max_length=2000)


class AttendanceCorrectionRequest(BaseSchema):
    """Manual correction; only the fields present are changed."""

    status: Optional[AttendanceStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)
    check_in_time: Optional[datetime] = Field(None, alias="checkInTime")
    check_out_time: Optional[datetime] = Field(None, alias="checkOutTime")

    @field_validator("check_out_time")
    @classmethod
    def check_out_after_check_in(cls, v, info):
        check_in = info.data.get("check_in_time")
        if v is not None and check_in is not None and ensure_utc(v) < ensure_utc(check_in):
            raise ValueError("checkOutTime must be after checkInTime")
        return v


class AttendanceResponse(BaseResponseSchema):
    agent_id: str
    event_id: str
    attendance_date: Date
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    check_in_latitude: Optional[float] = None
    check_in_longitude: Optional[float] = None
    check_in_method: CheckInMethod
    checked_in_by: Optional[str] = None
    check_in_source: CheckInSource
    check_out_time: Optional[datetime] = None
    check_out_latitude: Optional[float] = None
    check_out_longitude: Optional[float] = None
    check_out_method: Optional[CheckInMethod] = None
    total_hours: Optional[float] = None
    is_within_geofence: Optional[bool] = None
    distance_from_location: Optional[int] = None
    facial_match_score: Optional[float] = None
    facial_verified: bool = False
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    notes: Optional[str] = None


class GeofenceResult(BaseSchema):
    configured: bool
    is_within_geofence: Optional[bool] = None
    distance_meters: Optional[int] = None
    radius_meters: Optional[int] = None


class CheckInResponse(BaseSchema):
    attendance: AttendanceResponse
    geofence: GeofenceResult
    alerts: List[Dict[str, Any]] = Field(default_factory=list)
    message: str


class AttendanceListResponse(BaseSchema):
    items: List[AttendanceResponse]
    pagination: PaginationMeta


class TodayStatusResponse(BaseSchema):
    checked_in: bool
    checked_out: bool
    attendance: Optional[AttendanceResponse] = None


class AttendanceStatsResponse(BaseSchema):
    total: int
    by_status: Dict[str, int]
    total_hours: float
    within_geofence: int
    outside_geofence: int
    facial_verified: int
    attendance_rate: int
    punctuality_rate: int
    facial_verification_rate: int
