"""
Location tracking and fraud signal schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.models.base.enums import FraudAction, FraudKind, FraudSeverity
from app.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = [
    "LocationReportRequest",
    "IntegrityAlert",
    "LocationReportResponse",
    "LocationSampleResponse",
    "LocationHistoryStats",
    "LocationHistoryResponse",
    "LivePosition",
    "LivePositionsResponse",
    "ValidatePositionRequest",
    "ValidatePositionResponse",
    "FraudSignalResponse",
    "ResolveSignalRequest",
    "EmergencyAlertRequest",
    "EmergencyAlertResponse",
]


class LocationReportRequest(BaseSchema):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0, description="Horizontal accuracy in meters")
    speed: Optional[float] = Field(None, ge=0, description="Device reported speed in m/s")
    heading: Optional[float] = Field(None, ge=0, le=360)
    battery_level: Optional[int] = Field(None, alias="batteryLevel", ge=0, le=100)
    is_mock_location: bool = Field(False, alias="isMockLocation")
    event_id: Optional[str] = Field(None, alias="eventId")


class IntegrityAlert(BaseSchema):
    """Advisory anomaly attached to a location report."""

    type: str
    kind: FraudKind
    severity: FraudSeverity
    message: str
    signal_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class LocationReportResponse(BaseSchema):
    sample_id: str
    is_within_geofence: Optional[bool] = None
    distance_from_event: Optional[int] = None
    alerts: List[IntegrityAlert] = Field(default_factory=list)


class LocationSampleResponse(BaseResponseSchema):
    user_id: str
    event_id: Optional[str] = None
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    battery_level: Optional[int] = None
    is_mock_location: bool = False
    recorded_at: datetime
    is_within_geofence: Optional[bool] = None
    distance_from_event: Optional[int] = None


class LocationHistoryStats(BaseSchema):
    total_points: int
    out_of_zone_count: int
    avg_accuracy: Optional[float] = None
    max_speed: Optional[float] = None
    total_distance_m: int


class LocationHistoryResponse(BaseSchema):
    user_id: str
    samples: List[LocationSampleResponse]
    stats: LocationHistoryStats


class LivePosition(BaseSchema):
    user_id: str
    name: Optional[str] = None
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    battery_level: Optional[int] = None
    recorded_at: datetime
    is_within_geofence: Optional[bool] = None
    distance_from_event: Optional[int] = None
    is_online: bool


class LivePositionsResponse(BaseSchema):
    event_id: str
    positions: List[LivePosition]
    online_count: int
    out_of_zone_count: int


class ValidatePositionRequest(BaseSchema):
    event_id: str = Field(..., alias="eventId", min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ValidatePositionResponse(BaseSchema):
    event_id: str
    configured: bool
    is_within_geofence: Optional[bool] = None
    distance_meters: Optional[int] = None
    radius_meters: Optional[int] = None
    bearing: Optional[float] = None
    direction: Optional[str] = None
    message: str


class FraudSignalResponse(BaseResponseSchema):
    user_id: str
    event_id: Optional[str] = None
    kind: FraudKind
    severity: FraudSeverity
    action_taken: FraudAction
    details: Dict[str, Any] = Field(default_factory=dict)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution: Optional[str] = None


class ResolveSignalRequest(BaseSchema):
    resolution: str = Field(..., min_length=1, max_length=2000)


class EmergencyAlertRequest(BaseSchema):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    event_id: Optional[str] = Field(None, alias="eventId")
    message: Optional[str] = Field(None, max_length=1000)


class EmergencyAlertResponse(BaseSchema):
    alert_id: str
    delivered_to: int
    notified: int
    raised_at: datetime
