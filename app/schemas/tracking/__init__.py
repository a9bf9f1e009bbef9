"""
Tracking schemas package.
"""

from app.schemas.tracking.tracking import (
    EmergencyAlertRequest,
    EmergencyAlertResponse,
    FraudSignalResponse,
    IntegrityAlert,
    LivePosition,
    LivePositionsResponse,
    LocationHistoryResponse,
    LocationHistoryStats,
    LocationReportRequest,
    LocationReportResponse,
    LocationSampleResponse,
    ResolveSignalRequest,
    ValidatePositionRequest,
    ValidatePositionResponse,
)

__all__ = [
    "EmergencyAlertRequest",
    "EmergencyAlertResponse",
    "FraudSignalResponse",
    "IntegrityAlert",
    "LivePosition",
    "LivePositionsResponse",
    "LocationHistoryResponse",
    "LocationHistoryStats",
    "LocationReportRequest",
    "LocationReportResponse",
    "LocationSampleResponse",
    "ResolveSignalRequest",
    "ValidatePositionRequest",
    "ValidatePositionResponse",
]
