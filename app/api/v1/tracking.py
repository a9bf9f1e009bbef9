# app/api/v1/tracking.py
"""Location reporting, history, live positions, fraud signals and emergencies."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import deps
from app.models.base.enums import FraudKind
from app.schemas.tracking import (
    EmergencyAlertRequest,
    EmergencyAlertResponse,
    FraudSignalResponse,
    LivePositionsResponse,
    LocationHistoryResponse,
    LocationReportRequest,
    LocationReportResponse,
    ResolveSignalRequest,
    ValidatePositionRequest,
    ValidatePositionResponse,
)
from app.services.common.permissions import Principal
from app.services.tracking import FraudSignalService, MovementIntegrityMonitor, TrackingService

router = APIRouter(prefix="/tracking", tags=["tracking"])


@router.post("/location", response_model=LocationReportResponse)
def report_location(
    payload: LocationReportRequest,
    principal: Principal = Depends(deps.get_current_principal),
    monitor: MovementIntegrityMonitor = Depends(deps.get_movement_monitor),
) -> LocationReportResponse:
    return monitor.record_location(principal, payload)


@router.get("/history/{user_id}", response_model=LocationHistoryResponse)
def location_history(
    user_id: str,
    event_id: Optional[str] = Query(None, alias="eventId"),
    since: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    principal: Principal = Depends(deps.get_current_principal),
    service: TrackingService = Depends(deps.get_tracking_service),
) -> LocationHistoryResponse:
    return service.location_history(principal, user_id, event_id=event_id, since=since, limit=limit)


@router.get("/events/{event_id}/live", response_model=LivePositionsResponse)
def live_positions(
    event_id: str,
    principal: Principal = Depends(deps.get_current_principal),
    service: TrackingService = Depends(deps.get_tracking_service),
) -> LivePositionsResponse:
    return service.live_positions(principal, event_id)


@router.post("/validate", response_model=ValidatePositionResponse, summary="Check a position against an event zone")
def validate_position(
    payload: ValidatePositionRequest,
    principal: Principal = Depends(deps.get_current_principal),
    service: TrackingService = Depends(deps.get_tracking_service),
) -> ValidatePositionResponse:
    return service.validate_position(payload.event_id, payload.latitude, payload.longitude)


@router.get("/alerts", response_model=List[FraudSignalResponse])
def list_fraud_signals(
    user_id: Optional[str] = Query(None, alias="userId"),
    event_id: Optional[str] = Query(None, alias="eventId"),
    kind: Optional[FraudKind] = Query(None),
    resolved: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    principal: Principal = Depends(deps.get_current_principal),
    service: FraudSignalService = Depends(deps.get_fraud_signal_service),
) -> List[FraudSignalResponse]:
    return service.list_signals(principal, user_id=user_id, event_id=event_id, kind=kind, resolved=resolved, limit=limit)


@router.post("/alerts/{signal_id}/resolve", response_model=FraudSignalResponse)
def resolve_fraud_signal(
    signal_id: str,
    payload: ResolveSignalRequest,
    principal: Principal = Depends(deps.get_current_principal),
    service: FraudSignalService = Depends(deps.get_fraud_signal_service),
) -> FraudSignalResponse:
    return service.resolve_signal(principal, signal_id, payload.resolution)


@router.post("/emergency", response_model=EmergencyAlertResponse, status_code=status.HTTP_201_CREATED)
def raise_emergency(
    payload: EmergencyAlertRequest,
    principal: Principal = Depends(deps.get_current_principal),
    service: TrackingService = Depends(deps.get_tracking_service),
) -> EmergencyAlertResponse:
    return service.raise_emergency(principal, payload)
