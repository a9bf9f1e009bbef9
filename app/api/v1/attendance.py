# app/api/v1/attendance.py
"""Attendance endpoints: check-in/out, absence, corrections and queries."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import deps
from app.models.base.enums import AttendanceStatus
from app.schemas.attendance import (
    AttendanceCorrectionRequest,
    AttendanceListResponse,
    AttendanceResponse,
    AttendanceStatsResponse,
    CheckInRequest,
    CheckInResponse,
    CheckOutRequest,
    MarkAbsentRequest,
    TodayStatusResponse,
)
from app.services.attendance import AttendanceQueryService, AttendanceRegistry
from app.services.common.permissions import Principal

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post(
    "/check-in",
    response_model=CheckInResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Check in to an event, for yourself or on behalf of an agent",
)
def check_in(
    payload: CheckInRequest,
    principal: Principal = Depends(deps.get_current_principal),
    registry: AttendanceRegistry = Depends(deps.get_attendance_registry),
) -> CheckInResponse:
    return registry.check_in(principal, payload)


@router.post("/absent", response_model=AttendanceResponse, status_code=status.HTTP_201_CREATED)
def mark_absent(
    payload: MarkAbsentRequest,
    principal: Principal = Depends(deps.get_current_principal),
    registry: AttendanceRegistry = Depends(deps.get_attendance_registry),
) -> AttendanceResponse:
    return registry.mark_absent(principal, payload)


@router.get("", response_model=AttendanceListResponse)
def list_attendance(
    agent_id: Optional[str] = Query(None, alias="agentId"),
    event_id: Optional[str] = Query(None, alias="eventId"),
    attendance_status: Optional[AttendanceStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    principal: Principal = Depends(deps.get_current_principal),
    service: AttendanceQueryService = Depends(deps.get_attendance_query_service),
) -> AttendanceListResponse:
    return service.list_attendance(
        principal,
        agent_id=agent_id,
        event_id=event_id,
        status=attendance_status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )


@router.get("/stats", response_model=AttendanceStatsResponse)
def attendance_stats(
    agent_id: Optional[str] = Query(None, alias="agentId"),
    event_id: Optional[str] = Query(None, alias="eventId"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    principal: Principal = Depends(deps.get_current_principal),
    service: AttendanceQueryService = Depends(deps.get_attendance_query_service),
) -> AttendanceStatsResponse:
    return service.attendance_stats(principal, agent_id, event_id, date_from, date_to)


@router.get("/today/{event_id}", response_model=TodayStatusResponse)
def today_status(
    event_id: str,
    principal: Principal = Depends(deps.get_current_principal),
    service: AttendanceQueryService = Depends(deps.get_attendance_query_service),
) -> TodayStatusResponse:
    return service.today_status(principal, event_id)


@router.get("/{attendance_id}", response_model=AttendanceResponse)
def get_attendance(
    attendance_id: str,
    principal: Principal = Depends(deps.get_current_principal),
    service: AttendanceQueryService = Depends(deps.get_attendance_query_service),
) -> AttendanceResponse:
    return service.get_attendance(principal, attendance_id)


@router.post("/{attendance_id}/check-out", response_model=AttendanceResponse)
def check_out(
    attendance_id: str,
    payload: CheckOutRequest,
    principal: Principal = Depends(deps.get_current_principal),
    registry: AttendanceRegistry = Depends(deps.get_attendance_registry),
) -> AttendanceResponse:
    return registry.check_out(principal, attendance_id, payload)


@router.patch("/{attendance_id}", response_model=AttendanceResponse, summary="Manual correction by staff")
def correct_attendance(
    attendance_id: str,
    payload: AttendanceCorrectionRequest,
    principal: Principal = Depends(deps.get_current_principal),
    registry: AttendanceRegistry = Depends(deps.get_attendance_registry),
) -> AttendanceResponse:
    return registry.correct_attendance(principal, attendance_id, payload)
