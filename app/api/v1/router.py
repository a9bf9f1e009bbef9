"""
API v1 Router - Main Entry Point
Aggregates all v1 API endpoints for the attendance integrity service
"""
from fastapi import APIRouter

from app.api.v1 import attendance, realtime, tracking

# Create main API v1 router with proper configuration
router = APIRouter(
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        500: {"description": "Internal Server Error"},
    }
)

router.include_router(attendance.router)
router.include_router(tracking.router)
router.include_router(realtime.router)
