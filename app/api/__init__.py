# app/api/__init__.py
"""
HTTP and websocket surface.

    from app.api import api_router
    app.include_router(api_router, prefix=settings.API_V1_STR)
"""
from app.api.v1.router import router as api_router

__all__ = ["api_router"]
