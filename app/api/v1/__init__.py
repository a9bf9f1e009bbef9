# app/api/v1/__init__.py
"""
API v1 package.

The router composition lives in `app.api.v1.router`.
"""
from app.api.v1.router import router

__all__ = ["router"]
