# app/core/middleware/__init__.py
"""
Core middleware registration for the FastAPI application.
"""
from fastapi import FastAPI, Request
from typing import Optional

from app.core.logging import get_logger
from app.core.middleware.error_handling import register_exception_handlers
from app.core.middleware.request_context import RequestIDMiddleware, TimingMiddleware

logger = get_logger(__name__)


def register_middlewares(app: FastAPI) -> None:
    """
    Register all core middlewares to the FastAPI application.

    Middlewares are registered in reverse order of execution (LIFO):
    the request ID is assigned first, so timing logs carry it.
    """
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    logger.info(
        "Core middlewares registered successfully",
        extra={"middlewares": ["RequestIDMiddleware", "TimingMiddleware"]},
    )


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


__all__ = [
    "RequestIDMiddleware",
    "TimingMiddleware",
    "register_middlewares",
    "register_exception_handlers",
    "get_request_id",
]
