from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import router as api_v1_router
from app.config.logging import setup_logging
from app.config.settings import Settings, get_settings
from app.core.events import EventBroadcaster
from app.core.logging import get_logger
from app.core.middleware import register_exception_handlers, register_middlewares
from app.db.init_db import init_db

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, init_database: bool = True) -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Configures title, version, debug mode and logging from Settings.
    - Registers CORS, core middleware, and exception handlers.
    - Owns the realtime broadcaster for the process.
    - Includes the versioned API router under API_V1_STR.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.broadcaster = EventBroadcaster()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS or ["*"],
        allow_credentials=settings.CORS_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register shared core middlewares (request ID, timing)
    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    @app.get("/health", tags=["health"])
    def health() -> dict:
        return {
            "status": "ok",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "realtime": app.state.broadcaster.stats(),
        }

    if init_database and settings.AUTO_CREATE_TABLES:
        @app.on_event("startup")
        async def on_startup() -> None:
            # Production schemas are managed outside the service
            init_db()

    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} initialized ({settings.ENVIRONMENT})")
    return app


app = create_app()
