"""
Task Graph API Server

Entry point for the FastAPI application.
"""

from typing import Optional

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import engine, get_session
from app.core.errors import register_exception_handlers
from app.core.locking import make_write_gate
from app.core.logging_config import configure_logging
from app.api.v1 import router as api_v1_router

log = structlog.get_logger()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Task Graph",
        description="Task dependency graph engine: blocked-by edges, cycle prevention, readiness.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # One write gate per application instance
    app.state.write_gate = make_write_gate(settings.database_url)

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-User-Id"],
    )

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check(session: AsyncSession = Depends(get_session)):
        """Readiness check endpoint: verifies the database answers."""
        try:
            await session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            log.warning("readiness.database_unavailable", error=str(exc))
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("Task Graph starting", gate=type(app.state.write_gate).__name__)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Task Graph shutting down")
        await engine.dispose()

    return app


app = create_app()
