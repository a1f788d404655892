"""FastAPI application factory for the ScanWizard API."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from scanwizard import __version__
from scanwizard.api.middleware import (
    RequestBodyLimitMiddleware,
    RequestTimingMiddleware,
    SecurityHeadersMiddleware,
)
from scanwizard.api.routers import filenames, sessions, validate
from scanwizard.api.schemas import HealthResponse
from scanwizard.parser.loader import TrackedLoader
from scanwizard.service.session_manager import SessionManager
from scanwizard.settings import Settings
from scanwizard.validator.pipeline import WorkflowValidator

logger = logging.getLogger("scanwizard.api")


def build_session_manager(settings: Settings) -> SessionManager:
    """Construct a SessionManager from settings (not yet started)."""
    return SessionManager(
        idle_timeout=settings.session_idle_timeout_seconds,
        max_lifetime=settings.session_max_lifetime_seconds,
        warning_before=settings.session_warning_seconds,
        check_interval=settings.session_check_interval,
        hourly_interval=settings.session_hourly_check_interval,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Start/stop the SessionManager alongside the application."""
    settings: Settings = app.state.settings
    mgr = build_session_manager(settings)
    mgr.start()
    app.state.session_manager = mgr
    logger.info("Session manager started (idle timeout %ss)", settings.session_idle_timeout_seconds)
    try:
        yield
    finally:
        mgr.stop()
        app.state.session_manager = None


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="ScanWizard",
        description=(
            "Validates GitHub Actions workflows that run Black Duck security scans, "
            "checks workflow filenames and manages wizard sessions."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_manager = None
    app.state.workflow_validator = WorkflowValidator(
        loader=TrackedLoader(max_document_size=settings.max_document_size)
    )

    # Middleware (last added runs first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestBodyLimitMiddleware)
    app.add_middleware(RequestTimingMiddleware)

    app.include_router(validate.router, prefix="/validate", tags=["validate"])
    app.include_router(filenames.router, prefix="/filenames", tags=["filenames"])
    app.include_router(sessions.router, prefix="/sessions", tags=["sessions"])

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health(request: Request) -> HealthResponse:
        mgr: SessionManager | None = request.app.state.session_manager
        return HealthResponse(
            status="ok",
            version=__version__,
            active_sessions=mgr.active_count if mgr is not None else 0,
        )

    return app


def main() -> None:
    """Run the REST API server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger.info(
        "ScanWizard API Server v%s starting (host=%s, port=%d)",
        __version__, settings.api_server_host, settings.effective_port,
    )

    uvicorn.run(
        "scanwizard.api.app:create_app",
        factory=True,
        host=settings.api_server_host,
        port=settings.effective_port,
        log_level=settings.log_level.lower(),
    )
