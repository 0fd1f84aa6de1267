"""
FastAPI application for the practicum backend.

This is the HTTP API the admin panel and the student portal talk to.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from practicum.api.cycles import router as cycles_router
from practicum.api.student import router as student_router
from practicum.auth.routes import router as auth_router
from practicum.config import Settings, configure_logging, get_settings
from practicum.core.errors import AppError
from practicum.integrations.sentry import capture_exception, init_sentry
from practicum.services.container import ServiceContainer, build_services

logger = logging.getLogger(__name__)


# =============================================================================
# Error Handling
# =============================================================================


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a caller-facing rejection as `{"error": kind, "message": ...}`."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    capture_exception(exc, path=request.url.path, method=request.method)
    return JSONResponse(
        status_code=500,
        content={"error": "InternalError", "message": "Internal server error"},
    )


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    settings: Settings | None = None,
    services: ServiceContainer | None = None,
) -> FastAPI:
    """
    Build the application.

    Tests pass their own settings (and optionally a prebuilt container);
    otherwise everything comes from the environment.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize and cleanup app resources."""
        configure_logging(settings)

        if init_sentry(settings):
            logger.info("Sentry error tracking enabled")

        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(settings)

        logger.info("Practicum API starting in %s mode", settings.environment)
        yield
        logger.info("Practicum API shutting down")

    app = FastAPI(
        title="Practicum API",
        description="Administration API for the student internship program",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers
    app.include_router(auth_router)
    app.include_router(cycles_router)
    app.include_router(student_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "practicum-api"}

    return app
