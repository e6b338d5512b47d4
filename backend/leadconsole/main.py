"""
Lead Console Backend - FastAPI Application Entry Point

Operations console for a lead-generation business: inbound lead intake,
staff triage, ad-spend ledger, ROAS and settlement analytics, all gated
by a role directory.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .core.config import settings
from .core.database import engine, SessionLocal
from .core.exceptions import ConsoleError, InvalidArgument, Internal
from .core.log_config import configure_logging
from .api import (
    health_router,
    roles_router,
    leads_router,
    analytics_router,
    settlement_router,
    audit_router,
)
from .services.role_directory import RoleDirectoryRepository


logger = logging.getLogger(__name__)


# =============================================================================
# Performance Monitoring Middleware
# =============================================================================

class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """
    Middleware to track API response times and log slow requests.

    Logs warnings for requests exceeding 500ms.
    Adds X-Response-Time header to all responses.
    """

    SLOW_REQUEST_THRESHOLD_MS = 500

    async def dispatch(self, request: Request, call_next):
        """Process request with timing."""
        start_time = time.time()

        response = await call_next(request)

        process_time_ms = (time.time() - start_time) * 1000
        response.headers["X-Response-Time"] = f"{process_time_ms:.2f}ms"

        if process_time_ms > self.SLOW_REQUEST_THRESHOLD_MS:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {process_time_ms:.2f}ms"
            )

        if settings.debug:
            logger.debug(
                f"{request.method} {request.url.path} - {process_time_ms:.2f}ms"
            )

        return response


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Warns about insecure defaults and an empty role directory at startup.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    if settings.identity_token_secret == "dev-identity-secret-change-in-production":
        if settings.is_production:
            raise RuntimeError("IDENTITY_TOKEN_SECRET still uses the development default")
        logger.warning("Dev-default IDENTITY_TOKEN_SECRET in use; change it before deploying")

    # The first super role is granted by scripts/seed_super_admin.py
    try:
        db = SessionLocal()
        try:
            if not RoleDirectoryRepository(db).get().roles:
                logger.warning(
                    "Role directory is empty. Grant the first super role with: "
                    "python backend/scripts/seed_super_admin.py --email you@example.com"
                )
        finally:
            db.close()
    except Exception as e:
        logger.warning(f"Could not read the role directory at startup: {e}")

    yield

    logger.info("Shutting down...")
    engine.dispose()


# =============================================================================
# Exception Handlers
# =============================================================================

async def console_error_handler(request: Request, exc: ConsoleError) -> JSONResponse:
    """Render taxonomy errors with their stable kind and HTTP status."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query validation failures are invalid-argument errors."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    error = InvalidArgument("Invalid request.", {"errors": errors})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unhandled exceptions.

    Logs the error and returns a generic message (never expose internals).
    """
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}")
    error = Internal("An unexpected error occurred. Please try again later.")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# =============================================================================
# Application Factory
# =============================================================================

def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(settings.log_level, json_format=settings.log_format.lower() == "json")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Lead intake, role-gated triage, and ad-spend analytics API.",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Add GZip compression middleware (compress responses > 1KB)
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(PerformanceMonitoringMiddleware)

    # The public lead form may be embedded on external sites, so "*" is allowed
    cors_origins = settings.cors_origins_list
    allow_all = "*" in cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else cors_origins,
        allow_credentials=not allow_all,  # credentials not compatible with wildcard
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Response-Time"],
    )

    app.add_exception_handler(ConsoleError, console_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Register routers
    app.include_router(health_router)
    app.include_router(roles_router)
    app.include_router(leads_router)
    app.include_router(analytics_router)
    app.include_router(settlement_router)
    app.include_router(audit_router)

    return app


app = create_application()


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict:
    """
    Root endpoint returning API information.
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs": "/docs" if settings.is_development else "disabled",
    }


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "leadconsole.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
