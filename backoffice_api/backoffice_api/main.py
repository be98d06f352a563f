"""FastAPI application entry-point for the back-office API."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from backoffice_core.errors import BackofficeError, TokenRejectedError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backoffice_api import __version__
from backoffice_api.config import APISettings, PlatformEnv, load_api_settings
from backoffice_api.dependencies import (
    dispose_blob_store,
    dispose_engine,
    dispose_mailer,
    init_blob_store,
    init_engine,
    init_mailer,
)
from backoffice_api.middleware.cors import PortalCORSMiddleware
from backoffice_api.middleware.errors import UnhandledErrorMiddleware
from backoffice_api.middleware.logging import RequestLoggingMiddleware
from backoffice_api.middleware.trace_context import TraceContextMiddleware, TraceLoggingFilter
from backoffice_api.routers import customer_auth, health, invoices

logger = logging.getLogger(__name__)


def configure_logging(settings: APISettings) -> None:
    """Route the root logger through the JSON formatter when enabled."""
    if not settings.structured_logging:
        return

    from backoffice_api.middleware.json_formatter import JSONFormatter

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    handler.addFilter(TraceLoggingFilter())
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    logger.info("Structured JSON logging enabled")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup / shutdown lifecycle.

    On startup:
    - Configure logging.
    - Initialise the async database engine and, in dev or SQLite mode,
      create missing tables (production uses Alembic migrations).
    - Initialise the blob store and the mailer.

    On shutdown the three are disposed in reverse order.
    """
    settings: APISettings = load_api_settings()
    configure_logging(settings)

    engine = init_engine(settings)
    is_local = settings.database_url.startswith("sqlite")
    logger.info(
        "Database engine initialised (%s, %s)",
        settings.database_url[:40] + "...",
        "local" if is_local else "postgres",
    )

    if settings.platform_env == PlatformEnv.DEV or is_local:
        from backoffice_core.state.tables import Base

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured (%s)", "local SQLite" if is_local else "dev auto-migration")

    init_blob_store(settings)
    logger.info("Blob store initialised (%s)", settings.blob_backend.value)

    mailer = init_mailer(settings)
    if not mailer.enabled:
        logger.warning("Brevo API key not configured; login links will not be emailed")

    yield

    await dispose_mailer()
    await dispose_blob_store()
    await dispose_engine()
    logger.info("Application shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Construct and configure the FastAPI application."""
    settings = load_api_settings()

    app = FastAPI(
        title="Back-office API",
        description="Customer magic-link login and invoice PDF generation.",
        version=__version__,
        lifespan=lifespan,
    )

    # -- Middleware (last added is outermost) ---------------------------------

    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(PortalCORSMiddleware, allowed_origins=settings.cors_origins)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(TraceContextMiddleware)

    # -- Routers -------------------------------------------------------------

    app.include_router(health.router, prefix="/api/v1")
    app.include_router(customer_auth.router, prefix="/api/v1")
    app.include_router(invoices.router, prefix="/api/v1")

    # -- Exception handlers --------------------------------------------------

    @app.exception_handler(BackofficeError)
    async def backoffice_error_handler(request: Request, exc: BackofficeError) -> JSONResponse:
        if isinstance(exc, TokenRejectedError):
            logger.info("Token rejected on %s: %s", request.url.path, type(exc).__name__)
        else:
            logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        logger.warning("Validation error on %s: %s", request.url.path, message)
        return _error(400, message)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.warning("ValueError on %s: %s", request.url.path, exc)
        return _error(400, "Invalid request")

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error: %s", exc, exc_info=True)
        return _error(400, "Internal database error")

    return app


# Module-level application instance used by ``uvicorn backoffice_api.main:app``.
app = create_app()
