"""
SocialHub Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers, routers and the
       external clients; uvicorn serves the module-level `app`
       (uvicorn socialhub.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:   Request ID → Logging → GZip → CORS        │
    │                                                          │
    │  Routers (/api):  users · auth · posts · comments ·      │
    │                   notifications · google · health        │
    │                                                          │
    │  app.state:    mirror (MirrorSink) · drive (DriveService)│
    │                                                          │
    │  Exception Handlers:                                     │
    │    ValidationError / RequestValidationError → 400        │
    │    AuthenticationError → 401 · PermissionDenied → 403    │
    │    NotFoundError → 404 · everything else → 500           │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check
    Shutdown: wait for pending mirror writes, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from socialhub import __version__
from socialhub.config import Settings, settings
from socialhub.database import dispose_engine
from socialhub.exceptions import (
    AuthenticationError,
    DatabaseError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    SocialHubError,
    ValidationError,
)
from socialhub.middleware.logging import RequestLoggingMiddleware
from socialhub.middleware.request_id import RequestIDMiddleware, request_id_var
from socialhub.routes import auth, comments, google, health, notifications, posts, users
from socialhub.services.drive_service import DriveService, GoogleDriveService
from socialhub.services.mirror import MirrorSink, NullTabularStore, TabularStore
from socialhub.services.sheets_store import SheetsTabularStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configures the root logger once, before anything else logs.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Chatty third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# External Clients
# ══════════════════════════════════════════════════════════════════════════

def build_mirror(config: Settings) -> MirrorSink:
    """Sheets-backed mirror when a spreadsheet is configured, no-op otherwise."""
    store: TabularStore
    if config.mirror_enabled:
        store = SheetsTabularStore(
            spreadsheet_id=config.google_spreadsheet_id,
            service_account_info=config.service_account_info(),
        )
    else:
        store = NullTabularStore()
    return MirrorSink(store)


def build_drive(config: Settings) -> DriveService:
    return GoogleDriveService(
        client_id=config.google_client_id,
        client_secret=config.google_client_secret,
        redirect_uri=config.google_redirect_uri,
        folder_name=config.google_drive_folder,
    )


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("SocialHub Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and non-drive features still work
        logger.error("Configuration error: %s", str(e))

    logger.info("Spreadsheet mirror: %s", "enabled" if app.state.mirror.enabled else "disabled")
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("SocialHub Backend shutting down...")
    await app.state.mirror.drain()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int, error: str, message: str, details: Optional[dict] = None
) -> JSONResponse:
    content = {"error": error, "message": message, "requestId": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exceptions to the JSON error body {error, message, details?, requestId}.

    Handler hierarchy:
        ValidationError         → 400
        RequestValidationError  → 400 (schema-level failures)
        AuthenticationError     → 401
        PermissionDeniedError   → 403 (context echoed as details)
        NotFoundError           → 404
        ExternalServiceError    → 500
        DatabaseError           → 500 (generic message)
        SocialHubError          → 500
        Exception               → 500 (stack trace logged, never returned)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return _error_response(
            400,
            "validation_error",
            message,
            {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]},
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, "authentication_error", exc.message)

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.info("[%s] Permission denied: %s", request_id_var.get(""), exc.message)
        return _error_response(403, "permission_denied", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(ExternalServiceError)
    async def handle_external_service_error(request: Request, exc: ExternalServiceError):
        logger.error(
            "[%s] External service error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(500, "external_service_error", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context
        )
        return _error_response(
            500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(SocialHubError)
    async def handle_application_error(request: Request, exc: SocialHubError):
        logger.error("[%s] Application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    mirror: Optional[MirrorSink] = None,
    drive: Optional[DriveService] = None,
) -> FastAPI:
    """
    Assembles the application.

    Args:
        mirror: Mirror sink to use instead of the one built from settings
        drive:  Drive client to use instead of the one built from settings
    """
    app = FastAPI(
        title="SocialHub API",
        description=(
            "Social media backend: accounts, posts with Google Drive media, comments, "
            "follows and notifications."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Per-app clients, read by the dependencies in socialhub/dependencies.py
    app.state.mirror = mirror or build_mirror(settings)
    app.state.drive = drive or build_drive(settings)

    # ── Middleware ────────────────────────────────────────────────────────
    # Executes in reverse order of addition: Request ID runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(comments.router)
    app.include_router(notifications.router)
    app.include_router(google.router)
    app.include_router(health.router)

    return app


app = create_app()
