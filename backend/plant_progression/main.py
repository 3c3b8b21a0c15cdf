"""
Plant Progression Backend — FastAPI Application Factory
========================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, middleware, exception handlers, routes, and
       lifecycle management in one place.
How:   create_app(settings) builds every collaborator from one Settings object
       and keeps them on app.state; request dependencies read them from there.
Who:   uvicorn (`uvicorn plant_progression.main:create_app --factory`) or the
       `plant-progression` console script (run()).

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                     FastAPI App                         │
    │  Middleware: Request ID → Access Log → GZip → CORS      │
    │                                                         │
    │  Routes:                                                │
    │   /auth/register, /auth/login        (unauthenticated)  │
    │   /api/plants[...]                   (Bearer token)     │
    │   /health                                               │
    │   /uploads/<name>                    (uploaded images)  │
    │   /<anything else>                   (SPA frontend)     │
    │                                                         │
    │  Exception Handlers:                                    │
    │   400 │ 401 │ 403 │ 404 │ 409 │ 500 (JSON error body)   │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → storage dirs → DB ping (exit on failure) → create tables
    Shutdown: dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as SettingsValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from plant_progression import __version__
from plant_progression.config import Settings, get_settings
from plant_progression.database import Database
from plant_progression.exceptions import (
    DatabaseError,
    FileStorageError,
    PlantProgressionError,
)
from plant_progression.middleware.logging import RequestLoggingMiddleware
from plant_progression.middleware.request_id import (
    RequestIDFilter,
    RequestIDMiddleware,
    request_id_var,
)
from plant_progression.routes import auth, frontend, health, plants
from plant_progression.services.credential_service import CredentialService
from plant_progression.services.file_service import FileService
from plant_progression.services.plant_service import PlantService
from plant_progression.services.token_service import TokenService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] plant_progression.access [3f9c1a2b]: GET /api/plants 200 ...
    The request ID comes from RequestIDFilter ("-" outside a request).
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # uvicorn's own access log duplicates RequestLoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def ensure_storage_dirs(settings: Settings) -> None:
    settings.static_root.mkdir(parents=True, exist_ok=True)
    settings.upload_root.mkdir(parents=True, exist_ok=True)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup aborts when the database is unreachable; the process never
    serves without a data layer.
    """
    settings: Settings = app.state.settings
    database: Database = app.state.database

    setup_logging(settings)
    logger.info("Plant Progression backend %s starting up", __version__)
    logger.info("Static dir: %s", settings.static_root)
    logger.info("Upload dir: %s", settings.upload_root)

    try:
        await database.ping()
        await database.create_all()
    except Exception as e:
        logger.critical("Could not connect to the database: %s", e)
        await database.dispose()
        raise RuntimeError("Database unavailable at startup") from e

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("Shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details is not None:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to status codes and the standard error body.

    Handler hierarchy:
        RequestValidationError      → 400 (FastAPI's default would be 422)
        DatabaseError / FileStorageError → 500, generic message, details logged
        PlantProgressionError       → its status_code (400/401/403/404/409)
        StarletteHTTPException      → its status (unknown route 404, 405, ...)
        Exception                   → 500, stack trace logged
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors(), exclude={"input", "ctx", "url"})
        logger.info("Request validation failed: %s", errors)
        return JSONResponse(
            status_code=400,
            content=_error_body("bad_request", "Invalid or missing request fields", errors),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("File storage error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_error", exc.message),
        )

    @app.exception_handler(PlantProgressionError)
    async def handle_app_error(request: Request, exc: PlantProgressionError):
        if exc.status_code >= 500:
            logger.error("%s: %s | Context: %s", type(exc).__name__, exc.message, exc.context)
        else:
            logger.info("%s: %s | Context: %s", type(exc).__name__, exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        codes = {404: "not_found", 405: "method_not_allowed"}
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(codes.get(exc.status_code, "http_error"), str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_error", "An unexpected error occurred. Please try again."),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build a fully wired application.

    Args:
        settings: Explicit configuration (tests pass their own). Defaults to
                  get_settings(), which fails when JWT_SECRET is missing.
    """
    settings = settings or get_settings()
    ensure_storage_dirs(settings)

    app = FastAPI(
        title="Plant Progression API",
        description="Track plants and their photo timelines.",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Collaborators (one instance per app) ──────────────────────────────
    file_service = FileService(settings)
    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.token_service = TokenService(settings)
    app.state.credential_service = CredentialService()
    app.state.file_service = file_service
    app.state.plant_service = PlantService(file_service)

    # ── Middleware (last added = first to execute) ────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes (frontend catch-all must stay last) ────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(plants.router)
    app.mount("/uploads", StaticFiles(directory=settings.upload_root), name="uploads")
    app.include_router(frontend.router)

    return app


def run() -> None:
    """Console entry point: validate config, then serve with uvicorn."""
    import uvicorn

    try:
        settings = get_settings()
    except SettingsValidationError as e:
        # Logging isn't configured yet; stderr is all we have
        print(f"Configuration error:\n{e}", file=sys.stderr)
        sys.exit(1)

    uvicorn.run(
        create_app(settings),
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
