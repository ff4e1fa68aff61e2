"""
Riddle Server — FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn riddle_server.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware Chain:                                   │
    │  ┌────────────┐ ┌──────────┐ ┌────────────────────┐  │
    │  │ Rate Limit │→│  Req ID  │→│  Logging (req #N)  │  │
    │  └────────────┘ └──────────┘ └────────────────────┘  │
    │                                                      │
    │  Routes:                                             │
    │  ┌──────┐ ┌──────────┐ ┌─────────┐ ┌──────────────┐  │
    │  │ /auth│ │ /players │ │/riddles │ │ / and /health│  │
    │  └──────┘ └──────────┘ └─────────┘ └──────────────┘  │
    │                                                      │
    │  Exception Handlers:                                 │
    │  ┌────────────────────────────────────────────────┐  │
    │  │ RiddleServerError → STATUS_CODES[kind]         │  │
    │  │ RequestValidationError → 400                   │  │
    │  │ unmatched route → 404 | anything else → 500    │  │
    │  └────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (report a missing JWT secret)
    3. Log startup complete

    Shutdown:
    1. Dispose database engine (close all connections)
    2. Log shutdown complete
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from riddle_server import __version__
from riddle_server.config import settings
from riddle_server.database import dispose_engine
from riddle_server.exceptions import ErrorKind, InternalFailureError, RiddleServerError
from riddle_server.middleware.logging import RequestLoggingMiddleware
from riddle_server.middleware.rate_limit import RateLimitMiddleware
from riddle_server.middleware.request_id import RequestIDMiddleware, request_id_var
from riddle_server.routes import auth, health, players, riddles, root

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    What:    Sets up logging with a consistent format across all modules.
    When:    Called once during app startup (before ANY other initialization).

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifecycle: startup and shutdown procedures.

    Code before `yield` runs on startup, code after it on shutdown.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Riddle Server starting up (environment=%s)...", settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Token issuance answers 500 until this is fixed; health stays up
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Riddle Server shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    """
    Correlation ID for the failing request.

    The catch-all handler runs in ServerErrorMiddleware, outside
    RequestIDMiddleware's context, so the ContextVar is empty there.
    request.state and the raw header are checked as well.
    """
    return (
        request_id_var.get("")
        or getattr(request.state, "request_id", "")
        or request.headers.get("X-Request-ID", "")
    )


def _log_error(
    request: Request,
    message: str,
    level: int = logging.WARNING,
    exc_info: bool = False,
    **extra,
) -> None:
    """Log `{message, path, method, client}` for an error leaving the app."""
    if settings.is_test:
        return
    logger.log(
        level,
        "[%s] %s",
        _request_id(request),
        {
            "message": message,
            "path": request.url.path,
            "method": request.method,
            "client": request.client.host if request.client else None,
            **extra,
        },
        exc_info=exc_info,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        RiddleServerError       → STATUS_CODES[exc.kind]
        RequestValidationError  → 400 validation_error
        HTTPException (404)     → 404 {"msg": "Route not found"}
        HTTPException (other)   → its own status and detail
        Exception (fallback)    → 500 internal_server_error

    Internal failures never expose their message or context; those are
    logged server-side only.
    """

    @app.exception_handler(RiddleServerError)
    async def handle_riddle_server_error(request: Request, exc: RiddleServerError):
        rid = _request_id(request)
        if isinstance(exc, InternalFailureError):
            _log_error(request, exc.message, level=logging.ERROR, context=exc.context)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.kind.value,
                    "message": INTERNAL_ERROR_MESSAGE,
                    "request_id": rid,
                },
            )

        _log_error(request, exc.message)
        headers = {}
        if exc.kind is ErrorKind.RATE_LIMITED:
            headers["Retry-After"] = str(exc.context.get("retry_after", 0))
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_payload(request_id=rid),
            headers=headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed body, query or path parameters."""
        rid = _request_id(request)
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        _log_error(request, "Request validation failed", errors=errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": ErrorKind.INVALID_INPUT.value,
                "message": "Request validation failed",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            _log_error(request, "Route not found")
            return JSONResponse(status_code=404, content={"msg": "Route not found"})
        _log_error(request, str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "http_error", "message": exc.detail, "request_id": _request_id(request)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for truly unexpected errors.

        The traceback goes to the server log; it is added to the response
        body only in development.
        """
        rid = _request_id(request)
        _log_error(request, str(exc), level=logging.ERROR, exc_info=True)
        content = {
            "error": ErrorKind.INTERNAL_FAILURE.value,
            "message": INTERNAL_ERROR_MESSAGE,
            "request_id": rid,
        }
        if settings.is_development:
            content["stack"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        # Sent from outside RequestIDMiddleware, so the header is added here
        headers = {"X-Request-ID": rid} if rid else None
        return JSONResponse(status_code=500, content=content, headers=headers)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Riddle Server API",
        description=(
            "Riddle game backend: accounts with JWT sessions, riddles, "
            "solve-time submission, leaderboard and player stats."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(players.router)
    app.include_router(riddles.router)

    return app


app = create_app()
