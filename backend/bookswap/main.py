"""
BookSwap Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, exception handlers, route
       mounting and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (`uvicorn bookswap.main:app`) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  Middleware Chain:                                      │
    │  ┌──────┐ ┌────────┐ ┌─────────┐ ┌────────────┐        │
    │  │ CORS │→│ Req ID │→│ Logging │→│ Rate Limit │        │
    │  └──────┘ └────────┘ └─────────┘ └────────────┘        │
    │                                                         │
    │  Routers:                                               │
    │  ┌────────┐ ┌───────────────┐ ┌──────────┐ ┌────────┐  │
    │  │ /users │ │ /publications │ │ /reviews │ │/health │  │
    │  └────────┘ └───────────────┘ └──────────┘ └────────┘  │
    │                                                         │
    │  Exception Handlers:                                    │
    │  ┌───────────────────────────────────────────────────┐ │
    │  │ BookSwapError→status │ Validation→400 │ DB→500    │ │
    │  └───────────────────────────────────────────────────┘ │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → configuration report → ready
    Shutdown: dispose database engine → done
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from bookswap import __version__, errors
from bookswap.config import settings
from bookswap.database import dispose_engine
from bookswap.exceptions import (
    AuthenticationError,
    BookSwapError,
    DatabaseError,
    RateLimitExceededError,
)
from bookswap.middleware.logging import RequestLoggingMiddleware
from bookswap.middleware.rate_limit import RateLimitMiddleware
from bookswap.middleware.request_id import RequestIDMiddleware, request_id_var
from bookswap.routes import health, publications, reviews, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    When:    Called once from the lifespan, before anything else logs.
    Format:  %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # bookswap.access replaces uvicorn's access log; SQL echo only on DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("BookSwap Backend %s starting up...", __version__)

    # Reported, not fatal: /health stays reachable and explains itself
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("BookSwap Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    # The catch-all handler runs outside the middleware stack, after the
    # ContextVar was reset; request.state still holds the id
    return getattr(request.state, "request_id", "") or request_id_var.get("")


def error_body(
    error: errors.ErrorInfo,
    request_id: str,
    details: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"code": error.code, "message": error.message}
    if details:
        body["details"] = details
    body["request_id"] = request_id
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        BookSwapError (and subclasses) → exc.status_code, error-table body
        RequestValidationError         → 400 BAD_REQUEST with field errors
        SQLAlchemyError                → 500 (as DatabaseError)
        Exception (fallback)           → 500 INTERNAL_SERVER_ERROR

    Security: 5xx bodies never carry internal details (SQL, stack traces);
    those are logged server-side with the request id.
    """

    @app.exception_handler(BookSwapError)
    async def handle_bookswap_error(request: Request, exc: BookSwapError):
        rid = _request_id(request)
        headers: Dict[str, str] = {}
        if isinstance(exc, AuthenticationError):
            headers["WWW-Authenticate"] = "Bearer"
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)

        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.code, exc.context)
            details = None
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.code)
            details = exc.context

        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.error, rid, details),
            headers=headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed body, path or query: same 400 shape as business-rule failures."""
        rid = _request_id(request)
        field_errors = [
            {"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", ""), "type": e.get("type", "")}
            for e in exc.errors()
        ]
        logger.info("[%s] Request validation failed: %s", rid, field_errors)
        return JSONResponse(
            status_code=400,
            content=error_body(errors.BAD_REQUEST, rid, {"errors": field_errors}),
        )

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        rid = _request_id(request)
        wrapped = DatabaseError(context={"error_type": type(exc).__name__})
        logger.error("[%s] Database error: %s", rid, exc, exc_info=True)
        return JSONResponse(
            status_code=wrapped.status_code,
            content=error_body(wrapped.error, rid),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(errors.INTERNAL_SERVER_ERROR, rid),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Why factory (not module-level app only):
        Tests build fresh instances, so middleware state (rate-limit
        counters) never leaks between test modules.
    """
    app = FastAPI(
        title="BookSwap API",
        description=(
            "Backend of a peer-to-peer book exchange: accounts, book publications, "
            "likes / trade offers / purchase intents between users, and reviews."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in REVERSE order of addition:
    # CORS → RequestID → Logging → RateLimit → GZip → routes
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        # The login token is also returned in the Authorization header
        expose_headers=["Authorization", "X-Request-ID", "Retry-After"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)
    app.include_router(publications.router)
    app.include_router(reviews.router)
    app.include_router(health.router)

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        return {"message": "Hello World!"}

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
