"""
SmartQuery Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers.
Who:   uvicorn smartquery.main:app

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  RateLimit → RequestID → Logging → GZip → CORS           │
    │                                                          │
    │  Routes:                                                 │
    │  /api/register  /api/login        (public)               │
    │  /api/queries/* /api/history/*    (Auth Gate)            │
    │  /api/ai/{action}                 (Auth Gate)            │
    │  /api/share/{token} /share/{token} (public, read only)   │
    │  /health                                                 │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400 │ Auth→401/403 │ NotFound→404 │          │
    │  Conflict→409 │ RateLimit→429 │ Store→500 │ LLM→503      │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → configuration check → database engine
    Shutdown: dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Sequence, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from smartquery import __version__
from smartquery.config import settings
from smartquery.database import dispose_engine, init_engine
from smartquery.exceptions import (
    AuthError,
    CircuitBreakerOpenError,
    ConflictError,
    LLMServiceError,
    NotFoundError,
    RateLimitExceededError,
    SmartQueryError,
    StoreUnavailableError,
    ValidationError,
)
from smartquery.middleware.logging import RequestLoggingMiddleware
from smartquery.middleware.rate_limit import RateLimitMiddleware
from smartquery.middleware.request_id import RequestIDMiddleware, request_id_var
from smartquery.routes import ai, auth, health, history, queries, share

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: 2026-01-31T12:00:00 [INFO] smartquery.services.query_service: ...
    Output goes to stdout so the container runtime collects it.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our access log replaces uvicorn's
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("SmartQuery Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Non-fatal: /health and the library still work without Gemini
        logger.error("Configuration error: %s", str(e))

    await init_engine()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("SmartQuery Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def describe_request_error(errors: Sequence[dict]) -> Tuple[str, str]:
    """
    (field, message) for the first schema error FastAPI collected.

    Locations look like ("body", "title") or ("body",) when the body itself
    is missing or not JSON; the latter is reported as field "body".
    """
    if not errors:
        return "body", "Invalid request."
    first = errors[0]
    names = [part for part in first.get("loc", ()) if isinstance(part, str) and part != "body"]
    if not names:
        return "body", "Request body is missing or is not valid JSON."
    field = names[-1]
    return field, f"Invalid value for '{field}': {first.get('msg', 'invalid input')}"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        RequestValidationError  → 400 (malformed body or wrong JSON types)
        ValidationError         → 400
        AuthError               → 401 (no token) or 403
        NotFoundError           → 404
        ConflictError           → 409
        RateLimitExceededError  → 429
        StoreUnavailableError   → 500, generic message
        CircuitBreakerOpenError → 503
        LLMServiceError         → 503
        SmartQueryError (base)  → 500
        Exception (fallback)    → 500

    Responses never carry stack traces, SQL or driver messages; those are
    logged with the request id instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        details = {"field": exc.field} if exc.field else None
        return error_response(400, "validation_error", exc.message, details)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        # Schema failures share the 400 contract of service-level validation
        field, message = describe_request_error(exc.errors())
        logger.warning("[%s] Request validation error on %s: %s", request_id_var.get(""), field, message)
        return error_response(400, "validation_error", message, {"field": field})

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        logger.info("[%s] Auth rejected (%d): %s", request_id_var.get(""), exc.status_code, exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return error_response(exc.status_code, "auth_error", exc.message, headers=headers)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        # Ids stay in the log; the body is identical for missing and not-owned
        logger.info("[%s] Not found: %s", request_id_var.get(""), exc.context)
        return error_response(404, "not_found", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return error_response(409, "conflict", exc.message)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return error_response(
            429,
            "rate_limit_exceeded",
            exc.message,
            exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        logger.error("[%s] Store error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return error_response(500, "server_error", GENERIC_SERVER_ERROR)

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return error_response(
            503,
            "service_unavailable",
            exc.message,
            {"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(LLMServiceError)
    async def handle_llm_error(request: Request, exc: LLMServiceError):
        logger.error("[%s] LLM service error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return error_response(503, "llm_service_error", exc.message, headers=headers)

    @app.exception_handler(SmartQueryError)
    async def handle_application_error(request: Request, exc: SmartQueryError):
        logger.error("[%s] Unhandled application error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return error_response(500, "server_error", GENERIC_SERVER_ERROR)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="SmartQuery API",
        description=(
            "Personal SQL query library: save, edit and delete queries, browse the "
            "change history, publish read-only share links, and ask Gemini to "
            "explain, fix or generate SQL."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware runs in reverse order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(queries.router)
    app.include_router(history.router)
    app.include_router(share.router)
    app.include_router(ai.router)
    app.include_router(health.router)

    return app


app = create_app()
