"""
HeyDoc Recruitment Service — Application Entry Point.

This module wires together:
- FastAPI application factory; the database manager and the identity
  gateway are built here and stored on ``app.state``
- Structured logging (structlog)
- Access guard, CORS, request-ID and security-headers middleware
- Global exception handlers
- Lifespan: database ping on startup, pool disposal on shutdown
"""
from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .api.v1 import router as v1_router
from .core.access_guard import AccessGuardMiddleware
from .core.config import Settings, get_settings
from .core.exceptions import AppException
from .core.responses import ErrorResponse
from .db.session import DatabaseManager
from .services.identity_service import CognitoIdentityGateway


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def configure_logging(settings: Settings | None = None) -> None:
    """Configure structured logging via structlog."""
    settings = settings or get_settings()
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.dev.ConsoleRenderer()
                if settings.is_development
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Third-party libraries (SQLAlchemy, uvicorn, botocore …) log through stdlib
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=log_level,
        stream=sys.stdout,
    )


# ---------------------------------------------------------------------------
# Security-headers middleware
# ---------------------------------------------------------------------------

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}
HSTS_HEADER = "max-age=63072000; includeSubDomains"
API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
# Swagger UI pulls its bundle from jsDelivr
DOCS_CSP = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "img-src 'self' data: https://fastapi.tiangolo.com; "
    "frame-ancestors 'none'"
)
DOCS_PATHS = frozenset({"/docs", "/redoc", "/openapi.json"})


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers on every response, guard redirects included."""

    def __init__(self, app: ASGIApp, settings: Settings) -> None:
        super().__init__(app)
        self.settings = settings

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        # Cookies are Secure outside development, so HTTPS is assumed there too
        if not self.settings.is_development:
            response.headers["Strict-Transport-Security"] = HSTS_HEADER
        serves_docs = request.url.path in DOCS_PATHS and self.settings.is_development
        response.headers["Content-Security-Policy"] = DOCS_CSP if serves_docs else API_CSP
        return response


# ---------------------------------------------------------------------------
# Request-ID middleware
# ---------------------------------------------------------------------------

class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response pair.

    An incoming ``X-Request-ID`` header is honoured so gateways can inject
    their own correlation IDs. The ID is stored in
    ``request.state.request_id``, returned in the ``X-Request-ID`` response
    header and bound to the structlog context for the request's log lines.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown.

    Startup: configure logging, then verify database connectivity. Schema
    management is handled by Alembic (``scripts/migrate.py``), never by
    ``create_all``.

    Shutdown: close all database connections.
    """
    settings: Settings = app.state.settings
    logger = structlog.get_logger()

    configure_logging(settings)
    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
    )

    db_manager: DatabaseManager = app.state.db_manager
    if await db_manager.ping():
        logger.info("database_reachable")
    else:
        logger.warning("database_unreachable_at_startup")

    if not settings.cognito_configured:
        logger.warning("cognito_not_configured")

    logger.info("application_started")

    yield

    logger.info("application_shutting_down")
    await db_manager.close()
    logger.info("application_shutdown_complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_application(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    tags_metadata = [
        {
            "name": "Health",
            "description": "🏥 Health checks: liveness, readiness and dependency status.",
        },
        {
            "name": "Authentication",
            "description": (
                "🔐 Doctor registration, email confirmation through a temporary "
                "password, login and session cookies."
            ),
        },
        {
            "name": "Admin",
            "description": (
                "🛠️ Dashboard, application pipeline, review decisions, interview "
                "scheduling and admin settings."
            ),
        },
        {
            "name": "Doctor",
            "description": "👨‍⚕️ The doctor's own application profile.",
        },
        {
            "name": "Debug",
            "description": "🔧 Configuration and status counts (not available in production).",
        },
    ]

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
# 🏥 HeyDoc Recruitment API

Backend of the HeyDoc doctor recruitment portal.

| Feature | Description |
|---------|-------------|
| 📝 **Applications** | Doctors apply; the identity provider emails a temporary password |
| ✅ **Review workflow** | Interview, documentation, approval, rejection, suspension |
| 📧 **Interview invites** | Rendered invitation returned as a mailto link |
| 🔐 **Sessions** | httpOnly cookies; role-scoped areas guarded by path |

All endpoints are versioned under `/api/v1/`.
        """,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        default_response_class=JSONResponse,
        lifespan=lifespan,
        openapi_tags=tags_metadata,
        swagger_ui_parameters={
            "docExpansion": "list",
            "defaultModelsExpandDepth": 2,
            "filter": True,
        },
    )

    # Composition root: the only place these collaborators are constructed
    app.state.settings = settings
    app.state.db_manager = DatabaseManager(settings)
    app.state.identity_gateway = CognitoIdentityGateway(settings)

    # ------------------------------------------------------------------
    # Middleware: the last one added wraps all the others
    # ------------------------------------------------------------------

    # 1. Access guard (innermost, runs right before routing)
    app.add_middleware(AccessGuardMiddleware, settings=settings)

    # 2. CORS: outside the guard so preflight and error responses carry CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.cors_methods_list,
        allow_headers=["*"],
    )

    # 3. Request-ID: guard decisions are logged with the request_id bound
    app.add_middleware(RequestIDMiddleware)

    # 4. Security headers (outermost, applies to all responses, redirects included)
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)

    _register_exception_handlers(app, settings)

    app.include_router(v1_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        payload: dict = {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "health": "/api/v1/health",
        }
        if settings.is_development:
            payload["docs"] = "/docs"
        return payload

    return app


def _error_json(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse.build(code, message, details).model_dump(mode="json"),
    )


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Attach global exception handlers to the application."""
    logger = structlog.get_logger()

    @app.exception_handler(AppException)
    async def _app_exc(request: Request, exc: AppException) -> JSONResponse:
        logger.warning(
            "application_exception",
            error_code=exc.error_code,
            status_code=exc.status_code,
            message=exc.message,
            path=request.url.path,
        )
        return _error_json(exc.status_code, exc.error_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(request: Request, exc: RequestValidationError) -> JSONResponse:
        validation_errors = [
            {
                "field": ".".join(str(loc) for loc in err["loc"] if loc != "body"),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        logger.warning(
            "request_validation_failed",
            fields=[e["field"] for e in validation_errors],
            path=request.url.path,
        )
        return _error_json(
            400,
            "VALIDATION_ERROR",
            "Request validation failed",
            {"validation_errors": validation_errors},
        )

    @app.exception_handler(Exception)
    async def _generic_exc(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_exception", error=str(exc), path=request.url.path)
        message = str(exc) if settings.DEBUG else "An unexpected error occurred"
        return _error_json(500, "INTERNAL_ERROR", message)


# ---------------------------------------------------------------------------
# Module-level application instance (consumed by uvicorn / gunicorn)
# ---------------------------------------------------------------------------
app = create_application()
