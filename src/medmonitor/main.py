"""
MedMonitor Clinic Service: application entry point.

This module wires together:
- FastAPI application factory with production-grade middleware
- Structured logging (structlog)
- CORS, security-headers, request-ID and access-log middleware
- Global exception handlers
- Lifespan: DB health check, policy seeding and bootstrap on startup,
  graceful shutdown

Every collaborator (settings, database manager, identity verifier, policy
enforcer) is created once here and kept on ``app.state``.
"""
from __future__ import annotations

import logging
import sys
import time
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from .api.v1 import router as v1_router
from .core.config import Settings, get_settings
from .core.exceptions import AppException
from .core.identity import IdentityVerifier, build_identity_verifier
from .core.policy import RulePolicyEnforcer
from .core.responses import ErrorDetail, ErrorResponse, ResponseMeta
from .db.session import DatabaseManager
from .repositories.policy_repository import seed_policies
from .services.bootstrap import run_bootstrap


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def configure_logging(settings: Settings) -> None:
    """Configure structured logging via structlog."""
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

    # Route standard-library logging through the same level so third-party
    # libraries (SQLAlchemy, uvicorn, google-auth …) respect the configured level.
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=log_level,
        stream=sys.stdout,
    )


# ---------------------------------------------------------------------------
# Security-headers middleware
# ---------------------------------------------------------------------------

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject security-hardening HTTP response headers on every response."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Strict-Transport-Security"] = (
            "max-age=63072000; includeSubDomains; preload"
        )
        settings: Settings = request.app.state.settings
        docs_paths = {"/docs", "/redoc", "/openapi.json"}
        if request.url.path in docs_paths and not settings.is_production:
            # Swagger UI loads JS/CSS from jsdelivr CDN and favicon from fastapi.tiangolo.com
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://fastapi.tiangolo.com; "
                "frame-ancestors 'none'; "
                "base-uri 'none'"
            )
        else:
            response.headers["Content-Security-Policy"] = (
                "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
            )
        return response


# ---------------------------------------------------------------------------
# Request-ID middleware
# ---------------------------------------------------------------------------

class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response pair.

    An incoming ``X-Request-ID`` header is honoured. The ID is stored in
    ``request.state.request_id``, returned in the ``X-Request-ID`` response
    header and bound to the structlog context.
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
            structlog.contextvars.unbind_contextvars("request_id", "user_id", "role")
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# Access-log middleware
# ---------------------------------------------------------------------------

class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request: info for 2xx/3xx, warning for 4xx, error for 5xx."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        logger = structlog.get_logger("medmonitor.access")
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = round((time.perf_counter() - start) * 1000, 2)

        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"

        status_code = response.status_code
        if status_code >= 500:
            emit = logger.error
        elif status_code >= 400:
            emit = logger.warning
        else:
            emit = logger.info
        emit(
            "http_request",
            status=status_code,
            method=request.method,
            path=path,
            ip=request.client.host if request.client else None,
            latency_ms=latency_ms,
        )
        return response


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown.

    Startup:
        1. Configure logging.
        2. Verify database connectivity (schema management is handled
           exclusively by Alembic migrations, NOT by ``create_all``).
        3. Load and seed the policy rules. A failure aborts startup: the
           gate must never run against an empty rule table by accident.
        4. Bootstrap admins / default departments.

    Shutdown:
        1. Close all database connections.
    """
    settings: Settings = app.state.settings
    db_manager: DatabaseManager = app.state.db
    logger = structlog.get_logger()

    # ---- Startup ----
    configure_logging(settings)

    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
        identity_provider=settings.IDENTITY_PROVIDER,
    )

    db_health = await db_manager.health_check()
    logger.info("database_health_check", result=db_health)

    try:
        async with db_manager.session() as session:
            await seed_policies(session, app.state.enforcer)
    except Exception as exc:
        logger.error("policy_seed_failed", error=str(exc))
        raise

    try:
        async with db_manager.session() as session:
            await run_bootstrap(session, settings)
    except (AppException, SQLAlchemyError) as exc:
        logger.warning("bootstrap_failed", error=str(exc))

    logger.info("application_started")

    yield

    # ---- Shutdown ----
    logger.info("application_shutting_down")
    await db_manager.close()
    logger.info("application_shutdown_complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_application(
    settings: Settings | None = None,
    *,
    db_manager: DatabaseManager | None = None,
    identity_verifier: IdentityVerifier | None = None,
    enforcer: RulePolicyEnforcer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Collaborators not passed in are built from ``settings``.
    """
    settings = settings or get_settings()

    tags_metadata = [
        {
            "name": "Health",
            "description": "Health checks: liveness, readiness and overall status.",
        },
        {
            "name": "Users",
            "description": "The current principal and admin role management.",
        },
        {
            "name": "Catalog",
            "description": "Departments, doctors and patients.",
        },
        {
            "name": "Appointments",
            "description": (
                "Booking, completion (consultation + prescriptions), cancellation, "
                "prescription dispensing and patient history."
            ),
        },
    ]

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
# MedMonitor Clinic API

Role-scoped REST API for a clinic: departments, doctors, patients,
appointments, consultations and prescriptions.

## Access control

Every `/api/v1` route except the health probes requires
`Authorization: Bearer <ID token>`. The token is verified against the
configured identity issuer, the caller is resolved to a principal with a role
(`admin`, `doctor`, `patient`) and the `(role, path, method)` triple is checked
against the policy rules before the handler runs.
        """,
        # Docs are only available in non-production environments.
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        default_response_class=JSONResponse,
        lifespan=lifespan,
        openapi_tags=tags_metadata,
    )

    app.state.settings = settings
    app.state.db = db_manager or DatabaseManager(settings)
    app.state.identity_verifier = identity_verifier or build_identity_verifier(settings)
    app.state.enforcer = enforcer if enforcer is not None else RulePolicyEnforcer()

    # ------------------------------------------------------------------
    # Middleware (last registered = outermost wrapper)
    # ------------------------------------------------------------------
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.cors_methods_list,
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

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


def _register_exception_handlers(app: FastAPI) -> None:
    """Attach global exception handlers to the application."""
    logger = structlog.get_logger()

    @app.exception_handler(AppException)
    async def _app_exc(request: Request, exc: AppException) -> JSONResponse:
        settings: Settings = request.app.state.settings
        details = exc.details
        if exc.status_code >= 500:
            logger.error(
                "server_fault",
                error_code=exc.error_code,
                message=exc.message,
                details=exc.details,
                path=request.url.path,
            )
            # Server-side failure details stay in the logs outside DEBUG.
            if not settings.DEBUG:
                details = None
        else:
            logger.warning(
                "application_exception",
                error_code=exc.error_code,
                message=exc.message,
                path=request.url.path,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=ErrorDetail(code=exc.error_code, message=exc.message, details=details),
                meta=ResponseMeta(request_id=getattr(request.state, "request_id", None)),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("validation_error", errors=exc.errors(), path=request.url.path)
        validation_errors = [
            {
                "field": ".".join(str(loc) for loc in err["loc"]),
                "message": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                error=ErrorDetail(
                    code="VALIDATION_ERROR",
                    message="Request validation failed",
                    details={"validation_errors": validation_errors},
                ),
                meta=ResponseMeta(request_id=getattr(request.state, "request_id", None)),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def _generic_exc(request: Request, exc: Exception) -> JSONResponse:
        settings: Settings = request.app.state.settings
        logger.exception("unhandled_exception", error=str(exc), path=request.url.path)
        # Never expose internal details in production
        message = str(exc) if settings.DEBUG else "An unexpected error occurred"
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error=ErrorDetail(code="INTERNAL_ERROR", message=message),
                meta=ResponseMeta(request_id=getattr(request.state, "request_id", None)),
            ).model_dump(mode="json"),
        )


# ---------------------------------------------------------------------------
# Module-level application instance (consumed by uvicorn / gunicorn)
# ---------------------------------------------------------------------------
app = create_application()
