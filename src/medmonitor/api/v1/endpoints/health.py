"""
Health Check Endpoints.

Provides health and readiness endpoints for orchestration systems.
These routes are public: the authorization gate is not applied to them.
"""
import time

from fastapi import APIRouter
from sqlalchemy import text

from ....core.config import AppSettings
from ....core.responses import HealthCheck, HealthResponse
from ....db.session import DbSession

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the service and its dependencies.",
)
async def health_check(settings: AppSettings, db: DbSession) -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - Database connectivity
    - Identity issuer configuration (expected audience present)
    """
    checks: dict[str, HealthCheck] = {}

    db_start = time.time()
    try:
        await db.execute(text("SELECT 1"))
        db_latency = (time.time() - db_start) * 1000
        checks["database"] = HealthCheck(
            status="healthy",
            latency_ms=round(db_latency, 2),
            message="Connected",
        )
    except Exception as e:
        checks["database"] = HealthCheck(
            status="unhealthy",
            message=str(e),
        )

    if settings.identity_audience:
        checks["identity"] = HealthCheck(
            status="healthy",
            message=f"{settings.IDENTITY_PROVIDER} audience configured",
        )
    else:
        checks["identity"] = HealthCheck(
            status="degraded",
            message=f"{settings.IDENTITY_PROVIDER} audience not configured",
        )

    overall_status = "healthy"
    if any(c.status == "unhealthy" for c in checks.values()):
        overall_status = "unhealthy"
    elif any(c.status == "degraded" for c in checks.values()):
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
        checks=checks,
    )


@router.get(
    "/ready",
    summary="Readiness probe",
    description="Returns 200 if the service is ready to accept traffic.",
)
async def readiness_probe(db: DbSession) -> dict[str, str]:
    """Returns 200 only if the database answers."""
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}


@router.get(
    "/live",
    summary="Liveness probe",
    description="Returns 200 if the service is alive.",
)
async def liveness_probe() -> dict[str, str]:
    return {"status": "alive"}
