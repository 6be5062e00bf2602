"""
Health Endpoints.

``/health`` reports each dependency; ``/health/ready`` and ``/health/live``
are the bare probes used by the load balancer and the container runtime.
"""
import time
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config import Settings, get_settings
from ....core.responses import ComponentStatus, HealthCheck, HealthResponse
from ....db.session import get_db

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/health")

# Worst component status wins
_SEVERITY: dict[ComponentStatus, int] = {"healthy": 0, "degraded": 1, "unhealthy": 2}


async def _database_check(db: AsyncSession) -> HealthCheck:
    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        log.error("health_database_unreachable", error=str(exc))
        return HealthCheck(status="unhealthy", message=str(exc))
    return HealthCheck(
        status="healthy",
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
        message="Connected",
    )


def _identity_provider_check(settings: Settings) -> HealthCheck:
    # Only the configuration is inspected; Cognito is not called
    if settings.cognito_configured:
        return HealthCheck(status="healthy", message="Cognito user pool configured")
    return HealthCheck(status="degraded", message="Cognito user pool not configured")


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Database connectivity and identity-provider configuration.",
)
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    checks = {
        "database": await _database_check(db),
        "identity_provider": _identity_provider_check(settings),
    }
    overall = max((check.status for check in checks.values()), key=_SEVERITY.__getitem__)
    return HealthResponse(
        status=overall,
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
        checks=checks,
    )


@router.get("/ready", summary="Readiness probe")
async def readiness_probe(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict[str, str]:
    """200 once the database answers; errors surface as 500."""
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}


@router.get("/live", summary="Liveness probe")
async def liveness_probe() -> dict[str, str]:
    return {"status": "alive"}
