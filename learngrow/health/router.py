"""Health check endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import ORJSONResponse

from learngrow.config import get_settings
from learngrow.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> ORJSONResponse:
    """Readiness probe - ready once the purchase ledger is reachable.

    Redis only backs the catalog cache, so its absence is reported but does
    not fail the probe.
    """
    settings = get_settings()
    database_ready = getattr(request.app.state, "purchase_service", None) is not None
    return ORJSONResponse(
        status_code=status.HTTP_200_OK
        if database_ready
        else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if database_ready else "not_ready",
            "environment": settings.environment,
            "database": database_ready,
            "cache": get_redis() is not None,
        },
    )


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
