"""Health check endpoints."""

from fastapi import APIRouter, Request
from redis.exceptions import RedisError

from src.config import get_settings
from src.core.database import AsyncCassandraConnection


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - the process is serving requests."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe.

    ``degraded`` means the moderation store is not wired up and the
    moderation routes answer 503. A missing cache is not degraded; the view
    is then recomputed on every read.
    """
    settings = get_settings()
    service = getattr(request.app.state, "moderation_service", None)
    database = service is not None and AsyncCassandraConnection.is_connected()

    cache = False
    if service is not None and service.redis is not None:
        try:
            cache = bool(await service.redis.ping())
        except RedisError:
            cache = False

    return {
        "status": "ready" if database else "degraded",
        "environment": settings.environment,
        "database": database,
        "cache": cache,
    }


@router.get("")
async def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
