"""Health check endpoints."""

from fastapi import APIRouter

from coursetrack.config import get_settings
from coursetrack.core.database.async_cassandra import AsyncCassandraConnection


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check: the process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> dict[str, str | bool]:
    """Readiness check with the database connection state."""
    settings = get_settings()
    return {
        "status": "ready",
        "environment": settings.environment,
        "database": AsyncCassandraConnection.is_connected(),
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
