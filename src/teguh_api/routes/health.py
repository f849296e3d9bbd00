"""Health check endpoint."""

from fastapi import APIRouter, Request

from teguh_api import __version__
from teguh_api.models.responses import HealthResponse
from teguh_api.storage.database import DatabaseManager
from teguh_api.storage.redis_client import RedisManager

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check the health status of the API and its dependencies.",
)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint.

    Returns the health status of the API and its components:
    - API status
    - Database status
    - Redis connection status (optional, only backs the IP throttle)
    """
    db: DatabaseManager = request.app.state.db
    redis_manager: RedisManager = request.app.state.redis_manager

    components = {
        "api": {"status": "up", "latency_ms": 0},
        "database": await db.health_check(),
        "redis": await redis_manager.health_check(),
    }

    # Redis is optional; the database is not
    database_up = components["database"].get("status") == "up"
    redis_ok = components["redis"].get("status") in ("up", "disconnected")
    status = "healthy" if database_up and redis_ok else "degraded"

    return HealthResponse(
        status=status,
        version=__version__,
        components=components,
    )


@router.get(
    "/",
    summary="Root",
    description="API root endpoint with basic info.",
)
async def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "name": "Teguh API",
        "version": __version__,
        "documentation": "/docs",
        "health": "/health",
    }
