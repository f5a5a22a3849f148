"""Health check endpoints."""

from fastapi import APIRouter, Request

from coursegate.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool | int]:
    """Readiness probe - reports store and sweeper status."""
    settings = get_settings()
    tokens = getattr(request.app.state, "token_cache", None)
    return {
        "status": "ready",
        "environment": settings.environment,
        "database": getattr(request.app.state, "database_ready", False),
        "token_sweeper": bool(tokens and tokens.is_running),
        "live_stream_tokens": len(tokens) if tokens is not None else 0,
    }


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
