"""
Health check endpoints.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import redis.asyncio as redis
from sqlalchemy import text

from config import settings
from database import engine

router = APIRouter()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        return f"down: {exc}"
    return "up"


async def _redis_status() -> str:
    client = redis.from_url(settings.REDIS_URL)
    try:
        await client.ping()
    except Exception as exc:
        return f"down: {exc}"
    finally:
        await client.aclose()
    return "up"


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Reports store connectivity and whether generation can reach a provider.
    """
    database = await _database_status()
    rate_limit_store = await _redis_status()
    return {
        "status": "healthy" if database == "up" and rate_limit_store == "up" else "degraded",
        "api": "up",
        "database": database,
        "redis": rate_limit_store,
        "image_provider": "configured" if settings.IMAGE_PROVIDER_API_KEY else "missing",
        "free_generations_quota": settings.FREE_GENERATIONS_QUOTA,
        "generation_unit_cost": float(settings.GENERATION_UNIT_COST),
    }


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    missing = []
    if not settings.IMAGE_PROVIDER_API_KEY:
        missing.append("IMAGE_PROVIDER_API_KEY")
    if await _database_status() != "up":
        missing.append("DATABASE_URL")

    if missing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "missing": missing},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
