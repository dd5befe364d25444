"""Health check endpoints."""

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter
from sqlalchemy import text

from inventory_api.config import settings
from inventory_api.database import engine
from inventory_api.schemas.sku_image import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


async def check_database() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "connected"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return f"error: {str(e)}"


async def check_redis() -> str:
    client = aioredis.from_url(settings.redis_url)
    try:
        await client.ping()
        return "connected"
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        return f"error: {str(e)}"
    finally:
        await client.aclose()


async def check_health() -> HealthResponse:
    """Check the database and Redis (Celery broker)."""
    db_status = await check_database()
    redis_status = await check_redis()
    overall = "ok" if db_status == "connected" and redis_status == "connected" else "degraded"
    return HealthResponse(status=overall, db=db_status, redis=redis_status)


@router.get("/healthz")
async def healthz():
    """Liveness probe; does not touch dependencies."""
    return {"status": "ok"}
