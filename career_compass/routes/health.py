"""
Health check routes
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends

from career_compass.utils.dependencies import get_backend
from career_compass.utils.redis_session import get_redis_client
from career_compass.utils.supabase_client import SupabaseBackend

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(backend: SupabaseBackend = Depends(get_backend)):
    """Service health check"""
    try:
        redis_client = await get_redis_client()
        await redis_client.ping()
        redis_status = "healthy"
    except Exception as e:
        logger.warning("Redis health check failed", error=str(e))
        redis_status = "unavailable"

    return {
        "service": "career-compass",
        "status": "healthy" if redis_status == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": "placeholder" if backend.is_placeholder() else "configured",
        "redis": redis_status,
        "version": "1.0.0"
    }
