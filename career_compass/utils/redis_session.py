"""
Redis Session Storage
Keeps each browser's Supabase auth session (tokens, PKCE code verifier) in Redis

Uses async Redis (redis.asyncio) to avoid blocking the event loop.
"""

import secrets
from typing import Optional

import redis.asyncio as aioredis
import structlog
from supabase_auth import AsyncSupportedStorage

from career_compass.config import settings

logger = structlog.get_logger(__name__)

# Global async Redis client instance
_redis_client: Optional[aioredis.Redis] = None


async def init_redis_client() -> aioredis.Redis:
    """Initialize async Redis client"""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    _redis_client = aioredis.from_url(
        settings.redis_url,
        db=settings.redis_db,
        decode_responses=True,
        socket_keepalive=True,
        health_check_interval=30
    )
    logger.info("Async Redis client initialized", url=settings.redis_url, db=settings.redis_db)
    return _redis_client


async def get_redis_client() -> aioredis.Redis:
    """Get async Redis client instance"""
    if _redis_client is None:
        return await init_redis_client()
    return _redis_client


async def close_redis_client():
    """Close async Redis client connection"""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Async Redis client closed")


class RedisAuthStorage(AsyncSupportedStorage):
    """
    Supabase auth storage backed by Redis, scoped to one browser session.

    The Supabase client persists its session JSON and the PKCE code verifier
    through this adapter, so a user-scoped client can be rebuilt on every
    request from the session cookie alone.
    """

    KEY_PREFIX = "authstore"

    def __init__(self, session_id: str, ttl_seconds: Optional[int] = None):
        self.session_id = session_id
        self.ttl_seconds = ttl_seconds or settings.session_ttl_seconds

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:{self.session_id}:{key}"

    async def get_item(self, key: str) -> Optional[str]:
        try:
            redis_client = await get_redis_client()
            return await redis_client.get(self._key(key))
        except Exception as e:
            logger.error("Error reading auth storage", key=key, error=str(e))
            return None

    async def set_item(self, key: str, value: str) -> None:
        try:
            redis_client = await get_redis_client()
            await redis_client.setex(self._key(key), self.ttl_seconds, value)
        except Exception as e:
            logger.error("Error writing auth storage", key=key, error=str(e))

    async def remove_item(self, key: str) -> None:
        try:
            redis_client = await get_redis_client()
            await redis_client.delete(self._key(key))
        except Exception as e:
            logger.error("Error removing auth storage item", key=key, error=str(e))


class RedisSessionManager:
    """Browser session identifiers"""

    @staticmethod
    def new_session_id() -> str:
        """Generate secure session identifier"""
        return secrets.token_urlsafe(32)

    @staticmethod
    def storage_for(session_id: str) -> RedisAuthStorage:
        return RedisAuthStorage(session_id)

    @staticmethod
    async def clear_session(session_id: str) -> int:
        """Delete every auth storage key of a browser session"""
        try:
            redis_client = await get_redis_client()
            keys = [key async for key in redis_client.scan_iter(match=f"{RedisAuthStorage.KEY_PREFIX}:{session_id}:*")]
            if keys:
                await redis_client.delete(*keys)
            logger.info("Session storage cleared", keys=len(keys))
            return len(keys)
        except Exception as e:
            logger.error("Error clearing session storage", error=str(e))
            return 0
