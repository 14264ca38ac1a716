"""
Newsdesk Editorial Core — Cache Service
=======================================
Redis-backed key/value cache. Every call degrades to a miss when Redis is
unreachable; callers then fall through to the database.
"""

import time
from datetime import timedelta
from typing import Optional

import redis.asyncio as redis

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger("cache_service")

RECONNECT_BACKOFF_SECONDS = 30.0


class CacheService:
    """Redis cache with lazy connection and reconnect backoff."""

    def __init__(self, url: Optional[str] = None):
        self._url = url
        self._client: Optional[redis.Redis] = None
        self._next_attempt_at = 0.0

    async def _ensure_client(self) -> Optional[redis.Redis]:
        """Lazily connect Redis in any process."""
        if self._client is None and time.monotonic() >= self._next_attempt_at:
            await self.connect()
        return self._client

    async def connect(self):
        """Initialize Redis connection."""
        url = self._url or get_settings().redis_url
        try:
            client = redis.from_url(url, encoding="utf-8", decode_responses=True)
            await client.ping()
            self._client = client
            logger.info("redis_connected")
        except (redis.RedisError, OSError) as e:
            logger.warning("redis_connection_failed", error=str(e))
            self._client = None
            self._next_attempt_at = time.monotonic() + RECONNECT_BACKOFF_SECONDS

    async def disconnect(self):
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def get(self, key: str) -> Optional[str]:
        client = await self._ensure_client()
        if not client:
            return None
        try:
            return await client.get(key)
        except redis.RedisError as e:
            logger.warning("cache_get_error", key=key, error=str(e))
            return None

    async def set(self, key: str, value: str, ttl: Optional[timedelta] = None):
        client = await self._ensure_client()
        if not client:
            return
        try:
            if ttl:
                await client.setex(key, ttl, value)
            else:
                await client.set(key, value)
        except redis.RedisError as e:
            logger.warning("cache_set_error", key=key, error=str(e))

    async def delete(self, key: str):
        client = await self._ensure_client()
        if not client:
            return
        try:
            await client.delete(key)
        except redis.RedisError as e:
            logger.warning("cache_delete_error", key=key, error=str(e))


# Singleton
cache_service = CacheService()
