"""Redis client wrapper for idempotent retries."""

import json
import logging
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from crm.settings import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Lazily connected async Redis client.

    When Redis is disabled or unreachable every read misses and every write
    is skipped, so callers never need to branch on availability.
    """

    def __init__(self, url: str | None = None, enabled: bool | None = None) -> None:
        self._url = url or settings.redis_url
        self._enabled = settings.redis_enabled if enabled is None else enabled
        self._client: aioredis.Redis | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def connect(self) -> None:
        """Connect to Redis."""
        if not self._enabled:
            logger.info("Redis disabled - skipping connection")
            return
        if self._client is not None:
            return
        client = aioredis.from_url(self._url, encoding="utf-8", decode_responses=True)
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.warning(f"Redis connection failed: {e}. Continuing without Redis.")
            self._enabled = False
            await client.aclose()
            return
        self._client = client
        logger.info("Redis connected successfully")

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_json(self, key: str) -> dict[str, Any] | None:
        """Get a JSON object, or None on miss."""
        if self._client is None:
            return None
        value = await self._client.get(key)
        if value is None:
            return None
        return json.loads(value)

    async def set_json(self, key: str, value: dict[str, Any], ttl: int | None = None) -> None:
        """Store a JSON object with an optional TTL in seconds."""
        if self._client is None:
            return
        payload = json.dumps(value)
        if ttl:
            await self._client.setex(key, ttl, payload)
        else:
            await self._client.set(key, payload)

    async def delete(self, key: str) -> int:
        """Delete a key; returns the number of keys removed."""
        if self._client is None:
            return 0
        return await self._client.delete(key)


# Global Redis client instance
redis_client = RedisClient()
