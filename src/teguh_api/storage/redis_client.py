"""Redis client management.

Redis backs the per-IP request throttle only. Quota counters live in the
relational store and are never mirrored here.
"""

import logging
import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio import Redis

from teguh_api.config import Settings

logger = logging.getLogger(__name__)


class RedisManager:
    """Manages the Redis connection pool."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: redis.ConnectionPool | None = None
        self._redis: Redis | None = None

    async def connect(self) -> None:
        """Initialize Redis connection pool."""
        if self._redis is not None:
            return

        try:
            self._pool = redis.ConnectionPool.from_url(
                self._settings.redis_url,
                max_connections=self._settings.redis_max_connections,
                decode_responses=True,
            )
            self._redis = Redis(connection_pool=self._pool)

            # Test connection
            await self._redis.ping()  # type: ignore[misc]
            logger.info("Connected to Redis at %s", self._settings.redis_url)
        except (redis.RedisError, OSError) as e:
            logger.warning("Redis not available, IP throttle falls back to memory: %s", e)
            await self.disconnect()

    async def disconnect(self) -> None:
        """Close Redis connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Disconnected from Redis")

        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    @property
    def client(self) -> Redis | None:
        """Get Redis client instance."""
        return self._redis

    async def health_check(self) -> dict[str, Any]:
        """Check Redis health."""
        if self._redis is None:
            return {"status": "disconnected", "latency_ms": None}

        try:
            start = time.perf_counter()
            await self._redis.ping()  # type: ignore[misc]
            latency = (time.perf_counter() - start) * 1000

            return {"status": "up", "latency_ms": round(latency, 2)}
        except (redis.RedisError, OSError) as e:
            return {"status": "error", "error": str(e), "latency_ms": None}
