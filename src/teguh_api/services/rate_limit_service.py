"""Per-client-IP throttle with a sliding window log."""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from teguh_api.storage.lua_scripts import SLIDING_WINDOW_SCRIPT, lua_scripts

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    """Result of a throttle check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # Unix timestamp
    window_seconds: int

    @property
    def retry_after(self) -> int:
        """Seconds until the window frees a slot."""
        return max(0, self.reset_at - int(time.time()))


class RateLimitService:
    """
    Abuse throttle keyed by client address.

    Uses Redis sorted sets scored by timestamp, falling back to an in-process
    log when Redis is absent. This is independent of the per-key daily quota
    and fails open on Redis errors.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int = 60,
        redis: Redis | None = None,
    ):
        self._limit = limit
        self._window_seconds = window_seconds
        self._redis = redis
        self._local_counts: dict[str, list[float]] = {}  # Fallback for no Redis
        self._last_sweep = 0.0

    def _get_key(self, client_id: str) -> str:
        return f"ip_throttle:{client_id}"

    async def check_and_increment(self, client_id: str) -> RateLimitResult:
        """
        Check the throttle and count this request if allowed.

        Args:
            client_id: Client address

        Returns:
            RateLimitResult with allowed status and metadata
        """
        if self._redis:
            return await self._check_redis(client_id)

        return self._check_local(client_id)

    async def _check_redis(self, client_id: str) -> RateLimitResult:
        key = self._get_key(client_id)
        now = time.time()
        request_id = str(uuid.uuid4())
        limit = self._limit
        window_seconds = self._window_seconds

        redis = self._redis
        assert redis is not None

        try:
            if lua_scripts.sliding_window_sha:
                result: Any = await redis.evalsha(  # type: ignore[misc]
                    lua_scripts.sliding_window_sha,
                    1,
                    key,
                    window_seconds,
                    limit,
                    now,
                    request_id,
                )
            else:
                result = await redis.eval(  # type: ignore[misc]
                    SLIDING_WINDOW_SCRIPT,
                    1,
                    key,
                    window_seconds,
                    limit,
                    now,
                    request_id,
                )

            return RateLimitResult(
                allowed=bool(result[0]),
                limit=limit,
                remaining=int(result[1]),
                reset_at=int(result[2]),
                window_seconds=window_seconds,
            )

        except RedisError as e:
            logger.warning("Redis throttle error, allowing request: %s", e)
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit - 1,
                reset_at=int(now + window_seconds),
                window_seconds=window_seconds,
            )

    def _check_local(self, client_id: str) -> RateLimitResult:
        key = self._get_key(client_id)
        now = time.time()
        limit = self._limit
        window_seconds = self._window_seconds
        cutoff = now - window_seconds

        if now - self._last_sweep >= window_seconds:
            self._sweep_local(cutoff)
            self._last_sweep = now

        entries = [ts for ts in self._local_counts.get(key, []) if ts > cutoff]
        count = len(entries)

        if count < limit:
            entries.append(now)
            self._local_counts[key] = entries
            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit - count - 1,
                reset_at=int(now + window_seconds),
                window_seconds=window_seconds,
            )

        self._local_counts[key] = entries
        oldest = min(entries) if entries else now
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_at=int(oldest + window_seconds),
            window_seconds=window_seconds,
        )

    def _sweep_local(self, cutoff: float) -> None:
        # Drop addresses with nothing left in the window
        stale = [
            k for k, entries in self._local_counts.items() if not entries or entries[-1] <= cutoff
        ]
        for k in stale:
            del self._local_counts[k]

    def tracked_clients(self) -> int:
        """Number of addresses currently held in the local log."""
        return len(self._local_counts)

    def clear_local(self) -> None:
        """Clear local throttle data (for testing)."""
        self._local_counts.clear()
