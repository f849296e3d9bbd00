"""Redis Lua scripts for atomic operations."""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Sliding window throttle check and increment
# Keys: [throttle_key]
# Args: [window_seconds, limit, current_time, request_id]
# Returns: [allowed (0/1), remaining, reset_timestamp]
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local window = tonumber(ARGV[1])
local limit = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local request_id = ARGV[4]

-- Drop entries that left the window
redis.call('ZREMRANGEBYSCORE', key, 0, now - window)

local count = redis.call('ZCARD', key)

if count < limit then
    redis.call('ZADD', key, now, request_id)
    redis.call('EXPIRE', key, window * 2)
    return {1, limit - count - 1, math.floor(now + window)}
else
    -- Reset when the oldest entry leaves the window
    local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
    local reset_at = now + window
    if oldest and #oldest >= 2 then
        reset_at = tonumber(oldest[2]) + window
    end
    return {0, 0, math.floor(reset_at)}
end
"""


class LuaScripts:
    """Holds the SHA of scripts loaded into Redis."""

    def __init__(self) -> None:
        self.sliding_window_sha: str | None = None

    async def load(self, redis: "Redis") -> None:
        self.sliding_window_sha = await redis.script_load(SLIDING_WINDOW_SCRIPT)
        logger.debug("Loaded sliding window script %s", self.sliding_window_sha)

    def reset(self) -> None:
        self.sliding_window_sha = None


lua_scripts = LuaScripts()
