"""
Per-IP request limiter for the public widget endpoint.

Fixed windows kept in Redis so every worker process shares one quota per
client. The first request for a key creates a counter that expires after
`window_seconds`; up to `max_requests` are admitted inside that window and
the rest are rejected with RateLimitError until the key expires.

Counter updates run in one Lua script, so INCR and EXPIRE are atomic.

Usage:
    from app.utils.rate_limiter import IpRateLimiter

    limiter = IpRateLimiter(redis.from_url(redis_url), max_requests=30, window_seconds=60)
    limiter.hit(client_ip)  # raises RateLimitError when over quota
"""

import logging
import math
from typing import Optional

import redis

from app.core.exceptions import RateLimitError

logger = logging.getLogger("rate_limiter")

REDIS_KEY_PREFIX = "widget:rl"

DEFAULT_MAX_REQUESTS = 30
DEFAULT_WINDOW_SECONDS = 60

# Returns {count, ttl}. The expiry is re-applied if the key lost it.
HIT_SCRIPT = """
local key = KEYS[1]
local window = tonumber(ARGV[1])

local count = redis.call('INCR', key)
if count == 1 then
    redis.call('EXPIRE', key, window)
end

local ttl = redis.call('TTL', key)
if ttl < 0 then
    redis.call('EXPIRE', key, window)
    ttl = window
end
return {count, ttl}
"""


class IpRateLimiter:
    def __init__(
        self,
        redis_client: redis.Redis,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        key_prefix: str = REDIS_KEY_PREFIX,
    ):
        """
        Initialize the rate limiter.

        Args:
            redis_client: Redis client instance
            max_requests: Requests admitted per key per window
            window_seconds: Window length in seconds (rounded up to whole seconds)
            key_prefix: Redis key prefix for this limiter
        """
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = max(1, math.ceil(window_seconds))
        self._key_prefix = key_prefix

        self._hit_script = self._redis.register_script(HIT_SCRIPT)

        logger.info(
            f"IpRateLimiter initialized: max_requests={max_requests}, "
            f"window={self._window_seconds}s"
        )

    def _key(self, client: str) -> str:
        return f"{self._key_prefix}:{client}"

    def hit(self, key: str) -> int:
        """
        Record one request for `key`.

        Returns:
            Requests remaining in the current window

        Raises:
            RateLimitError: the key already used its quota for this window
        """
        try:
            count, ttl = self._hit_script(keys=[self._key(key)], args=[self._window_seconds])
        except redis.RedisError as e:
            # Fail open: the widget stays reachable while Redis is down
            logger.error(f"Redis error in rate limiter hit: {e}")
            return self._max_requests

        count = int(count)
        if count > self._max_requests:
            retry_after = max(1, int(ttl))
            logger.warning(f"Rate limit exceeded for {key}. Retry after {retry_after}s")
            raise RateLimitError(retry_after=retry_after)

        return self._max_requests - count

    def get_status(self, key: Optional[str] = None) -> dict:
        """Snapshot for monitoring; per-key details when `key` is given."""
        status = {
            "max_requests": self._max_requests,
            "window_seconds": self._window_seconds,
            "key_prefix": self._key_prefix,
        }
        if key is None:
            return status

        try:
            count = self._redis.get(self._key(key))
            ttl = self._redis.ttl(self._key(key))
        except redis.RedisError as e:
            logger.error(f"Redis error in get_status: {e}")
            status["error"] = str(e)
            return status

        status["count"] = int(count) if count is not None else 0
        status["resets_in"] = max(0, int(ttl)) if count is not None else 0
        return status

    def reset(self) -> None:
        """Delete every counter under this limiter's prefix. Use with caution - typically only for testing."""
        try:
            keys = list(self._redis.scan_iter(match=f"{self._key_prefix}:*"))
            if keys:
                self._redis.delete(*keys)
            logger.info(f"Rate limiter reset ({len(keys)} keys)")
        except redis.RedisError as e:
            logger.error(f"Redis error in reset: {e}")
