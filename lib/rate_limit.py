# =============================================================================
# lib/rate_limit.py - Fixed-Window Rate Limiting
# =============================================================================
# Protects the unauthenticated order endpoints (place order, track order)
# from abuse: N requests per window per client IP.
#
# Counters live in Redis (INCR + EXPIRE) so every API worker shares them.
# When Redis is unreachable the limiter falls back to a per-process window
# instead of rejecting traffic.
#
# Usage:
#   from lib.rate_limit import RateLimiter, client_ip
#   allowed, retry_after = RateLimiter.check(f"track:{client_ip(headers)}")
# =============================================================================

import logging
import math
import threading
import time
from typing import Mapping

import redis

from app.config import settings
from lib.redis_client import get_redis_client

logger = logging.getLogger(__name__)

KEY_PREFIX = "spraxe:ratelimit"


def client_ip(headers: Mapping[str, str]) -> str:
    """
    Best-effort client IP behind a proxy.

    Uses the first x-forwarded-for hop, then x-real-ip, then "unknown".
    """
    forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return (headers.get("x-real-ip") or "").strip() or "unknown"


class RateLimiter:
    """
    Fixed-window counter keyed by an arbitrary string.

    All methods are class methods; the in-process fallback state is shared
    across calls in the same process.
    """

    # key -> (count, window_reset_epoch)
    _local: dict[str, tuple[int, float]] = {}
    _lock = threading.Lock()

    @classmethod
    def check(
        cls,
        key: str,
        limit: int | None = None,
        window_seconds: int | None = None,
    ) -> tuple[bool, int]:
        """
        Count one request against `key`.

        Args:
            key: Bucket identifier, e.g. "place-order:203.0.113.9"
            limit: Requests allowed per window (default PUBLIC_RATE_LIMIT)
            window_seconds: Window length (default PUBLIC_RATE_WINDOW_SECONDS)

        Returns:
            (allowed, retry_after_seconds); retry_after is 0 when allowed
        """
        limit = limit or settings.PUBLIC_RATE_LIMIT
        window_seconds = window_seconds or settings.PUBLIC_RATE_WINDOW_SECONDS

        try:
            return cls._check_redis(key, limit, window_seconds)
        except redis.RedisError as e:
            logger.warning(f"Rate limiter falling back to local window: {e}")
            return cls._check_local(key, limit, window_seconds)

    @classmethod
    def _check_redis(cls, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        client = get_redis_client()
        redis_key = f"{KEY_PREFIX}:{key}"

        pipe = client.pipeline()
        pipe.incr(redis_key)
        pipe.ttl(redis_key)
        count, ttl = pipe.execute()

        if ttl is None or ttl < 0:
            client.expire(redis_key, window_seconds)
            ttl = window_seconds

        if count > limit:
            return False, max(1, int(ttl))
        return True, 0

    @classmethod
    def _check_local(cls, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        now = time.time()
        with cls._lock:
            cls._prune(now)
            count, reset = cls._local.get(key, (0, 0.0))
            if reset < now:
                cls._local[key] = (1, now + window_seconds)
                return True, 0
            if count >= limit:
                return False, max(1, math.ceil(reset - now))
            cls._local[key] = (count + 1, reset)
            return True, 0

    @classmethod
    def _prune(cls, now: float) -> None:
        """Drop windows that have already ended. Caller holds the lock."""
        expired = [k for k, (_, reset) in cls._local.items() if reset < now]
        for k in expired:
            del cls._local[k]

    @classmethod
    def reset(cls) -> None:
        """Clear the in-process fallback counters."""
        with cls._lock:
            cls._local.clear()
