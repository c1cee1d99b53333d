# =============================================================================
# lib/redis_client.py - Shared Redis Connection
# =============================================================================
# One lazily-created Redis client per process, used for:
# - Realtime change events (pub/sub, see app/websocket/broadcast.py)
# - Public endpoint rate limiting (lib/rate_limit.py)
# - Per-user lists that the storefront keeps across devices
#   (lib/user_state.py)
#
# Celery talks to the same REDIS_URL through its own connection pool.
# =============================================================================

from functools import lru_cache

import redis

from app.config import settings


@lru_cache
def get_redis_client() -> redis.Redis:
    """
    Get the process-wide Redis client.

    decode_responses=True so list/set members come back as str.
    """
    return redis.from_url(settings.REDIS_URL, decode_responses=True)
