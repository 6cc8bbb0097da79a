"""Redis connection for rate limiting.

Learn: Redis is optional. If it is not reachable at startup the
connection stays None, get_redis() raises, and the rate-limit middleware
lets every request through. Session state never lives here — it is
in-process, owned by each context's SessionAuthority.
"""

from typing import Optional

import redis.asyncio as aioredis

from gatekeeper.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Connect and verify with a PING."""
    global _redis
    client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    _redis = client
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
