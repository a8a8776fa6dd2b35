"""Redis connection management.

Redis holds refresh tokens and rate-limit windows; leaderboard data is never
cached here.
"""

import redis.asyncio as aioredis

_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    """Get the shared Redis connection. Raises until ``init_redis`` has run."""
    if _redis is None:
        raise RuntimeError("Redis not initialized; app not started")
    return _redis


async def init_redis(url: str) -> aioredis.Redis:
    """Connect to Redis and verify the connection with PING."""
    global _redis
    _redis = aioredis.from_url(url, decode_responses=True)
    await _redis.ping()
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def refresh_token_key(user_id: str) -> str:
    return f"karaoke:refresh:{user_id}"
