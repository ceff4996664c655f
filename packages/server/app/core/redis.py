"""Redis client for the session revocation list.

A single lazily created client is shared by the process; it owns its own
connection pool.
"""

from __future__ import annotations

import redis.asyncio as redis

from app.core.config import get_settings

settings = get_settings()

_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global _client
    if _client is None:
        _client = redis.from_url(settings.redis_url, decode_responses=True)
    return _client


async def ping_redis() -> bool:
    """Readiness probe. Connection errors propagate to the caller."""
    client = await get_redis()
    return bool(await client.ping())


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
