"""
Redis access for the cleanup lock and the logged-out token set.

The connection pool is created on first use and torn down by the app
lifespan, so importing this module never opens a socket.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as aioredis

from carpool.config import settings

_pool: Optional[aioredis.ConnectionPool] = None


def _connection_pool() -> aioredis.ConnectionPool:
    global _pool
    if _pool is None:
        _pool = aioredis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=settings.redis_max_connections,
        )
    return _pool


async def get_redis() -> aioredis.Redis:
    """Client bound to the shared pool (FastAPI dependency)."""
    return aioredis.Redis(connection_pool=_connection_pool())


async def close_redis() -> None:
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None
