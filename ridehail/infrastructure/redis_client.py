"""Redis async connection pools, one per URL."""

import redis.asyncio as aioredis

from ridehail.config import settings

_pools: dict[str, aioredis.ConnectionPool] = {}


def get_redis_client(url: str = settings.redis_url) -> aioredis.Redis:
    """Return a Redis client backed by the shared pool for *url*."""
    pool = _pools.get(url)
    if pool is None:
        pool = _pools[url] = aioredis.ConnectionPool.from_url(
            url, decode_responses=True
        )
    return aioredis.Redis(connection_pool=pool)
