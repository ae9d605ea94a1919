"""
Redis-backed KeyValueCache.

Values are stored as plain strings, which is what the persisted-query
store needs (query text keyed by its hash). The connection is opened on
first use.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import redis.asyncio as aioredis

from .base import KeyValueCache

logger = logging.getLogger(__name__)


class RedisKeyValueCache(KeyValueCache):
    """
    KeyValueCache on top of redis.asyncio.

    Usage:
        cache = RedisKeyValueCache("redis://redis:6379/0", default_ttl=86400)
        await cache.set("apq:abc", "{ hero { name } }", ttl=300)
        ...
        await cache.close()
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        client: Optional[aioredis.Redis] = None,
        default_ttl: Optional[int] = None,
    ):
        """
        Args:
            redis_url: Connection URL, used when no client is given
            client: Already configured client (decode_responses=True expected)
            default_ttl: TTL in seconds applied when set() gets none
        """
        if redis_url is None and client is None:
            raise ValueError("RedisKeyValueCache needs a redis_url or a client")
        self.redis_url = redis_url
        self.default_ttl = default_ttl
        self._redis = client

    @property
    def connected(self) -> bool:
        return self._redis is not None

    def _connection(self) -> aioredis.Redis:
        if self._redis is None:
            logger.info(f"Connecting to Redis: {self.redis_url}")
            self._redis = aioredis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        return self._redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> Optional[Any]:
        value = await self._connection().get(key)
        if value is None:
            logger.debug(f"Cache MISS: {key}")
        else:
            logger.debug(f"Cache HIT: {key}")
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        await self._connection().set(key, str(value), ex=ttl or None)
        logger.debug(f"Cached {key} (TTL: {ttl}s)")

    async def delete(self, key: str) -> bool:
        return bool(await self._connection().delete(key))
