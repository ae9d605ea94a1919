"""
Key-value cache interface and in-process implementations.

The pipeline only needs get/set/delete. The document store keeps parsed
DocumentNode objects, so it stays in-process (InMemoryLRUCache); the
persisted-query store holds plain strings and may live in Redis
(see redis_cache.py).
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Optional

logger = logging.getLogger(__name__)


class KeyValueCache(ABC):
    """Async key-value cache used for documents and persisted queries."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None on a miss."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store value under key. ``ttl`` is in seconds."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove key. Returns True if something was removed."""


class InMemoryLRUCache(KeyValueCache):
    """
    Capacity-bounded in-process cache with least-recently-used eviction.

    Usage:
        cache = InMemoryLRUCache(max_size=500)
        await cache.set("abc", document)
        document = await cache.get("abc")
    """

    def __init__(self, max_size: int = 1000, default_ttl: Optional[int] = None):
        """
        Initialize cache.

        Args:
            max_size: Maximum number of entries kept
            default_ttl: TTL in seconds applied when set() gets none
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._entries: OrderedDict[str, tuple[Any, Optional[float]]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        expires_at = time.monotonic() + ttl if ttl else None

        self._entries[key] = (value, expires_at)
        self._entries.move_to_end(key)

        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"LRU evicted: {evicted}")

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def flush(self) -> None:
        """Drop every entry."""
        self._entries.clear()


class PrefixingKeyValueCache(KeyValueCache):
    """
    Namespaces every key of a wrapped cache.

    Usage:
        apq = PrefixingKeyValueCache(shared_cache, "apq:")
        await apq.set(sha, query)   # stored under "apq:<sha>"
    """

    def __init__(self, wrapped: KeyValueCache, prefix: str):
        self.wrapped = wrapped
        self.prefix = prefix

    def _make_key(self, key: str) -> str:
        """Build full cache key with prefix"""
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        return await self.wrapped.get(self._make_key(key))

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        await self.wrapped.set(self._make_key(key), value, ttl=ttl)

    async def delete(self, key: str) -> bool:
        return await self.wrapped.delete(self._make_key(key))
