"""
Caching module - document store and persisted-query store backends.
"""

from __future__ import annotations

from .base import InMemoryLRUCache, KeyValueCache, PrefixingKeyValueCache
from .redis_cache import RedisKeyValueCache

__all__ = [
    "KeyValueCache",
    "InMemoryLRUCache",
    "PrefixingKeyValueCache",
    "RedisKeyValueCache",
]
