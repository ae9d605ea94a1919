"""
Query identity resolution.

Maps a request to (query text, query hash) and implements the automatic
persisted query (APQ) exchange:

1. Client sends only {"persistedQuery": {"version": 1, "sha256Hash": H}}
2. Unknown H -> PersistedQueryNotFound, client resends with full text
3. Full text + matching H -> registered (written later by the pipeline)
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from ..caching.base import KeyValueCache
from .errors import (
    MissingQueryError,
    PersistedQueryMismatchError,
    PersistedQueryNotFoundError,
    PersistedQueryNotSupportedError,
    UnsupportedPersistedQueryVersionError,
)
from .request_types import GraphQLRequest

logger = logging.getLogger(__name__)

APQ_CACHE_PREFIX = "apq:"
SUPPORTED_PERSISTED_QUERY_VERSION = 1


def compute_query_hash(query: str) -> str:
    """Hex SHA-256 of the UTF-8 query text."""
    return hashlib.sha256(query.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class QueryIdentity:
    """Resolved query text plus its hash and APQ bookkeeping flags."""
    query: str
    query_hash: str
    persisted_query_hit: bool = False
    persisted_query_register: bool = False


async def resolve_query_identity(
    request: GraphQLRequest,
    persisted_query_cache: Optional[KeyValueCache] = None,
) -> QueryIdentity:
    """
    Resolve query text and hash for a request.

    Args:
        request: Inbound request
        persisted_query_cache: APQ store (already prefixed), or None if APQ is disabled

    Returns:
        QueryIdentity

    Raises:
        PersistedQueryNotSupportedError: APQ requested but not configured
        UnsupportedPersistedQueryVersionError: version other than 1
        PersistedQueryNotFoundError: hash-only request for an unknown hash
        PersistedQueryMismatchError: query text does not hash to sha256Hash
        MissingQueryError: no query text and no persisted query
    """
    query = request.query
    persisted_query = request.persisted_query

    if persisted_query is None:
        if not query:
            raise MissingQueryError()
        return QueryIdentity(query=query, query_hash=compute_query_hash(query))

    if persisted_query_cache is None:
        raise PersistedQueryNotSupportedError()
    if persisted_query.version != SUPPORTED_PERSISTED_QUERY_VERSION:
        raise UnsupportedPersistedQueryVersionError(persisted_query.version)

    query_hash = persisted_query.sha256_hash

    if query is None:
        try:
            query = await persisted_query_cache.get(query_hash)
        except Exception as e:
            logger.warning(f"Persisted query cache read error for {query_hash}: {e}")
            query = None

        if not query:
            raise PersistedQueryNotFoundError()
        return QueryIdentity(query=query, query_hash=query_hash, persisted_query_hit=True)

    if compute_query_hash(query) != query_hash:
        raise PersistedQueryMismatchError()

    # Written by the pipeline once did_resolve_operation listeners accept the request
    return QueryIdentity(query=query, query_hash=query_hash, persisted_query_register=True)
