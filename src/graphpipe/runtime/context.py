"""
Request context for GraphQL request processing.

Holds the mutable per-request state threaded through every pipeline phase.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from ..core.request_types import GraphQLRequest, GraphQLResponse, ResponseHttp

if TYPE_CHECKING:
    from graphql import DocumentNode, GraphQLError, OperationDefinitionNode

    from ..caching.base import KeyValueCache


@dataclass
class RequestMetrics:
    """Per-request bookkeeping exposed to plugins."""
    persisted_query_hit: bool = False
    persisted_query_register: bool = False


@dataclass
class RequestContext:
    """
    Context passed through the request pipeline.

    Contains:
    - request: The immutable inbound request
    - context: User-supplied context value handed to resolvers
    - query_hash / source / document: set once by the pipeline
    - operation / operation_name: the selected operation (None when anonymous or unresolved)
    - errors: the last error set reported through did_encounter_errors
    - response: the response being assembled
    - logger: used by the pipeline for this request (the pipeline module logger when None)
    """
    request: GraphQLRequest
    context: Any = field(default_factory=dict)
    cache: Optional["KeyValueCache"] = None
    debug: bool = False
    logger: Optional[logging.Logger] = None

    source: Optional[str] = None
    operation: Optional["OperationDefinitionNode"] = None
    operation_name: Optional[str] = None
    errors: Optional[list["GraphQLError"]] = None
    metrics: RequestMetrics = field(default_factory=RequestMetrics)
    response: GraphQLResponse = field(default_factory=lambda: GraphQLResponse(http=ResponseHttp()))

    _query_hash: Optional[str] = field(default=None, init=False, repr=False)
    _document: Optional["DocumentNode"] = field(default=None, init=False, repr=False)

    @property
    def query_hash(self) -> Optional[str]:
        return self._query_hash

    @query_hash.setter
    def query_hash(self, value: str) -> None:
        if self._query_hash is not None and self._query_hash != value:
            raise RuntimeError("query_hash is already set for this request")
        self._query_hash = value

    @property
    def document(self) -> Optional["DocumentNode"]:
        return self._document

    @document.setter
    def document(self, value: "DocumentNode") -> None:
        if self._document is not None and self._document is not value:
            raise RuntimeError("document is already set for this request")
        self._document = value
