"""
Core module - request types, identity resolution, errors and configuration.
"""

from __future__ import annotations

from .config import (
    PersistedQueryOptions,
    PipelineConfig,
    ServerSettings,
    build_pipeline_config,
    load_settings,
)
from .errors import (
    ConfigError,
    GraphPipeError,
    HttpQueryError,
    InvalidRequestError,
    MissingQueryError,
    PersistedQueryMismatchError,
    PersistedQueryNotFoundError,
    PersistedQueryNotSupportedError,
    QuerySyntaxError,
    QueryValidationError,
    UnsupportedPersistedQueryVersionError,
    format_errors,
    from_graphql_error,
    to_graphql_error,
)
from .identity import (
    APQ_CACHE_PREFIX,
    QueryIdentity,
    compute_query_hash,
    resolve_query_identity,
)
from .request_types import (
    GraphQLRequest,
    GraphQLResponse,
    PersistedQuery,
    RequestExtensions,
    ResponseHttp,
)

__all__ = [
    # Configuration
    "PipelineConfig",
    "PersistedQueryOptions",
    "ServerSettings",
    "build_pipeline_config",
    "load_settings",
    # Errors
    "GraphPipeError",
    "InvalidRequestError",
    "MissingQueryError",
    "UnsupportedPersistedQueryVersionError",
    "PersistedQueryMismatchError",
    "PersistedQueryNotSupportedError",
    "PersistedQueryNotFoundError",
    "QuerySyntaxError",
    "QueryValidationError",
    "HttpQueryError",
    "ConfigError",
    "format_errors",
    "from_graphql_error",
    "to_graphql_error",
    # Identity
    "APQ_CACHE_PREFIX",
    "QueryIdentity",
    "compute_query_hash",
    "resolve_query_identity",
    # Request types
    "GraphQLRequest",
    "GraphQLResponse",
    "PersistedQuery",
    "RequestExtensions",
    "ResponseHttp",
]
