"""
graphpipe - GraphQL request pipeline.

Turns an incoming GraphQL request into a validated operation, runs it
through an ordered plugin lifecycle, executes it with graphql-core and
returns a normalized response. Parsed documents are cached by query hash
and automatic persisted queries are supported.

Usage:
    from fastapi import FastAPI
    from graphpipe import build_pipeline_config, create_graphql_router, load_settings

    settings = load_settings("graphpipe.yaml")
    config = build_pipeline_config(schema, settings, plugins=[MyPlugin()])

    app = FastAPI()
    app.include_router(create_graphql_router(config, path=settings.graphql_path, debug=settings.debug))
"""

from __future__ import annotations

from .api import QueryOnlyPlugin, create_graphql_router
from .caching import (
    InMemoryLRUCache,
    KeyValueCache,
    PrefixingKeyValueCache,
    RedisKeyValueCache,
)
from .core import (
    APQ_CACHE_PREFIX,
    ConfigError,
    GraphPipeError,
    GraphQLRequest,
    GraphQLResponse,
    HttpQueryError,
    InvalidRequestError,
    MissingQueryError,
    PersistedQuery,
    PersistedQueryMismatchError,
    PersistedQueryNotFoundError,
    PersistedQueryNotSupportedError,
    PersistedQueryOptions,
    PipelineConfig,
    QueryIdentity,
    QuerySyntaxError,
    QueryValidationError,
    RequestExtensions,
    ResponseHttp,
    ServerSettings,
    UnsupportedPersistedQueryVersionError,
    build_pipeline_config,
    compute_query_hash,
    format_errors,
    load_settings,
    resolve_query_identity,
)
from .plugins import (
    DidEncounterErrors,
    DidResolveOperation,
    Dispatcher,
    ExecutionDidStart,
    ExtensionStack,
    GraphQLExtension,
    ParsingDidStart,
    ResponseForOperation,
    ServerPlugin,
    ValidationDidStart,
    WillResolveField,
    WillSendResponse,
)
from .runtime import (
    DataSource,
    FieldInstrumentation,
    RequestContext,
    RequestMetrics,
    RequestPipeline,
    process_graphql_request,
    when_result_is_finished,
)

__version__ = "0.1.0"

__all__ = [
    # API
    "create_graphql_router",
    "QueryOnlyPlugin",
    # Caching
    "KeyValueCache",
    "InMemoryLRUCache",
    "PrefixingKeyValueCache",
    "RedisKeyValueCache",
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
    # Plugins
    "ServerPlugin",
    "ParsingDidStart",
    "ValidationDidStart",
    "DidResolveOperation",
    "ResponseForOperation",
    "ExecutionDidStart",
    "WillResolveField",
    "DidEncounterErrors",
    "WillSendResponse",
    "Dispatcher",
    "GraphQLExtension",
    "ExtensionStack",
    # Runtime
    "RequestContext",
    "RequestMetrics",
    "DataSource",
    "FieldInstrumentation",
    "when_result_is_finished",
    "RequestPipeline",
    "process_graphql_request",
]
