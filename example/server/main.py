"""
Minimal graphpipe server.

Usage:
    uvicorn example.server.main:app

    curl -X POST localhost:8000/graphql -H 'content-type: application/json' \
        -d '{"query": "{ hello }"}'
"""

import logging
import time

from fastapi import FastAPI
from graphql import GraphQLField, GraphQLObjectType, GraphQLSchema, GraphQLString

from graphpipe import (
    ExecutionDidStart,
    ServerPlugin,
    build_pipeline_config,
    create_graphql_router,
    load_settings,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("example")

schema = GraphQLSchema(
    query=GraphQLObjectType(
        "Query",
        {"hello": GraphQLField(GraphQLString, resolve=lambda obj, info: "world")},
    )
)


class ExecutionTimer(ExecutionDidStart):
    def execution_did_start(self, request_context):
        started = time.perf_counter()

        def did_end(error=None):
            elapsed = (time.perf_counter() - started) * 1000
            logger.info(f"{request_context.operation_name or 'anonymous'} executed in {elapsed:.1f}ms")

        return did_end


class TimingPlugin(ServerPlugin):
    def request_did_start(self, request_context):
        return ExecutionTimer()


settings = load_settings()
config = build_pipeline_config(schema, settings, plugins=[TimingPlugin()])

app = FastAPI()
app.include_router(create_graphql_router(config, path=settings.graphql_path, debug=settings.debug))
