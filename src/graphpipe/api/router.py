"""
FastAPI router for the GraphQL endpoint.

Endpoints (path is configurable, default /graphql):
- POST - JSON body {"query", "operationName", "variables", "extensions"}
- GET  - same fields as query parameters; variables/extensions JSON-encoded.
         Only query operations are allowed over GET.

Status codes:
- 200: normal responses, including PersistedQueryNotFound/NotSupported
       (the client retries with the full query text)
- 400: malformed requests (bad JSON, missing query, hash mismatch, ...)
- HttpQueryError: whatever status the raising plugin chose
"""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import replace
from typing import Any, Callable, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from graphql import OperationType
from pydantic import ValidationError

from ..core.config import PipelineConfig
from ..core.errors import (
    HttpQueryError,
    InvalidRequestError,
    PersistedQueryNotFoundError,
    PersistedQueryNotSupportedError,
    format_errors,
)
from ..core.request_types import GraphQLRequest
from ..plugins.base import DidResolveOperation, ServerPlugin
from ..runtime.context import RequestContext
from ..runtime.pipeline import process_graphql_request

logger = logging.getLogger(__name__)

ContextFactory = Callable[[Request], Any]


class _QueryOnlyListener(DidResolveOperation):
    def did_resolve_operation(self, request_context: RequestContext) -> None:
        operation = request_context.operation
        if operation is not None and operation.operation != OperationType.QUERY:
            raise HttpQueryError(
                405,
                "GET supports only query operation",
                headers={"Allow": "POST"},
            )


class QueryOnlyPlugin(ServerPlugin):
    """Rejects mutations and subscriptions (used for GET requests)."""

    def request_did_start(self, request_context: RequestContext) -> _QueryOnlyListener:
        return _QueryOnlyListener()


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )


def _errors_response(status_code: int, errors: list[dict[str, Any]]) -> JSONResponse:
    return JSONResponse({"errors": errors}, status_code=status_code)


async def _default_context(request: Request) -> dict[str, Any]:
    return {"request": request}


def create_graphql_router(
    config: PipelineConfig,
    *,
    path: str = "/graphql",
    debug: bool = False,
    context_factory: Optional[ContextFactory] = None,
) -> APIRouter:
    """
    Create a FastAPI router serving the request pipeline.

    Args:
        config: Pipeline configuration
        path: Endpoint path
        debug: Include stacktraces in formatted errors
        context_factory: Builds the resolver context from the HTTP request
                         (sync or async); defaults to {"request": request}

    Returns:
        Configured FastAPI router
    """
    router = APIRouter()
    get_config = replace(config, plugins=[*config.plugins, QueryOnlyPlugin()])
    context_factory = context_factory or _default_context

    async def run(http_request: Request, payload: dict[str, Any], pipeline_config: PipelineConfig) -> Response:
        try:
            graphql_request = GraphQLRequest.model_validate(payload)
        except ValidationError as e:
            return _errors_response(400, [{"message": f"Invalid request: {_describe(e)}"}])

        context = context_factory(http_request)
        if inspect.isawaitable(context):
            context = await context

        request_context = RequestContext(request=graphql_request, context=context, debug=debug)

        try:
            response = await process_graphql_request(pipeline_config, request_context)
        except (PersistedQueryNotFoundError, PersistedQueryNotSupportedError) as e:
            return _errors_response(200, format_errors([e], config.format_error, debug))
        except InvalidRequestError as e:
            return _errors_response(400, format_errors([e], config.format_error, debug))
        except HttpQueryError as e:
            logger.debug(f"HTTP query error {e.status_code}: {e.message}")
            if e.is_graphql_error:
                return Response(e.message, status_code=e.status_code, headers=e.headers, media_type="application/json")
            return PlainTextResponse(e.message, status_code=e.status_code, headers=e.headers)

        status_code = 200
        headers: dict[str, str] = {}
        if response.http is not None:
            status_code = response.http.status or 200
            headers = response.http.headers

        return JSONResponse(response.to_dict(), status_code=status_code, headers=headers)

    @router.post(path)
    async def graphql_post(request: Request) -> Response:
        """Execute a GraphQL request sent as a JSON body."""
        try:
            body = await request.json()
        except ValueError:
            return _errors_response(400, [{"message": "POST body sent invalid JSON."}])

        if not isinstance(body, dict):
            return _errors_response(400, [{"message": "POST body must be a JSON object."}])

        return await run(request, body, config)

    @router.get(path)
    async def graphql_get(request: Request) -> Response:
        """Execute a GraphQL query sent as query parameters."""
        params = request.query_params
        payload: dict[str, Any] = {
            "query": params.get("query"),
            "operationName": params.get("operationName"),
        }

        for key in ("variables", "extensions"):
            raw = params.get(key)
            if raw is None:
                continue
            try:
                payload[key] = json.loads(raw)
            except ValueError:
                return _errors_response(400, [{"message": f"{key.capitalize()} are invalid JSON."}])

        return await run(request, payload, get_config)

    return router
