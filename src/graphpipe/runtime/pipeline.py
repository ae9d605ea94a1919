"""
Request pipeline - turns a GraphQL request into a formatted response.

Phases, in order:
1. Identity: query text + hash, persisted query lookup
2. Document: document store lookup, or parse + validate + store
3. Operation: select the operation, did_resolve_operation hooks,
   register the persisted query
4. Execution: response_for_operation short-circuit, or execute
5. Response: extension data, format_response, will_send_response

Any failure reports through did_encounter_errors exactly once and ends the
pipeline with an error response. Request-shape errors from phase 1 and
HttpQueryError are reported and then raised for the transport to handle.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Optional, Sequence, Union

from graphql import (
    DocumentNode,
    ExecutionResult,
    GraphQLError,
    execute,
    get_operation_ast,
    parse,
    specified_rules,
    validate,
)

from ..core.config import PipelineConfig
from ..core.errors import (
    HttpQueryError,
    QuerySyntaxError,
    QueryValidationError,
    format_errors,
    from_graphql_error,
    to_graphql_error,
)
from ..core.identity import resolve_query_identity
from ..core.request_types import GraphQLResponse
from ..plugins.base import (
    DidEncounterErrors,
    DidResolveOperation,
    ExecutionDidStart,
    ParsingDidStart,
    ResponseForOperation,
    ValidationDidStart,
    WillSendResponse,
)
from ..plugins.dispatcher import Dispatcher
from ..plugins.extensions import ExtensionStack
from .context import RequestContext
from .data_sources import initialize_data_sources
from .fields import FieldInstrumentation

logger = logging.getLogger(__name__)

# Strong references to fire-and-forget cache writes until they finish
_background_tasks: set[asyncio.Task] = set()


def _fire_and_forget(coro: Any, log: logging.Logger, message: str) -> None:
    """Run a cache write in the background; failures become warnings."""
    task = asyncio.ensure_future(coro)
    _background_tasks.add(task)

    def done(finished: asyncio.Future) -> None:
        _background_tasks.discard(finished)
        if not finished.cancelled() and finished.exception() is not None:
            log.warning(f"{message}: {finished.exception()}")

    task.add_done_callback(done)


class RequestPipeline:
    """
    Processes one request.

    Usage:
        pipeline = RequestPipeline(config, request_context)
        response = await pipeline.run()
    """

    def __init__(self, config: PipelineConfig, request_context: RequestContext):
        self.config = config
        self.request_context = request_context
        self.logger = request_context.logger or logger
        self.extension_stack = ExtensionStack([factory() for factory in config.extensions])
        self.dispatcher = self._initialize_request_listener_dispatcher()

    def _initialize_request_listener_dispatcher(self) -> Dispatcher:
        listeners = []
        for plugin in self.config.plugins:
            listener = plugin.request_did_start(self.request_context)
            if listener is not None:
                listeners.append(listener)
        return Dispatcher(listeners)

    async def run(self) -> GraphQLResponse:
        ctx = self.request_context
        config = self.config

        if config.data_sources is not None:
            await initialize_data_sources(config.data_sources, ctx.context, ctx.cache)

        ctx.metrics.persisted_query_hit = False
        ctx.metrics.persisted_query_register = False

        try:
            identity = await resolve_query_identity(ctx.request, config.persisted_query_cache)
        except GraphQLError as error:
            await self._did_encounter_errors([error])
            raise

        ctx.query_hash = identity.query_hash
        ctx.source = identity.query
        ctx.metrics.persisted_query_hit = identity.persisted_query_hit
        ctx.metrics.persisted_query_register = identity.persisted_query_register

        request_did_end = self.extension_stack.request_did_start(
            query_string=ctx.request.query,
            operation_name=ctx.request.operation_name,
            variables=ctx.request.variables,
            extensions=ctx.request.extensions,
            context=ctx.context,
            persisted_query_hit=ctx.metrics.persisted_query_hit,
            persisted_query_register=ctx.metrics.persisted_query_register,
            request_context=ctx,
        )

        try:
            return await self._process()
        finally:
            request_did_end()

    async def _process(self) -> GraphQLResponse:
        ctx = self.request_context
        config = self.config

        document = await self._load_document(ctx.query_hash)

        if document is None:
            parsing_did_end = self.dispatcher.invoke_did_start_hook(ParsingDidStart, ctx)
            try:
                document = self._parse(ctx.source)
            except Exception as syntax_error:
                parsing_did_end(syntax_error)
                return await self._send_error_response(syntax_error, QuerySyntaxError)
            parsing_did_end()
            ctx.document = document

            validation_did_end = self.dispatcher.invoke_did_start_hook(ValidationDidStart, ctx)
            validation_errors = self._validate(document)
            if validation_errors:
                validation_did_end(validation_errors)
                return await self._send_error_response(validation_errors, QueryValidationError)
            validation_did_end()

            if config.document_store is not None:
                _fire_and_forget(
                    config.document_store.set(ctx.query_hash, document),
                    self.logger,
                    "Could not store validated document",
                )
        else:
            ctx.document = document

        operation = get_operation_ast(document, ctx.request.operation_name)
        ctx.operation = operation
        ctx.operation_name = operation.name.value if operation and operation.name else None
        self.logger.debug(f"Resolved operation {ctx.operation_name or '<anonymous>'} ({ctx.query_hash})")

        try:
            await self.dispatcher.invoke_hook_async(DidResolveOperation, ctx)
        except HttpQueryError as error:
            # Status code and headers belong to the transport
            await self._did_encounter_errors([GraphQLError(error.message, original_error=error)])
            raise
        except Exception as error:
            return await self._send_error_response(error)

        if ctx.metrics.persisted_query_register and config.persisted_queries is not None:
            _fire_and_forget(
                config.persisted_queries.cache.set(
                    ctx.query_hash,
                    ctx.source,
                    ttl=config.persisted_queries.ttl,
                ),
                self.logger,
                "Could not register persisted query",
            )

        response: Optional[GraphQLResponse] = await self.dispatcher.invoke_hooks_until_non_null(
            ResponseForOperation, ctx
        )
        if response is None:
            execution_did_end = self.dispatcher.invoke_did_start_hook(ExecutionDidStart, ctx)
            try:
                result = await self._execute(document)
                if result.errors:
                    await self._did_encounter_errors(result.errors)
            except Exception as execution_error:
                execution_did_end(execution_error)
                return await self._send_error_response(execution_error)
            execution_did_end()

            response = GraphQLResponse(
                data=result.data,
                errors=self._format_errors(result.errors) if result.errors else None,
                extensions=result.extensions,
            )

        formatted_extensions = self.extension_stack.format()
        if formatted_extensions:
            response.extensions = {**(response.extensions or {}), **formatted_extensions}

        if config.format_response is not None:
            formatted_response = config.format_response(response, ctx)
            if formatted_response is not None:
                response = formatted_response

        return await self._send_response(response)

    async def _load_document(self, query_hash: str) -> Optional[DocumentNode]:
        """Document store lookup. Read failures count as a miss."""
        if self.config.document_store is None:
            return None
        try:
            document = await self.config.document_store.get(query_hash)
        except Exception as e:
            self.logger.warning(f"An error occurred while attempting to read from the document store: {e}")
            return None
        if document is not None:
            self.logger.debug(f"Document store HIT: {query_hash}")
        return document

    def _parse(self, source: str) -> DocumentNode:
        parsing_did_end = self.extension_stack.parsing_did_start(source)
        try:
            return parse(source, **self.config.parse_options)
        finally:
            parsing_did_end()

    def _validate(self, document: DocumentNode) -> list[GraphQLError]:
        rules = list(specified_rules) + list(self.config.validation_rules)
        validation_did_end = self.extension_stack.validation_did_start()
        try:
            return validate(self.config.schema, document, rules)
        finally:
            validation_did_end()

    async def _execute(self, document: DocumentNode) -> ExecutionResult:
        ctx = self.request_context
        config = self.config

        root_value = config.root_value(document) if callable(config.root_value) else config.root_value
        execution_args: dict[str, Any] = {
            "schema": config.schema,
            "document": document,
            "root_value": root_value,
            "context_value": ctx.context,
            "variable_values": ctx.request.variables,
            "operation_name": ctx.request.operation_name,
            "field_resolver": config.field_resolver,
            "middleware": [FieldInstrumentation(self.dispatcher)],
        }

        execution_did_end = self.extension_stack.execution_did_start(execution_args)
        try:
            if config.executor is not None:
                result = config.executor(ctx, execution_args)
            else:
                result = execute(**execution_args)
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            execution_did_end()

    async def _send_response(self, response: GraphQLResponse) -> GraphQLResponse:
        ctx = self.request_context
        # Keep transport hints (http) from the context's response
        merged = ctx.response.model_copy(update={
            "errors": response.errors,
            "data": response.data,
            "extensions": response.extensions,
        })
        ctx.response = self.extension_stack.will_send_response(merged, ctx.context)
        await self.dispatcher.invoke_hook_async(WillSendResponse, ctx)
        return ctx.response

    async def _did_encounter_errors(self, errors: Sequence[BaseException]) -> None:
        ctx = self.request_context
        ctx.errors = [to_graphql_error(error) for error in errors]
        self.extension_stack.did_encounter_errors(ctx.errors)
        await self.dispatcher.invoke_hook_async(DidEncounterErrors, ctx)

    async def _send_error_response(
        self,
        errors: Union[BaseException, Sequence[BaseException]],
        error_class: Optional[type] = None,
    ) -> GraphQLResponse:
        if isinstance(errors, BaseException):
            errors = [errors]
        errors = [from_graphql_error(error, error_class) for error in errors]

        await self._did_encounter_errors(errors)
        return await self._send_response(GraphQLResponse(errors=self._format_errors(errors)))

    def _format_errors(self, errors: Sequence[BaseException]) -> list[dict[str, Any]]:
        return format_errors(
            errors,
            formatter=self.config.format_error,
            debug=self.request_context.debug,
        )


async def process_graphql_request(config: PipelineConfig, request_context: RequestContext) -> GraphQLResponse:
    """
    Process one GraphQL request.

    Args:
        config: Pipeline configuration
        request_context: Fresh context for this request

    Returns:
        The response sent to the client

    Raises:
        InvalidRequestError, PersistedQueryNotFoundError, PersistedQueryNotSupportedError:
            request-shape failures, already reported to did_encounter_errors
        HttpQueryError: raised by a did_resolve_operation hook, already reported
    """
    return await RequestPipeline(config, request_context).run()
