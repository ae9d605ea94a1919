"""
Custom exceptions for the graphpipe request pipeline.

Every error that can reach a client is a GraphQLError carrying an
``extensions["code"]``. HttpQueryError is the one exception that is not
turned into a response: it is re-raised so the transport can honor it.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Callable, Iterable, Optional

from graphql import GraphQLError

logger = logging.getLogger(__name__)

ErrorFormatter = Callable[[GraphQLError], dict]


class GraphPipeError(GraphQLError):
    """Base exception for all errors produced by the pipeline itself."""

    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, *, extensions: Optional[dict[str, Any]] = None, **kwargs: Any):
        super().__init__(message, extensions={"code": self.code, **(extensions or {})}, **kwargs)


class InvalidRequestError(GraphPipeError):
    """Raised when the request itself is malformed."""

    code = "BAD_REQUEST"


class MissingQueryError(InvalidRequestError):
    """Raised when neither query text nor a persisted query is supplied."""

    def __init__(self):
        super().__init__("Must provide query string.")


class UnsupportedPersistedQueryVersionError(InvalidRequestError):
    """Raised when the persisted query protocol version is not 1."""

    def __init__(self, version: Any = None):
        self.version = version
        super().__init__("Unsupported persisted query version")


class PersistedQueryMismatchError(InvalidRequestError):
    """Raised when the supplied sha256Hash does not match the query text."""

    def __init__(self):
        super().__init__("provided sha does not match query")


class PersistedQueryNotSupportedError(GraphPipeError):
    """Raised when a persisted query arrives but no persisted-query cache is configured."""

    code = "PERSISTED_QUERY_NOT_SUPPORTED"

    def __init__(self):
        super().__init__("PersistedQueryNotSupported")


class PersistedQueryNotFoundError(GraphPipeError):
    """Raised when a hash-only request references an unknown query."""

    code = "PERSISTED_QUERY_NOT_FOUND"

    def __init__(self):
        super().__init__("PersistedQueryNotFound")


class QuerySyntaxError(GraphPipeError):
    """Raised when the query text cannot be parsed."""

    code = "GRAPHQL_PARSE_FAILED"


class QueryValidationError(GraphPipeError):
    """Raised for each rule violated by the parsed document."""

    code = "GRAPHQL_VALIDATION_FAILED"


class ConfigError(Exception):
    """Raised when pipeline configuration is invalid."""
    pass


class HttpQueryError(Exception):
    """
    Transport signal raised from a lifecycle hook.

    The pipeline reports it through did_encounter_errors and then re-raises
    it unchanged, so the transport can set the status code and headers.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        is_graphql_error: bool = False,
        headers: Optional[dict[str, str]] = None,
    ):
        self.status_code = status_code
        self.message = message
        self.is_graphql_error = is_graphql_error
        self.headers = headers or {}
        super().__init__(message)


def to_graphql_error(error: BaseException) -> GraphQLError:
    """Wrap an arbitrary exception, leaving GraphQLErrors untouched."""
    if isinstance(error, GraphQLError):
        return error
    return GraphQLError(str(error), original_error=error)


def from_graphql_error(
    error: BaseException,
    error_class: Optional[type[GraphPipeError]] = None,
) -> GraphQLError:
    """
    Re-type an error as ``error_class`` while keeping its location data.

    Errors that already are pipeline errors are returned as they are.
    """
    error = to_graphql_error(error)
    if error_class is None or isinstance(error, GraphPipeError):
        return error

    extensions = dict(error.extensions or {})
    extensions.pop("code", None)
    return error_class(
        error.message,
        extensions=extensions,
        nodes=error.nodes,
        source=error.source,
        positions=error.positions,
        path=error.path,
        original_error=error.original_error or error,
    )


def _enrich(error: GraphQLError, debug: bool) -> GraphQLError:
    """Copy of ``error`` with the default code and, with ``debug``, the stacktrace."""
    extensions = dict(error.extensions or {})
    extensions.setdefault("code", "INTERNAL_SERVER_ERROR")

    if debug:
        origin = error.original_error or error
        extensions["exception"] = {
            "stacktrace": traceback.format_exception(type(origin), origin, origin.__traceback__),
        }

    return GraphQLError(
        error.message,
        nodes=error.nodes,
        source=error.source,
        positions=error.positions,
        path=error.path,
        original_error=error.original_error or error,
        extensions=extensions,
    )


def format_errors(
    errors: Iterable[BaseException],
    formatter: Optional[ErrorFormatter] = None,
    debug: bool = False,
) -> list[dict[str, Any]]:
    """
    Format errors for the client.

    Each error gets the default code (and, with ``debug``, its stacktrace)
    before it goes through exactly one formatting call. If the supplied
    formatter fails, a generic error takes its place (or, with ``debug``,
    the formatter's own failure).

    Args:
        errors: Errors to format (non-GraphQL exceptions are wrapped)
        formatter: Optional callable turning the enriched GraphQLError into a dict
        debug: Keep stacktraces in ``extensions.exception``

    Returns:
        List of formatted error dicts
    """
    result: list[dict[str, Any]] = []

    for error in errors:
        error = _enrich(to_graphql_error(error), debug)
        if formatter is None:
            result.append(error.formatted)
            continue

        try:
            formatted = formatter(error)
        except Exception as e:
            logger.error(f"Error formatter failed: {e}", exc_info=True)
            if debug:
                result.append(_enrich(to_graphql_error(e), debug).formatted)
            else:
                result.append({
                    "message": "Internal server error",
                    "extensions": {"code": "INTERNAL_SERVER_ERROR"},
                })
            continue

        if not debug and isinstance(formatted, dict):
            extensions = formatted.get("extensions")
            if isinstance(extensions, dict) and "exception" in extensions:
                formatted = {
                    **formatted,
                    "extensions": {k: v for k, v in extensions.items() if k != "exception"},
                }
        result.append(formatted)

    return result
