"""
Legacy per-request extensions.

Older instrumentation API kept for compatibility: every extension gets a
fresh instance per request (config.extensions holds factories) and may
contribute one entry to ``response.extensions`` through format().
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

if TYPE_CHECKING:
    from graphql import GraphQLError

    from ..core.request_types import GraphQLResponse

logger = logging.getLogger(__name__)

EndHandler = Callable[..., None]


class GraphQLExtension:
    """
    Base class for legacy extensions. Every hook is optional.

    Start hooks may return an end handler, called when the phase ends.
    """

    def request_did_start(self, **kwargs: Any) -> Optional[EndHandler]:
        return None

    def parsing_did_start(self, query_string: str) -> Optional[EndHandler]:
        return None

    def validation_did_start(self) -> Optional[EndHandler]:
        return None

    def execution_did_start(self, execution_args: dict[str, Any]) -> Optional[EndHandler]:
        return None

    def did_encounter_errors(self, errors: Sequence["GraphQLError"]) -> None:
        return None

    def will_send_response(self, response: "GraphQLResponse", context: Any) -> Optional["GraphQLResponse"]:
        """Return a replacement response, or None to keep it."""
        return None

    def format(self) -> Optional[tuple[str, Any]]:
        """Return a (key, value) pair to add to response.extensions."""
        return None


class ExtensionStack:
    """
    Combine multiple extensions.

    Start hooks are called in order, their end handlers in reverse order.
    """

    def __init__(self, extensions: Sequence[GraphQLExtension]):
        self.extensions = list(extensions)

    def _handle_did_start(self, end_handlers: list[Optional[EndHandler]]) -> EndHandler:
        handlers = [handler for handler in end_handlers if handler is not None]

        def did_end(*args: Any) -> None:
            for handler in reversed(handlers):
                handler(*args)

        return did_end

    def request_did_start(self, **kwargs: Any) -> EndHandler:
        return self._handle_did_start([ext.request_did_start(**kwargs) for ext in self.extensions])

    def parsing_did_start(self, query_string: str) -> EndHandler:
        return self._handle_did_start([ext.parsing_did_start(query_string) for ext in self.extensions])

    def validation_did_start(self) -> EndHandler:
        return self._handle_did_start([ext.validation_did_start() for ext in self.extensions])

    def execution_did_start(self, execution_args: dict[str, Any]) -> EndHandler:
        return self._handle_did_start([ext.execution_did_start(execution_args) for ext in self.extensions])

    def did_encounter_errors(self, errors: Sequence["GraphQLError"]) -> None:
        for ext in self.extensions:
            ext.did_encounter_errors(errors)

    def will_send_response(self, response: "GraphQLResponse", context: Any) -> "GraphQLResponse":
        for ext in reversed(self.extensions):
            replacement = ext.will_send_response(response, context)
            if replacement is not None:
                response = replacement
        return response

    def format(self) -> dict[str, Any]:
        """Collect format() pairs from every extension."""
        formatted: dict[str, Any] = {}
        for ext in self.extensions:
            entry = ext.format()
            if entry is not None:
                key, value = entry
                formatted[key] = value
        return formatted
