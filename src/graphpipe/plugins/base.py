"""
Plugin and request listener interfaces.

A plugin produces one listener per request. A listener opts into lifecycle
phases by inheriting the matching capability classes:

    class Timing(ParsingDidStart, ExecutionDidStart):
        def parsing_did_start(self, request_context):
            started = time.perf_counter()
            return lambda error=None: record("parse", time.perf_counter() - started)

        def execution_did_start(self, request_context):
            ...

    class TimingPlugin(ServerPlugin):
        def request_did_start(self, request_context):
            return Timing()

Three hook shapes exist:
- start/end: the start hook may return an end callback (ParsingDidStart,
  ValidationDidStart, ExecutionDidStart, WillResolveField)
- ordered: awaited one after another (DidResolveOperation,
  DidEncounterErrors, WillSendResponse)
- first non-null wins (ResponseForOperation)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

if TYPE_CHECKING:
    from graphql import GraphQLResolveInfo

    from ..core.request_types import GraphQLResponse
    from ..runtime.context import RequestContext

EndHook = Callable[..., None]
FieldEndHook = Callable[..., None]
MaybeAwaitable = Union[Awaitable[None], None]


class ParsingDidStart(ABC):
    hook_name = "parsing_did_start"

    @abstractmethod
    def parsing_did_start(self, request_context: "RequestContext") -> Optional[EndHook]:
        """Called before parsing. The end hook gets the syntax error, if any."""


class ValidationDidStart(ABC):
    hook_name = "validation_did_start"

    @abstractmethod
    def validation_did_start(self, request_context: "RequestContext") -> Optional[EndHook]:
        """Called before validation. The end hook gets the list of validation errors, if any."""


class DidResolveOperation(ABC):
    hook_name = "did_resolve_operation"

    @abstractmethod
    def did_resolve_operation(self, request_context: "RequestContext") -> MaybeAwaitable:
        """
        Called once the operation is known.

        Raising here rejects the request before execution and before the
        persisted query is registered.
        """


class ResponseForOperation(ABC):
    hook_name = "response_for_operation"

    @abstractmethod
    def response_for_operation(
        self, request_context: "RequestContext"
    ) -> Union[Awaitable[Optional["GraphQLResponse"]], Optional["GraphQLResponse"]]:
        """Return a response to skip execution entirely, or None."""


class ExecutionDidStart(ABC):
    hook_name = "execution_did_start"

    @abstractmethod
    def execution_did_start(self, request_context: "RequestContext") -> Optional[EndHook]:
        """Called before execution. The end hook gets the execution error, if any."""


class WillResolveField(ABC):
    hook_name = "will_resolve_field"

    @abstractmethod
    def will_resolve_field(
        self,
        source: Any,
        args: dict[str, Any],
        context: Any,
        info: "GraphQLResolveInfo",
    ) -> Optional[FieldEndHook]:
        """
        Called synchronously before every field resolver.

        The end hook is called as ``end(error)`` or ``end(None, result)``.
        """


class DidEncounterErrors(ABC):
    hook_name = "did_encounter_errors"

    @abstractmethod
    def did_encounter_errors(self, request_context: "RequestContext") -> MaybeAwaitable:
        """Called once per failure; ``request_context.errors`` holds the errors."""


class WillSendResponse(ABC):
    hook_name = "will_send_response"

    @abstractmethod
    def will_send_response(self, request_context: "RequestContext") -> MaybeAwaitable:
        """Called last; ``request_context.response`` may still be mutated."""


LIFECYCLE_CAPABILITIES: tuple[type, ...] = (
    ParsingDidStart,
    ValidationDidStart,
    DidResolveOperation,
    ResponseForOperation,
    ExecutionDidStart,
    WillResolveField,
    DidEncounterErrors,
    WillSendResponse,
)


class ServerPlugin:
    """Base class for plugins. Override request_did_start to return a listener."""

    def request_did_start(self, request_context: "RequestContext") -> Optional[object]:
        return None
