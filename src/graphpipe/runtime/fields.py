"""
Field resolution instrumentation.

FieldInstrumentation is a graphql-core middleware created once per
execution. For every field of a concrete object type it:

1. starts the will_resolve_field hooks and keeps their end handler
2. defers to the parent type's batched ``resolve_object`` when declared,
   sharing one computation between all sibling fields of an object
3. calls the field resolver
4. reports the settled result (or error) to the end handler, returning the
   result to the engine in its original shape

A parent type opts into batched resolution through its extensions:

    GraphQLObjectType(
        "Author",
        fields={...},
        extensions={"resolve_object": load_author},
    )

    async def load_author(source, fields, context, info):
        # fields maps field name -> field nodes for every selected sibling
        return await context["db"].author(source["id"], columns=list(fields))
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from graphql import GraphQLResolveInfo

from ..plugins.base import WillResolveField

if TYPE_CHECKING:
    from ..plugins.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

RESOLVE_OBJECT_EXTENSION = "resolve_object"

FieldCallback = Callable[..., None]


def _noop_end_handler(error: Optional[BaseException] = None, result: Any = None) -> None:
    pass


def _is_introspection(info: GraphQLResolveInfo) -> bool:
    return info.field_name.startswith("__") or info.parent_type.name.startswith("__")


class PendingObject:
    """Selection accumulated for one parent object and its batched computation."""

    __slots__ = ("fields", "task")

    def __init__(self):
        self.fields: dict[str, list] = {}
        self.task: Optional[asyncio.Future] = None


class FieldInstrumentation:
    """
    Per-execution field middleware.

    Usage:
        instrumentation = FieldInstrumentation(dispatcher)
        result = await graphql.execute(schema, document, middleware=[instrumentation])
    """

    def __init__(self, field_hooks: Optional["Dispatcher"] = None):
        """
        Args:
            field_hooks: Dispatcher whose WillResolveField listeners observe every field
        """
        self.field_hooks = field_hooks
        # parent path -> pending batched resolution, scoped to this execution
        self._pending: dict[Any, PendingObject] = {}

    def resolve(self, next_: Callable, source: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
        if _is_introspection(info):
            return next_(source, info, **args)

        end_handler = self._will_resolve_field(source, args, info)

        extensions = info.parent_type.extensions or {}
        resolve_object = extensions.get(RESOLVE_OBJECT_EXTENSION)
        parent_path = info.path.prev

        try:
            if resolve_object is not None and parent_path is not None:
                result = self._resolve_from_object(next_, source, info, args, resolve_object, parent_path)
            else:
                result = next_(source, info, **args)
        except Exception as error:
            # Reported to the hook and to the engine alike
            end_handler(error)
            raise

        return when_result_is_finished(result, end_handler)

    def _will_resolve_field(self, source: Any, args: dict, info: GraphQLResolveInfo) -> FieldCallback:
        if self.field_hooks is None or not self.field_hooks.has_targets(WillResolveField):
            return _noop_end_handler
        return self.field_hooks.invoke_did_start_hook(WillResolveField, source, args, info.context, info)

    def _resolve_from_object(
        self,
        next_: Callable,
        source: Any,
        info: GraphQLResolveInfo,
        args: dict,
        resolve_object: Callable,
        parent_path: Any,
    ) -> Any:
        pending = self._pending.get(parent_path)
        if pending is None:
            pending = PendingObject()
            self._pending[parent_path] = pending
            # Runs on the next loop iteration, after every sibling has registered
            pending.task = asyncio.ensure_future(
                self._run_resolve_object(resolve_object, source, pending, info, parent_path)
            )

        pending.fields[info.field_name] = info.field_nodes
        task = pending.task

        async def resolve_field() -> Any:
            resolved_object = await task
            result = next_(resolved_object, info, **args)
            if inspect.isawaitable(result):
                result = await result
            return result

        return resolve_field()

    async def _run_resolve_object(
        self,
        resolve_object: Callable,
        source: Any,
        pending: PendingObject,
        info: GraphQLResolveInfo,
        parent_path: Any,
    ) -> Any:
        try:
            resolved = resolve_object(source, pending.fields, info.context, info)
            if inspect.isawaitable(resolved):
                resolved = await resolved
            return resolved
        finally:
            self._pending.pop(parent_path, None)


def when_result_is_finished(result: Any, callback: FieldCallback) -> Any:
    """
    Call ``callback`` once ``result`` is fully settled.

    The callback gets ``(None, value)`` on success or ``(error)`` on failure.
    Awaitables (and lists containing awaitables) are handed back as futures
    resolving to the same values, so the engine sees the same result shape.
    """
    if inspect.isawaitable(result):
        future = asyncio.ensure_future(result)
        future.add_done_callback(lambda done: _settle(done, callback))
        return future

    if isinstance(result, (list, tuple)) and any(inspect.isawaitable(item) for item in result):
        items = [asyncio.ensure_future(item) if inspect.isawaitable(item) else item for item in result]

        async def settle_all() -> list:
            values = []
            for item in items:
                values.append(await item if asyncio.isfuture(item) else item)
            return values

        asyncio.ensure_future(settle_all()).add_done_callback(lambda done: _settle(done, callback))
        # Tuple subclasses (NamedTuple) take positional fields
        return tuple(items) if isinstance(result, tuple) else items

    callback(None, result)
    return result


def _settle(done: asyncio.Future, callback: FieldCallback) -> None:
    if done.cancelled():
        callback(asyncio.CancelledError())
        return

    error = done.exception()
    if error is not None:
        callback(error)
    else:
        callback(None, done.result())
