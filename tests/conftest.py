"""
Shared fixtures: a small executable schema and a recording plugin.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import pytest
from graphql import (
    GraphQLArgument,
    GraphQLField,
    GraphQLID,
    GraphQLInt,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLString,
)

from graphpipe.plugins import (
    DidEncounterErrors,
    DidResolveOperation,
    ExecutionDidStart,
    ParsingDidStart,
    ServerPlugin,
    ValidationDidStart,
    WillSendResponse,
)

AUTHORS = [{"id": "1", "name": "Ada"}, {"id": "2", "name": "Alan"}]


async def later(value: Any) -> Any:
    await asyncio.sleep(0)
    return value


def _boom(obj, info):
    raise ValueError("boom")


async def _slow_boom(obj, info):
    await asyncio.sleep(0)
    raise ValueError("slow boom")


def build_schema(resolve_object: Optional[Callable] = None) -> GraphQLSchema:
    author = GraphQLObjectType(
        "Author",
        {
            "id": GraphQLField(GraphQLNonNull(GraphQLID)),
            "name": GraphQLField(GraphQLString),
            "bio": GraphQLField(GraphQLString),
        },
        extensions={"resolve_object": resolve_object} if resolve_object else None,
    )

    query = GraphQLObjectType(
        "Query",
        {
            "hello": GraphQLField(GraphQLString, resolve=lambda obj, info: "world"),
            "greeting": GraphQLField(
                GraphQLString,
                args={"name": GraphQLArgument(GraphQLString)},
                resolve=lambda obj, info, name="you": f"hello {name}",
            ),
            "slow": GraphQLField(GraphQLString, resolve=lambda obj, info: later("later")),
            "numbers": GraphQLField(GraphQLList(GraphQLInt), resolve=lambda obj, info: [1, later(2), 3]),
            "boom": GraphQLField(GraphQLString, resolve=_boom),
            "slowBoom": GraphQLField(GraphQLString, resolve=_slow_boom),
            "authors": GraphQLField(GraphQLList(author), resolve=lambda obj, info: [dict(a) for a in AUTHORS]),
            "rootName": GraphQLField(GraphQLString, resolve=lambda obj, info: obj["name"] if obj else None),
            "viewer": GraphQLField(GraphQLString, resolve=lambda obj, info: info.context.get("viewer")),
        },
    )

    mutation = GraphQLObjectType(
        "Mutation",
        {
            "setGreeting": GraphQLField(
                GraphQLString,
                args={"value": GraphQLArgument(GraphQLNonNull(GraphQLString))},
                resolve=lambda obj, info, value: value,
            ),
        },
    )

    return GraphQLSchema(query=query, mutation=mutation)


class Recorder:
    """Collects lifecycle events from RecordingPlugin listeners."""

    def __init__(self):
        self.events: list[tuple[str, str]] = []
        self.end_args: dict[tuple[str, str], tuple] = {}
        self.reported: list[list] = []

    def plugin(self, name: str = "p") -> "RecordingPlugin":
        return RecordingPlugin(name, self)

    def hooks(self, name: str = "p") -> list[str]:
        return [hook for owner, hook in self.events if owner == name]


class RecordingListener(
    ParsingDidStart,
    ValidationDidStart,
    DidResolveOperation,
    ExecutionDidStart,
    DidEncounterErrors,
    WillSendResponse,
):
    def __init__(self, name: str, recorder: Recorder):
        self.name = name
        self.recorder = recorder

    def _start(self, hook: str):
        self.recorder.events.append((self.name, hook))
        end_hook = hook.replace("did_start", "did_end")

        def end(*args):
            self.recorder.events.append((self.name, end_hook))
            self.recorder.end_args[(self.name, end_hook)] = args

        return end

    def parsing_did_start(self, request_context):
        return self._start("parsing_did_start")

    def validation_did_start(self, request_context):
        return self._start("validation_did_start")

    def execution_did_start(self, request_context):
        return self._start("execution_did_start")

    async def did_resolve_operation(self, request_context):
        self.recorder.events.append((self.name, "did_resolve_operation"))

    async def did_encounter_errors(self, request_context):
        self.recorder.events.append((self.name, "did_encounter_errors"))
        self.recorder.reported.append(list(request_context.errors))

    def will_send_response(self, request_context):
        self.recorder.events.append((self.name, "will_send_response"))


class RecordingPlugin(ServerPlugin):
    def __init__(self, name: str, recorder: Recorder):
        self.name = name
        self.recorder = recorder

    def request_did_start(self, request_context):
        return RecordingListener(self.name, self.recorder)


@pytest.fixture
def schema() -> GraphQLSchema:
    return build_schema()


@pytest.fixture
def make_schema() -> Callable[..., GraphQLSchema]:
    return build_schema


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def flush():
    """Let background tasks (cache writes, field callbacks) run."""

    async def _flush(rounds: int = 10):
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _flush
