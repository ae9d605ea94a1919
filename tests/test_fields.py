import asyncio
import inspect

import pytest
from graphql import execute, parse

from graphpipe.plugins import Dispatcher, WillResolveField
from graphpipe.runtime import FieldInstrumentation, when_result_is_finished


class FieldRecorder(WillResolveField):
    def __init__(self):
        self.started = []
        self.finished = {}

    def will_resolve_field(self, source, args, context, info):
        key = ".".join(str(key) for key in info.path.as_list())
        self.started.append(key)

        def end(error=None, result=None):
            self.finished[key] = (error, result)

        return end


async def run(schema, query, middleware=None, **kwargs):
    result = execute(schema, parse(query), middleware=middleware, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


async def test_results_are_unchanged(schema):
    query = "{ hello greeting(name: \"ada\") slow numbers authors { id name } }"

    plain = await run(schema, query)
    instrumented = await run(schema, query, middleware=[FieldInstrumentation(Dispatcher([FieldRecorder()]))])

    assert instrumented.errors is None
    assert instrumented.data == plain.data
    assert instrumented.data["numbers"] == [1, 2, 3]


async def test_end_handler_sees_settled_values(schema, flush):
    recorder = FieldRecorder()

    result = await run(schema, "{ hello slow numbers }", middleware=[FieldInstrumentation(Dispatcher([recorder]))])
    await flush()

    assert result.errors is None
    assert recorder.started == ["hello", "slow", "numbers"]
    assert recorder.finished["hello"] == (None, "world")
    assert recorder.finished["slow"] == (None, "later")
    assert recorder.finished["numbers"] == (None, [1, 2, 3])


async def test_end_handler_sees_errors(schema, flush):
    recorder = FieldRecorder()

    result = await run(schema, "{ boom slowBoom }", middleware=[FieldInstrumentation(Dispatcher([recorder]))])
    await flush()

    assert result.data == {"boom": None, "slowBoom": None}
    assert sorted(error.message for error in result.errors) == ["boom", "slow boom"]

    error, _ = recorder.finished["boom"]
    assert isinstance(error, ValueError)
    error, _ = recorder.finished["slowBoom"]
    assert str(error) == "slow boom"


async def test_introspection_fields_are_skipped(schema):
    recorder = FieldRecorder()

    result = await run(schema, "{ __typename hello }", middleware=[FieldInstrumentation(Dispatcher([recorder]))])

    assert result.data == {"__typename": "Query", "hello": "world"}
    assert recorder.started == ["hello"]


async def test_works_without_field_hooks(schema):
    result = await run(schema, "{ hello slow }", middleware=[FieldInstrumentation()])

    assert result.data == {"hello": "world", "slow": "later"}


async def test_resolve_object_is_shared_by_sibling_fields(make_schema):
    calls = []

    def load_author(source, fields, context, info):
        calls.append((source["id"], sorted(fields)))
        return {**source, "name": source["name"].upper(), "bio": f"bio of {source['id']}"}

    schema = make_schema(resolve_object=load_author)
    instrumentation = FieldInstrumentation()

    result = await run(schema, "{ authors { name bio } }", middleware=[instrumentation])

    assert result.errors is None
    assert result.data == {
        "authors": [
            {"name": "ADA", "bio": "bio of 1"},
            {"name": "ALAN", "bio": "bio of 2"},
        ]
    }
    assert calls == [("1", ["bio", "name"]), ("2", ["bio", "name"])]
    assert instrumentation._pending == {}


async def test_async_resolve_object(make_schema):
    calls = []

    async def load_author(source, fields, context, info):
        calls.append(sorted(fields))
        await asyncio.sleep(0)
        return {**source, "bio": "async bio"}

    schema = make_schema(resolve_object=load_author)

    result = await run(schema, "{ authors { id bio } }", middleware=[FieldInstrumentation()])

    assert result.errors is None
    assert result.data["authors"][0] == {"id": "1", "bio": "async bio"}
    assert calls == [["bio", "id"], ["bio", "id"]]


async def test_resolve_object_failure_reaches_every_field(make_schema, flush):
    def load_author(source, fields, context, info):
        raise RuntimeError("author store down")

    recorder = FieldRecorder()
    schema = make_schema(resolve_object=load_author)

    result = await run(
        schema,
        "{ authors { name bio } }",
        middleware=[FieldInstrumentation(Dispatcher([recorder]))],
    )
    await flush()

    assert {error.message for error in result.errors} == {"author store down"}
    error, _ = recorder.finished["authors.0.name"]
    assert isinstance(error, RuntimeError)
    error, _ = recorder.finished["authors.1.bio"]
    assert isinstance(error, RuntimeError)


def test_when_result_is_finished_plain_value():
    seen = []

    assert when_result_is_finished(5, lambda *args: seen.append(args)) == 5
    assert seen == [(None, 5)]


async def test_when_result_is_finished_awaitable():
    seen = []

    async def value():
        return "done"

    future = when_result_is_finished(value(), lambda *args: seen.append(args))

    assert await future == "done"
    await asyncio.sleep(0)
    assert seen == [(None, "done")]


async def test_when_result_is_finished_awaitable_error():
    seen = []

    async def fail():
        raise KeyError("missing")

    future = when_result_is_finished(fail(), lambda *args: seen.append(args))

    with pytest.raises(KeyError):
        await future
    await asyncio.sleep(0)
    assert isinstance(seen[0][0], KeyError)


async def test_when_result_is_finished_list(flush):
    seen = []

    async def value(v):
        return v

    items = when_result_is_finished([1, value(2)], lambda *args: seen.append(args))

    assert isinstance(items, list)
    assert items[0] == 1
    assert await items[1] == 2
    await flush()
    assert seen == [(None, [1, 2])]


async def test_when_result_is_finished_named_tuple(flush):
    from typing import NamedTuple

    class Pair(NamedTuple):
        left: object
        right: object

    seen = []

    async def value(v):
        return v

    items = when_result_is_finished(Pair(1, value(2)), lambda *args: seen.append(args))

    assert isinstance(items, tuple)
    assert items[0] == 1
    assert await items[1] == 2
    await flush()
    assert seen == [(None, [1, 2])]
