from dataclasses import replace

import pytest

from graphpipe.caching import InMemoryLRUCache, PrefixingKeyValueCache, RedisKeyValueCache
from graphpipe.core import (
    ConfigError,
    PersistedQueryOptions,
    PipelineConfig,
    ServerSettings,
    build_pipeline_config,
    load_settings,
)


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(tmp_path / "graphpipe.yaml")

    assert settings == ServerSettings()
    assert settings.persisted_queries is True
    assert settings.document_store_size == 1000


def test_load_yaml(tmp_path):
    path = tmp_path / "graphpipe.yaml"
    path.write_text(
        "debug: true\n"
        "graphql_path: /api/graphql\n"
        "document_store_size: 50\n"
        "persisted_query_ttl: 3600\n"
    )

    settings = load_settings(path)

    assert settings.debug is True
    assert settings.graphql_path == "/api/graphql"
    assert settings.document_store_size == 50
    assert settings.persisted_query_ttl == 3600
    assert settings.redis_url is None


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "graphpipe.yaml"
    path.write_text("")

    assert load_settings(path) == ServerSettings()


def test_unknown_setting(tmp_path):
    path = tmp_path / "graphpipe.yaml"
    path.write_text("documnet_store_size: 10\n")

    with pytest.raises(ConfigError, match="documnet_store_size"):
        load_settings(path)


def test_document_store_size_must_be_positive():
    with pytest.raises(ConfigError):
        ServerSettings.from_dict({"document_store_size": 0})


def test_save_and_load(tmp_path):
    path = tmp_path / "graphpipe.yaml"
    settings = ServerSettings(debug=True, persisted_query_ttl=60, redis_url="redis://localhost:6379/1")

    settings.save(path)

    assert load_settings(path) == settings


def test_schema_is_required():
    with pytest.raises(ConfigError):
        PipelineConfig(schema="type Query { hello: String }")


def test_persisted_query_cache_is_prefixed(schema):
    inner = InMemoryLRUCache()
    config = PipelineConfig(schema=schema, persisted_queries=PersistedQueryOptions(cache=inner, ttl=10))

    cache = config.persisted_query_cache
    assert isinstance(cache, PrefixingKeyValueCache)
    assert cache.wrapped is inner
    assert cache.prefix == "apq:"
    assert config.persisted_queries.ttl == 10


def test_replace_does_not_prefix_twice(schema):
    config = PipelineConfig(schema=schema, persisted_queries=PersistedQueryOptions(cache=InMemoryLRUCache()))

    copy = replace(config, plugins=[])

    assert copy.persisted_query_cache is config.persisted_query_cache


def test_persisted_queries_disabled(schema):
    assert PipelineConfig(schema=schema).persisted_query_cache is None

    config = build_pipeline_config(schema, ServerSettings(persisted_queries=False))
    assert config.persisted_queries is None


def test_build_pipeline_config_defaults(schema):
    config = build_pipeline_config(schema, ServerSettings(document_store_size=25, persisted_query_ttl=90))

    assert isinstance(config.document_store, InMemoryLRUCache)
    assert config.document_store.max_size == 25
    assert isinstance(config.persisted_query_cache.wrapped, InMemoryLRUCache)
    assert config.persisted_queries.ttl == 90


def test_build_pipeline_config_with_redis(schema):
    config = build_pipeline_config(schema, ServerSettings(redis_url="redis://localhost:6379/0"))

    store = config.persisted_query_cache.wrapped
    assert isinstance(store, RedisKeyValueCache)
    assert store.redis_url == "redis://localhost:6379/0"
    assert not store.connected


def test_build_pipeline_config_overrides(schema):
    def format_error(error):
        return {"message": "hidden"}

    config = build_pipeline_config(schema, format_error=format_error, document_store=None)

    assert config.format_error is format_error
    assert config.document_store is None
