"""
Configuration loading and validation for the request pipeline.

PipelineConfig is what process_graphql_request() consumes. ServerSettings
is the deployable part of it, loaded from YAML:

    # graphpipe.yaml
    debug: false
    graphql_path: /graphql
    document_store_size: 1000
    persisted_queries: true
    persisted_query_ttl: 86400
    redis_url: redis://redis:6379/0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional

import yaml
from graphql import GraphQLSchema

from ..caching.base import InMemoryLRUCache, KeyValueCache, PrefixingKeyValueCache
from ..caching.redis_cache import RedisKeyValueCache
from .errors import ConfigError
from .identity import APQ_CACHE_PREFIX

if TYPE_CHECKING:
    from ..plugins.base import ServerPlugin
    from ..plugins.extensions import GraphQLExtension
    from ..runtime.data_sources import DataSourcesFactory

logger = logging.getLogger(__name__)


@dataclass
class PersistedQueryOptions:
    """Automatic persisted query store and optional TTL (seconds)."""
    cache: KeyValueCache
    ttl: Optional[int] = None


@dataclass
class PipelineConfig:
    """
    Options recognized by the request pipeline.

    Only ``schema`` is required.
    """
    schema: GraphQLSchema
    root_value: Any = None
    validation_rules: list = field(default_factory=list)
    executor: Optional[Callable] = None
    field_resolver: Optional[Callable] = None
    data_sources: Optional["DataSourcesFactory"] = None
    extensions: list[Callable[[], "GraphQLExtension"]] = field(default_factory=list)
    persisted_queries: Optional[PersistedQueryOptions] = None
    format_error: Optional[Callable] = None
    format_response: Optional[Callable] = None
    plugins: list["ServerPlugin"] = field(default_factory=list)
    document_store: Optional[KeyValueCache] = None
    parse_options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.schema, GraphQLSchema):
            raise ConfigError("schema must be a graphql.GraphQLSchema")

        if self.persisted_queries is not None:
            cache = self.persisted_queries.cache
            if not isinstance(cache, PrefixingKeyValueCache) or cache.prefix != APQ_CACHE_PREFIX:
                self.persisted_queries = replace(
                    self.persisted_queries,
                    cache=PrefixingKeyValueCache(cache, APQ_CACHE_PREFIX),
                )

    @property
    def persisted_query_cache(self) -> Optional[KeyValueCache]:
        return self.persisted_queries.cache if self.persisted_queries else None


@dataclass
class ServerSettings:
    """Deployment settings for a graphpipe server."""
    debug: bool = False
    graphql_path: str = "/graphql"
    document_store_size: int = 1000
    persisted_queries: bool = True
    persisted_query_ttl: Optional[int] = None
    redis_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerSettings":
        """Create settings from dictionary."""
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown settings: {sorted(unknown)}")

        settings = cls(**data)
        if settings.document_store_size < 1:
            raise ConfigError("document_store_size must be at least 1")
        return settings

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary for YAML serialization."""
        return {
            "debug": self.debug,
            "graphql_path": self.graphql_path,
            "document_store_size": self.document_store_size,
            "persisted_queries": self.persisted_queries,
            "persisted_query_ttl": self.persisted_query_ttl,
            "redis_url": self.redis_url,
        }

    def save(self, path: Path | str = "graphpipe.yaml") -> None:
        """Save settings to YAML file."""
        path = Path(path)
        content = yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        path.write_text(content)


def load_settings(path: Path | str = "graphpipe.yaml") -> ServerSettings:
    """Load settings from YAML file, falling back to defaults if it does not exist."""
    path = Path(path)
    if not path.exists():
        logger.debug(f"No settings file at {path}, using defaults")
        return ServerSettings()

    data = yaml.safe_load(path.read_text()) or {}
    return ServerSettings.from_dict(data)


def build_pipeline_config(
    schema: GraphQLSchema,
    settings: Optional[ServerSettings] = None,
    **overrides: Any,
) -> PipelineConfig:
    """
    Build a PipelineConfig from deployment settings.

    Args:
        schema: Executable schema
        settings: Deployment settings (defaults if omitted)
        **overrides: Any other PipelineConfig field (plugins, format_error, ...)

    Returns:
        PipelineConfig with a document store and, if enabled, an APQ store
    """
    settings = settings or ServerSettings()

    options: dict[str, Any] = {
        "document_store": InMemoryLRUCache(max_size=settings.document_store_size),
    }

    if settings.persisted_queries:
        if settings.redis_url:
            cache: KeyValueCache = RedisKeyValueCache(settings.redis_url)
        else:
            cache = InMemoryLRUCache(max_size=settings.document_store_size)
        options["persisted_queries"] = PersistedQueryOptions(cache=cache, ttl=settings.persisted_query_ttl)

    options.update(overrides)
    return PipelineConfig(schema=schema, **options)
