"""
Data sources - per-request collaborators initialized before any phase runs.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..core.errors import ConfigError

if TYPE_CHECKING:
    from ..caching.base import KeyValueCache

logger = logging.getLogger(__name__)

DATA_SOURCES_KEY = "data_sources"

DataSourcesFactory = Callable[[], dict[str, "DataSource"]]


class DataSource:
    """
    Base class for data sources.

    Usage:
        class PeopleAPI(DataSource):
            async def initialize(self, *, context, cache):
                self.token = context["token"]
                self.cache = cache

        config = PipelineConfig(schema=schema, data_sources=lambda: {"people": PeopleAPI()})
        # resolvers then use info.context["data_sources"]["people"]
    """

    async def initialize(self, *, context: Any, cache: Optional["KeyValueCache"]) -> None:
        """Called once per request with the user context and the shared cache."""
        return None


def _has_data_sources(context: Any) -> bool:
    if isinstance(context, MutableMapping):
        return DATA_SOURCES_KEY in context
    return hasattr(context, DATA_SOURCES_KEY)


async def initialize_data_sources(
    factory: DataSourcesFactory,
    context: Any,
    cache: Optional["KeyValueCache"] = None,
) -> dict[str, DataSource]:
    """
    Build data sources, initialize them concurrently and expose them on the context.

    Args:
        factory: Zero-argument callable returning {name: DataSource}
        context: User context (mapping or object)
        cache: Cache handed to every initialize() call

    Returns:
        The data sources map
    """
    data_sources = factory()

    await asyncio.gather(*[
        data_source.initialize(context=context, cache=cache)
        for data_source in data_sources.values()
    ])

    if _has_data_sources(context):
        raise ConfigError(
            "Please use the data_sources config option instead of putting data_sources on the context yourself."
        )

    if isinstance(context, MutableMapping):
        context[DATA_SOURCES_KEY] = data_sources
    else:
        setattr(context, DATA_SOURCES_KEY, data_sources)

    logger.debug(f"Initialized data sources: {list(data_sources)}")
    return data_sources
