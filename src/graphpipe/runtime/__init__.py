"""
Runtime module - request pipeline, context and field instrumentation.
"""

from __future__ import annotations

from .context import RequestContext, RequestMetrics
from .data_sources import DataSource, initialize_data_sources
from .fields import FieldInstrumentation, when_result_is_finished
from .pipeline import RequestPipeline, process_graphql_request

__all__ = [
    "RequestContext",
    "RequestMetrics",
    "DataSource",
    "initialize_data_sources",
    "FieldInstrumentation",
    "when_result_is_finished",
    "RequestPipeline",
    "process_graphql_request",
]
