"""
Plugins module - lifecycle interfaces, dispatcher and legacy extensions.
"""

from __future__ import annotations

from .base import (
    DidEncounterErrors,
    DidResolveOperation,
    ExecutionDidStart,
    LIFECYCLE_CAPABILITIES,
    ParsingDidStart,
    ResponseForOperation,
    ServerPlugin,
    ValidationDidStart,
    WillResolveField,
    WillSendResponse,
)
from .dispatcher import Dispatcher
from .extensions import ExtensionStack, GraphQLExtension

__all__ = [
    # Plugin interfaces
    "ServerPlugin",
    "ParsingDidStart",
    "ValidationDidStart",
    "DidResolveOperation",
    "ResponseForOperation",
    "ExecutionDidStart",
    "WillResolveField",
    "DidEncounterErrors",
    "WillSendResponse",
    "LIFECYCLE_CAPABILITIES",
    # Dispatch
    "Dispatcher",
    # Legacy extensions
    "GraphQLExtension",
    "ExtensionStack",
]
