"""
Pydantic models for the GraphQL request/response envelope.

These define the structure of incoming requests and the normalized
response the pipeline hands back to the transport.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Input types (from client) ---

class PersistedQuery(BaseModel):
    """
    Automatic persisted query descriptor.

    Example:
    {"version": 1, "sha256Hash": "ecf4edb46db40b5132295c0291d62fb65d6759a9eedfa4d5d612dd5ec54a6b38"}
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: int
    sha256_hash: str = Field(alias="sha256Hash")


class RequestExtensions(BaseModel):
    """Request-level extensions. Unknown keys are kept as extra fields."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    persisted_query: Optional[PersistedQuery] = Field(default=None, alias="persistedQuery")


class GraphQLRequest(BaseModel):
    """
    Inbound GraphQL request.

    Example:
    {
        "query": "query Hero($id: ID!) { hero(id: $id) { name } }",
        "operationName": "Hero",
        "variables": {"id": "1000"},
        "extensions": {"persistedQuery": {"version": 1, "sha256Hash": "..."}}
    }
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    query: Optional[str] = None
    operation_name: Optional[str] = Field(default=None, alias="operationName")
    variables: Optional[dict[str, Any]] = None
    extensions: Optional[RequestExtensions] = None

    @property
    def persisted_query(self) -> Optional[PersistedQuery]:
        """Shortcut for ``extensions.persistedQuery``."""
        return self.extensions.persisted_query if self.extensions else None


# --- Output types (to client) ---

class ResponseHttp(BaseModel):
    """Transport hints set by plugins. Never serialized into the body."""
    status: Optional[int] = None
    headers: dict[str, str] = Field(default_factory=dict)


class GraphQLResponse(BaseModel):
    """
    Normalized response envelope.

    ``errors`` holds already formatted errors.
    """
    data: Any = None
    errors: Optional[list[dict[str, Any]]] = None
    extensions: Optional[dict[str, Any]] = None
    http: Optional[ResponseHttp] = None

    def to_dict(self) -> dict[str, Any]:
        """Client-facing body: errors, data and non-empty extensions."""
        payload: dict[str, Any] = {}
        if self.errors is not None:
            payload["errors"] = self.errors
        if self.data is not None or self.errors is None:
            payload["data"] = self.data
        if self.extensions:
            payload["extensions"] = self.extensions
        return payload
