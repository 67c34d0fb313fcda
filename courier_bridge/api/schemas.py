"""Pydantic schemas for API request/response validation.

The courier-proxy body reuses RequestConfig so it validates exactly what
the browser sends (camelCase). Record-store responses are built from ORM
rows with ``from_attributes``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from courier_bridge.services.integration_types import RequestConfig


# Courier proxy


class CourierProxyRequest(RequestConfig):
    """Body of POST /courier-proxy: a RequestConfig plus lookup hints."""

    courier: str | None = None
    use_db_credentials: bool | None = None
    use_env_credentials: bool | None = None


# Couriers


class CourierCreate(BaseModel):
    """Request schema for creating a courier.

    Supplying ``request`` registers the courier from a successful test
    call: auth settings are taken from it and any secrets it carries are
    stored encrypted.
    """

    name: str = Field(..., min_length=1, max_length=200)
    auth_type: str = "none"
    api_base_url: str | None = None
    auth_config: dict[str, Any] = Field(default_factory=dict)
    api_intent: str | None = None
    request: RequestConfig | None = None


class CourierResponse(BaseModel):
    """Response schema for a courier. Secrets are never included."""

    id: str
    name: str
    api_base_url: str | None
    auth_type: str
    auth_config: dict[str, Any]
    api_intent: str | None
    created_at: str
    updated_at: str

    model_config = ConfigDict(from_attributes=True)


class CredentialsUpdate(BaseModel):
    """Request schema for storing a courier's credentials."""

    credentials: dict[str, Any] = Field(..., min_length=1)


class CredentialsStored(BaseModel):
    courier_id: str
    stored: bool = True


# Field mappings


class FieldMappingIn(BaseModel):
    """One mapping row as edited in the console."""

    api_field: str = Field(..., min_length=1)
    tms_field: str = ""
    api_type: str = "track_shipment"
    data_type: str = "string"


class FieldMappingsSave(BaseModel):
    mappings: list[FieldMappingIn]


class FieldMappingResponse(BaseModel):
    """Response schema for a persisted field mapping."""

    id: str
    courier_id: str
    api_field: str
    tms_field: str
    api_type: str
    data_type: str
    created_at: str
    updated_at: str

    model_config = ConfigDict(from_attributes=True)


# Clients


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    api_url: str | None = None


class ClientResponse(BaseModel):
    id: str
    name: str
    api_url: str | None
    created_at: str

    model_config = ConfigDict(from_attributes=True)


class CourierClientResponse(BaseModel):
    id: str
    courier_id: str
    client_id: str
    created_at: str

    model_config = ConfigDict(from_attributes=True)


# Tools


class FieldPathsRequest(BaseModel):
    """Any JSON response body to discover field paths in."""

    response: Any = None
    api_type: str = "track_shipment"


class FieldPathsResponse(BaseModel):
    """Discovered paths plus one unmapped draft per path."""

    paths: list[str]
    mappings: list[FieldMappingIn]


class FieldPreviewRequest(BaseModel):
    """Resolve a single path, or rebuild the subset holding several paths."""

    response: Any = None
    path: str | None = None
    paths: list[str] = Field(default_factory=list)


class FieldPreviewResponse(BaseModel):
    value: Any = None
    accessor: str | None = None
    fields: Any = None


class CurlParseRequest(BaseModel):
    command: str = Field(..., min_length=1)


class TmsFieldResponse(BaseModel):
    """Response schema for a canonical TMS field."""

    id: str
    name: str
    display_name: str
    description: str | None
    data_type: str
    is_required: bool

    model_config = ConfigDict(from_attributes=True)
