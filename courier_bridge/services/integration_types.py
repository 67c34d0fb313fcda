"""Shared types for courier request configuration and call results.

Neutral module with no DB or HTTP imports. Request-side types are pydantic
models so they validate straight off the wire (camelCase aliases, matching
what the browser sends); result-side types are plain dataclasses.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

BODY_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH"})

TRACK_SHIPMENT_INTENT = "track_shipment"

DEFAULT_TOKEN_PATH = "access_token"

API_INTENTS: tuple[str, ...] = (
    "track_shipment",
    "generate_auth_token",
    "create_shipment",
    "cancel_shipment",
    "get_rates",
    "schedule_pickup",
    "get_label",
    "get_pod",
    "epod",
)


class _WireModel(BaseModel):
    """Base for models parsed from browser JSON (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeyValue(_WireModel):
    """One row of an ordered header or query-parameter list."""

    key: str = ""
    value: Any = ""


class NoAuth(_WireModel):
    type: Literal["none"] = "none"


class BasicAuth(_WireModel):
    type: Literal["basic"] = "basic"
    username: str = ""
    password: str = ""


class BearerAuth(_WireModel):
    type: Literal["bearer"] = "bearer"
    token: str = ""


class ApiKeyAuth(_WireModel):
    type: Literal["api_key"] = "api_key"
    api_key: str = ""
    api_key_name: str = "x-api-key"
    api_key_location: Literal["header", "query"] = "header"


class JwtAuth(_WireModel):
    """Two-phase auth: fetch a token first, then call as bearer."""

    type: Literal["jwt_auth"] = "jwt_auth"
    jwt_auth_endpoint: str = ""
    jwt_auth_method: HttpMethod = "POST"
    jwt_auth_headers: list[KeyValue] = Field(default_factory=list)
    jwt_auth_body: Any = None
    jwt_token_path: str = DEFAULT_TOKEN_PATH

    @field_validator("jwt_auth_method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


AuthSpec = Annotated[
    Union[NoAuth, BasicAuth, BearerAuth, ApiKeyAuth, JwtAuth],
    Field(discriminator="type"),
]

AUTH_TYPES: tuple[str, ...] = ("none", "basic", "bearer", "api_key", "jwt_auth")


class RequestConfig(_WireModel):
    """Declarative description of one outbound courier API call.

    Attributes:
        url: Absolute http(s) URL. Checked pre-flight, not at parse time.
        method: HTTP method.
        auth: Exactly one auth mode.
        headers: Ordered custom headers. Later duplicates win.
        query_params: Ordered query parameters appended to the URL.
        body: JSON-serializable body, or a mapping to form-encode.
        is_form_url_encoded: Send the body as application/x-www-form-urlencoded.
        api_intent: Free-form tag. ``track_shipment`` gets augmentation.
        test_docket: Tracking number injected for tracking intents.
    """

    url: str = ""
    method: HttpMethod = "GET"
    auth: AuthSpec = Field(default_factory=NoAuth)
    headers: list[KeyValue] = Field(default_factory=list)
    query_params: list[KeyValue] = Field(default_factory=list)
    body: Any = None
    is_form_url_encoded: bool = False
    api_intent: str = ""
    test_docket: str | None = None

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("headers", "query_params", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v


@dataclass(frozen=True)
class ResolvedAuth:
    """Headers produced by auth resolution plus the spec actually used.

    For ``jwt_auth`` the effective spec is always a ``BearerAuth`` carrying
    the fetched token.
    """

    headers: dict[str, str]
    effective_spec: NoAuth | BasicAuth | BearerAuth | ApiKeyAuth


@dataclass(frozen=True)
class BuiltRequest:
    """Fully assembled outbound request, ready to dispatch."""

    method: str
    url: str
    headers: dict[str, str]
    body: Any = None
    api_intent: str = ""


def utc_timestamp() -> str:
    """Current UTC time in ISO8601 with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ApiSuccess:
    """Successful call: status < 400 with the parsed response body."""

    data: Any
    status: int = 200

    @property
    def is_error(self) -> bool:
        return False


@dataclass
class ApiError:
    """Normalized failure of a courier call.

    ``code`` is a transport code (``ECONNREFUSED``, ``ETIMEDOUT``...),
    ``HTTP_<status>`` for status errors, or the registry code for token
    failures. ``error_code`` is always the E-XXXX registry code.
    """

    message: str
    is_network_error: bool
    code: str | None = None
    error_code: str | None = None
    status: int | None = None
    status_text: str | None = None
    details: Any = field(default_factory=dict)
    url: str | None = None
    method: str | None = None
    api_intent: str | None = None
    timestamp: str = field(default_factory=utc_timestamp)

    @property
    def is_error(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the in-band ``{error: true, ...}`` wire shape."""
        return {
            "error": True,
            "status": self.status,
            "statusText": self.status_text,
            "message": self.message,
            "details": self.details,
            "isNetworkError": self.is_network_error,
            "code": self.code,
            "errorCode": self.error_code,
            "url": self.url,
            "method": self.method,
            "apiIntent": self.api_intent,
            "timestamp": self.timestamp,
        }


ApiResult = ApiSuccess | ApiError
