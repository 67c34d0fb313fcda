"""Assemble outbound courier requests from a declarative RequestConfig.

``build_request`` is a pure transformation and never raises: malformed
pieces degrade (an unencodable form body becomes an empty string) rather
than failing mid-workflow. Pre-flight checks that *should* block a call
live separately in ``validate_request_config``.

Header assembly is an ordered reduction; each step may overwrite earlier
ones, compared case-insensitively:

    custom headers -> resolved auth headers -> Content-Type

so freshly resolved credentials always win over a stale custom header of
the same name, and Content-Type always matches the encoding used here.
"""

import ipaddress
import json
import logging
import os
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote, urlencode, urlsplit

from courier_bridge.errors.domain import ValidationError
from courier_bridge.services.integration_overrides import get_override, render_templates
from courier_bridge.services.integration_types import (
    BODY_METHODS,
    TRACK_SHIPMENT_INTENT,
    ApiKeyAuth,
    BuiltRequest,
    KeyValue,
    RequestConfig,
)

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

DEFAULT_TRACKING_BODY: dict[str, str] = {
    "docNo": "{docket}",
    "trackingNumber": "{docket}",
}

_LOCAL_HOSTNAMES = frozenset({"localhost", "localhost.localdomain", "ip6-localhost"})


def stringify(value: Any) -> str:
    """Render a JSON value the way a browser would put it in a query string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def set_header(headers: dict[str, str], name: str, value: str) -> dict[str, str]:
    """Return a copy of ``headers`` with ``name`` set, replacing any casing of it."""
    merged = {k: v for k, v in headers.items() if k.lower() != name.lower()}
    merged[name] = value
    return merged


def merge_headers(*layers: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Fold ordered header layers into one map, later entries winning."""
    headers: dict[str, str] = {}
    for layer in layers:
        for name, value in layer:
            headers = set_header(headers, name, value)
    return headers


def _pairs(items: list[KeyValue]) -> list[tuple[str, str]]:
    return [(item.key, stringify(item.value)) for item in items if item.key and item.value is not None]


def append_query_params(url: str, params: list[tuple[str, str]]) -> str:
    """Append encoded params using ``&`` if the URL already has a query."""
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


def _is_form_row(row: Any) -> bool:
    return isinstance(row, KeyValue) or (isinstance(row, dict) and isinstance(row.get("key"), str))


def form_rows(body: Any) -> list[KeyValue] | None:
    """Rows of a key/value-list body (``[{"key": ..., "value": ...}]``), else None."""
    if not isinstance(body, list) or not all(_is_form_row(row) for row in body):
        return None
    return [row if isinstance(row, KeyValue) else KeyValue.model_validate(row) for row in body]


def encode_form_body(body: Any) -> str:
    """Form-encode a mapping or an ordered key/value list.

    Any other shape encodes to an empty string.
    """
    if isinstance(body, dict):
        return urlencode([(str(k), stringify(v)) for k, v in body.items()])
    rows = form_rows(body)
    return urlencode(_pairs(rows)) if rows is not None else ""


def tracking_body_fields(docket: str, courier: str | None = None) -> dict[str, str]:
    """Fields merged into a tracking request body, honoring courier overrides."""
    override = get_override(courier)
    template = override.tracking_body if override and override.tracking_body else DEFAULT_TRACKING_BODY
    return render_templates(template, {"docket": docket})


def build_request(
    config: RequestConfig,
    resolved_auth_headers: dict[str, str],
    *,
    courier: str | None = None,
) -> BuiltRequest:
    """Build the outbound request for a config and its resolved auth headers.

    Args:
        config: Declarative request configuration.
        resolved_auth_headers: Output of auth resolution for ``config.auth``.
        courier: Courier name or id, used only for override lookup.

    Returns:
        BuiltRequest with final method, URL, headers and body. For
        body-bearing methods the body is a form-encoded string when
        ``is_form_url_encoded`` is set, otherwise the JSON structure.
    """
    method = config.method
    content_type = FORM_CONTENT_TYPE if config.is_form_url_encoded else JSON_CONTENT_TYPE
    headers = merge_headers(
        _pairs(config.headers),
        resolved_auth_headers.items(),
        [("Content-Type", content_type)],
    )

    query = _pairs(config.query_params)
    if isinstance(config.auth, ApiKeyAuth) and config.auth.api_key_location == "query" and config.auth.api_key:
        query.append((config.auth.api_key_name or "x-api-key", config.auth.api_key))
    url = append_query_params(config.url, query)

    is_tracking = config.api_intent == TRACK_SHIPMENT_INTENT and bool(config.test_docket)
    if is_tracking and method == "GET" and config.test_docket not in url:
        separator = "&" if "?" in url else "?"
        url = f"{url}{separator}trackingNumber={quote(config.test_docket, safe='')}"

    body: Any = None
    if method in BODY_METHODS:
        body = config.body
        rows = form_rows(body) if config.is_form_url_encoded else None
        if is_tracking and rows is not None:
            extra = tracking_body_fields(config.test_docket, courier)
            body = [row for row in rows if row.key not in extra]
            body += [KeyValue(key=k, value=v) for k, v in extra.items()]
        elif is_tracking and (body is None or isinstance(body, dict)):
            body = {**(body or {}), **tracking_body_fields(config.test_docket, courier)}
        if config.is_form_url_encoded:
            body = encode_form_body(body)

    return BuiltRequest(
        method=method,
        url=url,
        headers=headers,
        body=body,
        api_intent=config.api_intent,
    )


def private_hosts_allowed() -> bool:
    """Whether loopback/private targets are allowed (local mock couriers)."""
    return os.environ.get("COURIER_BRIDGE_ALLOW_PRIVATE_HOSTS", "").strip().lower() in (
        "1", "true", "yes", "on",
    )


def is_private_host(host: str) -> bool:
    """True for localhost names and loopback, private, link-local or reserved IPs."""
    host = host.strip("[]").lower()
    if host in _LOCAL_HOSTNAMES or host.endswith(".localhost"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
    )


def check_url(url: str, *, allow_private: bool | None = None) -> None:
    """Pre-flight check that ``url`` is absolute http(s) and publicly routable.

    Raises:
        ValidationError: Missing, malformed or private URL.
    """
    if not url or not url.strip():
        raise ValidationError("API URL is required.", error_code="E-2001")
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        raise ValidationError(f"Invalid URL format: '{url}'.", error_code="E-2002") from None
    if parts.scheme not in ("http", "https") or not host:
        raise ValidationError(f"Invalid URL format: '{url}'.", error_code="E-2002")

    if allow_private is None:
        allow_private = private_hosts_allowed()
    if not allow_private and is_private_host(host):
        raise ValidationError(
            f"Cannot connect to private IP address or localhost: '{host}'.",
            error_code="E-2003",
        )


def validate_request_config(config: RequestConfig, *, allow_private: bool | None = None) -> None:
    """Blocking pre-flight validation, run before any network I/O.

    Checks the target URL, the token endpoint for ``jwt_auth``, and that a
    tracking intent carries a docket number.

    Raises:
        ValidationError: With an E-2xxx code describing the first problem.
    """
    check_url(config.url, allow_private=allow_private)
    if config.auth.type == "jwt_auth":
        if not config.auth.jwt_auth_endpoint:
            raise ValidationError("JWT token endpoint is required for jwt_auth.", error_code="E-2005")
        check_url(config.auth.jwt_auth_endpoint, allow_private=allow_private)
    if config.api_intent == TRACK_SHIPMENT_INTENT and not (config.test_docket or "").strip():
        raise ValidationError(
            f"A test docket number is required for intent '{config.api_intent}'.",
            error_code="E-2004",
        )
