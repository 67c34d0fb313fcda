"""Compile courier field mappings into a standalone JavaScript adapter module.

The generated module exports one object named ``<slug>Mapping`` with an
entry per API type (``track_shipment_response`` ...) holding:

- ``is_success``: ``payload?.shipment?.result === "success"``
- ``tracking_provider``: the lowercased courier name
- one accessor per mapping, ``(payload) => payload?.a?.b?.[0]?.c``
- ``timestamp``: ``() => Date.now()``

For ``jwt_auth`` couriers it also emits ``generate_token_request`` and a
``handle_token_refresh`` guard. The embedded ``refreshAuthToken`` helper
follows the same token protocol as auth_resolver: headers only when key and
value are set, JSON Content-Type by default, a body only for POST/PUT/PATCH,
and a dot-only token path with the same two failure messages.
"""

import json
from collections.abc import Sequence
from typing import Any, Protocol

from courier_bridge.services.integration_overrides import normalize_courier_id
from courier_bridge.services.integration_types import (
    BODY_METHODS,
    DEFAULT_TOKEN_PATH,
    JwtAuth,
)
from courier_bridge.services.path_extractor import TOKEN_PATH_SEPARATOR, generate_path_accessor
from courier_bridge.services.response_classifier import DEFAULT_TIMEOUT_SECONDS

MODULE_EXTENSION = "js"

SUCCESS_INDICATOR_PATH = "shipment.result"
SUCCESS_INDICATOR_VALUE = "success"

# Lowercased message fragments that mark a failed call as an expired token.
AUTH_FAILURE_MARKERS: tuple[str, ...] = ("unauthorized", "token expired", "invalid token")


class CourierLike(Protocol):
    name: str
    auth_type: str | None
    auth_config: dict[str, Any] | None


class MappingLike(Protocol):
    api_field: str
    tms_field: str
    api_type: str


def slugify_courier_name(name: str) -> str:
    """``"Blue Dart Express"`` -> ``bluedartexpress``; empty names become ``courier``."""
    return normalize_courier_id(name) or "courier"


def module_filename(courier_name: str) -> str:
    """Download filename for a courier's generated module."""
    return f"{slugify_courier_name(courier_name)}_mapping.{MODULE_EXTENSION}"


def _js_string(value: str) -> str:
    return json.dumps(value)


def _comment_text(value: str) -> str:
    """Single-line text that cannot close a block comment."""
    return " ".join(value.split()).replace("*/", "* /")


def _js_json(value: Any, indent: int) -> str:
    text = json.dumps(value, indent=2)
    return text.replace("\n", "\n" + " " * indent)


def _object_name(courier_name: str) -> str:
    slug = slugify_courier_name(courier_name)
    if slug[0].isdigit():
        slug = f"_{slug}"
    return f"{slug}Mapping"


_REFRESH_HELPER = """\
const BODY_METHODS = __BODY_METHODS__;

/**
 * Fetch a fresh bearer token using the stored token request.
 * @param {Object} authConfig - generate_token_request entry
 * @returns {Promise<string>} The token
 */
async function refreshAuthToken(authConfig) {
  const headers = {};
  for (const header of authConfig.headers || []) {
    if (header.key && header.value) {
      headers[header.key] = String(header.value);
    }
  }
  if (!Object.keys(headers).some((name) => name.toLowerCase() === 'content-type')) {
    headers['Content-Type'] = 'application/json';
  }

  const method = (authConfig.method || 'POST').toUpperCase();
  const response = await axios({
    method,
    url: authConfig.endpoint,
    headers,
    data: BODY_METHODS.includes(method) ? (authConfig.body || {}) : undefined,
    timeout: __TIMEOUT_MS__,
    validateStatus: () => true
  });

  if (response.status >= 400) {
    throw new Error(`Failed to fetch JWT token: HTTP ${response.status}`);
  }

  const tokenPath = authConfig.tokenPath || __DEFAULT_TOKEN_PATH__;
  let token = response.data;
  for (const part of tokenPath.split(__TOKEN_PATH_SEPARATOR__)) {
    if (token && typeof token === 'object' && part in token) {
      token = token[part];
    } else {
      throw new Error(`Token path "${tokenPath}" not found in response`);
    }
  }

  if (!token || typeof token !== 'string') {
    throw new Error(`Token not found in response using path "${tokenPath}"`);
  }
  return token;
}
"""

_REFRESH_GUARD = """\
  "handle_token_refresh": async (error) => {
    const status = error?.response?.status ?? error?.status;
    const message = String(error?.response?.data?.message ?? error?.message ?? '').toLowerCase();
    const isAuthError = status === 401 || __AUTH_MARKERS__.some((marker) => message.includes(marker));
    if (!isAuthError) {
      return null;
    }
    try {
      return await refreshAuthToken(__OBJECT_NAME__.generate_token_request);
    } catch (refreshError) {
      console.error('Failed to refresh token:', refreshError.message);
      return null;
    }
  },
"""


def _render_refresh_helper() -> str:
    return (
        _REFRESH_HELPER
        .replace("__BODY_METHODS__", json.dumps(sorted(BODY_METHODS)))
        .replace("__TIMEOUT_MS__", str(int(DEFAULT_TIMEOUT_SECONDS * 1000)))
        .replace("__DEFAULT_TOKEN_PATH__", _js_string(DEFAULT_TOKEN_PATH))
        .replace("__TOKEN_PATH_SEPARATOR__", _js_string(TOKEN_PATH_SEPARATOR))
    )


def _jwt_spec(courier: CourierLike) -> JwtAuth | None:
    if courier.auth_type != "jwt_auth" or not courier.auth_config:
        return None
    spec = JwtAuth.model_validate({**courier.auth_config, "type": "jwt_auth"})
    return spec if spec.jwt_auth_endpoint else None


def _token_request_entry(spec: JwtAuth) -> str:
    headers = [
        {"key": h.key, "value": h.value}
        for h in spec.jwt_auth_headers
        if h.key and h.value not in (None, "")
    ]
    body = spec.jwt_auth_body if spec.jwt_auth_body is not None else {}
    return (
        '  "generate_token_request": {\n'
        f'    "endpoint": {_js_string(spec.jwt_auth_endpoint)},\n'
        f'    "method": {_js_string(spec.jwt_auth_method)},\n'
        f'    "headers": {_js_json(headers, 4)},\n'
        f'    "body": {_js_json(body, 4)},\n'
        f'    "tokenPath": {_js_string(spec.jwt_token_path or DEFAULT_TOKEN_PATH)}\n'
        "  },\n"
    )


def group_mappings(mappings: Sequence[MappingLike]) -> dict[str, dict[str, str]]:
    """Group mapped fields by API type, skipping unmapped rows.

    Returns:
        ``{api_type: {tms_field: api_field}}`` in first-seen order; a repeated
        tms_field within one API type keeps the last mapping.
    """
    grouped: dict[str, dict[str, str]] = {}
    for mapping in mappings:
        if not mapping.tms_field or not mapping.api_field:
            continue
        grouped.setdefault(mapping.api_type or "track_shipment", {})[mapping.tms_field] = mapping.api_field
    return grouped


def _response_entry(api_type: str, fields: dict[str, str], provider: str) -> str:
    success = generate_path_accessor(SUCCESS_INDICATOR_PATH)
    lines = [
        f'  {_js_string(f"{api_type}_response")}: {{',
        f'    "is_success": (payload) => {success} === {_js_string(SUCCESS_INDICATOR_VALUE)},',
        f'    "tracking_provider": {_js_string(provider)},',
    ]
    for tms_field, api_field in fields.items():
        lines.append(f"    {_js_string(tms_field)}: (payload) => {generate_path_accessor(api_field)},")
    lines.append('    "timestamp": () => Date.now()')
    lines.append("  },")
    return "\n".join(lines) + "\n"


def compile_module(courier: CourierLike, mappings: Sequence[MappingLike]) -> str:
    """Generate the adapter module source for a courier.

    Args:
        courier: Object with ``name``, ``auth_type`` and ``auth_config``
            (the stored jwt_auth fields, camelCase or snake_case).
        mappings: Objects with ``api_field``, ``tms_field`` and ``api_type``.

    Returns:
        CommonJS module source text.
    """
    object_name = _object_name(courier.name)
    jwt_spec = _jwt_spec(courier)

    parts = [
        "/**\n"
        f" * Field mapping adapter for {_comment_text(courier.name)}.\n"
        " * Generated by courier-bridge. Do not edit by hand.\n"
        " */\n",
        "const axios = require('axios');\n" if jwt_spec else "",
    ]
    if jwt_spec:
        parts.append("\n" + _render_refresh_helper())
    parts.append(f"\nconst {object_name} = {{\n")

    if jwt_spec:
        parts.append(_token_request_entry(jwt_spec))

    provider = courier.name.lower()
    for api_type, fields in group_mappings(mappings).items():
        parts.append(_response_entry(api_type, fields, provider))

    if jwt_spec:
        parts.append(
            _REFRESH_GUARD
            .replace("__AUTH_MARKERS__", json.dumps(list(AUTH_FAILURE_MARKERS)))
            .replace("__OBJECT_NAME__", object_name)
        )

    parts.append(f"}};\n\nmodule.exports = {object_name};\n")
    return "".join(parts)
