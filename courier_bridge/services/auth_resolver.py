"""Turn a declarative AuthSpec into concrete request headers.

Only ``jwt_auth`` performs I/O: one token request whose outcome goes through
the same classifier as the main call, so a rejected token request keeps its
status and body for diagnosis. The token is read from the response with a
dot-only path and the spec collapses to ``bearer`` for the main request.

Header rules by type:
    basic    -> Authorization: Basic base64(username:password)
    bearer   -> Authorization: Bearer <token>  (prefix added once)
    api_key  -> <apiKeyName>: <apiKey> when location is header
                (query placement happens in request_adapter)
    none     -> nothing

Courier overrides (see integration_overrides) are layered on top of these,
whatever the declared type.
"""

import base64
import logging

import httpx

from courier_bridge.errors.domain import HttpError, NetworkError, TokenExtractionError, ValidationError
from courier_bridge.services.integration_overrides import get_override, render_templates
from courier_bridge.services.integration_types import (
    BODY_METHODS,
    DEFAULT_TOKEN_PATH,
    ApiError,
    ApiKeyAuth,
    AuthSpec,
    BasicAuth,
    BearerAuth,
    BuiltRequest,
    JwtAuth,
    NoAuth,
    ResolvedAuth,
)
from courier_bridge.services.path_extractor import get_by_dotted_path
from courier_bridge.services.request_adapter import (
    JSON_CONTENT_TYPE,
    merge_headers,
    stringify,
)
from courier_bridge.services.response_classifier import DEFAULT_TIMEOUT_SECONDS, execute

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

_NOT_FOUND = object()


def ensure_bearer_prefix(token: str) -> str:
    """Prefix ``Bearer `` unless the token already carries it (any case)."""
    token = token.strip()
    if token.lower().startswith(BEARER_PREFIX.lower()):
        return token
    return f"{BEARER_PREFIX}{token}"


def strip_bearer_prefix(token: str) -> str:
    token = token.strip()
    if token.lower().startswith(BEARER_PREFIX.lower()):
        return token[len(BEARER_PREFIX):].strip()
    return token


def materialize_auth_headers(spec: NoAuth | BasicAuth | BearerAuth | ApiKeyAuth) -> dict[str, str]:
    """Headers for an already-resolved (non-jwt) auth spec.

    A bearer spec with no token is a soft failure: it is logged and the
    request proceeds without an Authorization header.
    """
    if isinstance(spec, BasicAuth):
        raw = f"{spec.username}:{spec.password}".encode("utf-8")
        return {"Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}"}
    if isinstance(spec, BearerAuth):
        if not spec.token.strip():
            logger.warning("Bearer auth selected but no token supplied; sending without Authorization")
            return {}
        return {"Authorization": ensure_bearer_prefix(spec.token)}
    if isinstance(spec, ApiKeyAuth):
        if spec.api_key_location == "header" and spec.api_key:
            return {spec.api_key_name or "x-api-key": spec.api_key}
        return {}
    return {}


def override_headers(spec: NoAuth | BasicAuth | BearerAuth | ApiKeyAuth, courier: str | None) -> dict[str, str]:
    """Extra headers a courier override demands, rendered from ``spec``."""
    override = get_override(courier)
    if override is None or not override.extra_headers:
        return {}
    token = strip_bearer_prefix(getattr(spec, "token", "") or "")
    api_key = getattr(spec, "api_key", "") or token
    context = {
        "token": token,
        "bearer": ensure_bearer_prefix(token) if token else "",
        "api_key": api_key,
        "username": getattr(spec, "username", ""),
        "password": getattr(spec, "password", ""),
    }
    return render_templates(override.extra_headers, context)


def build_token_request(spec: JwtAuth) -> BuiltRequest:
    """Assemble the token acquisition request described by a jwt_auth spec.

    Custom headers are applied when both key and value are set; JSON
    Content-Type is defaulted if absent. A body is only sent for
    POST/PUT/PATCH.
    """
    custom = [
        (item.key, stringify(item.value))
        for item in spec.jwt_auth_headers
        if item.key and item.value not in (None, "")
    ]
    headers = merge_headers(custom)
    if not any(name.lower() == "content-type" for name in headers):
        headers["Content-Type"] = JSON_CONTENT_TYPE

    body = None
    if spec.jwt_auth_method in BODY_METHODS:
        body = spec.jwt_auth_body if spec.jwt_auth_body is not None else {}

    return BuiltRequest(
        method=spec.jwt_auth_method,
        url=spec.jwt_auth_endpoint,
        headers=headers,
        body=body,
        api_intent="generate_auth_token",
    )


def extract_token(body: object, token_path: str) -> str:
    """Read the token string at a dot-only path in the token response.

    Raises:
        TokenExtractionError: A segment is missing, or the value found is
            not a non-empty string.
    """
    path = token_path or DEFAULT_TOKEN_PATH
    value = get_by_dotted_path(body, path, default=_NOT_FOUND)
    if value is _NOT_FOUND:
        raise TokenExtractionError(
            f'Token path "{path}" not found in response', token_path=path, details=body
        )
    if not isinstance(value, str) or not value:
        raise TokenExtractionError(
            f'Token not found in response using path "{path}"', token_path=path, details=body
        )
    return value


async def fetch_jwt_token(
    spec: JwtAuth,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Perform the token round trip for a jwt_auth spec.

    Returns:
        The raw token string.

    Raises:
        NetworkError: The token endpoint could not be reached.
        HttpError: The token endpoint answered with status >= 400.
        TokenExtractionError: The token path did not resolve to a string.
        ValidationError: The token request could not be built (bad URL or
            non-ASCII header); nothing was sent.
    """
    logger.info("Requesting JWT token from %s", spec.jwt_auth_endpoint)
    result = await execute(build_token_request(spec), transport=transport, timeout=timeout)
    if isinstance(result, ApiError):
        message = f"Failed to fetch JWT token: {result.message}"
        if result.is_network_error:
            raise NetworkError(message, code=result.code or "ENETWORK", error_code=result.error_code or "E-1004")
        if result.status is None:
            raise ValidationError(message, error_code=result.error_code or "E-2005")
        raise HttpError(
            message,
            status=result.status or 0,
            status_text=result.status_text or "",
            details=result.details,
            error_code="E-5001",
        )
    return extract_token(result.data, spec.jwt_token_path)


async def resolve_auth_headers(
    spec: AuthSpec,
    *,
    courier: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> ResolvedAuth:
    """Resolve an auth spec into headers and the effective (non-jwt) spec.

    Args:
        spec: Declared auth mode.
        courier: Courier name, for override lookup.
        transport: Optional httpx transport for the jwt token round trip.
        timeout: Token request timeout in seconds.

    Returns:
        ResolvedAuth. For ``jwt_auth`` the effective spec is BearerAuth.

    Raises:
        NetworkError, HttpError, TokenExtractionError, ValidationError:
            jwt_auth only.
    """
    effective = spec
    if isinstance(spec, JwtAuth):
        token = await fetch_jwt_token(spec, transport=transport, timeout=timeout)
        effective = BearerAuth(token=token)

    headers = merge_headers(
        materialize_auth_headers(effective).items(),
        override_headers(effective, courier).items(),
    )
    return ResolvedAuth(headers=headers, effective_spec=effective)
