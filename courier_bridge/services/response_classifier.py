"""Dispatch a built request and normalize every outcome into an ApiResult.

``execute`` always returns; it never raises past this module. There is a
single transition per call:

    DISPATCH -> transport failure      -> ApiError(is_network_error=True)
    DISPATCH -> response, status >= 400 -> ApiError(is_network_error=False)
    DISPATCH -> response, status < 400  -> ApiSuccess

A request httpx refuses to build (invalid URL, non-ASCII header) is never
sent and comes back as ApiError(is_network_error=False) with an E-2xxx code.

Non-2xx responses never raise inside httpx (no ``raise_for_status``); the
status is branched on after the body is parsed, so callers always get the
raw status and body back, including for failed calls.
"""

import json
import logging
from typing import Any
from urllib.parse import urlsplit

import httpx

from courier_bridge.errors.registry import get_error
from courier_bridge.services.integration_types import (
    ApiError,
    ApiResult,
    ApiSuccess,
    BuiltRequest,
)
from courier_bridge.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

# Substrings in a ConnectError that indicate DNS resolution failure.
_DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "temporary failure in name resolution",
    "no address associated",
    "name resolution",
)

_NETWORK_MESSAGES = {
    "ENOTFOUND": 'The hostname "{host}" could not be resolved. Please check if the URL is correct.',
    "ECONNREFUSED": "The connection was refused. The server might be down or not accepting connections.",
    "ETIMEDOUT": "The connection timed out. The server might be slow or unreachable.",
    "ECONNABORTED": "The connection timed out. The server might be slow or unreachable.",
}
_GENERIC_NETWORK_MESSAGE = (
    "Network error occurred. Please check your internet connection and try again."
)

_NETWORK_ERROR_CODES = {
    "ENOTFOUND": "E-1001",
    "ECONNREFUSED": "E-1002",
    "ETIMEDOUT": "E-1003",
    "ECONNABORTED": "E-1003",
}

_STATUS_MESSAGES = {
    401: ("E-3001", "Authentication failed. Please check your credentials."),
    403: ("E-3002", "Access forbidden. Your credentials do not have permission for this endpoint."),
    404: ("E-3003", "Endpoint not found. Please check the API URL."),
    500: ("E-3004", "Courier server error. The courier API encountered an internal error."),
    502: ("E-3004", "Bad gateway. The courier API is unreachable behind its gateway."),
    503: ("E-3004", "Service unavailable. The courier API is temporarily down."),
    504: ("E-3004", "Gateway timeout. The courier API took too long to respond."),
}


def classify_transport_error(exc: httpx.RequestError) -> str:
    """Map an httpx transport exception to a Node-style error code.

    Args:
        exc: Exception raised before any response was received.

    Returns:
        One of ENOTFOUND, ECONNREFUSED, ETIMEDOUT, ECONNABORTED, ENETWORK.
    """
    if isinstance(exc, (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.WriteTimeout, httpx.PoolTimeout)):
        return "ETIMEDOUT"
    if isinstance(exc, httpx.TimeoutException):
        return "ECONNABORTED"
    if isinstance(exc, httpx.ConnectError):
        text = str(exc).lower()
        if any(marker in text for marker in _DNS_FAILURE_MARKERS):
            return "ENOTFOUND"
        return "ECONNREFUSED"
    return "ENETWORK"


def humanize_network_error(code: str, host: str) -> str:
    """Return the user-facing message for a transport error code."""
    template = _NETWORK_MESSAGES.get(code, _GENERIC_NETWORK_MESSAGE)
    return template.format(host=host or "unknown")


def network_error_result(exc: httpx.RequestError, built: BuiltRequest) -> ApiError:
    """Build the ApiError for a call that never got a response."""
    code = classify_transport_error(exc)
    host = urlsplit(built.url).hostname or ""
    error_code = _NETWORK_ERROR_CODES.get(code, "E-1004")
    error_def = get_error(error_code)
    return ApiError(
        message=humanize_network_error(code, host),
        is_network_error=True,
        code=code,
        error_code=error_code,
        details={
            "code": code,
            "hostname": host,
            "reason": str(exc) or type(exc).__name__,
            "suggestion": error_def.remediation if error_def else "",
        },
        url=built.url,
        method=built.method,
        api_intent=built.api_intent,
    )


def classify_response(
    status: int,
    status_text: str,
    body: Any,
    built: BuiltRequest,
) -> ApiResult:
    """Normalize a received response into ApiSuccess or ApiError.

    Args:
        status: HTTP status code.
        status_text: Reason phrase.
        body: Parsed JSON body, or raw text when not JSON.
        built: The request that produced this response.

    Returns:
        ApiSuccess for status < 400, otherwise an ApiError carrying the
        status, reason and the response body as ``details``.
    """
    if status < 400:
        return ApiSuccess(data=body, status=status)

    error_code, message = _STATUS_MESSAGES.get(
        status, ("E-3005", f"API request failed with status {status}")
    )
    return ApiError(
        message=message,
        is_network_error=False,
        code=f"HTTP_{status}",
        error_code=error_code,
        status=status,
        status_text=status_text,
        details=body if body is not None else {},
        url=built.url,
        method=built.method,
        api_intent=built.api_intent,
    )


def parse_body(response: httpx.Response) -> Any:
    """Parse a response body as JSON, falling back to text; empty is None."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _encode_body(body: Any) -> bytes | None:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")


def _rejected_result(built: BuiltRequest, message: str, code: str, error_code: str) -> ApiError:
    """ApiError for a request httpx refused to build; nothing was sent."""
    return ApiError(
        message=message,
        is_network_error=False,
        code=code,
        error_code=error_code,
        url=built.url,
        method=built.method,
        api_intent=built.api_intent,
    )


async def execute(
    built: BuiltRequest,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> ApiResult:
    """Send a built request and classify the outcome.

    Args:
        built: Request from ``request_adapter.build_request``.
        transport: Optional httpx transport (tests inject fakes here).
        timeout: Hard ceiling in seconds for the whole dispatch.

    Returns:
        ApiSuccess or ApiError. Never raises: a request httpx cannot
        encode, a transport failure and an HTTP error status all come back
        as ApiError.
    """
    logger.info("Dispatching %s %s (intent=%s)", built.method, built.url, built.api_intent or "-")
    async with httpx.AsyncClient(
        timeout=timeout,
        transport=transport,
        follow_redirects=True,
    ) as client:
        try:
            request = client.build_request(
                built.method,
                built.url,
                headers=built.headers,
                content=_encode_body(built.body),
            )
        except httpx.InvalidURL as exc:
            logger.warning("Courier call rejected by transport: invalid URL %s", built.url)
            return _rejected_result(built, f"Invalid URL format: {exc}", "EINVALIDURL", "E-2002")
        except ValueError as exc:
            # UnicodeEncodeError for non-ASCII header names or values
            logger.warning("Courier call to %s could not be encoded: %s", built.url, type(exc).__name__)
            return _rejected_result(
                built,
                f"The request could not be encoded: {sanitize_error_message(str(exc))}",
                "EENCODING",
                "E-2007",
            )

        try:
            response = await client.send(request)
        except httpx.RequestError as exc:
            result = network_error_result(exc, built)
            logger.warning(
                "Courier call to %s failed before a response (%s): %s",
                built.url, result.code, type(exc).__name__,
            )
            return result
        except httpx.InvalidURL as exc:
            logger.warning("Courier call redirected to an invalid URL from %s", built.url)
            return _rejected_result(built, f"Invalid URL format: {exc}", "EINVALIDURL", "E-2002")

    body = parse_body(response)
    result = classify_response(response.status_code, response.reason_phrase, body, built)
    if isinstance(result, ApiError):
        logger.info("Courier call to %s returned HTTP %d", built.url, response.status_code)
    return result
