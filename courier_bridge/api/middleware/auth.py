"""Optional shared-secret API key for the console backend.

When COURIER_BRIDGE_API_KEY is set, every ``/api/`` path and the bare
``/courier-proxy`` endpoint require a matching ``X-API-Key`` header. The
key grants a single privilege level; there are no per-user scopes.
"""

from __future__ import annotations

import hmac
import logging
import os
import threading
import time

from fastapi import Request
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

API_KEY_ENV = "COURIER_BRIDGE_API_KEY"
TRUST_PROXY_ENV = "COURIER_BRIDGE_TRUST_PROXY"

_PUBLIC_PATH_PREFIXES = (
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
)
_PROTECTED_PATH_PREFIXES = ("/api/", "/courier-proxy")

# Failed-key lockout per client IP
_AUTH_FAIL_MAX = 10
_AUTH_FAIL_WINDOW_SECONDS = 300
_auth_failures: dict[str, list[float]] = {}
_auth_lock = threading.Lock()

_MIN_API_KEY_LENGTH = 32


def _trust_proxy() -> bool:
    return os.environ.get(TRUST_PROXY_ENV, "").strip().lower() in ("1", "true")


def _get_client_ip(request: Request) -> str:
    """Client IP; X-Forwarded-For is only honoured behind a trusted proxy."""
    if _trust_proxy():
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _is_rate_limited(client_ip: str) -> bool:
    with _auth_lock:
        now = time.monotonic()
        recent = [t for t in _auth_failures.get(client_ip, []) if now - t < _AUTH_FAIL_WINDOW_SECONDS]
        _auth_failures[client_ip] = recent
        return len(recent) >= _AUTH_FAIL_MAX


def _record_auth_failure(client_ip: str) -> None:
    with _auth_lock:
        _auth_failures.setdefault(client_ip, []).append(time.monotonic())


def reset_rate_limiter() -> None:
    """Forget recorded failures. Used by tests."""
    with _auth_lock:
        _auth_failures.clear()


def get_expected_api_key() -> str:
    """Configured API key; empty means auth is off."""
    return os.environ.get(API_KEY_ENV, "").strip()


def validate_api_key_strength() -> None:
    """Reject a configured key shorter than 32 characters.

    Raises:
        ValueError: If COURIER_BRIDGE_API_KEY is set but too short.
    """
    key = get_expected_api_key()
    if key and len(key) < _MIN_API_KEY_LENGTH:
        raise ValueError(
            f"{API_KEY_ENV} is too short ({len(key)} chars). "
            f"Use at least {_MIN_API_KEY_LENGTH} characters."
        )


def should_authenticate(path: str) -> bool:
    """True when ``path`` is behind the API key."""
    if path.startswith(_PUBLIC_PATH_PREFIXES):
        return False
    return path.startswith(_PROTECTED_PATH_PREFIXES)


async def maybe_require_api_key(request: Request, call_next) -> Response:
    """HTTP middleware: enforce the API key when one is configured."""
    if request.method.upper() == "OPTIONS":
        return await call_next(request)

    expected_key = get_expected_api_key()
    if not expected_key or not should_authenticate(request.url.path):
        return await call_next(request)

    client_ip = _get_client_ip(request)
    if _is_rate_limited(client_ip):
        logger.warning("Auth rate limit exceeded for IP %s", client_ip)
        return JSONResponse(
            status_code=429,
            content={"detail": "Too many authentication failures. Try again later."},
        )

    provided_key = request.headers.get("X-API-Key", "")
    if not provided_key or not hmac.compare_digest(provided_key, expected_key):
        _record_auth_failure(client_ip)
        return JSONResponse(status_code=401, content={"detail": "Invalid or missing API key"})
    return await call_next(request)
