"""FastAPI application for the Courier Bridge API.

Provides the main application instance with routers, middleware and
exception handlers configured.
"""

import logging
import os
import sys
import time as _time
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

from fastapi import FastAPI, Request

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logging.getLogger("courier_bridge").setLevel(logging.INFO)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from courier_bridge.api.middleware.auth import maybe_require_api_key, validate_api_key_strength
from courier_bridge.api.routes import clients, courier_proxy, couriers, tms_fields, tools
from courier_bridge.db.connection import get_db_context, init_db
from courier_bridge.errors import CourierBridgeError, DomainError
from courier_bridge.services.tms_fields import seed_tms_fields

logger = logging.getLogger(__name__)

_startup_time: float = 0.0


def _parse_allowed_origins() -> list[str]:
    """Parse comma-separated CORS allowlist from ALLOWED_ORIGINS env var."""
    raw = os.environ.get("ALLOWED_ORIGINS", "").strip()
    if not raw:
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed the TMS field catalog on startup."""
    global _startup_time

    _startup_time = _time.time()
    validate_api_key_strength()
    init_db()
    with get_db_context() as db:
        seed_tms_fields(db)
    logger.info("Courier Bridge API ready")

    yield


app = FastAPI(
    title="Courier Bridge API",
    description="Courier API test console backend: proxy calls, field mappings, adapter modules",
    version="0.1.0",
    lifespan=lifespan,
)

# Optional API auth for /api/* and /courier-proxy when COURIER_BRIDGE_API_KEY is set.
app.middleware("http")(maybe_require_api_key)

# CORS allowlist is env-driven. If unset, CORS is disabled (same-origin only).
allowed_origins = _parse_allowed_origins()
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )


def _error_response(exc: CourierBridgeError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.code,
            "message": exc.message,
            "remediation": exc.remediation,
            "details": exc.details if exc.details else None,
        },
    )


@app.exception_handler(CourierBridgeError)
async def courier_bridge_error_handler(request: Request, exc: CourierBridgeError) -> JSONResponse:
    """Handle CourierBridgeError exceptions with consistent format.

    Args:
        request: The incoming request.
        exc: The CourierBridgeError exception.

    Returns:
        JSONResponse with error details.
    """
    return _error_response(exc)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map service-layer exceptions to 400/404/500 with the same envelope."""
    error = CourierBridgeError.from_domain(exc)
    if error.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    return _error_response(error)


# Include routers
app.include_router(courier_proxy.router)
app.include_router(courier_proxy.router, prefix="/api/v1")
app.include_router(couriers.router, prefix="/api/v1")
app.include_router(clients.router, prefix="/api/v1")
app.include_router(tools.router, prefix="/api/v1")
app.include_router(tms_fields.router, prefix="/api/v1")


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status, version and uptime.
    """
    uptime = int(_time.time() - _startup_time) if _startup_time else 0
    try:
        version = _pkg_version("courier-bridge")
    except PackageNotFoundError:
        version = "unknown"
    return {
        "status": "healthy",
        "version": version,
        "uptime_seconds": uptime,
    }
