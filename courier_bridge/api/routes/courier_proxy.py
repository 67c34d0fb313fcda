"""POST /courier-proxy: run one courier API call on behalf of the console.

Upstream failures come back with HTTP 200 and ``{"error": true, ...}`` in
the body so the console can still map fields off an error payload. A request
the proxy cannot run is a 500: a body that is not a RequestConfig (E-4003)
or a config that fails pre-flight validation (its E-2xxx code). Anything
but POST is a 405.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from courier_bridge.api.schemas import CourierProxyRequest
from courier_bridge.db.connection import get_db
from courier_bridge.errors.domain import ValidationError
from courier_bridge.errors.registry import get_error
from courier_bridge.services.courier_proxy import CourierProxyService
from courier_bridge.services.integration_types import ApiError, RequestConfig, utc_timestamp
from courier_bridge.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

router = APIRouter(tags=["courier-proxy"])

_LOOKUP_FIELDS = {"courier", "use_db_credentials", "use_env_credentials"}


def get_transport() -> httpx.AsyncBaseTransport | None:
    """Outbound transport for courier calls. None means a real network client."""
    return None


def _proxy_failure(reason: str) -> JSONResponse:
    error_def = get_error("E-4003")
    template = error_def.message_template if error_def else "Error in courier-proxy: {reason}"
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "message": template.format(reason=sanitize_error_message(reason)),
            "errorCode": "E-4003",
            "timestamp": utc_timestamp(),
        },
    )


@router.post("/courier-proxy")
async def courier_proxy(
    request: Request,
    db: Session = Depends(get_db),
    transport: httpx.AsyncBaseTransport | None = Depends(get_transport),
) -> JSONResponse:
    """Validate, authenticate and dispatch a courier call.

    Returns:
        The parsed courier response on success, or the serialized ApiError.
    """
    try:
        payload = await request.json()
        body = CourierProxyRequest.model_validate(payload)
    except SchemaValidationError as e:
        logger.warning("Rejected courier-proxy body: %d validation error(s)", e.error_count())
        return _proxy_failure(str(e))
    except ValueError as e:
        logger.warning("Rejected courier-proxy body: not JSON")
        return _proxy_failure(str(e))

    config = RequestConfig.model_validate(body.model_dump(exclude=_LOOKUP_FIELDS))
    proxy = CourierProxyService(db, transport=transport)
    try:
        result = await proxy.call(
            config,
            courier=body.courier,
            use_db_credentials=body.use_db_credentials,
            use_env_credentials=body.use_env_credentials,
        )
        db.commit()
    except ValidationError as e:
        logger.info("Courier call rejected before dispatch: %s", e.message)
        return JSONResponse(
            status_code=500,
            content={
                "error": True,
                "isNetworkError": False,
                "message": e.message,
                "errorCode": e.error_code,
                "url": config.url,
                "method": config.method,
                "apiIntent": config.api_intent,
                "timestamp": utc_timestamp(),
            },
        )
    except Exception as e:
        db.rollback()
        logger.error("Unexpected courier-proxy failure: %s: %s", type(e).__name__, e, exc_info=True)
        return _proxy_failure(str(e))

    if isinstance(result, ApiError):
        return JSONResponse(content=result.to_dict())
    return JSONResponse(content=result.data)
