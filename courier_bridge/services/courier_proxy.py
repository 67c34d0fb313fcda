"""One courier test call, end to end.

    fill credentials -> validate -> resolve auth -> build -> execute

Credentials are filled first: a stored jwt object can supply the token
endpoint, and the filled endpoint still goes through the private-host
check. Pre-flight validation failures raise ValidationError and nothing is
sent. Everything after that comes back as an ApiResult: token failures are
folded into ApiError the same way transport and HTTP failures are, so the
caller gets one result shape whatever went wrong upstream.
"""

import logging

import httpx
from sqlalchemy.orm import Session

from courier_bridge.errors.domain import HttpError, NetworkError, TokenExtractionError, ValidationError
from courier_bridge.services.auth_resolver import resolve_auth_headers
from courier_bridge.services.courier_service import CourierService
from courier_bridge.services.credential_resolver import resolve_credentials
from courier_bridge.services.integration_types import (
    ApiError,
    ApiResult,
    JwtAuth,
    RequestConfig,
)
from courier_bridge.services.request_adapter import build_request, validate_request_config
from courier_bridge.services.response_classifier import DEFAULT_TIMEOUT_SECONDS, execute
from courier_bridge.utils.redaction import redact_for_logging

logger = logging.getLogger(__name__)


def _token_failure(
    exc: NetworkError | HttpError | TokenExtractionError | ValidationError, config: RequestConfig
) -> ApiError:
    """ApiError for a jwt token round trip that did not yield a token."""
    spec = config.auth
    endpoint = spec.jwt_auth_endpoint if isinstance(spec, JwtAuth) else config.url
    method = spec.jwt_auth_method if isinstance(spec, JwtAuth) else config.method
    if isinstance(exc, NetworkError):
        return ApiError(
            message=exc.message,
            is_network_error=True,
            code=exc.code,
            error_code=exc.error_code,
            url=endpoint,
            method=method,
            api_intent="generate_auth_token",
        )
    if isinstance(exc, HttpError):
        return ApiError(
            message=exc.message,
            is_network_error=False,
            code=f"HTTP_{exc.status}",
            error_code=exc.error_code,
            status=exc.status,
            status_text=exc.status_text,
            details=exc.details if exc.details is not None else {},
            url=endpoint,
            method=method,
            api_intent="generate_auth_token",
        )
    if isinstance(exc, ValidationError):
        return ApiError(
            message=exc.message,
            is_network_error=False,
            code=exc.error_code,
            error_code=exc.error_code,
            url=endpoint,
            method=method,
            api_intent="generate_auth_token",
        )
    return ApiError(
        message=f"Failed to fetch JWT token: {exc.message}",
        is_network_error=False,
        code=exc.error_code,
        error_code=exc.error_code,
        details={"tokenPath": exc.token_path, "response": exc.details},
        url=endpoint,
        method=method,
        api_intent="generate_auth_token",
    )


class CourierProxyService:
    """Runs courier API calls on behalf of the console.

    Example:
        proxy = CourierProxyService(db)
        result = await proxy.call(config, courier="Safexpress")
        if result.is_error:
            print(result.to_dict())
    """

    def __init__(
        self,
        db: Session | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        allow_private: bool | None = None,
        key_dir: str | None = None,
        record_history: bool = True,
    ) -> None:
        """Initialize the proxy.

        Args:
            db: Session for stored credentials and test history. None
                disables both.
            transport: httpx transport shared by the token and main calls.
            timeout: Per-call timeout in seconds.
            allow_private: Allow loopback/private targets. None reads
                COURIER_BRIDGE_ALLOW_PRIVATE_HOSTS.
            key_dir: Credential key directory.
            record_history: Store each call in api_test_results.
        """
        self.db = db
        self.transport = transport
        self.timeout = timeout
        self.allow_private = allow_private
        self.key_dir = key_dir
        self.record_history = record_history

    async def call(
        self,
        config: RequestConfig,
        courier: str | None = None,
        *,
        use_db_credentials: bool | None = None,
        use_env_credentials: bool | None = None,
    ) -> ApiResult:
        """Validate, authenticate and dispatch one call.

        Args:
            config: Request configuration from the console.
            courier: Courier name for credential lookup and overrides.
            use_db_credentials: Restrict credential lookup to stored credentials.
            use_env_credentials: Restrict credential lookup to environment variables.

        Returns:
            ApiSuccess or ApiError.

        Raises:
            ValidationError: Pre-flight rejection; nothing was sent.
        """
        logger.debug("Courier proxy request: %s", redact_for_logging(config.model_dump(by_alias=True, mode="json")))

        auth = resolve_credentials(
            config.auth,
            courier,
            db=self.db,
            key_dir=self.key_dir,
            use_db=use_db_credentials,
            use_env=use_env_credentials,
        )
        if auth is not config.auth:
            config = config.model_copy(update={"auth": auth})
        validate_request_config(config, allow_private=self.allow_private)

        try:
            resolved = await resolve_auth_headers(
                config.auth, courier=courier, transport=self.transport, timeout=self.timeout,
            )
        except (NetworkError, HttpError, TokenExtractionError, ValidationError) as e:
            logger.warning("Token acquisition failed for %s: %s", courier or config.url, e.message)
            result: ApiResult = _token_failure(e, config)
        else:
            built = build_request(config, resolved.headers, courier=courier)
            result = await execute(built, transport=self.transport, timeout=self.timeout)

        if isinstance(result, ApiError):
            logger.info("Courier call finished with error %s (%s)", result.code, result.error_code)
        else:
            logger.info("Courier call succeeded with status %d", result.status)
        self._record(config, result, courier)
        return result

    def _record(self, config: RequestConfig, result: ApiResult, courier: str | None) -> None:
        if self.db is None or not self.record_history:
            return
        service = CourierService(self.db, key_dir=self.key_dir)
        match = service.find_courier(courier) if courier else None
        service.record_test_result(config, result, courier_id=match.id if match else None)
