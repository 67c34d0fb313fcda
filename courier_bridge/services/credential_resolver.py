"""Fill missing courier secrets into an auth spec before it is resolved.

Resolution order per field: explicit request value -> stored credentials
(encrypted, looked up by case-insensitive courier name) -> environment
variables ``<COURIER>_USERNAME``, ``_PASSWORD``, ``_API_KEY``, ``_TOKEN``.

Nothing found is not an error: the spec comes back unchanged and the call
proceeds with whatever the request carried.
"""

import logging
import os
import re
from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from courier_bridge.errors.registry import get_error
from courier_bridge.services.integration_types import (
    ApiKeyAuth,
    AuthSpec,
    BasicAuth,
    BearerAuth,
    JwtAuth,
    NoAuth,
)

logger = logging.getLogger(__name__)

# Spec field -> (stored credential keys, env var suffix)
_FIELD_SOURCES: dict[str, tuple[tuple[str, ...], str]] = {
    "username": (("username",), "USERNAME"),
    "password": (("password",), "PASSWORD"),
    "token": (("token", "bearer_token", "bearerToken"), "TOKEN"),
    "api_key": (("api_key", "apiKey"), "API_KEY"),
}

_SECRET_FIELDS: dict[type, tuple[str, ...]] = {
    BasicAuth: ("username", "password"),
    BearerAuth: ("token",),
    ApiKeyAuth: ("api_key",),
}

_JWT_STORED_KEY = "jwt"


def env_prefix(courier: str) -> str:
    """``"Blue Dart"`` -> ``BLUE_DART``."""
    return re.sub(r"[^A-Z0-9]", "_", courier.strip().upper())


def env_credentials(courier: str, environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Credentials found in ``<COURIER>_*`` environment variables."""
    environ = os.environ if environ is None else environ
    prefix = env_prefix(courier)
    found = {}
    for field_name, (_, suffix) in _FIELD_SOURCES.items():
        value = environ.get(f"{prefix}_{suffix}", "").strip()
        if value:
            found[field_name] = value
    return found


def _stored_value(credentials: Mapping[str, Any], field_name: str) -> str:
    for key in _FIELD_SOURCES[field_name][0]:
        value = credentials.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def _merge_jwt(spec: JwtAuth, stored: Mapping[str, Any]) -> JwtAuth:
    """Fill empty jwt settings from a stored ``jwt`` object."""
    jwt = stored.get(_JWT_STORED_KEY)
    if not isinstance(jwt, Mapping):
        return spec
    stored_spec = JwtAuth.model_validate({**jwt, "type": "jwt_auth"})
    updates: dict[str, Any] = {}
    if not spec.jwt_auth_endpoint and stored_spec.jwt_auth_endpoint:
        updates["jwt_auth_endpoint"] = stored_spec.jwt_auth_endpoint
        updates["jwt_auth_method"] = stored_spec.jwt_auth_method
    if not spec.jwt_auth_headers and stored_spec.jwt_auth_headers:
        updates["jwt_auth_headers"] = stored_spec.jwt_auth_headers
    if spec.jwt_auth_body in (None, "", {}) and stored_spec.jwt_auth_body not in (None, "", {}):
        updates["jwt_auth_body"] = stored_spec.jwt_auth_body
    if "jwtTokenPath" in jwt or "jwt_token_path" in jwt:
        if "jwt_token_path" not in spec.model_fields_set:
            updates["jwt_token_path"] = stored_spec.jwt_token_path
    return spec.model_copy(update=updates) if updates else spec


def _sources_enabled(use_db: bool | None, use_env: bool | None) -> tuple[bool, bool]:
    """Which sources to consult. Setting either flag restricts to the flagged ones."""
    if use_db is None and use_env is None:
        return True, True
    return bool(use_db), bool(use_env)


def resolve_credentials(
    auth: AuthSpec,
    courier: str | None = None,
    *,
    db: Session | None = None,
    key_dir: str | None = None,
    use_db: bool | None = None,
    use_env: bool | None = None,
    environ: Mapping[str, str] | None = None,
) -> AuthSpec:
    """Return ``auth`` with empty secret fields filled from stored or env credentials.

    Args:
        auth: Auth spec from the request.
        courier: Courier name. Without one no lookup happens.
        db: Session for the stored-credential lookup. None skips that source.
        key_dir: Credential key directory.
        use_db: Restrict lookup to stored credentials (with use_env, both).
        use_env: Restrict lookup to environment variables.
        environ: Environment mapping, defaults to os.environ.

    Returns:
        A new auth spec, or ``auth`` itself when nothing was filled.
    """
    if isinstance(auth, NoAuth) or not courier or not courier.strip():
        return auth

    check_db, check_env = _sources_enabled(use_db, use_env)
    fields = _SECRET_FIELDS.get(type(auth), ())
    missing = [name for name in fields if not getattr(auth, name).strip()]
    if not missing and not isinstance(auth, JwtAuth):
        return auth

    updates: dict[str, str] = {}
    stored: dict[str, Any] | None = None
    if check_db and db is not None:
        from courier_bridge.services.courier_service import CourierService

        stored = CourierService(db, key_dir=key_dir).get_credentials(courier)
        if stored:
            for name in missing:
                value = _stored_value(stored, name)
                if value:
                    updates[name] = value

    if check_env:
        from_env = env_credentials(courier, environ)
        for name in missing:
            if name not in updates and name in from_env:
                updates[name] = from_env[name]

    resolved = auth.model_copy(update=updates) if updates else auth
    if isinstance(resolved, JwtAuth) and stored:
        resolved = _merge_jwt(resolved, stored)

    still_missing = [name for name in missing if name not in updates]
    if still_missing:
        error_def = get_error("E-5003")
        logger.info(
            "%s Missing: %s",
            error_def.message_template.format(courier=courier) if error_def else courier,
            ", ".join(still_missing),
        )
    elif updates:
        logger.info("Filled %s for courier %s", ", ".join(sorted(updates)), courier)
    return resolved
