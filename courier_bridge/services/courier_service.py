"""Courier integration workflow over the record store.

Covers everything after a test call succeeds: registering the courier,
storing its credentials encrypted, saving field mappings, recording test
history and generating the downloadable adapter module.

Example:
    svc = CourierService(db)
    courier = svc.register_courier("Safexpress", config)
    svc.save_mappings(courier.id, [MappingDraft("shipment.status", "status")])
    filename, source = svc.generate_module(courier.id)
    db.commit()

Methods do NOT call db.commit(); the caller (route or CLI) commits.
"""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from courier_bridge.db.models import (
    ApiTestResult,
    Courier,
    CourierClient,
    CourierCredential,
    FieldMapping,
)
from courier_bridge.errors.domain import ValidationError
from courier_bridge.services.credential_encryption import (
    CredentialDecryptionError,
    credential_aad,
    decrypt_credentials,
    encrypt_credentials,
    get_or_create_key,
)
from courier_bridge.services.integration_types import (
    AUTH_TYPES,
    ApiError,
    ApiKeyAuth,
    ApiResult,
    BasicAuth,
    BearerAuth,
    JwtAuth,
    RequestConfig,
)
from courier_bridge.services.mapping_compiler import compile_module, module_filename
from courier_bridge.services.path_extractor import extract_paths
from courier_bridge.services.record_store import RecordStore
from courier_bridge.utils.redaction import redact_for_logging, sanitize_error_message

logger = logging.getLogger(__name__)

# Stored response bodies are truncated to keep test history rows small.
_MAX_STORED_RESPONSE_CHARS = 50_000


@dataclass
class MappingDraft:
    """One response path and the TMS field chosen for it (may be empty)."""

    api_field: str
    tms_field: str = ""
    api_type: str = "track_shipment"
    data_type: str = "string"


def split_auth(config: RequestConfig) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split a request's auth spec into (non-secret settings, secrets).

    Settings are kept on the courier row so the adapter module can be
    generated; secrets go to encrypted credential storage.
    """
    auth = config.auth
    if isinstance(auth, BasicAuth):
        return {}, {k: v for k, v in {"username": auth.username, "password": auth.password}.items() if v}
    if isinstance(auth, BearerAuth):
        return {}, {"token": auth.token} if auth.token else {}
    if isinstance(auth, ApiKeyAuth):
        settings = {"apiKeyName": auth.api_key_name, "apiKeyLocation": auth.api_key_location}
        return settings, {"api_key": auth.api_key} if auth.api_key else {}
    if isinstance(auth, JwtAuth):
        settings = auth.model_dump(by_alias=True, exclude={"type"})
        return settings, {}
    return {}, {}


class CourierService:
    """Courier, credential, mapping and module operations."""

    def __init__(self, db: Session, key_dir: str | None = None) -> None:
        """Initialize with a SQLAlchemy session.

        Args:
            db: Active database session.
            key_dir: Directory holding the credential key file (tests pass
                a temp dir; production uses the platform data dir).
        """
        self.db = db
        self.store = RecordStore(db)
        self._key_dir = key_dir

    # --- Couriers ---

    def find_courier(self, name: str) -> Courier | None:
        """Look up a courier by case-insensitive name."""
        stmt = select(Courier).where(func.lower(Courier.name) == name.strip().lower())
        return self.db.scalars(stmt).first()

    def get_courier(self, courier_id: str) -> Courier:
        return self.store.get_by_id("couriers", courier_id)

    def list_couriers(self) -> list[Courier]:
        return self.store.get_all("couriers")

    def create_courier(
        self,
        name: str,
        auth_type: str = "none",
        api_base_url: str | None = None,
        auth_config: dict[str, Any] | None = None,
        api_intent: str | None = None,
    ) -> Courier:
        """Create a courier record.

        Raises:
            ValidationError: Blank name, unknown auth type, or a courier with
                the same name (any case) already exists.
        """
        name = name.strip()
        if not name:
            raise ValidationError("Courier name is required.")
        if auth_type not in AUTH_TYPES:
            raise ValidationError(f"Unknown auth type '{auth_type}'.")
        if self.find_courier(name) is not None:
            raise ValidationError(f"Courier '{name}' already exists.")
        return self.store.create("couriers", {
            "name": name,
            "auth_type": auth_type,
            "api_base_url": api_base_url,
            "auth_config_json": json.dumps(auth_config or {}),
            "api_intent": api_intent,
        })

    def register_courier(self, name: str, config: RequestConfig) -> Courier:
        """Register a courier from the config of its first successful test call.

        Couriers are immutable once registered: calling this again for an
        existing name returns the stored record untouched.
        """
        existing = self.find_courier(name)
        if existing is not None:
            logger.info("Courier %s already registered; keeping stored configuration", existing.name)
            return existing
        settings, secrets = split_auth(config)
        courier = self.create_courier(
            name=name,
            auth_type=config.auth.type,
            api_base_url=config.url,
            auth_config=settings,
            api_intent=config.api_intent or None,
        )
        if secrets:
            self.store_credentials(courier.id, secrets)
        logger.info("Registered courier %s (auth=%s)", courier.name, courier.auth_type)
        return courier

    def delete_courier(self, courier_id: str) -> None:
        self.store.remove("couriers", courier_id)

    # --- Credentials ---

    def store_credentials(self, courier_id: str, credentials: dict[str, Any]) -> CourierCredential:
        """Encrypt and upsert a courier's credentials."""
        self.get_courier(courier_id)
        key = get_or_create_key(self._key_dir)
        encrypted = encrypt_credentials(credentials, key, aad=credential_aad(courier_id))
        row = self.db.scalars(
            select(CourierCredential).where(CourierCredential.courier_id == courier_id)
        ).first()
        if row is None:
            return self.store.create("courier_credentials", {
                "courier_id": courier_id,
                "encrypted_credentials": encrypted,
            })
        return self.store.update("courier_credentials", row.id, {"encrypted_credentials": encrypted})

    def get_credentials(self, courier_name: str) -> dict[str, Any] | None:
        """Decrypted stored credentials for a courier name, if any.

        A missing courier, missing credentials or an undecryptable blob all
        return None; the caller falls back to other credential sources.
        """
        courier = self.find_courier(courier_name)
        if courier is None:
            return None
        row = self.db.scalars(
            select(CourierCredential).where(CourierCredential.courier_id == courier.id)
        ).first()
        if row is None:
            return None
        try:
            key = get_or_create_key(self._key_dir)
            return decrypt_credentials(row.encrypted_credentials, key, aad=credential_aad(courier.id))
        except (CredentialDecryptionError, ValueError) as e:
            logger.warning("Stored credentials for %s unusable: %s", courier.name, e)
            return None

    # --- Field mappings ---

    def draft_mappings_from_response(
        self, response: Any, api_type: str = "track_shipment"
    ) -> list[MappingDraft]:
        """One unmapped draft per field path discovered in a response."""
        return [MappingDraft(api_field=path, api_type=api_type) for path in extract_paths(response)]

    def save_mappings(self, courier_id: str, drafts: Sequence[MappingDraft]) -> list[FieldMapping]:
        """Persist drafts that have a TMS field chosen.

        Upserts on ``(courier_id, api_field, api_type)``; drafts with an
        empty ``tms_field`` are skipped.

        Returns:
            The saved (inserted or updated) mappings.
        """
        self.get_courier(courier_id)
        saved: list[FieldMapping] = []
        for draft in drafts:
            if not draft.tms_field.strip() or not draft.api_field.strip():
                continue
            existing = self.db.scalars(
                select(FieldMapping).where(
                    FieldMapping.courier_id == courier_id,
                    FieldMapping.api_field == draft.api_field,
                    FieldMapping.api_type == draft.api_type,
                )
            ).first()
            if existing is None:
                saved.append(self.store.create("field_mappings", {
                    "courier_id": courier_id,
                    "api_field": draft.api_field,
                    "tms_field": draft.tms_field.strip(),
                    "api_type": draft.api_type,
                    "data_type": draft.data_type,
                }))
            else:
                saved.append(self.store.update("field_mappings", existing.id, {
                    "tms_field": draft.tms_field.strip(),
                    "data_type": draft.data_type,
                }))
        logger.info("Saved %d field mappings for courier %s", len(saved), courier_id)
        return saved

    def list_mappings(self, courier_id: str, api_type: str | None = None) -> list[FieldMapping]:
        filters: dict[str, Any] = {"courier_id": courier_id}
        if api_type:
            filters["api_type"] = api_type
        return self.store.get_all("field_mappings", **filters)

    # --- Test history ---

    def record_test_result(
        self,
        config: RequestConfig,
        result: ApiResult,
        courier_id: str | None = None,
    ) -> ApiTestResult:
        """Store a test call with its redacted request and the outcome."""
        payload = redact_for_logging(config.model_dump(by_alias=True, mode="json"))
        if isinstance(result, ApiError):
            response_data = result.to_dict()
            error_message = sanitize_error_message(result.message)
        else:
            response_data = result.data
            error_message = None
        response_text = json.dumps(response_data, default=str)
        if len(response_text) > _MAX_STORED_RESPONSE_CHARS:
            response_text = response_text[:_MAX_STORED_RESPONSE_CHARS]
        return self.store.create("api_test_results", {
            "courier_id": courier_id,
            "api_endpoint": config.url,
            "api_intent": config.api_intent or None,
            "request_payload": json.dumps(payload),
            "response_data": response_text,
            "success": not isinstance(result, ApiError),
            "error_message": error_message,
        })

    # --- Generated modules ---

    def generate_module(self, courier_id: str) -> tuple[str, str]:
        """Compile the courier's saved mappings and record the module.

        Returns:
            ``(filename, source)`` where filename is ``<slug>_mapping.js``.
        """
        courier = self.get_courier(courier_id)
        source = compile_module(courier, self.list_mappings(courier_id))
        filename = module_filename(courier.name)
        self.store.create("generated_modules", {
            "courier_id": courier_id,
            "file_name": filename,
            "content": source,
        })
        return filename, source

    # --- Client links ---

    def link_client(self, courier_id: str, client_id: str) -> CourierClient:
        """Link a courier to a client. Linking twice returns the same row."""
        self.get_courier(courier_id)
        self.store.get_by_id("clients", client_id)
        existing = self.db.scalars(
            select(CourierClient).where(
                CourierClient.courier_id == courier_id,
                CourierClient.client_id == client_id,
            )
        ).first()
        if existing is not None:
            return existing
        return self.store.create("courier_clients", {
            "courier_id": courier_id,
            "client_id": client_id,
        })

