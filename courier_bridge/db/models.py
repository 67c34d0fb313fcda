"""SQLAlchemy ORM models for the Courier Bridge record store.

Couriers, clients and the links between them, stored field mappings, the
TMS field catalog, encrypted courier credentials, test-call history and
generated adapter modules. Uses SQLAlchemy 2.0 style with Mapped and
mapped_column.
"""

import json
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Courier(Base):
    """A courier whose tracking API has been configured and tested.

    Created after the first successful test call. Secrets never live here:
    username/password/token/API key go to CourierCredential, encrypted.

    Attributes:
        name: Display name, unique case-insensitively.
        api_base_url: Endpoint used for the successful test call.
        auth_type: One of none, basic, bearer, api_key, jwt_auth.
        auth_config_json: Non-secret auth settings as JSON (api key header
            name and location, or the jwt token request description).
        api_intent: Intent of the test call that registered the courier.
    """

    __tablename__ = "couriers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    api_base_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    auth_type: Mapped[str] = mapped_column(String(20), nullable=False, default="none")
    auth_config_json: Mapped[str | None] = mapped_column(Text, nullable=True, default="{}")
    api_intent: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    @property
    def auth_config(self) -> dict[str, Any]:
        """Parsed ``auth_config_json`` (empty dict when unset or corrupt)."""
        try:
            parsed = json.loads(self.auth_config_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def __repr__(self) -> str:
        return f"<Courier(name={self.name!r}, auth_type={self.auth_type!r})>"


class Client(Base):
    """A TMS client account that couriers can be linked to."""

    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    api_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)


class CourierClient(Base):
    """Link between a courier and a client."""

    __tablename__ = "courier_clients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    courier_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("couriers.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    __table_args__ = (
        UniqueConstraint("courier_id", "client_id", name="uq_courier_clients_pair"),
    )


class FieldMapping(Base):
    """A courier response path mapped onto a canonical TMS field.

    Keyed by ``(courier_id, api_field, api_type)``; saving the same path
    again updates the TMS field instead of inserting a duplicate.
    """

    __tablename__ = "field_mappings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    courier_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("couriers.id", ondelete="CASCADE"), nullable=False
    )
    api_field: Mapped[str] = mapped_column(Text, nullable=False)
    tms_field: Mapped[str] = mapped_column(String(100), nullable=False)
    api_type: Mapped[str] = mapped_column(String(50), nullable=False, default="track_shipment")
    data_type: Mapped[str] = mapped_column(String(20), nullable=False, default="string")
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    __table_args__ = (
        UniqueConstraint("courier_id", "api_field", "api_type", name="uq_field_mappings_key"),
        Index("idx_field_mappings_courier", "courier_id"),
    )


class CourierCredential(Base):
    """AES-256-GCM encrypted credential blob for one courier.

    Attributes:
        encrypted_credentials: JSON envelope from credential_encryption.
        key_version: Encryption key version (always 1 for now).
    """

    __tablename__ = "courier_credentials"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    courier_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("couriers.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    encrypted_credentials: Mapped[str] = mapped_column(Text, nullable=False)
    key_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)


class ApiTestResult(Base):
    """One recorded test call. Request payloads are stored redacted."""

    __tablename__ = "api_test_results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    courier_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("couriers.id", ondelete="SET NULL"), nullable=True
    )
    api_endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    api_intent: Mapped[str | None] = mapped_column(String(50), nullable=True)
    request_payload: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    __table_args__ = (
        Index("idx_api_test_results_courier", "courier_id"),
    )


class TmsField(Base):
    """Canonical TMS field that courier response paths are mapped onto."""

    __tablename__ = "tms_fields"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    data_type: Mapped[str] = mapped_column(String(20), nullable=False, default="string")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)


class GeneratedModule(Base):
    """A generated adapter module, kept so it can be downloaded again."""

    __tablename__ = "generated_modules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    courier_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("couriers.id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)
