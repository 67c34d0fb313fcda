"""Generic record store over named collections.

A thin get/create/update/remove layer keyed by collection name, for callers
that work with collections generically (the HTTP CRUD routes, the workflow
service). It takes an explicit Session; nothing here reaches for a
process-wide client.

Methods flush but do NOT commit. The caller (route or CLI) commits, so a
multi-step workflow either lands entirely or not at all. Driver failures
surface as PersistenceError carrying the original message.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from courier_bridge.db.models import (
    ApiTestResult,
    Base,
    Client,
    Courier,
    CourierClient,
    CourierCredential,
    FieldMapping,
    GeneratedModule,
    TmsField,
    utc_now_iso,
)
from courier_bridge.errors.domain import NotFoundError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)

COLLECTIONS: dict[str, type[Base]] = {
    "couriers": Courier,
    "clients": Client,
    "courier_clients": CourierClient,
    "field_mappings": FieldMapping,
    "courier_credentials": CourierCredential,
    "api_test_results": ApiTestResult,
    "tms_fields": TmsField,
    "generated_modules": GeneratedModule,
}

_READ_ONLY_COLUMNS = frozenset({"id", "created_at"})


def record_to_dict(record: Base) -> dict[str, Any]:
    """Column values of an ORM row as a plain dict."""
    return {column.key: getattr(record, column.key) for column in record.__table__.columns}


class RecordStore:
    """CRUD over the named collections in COLLECTIONS."""

    def __init__(self, db: Session) -> None:
        """Initialize with a SQLAlchemy session.

        Args:
            db: Active database session.
        """
        self.db = db

    def _model(self, collection: str) -> type[Base]:
        model = COLLECTIONS.get(collection)
        if model is None:
            raise ValidationError(f"Unknown collection '{collection}'")
        return model

    def _check_columns(self, model: type[Base], data: dict[str, Any]) -> None:
        columns = {c.key for c in model.__table__.columns}
        unknown = sorted(set(data) - columns)
        if unknown:
            raise ValidationError(f"Unknown field(s) for {model.__tablename__}: {', '.join(unknown)}")

    def get_all(self, collection: str, **filters: Any) -> list[Any]:
        """List records, optionally filtered by exact column matches.

        Args:
            collection: Collection name.
            **filters: Column equality filters.

        Returns:
            Matching ORM rows ordered by creation time.
        """
        model = self._model(collection)
        self._check_columns(model, filters)
        stmt = select(model).filter_by(**filters).order_by(model.created_at)
        try:
            return list(self.db.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list {collection}: {e}") from e

    def get_by_id(self, collection: str, record_id: str) -> Any:
        """Fetch one record.

        Raises:
            NotFoundError: No record with that id.
        """
        model = self._model(collection)
        try:
            record = self.db.get(model, record_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read {collection}: {e}") from e
        if record is None:
            raise NotFoundError(collection, record_id)
        return record

    def create(self, collection: str, data: dict[str, Any]) -> Any:
        """Insert a record and flush so generated ids are populated."""
        model = self._model(collection)
        self._check_columns(model, data)
        record = model(**data)
        try:
            self.db.add(record)
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to create {collection} record: {e}") from e
        logger.debug("Created %s record %s", collection, record.id)
        return record

    def update(self, collection: str, record_id: str, data: dict[str, Any]) -> Any:
        """Apply column updates to an existing record.

        ``id`` and ``created_at`` are ignored; ``updated_at`` is refreshed
        when the model has one.
        """
        record = self.get_by_id(collection, record_id)
        changes = {k: v for k, v in data.items() if k not in _READ_ONLY_COLUMNS}
        self._check_columns(type(record), changes)
        for key, value in changes.items():
            setattr(record, key, value)
        if hasattr(record, "updated_at"):
            record.updated_at = utc_now_iso()
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to update {collection} record: {e}") from e
        return record

    def remove(self, collection: str, record_id: str) -> None:
        """Delete a record.

        Raises:
            NotFoundError: No record with that id.
        """
        record = self.get_by_id(collection, record_id)
        try:
            self.db.delete(record)
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to delete {collection} record: {e}") from e
