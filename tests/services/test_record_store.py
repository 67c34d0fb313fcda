"""Tests for the generic record store."""

import pytest

from courier_bridge.errors.domain import NotFoundError, PersistenceError, ValidationError
from courier_bridge.services.record_store import RecordStore, record_to_dict


@pytest.fixture
def store(db_session):
    return RecordStore(db_session)


class TestCrud:
    """Create, read, update and remove."""

    def test_create_assigns_id_and_timestamps(self, store):
        client = store.create("clients", {"name": "Acme", "api_url": "https://tms.acme.example"})
        assert client.id
        assert client.created_at

    def test_get_by_id(self, store):
        client = store.create("clients", {"name": "Acme"})
        assert store.get_by_id("clients", client.id) is client

    def test_get_all_with_filters(self, store):
        store.create("clients", {"name": "Acme"})
        store.create("clients", {"name": "Globex"})
        assert sorted(c.name for c in store.get_all("clients")) == ["Acme", "Globex"]
        assert [c.name for c in store.get_all("clients", name="Globex")] == ["Globex"]

    def test_update_ignores_read_only_columns(self, store):
        courier = store.create("couriers", {"name": "Blue Dart"})
        original_id = courier.id
        updated = store.update("couriers", courier.id, {"id": "other", "api_base_url": "https://x.example"})
        assert updated.id == original_id
        assert updated.api_base_url == "https://x.example"

    def test_remove(self, store):
        client = store.create("clients", {"name": "Acme"})
        store.remove("clients", client.id)
        with pytest.raises(NotFoundError):
            store.get_by_id("clients", client.id)

    def test_record_to_dict(self, store):
        client = store.create("clients", {"name": "Acme"})
        data = record_to_dict(client)
        assert data["name"] == "Acme"
        assert set(data) == {"id", "name", "api_url", "created_at"}


class TestErrors:
    """Invalid input and driver failures."""

    def test_unknown_collection(self, store):
        with pytest.raises(ValidationError, match="Unknown collection"):
            store.get_all("parcels")

    def test_unknown_column(self, store):
        with pytest.raises(ValidationError, match="Unknown field"):
            store.create("clients", {"name": "Acme", "colour": "red"})

    def test_missing_record(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.get_by_id("couriers", "missing-id")
        assert exc_info.value.error_code == "E-4002"

    def test_constraint_violation_becomes_persistence_error(self, store):
        store.create("clients", {"name": "Acme"})
        with pytest.raises(PersistenceError, match="Failed to create clients record"):
            store.create("clients", {"name": "Acme"})
