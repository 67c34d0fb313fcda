"""Tests for the courier integration workflow service."""

import json

import pytest

from courier_bridge.errors.domain import NotFoundError, ValidationError
from courier_bridge.services.courier_service import CourierService, MappingDraft, split_auth
from courier_bridge.services.integration_types import (
    ApiError,
    ApiKeyAuth,
    ApiSuccess,
    BasicAuth,
    BearerAuth,
    JwtAuth,
    RequestConfig,
)


@pytest.fixture
def service(db_session, tmp_path):
    return CourierService(db_session, key_dir=str(tmp_path))


def _config(**overrides) -> RequestConfig:
    data = {
        "url": "https://api.courier.example/track",
        "method": "POST",
        "api_intent": "track_shipment",
        "test_docket": "ABC123",
    }
    data.update(overrides)
    return RequestConfig(**data)


class TestSplitAuth:
    """Secrets are separated from non-secret settings."""

    def test_basic(self):
        settings, secrets = split_auth(_config(auth=BasicAuth(username="u", password="p")))
        assert settings == {}
        assert secrets == {"username": "u", "password": "p"}

    def test_bearer_without_token(self):
        assert split_auth(_config(auth=BearerAuth())) == ({}, {})

    def test_api_key(self):
        settings, secrets = split_auth(_config(auth=ApiKeyAuth(api_key="k", api_key_location="query")))
        assert settings == {"apiKeyName": "x-api-key", "apiKeyLocation": "query"}
        assert secrets == {"api_key": "k"}

    def test_jwt_settings_are_camel_case(self):
        settings, secrets = split_auth(_config(auth=JwtAuth(jwt_auth_endpoint="https://a.example/t")))
        assert settings["jwtAuthEndpoint"] == "https://a.example/t"
        assert settings["jwtTokenPath"] == "access_token"
        assert "type" not in settings
        assert secrets == {}


class TestCouriers:
    """Courier registration and lookup."""

    def test_create_and_find_case_insensitive(self, service):
        courier = service.create_courier("Blue Dart", auth_type="bearer")
        assert service.find_courier("blue dart") is courier
        assert service.find_courier("  BLUE DART ") is courier

    def test_duplicate_name_rejected(self, service):
        service.create_courier("Blue Dart")
        with pytest.raises(ValidationError, match="already exists"):
            service.create_courier("blue dart")

    def test_blank_name_rejected(self, service):
        with pytest.raises(ValidationError, match="name is required"):
            service.create_courier("   ")

    def test_unknown_auth_type_rejected(self, service):
        with pytest.raises(ValidationError, match="Unknown auth type"):
            service.create_courier("Blue Dart", auth_type="oauth")

    def test_register_stores_settings_and_secrets(self, service):
        config = _config(auth=ApiKeyAuth(api_key="secret-key", api_key_name="X-Key"))
        courier = service.register_courier("Delhivery", config)

        assert courier.auth_type == "api_key"
        assert courier.api_base_url == "https://api.courier.example/track"
        assert courier.api_intent == "track_shipment"
        assert courier.auth_config == {"apiKeyName": "X-Key", "apiKeyLocation": "header"}
        assert "secret-key" not in courier.auth_config_json
        assert service.get_credentials("delhivery") == {"api_key": "secret-key"}

    def test_register_is_idempotent(self, service):
        first = service.register_courier("Delhivery", _config(auth=BearerAuth(token="one")))
        second = service.register_courier("DELHIVERY", _config(auth=BearerAuth(token="two")))
        assert second is first
        assert service.get_credentials("Delhivery") == {"token": "one"}

    def test_delete(self, service):
        courier = service.create_courier("Blue Dart")
        service.delete_courier(courier.id)
        with pytest.raises(NotFoundError):
            service.get_courier(courier.id)


class TestCredentials:
    """Encrypted credential storage."""

    def test_store_is_upsert(self, service):
        courier = service.create_courier("Blue Dart")
        first = service.store_credentials(courier.id, {"token": "a"})
        second = service.store_credentials(courier.id, {"token": "b"})
        assert first.id == second.id
        assert service.get_credentials("Blue Dart") == {"token": "b"}

    def test_stored_blob_is_encrypted(self, service):
        courier = service.create_courier("Blue Dart")
        row = service.store_credentials(courier.id, {"password": "hunter2"})
        assert "hunter2" not in row.encrypted_credentials
        assert json.loads(row.encrypted_credentials)["alg"] == "AES-256-GCM"

    def test_store_for_missing_courier(self, service):
        with pytest.raises(NotFoundError):
            service.store_credentials("missing", {"token": "a"})

    def test_unknown_courier_has_no_credentials(self, service):
        assert service.get_credentials("Nobody") is None

    def test_courier_without_credentials(self, service):
        service.create_courier("Blue Dart")
        assert service.get_credentials("Blue Dart") is None

    def test_undecryptable_credentials_return_none(self, service, monkeypatch):
        import base64
        import os

        courier = service.create_courier("Blue Dart")
        service.store_credentials(courier.id, {"token": "a"})
        monkeypatch.setenv("COURIER_BRIDGE_CREDENTIAL_KEY", base64.b64encode(os.urandom(32)).decode())
        assert service.get_credentials("Blue Dart") is None

    def test_invalid_key_returns_none(self, service, monkeypatch):
        courier = service.create_courier("Blue Dart")
        service.store_credentials(courier.id, {"token": "a"})
        monkeypatch.setenv("COURIER_BRIDGE_CREDENTIAL_KEY", "bad!!")
        assert service.get_credentials("Blue Dart") is None


class TestMappings:
    """Field mapping drafts and persistence."""

    def test_drafts_from_response(self, service, tracking_response):
        drafts = service.draft_mappings_from_response(tracking_response)
        assert MappingDraft("shipment.tracking[0].status") in drafts
        assert all(d.tms_field == "" for d in drafts)

    def test_save_skips_unmapped_and_upserts(self, service):
        courier = service.create_courier("Blue Dart")
        saved = service.save_mappings(courier.id, [
            MappingDraft("shipment.awb", "docket_number"),
            MappingDraft("shipment.result", ""),
        ])
        assert [m.tms_field for m in saved] == ["docket_number"]

        updated = service.save_mappings(courier.id, [MappingDraft("shipment.awb", "remarks")])
        assert updated[0].id == saved[0].id
        assert [m.tms_field for m in service.list_mappings(courier.id)] == ["remarks"]

    def test_same_path_different_api_type_is_separate(self, service):
        courier = service.create_courier("Blue Dart")
        service.save_mappings(courier.id, [
            MappingDraft("data.id", "docket_number"),
            MappingDraft("data.id", "docket_number", api_type="create_shipment"),
        ])
        assert len(service.list_mappings(courier.id)) == 2
        assert len(service.list_mappings(courier.id, api_type="create_shipment")) == 1

    def test_save_for_missing_courier(self, service):
        with pytest.raises(NotFoundError):
            service.save_mappings("missing", [MappingDraft("a", "status")])


class TestHistoryAndModules:
    """Test history and generated modules."""

    def test_record_success_redacts_request(self, service):
        config = _config(auth=BearerAuth(token="super-secret"))
        row = service.record_test_result(config, ApiSuccess(data={"ok": True}))
        assert row.success is True
        assert "super-secret" not in row.request_payload
        assert json.loads(row.response_data) == {"ok": True}
        assert row.error_message is None

    def test_record_error(self, service):
        error = ApiError(message="Authentication failed.", is_network_error=False, status=401)
        row = service.record_test_result(_config(), error)
        assert row.success is False
        assert row.error_message == "Authentication failed."
        assert json.loads(row.response_data)["status"] == 401

    def test_large_response_is_truncated(self, service):
        row = service.record_test_result(_config(), ApiSuccess(data="x" * 60_000))
        assert len(row.response_data) == 50_000

    def test_generate_module(self, service):
        courier = service.create_courier("Blue Dart")
        service.save_mappings(courier.id, [MappingDraft("shipment.tracking[0].status", "l2_status")])
        filename, source = service.generate_module(courier.id)
        assert filename == "bluedart_mapping.js"
        assert "payload?.shipment?.tracking?.[0]?.status" in source
        stored = service.store.get_all("generated_modules", courier_id=courier.id)
        assert [m.file_name for m in stored] == ["bluedart_mapping.js"]


class TestClientLinks:
    def test_link_is_idempotent(self, service):
        courier = service.create_courier("Blue Dart")
        client = service.store.create("clients", {"name": "Acme"})
        first = service.link_client(courier.id, client.id)
        assert service.link_client(courier.id, client.id) is first

    def test_link_missing_client(self, service):
        courier = service.create_courier("Blue Dart")
        with pytest.raises(NotFoundError):
            service.link_client(courier.id, "missing")
