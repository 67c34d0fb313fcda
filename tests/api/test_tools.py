"""Tests for the stateless console helpers."""


class TestFieldPaths:
    def test_discovers_paths_with_drafts(self, client):
        response = client.post("/api/v1/field-paths", json={
            "response": {"shipment": {"result": "success", "tracking": [{"status": "IN-TRANSIT"}]}},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["paths"] == ["shipment.result", "shipment.tracking", "shipment.tracking[0].status"]
        assert data["mappings"][0] == {
            "api_field": "shipment.result",
            "tms_field": "",
            "api_type": "track_shipment",
            "data_type": "string",
        }

    def test_null_response(self, client):
        data = client.post("/api/v1/field-paths", json={"response": None}).json()
        assert data == {"paths": [], "mappings": []}

    def test_api_type_is_carried(self, client):
        data = client.post("/api/v1/field-paths", json={"response": {"a": 1}, "api_type": "get_rates"}).json()
        assert data["mappings"][0]["api_type"] == "get_rates"


class TestFieldPreview:
    def test_single_path(self, client, tracking_response):
        data = client.post("/api/v1/field-paths/preview", json={
            "response": tracking_response,
            "path": "shipment.tracking[0].status",
        }).json()
        assert data["value"] == "IN-TRANSIT"
        assert data["accessor"] == "payload?.shipment?.tracking?.[0]?.status"
        assert data["fields"] is None

    def test_unknown_path_is_null(self, client, tracking_response):
        data = client.post("/api/v1/field-paths/preview", json={
            "response": tracking_response,
            "path": "shipment.nothing[3]",
        }).json()
        assert data["value"] is None

    def test_subset(self, client, tracking_response):
        data = client.post("/api/v1/field-paths/preview", json={
            "response": tracking_response,
            "paths": ["shipment.awb"],
        }).json()
        assert data["fields"] == {"shipment": {"awb": "ABC123"}}


class TestCurlImport:
    def test_parses_command(self, client):
        response = client.post("/api/v1/curl/parse", json={
            "command": "curl -X POST https://api.courier.example/track -H 'Authorization: Bearer t1' -d '{\"a\": 1}'",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["url"] == "https://api.courier.example/track"
        assert data["method"] == "POST"
        assert data["auth"] == {"type": "bearer", "token": "t1"}
        assert data["body"] == {"a": 1}
        assert data["isFormUrlEncoded"] is False

    def test_invalid_command_is_400(self, client):
        response = client.post("/api/v1/curl/parse", json={"command": "wget https://x.example"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "E-2006"


def test_tms_fields_are_seeded(client, test_db):
    from courier_bridge.services.tms_fields import seed_tms_fields

    seed_tms_fields(test_db)
    test_db.commit()
    data = client.get("/api/v1/tms-fields").json()
    assert data[0]["name"] == "docket_number"
    assert data[0]["is_required"] is True
