"""Tests for /api/v1/clients routes."""


def test_create_and_list_clients(client):
    response = client.post("/api/v1/clients", json={"name": " Acme ", "api_url": "https://tms.acme.example"})
    assert response.status_code == 201
    assert response.json()["name"] == "Acme"

    listed = client.get("/api/v1/clients").json()
    assert [c["name"] for c in listed] == ["Acme"]


def test_duplicate_client_is_400(client, sample_client):
    response = client.post("/api/v1/clients", json={"name": sample_client.name})
    assert response.status_code == 400
    assert "already exists" in response.json()["message"]


def test_blank_name_is_422(client):
    assert client.post("/api/v1/clients", json={"name": ""}).status_code == 422
