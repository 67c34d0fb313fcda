"""Tests for app-level wiring: health, error envelope, CORS parsing."""

from courier_bridge.api.main import _parse_allowed_origins


def test_health(client):
    data = client.get("/health").json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["uptime_seconds"] >= 0


def test_domain_error_envelope(client):
    data = client.get("/api/v1/couriers/missing").json()
    assert set(data) == {"error_code", "message", "remediation", "details"}
    assert data["message"] == "couriers 'missing' not found"
    assert data["details"] is None


def test_allowed_origins_parsing(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", " http://localhost:5173 , ,https://console.example ")
    assert _parse_allowed_origins() == ["http://localhost:5173", "https://console.example"]


def test_allowed_origins_unset(monkeypatch):
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    assert _parse_allowed_origins() == []
