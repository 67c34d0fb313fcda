"""Tests for CourierBridgeError and format_error."""

from courier_bridge.errors import (
    CourierBridgeError,
    NotFoundError,
    TokenExtractionError,
    ValidationError,
    format_error,
)


class TestFromCode:
    def test_substitutes_template(self):
        error = CourierBridgeError.from_code("E-1001", host="api.courier.example")
        assert error.message == 'The hostname "api.courier.example" could not be resolved.'
        assert error.status_code == 502
        assert str(error).startswith("E-1001: ")

    def test_missing_placeholder_keeps_template(self):
        error = CourierBridgeError.from_code("E-1001")
        assert "{host}" in error.message

    def test_details_are_stored_not_substituted(self):
        error = CourierBridgeError.from_code("E-2001", details={"field": "url"})
        assert error.details == {"field": "url"}
        assert error.status_code == 400

    def test_unknown_code(self):
        error = CourierBridgeError.from_code("E-9999")
        assert error.message == "Unknown error: E-9999"
        assert error.status_code == 500


class TestFromDomain:
    def test_validation_maps_to_400(self):
        error = CourierBridgeError.from_domain(ValidationError("API URL is required.", error_code="E-2001"))
        assert error.code == "E-2001"
        assert error.message == "API URL is required."
        assert error.status_code == 400

    def test_not_found_maps_to_404(self):
        error = CourierBridgeError.from_domain(NotFoundError("couriers", "abc"))
        assert error.status_code == 404
        assert error.message == "couriers 'abc' not found"

    def test_auth_maps_to_401(self):
        error = CourierBridgeError.from_domain(TokenExtractionError("no token", token_path="t"))
        assert error.code == "E-5002"
        assert error.status_code == 401


class TestFormatError:
    def test_includes_details_and_action(self):
        error = CourierBridgeError.from_code("E-2001", details={"field": "url"})
        text = format_error(error)
        lines = text.splitlines()
        assert lines[0] == "E-2001: " + error.message
        assert "  field: url" in lines
        assert lines[-1] == f"  Action: {error.remediation}"

    def test_without_remediation(self):
        error = CourierBridgeError.from_code("E-2001")
        assert "Action" not in format_error(error, include_remediation=False)
