"""Tests for cURL command import."""

import base64

import pytest

from courier_bridge.errors.domain import ValidationError
from courier_bridge.services.curl_parser import parse_curl
from courier_bridge.services.integration_types import BasicAuth, BearerAuth, NoAuth


class TestParseCurl:
    """Commands as courier API docs print them."""

    def test_simple_get(self):
        config = parse_curl("curl https://api.courier.example/track")
        assert config.url == "https://api.courier.example/track"
        assert config.method == "GET"
        assert isinstance(config.auth, NoAuth)
        assert config.body is None

    def test_query_string_becomes_params(self):
        config = parse_curl("curl 'https://api.courier.example/track?awb=ABC123&lang=en'")
        assert config.url == "https://api.courier.example/track"
        assert [(p.key, p.value) for p in config.query_params] == [("awb", "ABC123"), ("lang", "en")]

    def test_bearer_header_becomes_auth(self):
        config = parse_curl(
            "curl -H 'Authorization: Bearer tok-1' -H 'X-Client: tms' https://api.courier.example/track"
        )
        assert config.auth == BearerAuth(token="tok-1")
        assert [(h.key, h.value) for h in config.headers] == [("X-Client", "tms")]

    def test_basic_header_becomes_auth(self):
        encoded = base64.b64encode(b"ops:pw").decode()
        config = parse_curl(f"curl -H 'Authorization: Basic {encoded}' https://api.courier.example/t")
        assert config.auth == BasicAuth(username="ops", password="pw")

    def test_user_flag(self):
        config = parse_curl("curl -u ops:pw https://api.courier.example/t")
        assert config.auth == BasicAuth(username="ops", password="pw")

    def test_json_data_implies_post(self):
        config = parse_curl(
            "curl https://api.courier.example/track -H 'Content-Type: application/json' "
            "-d '{\"docNo\": \"ABC123\"}'"
        )
        assert config.method == "POST"
        assert config.body == {"docNo": "ABC123"}
        assert config.is_form_url_encoded is False
        assert config.headers == []

    def test_form_data(self):
        config = parse_curl("curl -X PUT https://api.courier.example/track -d awb=ABC123 -d lang=en")
        assert config.method == "PUT"
        assert config.body == {"awb": "ABC123", "lang": "en"}
        assert config.is_form_url_encoded is True

    def test_line_continuations_and_long_flags(self):
        command = (
            "curl --request POST \\\n"
            "  --url=https://api.courier.example/track \\\n"
            "  --header 'X-Trace: 1' \\\n"
            "  --data-raw '{\"a\": 1}'"
        )
        config = parse_curl(command)
        assert config.method == "POST"
        assert config.url == "https://api.courier.example/track"
        assert config.body == {"a": 1}
        assert config.headers[0].key == "X-Trace"

    def test_boolean_flags_are_skipped(self):
        config = parse_curl("curl -L -k --compressed -s https://api.courier.example/t")
        assert config.url == "https://api.courier.example/t"

    def test_ignored_value_flags_consume_their_value(self):
        config = parse_curl("curl -A 'agent/1.0' -m 10 https://api.courier.example/t")
        assert config.url == "https://api.courier.example/t"

    def test_missing_scheme_defaults_to_https(self):
        assert parse_curl("curl api.courier.example/t").url == "https://api.courier.example/t"


class TestParseCurlErrors:
    """Malformed commands raise ValidationError E-2006."""

    @pytest.mark.parametrize(
        "command,fragment",
        [
            ("wget https://x.example", "must start with 'curl'"),
            ("", "must start with 'curl'"),
            ("curl 'https://x.example", "No closing quotation"),
            ("curl -H", "needs a value"),
            ("curl -X FETCH https://x.example", "unsupported method"),
            ("curl -L", "no URL"),
        ],
    )
    def test_rejected(self, command, fragment):
        with pytest.raises(ValidationError, match=fragment) as exc_info:
            parse_curl(command)
        assert exc_info.value.error_code == "E-2006"
        assert exc_info.value.message.startswith("Invalid cURL command:")
