"""Tests for the per-courier override table."""

from courier_bridge.services.integration_overrides import (
    get_override,
    normalize_courier_id,
    render_templates,
)


class TestLookup:
    def test_normalize(self):
        assert normalize_courier_id("Safe-Express Ltd.") == "safeexpressltd"
        assert normalize_courier_id(None) == ""

    def test_lookup_ignores_case_and_punctuation(self):
        assert get_override("SafExpress") is get_override("safexpress")
        assert get_override(" Safexpress ") is not None

    def test_unknown_courier(self):
        assert get_override("Blue Dart") is None
        assert get_override(None) is None


class TestRenderTemplates:
    def test_renders_placeholders(self):
        assert render_templates({"docNo": "{docket}"}, {"docket": "ABC"}) == {"docNo": "ABC"}

    def test_empty_results_are_dropped(self):
        rendered = render_templates({"Authorization": "{bearer}", "x-api-key": "{api_key}"}, {"api_key": "k"})
        assert rendered == {"x-api-key": "k"}

    def test_unknown_placeholder_renders_empty(self):
        assert render_templates({"a": "pre-{nope}"}, {}) == {"a": "pre-"}

    def test_malformed_template_is_skipped(self):
        assert render_templates({"a": "{", "b": "ok"}, {}) == {"b": "ok"}
