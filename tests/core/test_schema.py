"""Tests for response envelope validation and defensive meta injection."""

import pytest

from promptspan.core.schema import (
    SchemaValidator,
    SpanResponseEnvelope,
    format_schema_errors,
    get_schema_errors,
    inject_defensive_meta,
    span_response_json_schema,
    validate_schema,
    validate_schema_or_throw,
)
from promptspan.exceptions import SchemaValidationError


def make_envelope(**overrides):
    envelope = {
        "analysis_trace": "scanned the prompt",
        "spans": [
            {"text": "cowboy", "role": "subject", "start": 12, "end": 18, "confidence": 0.9},
            {"text": "golden hour", "role": "lighting.timeOfDay"},
        ],
        "meta": {"version": "v2", "notes": ""},
    }
    envelope.update(overrides)
    return envelope


# =============================================================================
# VALIDATION
# =============================================================================

class TestValidEnvelopes:
    """Envelopes that pass the gate."""

    def test_full_envelope(self):
        assert validate_schema(make_envelope())
        assert get_schema_errors() == []

    def test_empty_spans_and_trace(self):
        assert validate_schema(make_envelope(analysis_trace="", spans=[]))

    def test_adversarial_flags(self):
        envelope = SpanResponseEnvelope.model_validate(make_envelope(isAdversarial=True))
        assert envelope.adversarial is True
        envelope = SpanResponseEnvelope.model_validate(make_envelope(is_adversarial=False))
        assert envelope.adversarial is False

    def test_extra_keys_allowed(self):
        envelope = make_envelope()
        envelope["meta"]["nlpSpansFound"] = 3
        envelope["spans"][0]["id"] = "span_1"
        envelope["model"] = "local"
        assert validate_schema(envelope)


class TestInvalidEnvelopes:
    """Each structural problem is reported with a readable path."""

    def test_not_an_object(self):
        assert not validate_schema(["spans"])
        assert get_schema_errors() == ["response must be an object"]

    def test_missing_meta(self):
        envelope = make_envelope()
        del envelope["meta"]
        assert not validate_schema(envelope)
        assert "meta must be an object" in get_schema_errors()

    def test_missing_trace(self):
        envelope = make_envelope()
        del envelope["analysis_trace"]
        assert not validate_schema(envelope)
        assert "analysis_trace must be a string" in get_schema_errors()

    def test_spans_not_array(self):
        assert not validate_schema(make_envelope(spans="cowboy"))
        assert "spans must be an array" in get_schema_errors()

    def test_span_not_object(self):
        assert not validate_schema(make_envelope(spans=["cowboy"]))
        assert get_schema_errors() == ["spans[0] must be an object"]

    def test_span_missing_text(self):
        assert not validate_schema(make_envelope(spans=[{"role": "subject"}]))
        assert get_schema_errors() == ["spans[0].text must be a string"]

    def test_negative_start(self):
        assert not validate_schema(make_envelope(spans=[{"text": "a", "role": "subject", "start": -1}]))
        assert get_schema_errors() == ["spans[0].start must be an integer >= 0"]

    def test_string_start_is_rejected(self):
        assert not validate_schema(make_envelope(spans=[{"text": "a", "role": "subject", "start": "3"}]))
        assert get_schema_errors() == ["spans[0].start must be an integer >= 0"]

    def test_confidence_out_of_range(self):
        assert not validate_schema(make_envelope(spans=[{"text": "a", "role": "subject", "confidence": 1.5}]))
        assert get_schema_errors() == ["spans[0].confidence must be a number between 0 and 1"]

    def test_meta_fields(self):
        assert not validate_schema(make_envelope(meta={"version": 2, "notes": ""}))
        assert get_schema_errors() == ["meta.version must be a string"]

    def test_adversarial_must_be_boolean(self):
        assert not validate_schema(make_envelope(isAdversarial="yes"))
        assert get_schema_errors() == ["isAdversarial must be a boolean"]

    def test_format_schema_errors_numbers_lines(self):
        validate_schema(make_envelope(spans=[{"role": 1}]))
        formatted = format_schema_errors()
        assert formatted.startswith("1. spans[0]")
        assert "\n2. spans[0]" in formatted


class TestSchemaValidator:
    """Instance API and exceptions."""

    def test_instances_keep_their_own_errors(self):
        first = SchemaValidator()
        second = SchemaValidator()
        first.validate({})
        second.validate(make_envelope())
        assert first.errors
        assert second.errors == []

    def test_errors_property_is_a_copy(self):
        validator = SchemaValidator()
        validator.validate({})
        validator.errors.clear()
        assert validator.errors

    def test_validate_or_throw_returns_model(self):
        envelope = validate_schema_or_throw(make_envelope())
        assert isinstance(envelope, SpanResponseEnvelope)
        assert envelope.spans[0].text == "cowboy"

    def test_validate_or_throw_raises(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            validate_schema_or_throw({"spans": []})
        assert "Schema validation failed" in str(exc_info.value)
        assert "meta must be an object" in exc_info.value.errors

    def test_json_schema(self):
        schema = span_response_json_schema()
        assert set(schema["required"]) == {"analysis_trace", "spans", "meta"}
        assert "spans" in schema["properties"]


# =============================================================================
# DEFENSIVE META
# =============================================================================

class TestInjectDefensiveMeta:
    """Missing bookkeeping is filled in without touching valid values."""

    def test_fills_missing_fields(self):
        value = {"spans": []}
        result = inject_defensive_meta(value, "v2")
        assert result is value
        assert value == {"spans": [], "analysis_trace": "", "meta": {"version": "v2", "notes": ""}}
        assert validate_schema(value)

    def test_keeps_valid_values(self):
        value = make_envelope(meta={"version": "v7", "notes": "kept"})
        inject_defensive_meta(value, "v2")
        assert value["meta"] == {"version": "v7", "notes": "kept"}
        assert value["analysis_trace"] == "scanned the prompt"

    def test_replaces_mistyped_values(self):
        value = {"analysis_trace": 5, "meta": {"version": "", "notes": None}, "spans": []}
        inject_defensive_meta(value, "v2")
        assert value["analysis_trace"] == ""
        assert value["meta"] == {"version": "v2", "notes": ""}

    def test_replaces_non_dict_meta(self):
        value = {"meta": "oops", "spans": []}
        inject_defensive_meta(value, "v2")
        assert value["meta"] == {"version": "v2", "notes": ""}

    def test_category_copied_to_role(self):
        value = {"spans": [{"text": "rain", "category": "environment.weather"}]}
        inject_defensive_meta(value, "v2")
        assert value["spans"][0]["role"] == "environment.weather"

    def test_existing_role_wins_over_category(self):
        value = {"spans": [{"text": "rain", "role": "subject", "category": "environment.weather"}]}
        inject_defensive_meta(value, "v2")
        assert value["spans"][0]["role"] == "subject"

    def test_nlp_bookkeeping(self):
        value = {"spans": []}
        inject_defensive_meta(value, "v2", nlp_spans_found=4)
        assert value["meta"]["nlpAttempted"] is True
        assert value["meta"]["nlpSpansFound"] == 4

    @pytest.mark.parametrize("value", [None, {}, [], "text", 0])
    def test_falsy_and_non_dict_untouched(self, value):
        assert inject_defensive_meta(value, "v2") == value
