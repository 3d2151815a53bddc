"""Tests for the public (category-keyed) output shape."""

from promptspan.core.public import to_public_result, to_public_span
from promptspan.core.types import Span, ValidationResult


def make_span(text, start=0, role="subject", confidence=0.9, **kwargs):
    """Helper to create spans with correct end position."""
    return Span(start=start, end=start + len(text), text=text, role=role, confidence=confidence, **kwargs)


class TestToPublicSpan:
    """role becomes category."""

    def test_span_object(self):
        public = to_public_span(make_span("rain", start=3, role="environment.weather", confidence=0.8))
        assert public == {
            "text": "rain",
            "start": 3,
            "end": 7,
            "category": "environment.weather",
            "confidence": 0.8,
        }

    def test_mapping_with_category_only(self):
        public = to_public_span({"text": "rain", "start": 0, "end": 4, "category": "environment"})
        assert public["category"] == "environment"
        assert "confidence" not in public

    def test_role_preferred_over_category(self):
        public = to_public_span({"text": "x", "start": 0, "end": 1, "role": "camera", "category": "shot"})
        assert public["category"] == "camera"

    def test_unknown_category(self):
        assert to_public_span({"text": "x", "start": 0, "end": 1})["category"] == "unknown"

    def test_id_and_role_not_exposed(self):
        public = to_public_span(make_span("rain", id="span_1"))
        assert "id" not in public
        assert "role" not in public


class TestToPublicResult:
    """Whole-result mapping keeps meta and flags."""

    def test_result_object(self):
        result = ValidationResult(
            spans=[make_span("rain", role="environment.weather")],
            meta={"version": "v2", "notes": ""},
            analysis_trace="trace",
            is_adversarial=True,
        )
        public = to_public_result(result)
        assert public["meta"] == {"version": "v2", "notes": ""}
        assert public["analysisTrace"] == "trace"
        assert public["isAdversarial"] is True
        assert public["spans"][0]["category"] == "environment.weather"

    def test_mapping_without_spans(self):
        public = to_public_result({"meta": {"version": "v2", "notes": ""}})
        assert public["spans"] == []

    def test_input_not_mutated(self):
        raw = {"spans": [{"text": "x", "start": 0, "end": 1, "role": "camera"}], "meta": {}}
        to_public_result(raw)
        assert "category" not in raw["spans"][0]
