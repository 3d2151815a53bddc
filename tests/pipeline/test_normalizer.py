"""Tests for span normalization: location, boundaries, roles, word limits."""

import pytest

from promptspan.core.pipeline.normalizer import (
    normalize_and_correct_spans,
    normalize_span,
    refine_boundaries,
)
from promptspan.core.text_utils import make_span_id
from promptspan.core.types import ValidationMode, ValidationPolicy

SOURCE = "A weathered cowboy rides slowly through a dusty canyon at golden hour."

STRICT = ValidationMode.STRICT
LENIENT = ValidationMode.LENIENT


def normalize(raw_spans, mode=STRICT, policy=None, source=SOURCE):
    return normalize_and_correct_spans(raw_spans, source, policy=policy, mode=mode)


# =============================================================================
# LOCATION
# =============================================================================

class TestLocation:
    """Offsets are checked against the source and relocated when wrong."""

    def test_correct_offsets_kept(self):
        result = normalize([{"text": "cowboy", "role": "subject", "start": 12, "end": 18, "confidence": 0.9}])
        assert result.errors == []
        assert result.notes == []
        span = result.sanitized[0]
        assert (span.start, span.end, span.text) == (12, 18, "cowboy")
        assert span.confidence == 0.9

    def test_wrong_offsets_relocated_with_note(self):
        result = normalize([{"text": "cowboy", "role": "subject", "start": 0, "end": 6}])
        span = result.sanitized[0]
        assert (span.start, span.end) == (12, 18)
        assert result.notes == ["span[0] indices adjusted from 0-6 to 12-18"]

    def test_missing_offsets_located_silently(self):
        result = normalize([{"text": "dusty canyon", "role": "environment.location"}])
        span = result.sanitized[0]
        assert (span.start, span.end) == (42, 54)
        assert result.notes == []

    def test_case_mismatch_uses_source_text(self):
        result = normalize([{"text": "Golden Hour", "role": "lighting.timeOfDay"}])
        assert result.sanitized[0].text == "golden hour"

    def test_repeated_phrase_maps_to_distinct_occurrences(self):
        source = "rain, then more rain"
        result = normalize(
            [{"text": "rain", "role": "environment.weather"}] * 2,
            source=source,
        )
        assert [(s.start, s.end) for s in result.sanitized] == [(0, 4), (16, 20)]

    def test_not_found_strict(self):
        result = normalize([{"text": "horse", "role": "subject"}])
        assert result.sanitized == []
        assert result.errors == ['span[0] text "horse" not found in source']

    def test_not_found_lenient(self):
        result = normalize([{"text": "horse", "role": "subject"}], mode=LENIENT)
        assert result.errors == []
        assert result.notes == ["span[0] dropped: text not found in source"]


class TestShape:
    """Malformed raw spans."""

    @pytest.mark.parametrize("raw", [{"role": "subject"}, {"text": "   ", "role": "subject"}, {"text": 5}])
    def test_missing_text_strict(self, raw):
        assert normalize([raw]).errors == ["span[0] missing text"]

    def test_missing_text_lenient(self):
        result = normalize([{"role": "subject"}], mode=LENIENT)
        assert result.notes == ["span[0] dropped: missing text"]

    def test_not_an_object(self):
        assert normalize(["cowboy"]).errors == ["span[0] is not an object"]

    def test_none_input(self):
        result = normalize(None)
        assert result.sanitized == []
        assert result.errors == []

    def test_index_refers_to_input_position(self):
        result = normalize([
            {"text": "cowboy", "role": "subject"},
            {"text": "horse", "role": "subject"},
        ])
        assert result.errors == ['span[1] text "horse" not found in source']


# =============================================================================
# BOUNDARIES
# =============================================================================

class TestRefineBoundaries:
    """Edge punctuation and stray stopwords are trimmed."""

    def test_trailing_period(self):
        assert refine_boundaries(SOURCE, 65, 70) == (65, 69)

    def test_leading_preposition(self):
        assert refine_boundaries(SOURCE, 55, 69) == (58, 69)

    def test_leading_article(self):
        assert refine_boundaries(SOURCE, 40, 54) == (42, 54)

    def test_single_stopword_kept(self):
        assert refine_boundaries(SOURCE, 40, 41) == (40, 41)

    def test_only_punctuation(self):
        assert refine_boundaries("a ... b", 2, 5) is None

    def test_normalizer_notes_refinement(self):
        result = normalize([{"text": "at golden hour.", "role": "lighting.timeOfDay"}])
        span = result.sanitized[0]
        assert span.text == "golden hour"
        assert result.notes == ['span[0] boundaries refined from "at golden hour." to "golden hour"']


# =============================================================================
# ROLES / CONFIDENCE
# =============================================================================

class TestRoles:
    """Roles are resolved against the taxonomy."""

    def test_legacy_role(self):
        result = normalize([{"text": "golden hour", "role": "timeOfDay"}])
        assert result.sanitized[0].role == "lighting.timeOfDay"

    def test_category_key(self):
        result = normalize([{"text": "cowboy", "category": "subject.identity"}])
        assert result.sanitized[0].role == "subject.identity"

    def test_unknown_role_strict(self):
        result = normalize([{"text": "cowboy", "role": "hero"}])
        assert result.sanitized == []
        assert result.errors == ['span[0] role "hero" is not in the allowed set']

    def test_unknown_role_lenient_defaults_to_subject(self):
        result = normalize([{"text": "cowboy", "role": "hero"}], mode=LENIENT)
        assert result.sanitized[0].role == "subject"
        assert result.notes == ['span[0] role "hero" is not in the allowed set; using "subject"']

    @pytest.mark.parametrize("raw_confidence,expected", [(1.5, 1.0), (-1, 0.0), ("0.9", 0.7), (None, 0.7)])
    def test_confidence_clamped(self, raw_confidence, expected):
        result = normalize([{"text": "cowboy", "role": "subject", "confidence": raw_confidence}])
        assert result.sanitized[0].confidence == expected

    def test_id_is_deterministic(self):
        span = normalize([{"text": "cowboy", "role": "subject"}]).sanitized[0]
        assert span.id == make_span_id(SOURCE, 12, 18, "subject")


class TestWordLimit:
    """Non-technical spans are capped by word count."""

    def test_long_span_rejected_strict(self):
        policy = ValidationPolicy(non_technical_word_limit=2)
        result = normalize([{"text": "dusty canyon at golden hour", "role": "environment"}], policy=policy)
        assert result.errors == ["span[0] exceeds non-technical word limit (5 > 2 words)"]

    def test_long_span_dropped_lenient(self):
        policy = ValidationPolicy(non_technical_word_limit=2)
        result = normalize(
            [{"text": "dusty canyon at golden hour", "role": "environment"}],
            policy=policy,
            mode=LENIENT,
        )
        assert result.sanitized == []
        assert result.notes == ["span[0] dropped: exceeds non-technical word limit (5 > 2 words)"]

    def test_technical_spans_exempt(self):
        policy = ValidationPolicy(non_technical_word_limit=2)
        source = "Shot on 35mm anamorphic lens at 24 frames per second"
        result = normalize(
            [{"text": "24 frames per second", "role": "technical.frameRate"}],
            policy=policy,
            source=source,
        )
        assert result.errors == []
        assert result.sanitized[0].text == "24 frames per second"

    def test_limit_applies_after_trimming(self):
        policy = ValidationPolicy(non_technical_word_limit=2)
        result = normalize([{"text": "at golden hour", "role": "lighting"}], policy=policy)
        assert result.errors == []
        assert result.sanitized[0].text == "golden hour"


class TestNormalizeSpan:
    """Single-span normalization with trusted offsets."""

    def test_builds_span_from_offsets(self):
        span = normalize_span({"start": 12, "end": 18, "role": "wardrobe", "confidence": 0.4}, SOURCE)
        assert span.text == "cowboy"
        assert span.role == "subject.wardrobe"
        assert span.confidence == 0.4

    def test_unknown_role(self):
        raw = {"start": 12, "end": 18, "role": "hero"}
        assert normalize_span(raw, SOURCE) is None
        assert normalize_span(raw, SOURCE, LENIENT).role == "subject"

    @pytest.mark.parametrize("start,end", [(None, 4), (5, 5), (-1, 3), (0, 999), (True, 4)])
    def test_bad_offsets(self, start, end):
        assert normalize_span({"start": start, "end": end, "role": "subject"}, SOURCE) is None
