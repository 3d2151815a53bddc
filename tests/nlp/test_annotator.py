"""Tests for the symbolic (shallow-parse) annotation source."""

from types import SimpleNamespace

from promptspan.core.nlp.annotator import (
    SPATIAL_PP_ROLE,
    SYMBOLIC_CONFIDENCE,
    SymbolicAnnotator,
    annotate_tokens,
    chunk_to_raw_span,
)
from promptspan.core.nlp.chunk_parser import Chunk, ChunkType, extract_chunks
from promptspan.core.nlp.ptb_tags import Token
from promptspan.core.pipeline.validator import validate_spans
from promptspan.core.schema import validate_schema

LEXICON = {
    "a": "DT", "the": "DT", "A": "DT",
    "man": "NN", "hat": "NN", "lighthouse": "NN", "forest": "NN", "storm": "NN",
    "red": "JJ", "dark": "JJ",
    "with": "IN", "in": "IN", "during": "IN",
    "walks": "VBZ", "stands": "VBZ",
    "slowly": "RB",
}


def lexicon_tagger(text):
    """Whitespace tokenizer with a fixed lexicon; unknown words are tagged NN."""
    tokens = []
    cursor = 0
    for word in text.split():
        start = text.find(word, cursor)
        tokens.append(Token(word, LEXICON.get(word, "NN"), start, start + len(word)))
        cursor = start + len(word)
    return tokens


class TestChunkToRawSpan:
    """Chunk type decides the role."""

    def test_np_and_vp(self):
        text = "A man walks slowly"
        np, vp = extract_chunks(lexicon_tagger(text))
        assert chunk_to_raw_span(np, text) == {
            "text": "A man", "start": 0, "end": 5, "role": "subject", "confidence": SYMBOLIC_CONFIDENCE,
        }
        assert chunk_to_raw_span(vp, text)["role"] == "action"

    def test_spatial_pp_covers_object_only(self):
        text = "a lighthouse in a dark forest"
        _, pp = extract_chunks(lexicon_tagger(text))
        span = chunk_to_raw_span(pp, text)
        assert span["text"] == "a dark forest"
        assert span["role"] == SPATIAL_PP_ROLE
        assert text[span["start"]:span["end"]] == "a dark forest"

    def test_temporal_pp_has_no_span(self):
        text = "a lighthouse during the storm"
        _, pp = extract_chunks(lexicon_tagger(text))
        assert chunk_to_raw_span(pp, text) is None

    def test_bare_preposition_has_no_span(self):
        text = "stands in"
        chunks = extract_chunks(lexicon_tagger(text))
        assert chunks[-1].type is ChunkType.PP
        assert chunk_to_raw_span(chunks[-1], text) is None

    def test_offsets_outside_source(self):
        chunk = Chunk(ChunkType.NP, [Token("man", "NN", 10, 13)], 0, 1)
        assert chunk_to_raw_span(chunk, "short") is None


class TestAnnotateTokens:
    """Parse, merge, map."""

    def test_attribute_phrase_joins_subject(self):
        text = "A man with a red hat walks slowly"
        spans = annotate_tokens(lexicon_tagger(text), text)
        assert [(s["text"], s["role"]) for s in spans] == [
            ("A man with a red hat", "subject"),
            ("walks slowly", "action"),
        ]

    def test_spatial_phrase_becomes_location(self):
        text = "a lighthouse in a dark forest"
        spans = annotate_tokens(lexicon_tagger(text), text)
        assert [(s["text"], s["role"]) for s in spans] == [
            ("a lighthouse", "subject"),
            ("a dark forest", "environment.location"),
        ]

    def test_no_tokens(self):
        assert annotate_tokens([], "") == []


class TestSymbolicAnnotator:
    """Envelope output usable by the validation pipeline."""

    TEXT = "A man with a red hat walks slowly in a dark forest"

    def test_envelope_shape(self):
        envelope = SymbolicAnnotator(lexicon_tagger).annotate(self.TEXT)
        assert validate_schema(envelope)
        assert envelope["analysis_trace"] == "Shallow parse of 12 tokens."
        assert envelope["meta"] == {
            "version": "nlp-v1",
            "notes": "",
            "nlpAttempted": True,
            "nlpSpansFound": 3,
        }

    def test_custom_version(self):
        envelope = SymbolicAnnotator(lexicon_tagger, version="nlp-test").annotate(self.TEXT)
        assert envelope["meta"]["version"] == "nlp-test"

    async def test_awaitable_with_request(self):
        annotator = SymbolicAnnotator(lexicon_tagger)
        envelope = await annotator(SimpleNamespace(text=self.TEXT))
        assert envelope["meta"]["nlpSpansFound"] == 3

    def test_spans_survive_validation(self, settings):
        envelope = SymbolicAnnotator(lexicon_tagger).annotate(self.TEXT)
        outcome = validate_spans(envelope["spans"], self.TEXT, meta=envelope["meta"], settings=settings)
        assert outcome.ok
        assert [(s.text, s.role) for s in outcome.result.spans] == [
            ("man with a red hat", "subject"),
            ("walks slowly", "action"),
            ("dark forest", "environment.location"),
        ]
        assert outcome.result.meta["nlpSpansFound"] == 3
