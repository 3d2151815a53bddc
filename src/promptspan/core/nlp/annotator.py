"""Symbolic annotation source.

Turns POS-tagged tokens into candidate raw spans, in the same envelope
shape an LLM annotator returns, so the output goes through the normal
validation pipeline. Tagging itself is external: pass tokens directly or
give :class:`SymbolicAnnotator` a tagger callable.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .chunk_merger import is_spatial_preposition, merge_cascading
from .chunk_parser import Chunk, ChunkType, extract_chunks
from .ptb_tags import Token

logger = logging.getLogger(__name__)

Tagger = Callable[[str], Sequence[Token]]

NP_ROLE = "subject"
VP_ROLE = "action"
SPATIAL_PP_ROLE = "environment.location"

SYMBOLIC_CONFIDENCE = 0.6
SYMBOLIC_VERSION = "nlp-v1"


def _slice(source: str, start: int, end: int) -> Optional[Dict[str, Any]]:
    if start < 0 or end > len(source) or start >= end:
        return None
    text = source[start:end]
    if not text.strip():
        return None
    return {"text": text, "start": start, "end": end}


def chunk_to_raw_span(chunk: Chunk, source: str) -> Optional[Dict[str, Any]]:
    """
    Candidate span for one chunk, or None if the chunk carries no role.

    NPs (complex ones included) become ``subject``, VPs ``action``. A PP
    only yields a span when its preposition is spatial, and then the span
    covers the object alone (``in a dark forest`` -> ``a dark forest``).
    """
    if chunk.type is ChunkType.NP:
        role, start, end = NP_ROLE, chunk.char_start, chunk.char_end
    elif chunk.type is ChunkType.VP:
        role, start, end = VP_ROLE, chunk.char_start, chunk.char_end
    else:
        prep = chunk.preposition()
        obj = chunk.object_tokens()
        if prep is None or not obj or not is_spatial_preposition(prep.word):
            return None
        role, start, end = SPATIAL_PP_ROLE, obj[0].start, obj[-1].end

    span = _slice(source, start, end)
    if span is None:
        return None
    span["role"] = role
    span["confidence"] = SYMBOLIC_CONFIDENCE
    return span


def annotate_tokens(tokens: Sequence[Token], source: str) -> List[Dict[str, Any]]:
    """Parse, merge and map *tokens* to raw spans over *source*."""
    chunks = merge_cascading(extract_chunks(tokens))
    spans = []
    for chunk in chunks:
        span = chunk_to_raw_span(chunk, source)
        if span is not None:
            spans.append(span)
    return spans


class SymbolicAnnotator:
    """
    Annotator backed by a POS tagger and the shallow parser.

    Awaiting an instance with a request (anything with a ``text``
    attribute) returns a response envelope, so it can stand in wherever
    an LLM annotator is expected.
    """

    def __init__(self, tagger: Tagger, version: str = SYMBOLIC_VERSION):
        self.tagger = tagger
        self.version = version

    def annotate(self, text: str) -> Dict[str, Any]:
        tokens = list(self.tagger(text))
        spans = annotate_tokens(tokens, text)
        logger.debug(
            "Symbolic annotation",
            extra={"token_count": len(tokens), "span_count": len(spans)},
        )
        return {
            "analysis_trace": f"Shallow parse of {len(tokens)} tokens.",
            "spans": spans,
            "meta": {
                "version": self.version,
                "notes": "",
                "nlpAttempted": True,
                "nlpSpansFound": len(spans),
            },
        }

    async def __call__(self, request: Any) -> Dict[str, Any]:
        return self.annotate(request.text)


__all__ = [
    "Tagger",
    "NP_ROLE",
    "VP_ROLE",
    "SPATIAL_PP_ROLE",
    "SYMBOLIC_CONFIDENCE",
    "chunk_to_raw_span",
    "annotate_tokens",
    "SymbolicAnnotator",
]
