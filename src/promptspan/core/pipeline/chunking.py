"""
Text chunking for long prompts.

Splits a long source text into sentence-aligned chunks so each can be
annotated separately, then maps the per-chunk spans back into global
coordinates. Markdown headings and bullet lines are kept whole; prose is
split on ``.``/``!``/``?`` followed by whitespace or end of text. A sentence
is never split across chunks.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Union

from ..text_utils import word_count
from ..types import ChunkResult, RawSpan, Span

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^\s*#{1,6}\s")
_BULLET_RE = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s+")
_TERMINATOR_RE = re.compile(r"[.!?]+(?=\s|$)")
_WORD_START_RE = re.compile(r"\S+")


@dataclass
class Sentence:
    """A sentence-like unit of the source text."""

    text: str
    start_offset: int
    end_offset: int


@dataclass
class TextChunk:
    """A chunk of text extracted from a larger document."""

    text: str
    start_offset: int    # character offset in the original text
    end_offset: int      # character offset end
    word_count: int


class TextChunker:
    """Split text into sentence-aligned chunks for annotation.

    Parameters
    ----------
    max_words_per_chunk:
        Target words per chunk. A single sentence longer than this
        becomes its own oversized chunk rather than being split.
    overlap_words:
        Trailing words of the previous chunk repeated at the start of the
        next one, so phrases straddling a boundary are seen whole.
    """

    def __init__(
        self,
        max_words_per_chunk: int = 400,
        overlap_words: int = 0,
    ) -> None:
        if max_words_per_chunk <= 0:
            raise ValueError(f"max_words_per_chunk must be positive, got {max_words_per_chunk}")
        if overlap_words < 0:
            raise ValueError(f"overlap_words cannot be negative, got {overlap_words}")
        self.max_words_per_chunk = max_words_per_chunk
        self.overlap_words = overlap_words

    def needs_chunking(self, text: Any) -> bool:
        if not isinstance(text, str) or not text:
            return False
        return word_count(text) > self.max_words_per_chunk

    def split_into_sentences(self, text: Any) -> list[Sentence]:
        """Segment *text* into sentences with exact source offsets."""
        if not isinstance(text, str) or not text:
            return []

        sentences: list[Sentence] = []
        line_start = 0
        for line in text.splitlines(keepends=True):
            body = line.rstrip("\r\n")
            if body.strip():
                if _HEADING_RE.match(body) or _BULLET_RE.match(body):
                    self._append_unit(sentences, text, line_start, line_start + len(body))
                else:
                    seg_start = 0
                    for m in _TERMINATOR_RE.finditer(body):
                        self._append_unit(sentences, text, line_start + seg_start, line_start + m.end())
                        seg_start = m.end()
                    if seg_start < len(body):
                        self._append_unit(sentences, text, line_start + seg_start, line_start + len(body))
            line_start += len(line)

        return sentences

    @staticmethod
    def _append_unit(out: list[Sentence], text: str, start: int, end: int) -> None:
        # Offsets are tightened to the first/last non-whitespace character
        while start < end and text[start].isspace():
            start += 1
        while end > start and text[end - 1].isspace():
            end -= 1
        if start < end:
            out.append(Sentence(text=text[start:end], start_offset=start, end_offset=end))

    def chunk(self, text: Any) -> list[TextChunk]:
        """Split *text* into chunks.

        Empty or non-string input yields no chunks. Text without any
        sentence terminator comes back as a single chunk.
        """
        if not isinstance(text, str) or not text.strip():
            return []

        sentences = self.split_into_sentences(text)
        chunks: list[TextChunk] = []
        chunk_start: Optional[int] = None
        chunk_end = 0
        chunk_words = 0

        for sentence in sentences:
            words = word_count(sentence.text)
            if chunk_start is not None and chunk_words + words > self.max_words_per_chunk:
                chunks.append(self._make_chunk(text, chunk_start, chunk_end))
                chunk_start, chunk_words = self._seed_overlap(text, chunk_start, chunk_end)
            if chunk_start is None:
                chunk_start = sentence.start_offset
            chunk_end = sentence.end_offset
            chunk_words += words

        if chunk_start is not None:
            chunks.append(self._make_chunk(text, chunk_start, chunk_end))

        logger.debug(
            "Chunked text",
            extra={"chunk_count": len(chunks), "sentence_count": len(sentences)},
        )
        return chunks

    chunk_text = chunk

    def _make_chunk(self, text: str, start: int, end: int) -> TextChunk:
        body = text[start:end]
        return TextChunk(text=body, start_offset=start, end_offset=end, word_count=word_count(body))

    def _seed_overlap(self, text: str, start: int, end: int) -> tuple[Optional[int], int]:
        """Start of the next chunk when carrying over trailing words."""
        if not self.overlap_words:
            return None, 0
        tokens = list(_WORD_START_RE.finditer(text, start, end))
        carried = tokens[-self.overlap_words:]
        if not carried:
            return None, 0
        seed_start = carried[0].start()
        return seed_start, word_count(text[seed_start:end])

    def merge_chunked_spans(
        self,
        chunk_results: Iterable[Union[ChunkResult, Mapping[str, Any]]],
    ) -> list[Union[Span, dict]]:
        """Move per-chunk spans into global coordinates.

        Spans are offset by their chunk's start, deduplicated on
        ``(start, end, category-or-role)`` and returned sorted by start.
        Accepts :class:`ChunkResult` objects or mappings with ``spans`` and
        ``chunk_offset`` / ``chunkOffset`` keys.
        """
        seen: set[tuple] = set()
        merged: list[Union[Span, dict]] = []

        for result in chunk_results or []:
            if isinstance(result, ChunkResult):
                offset, spans = result.chunk_offset, result.spans
            else:
                offset = result.get("chunk_offset", result.get("chunkOffset", 0)) or 0
                spans = result.get("spans") or []

            for span in spans:
                shifted = _shift_span(span, offset)
                if shifted is None:
                    continue
                key = _merge_key(shifted)
                if key in seen:
                    continue
                seen.add(key)
                merged.append(shifted)

        merged.sort(key=_position_key)
        return merged


def _shift_span(span: Union[Span, RawSpan], offset: int) -> Optional[Union[Span, dict]]:
    if isinstance(span, Span):
        return span.shifted(offset)
    if not isinstance(span, Mapping):
        return None
    moved = dict(span)
    for field_name in ("start", "end"):
        value = moved.get(field_name)
        if isinstance(value, int) and not isinstance(value, bool):
            moved[field_name] = value + offset
    return moved


def _merge_key(span: Union[Span, dict]) -> tuple:
    if isinstance(span, Span):
        return (span.start, span.end, span.role)
    return (span.get("start"), span.get("end"), span.get("category") or span.get("role"))


def _position_key(span: Union[Span, dict]) -> tuple[int, int]:
    if isinstance(span, Span):
        return (span.start, span.end)
    start = span.get("start")
    end = span.get("end")
    start = start if isinstance(start, int) else -1
    end = end if isinstance(end, int) else -1
    return (start, end)


def chunk_text(text: str, max_words: int, overlap_words: int = 0) -> List[TextChunk]:
    """Convenience wrapper around :meth:`TextChunker.chunk`."""
    return TextChunker(max_words, overlap_words).chunk(text)
