"""
Span correction pipeline.

Stages, in the order ``validate_spans`` runs them:
- Normalization: relocate text, refine boundaries, check roles and word limits
- Deduplication, overlap resolution, adjacent-span merging
- Header, non-visual and confidence filters
- Truncation to the span budget
"""

from .chunking import TextChunk, TextChunker, chunk_text
from .confidence import filter_by_confidence
from .dedup import deduplicate_spans
from .header_filter import filter_headers, is_likely_header
from .merger import merge_adjacent_spans
from .normalizer import normalize_and_correct_spans, normalize_span, refine_boundaries
from .span_resolver import resolve_overlaps
from .span_validation import check_span_invariants
from .truncation import truncate_to_max_spans
from .validator import validate_spans
from .visual_filter import filter_non_visual_spans

__all__ = [
    "TextChunk",
    "TextChunker",
    "chunk_text",
    "filter_by_confidence",
    "deduplicate_spans",
    "filter_headers",
    "is_likely_header",
    "merge_adjacent_spans",
    "normalize_and_correct_spans",
    "normalize_span",
    "refine_boundaries",
    "resolve_overlaps",
    "check_span_invariants",
    "truncate_to_max_spans",
    "validate_spans",
    "filter_non_visual_spans",
]
