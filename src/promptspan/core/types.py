"""
Core data types for the promptspan validation pipeline.

This module defines the fundamental types used throughout the pipeline:
- Span: A labeled substring of the source prompt with role and confidence
- ValidationMode: Strict (first attempt) vs lenient (retry) handling
- ValidationPolicy / ProcessingOptions: Per-request tunables
- StageResult: What every pipeline stage returns
- ValidationResult / ValidationOutcome: What the orchestrator returns

These types are shared by every stage, the chunker and the labeling service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from .constants import (
    DEFAULT_ALLOW_OVERLAP,
    DEFAULT_CONFIDENCE,
    DEFAULT_MAX_SPANS,
    DEFAULT_MIN_CONFIDENCE,
    DEFAULT_NON_TECHNICAL_WORD_LIMIT,
    DEFAULT_TEMPLATE_VERSION,
)
from .taxonomy import parent_of, role_depth

__all__ = [
    # Enums
    "ValidationMode",
    # Data classes
    "Span",
    "ValidationPolicy",
    "ProcessingOptions",
    "StageResult",
    "NormalizationResult",
    "ValidationResult",
    "ValidationOutcome",
    "ChunkResult",
    # Aliases
    "RawSpan",
]

logger = logging.getLogger(__name__)

# Untrusted span as produced by an annotation source
RawSpan = Mapping[str, Any]


class ValidationMode(Enum):
    """
    How per-span problems are handled.

    STRICT aborts the call with an aggregated error list so the caller can
    retry; LENIENT drops the offending span with a note and carries on.
    """
    STRICT = "strict"
    LENIENT = "lenient"

    @classmethod
    def from_attempt(cls, attempt: int) -> "ValidationMode":
        """First attempt is strict, every retry is lenient."""
        return cls.STRICT if attempt <= 1 else cls.LENIENT

    @property
    def is_lenient(self) -> bool:
        return self is ValidationMode.LENIENT


@dataclass(frozen=True)
class Span:
    """
    A labeled span of the source text.

    Attributes:
        start: Start character position (0-indexed)
        end: End character position (exclusive)
        text: Exactly ``source[start:end]``
        role: Taxonomy id (``camera`` or ``camera.movement``)
        confidence: Annotator confidence (0.0-1.0)
        id: Deterministic id derived from source text and coordinates
    """
    start: int
    end: int
    text: str
    role: str
    confidence: float = DEFAULT_CONFIDENCE
    id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate span attributes."""
        if self.start < 0:
            raise ValueError(f"Invalid span: start={self.start} cannot be negative")
        if self.start >= self.end:
            raise ValueError(f"Invalid span: start={self.start} >= end={self.end}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Invalid confidence: {self.confidence}")

        expected_len = self.end - self.start
        if len(self.text) != expected_len:
            raise ValueError(
                f"Invalid span: text length {len(self.text)} != span length {expected_len}"
            )

    @property
    def parent(self) -> str:
        """Top-level taxonomy category of the role."""
        return parent_of(self.role)

    @property
    def depth(self) -> int:
        """Role specificity (1 = parent, 2 = attribute)."""
        return role_depth(self.role)

    def overlaps(self, other: 'Span') -> bool:
        """Check if this span overlaps with another."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: 'Span') -> bool:
        """Check if this span fully contains another."""
        return self.start <= other.start and self.end >= other.end

    def shifted(self, offset: int) -> 'Span':
        """Copy of this span moved by *offset* characters."""
        return Span(
            start=self.start + offset,
            end=self.end + offset,
            text=self.text,
            role=self.role,
            confidence=self.confidence,
            id=self.id,
        )

    def __len__(self) -> int:
        return self.end - self.start

    def __repr__(self) -> str:
        preview = self.text if len(self.text) <= 30 else self.text[:27] + "..."
        return (
            f"Span(start={self.start}, end={self.end}, text={preview!r}, "
            f"role={self.role!r}, confidence={self.confidence:.2f})"
        )

    def to_dict(self) -> dict[str, object]:
        """Convert to the wire shape (``id`` only when assigned)."""
        d: dict[str, object] = {
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "role": self.role,
            "confidence": self.confidence,
        }
        if self.id is not None:
            d["id"] = self.id
        return d


# =============================================================================
# POLICY / OPTIONS
# =============================================================================


@dataclass(frozen=True)
class ValidationPolicy:
    """Per-request validation tunables."""
    non_technical_word_limit: int = DEFAULT_NON_TECHNICAL_WORD_LIMIT
    allow_overlap: bool = DEFAULT_ALLOW_OVERLAP


@dataclass(frozen=True)
class ProcessingOptions:
    """Output shaping options. ``template_version`` is provenance only."""
    max_spans: int = DEFAULT_MAX_SPANS
    min_confidence: float = DEFAULT_MIN_CONFIDENCE
    template_version: str = DEFAULT_TEMPLATE_VERSION


# =============================================================================
# RESULT DATA CLASSES
# =============================================================================


@dataclass
class StageResult:
    """Output of a single pipeline stage."""
    spans: List[Span]
    notes: List[str] = field(default_factory=list)


@dataclass
class NormalizationResult:
    """Output of the normalizer: accepted spans plus diagnostics."""
    sanitized: List[Span] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    """
    Final, self-consistent span set for one source text.

    ``spans`` is sorted by (start, end) with no duplicate (start, end, text)
    triples. ``meta`` always carries ``version`` and ``notes``; any other
    keys supplied by the annotator (latency, vocab-hit counters, ...) are
    passed through untouched.
    """
    spans: List[Span]
    meta: Dict[str, Any]
    is_adversarial: bool = False
    analysis_trace: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        """Convert to the wire shape returned to callers."""
        d: dict[str, object] = {
            "spans": [s.to_dict() for s in self.spans],
            "meta": dict(self.meta),
            "analysisTrace": self.analysis_trace,
        }
        if self.is_adversarial:
            d["isAdversarial"] = True
        return d


@dataclass
class ValidationOutcome:
    """Orchestrator return value: ``ok`` is True iff ``errors`` is empty."""
    ok: bool
    result: ValidationResult
    errors: List[str] = field(default_factory=list)


@dataclass
class ChunkResult:
    """Spans annotated for one chunk, in chunk-local coordinates."""
    spans: List[Union[Span, RawSpan]]
    chunk_offset: int
    is_adversarial: bool = False
