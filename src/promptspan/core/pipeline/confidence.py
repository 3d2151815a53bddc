"""Confidence threshold filtering."""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ..types import Span, StageResult

logger = logging.getLogger(__name__)


def _confidence_of(span: Span) -> float:
    """Span confidence, with anything non-numeric counted as 0."""
    value = getattr(span, "confidence", None)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return 0.0
    return float(value)


def filter_by_confidence(spans: Sequence[Span], min_confidence: float) -> StageResult:
    """Keep spans with ``confidence >= min_confidence``; note every drop."""
    kept: list[Span] = []
    notes: list[str] = []
    for span in spans or []:
        confidence = _confidence_of(span)
        if confidence >= min_confidence:
            kept.append(span)
            continue
        notes.append(
            f'Filtered "{span.text}" at {span.start}-{span.end}: '
            f"confidence {confidence:.2f} below threshold {min_confidence}"
        )
    if notes:
        logger.debug(
            "Filtered low-confidence spans",
            extra={"dropped": len(notes), "threshold": min_confidence},
        )
    return StageResult(kept, notes)
