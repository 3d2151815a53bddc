"""Exact-duplicate removal."""

from __future__ import annotations

from typing import Sequence

from ..text_utils import build_span_key
from ..types import Span, StageResult


def deduplicate_spans(spans: Sequence[Span]) -> StageResult:
    """Keep the first span for each ``(start, end, text)``; note every drop."""
    seen: set[str] = set()
    kept: list[Span] = []
    notes: list[str] = []

    for index, span in enumerate(spans or []):
        key = build_span_key(span)
        if key in seen:
            notes.append(f"span[{index}] ignored: duplicate span")
            continue
        seen.add(key)
        kept.append(span)

    return StageResult(kept, notes)
