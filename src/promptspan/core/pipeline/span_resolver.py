"""Span overlap resolution.

Only spans sharing a parent category compete: a ``subject`` span may
legitimately overlap a ``lighting`` span. Within a category one winner is
picked per conflict using a fixed tie-break order:

1. higher specificity (``camera.movement`` beats ``camera``)
2. higher confidence
3. longer span
4. earlier start
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from ..types import Span, StageResult

logger = logging.getLogger(__name__)


def _rank(span: Span) -> tuple[int, float, int, int]:
    """Sort key where the greater value wins a conflict."""
    return (span.depth, span.confidence, len(span), -span.start)


def _describe(span: Span) -> str:
    return f'"{span.text}" ({span.start}-{span.end}, conf={span.confidence:.2f})'


def resolve_overlaps(spans: Sequence[Span], allow_overlap: bool = False) -> StageResult:
    """Resolve same-category overlaps in position-sorted *spans*.

    Args:
        spans: Spans sorted by (start, end).
        allow_overlap: Return *spans* untouched.

    Returns:
        StageResult with the surviving spans (input order preserved) and one
        note per discarded span.
    """
    if allow_overlap:
        return StageResult(spans, [])  # type: ignore[arg-type]

    resolved: List[Span] = []
    notes: List[str] = []

    for span in spans or []:
        conflicts = [
            existing for existing in resolved
            if existing.parent == span.parent and existing.overlaps(span)
        ]
        if not conflicts:
            resolved.append(span)
            continue

        winner = max([span, *conflicts], key=_rank)
        if winner is span:
            for loser in conflicts:
                resolved.remove(loser)
                notes.append(
                    f"Overlap between {_describe(loser)} and {_describe(span)}; "
                    f'kept "{span.text}".'
                )
            resolved.append(span)
        else:
            notes.append(
                f"Overlap between {_describe(span)} and {_describe(winner)}; "
                f'kept "{winner.text}".'
            )

    if notes:
        logger.debug("Resolved span overlaps", extra={"dropped": len(notes)})

    resolved.sort(key=lambda s: (s.start, s.end))
    return StageResult(resolved, notes)
