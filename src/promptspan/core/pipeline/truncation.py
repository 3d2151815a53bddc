"""Span-count truncation."""

from __future__ import annotations

import logging
from typing import Sequence

from ..types import Span, StageResult

logger = logging.getLogger(__name__)


def truncate_to_max_spans(spans: Sequence[Span], max_spans: int) -> StageResult:
    """Keep the *max_spans* most confident spans, in position order.

    Confidence ties go to the earlier span. Input already within the limit
    is returned as-is.
    """
    spans = spans if spans is not None else []
    limit = max(0, int(max_spans))
    if len(spans) <= limit:
        return StageResult(spans, [])  # type: ignore[arg-type]

    ranked = sorted(spans, key=lambda s: (-s.confidence, s.start))
    kept = sorted(ranked[:limit], key=lambda s: (s.start, s.end))
    removed = len(spans) - len(kept)

    logger.debug("Truncated spans", extra={"max_spans": limit, "removed": removed})
    return StageResult(
        kept,
        [f"Truncated spans to maxSpans={limit}; removed {removed} spans."],
    )
