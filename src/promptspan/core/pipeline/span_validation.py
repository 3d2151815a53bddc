"""Post-condition audit for validated spans.

Checks that a span list honours the guarantees downstream consumers rely
on without re-validating:

1. Position bounds: 0 <= start < end <= len(text)
2. Text consistency: span.text == text[start:end]
3. Ordering: sorted by start, then end
4. No duplicate (start, end, text) triples
5. No same-parent-category overlaps (unless overlap is allowed)

Behavior:
- strict=False (default): returns the list of violations and logs a summary
- strict=True: raises SpanValidationError carrying every violation
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ...exceptions import SpanValidationError
from ..types import Span

logger = logging.getLogger(__name__)


def check_span_invariants(
    spans: Sequence[Span],
    text: str,
    allow_overlap: bool = False,
    strict: bool = False,
    context: str = "unknown",
) -> List[str]:
    """
    Audit *spans* against *text*.

    Args:
        spans: Spans to audit, in output order
        text: The source text
        allow_overlap: Skip the same-category overlap check
        strict: Raise instead of returning violations
        context: Label for log messages (e.g. "cli", "after_merge")

    Returns:
        Human-readable violations; empty when every invariant holds.

    Raises:
        SpanValidationError: In strict mode, when any invariant is broken
    """
    if not spans:
        return []

    violations: List[str] = []
    text_len = len(text)
    seen: set = set()

    for index, span in enumerate(spans):
        error = _check_single_span(span, text, text_len)
        if error is not None:
            violations.append(f"span[{index}] {error}")

        key = (span.start, span.end, span.text)
        if key in seen:
            violations.append(f"span[{index}] duplicates an earlier span at {span.start}-{span.end}")
        seen.add(key)

        if index > 0:
            prev = spans[index - 1]
            if (span.start, span.end) < (prev.start, prev.end):
                violations.append(
                    f"span[{index}] out of order ({span.start}-{span.end} after {prev.start}-{prev.end})"
                )

    if not allow_overlap:
        for first, second in find_category_overlaps(spans):
            violations.append(
                f"{first.parent} spans overlap: {first.start}-{first.end} and {second.start}-{second.end}"
            )

    if violations:
        logger.warning(
            f"[{context}] Span audit found {len(violations)} violations "
            f"across {len(spans)} spans"
        )
        for violation in violations[:5]:
            logger.warning(f"  {violation}")
        if len(violations) > 5:
            logger.warning(f"  ... and {len(violations) - 5} more violations")
        if strict:
            raise SpanValidationError(
                "Span invariants violated",
                errors=violations,
                context=context,
            )

    return violations


def _check_single_span(span: Span, text: str, text_len: int) -> Optional[str]:
    """
    Validate a single span.

    Returns None if valid, or error message string if invalid.
    """
    if span.start < 0:
        return f"start position negative ({span.start})"

    if span.end > text_len:
        return f"end position exceeds text length ({span.end} > {text_len})"

    if span.start >= span.end:
        return f"start >= end ({span.start} >= {span.end})"

    actual_text = text[span.start:span.end]
    if actual_text != span.text:
        return f"text mismatch at [{span.start}:{span.end}]"

    return None


def find_category_overlaps(spans: Sequence[Span]) -> List[Tuple[Span, Span]]:
    """
    Find overlapping pairs that share a parent category (diagnostic only).

    Returns:
        List of (span1, span2) tuples that overlap
    """
    overlaps: List[Tuple[Span, Span]] = []
    sorted_spans = sorted(spans, key=lambda s: (s.start, s.end))

    for i in range(len(sorted_spans)):
        for j in range(i + 1, len(sorted_spans)):
            s1, s2 = sorted_spans[i], sorted_spans[j]
            if s2.start >= s1.end:
                break
            if s1.parent == s2.parent:
                overlaps.append((s1, s2))

    return overlaps
