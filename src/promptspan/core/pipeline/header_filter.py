"""Structural header/label removal.

Prompts written as markdown often carry section titles ("## Camera",
"**Lighting**", "Duration:") that annotators mislabel as content.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from ..taxonomy import TAXONOMY_LABELS
from ..types import Span, StageResult

logger = logging.getLogger(__name__)

_MARKDOWN_HEADING_RE = re.compile(r"^#{1,6}(\s|$)")
_BOLD_HEADING_RE = re.compile(r"^(\*\*|__)[^*_]+(\*\*|__):?$")
_LIST_MARKER_RE = re.compile(r"^(?:[-*+•]|\d+[.)]|[a-zA-Z][.)])$")
_COLON_LABEL_RE = re.compile(r"^[A-Za-z][\w &/'-]*:$")
_ALL_CAPS_RE = re.compile(r"^[A-Z0-9][A-Z0-9 &/'-]*$")

_MAX_LABEL_WORDS = 4


def is_likely_header(text: str) -> bool:
    """True if *text* looks like a section header or label, not content."""
    trimmed = (text or "").strip()
    if len(trimmed) < 2:
        return True
    if _MARKDOWN_HEADING_RE.match(trimmed):
        return True
    if _BOLD_HEADING_RE.match(trimmed):
        return True
    if _LIST_MARKER_RE.match(trimmed):
        return True

    label = trimmed.rstrip(":").strip().lower()
    if label in TAXONOMY_LABELS:
        return True

    words = trimmed.split()
    if _COLON_LABEL_RE.match(trimmed) and len(words) <= _MAX_LABEL_WORDS:
        return True
    if len(words) >= 2 and len(words) <= _MAX_LABEL_WORDS and _ALL_CAPS_RE.match(trimmed):
        return any(ch.isalpha() for ch in trimmed)
    return False


def filter_headers(spans: Sequence[Span]) -> StageResult:
    """Drop spans whose text is a header or label."""
    kept: list[Span] = []
    notes: list[str] = []
    for span in spans or []:
        if is_likely_header(span.text):
            notes.append(
                f'Dropped header/label "{span.text}" at {span.start}-{span.end} (role: {span.role}).'
            )
            logger.debug(
                "Dropped header span",
                extra={"start": span.start, "end": span.end, "role": span.role},
            )
            continue
        kept.append(span)
    return StageResult(kept, notes)
