"""Visual-only filtering.

Keeps spans that describe something visible and drops three kinds of
non-visual text:

- variation headers inside an "Alternatives" section
  (``**Variation 1 (Alternate Angle):**``)
- meta text anywhere: a bare taxonomy label ("Lighting"), a meta marker
  followed by a label ("Main Action"), or a bare "Variation 2"
- outside the alternatives section, capitalized names right after
  style-reference phrasing ("inspired by Wes Anderson")
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from ..taxonomy import TAXONOMY_LABELS, parent_of
from ..types import Span, StageResult

logger = logging.getLogger(__name__)

_ALTERNATIVES_HEADING_RE = re.compile(
    r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*|__)?[ \t]*"
    r"(?:alternatives?|alternative (?:approaches|options|versions|takes)|variations|other options)"
    r"[ \t]*(?:\*\*|__)?[ \t]*:?[ \t]*(?:\*\*|__)?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
_HEADING_LINE_RE = re.compile(r"^[ \t]*#{1,6}[ \t]+\S.*$", re.MULTILINE)
_VARIATION_LINE_RE = re.compile(
    r"^[\s*_#>-]*(?:variation|option|alternative|version|take)\s*\d+\b[^\n]*$",
    re.IGNORECASE,
)
_HEADER_COLON_RE = re.compile(r":[ \t]*(?:\*\*|__)?")
_BARE_META_RE = re.compile(
    r"^(?:variation|option|alternative|version|take)\s*\d+$", re.IGNORECASE
)
_META_MARKERS = ("main", "primary", "secondary", "key", "core")
_STYLE_CUE_RE = re.compile(
    r"(?:in the style of|inspired by|reminiscent of|in the vein of|a la|à la|homage to)"
    r"[\s,:\"'“]*$",
    re.IGNORECASE,
)
_PROPER_NOUN_RE = re.compile(r"^[A-Z][\w.'’-]*(?:\s+(?:[A-Z][\w.'’-]*|&|and|of|de|van|von|del|la|le))*$")

_STYLE_CUE_WINDOW = 40
_STYLE_EXEMPT_ROLES = frozenset({"style.filmStock"})


def find_alternatives_section(source_text: str) -> Optional[tuple[int, int]]:
    """Range of the "Alternatives" section, or None.

    The section runs from its heading to the next markdown heading that is
    not itself a variation header, or to the end of the text.
    """
    heading = _ALTERNATIVES_HEADING_RE.search(source_text or "")
    if heading is None:
        return None
    end = len(source_text)
    for m in _HEADING_LINE_RE.finditer(source_text, heading.end()):
        if not _VARIATION_LINE_RE.match(m.group()):
            end = m.start()
            break
    return heading.start(), end


def _variation_header_end(source_text: str, position: int) -> Optional[int]:
    """End of the variation header on the line holding *position*, or None.

    The header runs to the first colon (and any closing bold marker); a
    line without a colon is all header.
    """
    line_start = source_text.rfind("\n", 0, position) + 1
    line_end = source_text.find("\n", position)
    if line_end == -1:
        line_end = len(source_text)
    line = source_text[line_start:line_end]
    if not _VARIATION_LINE_RE.match(line):
        return None
    colon = _HEADER_COLON_RE.search(line)
    return line_start + (colon.end() if colon else len(line))


def is_meta_text(text: str) -> bool:
    """True for label-only or marker-plus-label text ("Main Action")."""
    cleaned = re.sub(r"[*_#:()\[\]]", " ", text or "")
    cleaned = " ".join(cleaned.split()).lower()
    if not cleaned:
        return True
    if cleaned in TAXONOMY_LABELS:
        return True
    if _BARE_META_RE.match(cleaned):
        return True
    first, _, rest = cleaned.partition(" ")
    return first in _META_MARKERS and rest in TAXONOMY_LABELS


def _is_style_reference(span: Span, source_text: str) -> bool:
    if span.role in _STYLE_EXEMPT_ROLES or parent_of(span.role) == "technical":
        return False
    if not _PROPER_NOUN_RE.match(span.text.strip()):
        return False
    context = source_text[max(0, span.start - _STYLE_CUE_WINDOW):span.start]
    return _STYLE_CUE_RE.search(context) is not None


def filter_non_visual_spans(spans: Sequence[Span], source_text: str) -> StageResult:
    """Drop meta, variation-header and style-reference spans."""
    section = find_alternatives_section(source_text)
    kept: list[Span] = []
    notes: list[str] = []

    for span in spans or []:
        in_section = section is not None and section[0] <= span.start < section[1]
        reason: Optional[str] = None

        header_end = _variation_header_end(source_text, span.start) if in_section else None
        if header_end is not None and span.end <= header_end:
            reason = (
                f'Dropped variation-header span "{span.text}" at {span.start}-{span.end} '
                f"inside alternatives section."
            )
        elif is_meta_text(span.text):
            reason = (
                f'Dropped non-visual span "{span.text}" at {span.start}-{span.end} '
                f"(role: {span.role})."
            )
        elif not in_section and _is_style_reference(span, source_text):
            reason = (
                f'Dropped style-reference span "{span.text}" at {span.start}-{span.end} '
                f"(role: {span.role})."
            )

        if reason is None:
            kept.append(span)
            continue
        notes.append(reason)
        logger.debug(
            "Dropped non-visual span",
            extra={"start": span.start, "end": span.end, "role": span.role},
        )

    return StageResult(kept, notes)
