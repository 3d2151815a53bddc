"""Adjacent-span merging.

Annotators often fragment one phrase into several same-category spans
("golden" / "hour light"). Neighbouring spans of the same parent category
separated only by a short whitespace/comma/hyphen/underscore gap are fused
back together.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from ..constants import DEFAULT_MAX_MERGED_WORDS, MAX_MERGE_GAP_CHARS, TECHNICAL_PARENT
from ..text_utils import make_span_id, word_count
from ..types import Span, StageResult

logger = logging.getLogger(__name__)

_GAP_RE = re.compile(r"[\s,\-_]*")


def _is_mergeable_gap(gap: str, max_gap_chars: int) -> bool:
    return len(gap) <= max_gap_chars and _GAP_RE.fullmatch(gap) is not None


def _word_cap(parent: str, max_merged_words: int, word_limit: Optional[int]) -> int:
    if word_limit and word_limit > 0 and parent != TECHNICAL_PARENT:
        return min(max_merged_words, word_limit)
    return max_merged_words


def _more_specific(first: str, second: str) -> str:
    """The deeper of two roles; the first wins ties."""
    return second if second.count(".") > first.count(".") else first


def merge_adjacent_spans(
    spans: Optional[Sequence[Span]],
    source_text: str,
    max_merged_words: int = DEFAULT_MAX_MERGED_WORDS,
    max_gap_chars: int = MAX_MERGE_GAP_CHARS,
    non_technical_word_limit: Optional[int] = None,
) -> StageResult:
    """Fuse runs of same-category spans separated by a mergeable gap.

    *spans* must be sorted by start. The merged span covers the literal
    source text of the whole run, keeps the most specific role and averages
    confidences pairwise as it grows. Outside the technical branch a merged span
    never exceeds *non_technical_word_limit* words.
    """
    if not spans:
        return StageResult([], [])

    merged: list[Span] = []
    notes: list[str] = []
    i = 0
    while i < len(spans):
        current = spans[i]
        group_size = 1
        j = i + 1
        while j < len(spans):
            candidate = spans[j]
            if candidate.parent != current.parent or candidate.start < current.end:
                break
            if not _is_mergeable_gap(source_text[current.end:candidate.start], max_gap_chars):
                break
            text = source_text[current.start:candidate.end]
            cap = _word_cap(current.parent, max_merged_words, non_technical_word_limit)
            if word_count(text) > cap:
                break
            role = _more_specific(current.role, candidate.role)
            current = Span(
                start=current.start,
                end=candidate.end,
                text=text,
                role=role,
                confidence=(current.confidence + candidate.confidence) / 2,
                id=make_span_id(source_text, current.start, candidate.end, role),
            )
            group_size += 1
            j += 1

        if group_size > 1:
            notes.append(
                f'Merged {group_size} adjacent {current.parent} spans into "{current.text}"'
            )
            logger.debug(
                "Merged adjacent spans",
                extra={"count": group_size, "start": current.start, "end": current.end},
            )
        merged.append(current)
        i = j

    return StageResult(merged, notes)
