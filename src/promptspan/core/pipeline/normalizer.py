"""Span normalization and correction.

Turns untrusted annotator spans into :class:`Span` objects whose offsets
match the source text exactly. For each raw span, in order:

1. shape check (a mapping with non-empty ``text``)
2. locate the text in the source, relocating wrong offsets
3. trim punctuation and stray articles/prepositions from the edges
4. validate the role against the taxonomy, clamp the confidence
5. enforce the non-technical word limit
6. assign a deterministic id

In STRICT mode problems are collected as ``errors``; in LENIENT mode the
offending span is dropped and a note explains why. Output order follows
input order; sorting is left to later stages.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping, Optional

from ..constants import (
    DEFAULT_ROLE,
    EDGE_PUNCTUATION,
    EDGE_STOPWORDS,
    TECHNICAL_PARENT,
)
from ..locator import SubstringPositionCache
from ..taxonomy import parent_of, resolve_role
from ..text_utils import clamp01, make_span_id, matches_at_indices, preview, word_count
from ..types import NormalizationResult, Span, ValidationMode, ValidationPolicy

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\S+")


def _as_index(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _raw_role(raw: Mapping[str, Any]) -> Any:
    role = raw.get("role")
    if role in (None, ""):
        role = raw.get("category")
    return role


def refine_boundaries(source: str, start: int, end: int) -> Optional[tuple[int, int]]:
    """Shrink ``[start, end)`` past edge punctuation and stray stopwords.

    Leading/trailing articles and prepositions are only removed while at
    least one other word remains. Returns None when nothing is left.
    """
    while True:
        while start < end and (source[start].isspace() or source[start] in EDGE_PUNCTUATION):
            start += 1
        while end > start and (source[end - 1].isspace() or source[end - 1] in EDGE_PUNCTUATION):
            end -= 1
        if start >= end:
            return None

        tokens = list(_TOKEN_RE.finditer(source, start, end))
        if len(tokens) < 2:
            return start, end
        if tokens[0].group().lower() in EDGE_STOPWORDS:
            start = tokens[1].start()
            continue
        if tokens[-1].group().lower() in EDGE_STOPWORDS:
            end = tokens[-2].end()
            continue
        return start, end


def normalize_span(
    raw: Mapping[str, Any],
    source_text: str,
    mode: ValidationMode = ValidationMode.STRICT,
) -> Optional[Span]:
    """Build a :class:`Span` from a raw span whose offsets are already right.

    Resolves the role (legacy ids included), clamps the confidence and
    assigns the id. Returns None for a role outside the taxonomy in STRICT
    mode, or for offsets that do not address the source text; LENIENT mode
    falls back to ``subject``.
    """
    start = _as_index(raw.get("start"))
    end = _as_index(raw.get("end"))
    if start is None or end is None or not 0 <= start < end <= len(source_text):
        return None

    role = resolve_role(_raw_role(raw))
    if role is None:
        if not mode.is_lenient:
            return None
        role = DEFAULT_ROLE

    return Span(
        start=start,
        end=end,
        text=source_text[start:end],
        role=role,
        confidence=clamp01(raw.get("confidence")),
        id=make_span_id(source_text, start, end, role),
    )


def normalize_and_correct_spans(
    raw_spans: Iterable[Any],
    source_text: str,
    policy: Optional[ValidationPolicy] = None,
    mode: ValidationMode = ValidationMode.STRICT,
    cache: Optional[SubstringPositionCache] = None,
) -> NormalizationResult:
    """Validate, relocate and normalize every raw span.

    Args:
        raw_spans: Annotator output, ``{text, role|category, start?, end?, confidence?}``
        source_text: The immutable text the spans refer to
        policy: Word-limit policy (defaults to ``ValidationPolicy()``)
        mode: STRICT collects errors, LENIENT drops with notes
        cache: Occurrence cache; a fresh one is used when omitted

    Returns:
        NormalizationResult with sanitized spans, errors and notes.
    """
    policy = policy or ValidationPolicy()
    cache = cache or SubstringPositionCache()
    result = NormalizationResult()
    claimed: set[tuple[int, int]] = set()
    lenient = mode.is_lenient

    def reject(index: int, reason: str, error: str) -> None:
        if lenient:
            result.notes.append(f"span[{index}] dropped: {reason}")
        else:
            result.errors.append(f"span[{index}] {error}")
        logger.debug(
            "Rejected span",
            extra={"span_index": index, "reason": reason, "mode": mode.value},
        )

    for index, raw in enumerate(raw_spans or []):
        # 1. shape
        if not isinstance(raw, Mapping):
            reject(index, "not an object", "is not an object")
            continue
        text = raw.get("text")
        if not isinstance(text, str) or not text.strip():
            reject(index, "missing text", "missing text")
            continue

        # 2. locate
        given_start = _as_index(raw.get("start"))
        given_end = _as_index(raw.get("end"))
        if matches_at_indices(source_text, text, given_start, given_end):
            start, end = given_start, given_end
        else:
            match = cache.find_best_match(source_text, text, given_start, claimed)
            if match is None:
                reject(
                    index,
                    "text not found in source",
                    f'text "{preview(text)}" not found in source',
                )
                continue
            start, end = match.start, match.end
            if given_start is not None and given_end is not None:
                result.notes.append(
                    f"span[{index}] indices adjusted from {given_start}-{given_end} to {start}-{end}"
                )
        claimed.add((start, end))

        # 3. boundaries
        refined = refine_boundaries(source_text, start, end)
        if refined is None:
            result.notes.append(f"span[{index}] dropped: no content after trimming punctuation")
            continue
        if refined != (start, end):
            result.notes.append(
                f'span[{index}] boundaries refined from "{preview(source_text[start:end])}" '
                f'to "{preview(source_text[refined[0]:refined[1]])}"'
            )
            start, end = refined

        # 4. role / confidence
        raw_role = _raw_role(raw)
        role = resolve_role(raw_role)
        if role is None:
            if not lenient:
                result.errors.append(f'span[{index}] role "{raw_role}" is not in the allowed set')
                continue
            result.notes.append(
                f'span[{index}] role "{raw_role}" is not in the allowed set; using "{DEFAULT_ROLE}"'
            )
            role = DEFAULT_ROLE

        # 5. word limit
        refined_text = source_text[start:end]
        limit = policy.non_technical_word_limit
        words = word_count(refined_text)
        if limit > 0 and parent_of(role) != TECHNICAL_PARENT and words > limit:
            reject(
                index,
                f"exceeds non-technical word limit ({words} > {limit} words)",
                f"exceeds non-technical word limit ({words} > {limit} words)",
            )
            continue

        # 6. id
        result.sanitized.append(Span(
            start=start,
            end=end,
            text=refined_text,
            role=role,
            confidence=clamp01(raw.get("confidence")),
            id=make_span_id(source_text, start, end, role),
        ))

    if result.errors:
        logger.warning(
            "Span normalization found errors",
            extra={"error_count": len(result.errors), "mode": mode.value},
        )
    return result
