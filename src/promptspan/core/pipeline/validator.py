"""Span validation orchestrator.

Runs every correction stage in a fixed order:

    normalize -> sort -> deduplicate -> resolve overlaps -> merge adjacent
    -> header filter -> visual filter -> confidence filter -> truncate

Each stage is a pure function returning a :class:`StageResult`; the
orchestrator only threads the span list through and collects notes.
The first attempt is STRICT: any per-span error fails the call with
``ok=False`` and empty spans so the caller can retry. Later attempts are
LENIENT: bad spans are dropped with a note and the call succeeds.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Union

from ..locator import SubstringPositionCache
from ..policy import sanitize_options, sanitize_policy
from ..types import (
    ProcessingOptions,
    Span,
    StageResult,
    ValidationMode,
    ValidationOutcome,
    ValidationPolicy,
    ValidationResult,
)
from .confidence import filter_by_confidence
from .dedup import deduplicate_spans
from .header_filter import filter_headers
from .merger import merge_adjacent_spans
from .normalizer import normalize_and_correct_spans
from .span_resolver import resolve_overlaps
from .truncation import truncate_to_max_spans
from .visual_filter import filter_non_visual_spans

logger = logging.getLogger(__name__)

ADVERSARIAL_NOTE = "adversarial input flagged"
NOTES_SEPARATOR = " | "

Stage = Callable[[List[Span]], StageResult]


def _caller_notes(notes: Any) -> list[str]:
    if isinstance(notes, str):
        return [notes] if notes.strip() else []
    if isinstance(notes, (list, tuple)):
        return [n for n in notes if isinstance(n, str) and n.strip()]
    return []


def _build_meta(
    meta: Optional[Mapping[str, Any]],
    options: ProcessingOptions,
    notes: Sequence[str],
    cache: SubstringPositionCache,
) -> dict[str, Any]:
    """Final meta: pass-through keys, then version, combined notes and locator counters."""
    base = dict(meta) if isinstance(meta, Mapping) else {}
    version = base.get("version")
    if not isinstance(version, str) or not version:
        version = options.template_version
    base["version"] = version
    base["notes"] = NOTES_SEPARATOR.join(notes)
    base["locator"] = cache.telemetry.to_dict()
    return base


def validate_spans(
    spans: Optional[Iterable[Any]],
    text: str,
    *,
    meta: Optional[Mapping[str, Any]] = None,
    policy: Union[ValidationPolicy, Mapping[str, Any], None] = None,
    options: Union[ProcessingOptions, Mapping[str, Any], None] = None,
    attempt: int = 1,
    cache: Optional[SubstringPositionCache] = None,
    is_adversarial: bool = False,
    analysis_trace: Optional[str] = None,
    settings=None,
) -> ValidationOutcome:
    """
    Validate raw annotator spans against *text*.

    Args:
        spans: Raw spans ``{text, role|category, start?, end?, confidence?}``
        text: Source text the spans refer to
        meta: Annotator meta; ``version``/``notes`` are merged, other keys pass through
        policy: Word limit / overlap policy (mapping or dataclass)
        options: max_spans / min_confidence / template_version
        attempt: 1 for STRICT, >= 2 for LENIENT
        cache: Occurrence cache for this call
        is_adversarial: Annotator flagged the input as adversarial
        analysis_trace: Annotator reasoning, passed through
        settings: Settings override (defaults to ``get_settings()``)

    Returns:
        ValidationOutcome; ``ok`` is False only when STRICT mode found errors.
    """
    if settings is None:
        from ...config import get_settings
        settings = get_settings()

    policy = sanitize_policy(policy, settings)
    options = sanitize_options(options, settings)
    mode = ValidationMode.from_attempt(attempt)
    if cache is None:
        cache = SubstringPositionCache(
            fuzzy_matching=settings.locator.fuzzy_matching,
            fuzzy_threshold=settings.locator.fuzzy_threshold,
        )
    trace = analysis_trace if isinstance(analysis_trace, str) else None
    notes: list[str] = _caller_notes(meta.get("notes") if isinstance(meta, Mapping) else None)

    normalized = normalize_and_correct_spans(spans or [], text, policy, mode, cache)
    notes.extend(normalized.notes)

    if normalized.errors:
        logger.warning(
            "Strict span validation failed",
            extra={"error_count": len(normalized.errors), "attempt": attempt},
        )
        if is_adversarial:
            notes.append(ADVERSARIAL_NOTE)
        result = ValidationResult(
            spans=[],
            meta=_build_meta(meta, options, notes, cache),
            is_adversarial=is_adversarial,
            analysis_trace=trace,
        )
        return ValidationOutcome(ok=False, result=result, errors=list(normalized.errors))

    max_spans = min(options.max_spans, settings.performance.max_spans_absolute_limit)
    stages: list[Stage] = [
        deduplicate_spans,
        lambda s: resolve_overlaps(s, policy.allow_overlap),
        lambda s: merge_adjacent_spans(
            s,
            text,
            settings.merging.max_merged_words,
            settings.merging.max_gap_chars,
            policy.non_technical_word_limit,
        ),
        filter_headers,
        lambda s: filter_non_visual_spans(s, text),
        lambda s: filter_by_confidence(s, options.min_confidence),
        lambda s: truncate_to_max_spans(s, max_spans),
    ]

    current: List[Span] = sorted(normalized.sanitized, key=lambda s: (s.start, s.end))
    for stage in stages:
        stage_result = stage(current)
        current = list(stage_result.spans)
        notes.extend(stage_result.notes)

    if is_adversarial:
        notes.append(ADVERSARIAL_NOTE)

    logger.debug(
        "Validated spans",
        extra={
            "input_count": len(normalized.sanitized),
            "output_count": len(current),
            "mode": mode.value,
        },
    )

    result = ValidationResult(
        spans=current,
        meta=_build_meta(meta, options, notes, cache),
        is_adversarial=is_adversarial,
        analysis_trace=trace,
    )
    return ValidationOutcome(ok=True, result=result, errors=[])
