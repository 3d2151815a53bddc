"""Sanitisation of caller-supplied policy and options.

Requests arrive with loosely-typed dictionaries (camelCase from JS clients,
snake_case from Python callers). These helpers coerce them into the frozen
:class:`ValidationPolicy` / :class:`ProcessingOptions` dataclasses, falling
back to the configured defaults for anything missing or out of range.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional, Union

from .types import ProcessingOptions, ValidationPolicy

logger = logging.getLogger(__name__)

PolicyInput = Union[ValidationPolicy, Mapping[str, Any], None]
OptionsInput = Union[ProcessingOptions, Mapping[str, Any], None]


def _lookup(raw: Mapping[str, Any], snake: str, camel: str) -> Any:
    if snake in raw:
        return raw[snake]
    return raw.get(camel)


def _as_number(value: Any) -> Optional[float]:
    """Numeric value of *value*, or None. Numeric strings are accepted."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _get_settings(settings=None):
    if settings is None:
        from ..config import get_settings
        settings = get_settings()
    return settings


def sanitize_policy(raw: PolicyInput = None, settings=None) -> ValidationPolicy:
    """Coerce *raw* into a :class:`ValidationPolicy`.

    - ``non_technical_word_limit`` must be a positive finite number,
      otherwise the configured default is used.
    - ``allow_overlap`` is only True when given exactly ``True``.
    """
    if isinstance(raw, ValidationPolicy):
        return raw

    defaults = _get_settings(settings).policy
    if not isinstance(raw, Mapping):
        return ValidationPolicy(
            non_technical_word_limit=defaults.non_technical_word_limit,
            allow_overlap=defaults.allow_overlap,
        )

    limit = _as_number(_lookup(raw, "non_technical_word_limit", "nonTechnicalWordLimit"))
    if limit is None or limit <= 0:
        word_limit = defaults.non_technical_word_limit
    else:
        word_limit = max(1, int(limit))

    overlap = _lookup(raw, "allow_overlap", "allowOverlap")
    if overlap is None:
        allow_overlap = defaults.allow_overlap
    else:
        allow_overlap = overlap is True

    return ValidationPolicy(non_technical_word_limit=word_limit, allow_overlap=allow_overlap)


def sanitize_options(raw: OptionsInput = None, settings=None) -> ProcessingOptions:
    """Coerce *raw* into :class:`ProcessingOptions`.

    - ``max_spans`` must be a positive integer; it is capped at the absolute
      span limit.
    - ``min_confidence`` must lie in [0, 1].
    - ``template_version`` is stringified; empty values use the default.
    """
    settings = _get_settings(settings)
    defaults = settings.options
    absolute_limit = settings.performance.max_spans_absolute_limit

    if isinstance(raw, ProcessingOptions):
        raw = {
            "max_spans": raw.max_spans,
            "min_confidence": raw.min_confidence,
            "template_version": raw.template_version,
        }
    if not isinstance(raw, Mapping):
        raw = {}

    max_spans_raw = _lookup(raw, "max_spans", "maxSpans")
    if (
        isinstance(max_spans_raw, (int, float))
        and not isinstance(max_spans_raw, bool)
        and _as_number(max_spans_raw) is not None
        and float(max_spans_raw).is_integer()
        and max_spans_raw > 0
    ):
        max_spans = min(int(max_spans_raw), absolute_limit)
    else:
        max_spans = min(defaults.max_spans, absolute_limit)

    confidence = _as_number(_lookup(raw, "min_confidence", "minConfidence"))
    if confidence is None or not 0.0 <= confidence <= 1.0:
        min_confidence = defaults.min_confidence
    else:
        min_confidence = confidence

    version_raw = _lookup(raw, "template_version", "templateVersion")
    template_version = str(version_raw) if version_raw not in (None, "") else ""
    if not template_version:
        template_version = defaults.template_version

    return ProcessingOptions(
        max_spans=max_spans,
        min_confidence=min_confidence,
        template_version=template_version,
    )


def build_task_description(max_spans: int, policy: PolicyInput = None) -> str:
    """One-paragraph instruction for an annotator, derived from the policy."""
    if isinstance(policy, ValidationPolicy):
        allow_overlap = policy.allow_overlap
        word_limit: Any = policy.non_technical_word_limit
    elif isinstance(policy, Mapping):
        allow_overlap = _lookup(policy, "allow_overlap", "allowOverlap") is True
        word_limit = _lookup(policy, "non_technical_word_limit", "nonTechnicalWordLimit")
    else:
        allow_overlap = False
        word_limit = None

    parts = [f"Identify up to {max_spans} spans in the user input."]
    if allow_overlap:
        parts.append("Overlapping spans are permitted.")
    else:
        parts.append("Do not return overlapping spans.")

    limit = _as_number(word_limit)
    if limit is not None and limit > 0:
        parts.append(f"Non-technical spans must be {int(limit)} words or fewer.")

    return " ".join(parts)
