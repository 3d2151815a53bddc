"""Small text helpers shared by the pipeline stages."""

from __future__ import annotations

import hashlib
import json
import math
import re
from typing import Any, Iterable

from .constants import (
    DEFAULT_CONFIDENCE,
    SPAN_ID_LENGTH,
    SPAN_ID_PREFIX,
    TEXT_PREVIEW_CHARS,
)

# A word is a run of letters/digits, optionally joined by hyphens or
# apostrophes ("close-up", "don't" and "café" are each one word).
_WORD_RE = re.compile(r"[^\W_]+(?:[-'’][^\W_]+)*", re.UNICODE)

_CODE_FENCE_RE = re.compile(r"^\s*```(?:json|JSON)?\s*\n?|\n?\s*```\s*$")


def clamp01(value: Any, default: float = DEFAULT_CONFIDENCE) -> float:
    """Clamp *value* into [0, 1]; non-numbers, bools and NaN become *default*."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value):
        return default
    return max(0.0, min(1.0, float(value)))


def word_count(text: str) -> int:
    if not text:
        return 0
    return len(_WORD_RE.findall(text))


def matches_at_indices(source: str, text: str, start: Any, end: Any) -> bool:
    """True if ``source[start:end] == text`` for sane integer indices."""
    if isinstance(start, bool) or isinstance(end, bool):
        return False
    if not isinstance(start, int) or not isinstance(end, int):
        return False
    if start < 0 or end > len(source) or start >= end:
        return False
    return source[start:end] == text


def build_span_key(span: Any) -> str:
    """Dedup key ``"start|end|text"`` for a span object or mapping."""
    if isinstance(span, dict):
        return f"{span.get('start')}|{span.get('end')}|{span.get('text')}"
    return f"{span.start}|{span.end}|{span.text}"


def format_validation_errors(errors: Iterable[str]) -> str:
    """Render errors as a numbered list (``1. first\\n2. second``)."""
    return "\n".join(f"{i}. {err}" for i, err in enumerate(errors, start=1))


def source_digest(source_text: str) -> str:
    return hashlib.sha256(source_text.encode("utf-8")).hexdigest()


def make_span_id(source_text: str, start: int, end: int, role: str) -> str:
    """Deterministic span id from the source text and the span coordinates."""
    payload = f"{source_digest(source_text)}:{start}:{end}:{role}"
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return SPAN_ID_PREFIX + digest[:SPAN_ID_LENGTH]


def preview(text: Any, limit: int = TEXT_PREVIEW_CHARS) -> str:
    """Truncated text for log records."""
    text = "" if text is None else str(text)
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def clean_json_envelope(raw: str) -> str:
    """Strip markdown code fences an LLM may wrap around its JSON."""
    if not isinstance(raw, str):
        return ""
    return _CODE_FENCE_RE.sub("", raw.strip()).strip()


def parse_json(raw: str) -> tuple[bool, Any]:
    """Parse annotator output.

    Returns ``(True, value)`` on success, ``(False, error_message)`` otherwise.
    """
    cleaned = clean_json_envelope(raw)
    if not cleaned:
        return False, "empty response"
    try:
        return True, json.loads(cleaned)
    except json.JSONDecodeError as e:
        return False, f"invalid JSON: {e.msg} at line {e.lineno} column {e.colno}"
