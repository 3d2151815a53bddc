"""Public output shape.

Internally spans carry a ``role``; clients consume it as ``category``.
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from .types import Span, ValidationResult

UNKNOWN_CATEGORY = "unknown"


def to_public_span(span: Union[Span, Mapping[str, Any]]) -> dict[str, Any]:
    """Map one span to ``{text, start, end, category, confidence?}``.

    ``category`` comes from ``role``, then an input ``category``, then
    ``"unknown"``. ``confidence`` is omitted when the span has none.
    """
    if isinstance(span, Span):
        span = span.to_dict()

    category = span.get("role") or span.get("category") or UNKNOWN_CATEGORY
    public: dict[str, Any] = {
        "text": span.get("text"),
        "start": span.get("start"),
        "end": span.get("end"),
        "category": category,
    }
    confidence = span.get("confidence")
    if confidence is not None:
        public["confidence"] = confidence
    return public


def to_public_result(result: Union[ValidationResult, Mapping[str, Any]]) -> dict[str, Any]:
    """Map a whole validation result, keeping meta and flags."""
    if isinstance(result, ValidationResult):
        result = result.to_dict()

    public = {key: value for key, value in result.items() if key != "spans"}
    public["spans"] = [to_public_span(s) for s in result.get("spans") or []]
    return public
