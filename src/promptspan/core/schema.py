"""Structural validation of annotator response envelopes.

The wire shape an annotator must return::

    {
        "analysis_trace": "<string, may be empty>",
        "spans": [{"text": str, "role": str, "start"?: int >= 0,
                   "end"?: int, "confidence"?: 0..1}, ...],
        "meta": {"version": str, "notes": str, ...},
        "is_adversarial"?: bool            # or "isAdversarial"
    }

This is a gate, not a repair step: malformed envelopes are reported, never
patched (see :func:`inject_defensive_meta` for the one sanctioned fill-in of
missing bookkeeping fields, which runs before the gate).
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import SchemaValidationError
from .text_utils import format_validation_errors

logger = logging.getLogger(__name__)

__all__ = [
    "SpanItem",
    "SpanResponseMeta",
    "SpanResponseEnvelope",
    "SchemaValidator",
    "validate_schema",
    "get_schema_errors",
    "format_schema_errors",
    "validate_schema_or_throw",
    "span_response_json_schema",
    "inject_defensive_meta",
]


class SpanItem(BaseModel):
    """One annotated span as sent over the wire."""

    model_config = ConfigDict(strict=True, extra="allow")

    text: str
    role: str
    start: Optional[Annotated[int, Field(ge=0)]] = None
    end: Optional[int] = None
    confidence: Optional[Annotated[float, Field(ge=0.0, le=1.0)]] = None


class SpanResponseMeta(BaseModel):
    """Envelope bookkeeping; extra telemetry keys are allowed."""

    model_config = ConfigDict(strict=True, extra="allow")

    version: str
    notes: str


class SpanResponseEnvelope(BaseModel):
    """Top-level annotator response."""

    model_config = ConfigDict(strict=True, extra="allow")

    analysis_trace: str
    spans: list[SpanItem]
    meta: SpanResponseMeta
    is_adversarial: Optional[bool] = None
    isAdversarial: Optional[bool] = None

    @property
    def adversarial(self) -> bool:
        return bool(self.is_adversarial or self.isAdversarial)


# Requirement text per field name, used to phrase pydantic errors
_REQUIREMENTS = {
    "analysis_trace": "must be a string",
    "spans": "must be an array",
    "meta": "must be an object",
    "text": "must be a string",
    "role": "must be a string",
    "start": "must be an integer >= 0",
    "end": "must be an integer",
    "confidence": "must be a number between 0 and 1",
    "version": "must be a string",
    "notes": "must be a string",
    "is_adversarial": "must be a boolean",
    "isAdversarial": "must be a boolean",
}


def _format_loc(loc: tuple) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def _describe_error(error: dict) -> str:
    loc = tuple(error.get("loc", ()))
    if not loc:
        return "response must be an object"
    path = _format_loc(loc)
    last = loc[-1]
    if isinstance(last, int):
        return f"{path} must be an object"
    requirement = _REQUIREMENTS.get(last)
    if requirement is None:
        return f"{path}: {error.get('msg', 'invalid value')}"
    return f"{path} {requirement}"


class SchemaValidator:
    """Validates envelopes and remembers the errors of the last call."""

    def __init__(self) -> None:
        self._errors: list[str] = []

    @property
    def errors(self) -> list[str]:
        return list(self._errors)

    def validate(self, data: Any) -> bool:
        self._errors = []
        try:
            SpanResponseEnvelope.model_validate(data)
        except ValidationError as e:
            seen: set[str] = set()
            for error in e.errors(include_url=False):
                message = _describe_error(error)
                if message not in seen:
                    seen.add(message)
                    self._errors.append(message)
            logger.debug("Schema validation failed", extra={"error_count": len(self._errors)})
            return False
        return True

    def format_errors(self) -> str:
        return format_validation_errors(self._errors)

    def validate_or_throw(self, data: Any) -> SpanResponseEnvelope:
        if not self.validate(data):
            raise SchemaValidationError(
                f"Schema validation failed:\n{self.format_errors()}",
                errors=self._errors,
            )
        return SpanResponseEnvelope.model_validate(data)


_default_validator = SchemaValidator()


def validate_schema(data: Any) -> bool:
    """True if *data* has the required envelope structure."""
    return _default_validator.validate(data)


def get_schema_errors() -> list[str]:
    """Errors from the most recent :func:`validate_schema` call."""
    return _default_validator.errors


def format_schema_errors() -> str:
    return _default_validator.format_errors()


def validate_schema_or_throw(data: Any) -> SpanResponseEnvelope:
    """Validate and return the parsed envelope, or raise SchemaValidationError."""
    return _default_validator.validate_or_throw(data)


def span_response_json_schema() -> dict[str, Any]:
    """JSON Schema for the envelope, for schema-constrained annotators."""
    return SpanResponseEnvelope.model_json_schema()


def inject_defensive_meta(
    value: Any,
    template_version: str,
    nlp_spans_found: Optional[int] = None,
) -> Any:
    """Fill bookkeeping fields an annotator forgot, in place.

    Adds ``analysis_trace`` and ``meta.version``/``meta.notes`` when missing
    or mistyped without overwriting valid values, and copies ``category``
    onto spans lacking ``role``. When *nlp_spans_found* is given the meta
    also records that the symbolic pass ran. Falsy and non-dict values are
    returned untouched.
    """
    if not value or not isinstance(value, dict):
        return value

    if not isinstance(value.get("analysis_trace"), str):
        value["analysis_trace"] = ""

    meta = value.get("meta")
    if not isinstance(meta, dict):
        meta = {}
        value["meta"] = meta
    if not isinstance(meta.get("version"), str) or not meta["version"]:
        meta["version"] = template_version
    if not isinstance(meta.get("notes"), str):
        meta["notes"] = ""
    if nlp_spans_found is not None:
        meta["nlpAttempted"] = True
        meta["nlpSpansFound"] = nlp_spans_found

    spans = value.get("spans")
    if isinstance(spans, list):
        for span in spans:
            if isinstance(span, dict) and not span.get("role") and span.get("category"):
                span["role"] = span["category"]

    return value
