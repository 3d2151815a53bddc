"""
Unified exception hierarchy for promptspan.

All exception classes live here. No per-module exception files.

Hierarchy:
    PromptSpanError (base)
    ├── SchemaValidationError
    ├── SpanValidationError
    ├── ResponseParseError
    ├── AnnotationError
    └── ConfigurationError

Per-span problems found while validating an annotation are reported as
``errors`` / ``notes`` on the validation outcome, not raised.

Usage:
    from promptspan.exceptions import SchemaValidationError
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# ROOT
# =============================================================================


class PromptSpanError(Exception):
    """
    Base exception for all promptspan errors.

    Attributes:
        message: Human-readable error description
        context: Additional context about what was being done
        details: Technical details (span counts, chunk index, etc.)
    """

    def __init__(
        self,
        message: str,
        context: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.context = context
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.context:
            parts.append(f"Context: {self.context}")
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            parts.append(f"Details: {detail_str}")
        return ". ".join(parts)


# =============================================================================
# VALIDATION
# =============================================================================


class SchemaValidationError(PromptSpanError):
    """The response envelope does not have the required structure."""

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        context: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.errors = list(errors or [])
        super().__init__(message, context=context, details=details)


class SpanValidationError(PromptSpanError):
    """Spans failed validation and could not be repaired."""

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        context: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.errors = list(errors or [])
        super().__init__(message, context=context, details=details)


# =============================================================================
# ANNOTATION SOURCES
# =============================================================================


class ResponseParseError(PromptSpanError):
    """Annotator output could not be parsed as JSON."""


class AnnotationError(PromptSpanError):
    """The annotation source raised or returned nothing usable."""

    def __init__(
        self,
        message: str,
        chunk_index: int | None = None,
        context: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.chunk_index = chunk_index
        details = dict(details or {})
        if chunk_index is not None:
            details.setdefault("chunk_index", chunk_index)
        super().__init__(message, context=context, details=details)


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigurationError(PromptSpanError):
    """Settings are missing or invalid."""


__all__ = [
    "PromptSpanError",
    "SchemaValidationError",
    "SpanValidationError",
    "ResponseParseError",
    "AnnotationError",
    "ConfigurationError",
]
