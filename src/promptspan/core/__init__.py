"""
promptspan core: span model, taxonomy and validation pipeline.

Usage:
    from promptspan.core import validate_spans

    outcome = validate_spans(raw_spans, text)
    if not outcome.ok:
        print(outcome.errors)
    for span in outcome.result.spans:
        print(f"{span.role}: {span.text}")
"""

from .types import (
    Span,
    ValidationMode,
    ValidationPolicy,
    ProcessingOptions,
    StageResult,
    ValidationResult,
    ValidationOutcome,
    ChunkResult,
)
from .taxonomy import (
    Category,
    TAXONOMY,
    VALID_CATEGORIES,
    PARENT_CATEGORIES,
    is_valid_category,
    parent_of,
    resolve_role,
)
from .locator import SubstringPositionCache, locate
from .schema import (
    SchemaValidator,
    validate_schema,
    validate_schema_or_throw,
    inject_defensive_meta,
)
from .public import to_public_span, to_public_result
from .pipeline.validator import validate_spans

__all__ = [
    "Span",
    "ValidationMode",
    "ValidationPolicy",
    "ProcessingOptions",
    "StageResult",
    "ValidationResult",
    "ValidationOutcome",
    "ChunkResult",
    "Category",
    "TAXONOMY",
    "VALID_CATEGORIES",
    "PARENT_CATEGORIES",
    "is_valid_category",
    "parent_of",
    "resolve_role",
    "SubstringPositionCache",
    "locate",
    "SchemaValidator",
    "validate_schema",
    "validate_schema_or_throw",
    "inject_defensive_meta",
    "to_public_span",
    "to_public_result",
    "validate_spans",
]
