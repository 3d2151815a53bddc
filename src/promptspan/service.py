"""Span labeling service.

Drives an annotator (LLM client, symbolic parser, test double) through the
validation pipeline:

    annotate -> parse -> defensive meta -> schema gate
        -> adversarial short-circuit -> strict validation
        -> lenient fallback, or one repair call

Texts longer than the chunking threshold are split into sentence-aligned
chunks, annotated concurrently (bounded by ``max_concurrent_chunks``) and
merged back into source coordinates. A chunk whose annotation fails
contributes no spans instead of failing the request.

Usage:
    from promptspan.service import label_spans

    result = await label_spans(text, annotator, options={"max_spans": 20})
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from .core.locator import SubstringPositionCache
from .core.pipeline.chunking import TextChunk, TextChunker
from .core.pipeline.validator import ADVERSARIAL_NOTE, NOTES_SEPARATOR, validate_spans
from .core.policy import build_task_description, sanitize_options, sanitize_policy
from .core.schema import inject_defensive_meta, validate_schema_or_throw
from .core.text_utils import format_validation_errors, parse_json, word_count
from .core.types import ChunkResult, ProcessingOptions, ValidationPolicy, ValidationResult
from .exceptions import AnnotationError, PromptSpanError, ResponseParseError, SpanValidationError
from .logging import request_context

logger = logging.getLogger(__name__)

REPAIR_INSTRUCTIONS = (
    "Fix the indices and roles described above without changing span text. "
    "Do not invent new spans."
)


@dataclass(frozen=True)
class AnnotationRequest:
    """What an annotator is asked to label.

    ``validation_errors`` and ``previous_response`` are only set on a
    repair call; ``chunk_index`` only when annotating one chunk of a
    longer text.
    """

    text: str
    task: str
    policy: ValidationPolicy
    options: ProcessingOptions
    max_tokens: int
    attempt: int = 1
    validation_errors: tuple[str, ...] = ()
    previous_response: Optional[Mapping[str, Any]] = None
    instructions: Optional[str] = None
    chunk_index: Optional[int] = None

    @property
    def is_repair(self) -> bool:
        return bool(self.validation_errors)


AnnotatorResponse = Union[str, Mapping[str, Any]]
Annotator = Callable[[AnnotationRequest], Awaitable[AnnotatorResponse]]


async def _call_annotator(annotator: Annotator, request: AnnotationRequest) -> AnnotatorResponse:
    try:
        return await annotator(request)
    except PromptSpanError:
        raise
    except Exception as e:
        raise AnnotationError(
            f"Annotator failed: {e}",
            chunk_index=request.chunk_index,
            details={"attempt": request.attempt},
        ) from e


def _parse_response(raw: AnnotatorResponse) -> Any:
    """JSON text or an already-decoded mapping -> a mutable envelope."""
    if isinstance(raw, Mapping):
        return dict(raw)
    if not isinstance(raw, str):
        raise ResponseParseError(
            "Annotator returned neither text nor an object",
            details={"type": type(raw).__name__},
        )
    ok, value = parse_json(raw)
    if not ok:
        raise ResponseParseError(value)
    return value


def _is_adversarial(envelope: Mapping[str, Any]) -> bool:
    return envelope.get("isAdversarial") is True or envelope.get("is_adversarial") is True


async def _annotate(
    annotator: Annotator,
    request: AnnotationRequest,
) -> dict[str, Any]:
    raw = await _call_annotator(annotator, request)
    envelope = _parse_response(raw)
    inject_defensive_meta(envelope, request.options.template_version)
    validate_schema_or_throw(envelope)
    return envelope


async def _label_single(
    text: str,
    annotator: Annotator,
    policy: ValidationPolicy,
    options: ProcessingOptions,
    enable_repair: bool,
    settings,
    chunk_index: Optional[int] = None,
) -> ValidationResult:
    cache = SubstringPositionCache(
        fuzzy_matching=settings.locator.fuzzy_matching,
        fuzzy_threshold=settings.locator.fuzzy_threshold,
    )
    request = AnnotationRequest(
        text=text,
        task=build_task_description(options.max_spans, policy),
        policy=policy,
        options=options,
        max_tokens=settings.performance.estimate_max_tokens(options.max_spans),
        chunk_index=chunk_index,
    )

    def run(envelope: Mapping[str, Any], attempt: int, adversarial: bool):
        return validate_spans(
            [] if adversarial else envelope.get("spans") or [],
            text,
            meta=envelope.get("meta"),
            policy=policy,
            options=options,
            attempt=attempt,
            cache=cache,
            is_adversarial=adversarial,
            analysis_trace=envelope.get("analysis_trace"),
            settings=settings,
        )

    envelope = await _annotate(annotator, request)

    if _is_adversarial(envelope):
        logger.info("Annotator flagged input as adversarial", extra={"chunk_index": chunk_index})
        return run(envelope, 1, True).result

    outcome = run(envelope, 1, False)
    if outcome.ok:
        return outcome.result

    if not enable_repair:
        logger.info(
            "Strict validation failed; retrying leniently",
            extra={"error_count": len(outcome.errors), "chunk_index": chunk_index},
        )
        return run(envelope, 2, False).result

    logger.info(
        "Strict validation failed; requesting repair",
        extra={"error_count": len(outcome.errors), "chunk_index": chunk_index},
    )
    repair_request = replace(
        request,
        attempt=2,
        validation_errors=tuple(outcome.errors),
        previous_response=envelope,
        instructions=REPAIR_INSTRUCTIONS,
    )
    repaired = await _annotate(annotator, repair_request)
    outcome = run(repaired, 2, _is_adversarial(repaired))
    if not outcome.ok:
        raise SpanValidationError(
            f"Repair attempt failed validation:\n{format_validation_errors(outcome.errors)}",
            errors=outcome.errors,
        )
    return outcome.result


async def _label_chunked(
    text: str,
    annotator: Annotator,
    policy: ValidationPolicy,
    options: ProcessingOptions,
    enable_repair: bool,
    settings,
    chunker: TextChunker,
) -> ValidationResult:
    chunks = chunker.chunk(text)
    total_words = word_count(text)
    chunking = settings.chunking
    logger.info(
        "Labeling large text in chunks",
        extra={"word_count": total_words, "chunk_count": len(chunks)},
    )

    limit = chunking.max_concurrent_chunks if chunking.process_chunks_in_parallel else 1
    semaphore = asyncio.Semaphore(limit)

    async def process(index: int, chunk: TextChunk) -> ChunkResult:
        async with semaphore:
            try:
                result = await _label_single(
                    chunk.text, annotator, policy, options, enable_repair, settings,
                    chunk_index=index,
                )
            except PromptSpanError as e:
                logger.warning(
                    "Chunk annotation failed: %s", e,
                    extra={"chunk_index": index, "chunk_offset": chunk.start_offset},
                )
                return ChunkResult(spans=[], chunk_offset=chunk.start_offset)
            except Exception as e:
                logger.error(
                    "Unexpected error annotating chunk: %s", e,
                    extra={"chunk_index": index, "chunk_offset": chunk.start_offset},
                )
                return ChunkResult(spans=[], chunk_offset=chunk.start_offset)
        return ChunkResult(
            spans=list(result.spans),
            chunk_offset=chunk.start_offset,
            is_adversarial=result.is_adversarial,
        )

    chunk_results = await asyncio.gather(
        *(process(index, chunk) for index, chunk in enumerate(chunks))
    )

    is_adversarial = any(r.is_adversarial for r in chunk_results)
    meta: dict[str, Any] = {
        "version": options.template_version,
        "chunked": True,
        "chunkCount": len(chunks),
        "totalWords": total_words,
    }

    spans: list = []
    stage_notes: list[str] = []
    if not is_adversarial:
        merged = chunker.merge_chunked_spans(chunk_results)
        # Overlapping chunks can disagree on a boundary; re-check against the whole text
        outcome = validate_spans(
            [s.to_dict() for s in merged],
            text,
            policy=policy,
            options=options,
            attempt=2,
            settings=settings,
        )
        spans = outcome.result.spans
        stage_notes = [n for n in outcome.result.meta["notes"].split(NOTES_SEPARATOR) if n]
        meta["locator"] = outcome.result.meta["locator"]

    notes = [f"Processed {len(chunks)} chunks, {len(spans)} total spans", *stage_notes]
    if is_adversarial:
        notes.append(ADVERSARIAL_NOTE)
    meta["notes"] = NOTES_SEPARATOR.join(notes)

    logger.info(
        "Chunked labeling complete",
        extra={"span_count": len(spans), "chunk_count": len(chunks)},
    )
    return ValidationResult(spans=spans, meta=meta, is_adversarial=is_adversarial)


async def label_spans(
    text: str,
    annotator: Annotator,
    policy: Union[ValidationPolicy, Mapping[str, Any], None] = None,
    options: Union[ProcessingOptions, Mapping[str, Any], None] = None,
    enable_repair: bool = False,
    settings=None,
    request_id: Optional[str] = None,
) -> ValidationResult:
    """
    Label *text* with *annotator* and return a validated span set.

    Args:
        text: Source text; must contain non-whitespace
        annotator: Async callable taking an :class:`AnnotationRequest` and
            returning JSON text or a decoded envelope
        policy: Word limit / overlap policy
        options: max_spans / min_confidence / template_version
        enable_repair: On strict failure, ask the annotator once to fix
            its output instead of dropping bad spans
        settings: Settings override (defaults to ``get_settings()``)
        request_id: Id stamped on every log record of this call (generated
            when omitted)

    Raises:
        ValueError: Empty text
        ResponseParseError: Annotator output is not JSON
        SchemaValidationError: Annotator output has the wrong structure
        AnnotationError: Annotator raised
        SpanValidationError: A repair response still fails validation
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("text is required")

    if settings is None:
        from .config import get_settings
        settings = get_settings()

    policy = sanitize_policy(policy, settings)
    options = sanitize_options(options, settings)
    chunker = TextChunker(
        settings.chunking.max_words_per_chunk,
        settings.chunking.overlap_words,
    )

    with request_context(request_id):
        if chunker.needs_chunking(text):
            return await _label_chunked(
                text, annotator, policy, options, enable_repair, settings, chunker
            )
        return await _label_single(text, annotator, policy, options, enable_repair, settings)


__all__ = [
    "AnnotationRequest",
    "Annotator",
    "AnnotatorResponse",
    "REPAIR_INSTRUCTIONS",
    "label_spans",
]
