"""
promptspan CLI entry point.

Usage:
    promptspan validate INPUT.json --text-file PROMPT.txt [--attempt N]
    promptspan chunk PROMPT.txt [--max-words N] [--overlap N]
    promptspan schema INPUT.json
    promptspan schema --json-schema
    promptspan taxonomy [--group entity|setting|technical] [--json]
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from promptspan import __version__
from promptspan.core.taxonomy import TaxonomyGroup


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _load_envelope(path: Path):
    """Parse an annotator response file; exit with a message if it is not JSON."""
    from promptspan.core.text_utils import parse_json

    ok, value = parse_json(_read_text(path))
    if not ok:
        click.echo(f"Error: {path}: {value}", err=True)
        sys.exit(1)
    return value


def _echo_json(value) -> None:
    click.echo(json.dumps(value, indent=2, ensure_ascii=False))


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level", default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Override the configured log level",
)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON")
def cli(log_level: Optional[str], json_logs: bool):
    """promptspan - validate and correct span annotations of prompt text"""
    from promptspan.config import get_settings
    from promptspan.exceptions import ConfigurationError
    from promptspan.logging import setup_logging

    try:
        settings = get_settings()
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    setup_logging(
        level=(log_level or settings.logging.level).upper(),
        json_format=json_logs or settings.logging.format == "json",
        log_file=settings.logging.file,
    )


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--text-file", "-t", required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Source text the spans refer to",
)
@click.option("--attempt", default=1, type=int, help="1 = strict, 2+ = lenient")
@click.option("--max-spans", default=None, type=int, help="Maximum spans to keep")
@click.option("--min-confidence", default=None, type=float, help="Confidence floor")
@click.option("--allow-overlap", is_flag=True, help="Keep overlapping spans")
@click.option("--word-limit", default=None, type=int, help="Non-technical span word limit")
@click.option("--public", is_flag=True, help="Output spans with 'category' instead of 'role'")
@click.option("--audit", is_flag=True, help="Check output invariants and fail on violations")
def validate(
    input_file: Path,
    text_file: Path,
    attempt: int,
    max_spans: Optional[int],
    min_confidence: Optional[float],
    allow_overlap: bool,
    word_limit: Optional[int],
    public: bool,
    audit: bool,
):
    """Validate an annotator response against its source text."""
    from promptspan.config import get_settings
    from promptspan.core.pipeline.span_validation import check_span_invariants
    from promptspan.core.pipeline.validator import validate_spans
    from promptspan.core.public import to_public_result
    from promptspan.core.schema import format_schema_errors, inject_defensive_meta, validate_schema

    text = _read_text(text_file)
    envelope = _load_envelope(input_file)
    if isinstance(envelope, list):
        envelope = {"spans": envelope}

    options: dict = {}
    if max_spans is not None:
        options["max_spans"] = max_spans
    if min_confidence is not None:
        options["min_confidence"] = min_confidence
    policy: dict = {}
    if allow_overlap:
        policy["allow_overlap"] = True
    if word_limit is not None:
        policy["non_technical_word_limit"] = word_limit

    inject_defensive_meta(envelope, get_settings().options.template_version)
    if not validate_schema(envelope):
        click.echo("Schema validation failed:", err=True)
        click.echo(format_schema_errors(), err=True)
        sys.exit(1)

    adversarial = envelope.get("isAdversarial") is True or envelope.get("is_adversarial") is True
    outcome = validate_spans(
        [] if adversarial else envelope.get("spans"),
        text,
        meta=envelope.get("meta"),
        policy=policy,
        options=options,
        attempt=attempt,
        is_adversarial=adversarial,
        analysis_trace=envelope.get("analysis_trace"),
    )

    output = to_public_result(outcome.result) if public else outcome.result.to_dict()
    output["ok"] = outcome.ok
    if outcome.errors:
        output["errors"] = outcome.errors
    _echo_json(output)

    if audit:
        violations = check_span_invariants(
            outcome.result.spans, text, allow_overlap=allow_overlap, context="cli"
        )
        for violation in violations:
            click.echo(f"AUDIT: {violation}", err=True)
        if violations:
            sys.exit(3)

    if not outcome.ok:
        sys.exit(1)


@cli.command()
@click.argument("text_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--max-words", default=None, type=int, help="Words per chunk")
@click.option("--overlap", default=None, type=int, help="Words carried into the next chunk")
def chunk(text_file: Path, max_words: Optional[int], overlap: Optional[int]):
    """Split a text file into annotation chunks."""
    from promptspan.config import get_settings
    from promptspan.core.pipeline.chunking import TextChunker

    settings = get_settings().chunking
    try:
        chunker = TextChunker(
            max_words if max_words is not None else settings.max_words_per_chunk,
            overlap if overlap is not None else settings.overlap_words,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    text = _read_text(text_file)
    _echo_json([
        {
            "index": index,
            "start": c.start_offset,
            "end": c.end_offset,
            "word_count": c.word_count,
            "text": c.text,
        }
        for index, c in enumerate(chunker.chunk(text))
    ])


@cli.command()
@click.argument(
    "input_file", required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--json-schema", "print_schema", is_flag=True, help="Print the envelope JSON Schema")
def schema(input_file: Optional[Path], print_schema: bool):
    """Check an annotator response against the envelope schema."""
    from promptspan.core.schema import format_schema_errors, span_response_json_schema, validate_schema

    if print_schema:
        _echo_json(span_response_json_schema())
        return
    if input_file is None:
        raise click.UsageError("INPUT_FILE is required unless --json-schema is given")

    if validate_schema(_load_envelope(input_file)):
        click.echo("valid")
        return
    click.echo("invalid", err=True)
    click.echo(format_schema_errors(), err=True)
    sys.exit(1)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option(
    "--group",
    type=click.Choice([g.value for g in TaxonomyGroup]),
    help="Only list parent categories in this group",
)
def taxonomy(as_json: bool, group: Optional[str]):
    """List the span categories, grouped by kind."""
    from promptspan.core.taxonomy import TAXONOMY_VERSION, categories_in_group

    groups = [TaxonomyGroup(group)] if group else list(TaxonomyGroup)
    parents = [parent for g in groups for parent in categories_in_group(g)]

    if as_json:
        _echo_json({
            "version": TAXONOMY_VERSION,
            "categories": {
                parent.id: [attr.value for attr in parent.attributes]
                for parent in parents
            },
        })
        return

    click.echo(f"Taxonomy v{TAXONOMY_VERSION}")
    for g in groups:
        click.echo(f"[{g.value}]")
        for parent in categories_in_group(g):
            click.echo(f"{parent.id}  ({parent.label})")
            for attr in parent.attributes:
                click.echo(f"  {attr.value}")


def main():
    cli()


if __name__ == "__main__":
    main()
