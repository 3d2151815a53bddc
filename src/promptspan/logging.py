"""
Structured logging configuration for promptspan.

Provides:
- JSON-formatted logs for machine consumption
- Human-readable logs for interactive use
- A labeling-call id stamped on every record emitted during the call

Pipeline modules only ever call ``logging.getLogger(__name__)``; handlers and
formatters are installed here, once, by the application (the CLI does it on
startup).

Usage:
    from promptspan.logging import setup_logging, request_context

    setup_logging(level="DEBUG", json_format=True)

    with request_context() as request_id:
        logging.getLogger(__name__).info("Validated spans", extra={"span_count": 12})
"""

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator

# Id of the labeling call in progress, if any
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Standard LogRecord attributes, never emitted as extra fields
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
})


def get_request_id() -> str | None:
    """Id of the labeling call in progress."""
    return request_id_var.get()


@contextmanager
def request_context(request_id: str | None = None) -> Iterator[str]:
    """Bind a request id for the duration of the block.

    An id already bound by an enclosing block is reused, so chunk
    annotations share the id of the call that spawned them.
    """
    current = request_id or request_id_var.get() or uuid.uuid4().hex[:12]
    token = request_id_var.set(current)
    try:
        yield current
    finally:
        request_id_var.reset(token)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.123456Z",
        "level": "DEBUG",
        "logger": "promptspan.core.pipeline.normalizer",
        "message": "Dropped span",
        "request_id": "abc123",
        "start": 4,
        ...
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        # Add source location for warnings and above
        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in _extra_fields(record).items():
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """
    Human-readable log formatter.

    Output format:
    2024-01-15 10:30:00 DEBUG    [promptspan.core.pipeline.merger] Merged spans count=2
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        extra_str = " ".join(f"{k}={v}" for k, v in _extra_fields(record).items())
        if extra_str:
            extra_str = " " + extra_str

        request_id = get_request_id()
        request_str = f" [{request_id[:8]}]" if request_id else ""

        message = f"{timestamp} {level:8}{request_str} [{record.name}] {record.getMessage()}{extra_str}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON formatting
        log_file: Optional file path to write logs (always JSON)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = TextFormatter(use_colors=sys.stderr.isatty())

    # stderr keeps CLI stdout clean for JSON output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

