"""
Shared test configuration for promptspan.

Provides span factories, a default Settings instance and isolation of the
cached settings and root logging handlers between tests.
"""

import logging
from typing import List

import pytest

from promptspan.config import Settings, get_settings
from promptspan.core.types import Span


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "property: seeded randomized invariant checks"
    )


# =============================================================================
# SPAN FACTORY FUNCTIONS
# =============================================================================

def make_span(
    text: str,
    start: int = 0,
    role: str = "subject",
    confidence: float = 0.9,
    **kwargs
) -> Span:
    """
    Factory function to create a valid Span for testing.

    Automatically calculates end position from start + len(text).
    """
    return Span(
        start=start,
        end=start + len(text),
        text=text,
        role=role,
        confidence=confidence,
        **kwargs
    )


def make_spans_from_text(text: str, annotations: list) -> List[Span]:
    """
    Create spans from a text string and ``(phrase, role, confidence)`` tuples.

    Each phrase is located at its first occurrence after the previous one.
    """
    spans = []
    cursor = 0
    for phrase, role, confidence in annotations:
        start = text.index(phrase, cursor)
        spans.append(make_span(phrase, start=start, role=role, confidence=confidence))
        cursor = start + 1
    return spans


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def span_factory():
    """Fixture providing the make_span factory function."""
    return make_span


@pytest.fixture
def spans_from_text():
    """Fixture providing the make_spans_from_text factory function."""
    return make_spans_from_text


@pytest.fixture
def settings():
    """Default settings, independent of any promptspan.yaml on disk."""
    return Settings()


@pytest.fixture(autouse=True)
def _isolate_settings_and_logging():
    """Clear cached settings and restore root logging after each test."""
    get_settings.cache_clear()
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    get_settings.cache_clear()
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


# =============================================================================
# TEST DATA - Common Prompts
# =============================================================================

SIMPLE_PROMPT = "A weathered cowboy rides slowly through a dusty canyon at golden hour."

MARKDOWN_PROMPT = """## Camera
Slow dolly in on a lone lighthouse keeper.

**Lighting:**
Warm golden hour light from the left, soft shadows.

### Alternatives
**Variation 1 (Low Angle):** The keeper seen from below against storm clouds.
"""


@pytest.fixture
def simple_prompt():
    return SIMPLE_PROMPT


@pytest.fixture
def markdown_prompt():
    return MARKDOWN_PROMPT
