"""Tests for same-category overlap resolution."""

from promptspan.core.pipeline.span_resolver import resolve_overlaps
from promptspan.core.types import Span

SOURCE = "slow dolly in toward the lighthouse keeper"


def make_span(text, start=None, role="camera", confidence=0.9):
    """Span located at the first occurrence of *text* unless start is given."""
    if start is None:
        start = SOURCE.index(text)
    return Span(start=start, end=start + len(text), text=text, role=role, confidence=confidence)


class TestNoConflict:
    """Spans that do not compete are all kept."""

    def test_disjoint_spans(self):
        spans = [make_span("slow dolly in"), make_span("lighthouse keeper", role="subject")]
        result = resolve_overlaps(spans)
        assert result.spans == spans
        assert result.notes == []

    def test_different_parents_may_overlap(self):
        spans = [
            make_span("slow dolly in", role="camera.movement"),
            make_span("dolly", role="style"),
        ]
        spans.sort(key=lambda s: (s.start, s.end))
        result = resolve_overlaps(spans)
        assert len(result.spans) == 2

    def test_allow_overlap_returns_input(self):
        spans = [make_span("slow dolly"), make_span("dolly in")]
        result = resolve_overlaps(spans, allow_overlap=True)
        assert result.spans is spans
        assert result.notes == []

    def test_empty(self):
        assert resolve_overlaps([]).spans == []


class TestTieBreak:
    """Winner order: specificity, confidence, length, earlier start."""

    def test_more_specific_role_wins(self):
        generic = make_span("slow dolly", role="camera", confidence=0.95)
        specific = make_span("dolly in", role="camera.movement", confidence=0.5)
        result = resolve_overlaps([generic, specific])
        assert result.spans == [specific]

    def test_higher_confidence_wins(self):
        low = make_span("slow dolly", confidence=0.6)
        high = make_span("dolly in", confidence=0.8)
        assert resolve_overlaps([low, high]).spans == [high]

    def test_longer_span_wins(self):
        short = make_span("slow dolly", confidence=0.8)
        long = make_span("dolly in toward", confidence=0.8)
        assert resolve_overlaps([short, long]).spans == [long]

    def test_earlier_start_wins(self):
        first = make_span("slow dolly", confidence=0.8)
        second = make_span("dolly in t", confidence=0.8)
        assert len(first) == len(second)
        assert resolve_overlaps([first, second]).spans == [first]

    def test_note_names_both_spans(self):
        low = make_span("slow dolly", confidence=0.6)
        high = make_span("dolly in", confidence=0.8)
        note = resolve_overlaps([low, high]).notes[0]
        assert note == (
            'Overlap between "slow dolly" (0-10, conf=0.60) and '
            '"dolly in" (5-13, conf=0.80); kept "dolly in".'
        )

    def test_incoming_span_beats_several(self):
        a = make_span("slow", confidence=0.5)
        b = make_span("dolly", confidence=0.5)
        wide = make_span("slow dolly in", role="camera.movement", confidence=0.7)
        result = resolve_overlaps(sorted([a, b, wide], key=lambda s: (s.start, s.end)))
        assert result.spans == [wide]
        assert len(result.notes) == 2

    def test_output_sorted_by_position(self):
        spans = [
            make_span("slow dolly", confidence=0.5),
            make_span("lighthouse", role="subject"),
            make_span("dolly in", confidence=0.9),
        ]
        spans.sort(key=lambda s: (s.start, s.end))
        result = resolve_overlaps(spans)
        assert [s.text for s in result.spans] == ["dolly in", "lighthouse"]
