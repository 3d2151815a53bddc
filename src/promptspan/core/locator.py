"""Locating annotator span text inside the source string.

Annotators frequently return the right phrase with the wrong offsets, the
wrong case, stray quotes, or collapsed whitespace. :func:`locate` recovers the
true position, trying progressively looser strategies:

1. exact substring
2. case-insensitive substring
3. normalized (edge quotes/markdown stripped, whitespace runs collapsed)
4. fuzzy, anchored on the first few characters (opt-in)

When the phrase occurs several times, the occurrence closest to the
annotator's ``preferred_start`` wins; without a hint the first occurrence
wins. Positions in ``claimed`` are skipped while an unclaimed alternative
exists, so repeated phrases map onto distinct occurrences.

Usage:
    from promptspan.core.locator import locate, SubstringPositionCache

    match = locate("world", "hello world", preferred_start=0)
    match.start, match.end   # (6, 11)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import AbstractSet, Dict, List, NamedTuple, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from .constants import DEFAULT_FUZZY_THRESHOLD, FUZZY_ANCHOR_CHARS, QUOTE_CHARS

__all__ = [
    "Match",
    "LocatorTelemetry",
    "SubstringPositionCache",
    "locate",
]

logger = logging.getLogger(__name__)

_EDGE_NOISE = QUOTE_CHARS + "*_"


class Match(NamedTuple):
    """A located occurrence and the strategy that found it."""
    start: int
    end: int
    method: str


@dataclass
class LocatorTelemetry:
    """Hit counters per strategy, for diagnostics."""
    exact: int = 0
    case_insensitive: int = 0
    normalized: int = 0
    fuzzy: int = 0
    failures: int = 0

    @property
    def total(self) -> int:
        return self.exact + self.case_insensitive + self.normalized + self.fuzzy + self.failures

    def record(self, method: Optional[str]) -> None:
        if method is None:
            self.failures += 1
        else:
            setattr(self, method, getattr(self, method) + 1)

    def to_dict(self) -> dict[str, int]:
        return {
            "exact": self.exact,
            "case_insensitive": self.case_insensitive,
            "normalized": self.normalized,
            "fuzzy": self.fuzzy,
            "failures": self.failures,
            "total": self.total,
        }


class SubstringPositionCache:
    """Memoised occurrence lookups against a single source text.

    The cache is keyed by (strategy, needle) and is reset automatically when
    asked about a different source string, so one instance is only ever
    valid for one validation call's text.

    Parameters
    ----------
    fuzzy_matching:
        Enable the anchored edit-distance fallback.
    fuzzy_threshold:
        Maximum normalised edit distance accepted by the fuzzy fallback.
    """

    def __init__(
        self,
        fuzzy_matching: bool = False,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    ) -> None:
        self.fuzzy_matching = fuzzy_matching
        self.fuzzy_threshold = fuzzy_threshold
        self.telemetry = LocatorTelemetry()
        self._source: Optional[str] = None
        self._occurrences: Dict[Tuple[str, str], List[Tuple[int, int]]] = {}

    def clear(self) -> None:
        self._source = None
        self._occurrences.clear()

    def _bind(self, source: str) -> None:
        if self._source is not source and self._source != source:
            self._occurrences.clear()
            self._source = source

    # ------------------------------------------------------------------
    # Occurrence search
    # ------------------------------------------------------------------

    def exact_occurrences(self, source: str, needle: str) -> List[Tuple[int, int]]:
        self._bind(source)
        key = ("exact", needle)
        if key not in self._occurrences:
            found = []
            idx = source.find(needle)
            while idx != -1:
                found.append((idx, idx + len(needle)))
                idx = source.find(needle, idx + 1)
            self._occurrences[key] = found
        return self._occurrences[key]

    def case_insensitive_occurrences(self, source: str, needle: str) -> List[Tuple[int, int]]:
        self._bind(source)
        key = ("case_insensitive", needle)
        if key not in self._occurrences:
            # Lookahead so overlapping occurrences are all reported
            pattern = re.compile(f"(?=({re.escape(needle)}))", re.IGNORECASE)
            self._occurrences[key] = [
                (m.start(), m.start() + len(m.group(1)))
                for m in pattern.finditer(source)
            ]
        return self._occurrences[key]

    def normalized_occurrences(self, source: str, needle: str) -> List[Tuple[int, int]]:
        self._bind(source)
        key = ("normalized", needle)
        if key not in self._occurrences:
            words = needle.strip().strip(_EDGE_NOISE).split()
            if not words:
                self._occurrences[key] = []
            else:
                body = r"\s+".join(re.escape(w) for w in words)
                pattern = re.compile(f"(?=({body}))", re.IGNORECASE)
                self._occurrences[key] = [
                    (m.start(), m.start() + len(m.group(1)))
                    for m in pattern.finditer(source)
                ]
        return self._occurrences[key]

    def fuzzy_occurrences(self, source: str, needle: str) -> List[Tuple[int, int]]:
        """Windows of the source within ``fuzzy_threshold`` of *needle*.

        Candidates are seeded at case-insensitive hits of the needle's first
        characters; for each seed the best window length within two
        characters of the needle length is kept.
        """
        self._bind(source)
        key = ("fuzzy", needle)
        if key in self._occurrences:
            return self._occurrences[key]

        target = " ".join(needle.strip().strip(_EDGE_NOISE).split()).lower()
        found: List[Tuple[int, int]] = []
        if len(target) >= FUZZY_ANCHOR_CHARS:
            anchor = re.escape(target[:FUZZY_ANCHOR_CHARS])
            for m in re.finditer(f"(?={anchor})", source, re.IGNORECASE):
                begin = m.start()
                best: Optional[Tuple[float, int]] = None
                for length in range(len(target) - 2, len(target) + 3):
                    stop = begin + length
                    if length <= 0 or stop > len(source):
                        continue
                    window = " ".join(source[begin:stop].split()).lower()
                    ratio = Levenshtein.normalized_distance(window, target)
                    if ratio <= self.fuzzy_threshold and (best is None or ratio < best[0]):
                        best = (ratio, stop)
                if best is not None:
                    end = best[1]
                    # Never leave trailing whitespace inside the window
                    while end > begin and source[end - 1].isspace():
                        end -= 1
                    found.append((begin, end))
        self._occurrences[key] = found
        return found

    # ------------------------------------------------------------------
    # Best-match selection
    # ------------------------------------------------------------------

    def find_best_match(
        self,
        source: str,
        needle: str,
        preferred_start: Optional[int] = None,
        claimed: AbstractSet[Tuple[int, int]] = frozenset(),
    ) -> Optional[Match]:
        """Locate *needle* in *source*, trying each strategy in turn."""
        if not needle or not source:
            self.telemetry.record(None)
            return None

        strategies = [
            ("exact", self.exact_occurrences),
            ("case_insensitive", self.case_insensitive_occurrences),
            ("normalized", self.normalized_occurrences),
        ]
        if self.fuzzy_matching:
            strategies.append(("fuzzy", self.fuzzy_occurrences))

        for method, finder in strategies:
            occurrences = finder(source, needle)
            if not occurrences:
                continue
            start, end = _closest(occurrences, preferred_start, claimed)
            self.telemetry.record(method)
            if method != "exact":
                logger.debug(
                    "Located span text via fallback strategy",
                    extra={"method": method, "start": start, "end": end},
                )
            return Match(start, end, method)

        self.telemetry.record(None)
        return None


def _closest(
    occurrences: List[Tuple[int, int]],
    preferred_start: Optional[int],
    claimed: AbstractSet[Tuple[int, int]],
) -> Tuple[int, int]:
    """Pick the unclaimed occurrence nearest the preferred start.

    Falls back to all occurrences when every one is already claimed. Ties
    go to the earlier occurrence.
    """
    pool = [occ for occ in occurrences if occ not in claimed] or occurrences
    if preferred_start is None:
        return pool[0]
    return min(pool, key=lambda occ: (abs(occ[0] - preferred_start), occ[0]))


def locate(
    text: str,
    source: str,
    preferred_start: Optional[int] = None,
    *,
    claimed: AbstractSet[Tuple[int, int]] = frozenset(),
    cache: Optional[SubstringPositionCache] = None,
) -> Optional[Match]:
    """Find *text* in *source*; returns None when it cannot be located."""
    if cache is None:
        cache = SubstringPositionCache()
    return cache.find_best_match(source, text, preferred_start, claimed)
