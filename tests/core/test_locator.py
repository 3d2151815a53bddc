"""Tests for substring location: strategies, preferred start, claims, telemetry."""

import random

import pytest

from promptspan.core.locator import (
    LocatorTelemetry,
    Match,
    SubstringPositionCache,
    locate,
)


class TestOccurrences:
    """Per-strategy occurrence lists."""

    def test_exact_reports_overlapping_hits(self):
        cache = SubstringPositionCache()
        assert cache.exact_occurrences("aaaa", "aa") == [(0, 2), (1, 3), (2, 4)]

    def test_case_insensitive(self):
        cache = SubstringPositionCache()
        assert cache.case_insensitive_occurrences("Golden Hour, golden hour", "GOLDEN HOUR") == [
            (0, 11),
            (13, 24),
        ]

    def test_normalized_collapses_whitespace_and_quotes(self):
        cache = SubstringPositionCache()
        source = "a slow   dolly\nin toward the door"
        assert cache.normalized_occurrences(source, '"Slow dolly in"') == [(2, 17)]

    def test_normalized_empty_needle(self):
        cache = SubstringPositionCache()
        assert cache.normalized_occurrences("anything", '""') == []

    def test_cache_resets_for_new_source(self):
        cache = SubstringPositionCache()
        assert cache.exact_occurrences("red hat", "hat") == [(4, 7)]
        assert cache.exact_occurrences("a hat", "hat") == [(2, 5)]


class TestFindBestMatch:
    """Strategy cascade and occurrence selection."""

    def test_exact_first(self):
        cache = SubstringPositionCache()
        assert cache.find_best_match("a red hat", "red") == Match(2, 5, "exact")

    def test_case_insensitive_fallback(self):
        cache = SubstringPositionCache()
        assert cache.find_best_match("A Red Hat", "red hat") == Match(2, 9, "case_insensitive")

    def test_normalized_fallback(self):
        cache = SubstringPositionCache()
        match = cache.find_best_match("soft  window light", "'soft window light'")
        assert match == Match(0, 18, "normalized")

    def test_not_found(self):
        cache = SubstringPositionCache()
        assert cache.find_best_match("a red hat", "blue scarf") is None
        assert cache.telemetry.failures == 1

    def test_empty_inputs(self):
        cache = SubstringPositionCache()
        assert cache.find_best_match("", "x") is None
        assert cache.find_best_match("x", "") is None

    def test_first_occurrence_without_preference(self):
        source = "rain, then more rain, then rain"
        assert locate("rain", source) == Match(0, 4, "exact")

    def test_preferred_start_picks_closest(self):
        source = "rain, then more rain, then rain"
        assert locate("rain", source, preferred_start=18).start == 16
        assert locate("rain", source, preferred_start=30).start == 27

    def test_preferred_start_tie_goes_to_earlier(self):
        source = "ab__ab"
        # Both occurrences are 2 away from position 2
        assert locate("ab", source, preferred_start=2).start == 0

    def test_claimed_occurrences_are_skipped(self):
        source = "rain, then more rain"
        match = locate("rain", source, claimed={(0, 4)})
        assert (match.start, match.end) == (16, 20)

    def test_all_claimed_falls_back_to_all(self):
        source = "rain"
        match = locate("rain", source, claimed={(0, 4)})
        assert (match.start, match.end) == (0, 4)


class TestFuzzy:
    """Anchored edit-distance fallback."""

    def test_disabled_by_default(self):
        cache = SubstringPositionCache()
        assert cache.find_best_match("a weathered cowboy", "weatherd cowboy") is None

    def test_finds_typo(self):
        cache = SubstringPositionCache(fuzzy_matching=True)
        match = cache.find_best_match("a weathered cowboy rides", "weathere cowboy")
        assert match is not None
        assert match.method == "fuzzy"
        assert match.start == 2
        assert "cowboy" in "a weathered cowboy rides"[match.start:match.end]

    def test_threshold_rejects_distant_text(self):
        cache = SubstringPositionCache(fuzzy_matching=True, fuzzy_threshold=0.1)
        assert cache.find_best_match("a weathered cowboy", "weathering storms") is None

    def test_threshold_is_normalized_distance(self):
        source = "a weathered cowboy rides"
        # one edit over sixteen characters
        loose = SubstringPositionCache(fuzzy_matching=True, fuzzy_threshold=0.07)
        tight = SubstringPositionCache(fuzzy_matching=True, fuzzy_threshold=0.06)
        assert loose.fuzzy_occurrences(source, "weathere cowboy") == [(2, 18)]
        assert tight.fuzzy_occurrences(source, "weathere cowboy") == []

    def test_short_needles_are_not_fuzzed(self):
        cache = SubstringPositionCache(fuzzy_matching=True)
        assert cache.fuzzy_occurrences("a red hat", "rde") == []


class TestTelemetry:
    """Strategy hit counters."""

    def test_records_each_strategy(self):
        cache = SubstringPositionCache()
        cache.find_best_match("A Red Hat", "Red")
        cache.find_best_match("A Red Hat", "red hat")
        cache.find_best_match("A Red Hat", "blue")
        assert cache.telemetry.to_dict() == {
            "exact": 1,
            "case_insensitive": 1,
            "normalized": 0,
            "fuzzy": 0,
            "failures": 1,
            "total": 3,
        }

    def test_record_none_is_failure(self):
        telemetry = LocatorTelemetry()
        telemetry.record(None)
        telemetry.record("exact")
        assert telemetry.failures == 1
        assert telemetry.total == 2


@pytest.mark.property
class TestLocatorRecovery:
    """Text cut out of a source is always found again at a matching position."""

    WORDS = ["golden", "hour", "light", "slow", "dolly", "in", "rain", "neon", "street", "a", "the"]

    @pytest.mark.parametrize("seed", range(20))
    def test_recovers_extracted_substrings(self, seed):
        rng = random.Random(seed)
        source = " ".join(rng.choice(self.WORDS) for _ in range(40))
        cache = SubstringPositionCache()
        for _ in range(10):
            start = rng.randrange(0, len(source) - 1)
            end = rng.randrange(start + 1, min(len(source), start + 25) + 1)
            needle = source[start:end]
            if not needle.strip():
                continue
            bogus_start = start + rng.randint(-5, 5)
            match = cache.find_best_match(source, needle, preferred_start=bogus_start)
            assert match is not None
            assert source[match.start:match.end] == needle
