"""Unit tests for agent_trust.security.similarity — edit distance and profile similarity."""
from __future__ import annotations

import pytest

from agent_trust.security.profiler import BehavioralProfile
from agent_trust.security.similarity import (
    levenshtein,
    profile_similarities,
    string_similarity,
    variance,
    visual_similarity,
)


def _profile(
    entity_id: str,
    typing_speed: float = 5.0,
    mean_length: float = 20.0,
    phrases: list[str] | None = None,
) -> BehavioralProfile:
    return BehavioralProfile(
        entity_id=entity_id,
        typing_speed=typing_speed,
        message_length_mean=mean_length,
        common_phrases=list(phrases or []),
    )


class TestLevenshtein:
    def test_classic_example(self) -> None:
        assert levenshtein("kitten", "sitting") == 3

    def test_identical_strings(self) -> None:
        assert levenshtein("admin", "admin") == 0

    def test_against_empty(self) -> None:
        assert levenshtein("", "abc") == 3
        assert levenshtein("abc", "") == 3

    def test_symmetric(self) -> None:
        assert levenshtein("flaw", "lawn") == levenshtein("lawn", "flaw") == 2


class TestStringSimilarity:
    def test_both_empty_is_identical(self) -> None:
        assert string_similarity("", "") == pytest.approx(1.0)

    def test_one_substitution_in_five(self) -> None:
        assert string_similarity("admin", "adm1n") == pytest.approx(0.8)

    def test_completely_different(self) -> None:
        assert string_similarity("abc", "xyz") == pytest.approx(0.0)


class TestVisualSimilarity:
    def test_confusable_glyph_counts_as_match(self) -> None:
        assert visual_similarity("paypal", "paypa1") == pytest.approx(1.0)

    def test_zero_for_oh(self) -> None:
        assert visual_similarity("bob", "b0b") == pytest.approx(1.0)

    def test_unrelated_glyph_is_mismatch(self) -> None:
        assert visual_similarity("admin", "adm1n") == pytest.approx(0.8)

    def test_length_difference_counts_against(self) -> None:
        assert visual_similarity("abcd", "ab") == pytest.approx(0.5)

    def test_both_empty(self) -> None:
        assert visual_similarity("", "") == pytest.approx(1.0)


class TestVariance:
    def test_empty(self) -> None:
        assert variance([]) == pytest.approx(0.0)

    def test_population_variance(self) -> None:
        assert variance([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]) == pytest.approx(4.0)


class TestProfileSimilarities:
    def test_fewer_than_two_profiles(self) -> None:
        assert profile_similarities([]) == {}
        assert profile_similarities([_profile("a")]) == {}

    def test_identical_profiles(self) -> None:
        profiles = [_profile("a", phrases=["x y z"]), _profile("b", phrases=["x y z"])]
        result = profile_similarities(profiles)
        assert result["typing"] == pytest.approx(1.0)
        assert result["behavior"] == pytest.approx(1.0)
        assert result["vocabulary"] == pytest.approx(0.5)

    def test_no_phrases_gives_zero_vocabulary(self) -> None:
        result = profile_similarities([_profile("a"), _profile("b")])
        assert result["vocabulary"] == pytest.approx(0.0)

    def test_very_different_profiles(self) -> None:
        profiles = [
            _profile("a", typing_speed=1.0, mean_length=5.0, phrases=["a b c"]),
            _profile("b", typing_speed=20.0, mean_length=200.0, phrases=["d e f"]),
        ]
        result = profile_similarities(profiles)
        assert result == {
            "typing": pytest.approx(0.0),
            "vocabulary": pytest.approx(0.0),
            "behavior": pytest.approx(0.0),
        }

    def test_partial_typing_similarity(self) -> None:
        result = profile_similarities(
            [_profile("a", typing_speed=4.0), _profile("b", typing_speed=6.0)]
        )
        assert result["typing"] == pytest.approx(0.9)
