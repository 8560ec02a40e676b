"""String and profile similarity measures used by the pattern detectors."""
from __future__ import annotations

from typing import Sequence

from agent_trust.security.patterns import CONFUSABLE_GLYPHS
from agent_trust.security.profiler import BehavioralProfile


def levenshtein(a: str, b: str) -> int:
    """Return the edit distance between *a* and *b* (unit costs)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """Return ``(len(longer) - distance) / len(longer)``; 1.0 for two empty strings."""
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - levenshtein(a, b)) / longer


def _glyphs_match(x: str, y: str) -> bool:
    return x == y or y in CONFUSABLE_GLYPHS.get(x, ()) or x in CONFUSABLE_GLYPHS.get(y, ())


def visual_similarity(a: str, b: str) -> float:
    """Fraction of aligned positions whose glyphs are equal or confusable.

    The denominator is the longer length, so trailing characters count as
    mismatches.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    matches = sum(1 for x, y in zip(a, b) if _glyphs_match(x, y))
    return matches / longest


def variance(values: Sequence[float]) -> float:
    """Population variance; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def profile_similarities(profiles: Sequence[BehavioralProfile]) -> dict[str, float]:
    """Compare a group of profiles along typing, vocabulary and behavior.

    Returns an empty mapping for fewer than two profiles. Vocabulary
    similarity is 0.0 when no profile has any common phrase.
    """
    if len(profiles) < 2:
        return {}

    typing = 1 - min(variance([p.typing_speed for p in profiles]) / 10, 1)

    phrases = [phrase for p in profiles for phrase in p.common_phrases]
    vocabulary = 1 - len(set(phrases)) / len(phrases) if phrases else 0.0

    behavior = 1 - min(variance([p.message_length_mean for p in profiles]) / 100, 1)

    return {"typing": typing, "vocabulary": vocabulary, "behavior": behavior}
