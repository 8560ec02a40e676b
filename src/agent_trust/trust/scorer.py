"""TrustScorer — evidence-weighted, time-decayed multi-dimensional trust scoring.

Folds the evidence impact table over a subject's evidence to produce the
five dimension scores, then derives the overall score, a confidence
estimate and a trend. All methods are pure given the policy and the clock
reading passed in; caching and persistence live in :mod:`agent_trust.trust.engine`.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from agent_trust.clock import MS_PER_DAY
from agent_trust.trust.dimensions import (
    DEFAULT_WEIGHTS,
    DIMENSION_SUGGESTIONS,
    EVIDENCE_IMPACT_MAP,
    TrustDimension,
    neutral_dimensions,
)
from agent_trust.trust.evidence import TrustEvidence
from agent_trust.trust.policy import TrustPolicy, TrustRequirements

STABLE = "stable"
INCREASING = "increasing"
DECREASING = "decreasing"


@dataclass
class TrustTrend:
    """Direction and rate of trust movement.

    Parameters
    ----------
    direction:
        One of "increasing", "decreasing", or "stable".
    change_rate:
        Points per day, rounded to one decimal.
    last_change_at:
        When the overall score last moved (epoch ms).
    """

    direction: str = STABLE
    change_rate: float = 0.0
    last_change_at: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "direction": self.direction,
            "change_rate": self.change_rate,
            "last_change_at": self.last_change_at,
        }


@dataclass
class TrustProfile:
    """Derived trust profile of one subject as seen by one evaluator.

    Parameters
    ----------
    entity_id:
        The subject.
    evaluator_id:
        The evaluating entity.
    dimensions:
        Per-dimension scores keyed by TrustDimension (0 - 100 each).
    overall_trust:
        Weighted mean of the dimensions, rounded to an integer.
    confidence:
        Certainty in the score (0 - 1).
    interaction_count:
        Number of evidence items the profile was built from.
    evidence:
        Most recent evidence, newest first.
    last_calculated:
        When the profile was computed (epoch ms).
    trend:
        Movement relative to earlier snapshots.
    calculation_method:
        Tag identifying the scoring algorithm.
    """

    entity_id: str
    evaluator_id: str
    dimensions: dict[TrustDimension, float]
    overall_trust: float
    confidence: float
    interaction_count: int
    evidence: list[TrustEvidence]
    last_calculated: float
    trend: TrustTrend = field(default_factory=TrustTrend)
    calculation_method: str = "dimensional_aggregation_v1"

    def weakest_dimension(self) -> TrustDimension:
        """Return the lowest-scoring dimension (first in enum order on ties)."""
        return min(TrustDimension, key=lambda dim: self.dimensions[dim])

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "entity_id": self.entity_id,
            "evaluator_id": self.evaluator_id,
            "dimensions": {dim.value: score for dim, score in self.dimensions.items()},
            "overall_trust": self.overall_trust,
            "confidence": self.confidence,
            "interaction_count": self.interaction_count,
            "evidence": [ev.to_dict() for ev in self.evidence],
            "last_calculated": self.last_calculated,
            "trend": self.trend.to_dict(),
            "calculation_method": self.calculation_method,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrustProfile":
        """Reconstruct from a plain dictionary.

        Raises
        ------
        KeyError, ValueError, TypeError
            If the record is malformed.
        """
        trend = data.get("trend") or {}
        return cls(
            entity_id=str(data["entity_id"]),
            evaluator_id=str(data["evaluator_id"]),
            dimensions={
                TrustDimension(k): float(v) for k, v in (data.get("dimensions") or {}).items()
            },
            overall_trust=float(data["overall_trust"]),
            confidence=float(data.get("confidence", 0.0)),
            interaction_count=int(data.get("interaction_count", 0)),
            evidence=[TrustEvidence.from_dict(ev) for ev in data.get("evidence") or []],
            last_calculated=float(data["last_calculated"]),
            trend=TrustTrend(
                direction=str(trend.get("direction", STABLE)),
                change_rate=float(trend.get("change_rate", 0.0)),
                last_change_at=float(trend.get("last_change_at", 0.0)),
            ),
            calculation_method=str(data.get("calculation_method", "dimensional_aggregation_v1")),
        )


@dataclass
class TrustDecision:
    """Outcome of checking a profile against TrustRequirements."""

    allowed: bool
    trust_score: float
    required_score: float
    dimensions_checked: dict[TrustDimension, float]
    reason: str
    suggestions: list[str] = field(default_factory=list)


class TrustScorer:
    """Multi-dimensional trust scorer.

    Parameters
    ----------
    policy:
        Trust policy defining weights, decay and confidence parameters.
        Defaults to the standard policy with no customization.
    """

    def __init__(self, policy: TrustPolicy | None = None) -> None:
        self._policy: TrustPolicy = policy if policy is not None else TrustPolicy()
        self._policy.validate_weights()

    @property
    def policy(self) -> TrustPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Evidence weighting
    # ------------------------------------------------------------------

    def age_weight(self, timestamp: float, now: float) -> float:
        """Blend exponential decay with a flat 0.5 floor according to recency bias.

        Strictly decreasing in age while ``recency_bias`` and the decay rate
        are positive; tends to ``(1 - recency_bias) * 0.5`` for very old evidence.
        """
        age_days = (now - timestamp) / MS_PER_DAY
        decay = math.exp(-self._policy.evidence_decay_rate * age_days)
        bias = self._policy.recency_bias
        return bias * decay + (1.0 - bias) * 0.5

    def score_dimensions(
        self,
        evidence: Sequence[TrustEvidence],
        now: float,
    ) -> dict[TrustDimension, float]:
        """Fold the evidence impact table over *evidence*.

        Every dimension starts at the neutral prior and is clamped after each
        evidence item is applied.
        """
        policy = self._policy
        min_s = policy.min_score
        max_s = policy.max_score
        dimensions = neutral_dimensions()

        for ev in evidence:
            impact = EVIDENCE_IMPACT_MAP.get(ev.type)
            if impact is None:
                continue

            multiplier = (
                ev.weight
                * self.age_weight(ev.timestamp, now)
                * (policy.verification_multiplier if ev.verified else 1.0)
            )
            for dim, delta in impact.dimensions.items():
                dimensions[dim] = max(min_s, min(max_s, dimensions[dim] + delta * multiplier))

        return dimensions

    def overall_trust(self, dimensions: dict[TrustDimension, float]) -> float:
        """Weighted mean of the dimension scores, rounded to an integer."""
        weights = self._policy.dimension_weights
        weighted_sum = 0.0
        total_weight = 0.0
        for dim in TrustDimension:
            weight = weights.get(dim, DEFAULT_WEIGHTS[dim])
            weighted_sum += dimensions.get(dim, 0.0) * weight
            total_weight += weight
        if total_weight <= 0:
            return 0.0
        # Half-up rounding; round() would round halves to even.
        return float(math.floor(weighted_sum / total_weight + 0.5))

    def confidence(self, evidence: Sequence[TrustEvidence], now: float) -> float:
        """Certainty from evidence volume, polarity balance and recency."""
        count = len(evidence)
        if count == 0 or count < self._policy.minimum_evidence_count:
            return 0.0

        volume = min(1.0, count / self._policy.confidence_saturation_count)

        positive = sum(1 for ev in evidence if ev.impact > 0)
        negative = sum(1 for ev in evidence if ev.impact < 0)
        consistency = 1.0 - abs(positive - negative) / count

        horizon = self._policy.recent_evidence_days * MS_PER_DAY
        recent = sum(1 for ev in evidence if now - ev.timestamp < horizon)
        recency = recent / count

        return volume * 0.4 + consistency * 0.3 + recency * 0.3

    # ------------------------------------------------------------------
    # Trend analysis
    # ------------------------------------------------------------------

    def analyze_trend(
        self,
        current_score: float,
        history: Sequence[TrustProfile],
        now: float,
    ) -> TrustTrend:
        """Compare *current_score* against the most recent historical snapshots.

        Uses up to ``trend_window`` snapshots, newest first. Fewer than two
        snapshots always yields a stable trend.
        """
        snapshots = sorted(history, key=lambda p: p.last_calculated, reverse=True)
        snapshots = snapshots[: self._policy.trend_window]

        if len(snapshots) < 2:
            return TrustTrend(direction=STABLE, change_rate=0.0, last_change_at=now)

        newest = snapshots[0]
        oldest = snapshots[-1]
        span_days = (now - oldest.last_calculated) / MS_PER_DAY
        change_rate = (current_score - oldest.overall_trust) / span_days if span_days > 0 else 0.0

        if abs(change_rate) < self._policy.trend_stable_rate:
            direction = STABLE
        elif change_rate > 0:
            direction = INCREASING
        else:
            direction = DECREASING

        if current_score != newest.overall_trust:
            last_change_at = now
        else:
            last_change_at = newest.trend.last_change_at or now

        return TrustTrend(
            direction=direction,
            change_rate=round(change_rate * 10) / 10,
            last_change_at=last_change_at,
        )

    # ------------------------------------------------------------------
    # Remediation
    # ------------------------------------------------------------------

    def suggestions_for(
        self,
        profile: TrustProfile,
        requirements: Optional[TrustRequirements] = None,
    ) -> list[str]:
        """Return trust-building suggestions keyed to the weakest dimension."""
        suggestions: list[str] = []
        if requirements is not None and profile.overall_trust < requirements.minimum_trust:
            gap = requirements.minimum_trust - profile.overall_trust
            suggestions.append(f"Build {gap:g} more trust points through positive interactions")

        suggestions.extend(DIMENSION_SUGGESTIONS[profile.weakest_dimension()])

        if profile.interaction_count < 10:
            suggestions.append("Engage in more conversations and activities")
        return suggestions
