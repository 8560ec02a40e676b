"""TrustPolicy and TrustRequirements — configurable scoring and decision thresholds.

Policies allow operators to tune trust dynamics for their deployment.
Sensible defaults are provided for all parameters.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from agent_trust.trust.dimensions import DEFAULT_WEIGHTS, TrustDimension, TrustEvidenceType


class TrustPolicy(BaseModel):
    """Configurable trust scoring policy.

    Parameters
    ----------
    recency_bias:
        Share of the age weight driven by exponential decay. The remainder
        is a flat 0.5, so very old evidence settles at half weight.
    evidence_decay_rate:
        Exponential decay rate per day of evidence age.
    minimum_evidence_count:
        Below this many evidence items confidence is 0.
    verification_multiplier:
        Amplification applied to verified evidence.
    dimension_weights:
        Fractional weight for each dimension in the overall score.
        Values must sum to 1.0.
    min_score:
        Floor for any dimension and the overall score.
    max_score:
        Ceiling for any dimension and the overall score.
    cache_ttl_seconds:
        Lifetime of a cached profile per (evaluator, subject).
    max_evidence:
        Most recent evidence items retained on a profile.
    trend_window:
        Number of historical profile snapshots used for trend analysis.
    trend_stable_rate:
        Absolute change rate (points per day) below which the trend is stable.
    recent_evidence_days:
        Evidence newer than this counts toward the recency part of confidence.
    confidence_saturation_count:
        Evidence count at which the volume part of confidence reaches 1.
    """

    recency_bias: float = Field(default=0.7, ge=0.0, le=1.0)
    evidence_decay_rate: float = Field(default=0.5, ge=0.0)
    minimum_evidence_count: int = Field(default=3, ge=0)
    verification_multiplier: float = Field(default=1.5, ge=0.0)
    dimension_weights: dict[TrustDimension, float] = Field(
        default_factory=lambda: dict(DEFAULT_WEIGHTS)
    )
    min_score: float = 0.0
    max_score: float = 100.0
    cache_ttl_seconds: float = Field(default=300.0, ge=0.0)
    max_evidence: int = Field(default=100, gt=0)
    trend_window: int = Field(default=10, ge=2)
    trend_stable_rate: float = Field(default=0.5, ge=0.0)
    recent_evidence_days: float = Field(default=7.0, gt=0.0)
    confidence_saturation_count: int = Field(default=20, gt=0)

    def validate_weights(self) -> None:
        """Raise ValueError if dimension weights do not sum to 1.0."""
        total = sum(self.dimension_weights.get(dim, 0.0) for dim in TrustDimension)
        if abs(total - 1.0) > 1e-6:
            raise ValueError(
                f"Dimension weights must sum to 1.0, got {total:.6f}"
            )


class TrustRequirements(BaseModel):
    """Thresholds an entity must meet for a trust-gated action.

    Missing keys impose no constraint.
    """

    minimum_trust: float = 0.0
    dimensions: dict[TrustDimension, float] = Field(default_factory=dict)
    minimum_interactions: Optional[int] = None
    minimum_confidence: Optional[float] = None
    required_evidence: list[TrustEvidenceType] = Field(default_factory=list)
