"""Multi-dimensional trust scoring.

Trust is computed across five dimensions — reliability, competence,
integrity, benevolence and transparency — from time-decayed, weighted
evidence, and aggregated into an overall score with a confidence estimate
and a trend.
"""
from __future__ import annotations

from agent_trust.trust.dimensions import (
    DEFAULT_WEIGHTS,
    EVIDENCE_IMPACT_MAP,
    EvidenceImpact,
    TrustDimension,
    TrustEvidenceType,
)
from agent_trust.trust.evidence import TimeWindow, TrustContext, TrustEvidence, TrustInteraction
from agent_trust.trust.history import InteractionLog
from agent_trust.trust.policy import TrustPolicy, TrustRequirements
from agent_trust.trust.scorer import TrustDecision, TrustProfile, TrustScorer, TrustTrend
from agent_trust.trust.engine import TrustEngine

__all__ = [
    "DEFAULT_WEIGHTS",
    "EVIDENCE_IMPACT_MAP",
    "EvidenceImpact",
    "InteractionLog",
    "TimeWindow",
    "TrustContext",
    "TrustDecision",
    "TrustDimension",
    "TrustEngine",
    "TrustEvidence",
    "TrustEvidenceType",
    "TrustInteraction",
    "TrustPolicy",
    "TrustProfile",
    "TrustRequirements",
    "TrustScorer",
    "TrustTrend",
]
