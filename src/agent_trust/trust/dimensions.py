"""TrustDimension and TrustEvidenceType enums and the evidence impact table.

Five dimensions contribute to the overall trust score:
- Reliability:  consistency in behaviour and promise keeping
- Competence:   ability to perform tasks and provide value
- Integrity:    adherence to ethical principles and rules
- Benevolence:  good intentions towards others
- Transparency: open and honest communication

``EVIDENCE_IMPACT_MAP`` is the single source of meaning for every piece of
evidence: it maps each evidence type to a signed base impact and a sparse
set of per-dimension deltas.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TrustDimension(str, Enum):
    """The five axes of trust measurement."""

    RELIABILITY = "reliability"
    COMPETENCE = "competence"
    INTEGRITY = "integrity"
    BENEVOLENCE = "benevolence"
    TRANSPARENCY = "transparency"


class TrustEvidenceType(str, Enum):
    """Categories of observations that move trust."""

    # Positive
    PROMISE_KEPT = "PROMISE_KEPT"
    HELPFUL_ACTION = "HELPFUL_ACTION"
    CONSISTENT_BEHAVIOR = "CONSISTENT_BEHAVIOR"
    VERIFIED_IDENTITY = "VERIFIED_IDENTITY"
    COMMUNITY_CONTRIBUTION = "COMMUNITY_CONTRIBUTION"
    SUCCESSFUL_TRANSACTION = "SUCCESSFUL_TRANSACTION"

    # Negative
    PROMISE_BROKEN = "PROMISE_BROKEN"
    HARMFUL_ACTION = "HARMFUL_ACTION"
    INCONSISTENT_BEHAVIOR = "INCONSISTENT_BEHAVIOR"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"
    FAILED_VERIFICATION = "FAILED_VERIFICATION"
    SPAM_BEHAVIOR = "SPAM_BEHAVIOR"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"

    # Neutral
    IDENTITY_CHANGE = "IDENTITY_CHANGE"
    ROLE_CHANGE = "ROLE_CHANGE"
    CONTEXT_SWITCH = "CONTEXT_SWITCH"


NEUTRAL_SCORE: float = 50.0

# Default contribution weights for the overall score.
# Must sum to 1.0.
DEFAULT_WEIGHTS: dict[TrustDimension, float] = {
    TrustDimension.RELIABILITY: 0.25,
    TrustDimension.COMPETENCE: 0.20,
    TrustDimension.INTEGRITY: 0.25,
    TrustDimension.BENEVOLENCE: 0.20,
    TrustDimension.TRANSPARENCY: 0.10,
}


@dataclass(frozen=True)
class EvidenceImpact:
    """Base impact and per-dimension deltas for one evidence type."""

    base_impact: float
    dimensions: dict[TrustDimension, float] = field(default_factory=dict)


_R = TrustDimension.RELIABILITY
_C = TrustDimension.COMPETENCE
_I = TrustDimension.INTEGRITY
_B = TrustDimension.BENEVOLENCE
_T = TrustDimension.TRANSPARENCY

EVIDENCE_IMPACT_MAP: dict[TrustEvidenceType, EvidenceImpact] = {
    TrustEvidenceType.PROMISE_KEPT: EvidenceImpact(10, {_R: 15, _I: 10}),
    TrustEvidenceType.HELPFUL_ACTION: EvidenceImpact(8, {_B: 15, _C: 10}),
    TrustEvidenceType.CONSISTENT_BEHAVIOR: EvidenceImpact(12, {_R: 20, _T: 10}),
    TrustEvidenceType.VERIFIED_IDENTITY: EvidenceImpact(15, {_T: 20, _I: 10}),
    TrustEvidenceType.COMMUNITY_CONTRIBUTION: EvidenceImpact(12, {_B: 20, _C: 15}),
    TrustEvidenceType.SUCCESSFUL_TRANSACTION: EvidenceImpact(10, {_R: 15, _C: 15}),
    TrustEvidenceType.PROMISE_BROKEN: EvidenceImpact(-15, {_R: -25, _I: -15}),
    TrustEvidenceType.HARMFUL_ACTION: EvidenceImpact(-20, {_B: -30, _I: -20}),
    TrustEvidenceType.INCONSISTENT_BEHAVIOR: EvidenceImpact(-12, {_R: -20, _T: -15}),
    TrustEvidenceType.SUSPICIOUS_ACTIVITY: EvidenceImpact(-15, {_I: -15, _T: -20}),
    TrustEvidenceType.FAILED_VERIFICATION: EvidenceImpact(-10, {_T: -25, _I: -10}),
    TrustEvidenceType.SPAM_BEHAVIOR: EvidenceImpact(-10, {_B: -15, _C: -10}),
    TrustEvidenceType.SECURITY_VIOLATION: EvidenceImpact(-25, {_I: -35, _R: -20}),
    TrustEvidenceType.IDENTITY_CHANGE: EvidenceImpact(0, {_T: -5}),
    TrustEvidenceType.ROLE_CHANGE: EvidenceImpact(0),
    TrustEvidenceType.CONTEXT_SWITCH: EvidenceImpact(0),
}

_missing = set(TrustEvidenceType) - set(EVIDENCE_IMPACT_MAP)
if _missing:
    raise RuntimeError(f"EVIDENCE_IMPACT_MAP is missing entries for {sorted(m.value for m in _missing)}")

# Remediation hints keyed to the weakest dimension.
DIMENSION_SUGGESTIONS: dict[TrustDimension, list[str]] = {
    TrustDimension.RELIABILITY: [
        "Keep your promises and commitments",
        "Be consistent in your actions",
        "Follow through on what you say",
    ],
    TrustDimension.COMPETENCE: [
        "Demonstrate your skills through helpful contributions",
        "Share valuable knowledge or resources",
        "Complete tasks successfully",
    ],
    TrustDimension.INTEGRITY: [
        "Be honest and transparent in your communications",
        "Admit mistakes when they happen",
        "Follow community guidelines consistently",
    ],
    TrustDimension.BENEVOLENCE: [
        "Help other community members",
        "Show genuine interest in others' wellbeing",
        "Contribute positively to discussions",
    ],
    TrustDimension.TRANSPARENCY: [
        "Be open about your intentions",
        "Share information freely when appropriate",
        "Verify your identity on multiple platforms",
    ],
}


def neutral_dimensions() -> dict[TrustDimension, float]:
    """Return a fresh dimension map at the neutral prior."""
    return {dim: NEUTRAL_SCORE for dim in TrustDimension}
