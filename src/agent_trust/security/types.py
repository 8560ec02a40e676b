"""Security detection records: checks, events, messages, actions and detections.

Every single-message detector returns a :class:`SecurityCheck`. Multi-entity
detectors return a typed detection or ``None`` when below threshold.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from agent_trust.clock import now_ms


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SecurityAction(str, Enum):
    BLOCK = "block"
    REQUIRE_VERIFICATION = "require_verification"
    ALLOW = "allow"
    LOG_ONLY = "log_only"


class CheckType(str, Enum):
    PROMPT_INJECTION = "prompt_injection"
    SOCIAL_ENGINEERING = "social_engineering"
    CREDENTIAL_THEFT = "credential_theft"
    ANOMALY = "anomaly"
    NONE = "none"


class SecurityEventType(str, Enum):
    """Kinds of security events emitted to the audit sink."""

    PROMPT_INJECTION_ATTEMPT = "prompt_injection_attempt"
    SOCIAL_ENGINEERING_ATTEMPT = "social_engineering_attempt"
    PRIVILEGE_ESCALATION_ATTEMPT = "privilege_escalation_attempt"
    ANOMALOUS_REQUEST = "anomalous_request"
    TRUST_MANIPULATION = "trust_manipulation"
    IDENTITY_SPOOFING = "identity_spoofing"
    MULTI_ACCOUNT_ABUSE = "multi_account_abuse"
    CREDENTIAL_THEFT_ATTEMPT = "credential_theft_attempt"
    PHISHING_ATTEMPT = "phishing_attempt"
    IMPERSONATION_ATTEMPT = "impersonation_attempt"
    COORDINATED_ATTACK = "coordinated_attack"
    MALICIOUS_LINK_CAMPAIGN = "malicious_link_campaign"
    # Warning delivered to a targeted entity; not an incident in itself.
    SECURITY_ALERT = "security_alert"


@dataclass(frozen=True)
class SecurityContext:
    """Where and by whom a checked message or request originated."""

    entity_id: Optional[str] = None
    world_id: Optional[str] = None
    room_id: Optional[str] = None
    platform: Optional[str] = None
    requested_action: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class SecurityCheck:
    """Uniform result of a single-message detector.

    Parameters
    ----------
    detected:
        True if a threat was found.
    confidence:
        Certainty of the finding (0 - 1).
    type:
        Threat category.
    severity:
        How bad the finding is.
    action:
        Recommended handling.
    details:
        Human-readable explanation.
    """

    detected: bool
    confidence: float
    type: CheckType
    severity: Severity
    action: SecurityAction
    details: Optional[str] = None

    @classmethod
    def clear(cls) -> "SecurityCheck":
        """A non-detection."""
        return cls(
            detected=False,
            confidence=0.0,
            type=CheckType.NONE,
            severity=Severity.LOW,
            action=SecurityAction.ALLOW,
        )

    @classmethod
    def fail_safe(cls, details: str = "Evaluation error - defaulting to caution") -> "SecurityCheck":
        """Conservative result used when an evaluator fails."""
        return cls(
            detected=True,
            confidence=0.5,
            type=CheckType.ANOMALY,
            severity=Severity.MEDIUM,
            action=SecurityAction.REQUIRE_VERIFICATION,
            details=details,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "detected": self.detected,
            "confidence": self.confidence,
            "type": self.type.value,
            "severity": self.severity.value,
            "action": self.action.value,
            "details": self.details,
        }


@dataclass
class ThreatAssessment(SecurityCheck):
    recommendation: Optional[str] = None


@dataclass
class SecurityEvent:
    """One structured security event delivered to the audit sink."""

    type: SecurityEventType
    entity_id: str
    severity: Severity
    context: dict[str, Any] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=now_ms)
    handled: bool = False

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary suitable for JSON encoding."""
        return {
            "timestamp": self.timestamp,
            "type": self.type.value,
            "entity_id": self.entity_id,
            "severity": self.severity.value,
            "context": self.context,
            "details": self.details,
            "handled": self.handled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SecurityEvent":
        return cls(
            type=SecurityEventType(data["type"]),
            entity_id=str(data["entity_id"]),
            severity=Severity(data["severity"]),
            context=dict(data.get("context") or {}),
            details=dict(data.get("details") or {}),
            timestamp=float(data["timestamp"]),
            handled=bool(data.get("handled", False)),
        )


@dataclass(frozen=True)
class Message:
    id: str
    entity_id: str
    content: str
    timestamp: float
    room_id: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass(frozen=True)
class Action:
    id: str
    entity_id: str
    type: str
    timestamp: float
    target: Optional[str] = None
    result: Optional[str] = None


# ------------------------------------------------------------------
# Multi-entity detections
# ------------------------------------------------------------------


@dataclass
class PatternDetection:
    """Common fields of every multi-entity detection."""

    type: str
    confidence: float
    evidence: list[str]
    recommendation: str
    related_entities: list[str] = field(default_factory=list)


@dataclass
class LinkageEvidence:
    typing_pattern: float
    timing_pattern: float
    vocabulary_pattern: float
    behavior_pattern: float

    def mean(self) -> float:
        return (
            self.typing_pattern + self.timing_pattern + self.vocabulary_pattern + self.behavior_pattern
        ) / 4


@dataclass
class MultiAccountDetection(PatternDetection):
    primary_account: str = ""
    linked_accounts: list[str] = field(default_factory=list)
    linkage_evidence: Optional[LinkageEvidence] = None


@dataclass
class CredentialTheftDetection(PatternDetection):
    sensitive_patterns: list[str] = field(default_factory=list)
    attempted_theft: list[str] = field(default_factory=list)
    potential_victims: list[str] = field(default_factory=list)
    # Victim extraction from conversation context is not implemented;
    # potential_victims is always empty while this is True.
    victims_incomplete: bool = True


@dataclass
class PhishingDetection(PatternDetection):
    malicious_links: list[str] = field(default_factory=list)
    targeted_entities: list[str] = field(default_factory=list)
    campaign_id: str = ""


@dataclass
class ImpersonationDetection(PatternDetection):
    impersonator: str = ""
    impersonated: str = ""
    visual_similarity: float = 0.0
    timing_coincidence: float = 0.0


@dataclass
class CoordinationDetection(PatternDetection):
    coordinated_entities: list[str] = field(default_factory=list)
    time_window: float = 0.0
    correlation_score: float = 0.0


@dataclass
class ConversationAnalysis:
    """Credential-theft picture of a whole conversation."""

    overall_threat: float
    suspicious_entities: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
