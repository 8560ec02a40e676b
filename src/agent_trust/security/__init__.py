"""Adversarial behavior detection.

Pattern-based and optionally model-backed detection of prompt injection,
social engineering and credential theft in single messages, plus
multi-entity detection of linked accounts, phishing campaigns,
impersonation and coordinated activity. Conversation-level analysis
summarizes credential-theft attempts across many messages.
"""
from __future__ import annotations

from agent_trust.security.audit import SecurityAuditLogger
from agent_trust.security.detector import SecurityDetector, get_security_recommendations
from agent_trust.security.evaluator import (
    BehaviorAnalysis,
    ModelThreatEvaluator,
    ThreatAnalysis,
    ThreatEvaluator,
    TrustActionVerdict,
    determine_action,
)
from agent_trust.security.profiler import BehavioralProfile, BehavioralProfiler
from agent_trust.security.types import (
    Action,
    CheckType,
    ConversationAnalysis,
    CoordinationDetection,
    CredentialTheftDetection,
    ImpersonationDetection,
    LinkageEvidence,
    Message,
    MultiAccountDetection,
    PatternDetection,
    PhishingDetection,
    SecurityAction,
    SecurityCheck,
    SecurityContext,
    SecurityEvent,
    SecurityEventType,
    Severity,
    ThreatAssessment,
)

__all__ = [
    "Action",
    "BehavioralProfile",
    "BehaviorAnalysis",
    "BehavioralProfiler",
    "CheckType",
    "ConversationAnalysis",
    "CoordinationDetection",
    "CredentialTheftDetection",
    "ImpersonationDetection",
    "LinkageEvidence",
    "Message",
    "ModelThreatEvaluator",
    "MultiAccountDetection",
    "PatternDetection",
    "PhishingDetection",
    "SecurityAction",
    "SecurityAuditLogger",
    "SecurityCheck",
    "SecurityContext",
    "SecurityDetector",
    "SecurityEvent",
    "SecurityEventType",
    "Severity",
    "ThreatAnalysis",
    "ThreatAssessment",
    "ThreatEvaluator",
    "TrustActionVerdict",
    "determine_action",
    "get_security_recommendations",
]
