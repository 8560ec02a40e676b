"""agent-trust — Multi-dimensional trust scoring, threat detection and access control.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import agent_trust
>>> agent_trust.__version__
'0.1.0'

Quick start
-----------
::

    from agent_trust import (
        # Trust
        TrustEngine, TrustContext, TrustInteraction, TrustEvidenceType, TrustPolicy,
        # Storage
        InMemoryComponentStore, JsonComponentStore,
        # Security
        SecurityDetector, SecurityContext, SecurityAuditLogger,
        # Permissions
        ContextualPermissionSystem, AccessRequest, StaticRoleDirectory,
    )
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors and configuration
# ------------------------------------------------------------------
from agent_trust.errors import ExternalCallError, MissingCollaboratorError
from agent_trust.resilience import ExternalCallPolicy, call_external
from agent_trust.config import AgentTrustConfig, PermissionConfig, SecurityConfig, load_config

# ------------------------------------------------------------------
# Trust subsystem
# ------------------------------------------------------------------
from agent_trust.trust import (
    EVIDENCE_IMPACT_MAP,
    TimeWindow,
    TrustContext,
    TrustDecision,
    TrustDimension,
    TrustEngine,
    TrustEvidence,
    TrustEvidenceType,
    TrustInteraction,
    TrustPolicy,
    TrustProfile,
    TrustRequirements,
    TrustScorer,
    TrustTrend,
)

# ------------------------------------------------------------------
# Storage
# ------------------------------------------------------------------
from agent_trust.store import ComponentStore, InMemoryComponentStore, JsonComponentStore

# ------------------------------------------------------------------
# Security subsystem
# ------------------------------------------------------------------
from agent_trust.security import (
    Action,
    BehavioralProfile,
    BehaviorAnalysis,
    BehavioralProfiler,
    ConversationAnalysis,
    Message,
    ModelThreatEvaluator,
    SecurityAction,
    SecurityAuditLogger,
    SecurityCheck,
    SecurityContext,
    SecurityDetector,
    SecurityEvent,
    SecurityEventType,
    Severity,
    ThreatAssessment,
    ThreatEvaluator,
)

# ------------------------------------------------------------------
# Permission subsystem
# ------------------------------------------------------------------
from agent_trust.permissions import (
    AccessDecision,
    AccessMethod,
    AccessRequest,
    ContextualPermissionSystem,
    ContextualRole,
    ElevationRequest,
    Permission,
    PermissionContext,
    PermissionDelegation,
    Role,
    RoleResolver,
    StaticRoleDirectory,
)

__all__ = [
    "__version__",
    # Errors and configuration
    "AgentTrustConfig",
    "ExternalCallError",
    "ExternalCallPolicy",
    "MissingCollaboratorError",
    "PermissionConfig",
    "SecurityConfig",
    "call_external",
    "load_config",
    # Trust
    "EVIDENCE_IMPACT_MAP",
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
    # Storage
    "ComponentStore",
    "InMemoryComponentStore",
    "JsonComponentStore",
    # Security
    "Action",
    "BehavioralProfile",
    "BehaviorAnalysis",
    "BehavioralProfiler",
    "ConversationAnalysis",
    "Message",
    "ModelThreatEvaluator",
    "SecurityAction",
    "SecurityAuditLogger",
    "SecurityCheck",
    "SecurityContext",
    "SecurityDetector",
    "SecurityEvent",
    "SecurityEventType",
    "Severity",
    "ThreatAssessment",
    "ThreatEvaluator",
    # Permissions
    "AccessDecision",
    "AccessMethod",
    "AccessRequest",
    "ContextualPermissionSystem",
    "ContextualRole",
    "ElevationRequest",
    "Permission",
    "PermissionContext",
    "PermissionDelegation",
    "Role",
    "RoleResolver",
    "StaticRoleDirectory",
]
