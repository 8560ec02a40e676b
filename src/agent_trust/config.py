"""Configuration models and JSON config loading.

Every tunable lives on a pydantic model with defaults, so a component can
be constructed with no configuration at all. :class:`AgentTrustConfig`
bundles the per-component models for hosts that keep settings in a file.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from agent_trust.resilience import ExternalCallPolicy
from agent_trust.trust.policy import TrustPolicy

logger = logging.getLogger(__name__)


class SecurityConfig(BaseModel):
    """Thresholds used by the security detector.

    Parameters
    ----------
    history_limit:
        Messages and actions retained per entity.
    multi_account_threshold:
        Mean linkage score above which accounts are reported as linked.
    sync_threshold_seconds:
        Two actions closer than this count as synchronized.
    phishing_min_messages:
        Suspicious messages required to report a phishing campaign.
    impersonation_similarity:
        Edit-distance similarity above which a username is suspicious.
    timing_coincidence:
        Assumed likelihood that the impersonated user is currently active.
    coordination_threshold:
        Fraction of synchronized minute buckets that triggers a report.
    coordination_participation:
        Fraction of entities that must act in a bucket for it to count.
    incident_window_hours:
        Look-back window for threat assessment.
    """

    history_limit: int = Field(default=100, ge=1)
    multi_account_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    sync_threshold_seconds: float = Field(default=5.0, gt=0.0)
    phishing_min_messages: int = Field(default=3, ge=1)
    impersonation_similarity: float = Field(default=0.8, ge=0.0, le=1.0)
    timing_coincidence: float = Field(default=0.9, ge=0.0, le=1.0)
    coordination_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    coordination_participation: float = Field(default=0.7, ge=0.0, le=1.0)
    incident_window_hours: float = Field(default=24.0, gt=0.0)


class PermissionConfig(BaseModel):
    """Thresholds and lifetimes used by the permission pipeline."""

    decision_ttl_ms: int = Field(default=300_000, ge=0)
    max_cached_decisions: int = Field(default=10_000, ge=1)
    trust_access_threshold: float = Field(default=80.0, ge=0.0, le=100.0)
    elevation_trust_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    default_elevation_seconds: int = Field(default=300, ge=1)
    privileged_roles: frozenset[str] = frozenset({"OWNER", "ADMIN"})


class AgentTrustConfig(BaseModel):
    trust: TrustPolicy = Field(default_factory=TrustPolicy)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    permissions: PermissionConfig = Field(default_factory=PermissionConfig)
    external_calls: ExternalCallPolicy = Field(default_factory=ExternalCallPolicy)


def load_config(path: Path) -> AgentTrustConfig:
    """Load configuration from a JSON file.

    Parameters
    ----------
    path:
        JSON file whose top-level keys match :class:`AgentTrustConfig`
        fields. A missing file yields the defaults.

    Raises
    ------
    ValueError
        If the file is not valid JSON or fails validation.
    """
    if not path.exists():
        logger.info("No config at %s, using defaults", path)
        return AgentTrustConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Config file {path} is not valid JSON: {exc}") from exc
    try:
        config = AgentTrustConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Config file {path} is invalid: {exc}") from exc
    config.trust.validate_weights()
    return config
