"""Access requests, decisions, elevations and grant tables."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class AccessMethod(str, Enum):
    """How an access decision was reached."""

    ROLE_BASED = "role-based"
    TRUST_BASED = "trust-based"
    ELEVATED = "elevated"
    DENIED = "denied"


@dataclass(frozen=True)
class Permission:
    action: str
    resource: str

    def to_dict(self) -> dict[str, str]:
        return {"action": self.action, "resource": self.resource}


@dataclass(frozen=True)
class PermissionContext:
    """Where an access request is made."""

    world_id: Optional[str] = None
    room_id: Optional[str] = None
    platform: Optional[str] = None
    server_id: Optional[str] = None
    channel_id: Optional[str] = None

    def to_dict(self) -> dict[str, str]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class AccessRequest:
    entity_id: str
    action: str
    resource: str
    context: PermissionContext = field(default_factory=PermissionContext)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "action": self.action,
            "resource": self.resource,
            "context": self.context.to_dict(),
        }

    def cache_key(self) -> str:
        """Canonical JSON serialization; equal requests give equal keys."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))


@dataclass
class AccessDecision:
    """Outcome of an access check.

    Parameters
    ----------
    request:
        The request that was evaluated.
    allowed:
        Whether access is granted.
    method:
        Which stage decided.
    reason:
        Human-readable explanation; never empty.
    evaluated_at:
        Decision time in epoch milliseconds.
    ttl:
        Cache lifetime in milliseconds for allowed decisions; the pipeline
        default applies when None.
    """

    request: AccessRequest
    allowed: bool
    method: AccessMethod
    reason: str
    evaluated_at: float
    ttl: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "request": self.request.to_dict(),
            "allowed": self.allowed,
            "method": self.method.value,
            "reason": self.reason,
            "evaluated_at": self.evaluated_at,
            "ttl": self.ttl,
        }


@dataclass(frozen=True)
class ElevationRequest:
    """A request for a time-boxed permission beyond baseline access.

    ``duration`` is in seconds; the pipeline default applies when None.
    """

    entity_id: str
    requested_permission: Permission
    justification: str
    context: PermissionContext = field(default_factory=PermissionContext)
    duration: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "requested_permission": self.requested_permission.to_dict(),
            "justification": self.justification,
            "context": self.context.to_dict(),
            "duration": self.duration,
        }


@dataclass(frozen=True)
class ElevationGrant:
    elevation_id: str
    request: ElevationRequest
    granted_at: float
    expires_at: float

    def is_active(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class ContextualRole:
    """A role held by an entity only within one world, optionally until a deadline."""

    entity_id: str
    role: str
    world_id: Optional[str] = None
    assigned_by: Optional[str] = None
    expires_at: Optional[float] = None

    def applies(self, world_id: Optional[str], now: float) -> bool:
        if self.expires_at is not None and now >= self.expires_at:
            return False
        return self.world_id is None or self.world_id == world_id


@dataclass(frozen=True)
class PermissionDelegation:
    delegator_id: str
    delegate_id: str
    permissions: tuple[Permission, ...]
    context: PermissionContext = field(default_factory=PermissionContext)
    expires_at: Optional[float] = None


@dataclass(frozen=True)
class StageResult:
    """Verdict of one pipeline stage.

    ``incomplete`` marks a stage whose matching logic is not implemented
    and which therefore always denies.
    """

    allowed: bool
    method: AccessMethod
    reason: str
    incomplete: bool = False
