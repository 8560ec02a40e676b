"""Contextual access control.

Access requests pass a security gate, then role, trust and delegation
stages; see :class:`ContextualPermissionSystem`.
"""
from __future__ import annotations

from agent_trust.permissions.roles import PRIVILEGED_ROLES, Role, RoleResolver, StaticRoleDirectory
from agent_trust.permissions.types import (
    AccessDecision,
    AccessMethod,
    AccessRequest,
    ContextualRole,
    ElevationGrant,
    ElevationRequest,
    Permission,
    PermissionContext,
    PermissionDelegation,
    StageResult,
)
from agent_trust.permissions.system import ContextualPermissionSystem

__all__ = [
    "PRIVILEGED_ROLES",
    "AccessDecision",
    "AccessMethod",
    "AccessRequest",
    "ContextualPermissionSystem",
    "ContextualRole",
    "ElevationGrant",
    "ElevationRequest",
    "Permission",
    "PermissionContext",
    "PermissionDelegation",
    "Role",
    "RoleResolver",
    "StageResult",
    "StaticRoleDirectory",
]
