"""ContextualPermissionSystem — ordered access-control pipeline.

``check_access`` runs these stages in order; the first allow wins:

1. decision cache (allowed decisions only, keyed by the canonical request,
   at most ``max_cached_decisions`` entries; expired entries are dropped
   when read)
2. security gate: injection check on ``"{action} on {resource}"``; a
   blocking finding denies outright and cannot be overridden
3. role: any privileged role held in the request's world
4. trust: overall trust above ``trust_access_threshold``
5. delegation: not implemented, always denies
6. composite denial naming the role, trust and delegation reasons
"""
from __future__ import annotations

import json
import logging
import threading
import uuid

from agent_trust.clock import MS_PER_SECOND, Clock, now_ms
from agent_trust.config import PermissionConfig
from agent_trust.errors import ExternalCallError, MissingCollaboratorError
from agent_trust.permissions.roles import Role, RoleResolver
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
from agent_trust.resilience import ExternalCallPolicy, call_external
from agent_trust.security.detector import SecurityDetector
from agent_trust.security.types import SecurityAction, SecurityContext
from agent_trust.trust.engine import TrustEngine
from agent_trust.trust.evidence import TrustContext

logger = logging.getLogger(__name__)


class ContextualPermissionSystem:
    """Combines security checks, roles and trust into access decisions.

    Parameters
    ----------
    trust_engine:
        Source of trust profiles. Required.
    detector:
        Security detector used for the injection gate. Required.
    role_resolver:
        External role directory. Required.
    config:
        Thresholds and lifetimes.
    agent_id:
        Evaluator identity used when computing trust.
    clock:
        Returns the current time in epoch milliseconds.
    call_policy:
        Timeout/retry settings for role lookups.

    Raises
    ------
    MissingCollaboratorError
        If any required collaborator is None.
    """

    def __init__(
        self,
        trust_engine: TrustEngine,
        detector: SecurityDetector,
        role_resolver: RoleResolver,
        config: PermissionConfig | None = None,
        agent_id: str = "agent",
        clock: Clock = now_ms,
        call_policy: ExternalCallPolicy | None = None,
    ) -> None:
        if trust_engine is None:
            raise MissingCollaboratorError("ContextualPermissionSystem", "trust engine")
        if detector is None:
            raise MissingCollaboratorError("ContextualPermissionSystem", "security detector")
        if role_resolver is None:
            raise MissingCollaboratorError("ContextualPermissionSystem", "role resolver")

        self._trust_engine = trust_engine
        self._detector = detector
        self._role_resolver = role_resolver
        self._config = config if config is not None else PermissionConfig()
        self._agent_id = agent_id
        self._clock = clock
        self._call_policy = call_policy if call_policy is not None else ExternalCallPolicy()

        self._decisions: dict[str, tuple[AccessDecision, float]] = {}
        self._contextual_roles: dict[str, list[ContextualRole]] = {}
        self._delegations: dict[str, list[PermissionDelegation]] = {}
        self._elevations: dict[str, ElevationGrant] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> PermissionConfig:
        return self._config

    # ------------------------------------------------------------------
    # Access checks
    # ------------------------------------------------------------------

    async def check_access(self, request: AccessRequest) -> AccessDecision:
        """Decide whether *request* is allowed.

        Returns
        -------
        AccessDecision
            Always carries a non-empty reason. Denials are not cached.
        """
        key = request.cache_key()
        now = self._clock()
        with self._lock:
            cached = self._decisions.get(key)
            if cached is not None and cached[1] <= now:
                del self._decisions[key]
                cached = None
        if cached is not None:
            return cached[0]

        content = f"{request.action} on {request.resource}"
        check = await self._detector.detect_prompt_injection(
            content,
            SecurityContext(
                entity_id=request.entity_id,
                world_id=request.context.world_id,
                room_id=request.context.room_id,
                platform=request.context.platform,
                requested_action=content,
            ),
        )
        if check.detected and check.action is SecurityAction.BLOCK:
            logger.info("Security gate denied %s: %s", request.entity_id, check.details)
            return self._decide(
                request,
                StageResult(
                    False,
                    AccessMethod.DENIED,
                    f"Security block: {check.details or check.type.value}",
                ),
            )

        role_result = await self._check_roles(request)
        if role_result.allowed:
            return self._decide(request, role_result)

        trust_result = await self._check_trust(request)
        if trust_result.allowed:
            return self._decide(request, trust_result)

        delegation_result = self._check_delegations(request)
        if delegation_result.allowed:
            return self._decide(request, delegation_result)

        reason = (
            f"Access denied. Role check: {role_result.reason}. "
            f"Trust check: {trust_result.reason}. "
            f"Delegation check: {delegation_result.reason}."
        )
        return self._decide(request, StageResult(False, AccessMethod.DENIED, reason))

    async def has_permission(
        self, entity_id: str, permission: Permission, context: PermissionContext
    ) -> bool:
        decision = await self.check_access(
            AccessRequest(
                entity_id=entity_id,
                action=permission.action,
                resource=permission.resource,
                context=context,
            )
        )
        return decision.allowed

    # ------------------------------------------------------------------
    # Elevation
    # ------------------------------------------------------------------

    async def request_elevation(self, request: ElevationRequest) -> AccessDecision:
        """Grant a time-boxed elevation if the requester is trusted enough.

        The grant is stored under a UUID derived from the request contents,
        so repeating an identical request refreshes the same grant.
        """
        profile = await self._trust_engine.calculate_trust(
            request.entity_id, self._trust_context(request.context)
        )
        access_request = AccessRequest(
            entity_id=request.entity_id,
            action=request.requested_permission.action,
            resource=request.requested_permission.resource,
            context=request.context,
        )
        now = self._clock()

        if profile.overall_trust <= self._config.elevation_trust_threshold:
            return AccessDecision(
                request=access_request,
                allowed=False,
                method=AccessMethod.DENIED,
                reason="Insufficient trust for elevation",
                evaluated_at=now,
            )

        elevation_id = self.elevation_id(request)
        duration = (
            request.duration
            if request.duration is not None
            else self._config.default_elevation_seconds
        )
        grant = ElevationGrant(
            elevation_id=elevation_id,
            request=request,
            granted_at=now,
            expires_at=now + duration * MS_PER_SECOND,
        )
        with self._lock:
            self._elevations[elevation_id] = grant
        logger.info(
            "Elevation %s granted to %s for %s on %s until %s",
            elevation_id,
            request.entity_id,
            request.requested_permission.action,
            request.requested_permission.resource,
            grant.expires_at,
        )
        return AccessDecision(
            request=access_request,
            allowed=True,
            method=AccessMethod.ELEVATED,
            reason=f"Elevation granted based on trust score {profile.overall_trust:.2f}",
            evaluated_at=now,
        )

    def get_elevation(self, elevation_id: str) -> ElevationGrant | None:
        """Return the active grant for *elevation_id*, or None once expired."""
        now = self._clock()
        with self._lock:
            grant = self._elevations.get(elevation_id)
            if grant is None:
                return None
            if not grant.is_active(now):
                del self._elevations[elevation_id]
                return None
            return grant

    @staticmethod
    def elevation_id(request: ElevationRequest) -> str:
        canonical = json.dumps(request.to_dict(), sort_keys=True, separators=(",", ":"))
        return str(uuid.uuid5(uuid.NAMESPACE_URL, canonical))

    # ------------------------------------------------------------------
    # Grant tables
    # ------------------------------------------------------------------

    def add_contextual_role(self, role: ContextualRole) -> None:
        with self._lock:
            self._contextual_roles.setdefault(role.entity_id, []).append(role)

    def add_delegation(self, delegation: PermissionDelegation) -> None:
        with self._lock:
            self._delegations.setdefault(delegation.delegate_id, []).append(delegation)

    def cached_decision_count(self) -> int:
        with self._lock:
            return len(self._decisions)

    def clear_cache(self) -> None:
        with self._lock:
            self._decisions.clear()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _check_roles(self, request: AccessRequest) -> StageResult:
        roles = await self._resolve_roles(request.entity_id, request.context)
        for role in roles:
            if role in self._config.privileged_roles:
                return StageResult(True, AccessMethod.ROLE_BASED, f"Allowed by role: {role}")
        return StageResult(False, AccessMethod.DENIED, "No matching role permission")

    async def _check_trust(self, request: AccessRequest) -> StageResult:
        profile = await self._trust_engine.calculate_trust(
            request.entity_id, self._trust_context(request.context)
        )
        if profile.overall_trust > self._config.trust_access_threshold:
            return StageResult(
                True,
                AccessMethod.TRUST_BASED,
                f"Allowed by high trust score: {profile.overall_trust:.2f}",
            )
        return StageResult(False, AccessMethod.DENIED, "Insufficient trust")

    def _check_delegations(self, request: AccessRequest) -> StageResult:
        with self._lock:
            on_record = len(self._delegations.get(request.entity_id, ()))
        logger.warning(
            "Delegation matching is not implemented; denying %s (%d delegation(s) on record)",
            request.entity_id,
            on_record,
        )
        return StageResult(
            False, AccessMethod.DENIED, "No valid delegation found", incomplete=True
        )

    async def _resolve_roles(self, entity_id: str, context: PermissionContext) -> list[str]:
        roles: list[str] = []
        world_id = context.world_id
        if world_id:
            try:
                role = await call_external(
                    lambda: self._role_resolver.get_role(entity_id, world_id),
                    self._call_policy,
                    operation="roles.get_role",
                )
            except ExternalCallError as exc:
                logger.warning("Role lookup for %s failed, assuming none: %s", entity_id, exc)
                role = None
            if role:
                roles.append(role.value if isinstance(role, Role) else str(role))

        now = self._clock()
        with self._lock:
            contextual = list(self._contextual_roles.get(entity_id, ()))
        roles.extend(r.role for r in contextual if r.applies(world_id, now))
        return roles

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _trust_context(self, context: PermissionContext) -> TrustContext:
        return TrustContext(
            evaluator_id=self._agent_id,
            world_id=context.world_id,
            room_id=context.room_id,
            platform=context.platform,
        )

    def _decide(self, request: AccessRequest, result: StageResult) -> AccessDecision:
        now = self._clock()
        decision = AccessDecision(
            request=request,
            allowed=result.allowed,
            method=result.method,
            reason=result.reason,
            evaluated_at=now,
        )
        if decision.allowed:
            ttl = decision.ttl if decision.ttl is not None else self._config.decision_ttl_ms
            with self._lock:
                self._decisions.pop(request.cache_key(), None)
                self._decisions[request.cache_key()] = (decision, now + ttl)
                if len(self._decisions) > self._config.max_cached_decisions:
                    self._evict_decisions(now)
        return decision

    def _evict_decisions(self, now: float) -> None:
        """Drop expired decisions, then the oldest, down to the cap.

        Caller holds ``self._lock``.
        """
        for key in [k for k, (_, expires_at) in self._decisions.items() if expires_at <= now]:
            del self._decisions[key]
        while len(self._decisions) > self._config.max_cached_decisions:
            del self._decisions[next(iter(self._decisions))]
