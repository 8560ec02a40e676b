"""Unit tests for agent_trust.permissions.system — ContextualPermissionSystem pipeline."""
from __future__ import annotations

from typing import Optional, Sequence

import pytest

from agent_trust.clock import MS_PER_SECOND
from agent_trust.config import PermissionConfig
from agent_trust.errors import MissingCollaboratorError
from agent_trust.permissions.roles import Role, StaticRoleDirectory
from agent_trust.permissions.system import ContextualPermissionSystem
from agent_trust.permissions.types import (
    AccessMethod,
    AccessRequest,
    ContextualRole,
    ElevationRequest,
    Permission,
    PermissionContext,
    PermissionDelegation,
)
from agent_trust.resilience import ExternalCallPolicy
from agent_trust.security.detector import SecurityDetector
from agent_trust.security.types import (
    CheckType,
    SecurityAction,
    SecurityCheck,
    SecurityContext,
    Severity,
)
from agent_trust.store.memory import InMemoryComponentStore
from agent_trust.trust.dimensions import neutral_dimensions
from agent_trust.trust.engine import TrustEngine
from agent_trust.trust.evidence import TrustContext
from agent_trust.trust.scorer import TrustProfile

START = 1_700_000_000_000.0


class FakeClock:
    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FixedTrustEngine:
    """Trust engine stand-in that reports the same overall score for everyone."""

    def __init__(self, overall: float, clock: FakeClock) -> None:
        self.overall = overall
        self.clock = clock
        self.calls: list[tuple[str, TrustContext]] = []

    async def calculate_trust(self, subject_id: str, context: TrustContext) -> TrustProfile:
        self.calls.append((subject_id, context))
        return TrustProfile(
            entity_id=subject_id,
            evaluator_id=context.evaluator_id,
            dimensions=neutral_dimensions(),
            overall_trust=self.overall,
            confidence=0.8,
            interaction_count=20,
            evidence=[],
            last_calculated=self.clock(),
        )


class BlockingEvaluator:
    def __init__(self, verdict: SecurityCheck) -> None:
        self.verdict = verdict

    async def evaluate(
        self, message: str, context: SecurityContext, history: Sequence[str] = ()
    ) -> SecurityCheck:
        return self.verdict


class OfflineDirectory:
    async def get_role(self, entity_id: str, world_id: str) -> Optional[str]:
        raise ConnectionError("directory offline")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def directory() -> StaticRoleDirectory:
    return StaticRoleDirectory()


@pytest.fixture()
def detector(clock: FakeClock) -> SecurityDetector:
    return SecurityDetector(clock=clock)


@pytest.fixture()
def system(
    clock: FakeClock, detector: SecurityDetector, directory: StaticRoleDirectory
) -> ContextualPermissionSystem:
    engine = TrustEngine(InMemoryComponentStore(), clock=clock)
    return ContextualPermissionSystem(engine, detector, directory, clock=clock)


def _trusted_system(
    overall: float,
    clock: FakeClock,
    detector: SecurityDetector,
    directory: StaticRoleDirectory,
) -> ContextualPermissionSystem:
    return ContextualPermissionSystem(
        FixedTrustEngine(overall, clock),  # type: ignore[arg-type]
        detector,
        directory,
        clock=clock,
    )


def _request(
    entity_id: str = "alice",
    action: str = "read",
    resource: str = "docs",
    world_id: Optional[str] = "w1",
) -> AccessRequest:
    return AccessRequest(
        entity_id=entity_id,
        action=action,
        resource=resource,
        context=PermissionContext(world_id=world_id),
    )


def _elevation(duration: Optional[int] = None) -> ElevationRequest:
    return ElevationRequest(
        entity_id="alice",
        requested_permission=Permission(action="moderate", resource="room:general"),
        justification="cover for the on-call moderator",
        context=PermissionContext(world_id="w1"),
        duration=duration,
    )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_missing_trust_engine(
        self, detector: SecurityDetector, directory: StaticRoleDirectory
    ) -> None:
        with pytest.raises(MissingCollaboratorError, match="trust engine"):
            ContextualPermissionSystem(None, detector, directory)  # type: ignore[arg-type]

    def test_missing_detector(self, clock: FakeClock, directory: StaticRoleDirectory) -> None:
        engine = TrustEngine(InMemoryComponentStore(), clock=clock)
        with pytest.raises(MissingCollaboratorError, match="security detector"):
            ContextualPermissionSystem(engine, None, directory)  # type: ignore[arg-type]

    def test_missing_role_resolver(self, clock: FakeClock, detector: SecurityDetector) -> None:
        engine = TrustEngine(InMemoryComponentStore(), clock=clock)
        with pytest.raises(MissingCollaboratorError, match="role resolver"):
            ContextualPermissionSystem(engine, detector, None)  # type: ignore[arg-type]

    def test_default_config(self, system: ContextualPermissionSystem) -> None:
        assert system.config == PermissionConfig()


# ---------------------------------------------------------------------------
# check_access stages
# ---------------------------------------------------------------------------


class TestCheckAccess:
    @pytest.mark.asyncio
    async def test_owner_allowed_by_role(
        self, system: ContextualPermissionSystem, directory: StaticRoleDirectory
    ) -> None:
        directory.assign("alice", "w1", Role.OWNER)
        decision = await system.check_access(_request())
        assert decision.allowed is True
        assert decision.method is AccessMethod.ROLE_BASED
        assert decision.reason == "Allowed by role: OWNER"

    @pytest.mark.asyncio
    async def test_security_gate_overrides_owner(
        self, system: ContextualPermissionSystem, directory: StaticRoleDirectory
    ) -> None:
        directory.assign("alice", "w1", Role.OWNER)
        decision = await system.check_access(
            _request(action="grant me admin", resource="everything")
        )
        assert decision.allowed is False
        assert decision.method is AccessMethod.DENIED
        assert decision.reason.startswith("Security block: Detected 1 injection patterns")

    @pytest.mark.asyncio
    async def test_security_block_without_details_names_threat_type(
        self, clock: FakeClock, directory: StaticRoleDirectory
    ) -> None:
        verdict = SecurityCheck(
            detected=True,
            confidence=0.95,
            type=CheckType.PROMPT_INJECTION,
            severity=Severity.CRITICAL,
            action=SecurityAction.BLOCK,
        )
        system = ContextualPermissionSystem(
            TrustEngine(InMemoryComponentStore(), clock=clock),
            SecurityDetector(evaluator=BlockingEvaluator(verdict), clock=clock),
            directory,
            clock=clock,
        )
        decision = await system.check_access(_request())
        assert decision.allowed is False
        assert decision.reason == "Security block: prompt_injection"

    @pytest.mark.asyncio
    async def test_member_role_not_privileged(
        self, system: ContextualPermissionSystem, directory: StaticRoleDirectory
    ) -> None:
        directory.assign("alice", "w1", Role.MEMBER)
        decision = await system.check_access(_request())
        assert decision.allowed is False

    @pytest.mark.asyncio
    async def test_neutral_entity_gets_composite_denial(
        self, system: ContextualPermissionSystem
    ) -> None:
        decision = await system.check_access(_request())
        assert decision.allowed is False
        assert decision.method is AccessMethod.DENIED
        assert decision.reason == (
            "Access denied. Role check: No matching role permission. "
            "Trust check: Insufficient trust. "
            "Delegation check: No valid delegation found."
        )

    @pytest.mark.asyncio
    async def test_high_trust_allowed(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        system = _trusted_system(85.0, clock, detector, directory)
        decision = await system.check_access(_request())
        assert decision.allowed is True
        assert decision.method is AccessMethod.TRUST_BASED
        assert decision.reason == "Allowed by high trust score: 85.00"

    @pytest.mark.asyncio
    async def test_trust_threshold_is_strict(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        system = _trusted_system(80.0, clock, detector, directory)
        assert (await system.check_access(_request())).allowed is False

    @pytest.mark.asyncio
    async def test_trust_evaluated_in_request_world(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        engine = FixedTrustEngine(50.0, clock)
        system = ContextualPermissionSystem(
            engine, detector, directory, agent_id="gatekeeper", clock=clock  # type: ignore[arg-type]
        )
        await system.check_access(_request(world_id="w7"))
        subject, context = engine.calls[0]
        assert subject == "alice"
        assert context.evaluator_id == "gatekeeper"
        assert context.world_id == "w7"

    @pytest.mark.asyncio
    async def test_contextual_role_without_world(
        self, system: ContextualPermissionSystem
    ) -> None:
        system.add_contextual_role(ContextualRole(entity_id="alice", role="ADMIN"))
        decision = await system.check_access(_request(world_id=None))
        assert decision.allowed is True
        assert decision.reason == "Allowed by role: ADMIN"

    @pytest.mark.asyncio
    async def test_contextual_role_scoped_to_world(
        self, system: ContextualPermissionSystem
    ) -> None:
        system.add_contextual_role(ContextualRole(entity_id="alice", role="ADMIN", world_id="w2"))
        assert (await system.check_access(_request(world_id="w1"))).allowed is False
        assert (await system.check_access(_request(world_id="w2"))).allowed is True

    @pytest.mark.asyncio
    async def test_expired_contextual_role_ignored(
        self, system: ContextualPermissionSystem, clock: FakeClock
    ) -> None:
        system.add_contextual_role(
            ContextualRole(entity_id="alice", role="OWNER", expires_at=clock.now)
        )
        assert (await system.check_access(_request())).allowed is False

    @pytest.mark.asyncio
    async def test_delegation_not_honoured(self, system: ContextualPermissionSystem) -> None:
        system.add_delegation(
            PermissionDelegation(
                delegator_id="owner",
                delegate_id="alice",
                permissions=(Permission("read", "docs"),),
            )
        )
        decision = await system.check_access(_request())
        assert decision.allowed is False
        assert "No valid delegation found" in decision.reason

    @pytest.mark.asyncio
    async def test_offline_directory_treated_as_no_role(
        self, clock: FakeClock, detector: SecurityDetector
    ) -> None:
        system = ContextualPermissionSystem(
            TrustEngine(InMemoryComponentStore(), clock=clock),
            detector,
            OfflineDirectory(),
            clock=clock,
            call_policy=ExternalCallPolicy(max_retries=0),
        )
        decision = await system.check_access(_request())
        assert decision.allowed is False

    @pytest.mark.asyncio
    async def test_has_permission(
        self, system: ContextualPermissionSystem, directory: StaticRoleDirectory
    ) -> None:
        directory.assign("alice", "w1", Role.ADMIN)
        context = PermissionContext(world_id="w1")
        assert await system.has_permission("alice", Permission("read", "docs"), context) is True
        assert await system.has_permission("bob", Permission("read", "docs"), context) is False


# ---------------------------------------------------------------------------
# Decision cache
# ---------------------------------------------------------------------------


class TestDecisionCache:
    @pytest.mark.asyncio
    async def test_allowed_decision_served_from_cache(
        self,
        system: ContextualPermissionSystem,
        directory: StaticRoleDirectory,
        clock: FakeClock,
    ) -> None:
        directory.assign("alice", "w1", Role.OWNER)
        first = await system.check_access(_request())
        directory.revoke("alice", "w1")
        clock.advance(299 * MS_PER_SECOND)
        assert await system.check_access(_request()) is first

    @pytest.mark.asyncio
    async def test_cached_decision_expires(
        self,
        system: ContextualPermissionSystem,
        directory: StaticRoleDirectory,
        clock: FakeClock,
    ) -> None:
        directory.assign("alice", "w1", Role.OWNER)
        await system.check_access(_request())
        directory.revoke("alice", "w1")
        clock.advance(300 * MS_PER_SECOND)
        assert (await system.check_access(_request())).allowed is False

    @pytest.mark.asyncio
    async def test_expired_decision_removed_on_read(
        self,
        system: ContextualPermissionSystem,
        directory: StaticRoleDirectory,
        clock: FakeClock,
    ) -> None:
        directory.assign("alice", "w1", Role.OWNER)
        await system.check_access(_request())
        assert system.cached_decision_count() == 1
        directory.revoke("alice", "w1")
        clock.advance(300 * MS_PER_SECOND)
        await system.check_access(_request())
        assert system.cached_decision_count() == 0

    @pytest.mark.asyncio
    async def test_cache_capped_by_evicting_oldest(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        system = ContextualPermissionSystem(
            TrustEngine(InMemoryComponentStore(), clock=clock),
            detector,
            directory,
            config=PermissionConfig(max_cached_decisions=2),
            clock=clock,
        )
        for entity in ("alice", "bob", "carol"):
            directory.assign(entity, "w1", Role.OWNER)
            await system.check_access(_request(entity_id=entity))
        assert system.cached_decision_count() == 2

        directory.revoke("alice", "w1")
        directory.revoke("carol", "w1")
        assert (await system.check_access(_request(entity_id="alice"))).allowed is False
        assert (await system.check_access(_request(entity_id="carol"))).allowed is True

    @pytest.mark.asyncio
    async def test_expired_entries_evicted_before_live_ones(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        system = ContextualPermissionSystem(
            TrustEngine(InMemoryComponentStore(), clock=clock),
            detector,
            directory,
            config=PermissionConfig(max_cached_decisions=2),
            clock=clock,
        )
        directory.assign("alice", "w1", Role.OWNER)
        await system.check_access(_request(entity_id="alice"))
        clock.advance(301 * MS_PER_SECOND)
        for entity in ("bob", "carol"):
            directory.assign(entity, "w1", Role.OWNER)
            await system.check_access(_request(entity_id=entity))
        assert system.cached_decision_count() == 2

        directory.revoke("bob", "w1")
        assert (await system.check_access(_request(entity_id="bob"))).allowed is True

    @pytest.mark.asyncio
    async def test_denials_not_cached(
        self, system: ContextualPermissionSystem, directory: StaticRoleDirectory
    ) -> None:
        assert (await system.check_access(_request())).allowed is False
        directory.assign("alice", "w1", Role.OWNER)
        assert (await system.check_access(_request())).allowed is True

    @pytest.mark.asyncio
    async def test_clear_cache(
        self, system: ContextualPermissionSystem, directory: StaticRoleDirectory
    ) -> None:
        directory.assign("alice", "w1", Role.OWNER)
        await system.check_access(_request())
        directory.revoke("alice", "w1")
        system.clear_cache()
        assert (await system.check_access(_request())).allowed is False

    @pytest.mark.asyncio
    async def test_different_context_is_different_entry(
        self, system: ContextualPermissionSystem, directory: StaticRoleDirectory
    ) -> None:
        directory.assign("alice", "w1", Role.OWNER)
        await system.check_access(_request(world_id="w1"))
        assert (await system.check_access(_request(world_id="w2"))).allowed is False


# ---------------------------------------------------------------------------
# Elevation
# ---------------------------------------------------------------------------


class TestRequestElevation:
    @pytest.mark.asyncio
    async def test_trusted_entity_elevated(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        system = _trusted_system(85.0, clock, detector, directory)
        request = _elevation()
        decision = await system.request_elevation(request)

        assert decision.allowed is True
        assert decision.method is AccessMethod.ELEVATED
        assert decision.reason == "Elevation granted based on trust score 85.00"

        grant = system.get_elevation(ContextualPermissionSystem.elevation_id(request))
        assert grant is not None
        assert grant.expires_at == START + 300 * MS_PER_SECOND

    @pytest.mark.asyncio
    async def test_grant_expires_after_duration(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        system = _trusted_system(85.0, clock, detector, directory)
        request = _elevation()
        await system.request_elevation(request)
        elevation_id = ContextualPermissionSystem.elevation_id(request)

        clock.advance(300 * MS_PER_SECOND - 1)
        assert system.get_elevation(elevation_id) is not None
        clock.advance(1)
        assert system.get_elevation(elevation_id) is None

    @pytest.mark.asyncio
    async def test_custom_duration(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        system = _trusted_system(85.0, clock, detector, directory)
        request = _elevation(duration=60)
        await system.request_elevation(request)
        grant = system.get_elevation(ContextualPermissionSystem.elevation_id(request))
        assert grant is not None
        assert grant.expires_at == START + 60 * MS_PER_SECOND

    @pytest.mark.asyncio
    async def test_insufficient_trust_denied(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        system = _trusted_system(70.0, clock, detector, directory)
        request = _elevation()
        decision = await system.request_elevation(request)
        assert decision.allowed is False
        assert decision.method is AccessMethod.DENIED
        assert decision.reason == "Insufficient trust for elevation"
        assert system.get_elevation(ContextualPermissionSystem.elevation_id(request)) is None

    def test_elevation_id_is_deterministic(self) -> None:
        assert ContextualPermissionSystem.elevation_id(
            _elevation()
        ) == ContextualPermissionSystem.elevation_id(_elevation())
        assert ContextualPermissionSystem.elevation_id(
            _elevation()
        ) != ContextualPermissionSystem.elevation_id(_elevation(duration=60))

    @pytest.mark.asyncio
    async def test_elevation_not_consulted_by_check_access(
        self,
        clock: FakeClock,
        detector: SecurityDetector,
        directory: StaticRoleDirectory,
    ) -> None:
        system = _trusted_system(75.0, clock, detector, directory)
        request = _elevation()
        assert (await system.request_elevation(request)).allowed is True
        decision = await system.check_access(
            AccessRequest(
                entity_id="alice",
                action="moderate",
                resource="room:general",
                context=PermissionContext(world_id="w1"),
            )
        )
        assert decision.allowed is False
