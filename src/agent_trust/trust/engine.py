"""TrustEngine — evidence aggregation, profile caching and trust decisions.

Profiles are derived on demand from the evidence held in a
:class:`~agent_trust.store.ComponentStore` and cached per
evaluator, subject and scope (world, room, time window) for
``TrustPolicy.cache_ttl_seconds``.

Two paths update a profile:

* ``calculate_trust`` is the authoritative path: it reloads evidence and
  runs the full decay/dimension pipeline.
* ``record_interaction`` persists new evidence and, when a profile for the
  pair is already cached, patches its overall score linearly. The patched
  profile can differ from what a recompute would produce until the cache
  entry expires and the next ``calculate_trust`` reconciles it. Patching
  never extends the entry's lifetime.
"""
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Optional

from agent_trust.clock import MS_PER_DAY, MS_PER_SECOND, Clock, now_ms
from agent_trust.errors import ExternalCallError, MissingCollaboratorError
from agent_trust.resilience import ExternalCallPolicy, call_external
from agent_trust.trust.dimensions import DIMENSION_SUGGESTIONS
from agent_trust.trust.evidence import TimeWindow, TrustContext, TrustEvidence, TrustInteraction
from agent_trust.trust.history import InteractionLog
from agent_trust.trust.policy import TrustPolicy, TrustRequirements
from agent_trust.trust.scorer import TrustDecision, TrustProfile, TrustScorer, TrustTrend

if TYPE_CHECKING:
    from agent_trust.store.base import ComponentStore

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, Optional[str], Optional[str], Optional[TimeWindow]]


def _cache_key(subject_id: str, context: TrustContext) -> CacheKey:
    return (
        context.evaluator_id,
        subject_id,
        context.world_id,
        context.room_id,
        context.time_window,
    )


def _scope_admits(key: CacheKey, evidence: TrustEvidence) -> bool:
    """Return True if evidence would be counted by the profile cached under *key*."""
    _, _, world_id, room_id, window = key
    if world_id and evidence.context.world_id != world_id:
        return False
    if room_id and evidence.context.room_id != room_id:
        return False
    return window is None or window.contains(evidence.timestamp)


class TrustEngine:
    """Multi-dimensional trust scoring service.

    Parameters
    ----------
    store:
        Evidence and profile persistence. Required.
    policy:
        Scoring policy. Defaults to :class:`TrustPolicy` defaults.
    agent_id:
        Identity of the hosting agent; used as the evaluator when an
        interaction carries no context.
    clock:
        Returns the current time in epoch milliseconds.
    call_policy:
        Timeout/retry settings for store calls.

    Raises
    ------
    MissingCollaboratorError
        If ``store`` is None.
    """

    def __init__(
        self,
        store: ComponentStore,
        policy: TrustPolicy | None = None,
        agent_id: str = "agent",
        clock: Clock = now_ms,
        call_policy: ExternalCallPolicy | None = None,
    ) -> None:
        if store is None:
            raise MissingCollaboratorError("TrustEngine", "component store")
        self._store = store
        self._scorer = TrustScorer(policy)
        self._agent_id = agent_id
        self._clock = clock
        self._call_policy = call_policy if call_policy is not None else ExternalCallPolicy()
        self._cache: dict[CacheKey, TrustProfile] = {}
        self._lock = threading.Lock()
        self._interactions = InteractionLog()
        logger.info("TrustEngine initialized with policy %s", self._scorer.policy.model_dump())

    @property
    def policy(self) -> TrustPolicy:
        return self._scorer.policy

    @property
    def scorer(self) -> TrustScorer:
        return self._scorer

    @property
    def agent_id(self) -> str:
        return self._agent_id

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def calculate_trust(self, subject_id: str, context: TrustContext) -> TrustProfile:
        """Return the trust profile of *subject_id* as seen by ``context.evaluator_id``.

        A cached profile younger than the cache TTL is returned unchanged.
        Otherwise evidence is reloaded, scored, cached and persisted.

        Parameters
        ----------
        subject_id:
            The entity being evaluated.
        context:
            Evaluator plus optional world/room/time-window filters.

        Returns
        -------
        TrustProfile
            A neutral 50/50/0-confidence profile when no evidence exists.
        """
        key = _cache_key(subject_id, context)
        now = self._clock()
        ttl_ms = self.policy.cache_ttl_seconds * MS_PER_SECOND

        with self._lock:
            cached = self._cache.get(key)
        if cached is not None and now - cached.last_calculated < ttl_ms:
            return cached

        evidence = await self._load_evidence(subject_id, context)
        dimensions = self._scorer.score_dimensions(evidence, now)
        overall = self._scorer.overall_trust(dimensions)
        confidence = self._scorer.confidence(evidence, now)
        trend = await self._analyze_trend(subject_id, context, overall, now)

        profile = TrustProfile(
            entity_id=subject_id,
            evaluator_id=context.evaluator_id,
            dimensions=dimensions,
            overall_trust=overall,
            confidence=confidence,
            interaction_count=len(evidence),
            evidence=evidence[: self.policy.max_evidence],
            last_calculated=now,
            trend=trend,
        )

        with self._lock:
            self._cache[key] = profile
        await self._save_profile(profile, context)
        return profile

    async def evaluate_trust(
        self,
        entity_id: str,
        evaluator_id: str,
        **context: Any,
    ) -> TrustProfile:
        """Shorthand for :meth:`calculate_trust` with keyword context fields."""
        return await self.calculate_trust(
            entity_id, TrustContext(evaluator_id=evaluator_id, **context)
        )

    async def evaluate_trust_decision(
        self,
        subject_id: str,
        requirements: TrustRequirements,
        context: TrustContext,
    ) -> TrustDecision:
        """Check *subject_id*'s profile against *requirements*.

        Checks run in order (overall score, dimensions, interaction count,
        confidence, required evidence types); the first failure is returned.
        """
        profile = await self.calculate_trust(subject_id, context)
        required = requirements.minimum_trust

        def deny(reason: str, suggestions: list[str], checked: Optional[dict] = None) -> TrustDecision:
            return TrustDecision(
                allowed=False,
                trust_score=profile.overall_trust,
                required_score=required,
                dimensions_checked=dict(checked if checked is not None else profile.dimensions),
                reason=reason,
                suggestions=suggestions,
            )

        if profile.overall_trust < required:
            return deny(
                f"Trust score {profile.overall_trust:g} is below required {required:g}",
                self._scorer.suggestions_for(profile, requirements),
            )

        for dimension, minimum in requirements.dimensions.items():
            actual = profile.dimensions[dimension]
            if actual < minimum:
                return deny(
                    f"{dimension.value} score {actual:.1f} is below required {minimum:g}",
                    list(DIMENSION_SUGGESTIONS[dimension]),
                    checked=requirements.dimensions,
                )

        if requirements.minimum_interactions and profile.interaction_count < requirements.minimum_interactions:
            return deny(
                f"Insufficient interactions: {profile.interaction_count} < {requirements.minimum_interactions}",
                ["Engage in more interactions to build history"],
            )

        if requirements.minimum_confidence and profile.confidence < requirements.minimum_confidence:
            return deny(
                f"Trust confidence {profile.confidence:.2f} is below required {requirements.minimum_confidence:g}",
                ["More consistent interactions needed to increase confidence"],
            )

        if requirements.required_evidence:
            present = {ev.type for ev in profile.evidence}
            missing = [t.value for t in requirements.required_evidence if t not in present]
            if missing:
                return deny(
                    f"Missing required evidence: {', '.join(missing)}",
                    ["Build a track record that includes the required evidence types"],
                )

        return TrustDecision(
            allowed=True,
            trust_score=profile.overall_trust,
            required_score=required,
            dimensions_checked=dict(profile.dimensions),
            reason="All trust requirements met",
        )

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    async def record_interaction(self, interaction: TrustInteraction) -> None:
        """Record an interaction as evidence about ``interaction.source_entity_id``.

        The interaction is appended to the in-process log and persisted as a
        verified, full-weight evidence record. Every cached profile for the
        (evaluator, subject) pair whose scope admits the evidence has its
        overall score patched immediately by ``interaction.impact`` (clamped
        to the score range) without running the decay/dimension pipeline.
        The patched entry keeps its original ``last_calculated`` so it still
        expires on schedule.
        """
        self._interactions.append(interaction)

        subject_id = interaction.source_entity_id
        context = interaction.context or TrustContext(evaluator_id=interaction.target_entity_id)
        impact = max(-100.0, min(100.0, float(interaction.impact)))

        evidence = TrustEvidence(
            type=interaction.type,
            timestamp=interaction.timestamp,
            impact=impact,
            weight=1.0,
            description=str(interaction.details.get("description", "")),
            reported_by=interaction.target_entity_id,
            target_entity_id=subject_id,
            verified=True,
            context=context,
            evaluator_id=context.evaluator_id,
            metadata=dict(interaction.details),
        )

        try:
            await call_external(
                lambda: self._store.save_evidence(subject_id, evidence),
                self._call_policy,
                operation="store.save_evidence",
            )
        except ExternalCallError as exc:
            logger.warning("Evidence for %s not persisted: %s", subject_id, exc)

        policy = self.policy
        with self._lock:
            for key, profile in self._cache.items():
                if key[0] != context.evaluator_id or key[1] != subject_id:
                    continue
                if not _scope_admits(key, evidence):
                    continue
                profile.overall_trust = max(
                    policy.min_score, min(policy.max_score, profile.overall_trust + impact)
                )
                profile.interaction_count += 1
                profile.evidence.insert(0, evidence)
                del profile.evidence[policy.max_evidence :]

        logger.info(
            "Recorded interaction type=%s impact=%s source=%s target=%s",
            interaction.type.value,
            impact,
            interaction.source_entity_id,
            interaction.target_entity_id,
        )

    async def get_recent_interactions(self, entity_id: str, limit: int = 10) -> list[TrustInteraction]:
        """Return interactions involving *entity_id* from the last *limit* days."""
        cutoff = self._clock() - limit * MS_PER_DAY
        return self._interactions.for_entity(entity_id, since=cutoff)

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def cached_profile(
        self,
        subject_id: str,
        evaluator_id: str,
        world_id: Optional[str] = None,
        room_id: Optional[str] = None,
        time_window: Optional[TimeWindow] = None,
    ) -> TrustProfile | None:
        """Return the cached profile for the pair and scope regardless of age, or None."""
        context = TrustContext(
            evaluator_id=evaluator_id,
            world_id=world_id,
            room_id=room_id,
            time_window=time_window,
        )
        with self._lock:
            return self._cache.get(_cache_key(subject_id, context))

    def clear_cache_for_entity(self, entity_id: str) -> None:
        """Drop every cached profile in which *entity_id* is subject or evaluator."""
        with self._lock:
            for key in [k for k in self._cache if entity_id in (k[0], k[1])]:
                del self._cache[key]

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_evidence(self, subject_id: str, context: TrustContext) -> list[TrustEvidence]:
        """Load, parse and filter evidence; newest first. Never raises."""
        try:
            records = await call_external(
                lambda: self._store.load_evidence(subject_id, context.world_id, context.room_id),
                self._call_policy,
                operation="store.load_evidence",
            )
        except ExternalCallError as exc:
            logger.warning("Evidence for %s unavailable, scoring from prior: %s", subject_id, exc)
            return []

        evidence: list[TrustEvidence] = []
        for record in records or []:
            try:
                ev = TrustEvidence.from_dict(record)
            except (KeyError, ValueError, TypeError) as exc:
                logger.warning("Skipping malformed evidence for %s: %r", subject_id, exc)
                continue
            if context.time_window is not None and not context.time_window.contains(ev.timestamp):
                continue
            evidence.append(ev)

        evidence.sort(key=lambda ev: ev.timestamp, reverse=True)
        return evidence

    async def _analyze_trend(
        self,
        subject_id: str,
        context: TrustContext,
        current_score: float,
        now: float,
    ) -> TrustTrend:
        try:
            records = await call_external(
                lambda: self._store.load_profiles(subject_id, context.evaluator_id),
                self._call_policy,
                operation="store.load_profiles",
            )
        except ExternalCallError as exc:
            logger.warning("Profile history for %s unavailable: %s", subject_id, exc)
            records = []

        history: list[TrustProfile] = []
        for record in records or []:
            try:
                history.append(TrustProfile.from_dict(record))
            except (KeyError, ValueError, TypeError) as exc:
                logger.warning("Skipping malformed profile snapshot for %s: %r", subject_id, exc)
        return self._scorer.analyze_trend(current_score, history, now)

    async def _save_profile(self, profile: TrustProfile, context: TrustContext) -> None:
        try:
            await call_external(
                lambda: self._store.save_profile(profile, context),
                self._call_policy,
                operation="store.save_profile",
            )
        except ExternalCallError as exc:
            logger.warning("Profile for %s not persisted: %s", profile.entity_id, exc)
