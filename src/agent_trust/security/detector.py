"""SecurityDetector — message and multi-entity threat detection.

Single-message checks (prompt injection, social engineering, credential
requests) return a :class:`SecurityCheck`. Multi-entity checks (linked
accounts, phishing campaigns, impersonation, coordinated activity) return a
typed detection when above threshold and ``None`` otherwise.

Every positive finding is written as one :class:`SecurityEvent` to the
audit sink, which is also where :meth:`SecurityDetector.assess_threat_level`
reads recent incidents back from. When a trust engine is attached, the
same finding is recorded as negative trust evidence about the entity.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from agent_trust.clock import MS_PER_HOUR, MS_PER_MINUTE, MS_PER_SECOND, Clock, now_ms
from agent_trust.config import SecurityConfig
from agent_trust.security import patterns
from agent_trust.security.audit import SecurityAuditLogger
from agent_trust.security.evaluator import ThreatEvaluator
from agent_trust.security.profiler import BehavioralProfiler
from agent_trust.security.similarity import (
    profile_similarities,
    string_similarity,
    visual_similarity,
)
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
    PhishingDetection,
    SecurityAction,
    SecurityCheck,
    SecurityContext,
    SecurityEvent,
    SecurityEventType,
    Severity,
    ThreatAssessment,
)
from agent_trust.trust.dimensions import TrustEvidenceType
from agent_trust.trust.evidence import TrustContext, TrustInteraction

if TYPE_CHECKING:
    from agent_trust.trust.engine import TrustEngine

logger = logging.getLogger(__name__)

UNKNOWN_ENTITY = "unknown"

# Trust evidence impact charged to an entity per finding severity.
SEVERITY_TRUST_IMPACT: dict[Severity, float] = {
    Severity.CRITICAL: -20.0,
    Severity.HIGH: -10.0,
    Severity.MEDIUM: -5.0,
    Severity.LOW: -2.0,
}

CHECK_EVENT_TYPES: dict[CheckType, SecurityEventType] = {
    CheckType.PROMPT_INJECTION: SecurityEventType.PROMPT_INJECTION_ATTEMPT,
    CheckType.SOCIAL_ENGINEERING: SecurityEventType.SOCIAL_ENGINEERING_ATTEMPT,
    CheckType.CREDENTIAL_THEFT: SecurityEventType.CREDENTIAL_THEFT_ATTEMPT,
}

VICTIM_ALERT_MESSAGE = (
    "Security Alert: Someone attempted to request your credentials. "
    "Never share passwords, tokens, or seed phrases with anyone."
)


# ---------------------------------------------------------------------------
# Scoring helpers
# ---------------------------------------------------------------------------


def semantic_score(message: str) -> float:
    """Score how much of *message* reads like system-command vocabulary.

    Each whitespace-separated word containing a vocabulary substring adds
    0.2, capped at 1.0.
    """
    words = message.lower().split()
    hits = sum(1 for w in words if any(v in w for v in patterns.SEMANTIC_VOCABULARY))
    return min(hits * patterns.SEMANTIC_SCORE_PER_WORD, 1.0)


def keyword_score(text: str, keywords: Sequence[str]) -> float:
    """Fraction of *keywords* that occur in *text* (already lower-cased)."""
    matches = sum(1 for k in keywords if k in text)
    return min(matches / len(keywords), 1.0)


def manipulation_factors(text: str) -> dict[str, float]:
    """Score each manipulation factor for lower-cased *text*."""
    return {
        name: keyword_score(text, keywords)
        for name, keywords in patterns.MANIPULATION_LEXICON.items()
    }


def manipulation_risk(factors: dict[str, float]) -> tuple[float, str]:
    """Combine factor scores into a weighted risk and a recommendation.

    Returns
    -------
    tuple[float, str]
        The risk score in [0, 1] and a sentence naming the three strongest
        factors.
    """
    score = sum(value * patterns.MANIPULATION_WEIGHTS[name] for name, value in factors.items())
    top = [name for name, _ in sorted(factors.items(), key=lambda kv: kv[1], reverse=True)[:3]]
    return score, f"High {', '.join(top)} manipulation detected. Verify request authenticity."


def get_security_recommendations(threat_level: float) -> list[str]:
    """Return operator guidance for a threat level in [0, 1]."""
    if threat_level > 0.7:
        return [
            "Enable enhanced monitoring",
            "Require additional verification for sensitive actions",
            "Review recent permission changes",
            "Consider temporary restrictions",
        ]
    if threat_level > 0.4:
        return [
            "Monitor for unusual patterns",
            "Review recent security events",
            "Ensure all users are verified",
        ]
    return ["Continue normal operations", "Maintain standard security practices"]


def _sensitive_data_types(message: str) -> list[str]:
    found = [label for pattern, label in patterns.SENSITIVE_DATA_PATTERNS if pattern.search(message)]
    return list(dict.fromkeys(found))


def _is_legitimate_context(message: str) -> bool:
    return any(p.search(message) for p in patterns.LEGITIMATE_CONTEXTS)


def _is_suspicious_link_text(content: str) -> bool:
    return bool(
        patterns.URL_SHORTENERS.search(content)
        or patterns.SUSPICIOUS_CALLS_TO_ACTION.search(content)
    )


class SecurityDetector:
    """Detects adversarial messages and multi-account behavior.

    Parameters
    ----------
    profiler:
        Message/action history. A private profiler is created if omitted.
    audit:
        Security event sink. An in-memory sink is created if omitted.
    trust_engine:
        Optional; when present, every positive finding against a known
        entity is also recorded as trust evidence via :meth:`log_trust_impact`.
    evaluator:
        Optional model-backed evaluator. When present, prompt-injection and
        social-engineering checks are delegated to it.
    config:
        Detection thresholds.
    agent_id:
        Identity of the hosting agent, used as the observer for trust impact.
    clock:
        Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        profiler: BehavioralProfiler | None = None,
        audit: SecurityAuditLogger | None = None,
        trust_engine: Optional["TrustEngine"] = None,
        evaluator: ThreatEvaluator | None = None,
        config: SecurityConfig | None = None,
        agent_id: str = "agent",
        clock: Clock = now_ms,
    ) -> None:
        self._config = config if config is not None else SecurityConfig()
        self._profiler = (
            profiler if profiler is not None else BehavioralProfiler(self._config.history_limit)
        )
        self._audit = audit if audit is not None else SecurityAuditLogger()
        self._trust_engine = trust_engine
        self._evaluator = evaluator
        self._agent_id = agent_id
        self._clock = clock

    @property
    def profiler(self) -> BehavioralProfiler:
        return self._profiler

    @property
    def audit(self) -> SecurityAuditLogger:
        return self._audit

    @property
    def config(self) -> SecurityConfig:
        return self._config

    # ------------------------------------------------------------------
    # Single-message checks
    # ------------------------------------------------------------------

    async def detect_prompt_injection(
        self, message: str, context: SecurityContext
    ) -> SecurityCheck:
        """Check *message* for attempts to override the agent's instructions.

        Any pattern hit blocks with confidence ``min(0.9 + 0.05n, 1)``,
        critical when more than two patterns match. Without a hit, a
        semantic score above 0.8 asks for verification.
        """
        if self._evaluator is not None:
            check = await self._evaluate(self._evaluator, message, context, ())
            await self._report_check(check, context, {"message": message})
            return check

        matched = [p.pattern for p in patterns.INJECTION_PATTERNS if p.search(message)]
        if matched:
            await self._report(
                SecurityEventType.PROMPT_INJECTION_ATTEMPT,
                context.entity_id or UNKNOWN_ENTITY,
                Severity.HIGH,
                context,
                {"message": message, "patterns": matched},
            )
            return SecurityCheck(
                detected=True,
                confidence=min(0.9 + len(matched) * 0.05, 1.0),
                type=CheckType.PROMPT_INJECTION,
                severity=Severity.CRITICAL if len(matched) > 2 else Severity.HIGH,
                action=SecurityAction.BLOCK,
                details=f"Detected {len(matched)} injection patterns",
            )

        score = semantic_score(message)
        if score > 0.8:
            await self._report(
                SecurityEventType.PROMPT_INJECTION_ATTEMPT,
                context.entity_id or UNKNOWN_ENTITY,
                Severity.MEDIUM,
                context,
                {"message": message, "semantic_score": score},
            )
            return SecurityCheck(
                detected=True,
                confidence=score,
                type=CheckType.PROMPT_INJECTION,
                severity=Severity.MEDIUM,
                action=SecurityAction.REQUIRE_VERIFICATION,
                details="Suspicious command structure detected",
            )
        return SecurityCheck.clear()

    async def detect_social_engineering(
        self, message: str, context: SecurityContext
    ) -> SecurityCheck:
        """Score *message* against the eight manipulation factors."""
        if self._evaluator is not None:
            history = self._profiler.get_messages(context.entity_id or UNKNOWN_ENTITY)
            check = await self._evaluate(
                self._evaluator, message, context, [m.content for m in history]
            )
            await self._report_check(check, context, {"message": message})
            return check

        factors = manipulation_factors(message.lower())
        score, recommendation = manipulation_risk(factors)

        if score > 0.7:
            severity = Severity.CRITICAL if score > 0.85 else Severity.HIGH
            await self._report(
                SecurityEventType.SOCIAL_ENGINEERING_ATTEMPT,
                context.entity_id or UNKNOWN_ENTITY,
                severity,
                context,
                {
                    "requested_action": context.requested_action,
                    "factors": factors,
                    "risk_score": score,
                },
            )
            return SecurityCheck(
                detected=True,
                confidence=score,
                type=CheckType.SOCIAL_ENGINEERING,
                severity=severity,
                action=SecurityAction.BLOCK,
                details=recommendation,
            )
        if score > 0.4:
            await self._report(
                SecurityEventType.SOCIAL_ENGINEERING_ATTEMPT,
                context.entity_id or UNKNOWN_ENTITY,
                Severity.MEDIUM,
                context,
                {
                    "requested_action": context.requested_action,
                    "factors": factors,
                    "risk_score": score,
                },
            )
            return SecurityCheck(
                detected=True,
                confidence=score,
                type=CheckType.SOCIAL_ENGINEERING,
                severity=Severity.MEDIUM,
                action=SecurityAction.REQUIRE_VERIFICATION,
                details="Suspicious interaction pattern detected",
            )
        return SecurityCheck.clear()

    async def scan_credential_request(
        self, message: str, entity_id: str, context: SecurityContext
    ) -> SecurityCheck:
        """Classify how strongly *message* tries to obtain secrets.

        Benign credential talk (resetting or changing a password, password
        policy) is never flagged. Otherwise a sensitive-data mention combined
        with a request to hand it over blocks; combined with a lure phrase it
        asks for verification; alone it is only logged.
        """
        if self._evaluator is not None:
            scoped = SecurityContext(
                entity_id=entity_id,
                world_id=context.world_id,
                room_id=context.room_id,
                platform=context.platform,
                requested_action="credential_request",
            )
            check = await self._evaluate(self._evaluator, message, scoped, ())
            if check.detected and check.type is CheckType.CREDENTIAL_THEFT:
                await self._report_check(check, scoped, {"message": message})
                return check

        lowered = message.lower()
        if _is_legitimate_context(lowered):
            return SecurityCheck(
                detected=False,
                confidence=0.0,
                type=CheckType.NONE,
                severity=Severity.LOW,
                action=SecurityAction.ALLOW,
                details="Message appears to be in legitimate context",
            )

        sensitive = _sensitive_data_types(lowered)
        if not sensitive:
            return SecurityCheck.clear()

        if any(p.search(lowered) for p in patterns.THEFT_REQUEST_PATTERNS):
            confidence = min(0.8 + len(sensitive) * 0.05, 1.0)
            await self._log_credential_threat(entity_id, sensitive, confidence, context)
            return SecurityCheck(
                detected=True,
                confidence=confidence,
                type=CheckType.CREDENTIAL_THEFT,
                severity=Severity.CRITICAL,
                action=SecurityAction.BLOCK,
                details=f"Request for {', '.join(sensitive)}",
            )

        if any(k in lowered for k in patterns.CREDENTIAL_LURE_KEYWORDS):
            await self._log_credential_threat(entity_id, sensitive, 0.7, context)
            return SecurityCheck(
                detected=True,
                confidence=0.7,
                type=CheckType.CREDENTIAL_THEFT,
                severity=Severity.HIGH,
                action=SecurityAction.REQUIRE_VERIFICATION,
                details="Likely phishing attempt. Quarantine and investigate",
            )

        await self._report(
            SecurityEventType.SOCIAL_ENGINEERING_ATTEMPT,
            entity_id,
            Severity.LOW,
            context,
            {"sensitive_data_types": sensitive, "confidence": 0.4},
        )
        return SecurityCheck(
            detected=True,
            confidence=0.4,
            type=CheckType.SOCIAL_ENGINEERING,
            severity=Severity.LOW,
            action=SecurityAction.LOG_ONLY,
            details="Monitor user activity for additional suspicious behavior",
        )

    # ------------------------------------------------------------------
    # Threat level
    # ------------------------------------------------------------------

    async def assess_threat_level(self, context: SecurityContext) -> ThreatAssessment:
        """Summarize recent incidents in the context's room into one score.

        ``score = min(0.1 * incidents + 0.3 * critical + 0.15 * high, 1)``.
        """
        incidents = await self.get_recent_security_incidents(
            context.room_id, self._config.incident_window_hours
        )
        critical = sum(1 for e in incidents if e.severity is Severity.CRITICAL)
        high = sum(1 for e in incidents if e.severity is Severity.HIGH)
        score = min(len(incidents) * 0.1 + critical * 0.3 + high * 0.15, 1.0)

        if score > 0.8:
            severity, action = Severity.CRITICAL, SecurityAction.BLOCK
        elif score > 0.6:
            severity, action = Severity.HIGH, SecurityAction.REQUIRE_VERIFICATION
        elif score > 0.3:
            severity, action = Severity.MEDIUM, SecurityAction.LOG_ONLY
        else:
            severity, action = Severity.LOW, SecurityAction.LOG_ONLY

        return ThreatAssessment(
            detected=score > 0.3,
            confidence=score,
            type=CheckType.ANOMALY if critical else CheckType.NONE,
            severity=severity,
            action=action,
            details=f"Threat score: {score:.2f}",
            recommendation=(
                f"Recent incidents: {len(incidents)} ({critical} critical, {high} high)"
            ),
        )

    async def get_recent_security_incidents(
        self, room_id: Optional[str] = None, hours: float = 24
    ) -> list[SecurityEvent]:
        since = self._clock() - hours * MS_PER_HOUR
        return [
            e
            for e in self._audit.recent_events(since, room_id)
            if e.type is not SecurityEventType.SECURITY_ALERT
        ]

    # ------------------------------------------------------------------
    # Multi-entity detections
    # ------------------------------------------------------------------

    async def detect_multi_account_pattern(
        self, entities: Sequence[str], time_window_ms: float = MS_PER_HOUR
    ) -> MultiAccountDetection | None:
        """Decide whether *entities* are operated by one actor.

        Linkage is the mean of typing, timing, vocabulary and behavior
        similarity; above ``multi_account_threshold`` the first entity is
        reported as primary and the rest as linked.
        """
        if len(entities) < 2:
            return None

        similarities = profile_similarities(self._profiler.get_profiles(entities))
        linkage = LinkageEvidence(
            typing_pattern=similarities.get("typing", 0.0),
            timing_pattern=self._synchronized_action_score(entities, time_window_ms),
            vocabulary_pattern=similarities.get("vocabulary", 0.0),
            behavior_pattern=similarities.get("behavior", 0.0),
        )
        confidence = linkage.mean()
        if confidence <= self._config.multi_account_threshold:
            return None

        await self._report(
            SecurityEventType.MULTI_ACCOUNT_ABUSE,
            entities[0],
            Severity.CRITICAL if confidence > 0.85 else Severity.HIGH,
            SecurityContext(requested_action="multi_account_detection"),
            {"entities": list(entities), "linkage_evidence": linkage.__dict__},
        )
        return MultiAccountDetection(
            type="multi_account",
            confidence=confidence,
            evidence=[
                f"Typing pattern similarity: {linkage.typing_pattern * 100:.1f}%",
                f"Synchronized actions: {linkage.timing_pattern * 100:.1f}%",
                f"Vocabulary match: {linkage.vocabulary_pattern * 100:.1f}%",
            ],
            recommendation="Investigate for multi-account abuse. Consider account linking.",
            related_entities=list(entities),
            primary_account=entities[0],
            linked_accounts=list(entities[1:]),
            linkage_evidence=linkage,
        )

    async def detect_credential_theft(
        self, message: str, entity_id: str, context: SecurityContext
    ) -> CredentialTheftDetection | None:
        """Report *message* if it names a credential and asks for it to be sent."""
        if _is_legitimate_context(message.lower()):
            return None

        matched = [p.pattern for p in patterns.CREDENTIAL_PATTERNS if p.search(message)]
        if not matched or not patterns.REQUEST_FROM_OTHERS.search(message):
            return None

        await self._report(
            SecurityEventType.CREDENTIAL_THEFT_ATTEMPT,
            entity_id,
            Severity.CRITICAL,
            context,
            {"message": message, "patterns": matched},
        )
        logger.warning(
            "Credential theft by %s detected; potential victims are not extracted", entity_id
        )
        return CredentialTheftDetection(
            type="credential_theft",
            confidence=min(0.8 + len(matched) * 0.1, 1.0),
            evidence=[f"Pattern detected: {p}" for p in matched],
            recommendation="Block message and warn potential victims. Consider immediate ban.",
            sensitive_patterns=matched,
            attempted_theft=["credentials", "tokens", "passwords"],
        )

    async def detect_phishing(
        self, messages: Sequence[Message], entity_id: str
    ) -> PhishingDetection | None:
        """Report a campaign when enough of *messages* carry phishing markers."""
        suspicious = [
            m
            for m in messages
            if any(p.search(m.content) for p in patterns.PHISHING_INDICATORS)
            or _is_suspicious_link_text(m.content)
        ]
        if len(suspicious) < self._config.phishing_min_messages:
            return None

        targeted = list(dict.fromkeys(m.reply_to for m in suspicious if m.reply_to))
        links = list(
            dict.fromkeys(link for m in suspicious for link in patterns.URL_PATTERN.findall(m.content))
        )
        campaign_id = f"campaign_{int(self._clock())}"

        await self._report(
            SecurityEventType.PHISHING_ATTEMPT,
            entity_id,
            Severity.HIGH,
            SecurityContext(requested_action="phishing_detection"),
            {"message_count": len(suspicious), "campaign_id": campaign_id},
        )
        return PhishingDetection(
            type="phishing",
            confidence=min(0.6 + len(suspicious) * 0.1, 1.0),
            evidence=[
                f"{len(suspicious)} suspicious messages detected",
                f"{len(targeted)} users targeted",
            ],
            recommendation="Quarantine account and disable shared links. Notify affected users.",
            related_entities=[entity_id],
            malicious_links=links,
            targeted_entities=targeted,
            campaign_id=campaign_id,
        )

    async def detect_impersonation(
        self, username: str, existing_users: Sequence[str]
    ) -> ImpersonationDetection | None:
        """Report *username* if it is a near-copy of an existing name.

        Exact matches are not impersonation. Among several close names the
        first in *existing_users* is reported.
        """
        lowered = username.lower()
        similar = [
            existing
            for existing in existing_users
            if existing != username
            and string_similarity(lowered, existing.lower()) > self._config.impersonation_similarity
        ]
        if not similar:
            return None

        target = similar[0]
        visual = visual_similarity(username, target)
        timing = self._config.timing_coincidence

        await self._report(
            SecurityEventType.IMPERSONATION_ATTEMPT,
            UNKNOWN_ENTITY,
            Severity.CRITICAL if visual > 0.9 else Severity.HIGH,
            SecurityContext(requested_action="impersonation_check"),
            {"impersonator": username, "impersonated": target},
        )
        return ImpersonationDetection(
            type="impersonation",
            confidence=(visual + timing) / 2,
            evidence=[
                f'Username "{username}" similar to "{target}"',
                f"Visual similarity: {visual * 100:.1f}%",
            ],
            recommendation="Block registration and alert original user.",
            impersonator=username,
            impersonated=target,
            visual_similarity=visual,
            timing_coincidence=timing,
        )

    async def detect_coordinated_activity(
        self, entities: Sequence[str], time_window_ms: float = 5 * MS_PER_MINUTE
    ) -> CoordinationDetection | None:
        """Report *entities* if they repeatedly act within the same minutes.

        Recent actions are bucketed by minute. A bucket counts as
        synchronized when at least ``coordination_participation`` of the
        entities acted in it; the correlation score is the synchronized
        share of buckets.
        """
        actions = self._profiler.recent_actions(entities, self._clock() - time_window_ms)
        if not entities or len(actions) < len(entities) * 2:
            return None

        buckets: dict[int, set[str]] = defaultdict(set)
        for action in actions:
            buckets[int(action.timestamp // MS_PER_MINUTE)].add(action.entity_id)

        needed = len(entities) * self._config.coordination_participation
        synchronized = sum(1 for actors in buckets.values() if len(actors) >= needed)
        correlation = synchronized / len(buckets)
        if correlation <= self._config.coordination_threshold:
            return None

        await self._report(
            SecurityEventType.COORDINATED_ATTACK,
            entities[0],
            Severity.CRITICAL if correlation > 0.7 else Severity.HIGH,
            SecurityContext(requested_action="coordination_detection"),
            {
                "entities": list(entities),
                "correlation_score": correlation,
                "time_window": time_window_ms,
            },
        )
        return CoordinationDetection(
            type="coordination",
            confidence=correlation,
            evidence=[
                f"{len(entities)} accounts acting in coordination",
                f"Correlation score: {correlation * 100:.1f}%",
            ],
            recommendation=(
                "Possible coordinated attack. Increase monitoring and consider rate limiting."
            ),
            related_entities=list(entities),
            coordinated_entities=list(entities),
            time_window=time_window_ms,
            correlation_score=correlation,
        )

    # ------------------------------------------------------------------
    # Conversation-level analysis
    # ------------------------------------------------------------------

    async def analyze_conversation(
        self, messages: Sequence[Message], context: SecurityContext
    ) -> ConversationAnalysis:
        """Scan every message for credential requests and summarize the result.

        The overall threat is the mean confidence of the positive scans.
        Entities whose strongest scan exceeds 0.5 are listed as suspicious.
        """
        confidences: list[float] = []
        strongest: dict[str, float] = {}
        for message in messages:
            check = await self.scan_credential_request(message.content, message.entity_id, context)
            if not check.detected:
                continue
            confidences.append(check.confidence)
            strongest[message.entity_id] = max(
                strongest.get(message.entity_id, 0.0), check.confidence
            )

        overall = sum(confidences) / len(confidences) if confidences else 0.0
        if overall > 0.8:
            recommendations = [
                "Immediate action required: Multiple credential theft attempts detected",
                "Consider temporary channel lockdown",
                "Alert all users about ongoing credential theft campaign",
            ]
        elif overall > 0.5:
            recommendations = [
                "Elevated threat level: Monitor closely for escalation",
                "Warn users about potential credential theft attempts",
            ]
        elif overall > 0.2:
            recommendations = ["Low-level threat detected: Continue monitoring"]
        else:
            recommendations = []

        return ConversationAnalysis(
            overall_threat=overall,
            suspicious_entities=[e for e, c in strongest.items() if c > 0.5],
            recommendations=recommendations,
        )

    async def alert_potential_victims(
        self,
        threat_actor: str,
        victims: Sequence[str],
        detection: CredentialTheftDetection,
    ) -> list[SecurityEvent]:
        """Write one warning event addressed to each victim of *threat_actor*."""
        alerts = [
            self.log_security_event(
                SecurityEventType.SECURITY_ALERT,
                victim,
                Severity.LOW,
                SecurityContext(entity_id=victim, requested_action="victim_alert"),
                {
                    "alert_type": "credential_theft_warning",
                    "threat_actor": threat_actor,
                    "message": VICTIM_ALERT_MESSAGE,
                    "confidence": detection.confidence,
                    "sensitive_data_requested": list(detection.sensitive_patterns),
                },
            )
            for victim in victims
        ]
        logger.info("Alerted %d potential victims of %s", len(alerts), threat_actor)
        return alerts

    # ------------------------------------------------------------------
    # Events and trust impact
    # ------------------------------------------------------------------

    def log_security_event(
        self,
        event_type: SecurityEventType,
        entity_id: str,
        severity: Severity,
        context: Union[SecurityContext, dict[str, Any], None] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> SecurityEvent:
        """Write one security event to the audit sink and return it."""
        if isinstance(context, SecurityContext):
            context = context.to_dict()
        event = SecurityEvent(
            type=event_type,
            entity_id=entity_id,
            severity=severity,
            context=dict(context or {}),
            details=dict(details or {}),
            timestamp=self._clock(),
        )
        self._audit.log(event)
        logger.info(
            "Security event %s entity=%s severity=%s",
            event_type.value,
            entity_id,
            severity.value,
        )
        return event

    async def log_trust_impact(
        self,
        entity_id: str,
        event_type: SecurityEventType,
        impact: float,
        world_id: Optional[str] = None,
    ) -> None:
        """Record a security event as trust evidence against *entity_id*.

        Does nothing when no trust engine is attached.
        """
        if self._trust_engine is None:
            return
        await self._trust_engine.record_interaction(
            TrustInteraction(
                source_entity_id=entity_id,
                target_entity_id=self._agent_id,
                type=self.map_security_event_to_evidence(event_type),
                timestamp=self._clock(),
                impact=impact,
                details={
                    "security_event": event_type.value,
                    "description": f"Security event: {event_type.value}",
                },
                context=TrustContext(evaluator_id=self._agent_id, world_id=world_id),
            )
        )

    @staticmethod
    def map_security_event_to_evidence(event_type: SecurityEventType) -> TrustEvidenceType:
        if event_type is SecurityEventType.ANOMALOUS_REQUEST:
            return TrustEvidenceType.SUSPICIOUS_ACTIVITY
        return TrustEvidenceType.SECURITY_VIOLATION

    @staticmethod
    def get_security_recommendations(threat_level: float) -> list[str]:
        return get_security_recommendations(threat_level)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def store_message(self, message: Message) -> None:
        self._profiler.store_message(message)

    async def store_action(self, action: Action) -> None:
        self._profiler.store_action(action)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _evaluate(
        evaluator: ThreatEvaluator,
        message: str,
        context: SecurityContext,
        history: Sequence[str],
    ) -> SecurityCheck:
        try:
            return await evaluator.evaluate(message, context, history)
        except Exception as exc:
            logger.error("Threat evaluator failed, returning fail-safe result: %r", exc)
            return SecurityCheck.fail_safe()

    async def _report(
        self,
        event_type: SecurityEventType,
        entity_id: str,
        severity: Severity,
        context: Union[SecurityContext, dict[str, Any], None],
        details: dict[str, Any],
        trust_impact: bool = True,
    ) -> SecurityEvent:
        """Audit a positive finding and charge its trust impact to the entity.

        Findings against :data:`UNKNOWN_ENTITY` are audited only.
        """
        event = self.log_security_event(event_type, entity_id, severity, context, details)
        if trust_impact and entity_id != UNKNOWN_ENTITY:
            world_id = context.world_id if isinstance(context, SecurityContext) else None
            await self.log_trust_impact(
                entity_id, event_type, SEVERITY_TRUST_IMPACT[severity], world_id
            )
        return event

    async def _report_check(
        self, check: SecurityCheck, context: SecurityContext, details: dict[str, Any]
    ) -> None:
        """Report an evaluator verdict.

        An ANOMALY verdict is what an evaluator returns when it cannot reach
        a decision; it is audited as an anomalous request without touching
        the entity's trust.
        """
        if not check.detected:
            return
        event_type = CHECK_EVENT_TYPES.get(check.type, SecurityEventType.ANOMALOUS_REQUEST)
        await self._report(
            event_type,
            context.entity_id or UNKNOWN_ENTITY,
            check.severity,
            context,
            {**details, "confidence": check.confidence, "reason": check.details},
            trust_impact=check.type is not CheckType.ANOMALY,
        )

    def _synchronized_action_score(self, entities: Sequence[str], time_window_ms: float) -> float:
        """Share of cross-entity action pairs closer than the sync threshold.

        Counts ordered pairs, normalized by ``n * (n - 1) * 3`` and capped
        at 1.0.
        """
        actions = self._profiler.recent_actions(entities, self._clock() - time_window_ms)
        by_entity: dict[str, list[float]] = defaultdict(list)
        for action in actions:
            by_entity[action.entity_id].append(action.timestamp)

        threshold = self._config.sync_threshold_seconds * MS_PER_SECOND
        count = 0
        for first, first_times in by_entity.items():
            for second, second_times in by_entity.items():
                if first == second:
                    continue
                count += sum(
                    1 for t1 in first_times for t2 in second_times if abs(t1 - t2) < threshold
                )

        n = len(entities)
        return min(count / (n * (n - 1) * 3), 1.0)

    async def _log_credential_threat(
        self,
        entity_id: str,
        sensitive: list[str],
        confidence: float,
        context: SecurityContext,
    ) -> None:
        await self._report(
            SecurityEventType.CREDENTIAL_THEFT_ATTEMPT,
            entity_id,
            Severity.CRITICAL if confidence > 0.8 else Severity.HIGH,
            context,
            {"sensitive_data_types": sensitive, "confidence": confidence},
        )
