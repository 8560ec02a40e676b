#!/usr/bin/env python3
"""Example: Trust Scoring

Demonstrates multi-dimensional trust scoring: recording interactions,
computing a profile, and gating an action on TrustRequirements.

Usage:
    python examples/02_trust_scoring.py

Requirements:
    pip install agent-trust
"""
from __future__ import annotations

import asyncio

import agent_trust
from agent_trust import (
    InMemoryComponentStore,
    TrustContext,
    TrustDimension,
    TrustEngine,
    TrustEvidenceType,
    TrustInteraction,
    TrustRequirements,
)
from agent_trust.clock import MS_PER_HOUR, now_ms


async def main() -> None:
    print(f"agent-trust version: {agent_trust.__version__}")

    # Step 1: Create an engine
    engine = TrustEngine(InMemoryComponentStore(), agent_id="moderator")
    subject = "analytics-agent-v2"
    context = TrustContext(evaluator_id="moderator", world_id="research")

    # Step 2: Record past interactions, oldest first
    observations = [
        (TrustEvidenceType.PROMISE_KEPT, 15.0, "Delivered report on time"),
        (TrustEvidenceType.HELPFUL_ACTION, 10.0, "Answered a support question"),
        (TrustEvidenceType.PROMISE_BROKEN, -10.0, "Missed a review deadline"),
        (TrustEvidenceType.CONSISTENT_BEHAVIOR, 5.0, "Followed room conventions"),
        (TrustEvidenceType.VERIFIED_IDENTITY, 20.0, "Linked a verified account"),
    ]
    start = now_ms() - len(observations) * MS_PER_HOUR
    for i, (kind, impact, note) in enumerate(observations):
        await engine.record_interaction(
            TrustInteraction(
                source_entity_id=subject,
                target_entity_id="moderator",
                type=kind,
                timestamp=start + i * MS_PER_HOUR,
                impact=impact,
                details={"description": note},
                context=context,
            )
        )

    # Step 3: Compute the trust profile
    profile = await engine.calculate_trust(subject, context)
    print(f"\nTrust profile for '{subject}':")
    print(f"  Overall trust: {profile.overall_trust:g}")
    print(f"  Confidence:    {profile.confidence:.2f}")
    print(f"  Evidence:      {profile.interaction_count}")
    for dimension, score in profile.dimensions.items():
        print(f"  {dimension.value}: {score:.1f}")

    # Step 4: Gate an action on requirements
    requirements = TrustRequirements(
        minimum_trust=55,
        dimensions={TrustDimension.RELIABILITY: 60},
        minimum_interactions=3,
    )
    decision = await engine.evaluate_trust_decision(subject, requirements, context)
    print("\nDecision:")
    print(f"  Allowed: {decision.allowed}")
    print(f"  Reason:  {decision.reason}")
    for suggestion in decision.suggestions:
        print(f"  Suggestion: {suggestion}")


if __name__ == "__main__":
    asyncio.run(main())
