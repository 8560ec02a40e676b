"""ComponentStore — the persistence boundary for evidence and profiles.

Stores hand back raw dictionaries; parsing, validation and skipping of
malformed records is the trust engine's job, so a store never needs to
understand the record schema beyond the world/room keys it filters on.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from agent_trust.trust.evidence import TrustContext, TrustEvidence
from agent_trust.trust.scorer import TrustProfile

Record = dict[str, Any]


class ComponentStore(ABC):
    """Abstract evidence/profile store queried by entity identifier."""

    @abstractmethod
    async def load_evidence(
        self,
        entity_id: str,
        world_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> list[Record]:
        """Return raw evidence records about *entity_id*.

        An entity with no evidence yields an empty list, never an error.
        When ``world_id`` / ``room_id`` are given only matching records
        are returned.
        """

    @abstractmethod
    async def save_evidence(self, entity_id: str, evidence: TrustEvidence) -> None:
        """Persist one evidence record about *entity_id*."""

    @abstractmethod
    async def save_profile(self, profile: TrustProfile, context: TrustContext) -> None:
        """Append a profile snapshot for ``(entity, evaluator, world, room)``."""

    @abstractmethod
    async def load_profiles(self, entity_id: str, evaluator_id: str) -> list[Record]:
        """Return raw profile snapshots of *entity_id* made by *evaluator_id*."""


def record_matches_scope(
    record: Record,
    world_id: Optional[str],
    room_id: Optional[str],
) -> bool:
    """Return True if an evidence record falls inside the world/room scope."""
    context = record.get("context")
    if not isinstance(context, dict):
        context = {}
    if world_id and context.get("world_id") != world_id:
        return False
    if room_id and context.get("room_id") != room_id:
        return False
    return True
