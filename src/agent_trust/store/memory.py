"""InMemoryComponentStore — process-local ComponentStore."""
from __future__ import annotations

import threading
from collections import defaultdict
from typing import Optional

from agent_trust.store.base import ComponentStore, Record, record_matches_scope
from agent_trust.trust.evidence import TrustContext, TrustEvidence
from agent_trust.trust.scorer import TrustProfile


class InMemoryComponentStore(ComponentStore):
    """Keeps evidence and profile snapshots in dictionaries.

    Parameters
    ----------
    max_profile_snapshots:
        Snapshots retained per (entity, evaluator); oldest are dropped.
    """

    def __init__(self, max_profile_snapshots: int = 50) -> None:
        self._evidence: dict[str, list[Record]] = defaultdict(list)
        self._profiles: dict[tuple[str, str], list[Record]] = defaultdict(list)
        self._max_snapshots = max_profile_snapshots
        self._lock = threading.Lock()

    async def load_evidence(
        self,
        entity_id: str,
        world_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> list[Record]:
        with self._lock:
            records = list(self._evidence.get(entity_id, []))
        return [r for r in records if record_matches_scope(r, world_id, room_id)]

    async def save_evidence(self, entity_id: str, evidence: TrustEvidence) -> None:
        self.put_raw_evidence(entity_id, evidence.to_dict())

    def put_raw_evidence(self, entity_id: str, record: Record) -> None:
        """Insert an evidence record as-is, bypassing serialization."""
        with self._lock:
            self._evidence[entity_id].append(record)

    async def save_profile(self, profile: TrustProfile, context: TrustContext) -> None:
        record = profile.to_dict()
        record["world_id"] = context.world_id
        record["room_id"] = context.room_id
        self.put_raw_profile(profile.entity_id, profile.evaluator_id, record)

    def put_raw_profile(self, entity_id: str, evaluator_id: str, record: Record) -> None:
        """Insert a profile snapshot as-is, bypassing serialization."""
        with self._lock:
            snapshots = self._profiles[(entity_id, evaluator_id)]
            snapshots.append(record)
            if len(snapshots) > self._max_snapshots:
                del snapshots[: len(snapshots) - self._max_snapshots]

    async def load_profiles(self, entity_id: str, evaluator_id: str) -> list[Record]:
        with self._lock:
            return list(self._profiles.get((entity_id, evaluator_id), []))

    def evidence_count(self, entity_id: str) -> int:
        """Return the number of stored evidence records for an entity."""
        with self._lock:
            return len(self._evidence.get(entity_id, []))
