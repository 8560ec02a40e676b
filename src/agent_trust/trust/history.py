"""InteractionLog — append-only, in-process log of recorded trust interactions.

Interactions are indexed by both parties so that either side can query
its recent history. Append order is preserved per process.
"""
from __future__ import annotations

import threading
from collections import defaultdict

from agent_trust.trust.evidence import TrustInteraction


class InteractionLog:
    """In-memory, thread-safe log of TrustInteraction records."""

    def __init__(self) -> None:
        self._entries: list[TrustInteraction] = []
        self._by_entity: dict[str, list[TrustInteraction]] = defaultdict(list)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def append(self, interaction: TrustInteraction) -> None:
        """Append an interaction, indexing it under both parties."""
        with self._lock:
            self._entries.append(interaction)
            self._by_entity[interaction.source_entity_id].append(interaction)
            if interaction.target_entity_id != interaction.source_entity_id:
                self._by_entity[interaction.target_entity_id].append(interaction)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def for_entity(self, entity_id: str, since: float | None = None) -> list[TrustInteraction]:
        """Return interactions involving *entity_id*, oldest first.

        Parameters
        ----------
        entity_id:
            Either party of the interaction.
        since:
            If provided, only interactions strictly after this epoch-ms
            timestamp are returned.
        """
        with self._lock:
            entries = list(self._by_entity.get(entity_id, []))
        if since is None:
            return entries
        return [i for i in entries if i.timestamp > since]

    def entity_ids(self) -> list[str]:
        """Return sorted list of entity IDs with logged interactions."""
        with self._lock:
            return sorted(self._by_entity.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
