"""JsonComponentStore — evidence and profile snapshots persisted as JSON files.

One file per entity under a configurable directory. An in-memory cache
avoids repeated disk reads during high-frequency scoring. A corrupt or
unreadable file is treated as "no data yet" so scoring degrades to the
neutral prior instead of failing.
"""
from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Optional

from agent_trust.store.base import ComponentStore, Record, record_matches_scope
from agent_trust.trust.evidence import TrustContext, TrustEvidence
from agent_trust.trust.scorer import TrustProfile

logger = logging.getLogger(__name__)


class JsonComponentStore(ComponentStore):
    """Per-entity JSON file store.

    Each file holds ``{"evidence": [...], "profiles": {evaluator_id: [...]}}``.

    Parameters
    ----------
    storage_dir:
        Directory where entity files are persisted. Created if missing.
    max_profile_snapshots:
        Snapshots retained per (entity, evaluator).
    """

    def __init__(self, storage_dir: Path, max_profile_snapshots: int = 50) -> None:
        self._storage_dir = storage_dir
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._max_snapshots = max_profile_snapshots
        self._cache: dict[str, Record] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # ComponentStore
    # ------------------------------------------------------------------

    async def load_evidence(
        self,
        entity_id: str,
        world_id: Optional[str] = None,
        room_id: Optional[str] = None,
    ) -> list[Record]:
        with self._lock:
            document = self._read(entity_id)
            records = list(document.get("evidence") or [])
        return [
            r for r in records if isinstance(r, dict) and record_matches_scope(r, world_id, room_id)
        ]

    async def save_evidence(self, entity_id: str, evidence: TrustEvidence) -> None:
        with self._lock:
            document = copy.deepcopy(self._read(entity_id))
            document.setdefault("evidence", []).append(evidence.to_dict())
            self._write(entity_id, document)

    async def save_profile(self, profile: TrustProfile, context: TrustContext) -> None:
        record = profile.to_dict()
        record["world_id"] = context.world_id
        record["room_id"] = context.room_id
        with self._lock:
            document = copy.deepcopy(self._read(profile.entity_id))
            by_evaluator = document.setdefault("profiles", {})
            snapshots = by_evaluator.setdefault(profile.evaluator_id, [])
            snapshots.append(record)
            if len(snapshots) > self._max_snapshots:
                del snapshots[: len(snapshots) - self._max_snapshots]
            self._write(profile.entity_id, document)

    async def load_profiles(self, entity_id: str, evaluator_id: str) -> list[Record]:
        with self._lock:
            document = self._read(entity_id)
            by_evaluator = document.get("profiles") or {}
            return list(by_evaluator.get(evaluator_id) or [])

    def list_entities(self) -> list[str]:
        """Return sorted list of entity IDs with a stored file."""
        return sorted(p.stem for p in self._storage_dir.glob("*.json"))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _read(self, entity_id: str) -> Record:
        if entity_id in self._cache:
            return self._cache[entity_id]

        path = self._entity_path(entity_id)
        document: Record = {}
        if path.exists():
            try:
                loaded = json.loads(path.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    document = loaded
                else:
                    logger.warning("Ignoring non-object store file %s", path)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Ignoring unreadable store file %s: %s", path, exc)
        self._cache[entity_id] = document
        return document

    def _write(self, entity_id: str, document: Record) -> None:
        # The cache only reflects what reached disk.
        self._entity_path(entity_id).write_text(
            json.dumps(document, indent=2), encoding="utf-8"
        )
        self._cache[entity_id] = document

    def _entity_path(self, entity_id: str) -> Path:
        safe_name = entity_id.replace("/", "_").replace("\\", "_")
        return self._storage_dir / f"{safe_name}.json"
