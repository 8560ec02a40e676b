"""Evidence and profile persistence.

:class:`ComponentStore` is the boundary the trust engine reads evidence
from and writes profile snapshots to. Two implementations ship with the
package: an in-process store and a JSON-file store.
"""
from __future__ import annotations

from agent_trust.store.base import ComponentStore, Record
from agent_trust.store.json_store import JsonComponentStore
from agent_trust.store.memory import InMemoryComponentStore

__all__ = [
    "ComponentStore",
    "InMemoryComponentStore",
    "JsonComponentStore",
    "Record",
]
