"""Role resolution for the permission pipeline.

Roles are owned by an external membership directory; the pipeline only
asks it for an entity's role in a world. :class:`StaticRoleDirectory` is
an in-process directory for hosts without one, and for tests.
"""
from __future__ import annotations

import threading
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class Role(str, Enum):
    """World-level roles, highest privilege first."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    MEMBER = "MEMBER"
    NONE = "NONE"


PRIVILEGED_ROLES: frozenset[str] = frozenset({Role.OWNER.value, Role.ADMIN.value})


@runtime_checkable
class RoleResolver(Protocol):
    async def get_role(self, entity_id: str, world_id: str) -> Optional[str]:
        """Return the role *entity_id* holds in *world_id*, or None."""
        ...


class StaticRoleDirectory:
    """Thread-safe in-memory (world, entity) -> role table."""

    def __init__(self) -> None:
        self._roles: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def assign(self, entity_id: str, world_id: str, role: Role | str) -> None:
        """Give *entity_id* the role *role* in *world_id*, replacing any previous one."""
        value = role.value if isinstance(role, Role) else str(role)
        with self._lock:
            self._roles[(world_id, entity_id)] = value

    def revoke(self, entity_id: str, world_id: str) -> None:
        """Remove the role of *entity_id* in *world_id*. No-op if none is held."""
        with self._lock:
            self._roles.pop((world_id, entity_id), None)

    async def get_role(self, entity_id: str, world_id: str) -> Optional[str]:
        with self._lock:
            return self._roles.get((world_id, entity_id))
