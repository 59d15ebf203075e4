"""Per-entity lock registry.

Recomputation for one entity must never interleave with another
recomputation or append for the same entity. Locks are re-entrant so a
trigger holding the lock can call into a recompute that takes it again.

The in-memory stores are module-global, so every service shares the
process-wide default registry unless one is injected. A lock lives only
while some thread holds or waits for it.
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager

from marktrust.models.entity import EntityType


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class EntityLockRegistry:
    """Hands out one RLock per (entity_type, entity_id), reference counted."""

    def __init__(self) -> None:
        self._entries: dict[tuple[EntityType, str], _LockEntry] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, entity_type: EntityType, entity_id: str) -> Generator[None, None, None]:
        """Hold an entity's lock for the duration of the block."""
        key = (EntityType(entity_type), entity_id)
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _LockEntry()
                self._entries[key] = entry
            entry.users += 1

        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


_default_registry = EntityLockRegistry()


def default_lock_registry() -> EntityLockRegistry:
    """The registry shared by every service that is not given its own."""
    return _default_registry
