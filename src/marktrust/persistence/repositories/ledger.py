"""Score ledger repository.

The ledger is an append-only list of score-affecting events per entity.
There are no update or delete operations; the Postgres table enforces
this with a trigger.

Ordering everywhere is newest first by created_at, with seq (insertion
order) breaking ties so that later inserts come first.
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import text

from marktrust.models.entity import EntityType
from marktrust.models.ledger_event import LedgerEvent, LedgerEventType
from marktrust.persistence.db import is_postgres_configured

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

_EVENT_COLUMNS = (
    "event_id, seq, entity_type, entity_id, event_type, points, reason, "
    "triggered_by, metadata, created_at"
)


@runtime_checkable
class LedgerRepo(Protocol):
    """Structural interface for ledger repositories."""

    def append(
        self,
        *,
        entity_type: EntityType,
        entity_id: str,
        event_type: LedgerEventType,
        points: int,
        reason: str,
        triggered_by: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> LedgerEvent: ...

    def sum_penalties(self, entity_type: EntityType, entity_id: str) -> int: ...

    def recent(self, entity_type: EntityType, entity_id: str, limit: int) -> list[LedgerEvent]: ...

    def count(self, entity_type: EntityType, entity_id: str) -> int: ...

    def page(
        self, entity_type: EntityType, entity_id: str, offset: int, limit: int
    ) -> list[LedgerEvent]: ...


class PostgresLedgerRepository:
    """Postgres repository for trust_score_events.

    Args:
        conn: SQLAlchemy connection (must be in a transaction).
    """

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def append(
        self,
        *,
        entity_type: EntityType,
        entity_id: str,
        event_type: LedgerEventType,
        points: int,
        reason: str,
        triggered_by: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> LedgerEvent:
        """Append one event. seq is assigned by the database."""
        event_id = str(uuid.uuid4())
        now = datetime.now(UTC)
        row = self._conn.execute(
            text(
                """
                INSERT INTO trust_score_events (
                    event_id, entity_type, entity_id, event_type, points,
                    reason, triggered_by, metadata, created_at
                ) VALUES (
                    :event_id, :entity_type, :entity_id, :event_type, :points,
                    :reason, :triggered_by, CAST(:metadata AS JSONB), :created_at
                )
                RETURNING seq
                """
            ),
            {
                "event_id": event_id,
                "entity_type": entity_type.value,
                "entity_id": entity_id,
                "event_type": event_type.value,
                "points": points,
                "reason": reason,
                "triggered_by": triggered_by,
                "metadata": json.dumps(metadata or {}, sort_keys=True),
                "created_at": now,
            },
        ).fetchone()

        return LedgerEvent(
            event_id=event_id,
            seq=row.seq,
            entity_type=entity_type,
            entity_id=entity_id,
            event_type=event_type,
            points=points,
            reason=reason,
            triggered_by=triggered_by,
            metadata=metadata or {},
            created_at=now,
        )

    def sum_penalties(self, entity_type: EntityType, entity_id: str) -> int:
        """Sum of all negative event points for an entity (0 if none)."""
        result = self._conn.execute(
            text(
                """
                SELECT COALESCE(SUM(points), 0) AS total
                FROM trust_score_events
                WHERE entity_type = :entity_type AND entity_id = :entity_id AND points < 0
                """
            ),
            {"entity_type": entity_type.value, "entity_id": entity_id},
        ).fetchone()
        return int(result.total)

    def recent(self, entity_type: EntityType, entity_id: str, limit: int) -> list[LedgerEvent]:
        """Most recent events, newest first."""
        return self.page(entity_type, entity_id, 0, limit)

    def count(self, entity_type: EntityType, entity_id: str) -> int:
        """Number of events for an entity."""
        result = self._conn.execute(
            text(
                """
                SELECT COUNT(*) AS total
                FROM trust_score_events
                WHERE entity_type = :entity_type AND entity_id = :entity_id
                """
            ),
            {"entity_type": entity_type.value, "entity_id": entity_id},
        ).fetchone()
        return int(result.total)

    def page(
        self, entity_type: EntityType, entity_id: str, offset: int, limit: int
    ) -> list[LedgerEvent]:
        """A newest-first slice of an entity's events."""
        rows = self._conn.execute(
            text(
                f"""
                SELECT {_EVENT_COLUMNS}
                FROM trust_score_events
                WHERE entity_type = :entity_type AND entity_id = :entity_id
                ORDER BY created_at DESC, seq DESC
                LIMIT :limit OFFSET :offset
                """
            ),
            {
                "entity_type": entity_type.value,
                "entity_id": entity_id,
                "limit": limit,
                "offset": offset,
            },
        ).fetchall()
        return [self._row_to_event(row) for row in rows]

    def _row_to_event(self, row: Any) -> LedgerEvent:
        metadata = row.metadata
        if isinstance(metadata, str):
            metadata = json.loads(metadata)

        return LedgerEvent(
            event_id=str(row.event_id),
            seq=row.seq,
            entity_type=EntityType(row.entity_type),
            entity_id=str(row.entity_id),
            event_type=LedgerEventType(row.event_type),
            points=row.points,
            reason=row.reason,
            triggered_by=row.triggered_by,
            metadata=metadata or {},
            created_at=row.created_at,
        )


_in_memory_store: dict[tuple[EntityType, str], list[LedgerEvent]] = {}
_in_memory_lock = threading.Lock()
_seq_counter = itertools.count(1)


def _newest_first(events: list[LedgerEvent]) -> list[LedgerEvent]:
    return sorted(events, key=lambda e: e.sort_key, reverse=True)


class InMemoryLedgerRepository:
    """In-memory fallback used when Postgres is not configured."""

    def append(
        self,
        *,
        entity_type: EntityType,
        entity_id: str,
        event_type: LedgerEventType,
        points: int,
        reason: str,
        triggered_by: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> LedgerEvent:
        """Append one event to memory."""
        with _in_memory_lock:
            event = LedgerEvent(
                event_id=str(uuid.uuid4()),
                seq=next(_seq_counter),
                entity_type=entity_type,
                entity_id=entity_id,
                event_type=event_type,
                points=points,
                reason=reason,
                triggered_by=triggered_by,
                metadata=metadata or {},
                created_at=datetime.now(UTC),
            )
            _in_memory_store.setdefault((entity_type, entity_id), []).append(event)
        return event

    def _events(self, entity_type: EntityType, entity_id: str) -> list[LedgerEvent]:
        with _in_memory_lock:
            return list(_in_memory_store.get((entity_type, entity_id), []))

    def sum_penalties(self, entity_type: EntityType, entity_id: str) -> int:
        """Sum of all negative event points for an entity (0 if none)."""
        return sum(e.points for e in self._events(entity_type, entity_id) if e.is_penalty)

    def recent(self, entity_type: EntityType, entity_id: str, limit: int) -> list[LedgerEvent]:
        """Most recent events, newest first."""
        return _newest_first(self._events(entity_type, entity_id))[:limit]

    def count(self, entity_type: EntityType, entity_id: str) -> int:
        """Number of events for an entity."""
        return len(self._events(entity_type, entity_id))

    def page(
        self, entity_type: EntityType, entity_id: str, offset: int, limit: int
    ) -> list[LedgerEvent]:
        """A newest-first slice of an entity's events."""
        return _newest_first(self._events(entity_type, entity_id))[offset : offset + limit]


def seed_ledger_event_in_memory(event: LedgerEvent) -> None:
    """Insert a prepared event (with explicit created_at/seq). For testing only."""
    with _in_memory_lock:
        _in_memory_store.setdefault((event.entity_type, event.entity_id), []).append(event)


def clear_ledger_in_memory_store() -> None:
    """Clear the in-memory store. For testing only."""
    with _in_memory_lock:
        _in_memory_store.clear()


def get_ledger_repository(
    conn: Connection | None,
) -> PostgresLedgerRepository | InMemoryLedgerRepository:
    """Return the Postgres repository if configured, otherwise in-memory."""
    if conn is not None and is_postgres_configured():
        return PostgresLedgerRepository(conn)
    return InMemoryLedgerRepository()
