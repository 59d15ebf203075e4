"""Scored entity repository (crypto projects and businesses).

The engine reads entity attributes and writes only the score columns
(trust_score, trust_score_updated_at). Everything else is owned by the
surrounding CRUD layer.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import text

from marktrust.models.entity import Business, EntityType, Project
from marktrust.persistence.db import is_postgres_configured

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)

_PROJECT_COLUMNS = (
    "id, user_id, name, symbol, description, category, website, whitepaper, "
    "twitter, discord, telegram, github, total_supply, team_allocation_percent, "
    "team_vesting_months, team_cliff_months, liquidity_lock_months, audit_provider, "
    "audit_report_url, contract_address, contract_verified, status, trust_score, "
    "trust_score_updated_at"
)

_BUSINESS_COLUMNS = (
    "id, user_id, legal_name, dba, legal_entity_type, jurisdiction, ein, "
    "registration_number, business_email, website, description, industry, kyb_level, "
    "status, trust_score, trust_score_updated_at"
)

_TABLES: dict[EntityType, tuple[str, str]] = {
    EntityType.PROJECT: ("crypto_projects", _PROJECT_COLUMNS),
    EntityType.BUSINESS: ("businesses", _BUSINESS_COLUMNS),
}


@runtime_checkable
class EntitiesRepo(Protocol):
    """Structural interface for entity repositories."""

    def get(self, entity_type: EntityType, entity_id: str) -> Project | Business | None: ...

    def get_for_update(
        self, entity_type: EntityType, entity_id: str
    ) -> Project | Business | None: ...

    def list_owned_by(self, user_id: str) -> list[Project | Business]: ...

    def update_score(
        self,
        entity_type: EntityType,
        entity_id: str,
        score: int,
        updated_at: datetime,
    ) -> None: ...


def _row_to_entity(entity_type: EntityType, row: Any) -> Project | Business:
    data = dict(row._mapping)
    if entity_type == EntityType.PROJECT:
        return Project(**data)
    return Business(**data)


class PostgresEntitiesRepository:
    """Postgres repository for projects and businesses.

    Args:
        conn: SQLAlchemy connection (must be in a transaction).
    """

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def _select(
        self, entity_type: EntityType, entity_id: str, for_update: bool
    ) -> Project | Business | None:
        table, columns = _TABLES[entity_type]
        sql = f"SELECT {columns} FROM {table} WHERE id = :entity_id"
        if for_update:
            sql += " FOR UPDATE"
        row = self._conn.execute(text(sql), {"entity_id": entity_id}).fetchone()
        if row is None:
            return None
        return _row_to_entity(entity_type, row)

    def get(self, entity_type: EntityType, entity_id: str) -> Project | Business | None:
        """Get an entity by id."""
        return self._select(entity_type, entity_id, for_update=False)

    def get_for_update(
        self, entity_type: EntityType, entity_id: str
    ) -> Project | Business | None:
        """Get an entity and row-lock it until the transaction ends."""
        return self._select(entity_type, entity_id, for_update=True)

    def list_owned_by(self, user_id: str) -> list[Project | Business]:
        """List every project, then every business, owned by a user."""
        entities: list[Project | Business] = []
        for entity_type, (table, columns) in _TABLES.items():
            rows = self._conn.execute(
                text(f"SELECT {columns} FROM {table} WHERE user_id = :user_id ORDER BY id"),
                {"user_id": user_id},
            ).fetchall()
            entities.extend(_row_to_entity(entity_type, row) for row in rows)
        return entities

    def update_score(
        self,
        entity_type: EntityType,
        entity_id: str,
        score: int,
        updated_at: datetime,
    ) -> None:
        """Write the score columns."""
        table, _ = _TABLES[entity_type]
        self._conn.execute(
            text(
                f"""
                UPDATE {table}
                SET trust_score = :score, trust_score_updated_at = :updated_at
                WHERE id = :entity_id
                """
            ),
            {"score": score, "updated_at": updated_at, "entity_id": entity_id},
        )


_in_memory_store: dict[tuple[EntityType, str], Project | Business] = {}
_in_memory_lock = threading.Lock()


class InMemoryEntitiesRepository:
    """In-memory fallback used when Postgres is not configured."""

    def get(self, entity_type: EntityType, entity_id: str) -> Project | Business | None:
        """Get an entity by id from memory."""
        with _in_memory_lock:
            return _in_memory_store.get((entity_type, entity_id))

    def get_for_update(
        self, entity_type: EntityType, entity_id: str
    ) -> Project | Business | None:
        """Same as get; serialization comes from the service's entity locks."""
        return self.get(entity_type, entity_id)

    def list_owned_by(self, user_id: str) -> list[Project | Business]:
        """List every project, then every business, owned by a user."""
        with _in_memory_lock:
            owned = [e for e in _in_memory_store.values() if e.user_id == user_id]
        owned.sort(key=lambda e: (e.kind != EntityType.PROJECT, e.id))
        return owned

    def update_score(
        self,
        entity_type: EntityType,
        entity_id: str,
        score: int,
        updated_at: datetime,
    ) -> None:
        """Replace the stored entity with updated score fields."""
        key = (entity_type, entity_id)
        with _in_memory_lock:
            existing = _in_memory_store.get(key)
            if existing is None:
                return
            _in_memory_store[key] = existing.model_copy(
                update={"trust_score": score, "trust_score_updated_at": updated_at}
            )


def seed_entity_in_memory(entity: Project | Business) -> None:
    """Insert or replace an entity in the in-memory store. For testing only."""
    with _in_memory_lock:
        _in_memory_store[(EntityType(entity.kind), entity.id)] = entity


def clear_entities_in_memory_store() -> None:
    """Clear the in-memory store. For testing only."""
    with _in_memory_lock:
        _in_memory_store.clear()


def get_entities_repository(
    conn: Connection | None,
) -> PostgresEntitiesRepository | InMemoryEntitiesRepository:
    """Return the Postgres repository if configured, otherwise in-memory."""
    if conn is not None and is_postgres_configured():
        return PostgresEntitiesRepository(conn)
    return InMemoryEntitiesRepository()
