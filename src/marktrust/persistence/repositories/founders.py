"""Business founder repository (read-only for the engine)."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import text

from marktrust.models.entity import BusinessFounder
from marktrust.persistence.db import is_postgres_configured

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)


@runtime_checkable
class FoundersRepo(Protocol):
    """Structural interface for founder repositories."""

    def list_for_business(self, business_id: str) -> list[BusinessFounder]: ...


class PostgresFoundersRepository:
    """Postgres repository for business_founders."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def list_for_business(self, business_id: str) -> list[BusinessFounder]:
        """List founders of a business."""
        rows = self._conn.execute(
            text(
                """
                SELECT founder_id, business_id, name, kyc_verified
                FROM business_founders
                WHERE business_id = :business_id
                ORDER BY founder_id
                """
            ),
            {"business_id": business_id},
        ).fetchall()
        return [BusinessFounder(**dict(row._mapping)) for row in rows]


_in_memory_store: dict[str, BusinessFounder] = {}
_in_memory_lock = threading.Lock()


class InMemoryFoundersRepository:
    """In-memory fallback used when Postgres is not configured."""

    def list_for_business(self, business_id: str) -> list[BusinessFounder]:
        """List founders of a business from memory."""
        with _in_memory_lock:
            founders = [f for f in _in_memory_store.values() if f.business_id == business_id]
        founders.sort(key=lambda f: f.founder_id)
        return founders


def seed_founder_in_memory(founder: BusinessFounder) -> None:
    """Insert or replace a founder. For testing only."""
    with _in_memory_lock:
        _in_memory_store[founder.founder_id] = founder


def clear_founders_in_memory_store() -> None:
    """Clear the in-memory store. For testing only."""
    with _in_memory_lock:
        _in_memory_store.clear()


def get_founders_repository(
    conn: Connection | None,
) -> PostgresFoundersRepository | InMemoryFoundersRepository:
    """Return the Postgres repository if configured, otherwise in-memory."""
    if conn is not None and is_postgres_configured():
        return PostgresFoundersRepository(conn)
    return InMemoryFoundersRepository()
