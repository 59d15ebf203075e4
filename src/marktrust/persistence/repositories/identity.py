"""Identity verification repository (read-only for the engine)."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import text

from marktrust.models.entity import IdentityVerification
from marktrust.persistence.db import is_postgres_configured

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)


@runtime_checkable
class IdentityRepo(Protocol):
    """Structural interface for identity repositories."""

    def get_by_user(self, user_id: str) -> IdentityVerification | None: ...


class PostgresIdentityRepository:
    """Postgres repository for identity_verifications."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get_by_user(self, user_id: str) -> IdentityVerification | None:
        """Get a user's verification record, if one exists."""
        row = self._conn.execute(
            text(
                """
                SELECT user_id, status, is_accredited, verified_at
                FROM identity_verifications
                WHERE user_id = :user_id
                """
            ),
            {"user_id": user_id},
        ).fetchone()
        if row is None:
            return None
        return IdentityVerification(**dict(row._mapping))


_in_memory_store: dict[str, IdentityVerification] = {}
_in_memory_lock = threading.Lock()


class InMemoryIdentityRepository:
    """In-memory fallback used when Postgres is not configured."""

    def get_by_user(self, user_id: str) -> IdentityVerification | None:
        """Get a user's verification record from memory."""
        with _in_memory_lock:
            return _in_memory_store.get(user_id)


def seed_identity_in_memory(identity: IdentityVerification) -> None:
    """Insert or replace a verification record. For testing only."""
    with _in_memory_lock:
        _in_memory_store[identity.user_id] = identity


def clear_identity_in_memory_store() -> None:
    """Clear the in-memory store. For testing only."""
    with _in_memory_lock:
        _in_memory_store.clear()


def get_identity_repository(
    conn: Connection | None,
) -> PostgresIdentityRepository | InMemoryIdentityRepository:
    """Return the Postgres repository if configured, otherwise in-memory."""
    if conn is not None and is_postgres_configured():
        return PostgresIdentityRepository(conn)
    return InMemoryIdentityRepository()
