"""Entity document repository (metadata only, read-only for the engine)."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import text

from marktrust.models.entity import EntityDocument, EntityType
from marktrust.persistence.db import is_postgres_configured

if TYPE_CHECKING:
    from sqlalchemy import Connection

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentsRepo(Protocol):
    """Structural interface for document repositories."""

    def list_for_entity(self, entity_type: EntityType, entity_id: str) -> list[EntityDocument]: ...


class PostgresDocumentsRepository:
    """Postgres repository for entity_documents."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def list_for_entity(self, entity_type: EntityType, entity_id: str) -> list[EntityDocument]:
        """List all documents attached to an entity."""
        rows = self._conn.execute(
            text(
                """
                SELECT document_id, entity_type, entity_id, doc_type, is_verified
                FROM entity_documents
                WHERE entity_type = :entity_type AND entity_id = :entity_id
                ORDER BY document_id
                """
            ),
            {"entity_type": entity_type.value, "entity_id": entity_id},
        ).fetchall()
        return [EntityDocument(**dict(row._mapping)) for row in rows]


_in_memory_store: dict[str, EntityDocument] = {}
_in_memory_lock = threading.Lock()


class InMemoryDocumentsRepository:
    """In-memory fallback used when Postgres is not configured."""

    def list_for_entity(self, entity_type: EntityType, entity_id: str) -> list[EntityDocument]:
        """List all documents attached to an entity from memory."""
        with _in_memory_lock:
            docs = [
                d
                for d in _in_memory_store.values()
                if d.entity_type == entity_type and d.entity_id == entity_id
            ]
        docs.sort(key=lambda d: d.document_id)
        return docs


def seed_document_in_memory(document: EntityDocument) -> None:
    """Insert or replace a document. For testing only."""
    with _in_memory_lock:
        _in_memory_store[document.document_id] = document


def clear_documents_in_memory_store() -> None:
    """Clear the in-memory store. For testing only."""
    with _in_memory_lock:
        _in_memory_store.clear()


def get_documents_repository(
    conn: Connection | None,
) -> PostgresDocumentsRepository | InMemoryDocumentsRepository:
    """Return the Postgres repository if configured, otherwise in-memory."""
    if conn is not None and is_postgres_configured():
        return PostgresDocumentsRepository(conn)
    return InMemoryDocumentsRepository()
