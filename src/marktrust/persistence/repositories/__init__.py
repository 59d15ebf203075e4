"""Persistence repositories.

Each store has a Postgres implementation and an in-memory fallback used
for development and tests when MARKTRUST_DATABASE_URL is unset.
"""

from marktrust.persistence.repositories.documents import (
    DocumentsRepo,
    InMemoryDocumentsRepository,
    PostgresDocumentsRepository,
    clear_documents_in_memory_store,
    get_documents_repository,
    seed_document_in_memory,
)
from marktrust.persistence.repositories.entities import (
    EntitiesRepo,
    InMemoryEntitiesRepository,
    PostgresEntitiesRepository,
    clear_entities_in_memory_store,
    get_entities_repository,
    seed_entity_in_memory,
)
from marktrust.persistence.repositories.founders import (
    FoundersRepo,
    InMemoryFoundersRepository,
    PostgresFoundersRepository,
    clear_founders_in_memory_store,
    get_founders_repository,
    seed_founder_in_memory,
)
from marktrust.persistence.repositories.identity import (
    IdentityRepo,
    InMemoryIdentityRepository,
    PostgresIdentityRepository,
    clear_identity_in_memory_store,
    get_identity_repository,
    seed_identity_in_memory,
)
from marktrust.persistence.repositories.ledger import (
    InMemoryLedgerRepository,
    LedgerRepo,
    PostgresLedgerRepository,
    clear_ledger_in_memory_store,
    get_ledger_repository,
    seed_ledger_event_in_memory,
)


def clear_all_in_memory_stores() -> None:
    """Clear every in-memory store. For testing only."""
    clear_entities_in_memory_store()
    clear_ledger_in_memory_store()
    clear_identity_in_memory_store()
    clear_documents_in_memory_store()
    clear_founders_in_memory_store()


__all__ = [
    "DocumentsRepo",
    "EntitiesRepo",
    "FoundersRepo",
    "IdentityRepo",
    "InMemoryDocumentsRepository",
    "InMemoryEntitiesRepository",
    "InMemoryFoundersRepository",
    "InMemoryIdentityRepository",
    "InMemoryLedgerRepository",
    "LedgerRepo",
    "PostgresDocumentsRepository",
    "PostgresEntitiesRepository",
    "PostgresFoundersRepository",
    "PostgresIdentityRepository",
    "PostgresLedgerRepository",
    "clear_all_in_memory_stores",
    "clear_documents_in_memory_store",
    "clear_entities_in_memory_store",
    "clear_founders_in_memory_store",
    "clear_identity_in_memory_store",
    "clear_ledger_in_memory_store",
    "get_documents_repository",
    "get_entities_repository",
    "get_founders_repository",
    "get_identity_repository",
    "get_ledger_repository",
    "seed_document_in_memory",
    "seed_entity_in_memory",
    "seed_founder_in_memory",
    "seed_identity_in_memory",
    "seed_ledger_event_in_memory",
]
