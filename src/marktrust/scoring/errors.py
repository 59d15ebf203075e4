"""Trust score error types.

Each error stores the identifiers it concerns and builds its message in
__init__. Storage errors chain the underlying SQLAlchemy error.
"""

from __future__ import annotations


class TrustScoreServiceError(Exception):
    """Base exception for trust score operations."""


class EntityNotFoundError(TrustScoreServiceError):
    """Raised when the scored entity does not exist."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} {entity_id} not found")


class InvalidAdjustmentError(TrustScoreServiceError):
    """Raised when an admin adjustment is missing a required field."""

    def __init__(self, missing: str, detail: str | None = None) -> None:
        self.missing = missing
        self.detail = detail
        message = f"Admin adjustment requires {missing}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class TrustScoreStorageError(TrustScoreServiceError):
    """Raised when the entity store or ledger fails."""

    def __init__(self, operation: str, entity_type: str, entity_id: str) -> None:
        self.operation = operation
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Storage failure during {operation} for {entity_type} {entity_id}")
