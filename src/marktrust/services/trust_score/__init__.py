"""Trust score service: triggers, penalties, admin adjustments and queries."""

from marktrust.scoring.errors import (
    EntityNotFoundError,
    InvalidAdjustmentError,
    TrustScoreServiceError,
    TrustScoreStorageError,
)
from marktrust.services.trust_score.locks import EntityLockRegistry, default_lock_registry
from marktrust.services.trust_score.service import AdminAdjustmentInput, TrustScoreService

__all__ = [
    "AdminAdjustmentInput",
    "EntityLockRegistry",
    "EntityNotFoundError",
    "InvalidAdjustmentError",
    "TrustScoreService",
    "TrustScoreServiceError",
    "TrustScoreStorageError",
    "default_lock_registry",
]
