"""Domain models for the trust score engine."""

from marktrust.models.entity import (
    DEFAULT_TRUST_SCORE,
    Business,
    BusinessFounder,
    EntityDocument,
    EntityType,
    IdentityStatus,
    IdentityVerification,
    KYBLevel,
    Project,
    ScoredEntity,
)
from marktrust.models.ledger_event import (
    GOVERNANCE_ACTOR,
    SYSTEM_ACTOR,
    LedgerEvent,
    LedgerEventType,
)
from marktrust.models.score import (
    HistoryPage,
    ScoreFactor,
    ScoreHistoryItem,
    ScoreResult,
    Tier,
    TierBand,
    TierInfo,
)

__all__ = [
    "DEFAULT_TRUST_SCORE",
    "GOVERNANCE_ACTOR",
    "SYSTEM_ACTOR",
    "Business",
    "BusinessFounder",
    "EntityDocument",
    "EntityType",
    "HistoryPage",
    "IdentityStatus",
    "IdentityVerification",
    "KYBLevel",
    "LedgerEvent",
    "LedgerEventType",
    "Project",
    "ScoreFactor",
    "ScoreHistoryItem",
    "ScoreResult",
    "ScoredEntity",
    "Tier",
    "TierBand",
    "TierInfo",
]
