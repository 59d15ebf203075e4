"""Ledger event model: append-only record of score-affecting events."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from marktrust.models.entity import EntityType

SYSTEM_ACTOR = "system"
GOVERNANCE_ACTOR = "governance"


class LedgerEventType(StrEnum):
    """Kind of score-affecting event."""

    IDENTITY_VERIFIED = "IDENTITY_VERIFIED"
    LIQUIDITY_LOCKED = "LIQUIDITY_LOCKED"
    VESTING_CONFIGURED = "VESTING_CONFIGURED"
    PROFILE_COMPLETED = "PROFILE_COMPLETED"
    AUDIT_SUBMITTED = "AUDIT_SUBMITTED"
    DOCS_UPLOADED = "DOCS_UPLOADED"
    KYB_VERIFIED = "KYB_VERIFIED"
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"
    PENALTY_APPLIED = "PENALTY_APPLIED"
    BONUS_APPLIED = "BONUS_APPLIED"


class LedgerEvent(BaseModel):
    """A single immutable ledger entry.

    Events reference exactly one entity via (entity_type, entity_id).
    Ordering is created_at, then seq (insertion order) for ties.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(..., description="UUID for this event")
    seq: int = Field(..., ge=0, description="Insertion sequence, breaks created_at ties")
    entity_type: EntityType
    entity_id: str
    event_type: LedgerEventType
    points: int = Field(..., description="Signed point delta")
    reason: str
    triggered_by: str | None = Field(
        default=None, description="User id, 'system' or 'governance'"
    )
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @property
    def is_penalty(self) -> bool:
        """Negative events are the only ones that survive recomputation."""
        return self.points < 0

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.created_at, self.seq)
