"""Trust score result shapes.

These are computed fresh on every recomputation and never persisted.
`ScoreResult.to_public_dict()` produces the camelCase shape consumed by
the route layer.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from marktrust.models.entity import EntityType
from marktrust.models.ledger_event import LedgerEvent, LedgerEventType


def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


class Tier(StrEnum):
    """Reputation band derived from a score."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    NEUTRAL = "NEUTRAL"
    CAUTION = "CAUTION"
    HIGH_RISK = "HIGH_RISK"


class TierInfo(BaseModel):
    """Tier plus its human-readable description."""

    model_config = ConfigDict(frozen=True)

    tier: Tier
    description: str


class TierBand(BaseModel):
    """One row of the static tier table."""

    model_config = ConfigDict(frozen=True)

    tier: Tier
    min_score: int = Field(..., ge=0, le=100)
    max_score: int = Field(..., ge=0, le=100)
    color: str
    description: str


class ScoreFactor(BaseModel):
    """Per-rule breakdown entry."""

    model_config = ConfigDict(frozen=True)

    name: str
    points: int
    max_points: int
    achieved: bool
    description: str

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "points": self.points,
            "maxPoints": self.max_points,
            "achieved": self.achieved,
            "description": self.description,
        }


class ScoreHistoryItem(BaseModel):
    """Recent ledger event annotated with the score at recompute time.

    `score` is the current total for every entry, not a point-in-time
    value; past totals are not reconstructed.
    """

    model_config = ConfigDict(frozen=True)

    date: datetime
    score: int
    event_type: LedgerEventType
    points: int
    reason: str

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "date": _iso(self.date),
            "score": self.score,
            "eventType": self.event_type.value,
            "points": self.points,
            "reason": self.reason,
        }


class ScoreResult(BaseModel):
    """Outcome of a recomputation."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    entity_type: EntityType
    current_score: int = Field(..., ge=0, le=100)
    tier: Tier
    factors: list[ScoreFactor]
    last_updated: datetime
    history: list[ScoreHistoryItem]

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize to the route-layer JSON shape."""
        return {
            "entityId": self.entity_id,
            "entityType": self.entity_type.value,
            "currentScore": self.current_score,
            "tier": self.tier.value,
            "factors": [f.to_public_dict() for f in self.factors],
            "lastUpdated": _iso(self.last_updated),
            "history": [h.to_public_dict() for h in self.history],
        }


class HistoryPage(BaseModel):
    """Paginated slice of an entity's ledger, newest first."""

    model_config = ConfigDict(frozen=True)

    items: list[LedgerEvent]
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)
