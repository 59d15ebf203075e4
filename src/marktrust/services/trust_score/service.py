"""TrustScoreService - controlled mutation paths for trust scores.

Every score change goes through here:
- record_event appends one ledger event and recomputes, under the
  entity's lock, as a single operation
- named triggers map domain events (identity verified, liquidity locked,
  KYB verified, ...) to ledger events using the points table
- admin_adjust records a MANUAL_ADJUSTMENT plus an audit record
- penalty helpers record PENALTY_APPLIED events

Uses Postgres repositories when db_conn is given and
MARKTRUST_DATABASE_URL is set, in-memory fallback otherwise.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy.exc import SQLAlchemyError

from marktrust.audit.events import ADMIN_ADJUSTMENT, build_trust_score_event
from marktrust.audit.sink import AuditSink, InMemoryAuditSink
from marktrust.models.entity import Business, EntityType, KYBLevel, Project
from marktrust.models.ledger_event import GOVERNANCE_ACTOR, SYSTEM_ACTOR, LedgerEventType
from marktrust.models.score import HistoryPage, ScoreResult, TierBand, TierInfo
from marktrust.persistence.repositories.documents import get_documents_repository
from marktrust.persistence.repositories.entities import get_entities_repository
from marktrust.persistence.repositories.founders import get_founders_repository
from marktrust.persistence.repositories.identity import get_identity_repository
from marktrust.persistence.repositories.ledger import get_ledger_repository
from marktrust.scoring import tiers
from marktrust.scoring.config import ScoringConfig, load_scoring_config
from marktrust.scoring.context import (
    AUDIT_DOC_TYPE,
    FINANCIAL_DOC_TYPE,
    EvaluationContextBuilder,
)
from marktrust.scoring.engine import ScoreEngine
from marktrust.scoring.errors import (
    EntityNotFoundError,
    InvalidAdjustmentError,
    TrustScoreStorageError,
)
from marktrust.services.trust_score.locks import EntityLockRegistry, default_lock_registry

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from marktrust.persistence.repositories.entities import EntitiesRepo
    from marktrust.persistence.repositories.ledger import LedgerRepo

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_PAGE_SIZE = 20
MAX_HISTORY_PAGE_SIZE = 100


class AdminAdjustmentInput(BaseModel):
    """Input model for an admin score adjustment."""

    entity_id: str = Field(..., min_length=1, description="Project or business id")
    entity_type: EntityType
    points: int = Field(..., description="Signed point delta")
    reason: str = Field(..., min_length=1, description="Justification for the adjustment")

    @field_validator("entity_id", "reason")
    @classmethod
    def no_blank_strings(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v


def _validate_adjustment(
    adjustment: AdminAdjustmentInput | dict[str, Any],
) -> AdminAdjustmentInput:
    if isinstance(adjustment, AdminAdjustmentInput):
        return adjustment

    try:
        validated = AdminAdjustmentInput.model_validate(adjustment)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise InvalidAdjustmentError(", ".join(fields) or "valid input", str(e)) from e

    return validated


class TrustScoreService:
    """Service layer for trust score reads and mutations.

    Work is serialized per entity across every service in this process
    through the shared default lock registry. The Postgres entity
    repository additionally row-locks inside the caller's transaction.
    """

    def __init__(
        self,
        db_conn: Connection | None = None,
        audit_sink: AuditSink | None = None,
        config: ScoringConfig | None = None,
        locks: EntityLockRegistry | None = None,
        entities_repo: EntitiesRepo | None = None,
        ledger_repo: LedgerRepo | None = None,
    ) -> None:
        """Initialize TrustScoreService.

        Args:
            db_conn: SQLAlchemy connection for Postgres. If None, uses in-memory.
            audit_sink: Audit sink for SCORE_CALCULATED / ADMIN_ADJUSTMENT records.
            config: Scoring configuration. Loaded from the environment if None.
            locks: Per-entity lock registry. The process-wide default if None.
            entities_repo: Override for the entity store.
            ledger_repo: Override for the ledger store.
        """
        self._db_conn = db_conn
        self._audit_sink = audit_sink or InMemoryAuditSink()
        self._config = config or load_scoring_config()
        self._locks = locks if locks is not None else default_lock_registry()

        self._entities_repo = entities_repo or get_entities_repository(db_conn)
        self._ledger_repo = ledger_repo or get_ledger_repository(db_conn)
        context_builder = EvaluationContextBuilder(
            identity_repo=get_identity_repository(db_conn),
            documents_repo=get_documents_repository(db_conn),
            founders_repo=get_founders_repository(db_conn),
        )
        self._engine = ScoreEngine(
            config=self._config,
            entities_repo=self._entities_repo,
            ledger_repo=self._ledger_repo,
            context_builder=context_builder,
            audit_sink=self._audit_sink,
        )

    @property
    def config(self) -> ScoringConfig:
        return self._config

    @property
    def engine(self) -> ScoreEngine:
        return self._engine

    @contextmanager
    def _storage_guard(
        self, operation: str, entity_type: str, entity_id: str
    ) -> Generator[None, None, None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(
                "Storage failure during %s for %s %s: %s", operation, entity_type, entity_id, e
            )
            raise TrustScoreStorageError(operation, entity_type, entity_id) from e

    def _require_entity(self, entity_type: EntityType, entity_id: str) -> Project | Business:
        entity = self._entities_repo.get_for_update(entity_type, entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_type, entity_id)
        return entity

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def record_event(
        self,
        entity_id: str,
        event_type: LedgerEventType,
        entity_type: EntityType,
        points: int,
        reason: str,
        triggered_by: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ScoreResult:
        """Append a ledger event and recompute the entity's score.

        Both steps run under the entity's lock. The event is not written
        if the entity does not exist.

        Raises:
            EntityNotFoundError: If the entity does not exist.
            TrustScoreStorageError: If the entity store or ledger fails.
        """
        entity_type = EntityType(entity_type)
        with (
            self._locks.hold(entity_type, entity_id),
            self._storage_guard("record_event", entity_type, entity_id),
        ):
            self._require_entity(entity_type, entity_id)
            event = self._ledger_repo.append(
                entity_type=entity_type,
                entity_id=entity_id,
                event_type=event_type,
                points=points,
                reason=reason,
                triggered_by=triggered_by,
                metadata=metadata,
            )
            logger.info(
                "Recorded %s (%+d) for %s %s", event.event_type, points, entity_type, entity_id
            )
            return self._engine.recompute(entity_type, entity_id)

    def get_score(self, entity_id: str, entity_type: EntityType) -> ScoreResult:
        """Recompute and return the current score. Writes no ledger event.

        Raises:
            EntityNotFoundError: If the entity does not exist.
            TrustScoreStorageError: If the entity store or ledger fails.
        """
        entity_type = EntityType(entity_type)
        with (
            self._locks.hold(entity_type, entity_id),
            self._storage_guard("get_score", entity_type, entity_id),
        ):
            return self._engine.recompute(entity_type, entity_id)

    def recalculate(self, entity_id: str, entity_type: EntityType) -> ScoreResult:
        """Recompute after attribute edits made outside the engine."""
        logger.info("Recalculating trust score for %s %s", entity_type, entity_id)
        return self.get_score(entity_id, entity_type)

    def get_history(
        self,
        entity_id: str,
        entity_type: EntityType,
        page: int = 1,
        limit: int = DEFAULT_HISTORY_PAGE_SIZE,
    ) -> HistoryPage:
        """Return a newest-first page of an entity's ledger.

        page is clamped to >= 1 and limit to [1, 100].

        Raises:
            EntityNotFoundError: If the entity does not exist.
            TrustScoreStorageError: If the entity store or ledger fails.
        """
        entity_type = EntityType(entity_type)
        effective_page = max(1, page)
        effective_limit = min(max(1, limit), MAX_HISTORY_PAGE_SIZE)

        with self._storage_guard("get_history", entity_type, entity_id):
            if self._entities_repo.get(entity_type, entity_id) is None:
                raise EntityNotFoundError(entity_type, entity_id)
            total = self._ledger_repo.count(entity_type, entity_id)
            items = self._ledger_repo.page(
                entity_type,
                entity_id,
                (effective_page - 1) * effective_limit,
                effective_limit,
            )

        return HistoryPage(
            items=items, page=effective_page, limit=effective_limit, total=total
        )

    def admin_adjust(
        self, adjustment: AdminAdjustmentInput | dict[str, Any], admin_id: str
    ) -> ScoreResult:
        """Apply a manual score adjustment on behalf of an admin.

        Positive adjustments are recorded but, like every positive ledger
        event, do not survive recomputation. Negative adjustments persist.

        Raises:
            InvalidAdjustmentError: If any required field is missing.
            EntityNotFoundError: If the entity does not exist.
            TrustScoreStorageError: If the entity store or ledger fails.
        """
        if not admin_id or not admin_id.strip():
            raise InvalidAdjustmentError("admin_id")
        validated = _validate_adjustment(adjustment)

        result = self.record_event(
            validated.entity_id,
            LedgerEventType.MANUAL_ADJUSTMENT,
            validated.entity_type,
            validated.points,
            validated.reason,
            triggered_by=admin_id,
            metadata={"admin_adjustment": True},
        )

        self._emit_audit_event(
            action=ADMIN_ADJUSTMENT,
            entity_type=validated.entity_type,
            entity_id=validated.entity_id,
            actor_id=admin_id,
            severity="HIGH",
            details={
                "points": validated.points,
                "reason": validated.reason,
                "resulting_score": result.current_score,
            },
        )
        logger.info(
            "Admin %s adjusted %s %s by %+d points",
            admin_id,
            validated.entity_type,
            validated.entity_id,
            validated.points,
        )
        return result

    def get_tier_info(self, score: int) -> TierInfo:
        """Tier and description for a score."""
        return tiers.get_tier_info(score)

    def tier_table(self) -> list[TierBand]:
        """Static listing of all tiers."""
        return tiers.tier_table()

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def on_identity_verified(self, user_id: str) -> list[ScoreResult]:
        """Credit every project and business owned by a newly verified user.

        Each entity is handled on its own, under its own lock; a failure
        part-way leaves earlier entities updated.
        """
        with self._storage_guard("on_identity_verified", "user", user_id):
            owned = self._entities_repo.list_owned_by(user_id)

        results: list[ScoreResult] = []
        for entity in owned:
            match entity:
                case Project():
                    points = self._config.project.identity_verified
                    reason = "Team lead completed identity verification"
                case Business():
                    points = self._config.business.kyb_basic
                    reason = "Business owner completed identity verification"

            if points <= 0:
                continue
            results.append(
                self.record_event(
                    entity.id,
                    LedgerEventType.IDENTITY_VERIFIED,
                    EntityType(entity.kind),
                    points,
                    reason,
                    triggered_by=SYSTEM_ACTOR,
                )
            )

        logger.info("Identity verified for user %s: %d entities rescored", user_id, len(results))
        return results

    def on_liquidity_locked(self, project_id: str, months: int) -> ScoreResult | None:
        """Record a liquidity lock. Returns None when the lock earns nothing."""
        points = 0
        if months >= 12:
            points = self._config.project.liquidity_lock_12_months
        elif months >= 6:
            points = self._config.project.liquidity_lock_6_months

        if points <= 0:
            return None
        return self.record_event(
            project_id,
            LedgerEventType.LIQUIDITY_LOCKED,
            EntityType.PROJECT,
            points,
            f"Liquidity locked for {months} months",
            triggered_by=SYSTEM_ACTOR,
        )

    def on_vesting_configured(self, project_id: str, months: int) -> ScoreResult | None:
        """Record a team vesting schedule. Returns None when it earns nothing."""
        points = 0
        if months >= 24:
            points = self._config.project.vesting_24_months
        elif months >= 12:
            points = self._config.project.vesting_12_months

        if points <= 0:
            return None
        return self.record_event(
            project_id,
            LedgerEventType.VESTING_CONFIGURED,
            EntityType.PROJECT,
            points,
            f"Team vesting configured for {months} months",
            triggered_by=SYSTEM_ACTOR,
        )

    def on_kyb_verified(self, business_id: str, level: KYBLevel | str) -> ScoreResult | None:
        """Record a KYB verification. Unknown levels and NONE earn nothing."""
        level_points = {
            KYBLevel.ENHANCED: self._config.business.kyb_enhanced,
            KYBLevel.STANDARD: self._config.business.kyb_standard,
            KYBLevel.BASIC: self._config.business.kyb_basic,
        }
        points = level_points.get(level, 0)

        if points <= 0:
            return None
        return self.record_event(
            business_id,
            LedgerEventType.KYB_VERIFIED,
            EntityType.BUSINESS,
            points,
            f"KYB {level} verification completed",
            triggered_by=SYSTEM_ACTOR,
        )

    def on_documents_uploaded(
        self, entity_id: str, entity_type: EntityType, doc_type: str
    ) -> ScoreResult | None:
        """Record a document upload that carries points.

        Only financial documents on businesses and audit reports on
        projects earn points; anything else is a no-op.
        """
        entity_type = EntityType(entity_type)
        points = 0
        reason = ""
        if entity_type == EntityType.BUSINESS and doc_type == FINANCIAL_DOC_TYPE:
            points = self._config.business.financial_docs
            reason = "Financial documents uploaded"
        elif entity_type == EntityType.PROJECT and doc_type == AUDIT_DOC_TYPE:
            points = self._config.project.external_audit
            reason = "Audit report uploaded"

        if points <= 0:
            return None
        return self.record_event(
            entity_id,
            LedgerEventType.DOCS_UPLOADED,
            entity_type,
            points,
            reason,
            triggered_by=SYSTEM_ACTOR,
        )

    # ------------------------------------------------------------------
    # Penalties
    # ------------------------------------------------------------------

    def apply_missed_report_penalty(self, business_id: str, period: str) -> ScoreResult:
        """Penalize a business for a missed revenue report."""
        return self.record_event(
            business_id,
            LedgerEventType.PENALTY_APPLIED,
            EntityType.BUSINESS,
            self._config.penalties.missed_report,
            f"Missed revenue report for {period}",
            triggered_by=SYSTEM_ACTOR,
        )

    def apply_community_report_penalty(
        self, entity_id: str, entity_type: EntityType, report_reason: str
    ) -> ScoreResult:
        """Penalize an entity for a community report verified by governance."""
        return self.record_event(
            entity_id,
            LedgerEventType.PENALTY_APPLIED,
            EntityType(entity_type),
            self._config.penalties.community_report,
            f"Community report verified: {report_reason}",
            triggered_by=GOVERNANCE_ACTOR,
        )

    def apply_contract_flag_penalty(self, project_id: str, flag_reason: str) -> ScoreResult:
        """Penalize a project whose contract was flagged."""
        return self.record_event(
            project_id,
            LedgerEventType.PENALTY_APPLIED,
            EntityType.PROJECT,
            self._config.penalties.contract_flag,
            f"Contract flagged: {flag_reason}",
            triggered_by=SYSTEM_ACTOR,
        )

    def apply_kyb_expired_penalty(self, business_id: str) -> ScoreResult:
        """Penalize a business whose KYB verification lapsed."""
        return self.record_event(
            business_id,
            LedgerEventType.PENALTY_APPLIED,
            EntityType.BUSINESS,
            self._config.penalties.kyb_expired,
            "KYB verification expired",
            triggered_by=SYSTEM_ACTOR,
        )

    def apply_large_team_sale_penalty(self, project_id: str, percent_sold: float) -> ScoreResult:
        """Penalize a project whose team sold a large share of its allocation."""
        return self.record_event(
            project_id,
            LedgerEventType.PENALTY_APPLIED,
            EntityType.PROJECT,
            self._config.penalties.large_team_sale,
            f"Large team token sale detected ({percent_sold:g}% of allocation)",
            triggered_by=SYSTEM_ACTOR,
            metadata={"percent_sold": percent_sold},
        )

    def _emit_audit_event(
        self,
        action: str,
        entity_type: EntityType,
        entity_id: str,
        actor_id: str,
        severity: str = "MEDIUM",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Emit an audit event; failures are logged and swallowed."""
        event = build_trust_score_event(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            severity=severity,
            details=details,
        )
        try:
            self._audit_sink.emit(event)
        except Exception as e:
            logger.warning("Failed to emit audit event: %s", e)
