"""Score recomputation.

A score is always derived from scratch:

    total = base + sum(rule points) + sum(negative ledger points)

clamped to [min_score, max_score]. Positive ledger events are recorded for
history only and never summed; their effect must come from the entity
attributes the rules read. Recomputation is deterministic for unchanged
inputs and safe to repeat.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from marktrust.audit.events import SCORE_CALCULATED, build_trust_score_event
from marktrust.models.entity import Business, EntityType, Project
from marktrust.models.score import ScoreFactor, ScoreHistoryItem, ScoreResult
from marktrust.scoring.errors import EntityNotFoundError
from marktrust.scoring.rules import ScoreRule, build_rule_tables
from marktrust.scoring.tiers import classify

if TYPE_CHECKING:
    from marktrust.audit.sink import AuditSink
    from marktrust.persistence.repositories.entities import EntitiesRepo
    from marktrust.persistence.repositories.ledger import LedgerRepo
    from marktrust.scoring.config import ScoringConfig
    from marktrust.scoring.context import EvaluationContext, EvaluationContextBuilder

logger = logging.getLogger(__name__)


class ScoreEngine:
    """Recomputes and persists trust scores.

    The engine does not serialize concurrent recomputes itself; callers
    hold the entity lock (see marktrust.services.trust_score.locks).
    """

    def __init__(
        self,
        config: ScoringConfig,
        entities_repo: EntitiesRepo,
        ledger_repo: LedgerRepo,
        context_builder: EvaluationContextBuilder,
        audit_sink: AuditSink,
    ) -> None:
        self._config = config
        self._entities_repo = entities_repo
        self._ledger_repo = ledger_repo
        self._context_builder = context_builder
        self._audit_sink = audit_sink
        self._rule_tables = build_rule_tables(config)

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def rules_for(self, entity_type: EntityType) -> tuple[ScoreRule, ...]:
        """Return the ordered rule table for an entity kind."""
        return self._rule_tables[entity_type]

    def evaluate_rules(
        self, entity: Project | Business, context: EvaluationContext
    ) -> list[ScoreFactor]:
        """Run every rule for the entity's kind, in table order."""
        match entity:
            case Project():
                rules = self._rule_tables[EntityType.PROJECT]
            case Business():
                rules = self._rule_tables[EntityType.BUSINESS]

        factors: list[ScoreFactor] = []
        for rule in rules:
            points = rule.evaluate(entity, context)
            factors.append(
                ScoreFactor(
                    name=rule.name,
                    points=points,
                    max_points=rule.max_points,
                    achieved=points > 0,
                    description=rule.description,
                )
            )
        return factors

    def recompute(self, entity_type: EntityType, entity_id: str) -> ScoreResult:
        """Recompute, persist and return an entity's score.

        Args:
            entity_type: Kind of entity.
            entity_id: Entity id.

        Returns:
            Fresh ScoreResult.

        Raises:
            EntityNotFoundError: If the entity does not exist.
            SQLAlchemyError: If a Postgres repository fails.
        """
        entity = self._entities_repo.get_for_update(entity_type, entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_type, entity_id)

        context = self._context_builder.build(entity)
        factors = self.evaluate_rules(entity, context)
        rule_points = sum(f.points for f in factors)
        penalty_points = self._ledger_repo.sum_penalties(entity_type, entity_id)

        total = self._config.clamp(self._config.base_score + rule_points + penalty_points)
        now = datetime.now(UTC)
        self._entities_repo.update_score(entity_type, entity_id, total, now)

        recent = self._ledger_repo.recent(entity_type, entity_id, self._config.history_limit)
        history = [
            ScoreHistoryItem(
                date=event.created_at,
                score=total,
                event_type=event.event_type,
                points=event.points,
                reason=event.reason,
            )
            for event in recent
        ]

        tier = classify(total)
        logger.debug(
            "Recomputed %s %s: base=%d rules=%d penalties=%d total=%d tier=%s",
            entity_type,
            entity_id,
            self._config.base_score,
            rule_points,
            penalty_points,
            total,
            tier,
        )

        self._emit_score_calculated(entity, total, tier)

        return ScoreResult(
            entity_id=entity_id,
            entity_type=entity_type,
            current_score=total,
            tier=tier,
            factors=factors,
            last_updated=now,
            history=history,
        )

    def _emit_score_calculated(self, entity: Project | Business, total: int, tier: str) -> None:
        event = build_trust_score_event(
            action=SCORE_CALCULATED,
            entity_type=entity.kind,
            entity_id=entity.id,
            actor_id=entity.user_id,
            details={"score": total, "tier": str(tier)},
        )
        try:
            self._audit_sink.emit(event)
        except Exception as e:
            logger.warning("Failed to emit audit event: %s", e)
