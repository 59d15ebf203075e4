"""Trust score rules, tiers and recomputation."""

from marktrust.scoring.config import (
    BusinessPoints,
    PenaltyPoints,
    ProjectPoints,
    ScoringConfig,
    ScoringConfigError,
    load_scoring_config,
)
from marktrust.scoring.context import EvaluationContext, EvaluationContextBuilder
from marktrust.scoring.engine import ScoreEngine
from marktrust.scoring.errors import (
    EntityNotFoundError,
    InvalidAdjustmentError,
    TrustScoreServiceError,
    TrustScoreStorageError,
)
from marktrust.scoring.rules import (
    ScoreRule,
    build_business_rules,
    build_project_rules,
    build_rule_tables,
)
from marktrust.scoring.tiers import TIER_DESCRIPTIONS, classify, get_tier_info, tier_table

__all__ = [
    "TIER_DESCRIPTIONS",
    "BusinessPoints",
    "EntityNotFoundError",
    "EvaluationContext",
    "EvaluationContextBuilder",
    "InvalidAdjustmentError",
    "PenaltyPoints",
    "ProjectPoints",
    "ScoreEngine",
    "ScoreRule",
    "ScoringConfig",
    "ScoringConfigError",
    "TrustScoreServiceError",
    "TrustScoreStorageError",
    "build_business_rules",
    "build_project_rules",
    "build_rule_tables",
    "classify",
    "get_tier_info",
    "load_scoring_config",
    "tier_table",
]
