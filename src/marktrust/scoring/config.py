"""Trust score configuration.

Point values for every rule, trigger and penalty, plus the score bounds.
Defaults mirror the production points table; bounds and history depth can
be overridden through the environment:

    MARKTRUST_BASE_SCORE: Starting score before rules (default: 50)
    MARKTRUST_MIN_SCORE: Lower clamp (default: 0)
    MARKTRUST_MAX_SCORE: Upper clamp (default: 100)
    MARKTRUST_HISTORY_LIMIT: Ledger events returned with a score (default: 10)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Final

logger = logging.getLogger(__name__)

ENV_BASE_SCORE: Final[str] = "MARKTRUST_BASE_SCORE"
ENV_MIN_SCORE: Final[str] = "MARKTRUST_MIN_SCORE"
ENV_MAX_SCORE: Final[str] = "MARKTRUST_MAX_SCORE"
ENV_HISTORY_LIMIT: Final[str] = "MARKTRUST_HISTORY_LIMIT"

DEFAULT_BASE_SCORE: Final[int] = 50
DEFAULT_MIN_SCORE: Final[int] = 0
DEFAULT_MAX_SCORE: Final[int] = 100
DEFAULT_HISTORY_LIMIT: Final[int] = 10


class ScoringConfigError(Exception):
    """Raised when trust score configuration is invalid."""


@dataclass(frozen=True)
class ProjectPoints:
    """Point values for crypto project rules and triggers.

    The 12-month liquidity and 24-month vesting values are cumulative
    totals; the rule table awards only the difference above the lower tier.
    """

    identity_verified: int = 20
    liquidity_lock_6_months: int = 15
    liquidity_lock_12_months: int = 20
    vesting_12_months: int = 10
    vesting_24_months: int = 15
    profile_complete: int = 10
    external_audit: int = 10
    whitepaper_socials: int = 5
    contract_verified: int = 5


@dataclass(frozen=True)
class BusinessPoints:
    """Point values for business rules and triggers (KYB values cumulative)."""

    kyb_basic: int = 10
    kyb_standard: int = 15
    kyb_enhanced: int = 20
    financial_docs: int = 15
    ein_registration: int = 10
    profile_complete: int = 10
    external_accounting_review: int = 10


@dataclass(frozen=True)
class PenaltyPoints:
    """Fixed penalty magnitudes (always negative)."""

    missed_report: int = -15
    community_report: int = -15
    contract_flag: int = -10
    kyb_expired: int = -25
    large_team_sale: int = -20

    def __post_init__(self) -> None:
        for name in ("missed_report", "community_report", "contract_flag", "kyb_expired",
                     "large_team_sale"):
            if getattr(self, name) >= 0:
                raise ScoringConfigError(f"Penalty {name} must be negative")


@dataclass(frozen=True)
class ScoringConfig:
    """Complete trust score configuration (immutable).

    Attributes:
        base_score: Score every entity starts from before rules apply.
        min_score: Lower bound of the final clamp.
        max_score: Upper bound of the final clamp.
        history_limit: Number of recent ledger events returned with a score.
        project: Project point table.
        business: Business point table.
        penalties: Penalty magnitudes.
    """

    base_score: int = DEFAULT_BASE_SCORE
    min_score: int = DEFAULT_MIN_SCORE
    max_score: int = DEFAULT_MAX_SCORE
    history_limit: int = DEFAULT_HISTORY_LIMIT
    project: ProjectPoints = field(default_factory=ProjectPoints)
    business: BusinessPoints = field(default_factory=BusinessPoints)
    penalties: PenaltyPoints = field(default_factory=PenaltyPoints)

    def __post_init__(self) -> None:
        """Validate bounds."""
        if not 0 <= self.min_score < self.max_score <= 100:
            raise ScoringConfigError(
                f"Score bounds must satisfy 0 <= min < max <= 100, "
                f"got min={self.min_score} max={self.max_score}"
            )
        if not self.min_score <= self.base_score <= self.max_score:
            raise ScoringConfigError(
                f"{ENV_BASE_SCORE} must lie within [{self.min_score}, {self.max_score}], "
                f"got {self.base_score}"
            )
        if self.history_limit <= 0:
            raise ScoringConfigError(
                f"{ENV_HISTORY_LIMIT} must be a positive integer, got {self.history_limit}"
            )

    def clamp(self, score: int) -> int:
        """Clamp a raw total into [min_score, max_score]."""
        return max(self.min_score, min(self.max_score, score))


def _parse_int(env_var: str, default: int) -> int:
    """Parse an integer from an environment variable.

    Args:
        env_var: Environment variable name.
        default: Default value if env var is unset or blank.

    Returns:
        Parsed integer.

    Raises:
        ScoringConfigError: If value is set but not an integer.
    """
    raw = os.environ.get(env_var)
    if raw is None:
        return default

    raw = raw.strip()
    if not raw:
        return default

    try:
        return int(raw)
    except ValueError as e:
        raise ScoringConfigError(f"{env_var} must be an integer, got '{raw}'") from e


def load_scoring_config() -> ScoringConfig:
    """Load trust score configuration from environment variables.

    Returns:
        ScoringConfig with validated values.

    Raises:
        ScoringConfigError: If any value is invalid.
    """
    config = ScoringConfig(
        base_score=_parse_int(ENV_BASE_SCORE, DEFAULT_BASE_SCORE),
        min_score=_parse_int(ENV_MIN_SCORE, DEFAULT_MIN_SCORE),
        max_score=_parse_int(ENV_MAX_SCORE, DEFAULT_MAX_SCORE),
        history_limit=_parse_int(ENV_HISTORY_LIMIT, DEFAULT_HISTORY_LIMIT),
    )
    logger.debug(
        "Loaded scoring config base=%d bounds=[%d, %d] history_limit=%d",
        config.base_score,
        config.min_score,
        config.max_score,
        config.history_limit,
    )
    return config
