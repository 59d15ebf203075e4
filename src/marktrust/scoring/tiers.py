"""Tier classifier: maps a 0-100 score to one of five reputation bands."""

from __future__ import annotations

from marktrust.models.score import Tier, TierBand, TierInfo

# Descending thresholds; the first band whose floor is reached wins.
_THRESHOLDS: tuple[tuple[int, Tier], ...] = (
    (85, Tier.EXCELLENT),
    (70, Tier.GOOD),
    (50, Tier.NEUTRAL),
    (30, Tier.CAUTION),
    (0, Tier.HIGH_RISK),
)

TIER_DESCRIPTIONS: dict[Tier, str] = {
    Tier.EXCELLENT: "Highly Trusted - This entity has demonstrated exceptional trustworthiness",
    Tier.GOOD: "Trusted - This entity meets high standards of verification and transparency",
    Tier.NEUTRAL: "Standard - This entity meets basic requirements",
    Tier.CAUTION: "Exercise Caution - Some trust factors are missing or concerning",
    Tier.HIGH_RISK: "High Risk - Significant trust factors are missing or concerning",
}

# Shorter wording used by the static tier listing.
_LISTING_DESCRIPTIONS: dict[Tier, str] = {
    Tier.EXCELLENT: "Highly Trusted - Exceptional trustworthiness",
    Tier.GOOD: "Trusted - Meets high standards",
    Tier.NEUTRAL: "Standard - Meets basic requirements",
    Tier.CAUTION: "Exercise Caution - Some factors missing",
    Tier.HIGH_RISK: "High Risk - Significant factors missing",
}

_TIER_COLORS: dict[Tier, str] = {
    Tier.EXCELLENT: "green",
    Tier.GOOD: "blue",
    Tier.NEUTRAL: "gray",
    Tier.CAUTION: "yellow",
    Tier.HIGH_RISK: "red",
}


def classify(score: int) -> Tier:
    """Return the tier for a score."""
    for floor, tier in _THRESHOLDS:
        if score >= floor:
            return tier
    return Tier.HIGH_RISK


def get_tier_info(score: int) -> TierInfo:
    """Return the tier for a score together with its description."""
    tier = classify(score)
    return TierInfo(tier=tier, description=TIER_DESCRIPTIONS[tier])


def tier_table() -> list[TierBand]:
    """Static listing of all tiers, best first."""
    bands: list[TierBand] = []
    ceiling = 100
    for floor, tier in _THRESHOLDS:
        bands.append(
            TierBand(
                tier=tier,
                min_score=floor,
                max_score=ceiling,
                color=_TIER_COLORS[tier],
                description=_LISTING_DESCRIPTIONS[tier],
            )
        )
        ceiling = floor - 1
    return bands
